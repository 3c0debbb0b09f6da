"""
02_clustering.py
----------------
Cluster samples with every integration × clustering combination and compare
each partition against the published subtype labels.

Pipeline
────────
  1.  Load + align modalities and reference labels (same inputs as Step 01)
  2.  Integration:  SNF, simple average, and each modality on its own
  3.  Clustering:   PAM (medoids) and spectral, k = 3
  4.  Agreement vs reference: Rand Index, ARI, NMI
  5.  Spectral seed stability on the SNF matrix (10 seeds):
        pairwise ARI mean ± SD, majority-vote consensus scored vs reference
  6.  Save metric table and cluster assignments

Outputs
───────
  data/processed/
    cluster_assignments.parquet   samples × {integration|clustering}
  results/tables/
    clustering_metrics.tsv        one row per combination: rand, ari, nmi
    spectral_stability.tsv        seed stability summary

Run from project root:
  python scripts/02_clustering.py
"""

import logging
import sys
from pathlib import Path

import pandas as pd

from multiomics_fusion.agreement import score_agreement
from multiomics_fusion.config import N_CLUSTERS, N_SEEDS, FusionConfig
from multiomics_fusion.errors import FusionPipelineError
from multiomics_fusion.io import (load_modalities, write_assignments,
                                  write_metrics_table)
from multiomics_fusion.log_setup import configure_logging
from multiomics_fusion.pipeline import compare_methods
from multiomics_fusion.stability import seed_stability

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────
SEED_LIST            = list(range(N_SEEDS))
STABILITY_ARI_TARGET = 0.80

PROCESSED = Path("data/processed")
TABLE_OUT = Path("results/tables")
LOG_DIR   = Path("logs")

MODALITIES = {
    "mRNA":    PROCESSED / "mrna_preprocessed.parquet",
    "miRNA":   PROCESSED / "mirna_preprocessed.parquet",
    "protein": PROCESSED / "protein_preprocessed.parquet",
}
REFERENCE_PATH   = PROCESSED / "clinical_preprocessed.parquet"
REFERENCE_COLUMN = "subtype"

configure_logging(LOG_DIR / "02_clustering.log")
log = logging.getLogger(__name__)


def main() -> int:
    log.info("╔══════════════════════════════════════════════════════════╗")
    log.info("║       STEP 2: CLUSTERING + AGREEMENT vs REFERENCE        ║")
    log.info("╚══════════════════════════════════════════════════════════╝")

    config = FusionConfig(n_clusters=N_CLUSTERS)
    log.info(f"Configuration: {config.describe()}")

    modalities, reference = load_modalities(MODALITIES, REFERENCE_PATH,
                                            REFERENCE_COLUMN)
    sample_ids = reference.sample_ids

    # ── Integration × clustering ──────────────────────────────────────────────
    log.info("")
    log.info("=" * 60)
    log.info("INTEGRATION × CLUSTERING")
    log.info("=" * 60)
    result = compare_methods(modalities, reference, config, include_single=True)

    # ── Spectral seed stability on SNF ────────────────────────────────────────
    log.info("")
    log.info("=" * 60)
    log.info(f"SPECTRAL STABILITY  k={config.n_clusters}, {len(SEED_LIST)} seeds")
    log.info("=" * 60)
    stability = seed_stability(result.graphs["snf"], config.n_clusters,
                               seeds=SEED_LIST, n_init=config.n_init)
    if stability.mean_ari >= STABILITY_ARI_TARGET:
        log.info(f"  ✓ Stability criterion met (ARI ≥ {STABILITY_ARI_TARGET})")
    else:
        log.warning(f"  ⚠ Stability criterion NOT met "
                    f"(ARI={stability.mean_ari:.4f} < {STABILITY_ARI_TARGET})")
    consensus_score = score_agreement(stability.consensus, reference.labels)

    # ── Save ──────────────────────────────────────────────────────────────────
    log.info("")
    log.info("=" * 60)
    log.info("SAVING OUTPUTS")
    log.info("=" * 60)
    write_metrics_table(result.table, TABLE_OUT / "clustering_metrics.tsv")
    write_assignments(result.assignments, sample_ids,
                      PROCESSED / "cluster_assignments.parquet")
    stability_df = pd.DataFrame([{
        "n_seeds":            len(SEED_LIST),
        "stability_mean_ari": stability.mean_ari,
        "stability_std_ari":  stability.std_ari,
        "consensus_rand":     consensus_score.rand,
        "consensus_ari":      consensus_score.ari,
        "consensus_nmi":      consensus_score.nmi,
    }])
    stability_df.to_csv(TABLE_OUT / "spectral_stability.tsv", sep="\t",
                        index=False, float_format="%.4f")
    log.info(f"  Stability table saved → {TABLE_OUT / 'spectral_stability.tsv'}")

    # ── Summary ───────────────────────────────────────────────────────────────
    log.info("")
    log.info("╔══════════════════════════════════════════════════════════╗")
    log.info("║              CLUSTERING COMPLETE — SUMMARY               ║")
    log.info("╠══════════════════════════════════════════════════════════╣")
    for (integ, method), row in result.table.iterrows():
        log.info(f"║  {integ:<20s} {method:<9s} RI={row['rand']:.4f}  "
                 f"ARI={row['ari']:.4f}  NMI={row['nmi']:.4f}")
    log.info("╠══════════════════════════════════════════════════════════╣")
    log.info(f"║  SNF spectral stability: mean ARI={stability.mean_ari:.4f}  "
             f"SD={stability.std_ari:.4f}")
    log.info(f"║  Consensus vs reference: ARI={consensus_score.ari:.4f}  "
             f"NMI={consensus_score.nmi:.4f}")
    log.info("╚══════════════════════════════════════════════════════════╝")
    log.info("\n✓ Next: python scripts/03_sensitivity.py")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except (FusionPipelineError, FileNotFoundError) as e:
        log.error(f"Clustering failed: {e}")
        sys.exit(1)
