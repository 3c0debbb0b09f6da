"""
01_graph_construction.py
------------------------
Build per-modality affinity graphs, fuse them (SNF and simple averaging),
and check the reference cluster count against the fused spectrum.

Pipeline
────────
  For each modality (mRNA, miRNA, protein):
    1. Load preprocessed matrix (features × samples, z-scored, NA-free)
    2. Align to the samples shared by every modality and the reference labels
       → FeatureMatrix (samples × features)

  Graph construction & fusion (locked hyperparameters):
    3. affinity_matrix(K=20, mu=0.5)   → one samples × samples matrix per modality
    4. network_fusion(K=20, t=20)      → SNF consensus matrix
    5. average_fusion                  → element-wise mean matrix

  k check:
    6. Eigengap on the SNF consensus (2 ≤ k ≤ 10) and snfpy's estimate
       → logged next to the reference k = 3

Outputs  (data/processed/)
──────────────────────────
  final_cohort.txt            aligned sample ids, one per line
  affinity_<modality>.npy     n × n float64
  affinity_fused_snf.npy      n × n float64
  affinity_fused_average.npy  n × n float64
  eigenvalues_fused.npy       normalised Laplacian spectrum of the SNF matrix

Run from project root:
  python scripts/01_graph_construction.py
"""

import logging
import sys
from pathlib import Path

import numpy as np

from multiomics_fusion.affinity import affinity_matrix
from multiomics_fusion.clustering import eigengap_k, estimate_n_clusters
from multiomics_fusion.config import (K_NEIGHBOURS, K_RANGE, MU, N_CLUSTERS,
                                      T_ITERATIONS)
from multiomics_fusion.errors import FusionPipelineError
from multiomics_fusion.fusion import average_fusion, network_fusion
from multiomics_fusion.io import load_checkpoint, load_modalities, write_cohort
from multiomics_fusion.log_setup import configure_logging

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────
PROCESSED = Path("data/processed")
LOG_DIR   = Path("logs")

MODALITIES = {
    "mRNA":    PROCESSED / "mrna_preprocessed.parquet",
    "miRNA":   PROCESSED / "mirna_preprocessed.parquet",
    "protein": PROCESSED / "protein_preprocessed.parquet",
}
REFERENCE_PATH   = PROCESSED / "clinical_preprocessed.parquet"
REFERENCE_COLUMN = "subtype"

COHORT_OUT = PROCESSED / "final_cohort.txt"
FUSED_SNF  = PROCESSED / "affinity_fused_snf.npy"
FUSED_AVG  = PROCESSED / "affinity_fused_average.npy"
EVALS_OUT  = PROCESSED / "eigenvalues_fused.npy"

configure_logging(LOG_DIR / "01_graph_construction.log")
log = logging.getLogger(__name__)


def cached(path: Path, n_samples: int, stale: bool):
    if stale:
        return None
    return load_checkpoint(path, n_samples)


# ──────────────────────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────────────────────

def main() -> int:
    log.info("╔═══════════════════════════════════════════════════════╗")
    log.info("║     STEP 1: GRAPH CONSTRUCTION + FUSION               ║")
    log.info("╚═══════════════════════════════════════════════════════╝")
    log.info(f"Hyperparameters: K={K_NEIGHBOURS}, t={T_ITERATIONS}, mu={MU}")

    # ── Load + align ──────────────────────────────────────────────────────────
    modalities, reference = load_modalities(MODALITIES, REFERENCE_PATH,
                                            REFERENCE_COLUMN)
    sample_ids = next(iter(modalities.values())).sample_ids
    n = len(sample_ids)
    stale = write_cohort(sample_ids, COHORT_OUT)
    log.info(f"Final cohort: {n} samples → {COHORT_OUT}")

    # ── Per-modality affinity ─────────────────────────────────────────────────
    log.info("=" * 60)
    log.info("BUILDING AFFINITY MATRICES")
    log.info("=" * 60)
    affinities = {}
    for name, fm in modalities.items():
        out = PROCESSED / f"affinity_{name.lower()}.npy"
        W = cached(out, n, stale)
        if W is None:
            W = affinity_matrix(fm, K=K_NEIGHBOURS, mu=MU)
            np.save(out, W)
            log.info(f"Saved {out}")
            stale = True    # fused matrices depend on this one
        affinities[name] = W

    # ── Fusion ────────────────────────────────────────────────────────────────
    log.info("=" * 60)
    log.info("FUSING NETWORKS")
    log.info("=" * 60)
    fused_snf = cached(FUSED_SNF, n, stale)
    if fused_snf is None:
        fused_snf = network_fusion(affinities, K=K_NEIGHBOURS, t=T_ITERATIONS)
        np.save(FUSED_SNF, fused_snf)
        log.info(f"Saved {FUSED_SNF}")

    if cached(FUSED_AVG, n, stale) is None:
        np.save(FUSED_AVG, average_fusion(affinities))
        log.info(f"Saved {FUSED_AVG}")

    # ── k check ───────────────────────────────────────────────────────────────
    log.info("=" * 60)
    log.info("EIGENGAP k CHECK")
    log.info("=" * 60)
    k_range = range(K_RANGE.start, min(K_RANGE.stop, n))
    suggested_k, eigenvalues = eigengap_k(fused_snf, k_range)
    np.save(EVALS_OUT, eigenvalues)
    best_k, second_k = estimate_n_clusters(fused_snf)
    if N_CLUSTERS in (suggested_k, best_k, second_k):
        log.info(f"  ✓ Reference k={N_CLUSTERS} supported by the fused spectrum")
    else:
        log.warning(f"  ⚠ Spectrum suggests k={suggested_k} (eigengap), "
                    f"{best_k}/{second_k} (snfpy); analysis keeps the "
                    f"reference k={N_CLUSTERS}")

    log.info("")
    log.info("╔═══════════════════════════════════════════════════════╗")
    log.info("║         GRAPH CONSTRUCTION COMPLETE                   ║")
    log.info("╠═══════════════════════════════════════════════════════╣")
    log.info(f"║  Samples:                {n}")
    log.info(f"║  Modalities:             {', '.join(modalities)}")
    log.info(f"║  Reference groups:       {len(set(reference.labels.tolist()))}")
    log.info(f"║  Suggested k (eigengap): {suggested_k}")
    log.info("╚═══════════════════════════════════════════════════════╝")
    log.info("\n✓ Next: python scripts/02_clustering.py")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except (FusionPipelineError, FileNotFoundError) as e:
        log.error(f"Graph construction failed: {e}")
        sys.exit(1)
