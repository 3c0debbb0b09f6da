"""
io.py
-----
File boundary of the pipeline: read preprocessed per-modality matrices and
reference labels, write metric tables and cluster assignments.

Preprocessed matrices are stored features × samples (one column per sample)
as Parquet, CSV or TSV; they are returned samples × features.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from multiomics_fusion.errors import InputValidationError
from multiomics_fusion.matrices import align_modalities

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

ORIENTATIONS = ("features_x_samples", "samples_x_features")


def _read_table(path: Path, index_col=0) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".csv":
        return pd.read_csv(path, index_col=index_col)
    if suffix in (".tsv", ".txt"):
        return pd.read_csv(path, sep="\t", index_col=index_col)
    raise InputValidationError(f"Unsupported table format: {path}")


def load_feature_table(path: PathLike,
                       orientation: str = "features_x_samples") -> pd.DataFrame:
    """Read one modality and return it samples × features, float64."""
    path = Path(path)
    if orientation not in ORIENTATIONS:
        raise InputValidationError(
            f"orientation must be one of {ORIENTATIONS}, got {orientation!r}")
    if not path.exists():
        raise FileNotFoundError(f"Feature table not found: {path}")

    df = _read_table(path)
    log.info(f"Loading {path.name} — shape {df.shape} ({orientation})")
    if orientation == "features_x_samples":
        df = df.T
    df.index = df.index.astype(str)
    try:
        return df.astype("float64")
    except (TypeError, ValueError) as e:
        raise InputValidationError(
            f"{path.name}: non-numeric feature values ({e})") from e


def load_reference_labels(path: PathLike, column: str) -> pd.Series:
    """Read a labels table (index = sample ids) and return one column."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Reference table not found: {path}")
    df = _read_table(path)
    if column not in df.columns:
        raise InputValidationError(
            f"{path.name}: column {column!r} not found "
            f"(available: {list(df.columns)})")
    labels = df[column].copy()
    labels.index = labels.index.astype(str)
    log.info(f"Reference labels: {int(labels.notna().sum())}/{len(labels)} "
             f"labelled  groups={sorted(labels.dropna().unique(), key=str)}")
    return labels


def load_modalities(paths: Mapping[str, PathLike], reference_path: PathLike,
                    column: str,
                    orientation: str = "features_x_samples") -> tuple:
    """
    Load every modality plus the reference labels and align them on their
    common labelled samples. Returns (modalities dict, ReferenceLabels).
    """
    frames = {name: load_feature_table(p, orientation=orientation)
              for name, p in paths.items()}
    reference = load_reference_labels(reference_path, column)
    return align_modalities(frames, reference)


def write_metrics_table(table: pd.DataFrame, path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, sep="\t", float_format="%.4f")
    log.info(f"  Metrics table saved → {path}")
    return path


def write_assignments(assignments: Mapping[tuple, object],
                      sample_ids: Sequence[str], path: PathLike) -> Path:
    """
    Save {(integration, clustering): ClusterAssignment} as one column per
    combination, rows = samples. Parquet for .parquet, TSV otherwise.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    columns = {f"{integ}|{method}": a.labels
               for (integ, method), a in assignments.items()}
    df = pd.DataFrame(columns, index=list(sample_ids))
    df.index.name = "sample_id"
    if path.suffix.lower() == ".parquet":
        df.to_parquet(path)
    else:
        df.to_csv(path, sep="\t")
    log.info(f"  Cluster assignments saved → {path}  ({df.shape[1]} columns)")
    return path


# ──────────────────────────────────────────────────────────────────────────────
# Checkpoints
# ──────────────────────────────────────────────────────────────────────────────

def write_cohort(sample_ids: Sequence[str], path: PathLike) -> bool:
    """
    Write the aligned sample ids, one per line. Returns True when they differ
    from the cohort previously written at path (cached matrices are stale).
    """
    path = Path(path)
    sample_ids = [str(s) for s in sample_ids]
    changed = True
    if path.exists():
        changed = path.read_text().split() != sample_ids
        if changed:
            log.warning(f"Cohort in {path.name} changed since last run — "
                        f"cached matrices will be rebuilt")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(sample_ids) + "\n")
    return changed


def load_checkpoint(path: PathLike, n_samples: int) -> Optional[np.ndarray]:
    """Load a cached (n, n) matrix; None when missing or sized for another cohort."""
    path = Path(path)
    if not path.exists():
        return None
    W = np.load(path)
    if W.shape != (n_samples, n_samples):
        log.warning(f"  Checkpoint {path.name} has shape {W.shape}, expected "
                    f"({n_samples}, {n_samples}) — rebuilding")
        return None
    log.info(f"CHECKPOINT HIT — loaded: {path}")
    return W
