"""
matrices.py
-----------
Typed containers for pipeline inputs and boundary validation.

  FeatureMatrix     one modality, samples × features, finite float64
  ReferenceLabels   published grouping aligned to the same samples
  validate_similarity / check_alignment   shape + value checks

Containers hold read-only copies of their arrays, so downstream stages can
never mutate caller-owned data.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

import numpy as np
import pandas as pd

from multiomics_fusion.errors import InputValidationError

log = logging.getLogger(__name__)

SYMMETRY_ATOL = 1e-8


def _readonly(arr: np.ndarray) -> np.ndarray:
    out = np.array(arr, copy=True)
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class FeatureMatrix:
    """
    Samples × features matrix for one omics modality.

    Values must already be NA-free and standardised; construction only
    checks shape, identifier uniqueness and finiteness.
    """

    name: str
    sample_ids: tuple
    values: np.ndarray
    feature_names: tuple = field(default=())

    def __post_init__(self):
        values = np.asarray(self.values, dtype=np.float64)
        if values.ndim != 2:
            raise InputValidationError(
                f"{self.name}: feature matrix must be 2-D, got {values.ndim}-D")
        n, m = values.shape
        if n < 2 or m < 1:
            raise InputValidationError(
                f"{self.name}: need >= 2 samples and >= 1 feature, got {n} × {m}")

        sample_ids = tuple(str(s) for s in self.sample_ids)
        if len(sample_ids) != n:
            raise InputValidationError(
                f"{self.name}: {len(sample_ids)} sample ids for {n} rows")
        if len(set(sample_ids)) != n:
            raise InputValidationError(f"{self.name}: duplicate sample ids")

        feature_names = tuple(str(f) for f in self.feature_names)
        if feature_names and len(feature_names) != m:
            raise InputValidationError(
                f"{self.name}: {len(feature_names)} feature names for {m} columns")

        n_bad = int((~np.isfinite(values)).sum())
        if n_bad:
            raise InputValidationError(
                f"{self.name}: {n_bad} NaN/Inf values in feature matrix")

        object.__setattr__(self, "sample_ids", sample_ids)
        object.__setattr__(self, "feature_names", feature_names)
        object.__setattr__(self, "values", _readonly(values))

    @property
    def shape(self) -> tuple:
        return self.values.shape

    @property
    def n_samples(self) -> int:
        return self.values.shape[0]

    @classmethod
    def from_frame(cls, name: str, df: pd.DataFrame) -> "FeatureMatrix":
        """Build from a samples × features DataFrame (index = sample ids)."""
        return cls(name=name,
                   sample_ids=tuple(df.index.astype(str)),
                   values=df.to_numpy(dtype=np.float64),
                   feature_names=tuple(df.columns.astype(str)))

    def to_frame(self) -> pd.DataFrame:
        columns = list(self.feature_names) or None
        return pd.DataFrame(self.values.copy(), index=list(self.sample_ids),
                            columns=columns)


@dataclass(frozen=True)
class ReferenceLabels:
    """Ground-truth grouping; labels are integer codes 1..n_groups."""

    sample_ids: tuple
    labels: np.ndarray
    categories: tuple = field(default=())

    def __post_init__(self):
        labels = np.asarray(self.labels)
        if labels.ndim != 1:
            raise InputValidationError(
                f"reference labels must be 1-D, got {labels.ndim}-D")
        sample_ids = tuple(str(s) for s in self.sample_ids)
        if len(sample_ids) != labels.shape[0]:
            raise InputValidationError(
                f"{len(sample_ids)} sample ids for {labels.shape[0]} labels")
        if len(set(sample_ids)) != len(sample_ids):
            raise InputValidationError("duplicate sample ids in reference labels")
        object.__setattr__(self, "sample_ids", sample_ids)
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "labels", _readonly(labels))

    def __len__(self) -> int:
        return self.labels.shape[0]

    @classmethod
    def from_series(cls, series: pd.Series) -> "ReferenceLabels":
        """
        Encode an arbitrary label Series (index = sample ids).
        Missing labels are rejected; drop them upstream or via
        align_modalities().
        """
        if series.isna().any():
            raise InputValidationError(
                f"{int(series.isna().sum())} missing reference labels")
        categories = sorted(series.unique(), key=str)
        codes = {c: i + 1 for i, c in enumerate(categories)}
        labels = np.array([codes[v] for v in series.values], dtype=int)
        return cls(sample_ids=tuple(series.index.astype(str)),
                   labels=labels, categories=tuple(categories))

    def to_series(self) -> pd.Series:
        if self.categories:
            values = [self.categories[c - 1] for c in self.labels]
        else:
            values = self.labels.tolist()
        return pd.Series(values, index=list(self.sample_ids), name="reference")


# ──────────────────────────────────────────────────────────────────────────────
# Validation
# ──────────────────────────────────────────────────────────────────────────────

def validate_similarity(W, label: str = "similarity") -> np.ndarray:
    """
    Check that W is a square, symmetric, non-negative, finite matrix and
    return it as a float64 array (no copy when already float64).
    """
    W = np.asarray(W, dtype=np.float64)
    if W.ndim != 2 or W.shape[0] != W.shape[1]:
        raise InputValidationError(
            f"{label}: expected a square matrix, got shape {W.shape}")
    if W.shape[0] < 2:
        raise InputValidationError(f"{label}: need at least 2 samples")
    if not np.isfinite(W).all():
        raise InputValidationError(f"{label}: matrix contains NaN/Inf")
    if (W < 0).any():
        raise InputValidationError(f"{label}: matrix has negative entries")
    sym_err = float(np.abs(W - W.T).max())
    if sym_err > SYMMETRY_ATOL * max(1.0, float(np.abs(W).max())):
        raise InputValidationError(
            f"{label}: matrix is not symmetric (max |W - Wᵀ| = {sym_err:.2e})")
    return W


def validate_k(k: int, n: int) -> None:
    """Cluster count must satisfy 1 <= k < n."""
    if k < 1 or k >= n:
        raise InputValidationError(
            f"cluster count k={k} invalid for n={n} samples (need 1 <= k < n)")


def check_alignment(modalities: Mapping[str, FeatureMatrix],
                    reference: Optional[ReferenceLabels] = None) -> tuple:
    """
    Confirm every modality (and the reference, if given) carries identical
    sample ids in identical order. Returns the shared sample id tuple.
    """
    if not modalities:
        raise InputValidationError("no modalities supplied")

    names = list(modalities)
    ids = modalities[names[0]].sample_ids
    for name in names[1:]:
        other = modalities[name].sample_ids
        if other != ids:
            raise InputValidationError(
                f"Sample order mismatch between {names[0]} ({len(ids)}) "
                f"and {name} ({len(other)}) — cannot proceed")
    if reference is not None and reference.sample_ids != ids:
        raise InputValidationError(
            f"Reference labels ({len(reference)}) not aligned to "
            f"modality samples ({len(ids)})")

    log.info(f"Sample alignment confirmed: {len(ids)} samples "
             f"across {len(names)} modalities")
    return ids


def align_modalities(frames: Mapping[str, pd.DataFrame],
                     reference: pd.Series) -> tuple:
    """
    Subset samples × features frames and a reference label Series to their
    common complete-case samples.

    Sample order is taken from the first frame; samples with a missing
    reference label are dropped. Returns (modalities dict, ReferenceLabels).
    """
    if not frames:
        raise InputValidationError("no modalities supplied")

    names = list(frames)
    labelled = reference.dropna()
    labelled.index = labelled.index.astype(str)
    common = set(labelled.index)
    for name in names:
        common &= set(frames[name].index.astype(str))

    order = [s for s in frames[names[0]].index.astype(str) if s in common]
    if len(order) < 2:
        raise InputValidationError(
            f"only {len(order)} samples shared by all modalities and the reference")

    modalities = {}
    for name in names:
        df = frames[name].copy()
        df.index = df.index.astype(str)
        dropped = len(df) - len(order)
        if dropped:
            log.warning(f"  {name}: {dropped} samples not shared by all inputs")
        modalities[name] = FeatureMatrix.from_frame(name, df.loc[order])

    dropped_ref = len(reference) - len(order)
    if dropped_ref:
        log.warning(f"  reference: {dropped_ref} samples dropped "
                    f"(missing label or absent from a modality)")
    ref = ReferenceLabels.from_series(labelled.loc[order])
    log.info(f"Aligned {len(names)} modalities + reference on {len(order)} samples")
    return modalities, ref
