"""
affinity.py
-----------
Per-modality sample × sample similarity matrices.

Kernel (locally scaled, Wang et al. 2014):

    d_ij   = Euclidean distance between samples i and j
    TT_i   = mean distance from i to its K nearest neighbours (self excluded)
    σ_ij   = mu · (TT_i + TT_j + d_ij) / 3
    W(i,j) = exp(−d_ij² / σ_ij²)

σ² is clipped to np.finfo(float64).tiny so near-duplicate samples (TT = 0)
give similarity 1 instead of 0/0. W is bounded in (0, 1], equals 1 on the
diagonal and for identical samples, and is symmetric.
"""

import logging
from typing import Mapping

import numpy as np
from scipy.spatial.distance import cdist

from multiomics_fusion.config import AFFINITY_METRICS, K_NEIGHBOURS, MU
from multiomics_fusion.errors import InputValidationError
from multiomics_fusion.matrices import FeatureMatrix

log = logging.getLogger(__name__)


def pairwise_distances(data: np.ndarray, metric: str = "euclidean") -> np.ndarray:
    """
    Pairwise sample distances, shape (n, n), exact zeros on the diagonal.

    metric="cosine" uses 1 − cosine similarity; all-zero rows are treated as
    unit vectors of zero length (distance 1 to everything else).
    """
    if metric == "euclidean":
        D = cdist(data, data, metric="euclidean")
    elif metric == "cosine":
        norms = np.linalg.norm(data, axis=1, keepdims=True)
        norms = np.where(norms == 0, 1.0, norms)
        data_n = data / norms
        cos_sim = np.clip(data_n @ data_n.T, -1.0, 1.0)
        D = 1.0 - cos_sim     # cosine distance in [0, 2]
    else:
        raise InputValidationError(
            f"Unknown metric: {metric!r} (expected one of {AFFINITY_METRICS})")
    D = np.maximum(D, 0.0)
    np.fill_diagonal(D, 0.0)
    return (D + D.T) / 2.0


def affinity_matrix(features, K: int = K_NEIGHBOURS, mu: float = MU,
                    metric: str = "euclidean", label: str = "") -> np.ndarray:
    """
    Locally scaled exponential-kernel affinity for one feature matrix.

    features : FeatureMatrix or (n_samples, n_features) array, already
               standardised and NaN-free
    Returns  : (n_samples, n_samples) float64 similarity matrix in (0, 1]
    """
    if isinstance(features, FeatureMatrix):
        label = label or features.name
        data = features.values
    else:
        data = np.asarray(features, dtype=np.float64)
        if data.ndim != 2:
            raise InputValidationError(
                f"{label or 'features'}: expected a 2-D matrix, got {data.ndim}-D")
        if data.shape[0] < 2:
            raise InputValidationError(
                f"{label or 'features'}: need at least 2 samples")
        if not np.isfinite(data).all():
            raise InputValidationError(
                f"{label or 'features'}: feature matrix contains NaN/Inf")
    if K < 1:
        raise InputValidationError(f"K must be >= 1, got {K}")
    if not mu > 0:
        raise InputValidationError(f"mu must be > 0, got {mu}")

    n = data.shape[0]
    k_eff = min(K, n - 1)
    log.info(f"Computing affinity matrix: {label or 'unnamed'}  "
             f"(n={n}, K={k_eff}, mu={mu}, metric={metric})")

    D = pairwise_distances(data, metric=metric)

    # KNN mean distance per sample (column 0 of each sorted row is self)
    TT = np.sort(D, axis=1)[:, 1:k_eff + 1].mean(axis=1)

    sigma = mu * (TT[:, None] + TT[None, :] + D) / 3.0
    sigma_sq = np.maximum(sigma ** 2, np.finfo(np.float64).tiny)

    W = np.exp(-(D ** 2) / sigma_sq)
    W = (W + W.T) / 2.0

    n_zero_tt = int(np.sum(TT < 1e-12))
    if n_zero_tt:
        log.warning(f"  {n_zero_tt} samples have zero mean KNN distance "
                    f"(duplicates) — bandwidth clamped")
    log.info(f"  TT range: {TT.min():.3e} – {TT.max():.3e}  "
             f"affinity range: [{W.min():.6f}, {W.max():.6f}]")
    return W


def build_affinities(modalities: Mapping[str, FeatureMatrix],
                     K: int = K_NEIGHBOURS, mu: float = MU,
                     metric: str = "euclidean") -> dict:
    """Affinity matrix per modality, keyed (and ordered) like the input."""
    return {name: affinity_matrix(fm, K=K, mu=mu, metric=metric, label=name)
            for name, fm in modalities.items()}
