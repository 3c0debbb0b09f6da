"""
clustering.py
-------------
Partition samples into k groups from a similarity (or distance) matrix.

  pam        medoid partitioning: greedy BUILD + steepest-descent SWAP on
             1 − min-max-normalised similarity
  spectral   normalised-Laplacian embedding (k smallest eigenvectors,
             rows scaled to unit length) followed by k-means

Both return a ClusterAssignment with labels in 1..k. k is checked against
the sample count (1 <= k < n) before any work is done.

k-selection helpers (eigengap on the normalised Laplacian, and snfpy's
eigengap + rotation-cost estimate) live here as well.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import snf
from scipy.linalg import eigh
from sklearn.cluster import KMeans

from multiomics_fusion.config import CLUSTERERS, K_RANGE, N_INIT
from multiomics_fusion.errors import (ConvergenceError, DegenerateGraphError,
                                      InputValidationError)
from multiomics_fusion.matrices import validate_k, validate_similarity

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterAssignment:
    """Labels in 1..k plus method-specific diagnostics."""

    method: str
    labels: np.ndarray
    medoids: tuple = field(default=())
    cost_trace: tuple = field(default=())
    eigenvalues: Optional[np.ndarray] = None

    def __post_init__(self):
        labels = np.array(self.labels, dtype=int, copy=True)
        labels.setflags(write=False)
        object.__setattr__(self, "labels", labels)

    @property
    def n_clusters(self) -> int:
        return int(np.unique(self.labels).size)

    @property
    def cluster_sizes(self) -> list:
        return np.bincount(self.labels)[1:].tolist()


def canonical_labels(raw) -> np.ndarray:
    """Relabel to 1..k in order of first appearance."""
    raw = np.asarray(raw)
    mapping = {}
    for value in raw:
        if value not in mapping:
            mapping[value] = len(mapping) + 1
    return np.array([mapping[v] for v in raw], dtype=int)


# ──────────────────────────────────────────────────────────────────────────────
# Medoid partitioning (PAM)
# ──────────────────────────────────────────────────────────────────────────────

def similarity_to_dissimilarity(W: np.ndarray) -> np.ndarray:
    """
    D = 1 − min-max-normalised similarity, using off-diagonal entries for the
    range; diagonal set to 0. A constant matrix maps to D = 1 off-diagonal.
    """
    W = np.asarray(W, dtype=np.float64)
    n = W.shape[0]
    off_mask = ~np.eye(n, dtype=bool)
    lo, hi = float(W[off_mask].min()), float(W[off_mask].max())
    if hi - lo > 0:
        W_norm = np.clip((W - lo) / (hi - lo), 0.0, 1.0)
    else:
        W_norm = np.zeros_like(W)
    D = 1.0 - W_norm
    np.fill_diagonal(D, 0.0)
    return D


def _total_cost(D: np.ndarray, medoids: list) -> float:
    return float(D[medoids].min(axis=0).sum())


def _pam_build(D: np.ndarray, k: int) -> list:
    """Greedy BUILD: each step adds the point that lowers total cost most."""
    first = int(np.argmin(D.sum(axis=1)))
    medoids = [first]
    nearest = D[first].copy()
    while len(medoids) < k:
        candidates = np.setdiff1d(np.arange(D.shape[0]), medoids)
        costs = np.minimum(nearest[None, :], D[candidates]).sum(axis=1)
        pick = int(candidates[int(np.argmin(costs))])
        medoids.append(pick)
        nearest = np.minimum(nearest, D[pick])
    return medoids


def _best_swap(D: np.ndarray, medoids: list) -> tuple:
    """
    Evaluate every (medoid, non-medoid) exchange.
    Returns (cost, medoid position, replacement index) of the cheapest one.
    """
    n = D.shape[0]
    non_medoids = np.setdiff1d(np.arange(n), medoids)
    best = (np.inf, -1, -1)
    for pos in range(len(medoids)):
        others = medoids[:pos] + medoids[pos + 1:]
        if others:
            base = D[others].min(axis=0)
        else:
            base = np.full(n, np.inf)
        costs = np.minimum(base[None, :], D[non_medoids]).sum(axis=1)
        j = int(np.argmin(costs))
        if costs[j] < best[0]:
            best = (float(costs[j]), pos, int(non_medoids[j]))
    return best


def pam_clustering(matrix: np.ndarray, k: int, kind: str = "similarity",
                   max_swaps: Optional[int] = None) -> ClusterAssignment:
    """
    Partitioning Around Medoids on a precomputed matrix.

    matrix    : (n, n) similarity (kind="similarity") or distance
                (kind="distance") matrix
    k         : number of clusters, 1 <= k < n
    max_swaps : cap on accepted swaps (default k·n); exceeding it raises
                ConvergenceError

    Labels come from the nearest medoid, with medoids ordered by sample index
    and ties going to the lowest-index medoid.
    """
    M = validate_similarity(matrix, label=f"PAM input ({kind})")
    n = M.shape[0]
    validate_k(k, n)

    if kind == "similarity":
        D = similarity_to_dissimilarity(M)
    elif kind == "distance":
        D = M.copy()
        np.fill_diagonal(D, 0.0)
    else:
        raise InputValidationError(
            f"kind must be 'similarity' or 'distance', got {kind!r}")

    cap = max_swaps if max_swaps is not None else k * n

    medoids = _pam_build(D, k)
    cost = _total_cost(D, medoids)
    cost_trace = [cost]
    log.info(f"PAM (k={k}, n={n}): BUILD medoids={sorted(medoids)}  "
             f"cost={cost:.4f}")

    n_swaps = 0
    while True:
        new_cost, pos, h = _best_swap(D, medoids)
        if not new_cost < cost - 1e-12 * max(1.0, abs(cost)):
            break
        if n_swaps >= cap:
            raise ConvergenceError(
                f"PAM exceeded {cap} swaps without converging — "
                f"cost should decrease monotonically")
        log.debug(f"  swap {medoids[pos]} -> {h}  cost {cost:.6f} -> {new_cost:.6f}")
        medoids[pos] = h
        cost = new_cost
        cost_trace.append(cost)
        n_swaps += 1

    medoids = sorted(medoids)
    labels = np.argmin(D[medoids], axis=0) + 1
    for rank, m in enumerate(medoids):
        labels[m] = rank + 1
    log.info(f"  SWAP converged after {n_swaps} swaps  cost={cost:.4f}  "
             f"sizes={np.bincount(labels)[1:].tolist()}")
    return ClusterAssignment(method="pam", labels=labels,
                             medoids=tuple(medoids),
                             cost_trace=tuple(cost_trace))


# ──────────────────────────────────────────────────────────────────────────────
# Spectral partitioning
# ──────────────────────────────────────────────────────────────────────────────

def normalized_laplacian(W: np.ndarray) -> np.ndarray:
    """
    L_sym = I − D^{-1/2} A D^{-1/2}, A = W without self-loops.
    Raises DegenerateGraphError when any sample has zero degree.
    """
    A = np.asarray(W, dtype=np.float64).copy()
    np.fill_diagonal(A, 0.0)
    degree = A.sum(axis=1)
    isolated = np.flatnonzero(degree <= 0)
    if isolated.size:
        raise DegenerateGraphError(
            f"{isolated.size} isolated samples (zero degree), first at "
            f"index {int(isolated[0])} — normalised Laplacian undefined")
    d_inv_sqrt = 1.0 / np.sqrt(degree)
    L = np.eye(A.shape[0]) - d_inv_sqrt[:, None] * A * d_inv_sqrt[None, :]
    return (L + L.T) / 2.0


def spectral_clustering(W: np.ndarray, k: int, seed: int = 0,
                        n_init: int = N_INIT) -> ClusterAssignment:
    """
    Spectral partitioning of a similarity matrix into k groups.

    Embeds samples with the k eigenvectors of the smallest eigenvalues of the
    symmetric normalised Laplacian (scipy eigh), scales embedding rows to unit
    length and runs k-means (random_state=seed) on them.
    """
    W = validate_similarity(W, label="spectral input")
    n = W.shape[0]
    validate_k(k, n)

    L = normalized_laplacian(W)
    eigenvalues, eigvecs = eigh(L, subset_by_index=[0, k - 1])

    norms = np.linalg.norm(eigvecs, axis=1, keepdims=True)
    norms = np.where(norms == 0, 1.0, norms)
    embedding = eigvecs / norms

    km = KMeans(n_clusters=k, n_init=n_init, random_state=seed)
    labels = canonical_labels(km.fit_predict(embedding))
    log.info(f"Spectral (k={k}, n={n}, seed={seed}): "
             f"λ[0:{k}]={np.round(eigenvalues, 4).tolist()}  "
             f"sizes={np.bincount(labels)[1:].tolist()}")
    return ClusterAssignment(method="spectral", labels=labels,
                             eigenvalues=eigenvalues)


def assign_clusters(matrix: np.ndarray, k: int, method: str = "pam",
                    seed: int = 0, n_init: int = N_INIT,
                    max_swaps: Optional[int] = None) -> ClusterAssignment:
    """Dispatch to pam_clustering or spectral_clustering."""
    if method == "pam":
        return pam_clustering(matrix, k, max_swaps=max_swaps)
    if method == "spectral":
        return spectral_clustering(matrix, k, seed=seed, n_init=n_init)
    raise InputValidationError(
        f"Unknown clustering method: {method!r} (expected one of {CLUSTERERS})")


# ──────────────────────────────────────────────────────────────────────────────
# k selection
# ──────────────────────────────────────────────────────────────────────────────

def eigengap_k(W: np.ndarray, k_range: range = K_RANGE) -> tuple:
    """
    Eigengap heuristic on the normalised graph Laplacian.

    For each candidate k the gap is λ_{k+1} − λ_k (eigenvalues ascending,
    1-based); the k with the largest gap is suggested.
    Returns (suggested_k, eigenvalues).
    """
    W = validate_similarity(W, label="eigengap input")
    n = W.shape[0]
    ks = list(k_range)
    if not ks or min(ks) < 1 or max(ks) >= n:
        raise InputValidationError(
            f"k range {ks[:1]}..{ks[-1:]} invalid for n={n} samples")

    eigenvalues = np.sort(np.linalg.eigvalsh(normalized_laplacian(W)))
    gaps = np.array([eigenvalues[k] - eigenvalues[k - 1] for k in ks])
    suggested_k = ks[int(np.argmax(gaps))]

    log.info("  Eigengaps: " + "  ".join(f"k={k}:{g:.4f}" for k, g in zip(ks, gaps)))
    log.info(f"  Suggested k (largest eigengap): {suggested_k}")
    return suggested_k, eigenvalues


def estimate_n_clusters(W: np.ndarray, k_range: range = range(2, 6)) -> tuple:
    """
    snfpy's estimate (eigengap weighted by rotation cost).
    Returns (best_k, second_best_k).
    """
    W = validate_similarity(W, label="cluster-count input")
    ks = list(k_range)
    if len(ks) < 2:
        raise InputValidationError("need at least two candidate k values")
    best, second = snf.get_n_clusters(W, n_clusters=ks)
    log.info(f"  snfpy cluster-count estimate: best k={int(best)}, "
             f"second k={int(second)}")
    return int(best), int(second)
