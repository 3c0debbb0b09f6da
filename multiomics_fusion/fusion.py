"""
fusion.py
---------
Combine per-modality similarity matrices into one consensus matrix.

Strategies
──────────
  average   element-wise mean of the similarity matrices
  snf       similarity network fusion (Wang et al. 2014), generalised to
            s > 2 modalities by diffusing each network through the mean of
            the *other* networks:

                P_s ← S_s · mean_{r≠s}(P_r) · S_sᵀ     (then row-normalise)

            P_s starts as the global kernel of W_s, S_s is its K-NN local
            kernel. After t iterations the consensus is mean_s(P_s),
            symmetrised.

Cost is O(t · s · n³) from the dense matrix products; fine for n in the low
thousands, not designed for n in the tens of thousands.
"""

import logging
from typing import Mapping, Optional, Sequence, Union

import numpy as np

from multiomics_fusion.config import INTEGRATIONS, K_NEIGHBOURS, T_ITERATIONS
from multiomics_fusion.errors import InputValidationError
from multiomics_fusion.matrices import validate_similarity

log = logging.getLogger(__name__)

Similarities = Union[Sequence[np.ndarray], Mapping[str, np.ndarray]]


def _as_list(similarities: Similarities) -> list:
    if isinstance(similarities, Mapping):
        items = list(similarities.items())
    else:
        items = [(f"network_{i}", W) for i, W in enumerate(similarities)]
    if not items:
        raise InputValidationError("no similarity matrices supplied")

    mats = [validate_similarity(W, label=name) for name, W in items]
    shape = mats[0].shape
    for (name, _), W in zip(items[1:], mats[1:]):
        if W.shape != shape:
            raise InputValidationError(
                f"{name}: shape {W.shape} does not match {items[0][0]} {shape}")
    return mats


def _row_normalise(P: np.ndarray) -> np.ndarray:
    row_sum = P.sum(axis=1, keepdims=True)
    row_sum[row_sum == 0] = 1.0
    return P / row_sum


# ──────────────────────────────────────────────────────────────────────────────
# Kernels
# ──────────────────────────────────────────────────────────────────────────────

def global_kernel(W: np.ndarray) -> np.ndarray:
    """
    Row-stochastic "global" kernel: diagonal 1/2, off-diagonal entries
    W(i,j) / (2 · Σ_{k≠i} W(i,k)).

    A sample with no off-diagonal similarity keeps all of its mass on the
    diagonal (P(i,i) = 1) so every row still sums to 1.
    """
    W = np.asarray(W, dtype=np.float64)
    off = W.copy()
    np.fill_diagonal(off, 0.0)
    row_sum = off.sum(axis=1, keepdims=True)

    isolated = (row_sum[:, 0] <= 0)
    if isolated.any():
        log.warning(f"  {int(isolated.sum())} isolated samples in global kernel "
                    f"— self-weight set to 1")
    denom = np.where(row_sum > 0, 2.0 * row_sum, 1.0)
    P = off / denom
    np.fill_diagonal(P, np.where(isolated, 1.0, 0.5))
    return P


def local_kernel(W: np.ndarray, K: int = K_NEIGHBOURS) -> np.ndarray:
    """
    Sparse "local" kernel: keep each row's K largest similarities (self
    included in the ranking, ties broken by column order), zero the rest,
    row-normalise to 1.
    """
    if K < 1:
        raise InputValidationError(f"K must be >= 1, got {K}")
    W = np.asarray(W, dtype=np.float64)
    n = W.shape[0]
    k_eff = min(K, n)

    order = np.argsort(-W, axis=1, kind="stable")[:, :k_eff]
    rows = np.arange(n)[:, None]
    S = np.zeros_like(W)
    S[rows, order] = W[rows, order]

    row_sum = S.sum(axis=1)
    empty = row_sum <= 0
    if empty.any():
        # no positive neighbour at all: fall back to the sample itself
        S[empty] = 0.0
        S[np.flatnonzero(empty), np.flatnonzero(empty)] = 1.0
    return _row_normalise(S)


# ──────────────────────────────────────────────────────────────────────────────
# Strategies
# ──────────────────────────────────────────────────────────────────────────────

def average_fusion(similarities: Similarities) -> np.ndarray:
    """Element-wise mean of the similarity matrices."""
    mats = _as_list(similarities)
    stacked = np.stack(mats, axis=0)
    # sort along the modality axis so the sum does not depend on input order
    fused = np.sort(stacked, axis=0).sum(axis=0) / len(mats)
    log.info(f"Average fusion of {len(mats)} networks  "
             f"range: [{fused.min():.4f}, {fused.max():.4f}]")
    return fused


def network_fusion(similarities: Similarities, K: int = K_NEIGHBOURS,
                   t: int = T_ITERATIONS,
                   tol: Optional[float] = None) -> np.ndarray:
    """
    Similarity network fusion over s >= 1 networks.

    similarities : sequence or {name: matrix} mapping of (n, n) similarities
    K            : local-kernel neighbourhood size
    t            : number of diffusion iterations
    tol          : optional early stop when the Frobenius norm of the change
                   in consensus between iterations falls below tol

    With a single network there is nothing to fuse against and a copy of it
    is returned unchanged.
    """
    mats = _as_list(similarities)
    if K < 1:
        raise InputValidationError(f"K must be >= 1, got {K}")
    if t < 1:
        raise InputValidationError(f"t must be >= 1, got {t}")

    s = len(mats)
    if s == 1:
        log.info("Network fusion with a single network — returned unchanged")
        return mats[0].copy()

    log.info(f"Running SNF: {s} networks, n={mats[0].shape[0]}, K={K}, t={t}")

    P_list = [global_kernel(W) for W in mats]
    S_list = [local_kernel(W, K) for W in mats]

    consensus = sum(P_list) / s
    for it in range(1, t + 1):
        new_P = []
        for m, S in enumerate(S_list):
            P_others = sum(P for r, P in enumerate(P_list) if r != m) / (s - 1)
            new_P.append(_row_normalise(S @ P_others @ S.T))
        P_list = new_P

        new_consensus = sum(P_list) / s
        delta = float(np.linalg.norm(new_consensus - consensus, ord="fro"))
        consensus = new_consensus
        log.debug(f"  iteration {it:2d}  ‖ΔP‖_F = {delta:.3e}")
        if tol is not None and delta < tol:
            log.info(f"  Converged after {it} iterations "
                     f"(‖ΔP‖_F = {delta:.2e} < {tol:.1e})")
            break

    fused = (consensus + consensus.T) / 2.0
    sym_err = float(np.abs(fused - fused.T).max())
    log.info(f"  Fused matrix range: [{fused.min():.4f}, {fused.max():.4f}]  "
             f"symmetry error: {sym_err:.2e}")
    return fused


def fuse(similarities: Similarities, strategy: str = "snf",
         K: int = K_NEIGHBOURS, t: int = T_ITERATIONS,
         tol: Optional[float] = None) -> np.ndarray:
    """Dispatch to network_fusion ("snf") or average_fusion ("average")."""
    if strategy == "snf":
        return network_fusion(similarities, K=K, t=t, tol=tol)
    if strategy == "average":
        return average_fusion(similarities)
    raise InputValidationError(
        f"Unknown fusion strategy: {strategy!r} (expected one of {INTEGRATIONS})")
