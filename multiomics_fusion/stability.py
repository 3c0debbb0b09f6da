"""
stability.py
------------
Seed stability of spectral partitioning.

k-means inside spectral partitioning depends on its random_state. Running
across several seeds gives:
  - pairwise ARI between seed runs (mean ± SD)
  - a majority-vote consensus labeling after aligning every run to seed 0
"""

import logging
from itertools import combinations
from itertools import permutations as iperms
from typing import NamedTuple, Sequence

import numpy as np

from multiomics_fusion.agreement import adjusted_rand_index
from multiomics_fusion.clustering import spectral_clustering
from multiomics_fusion.config import N_INIT, N_SEEDS
from multiomics_fusion.errors import InputValidationError

log = logging.getLogger(__name__)


class StabilityResult(NamedTuple):
    mean_ari: float
    std_ari: float
    consensus: np.ndarray       # (n_samples,) labels in 1..k
    label_matrix: np.ndarray    # (n_samples, n_seeds)


def consensus_labels(label_matrix: np.ndarray) -> np.ndarray:
    """
    Majority-vote consensus across seed runs.
    label_matrix shape: (n_samples, n_seeds), labels in 1..k.

    Each run is relabelled by the permutation with the most exact matches to
    run 0 before voting; vote ties go to the lowest label.
    """
    label_matrix = np.asarray(label_matrix, dtype=int)
    if label_matrix.ndim != 2 or label_matrix.shape[1] < 1:
        raise InputValidationError("label_matrix must be (n_samples, n_seeds)")

    zero_based = label_matrix - 1
    n, n_seeds = zero_based.shape
    k = int(zero_based.max()) + 1
    ref = zero_based[:, 0]
    aligned = np.zeros_like(zero_based)
    aligned[:, 0] = ref

    for s in range(1, n_seeds):
        best_score, best_perm = -1, None
        for perm in iperms(range(k)):
            relabelled = np.array(perm)[zero_based[:, s]]
            score = int((relabelled == ref).sum())
            if score > best_score:
                best_score, best_perm = score, perm
        aligned[:, s] = np.array(best_perm)[zero_based[:, s]]

    consensus = np.array([np.bincount(aligned[i], minlength=k).argmax()
                          for i in range(n)])
    return consensus + 1


def pairwise_stability(label_matrix: np.ndarray) -> tuple:
    """Mean and SD of ARI over all pairs of seed runs."""
    label_matrix = np.asarray(label_matrix)
    if label_matrix.shape[1] < 2:
        return 1.0, 0.0
    aris = [adjusted_rand_index(label_matrix[:, s1], label_matrix[:, s2])
            for s1, s2 in combinations(range(label_matrix.shape[1]), 2)]
    return float(np.mean(aris)), float(np.std(aris))


def seed_stability(W: np.ndarray, k: int,
                   seeds: Sequence[int] = tuple(range(N_SEEDS)),
                   n_init: int = N_INIT) -> StabilityResult:
    """Run spectral partitioning once per seed and summarise agreement."""
    seeds = list(seeds)
    if not seeds:
        raise InputValidationError("need at least one seed")

    runs = [spectral_clustering(W, k, seed=seed, n_init=n_init).labels
            for seed in seeds]
    label_matrix = np.column_stack(runs)

    mean_ari, std_ari = pairwise_stability(label_matrix)
    consensus = consensus_labels(label_matrix)
    log.info(f"  Pairwise ARI across {len(seeds)} seeds: "
             f"mean={mean_ari:.4f}  SD={std_ari:.4f}")
    log.info(f"  Consensus cluster sizes: {np.bincount(consensus)[1:].tolist()}")
    return StabilityResult(mean_ari, std_ari, consensus, label_matrix)
