"""
Shared fixtures: seeded synthetic multi-omics data with planted groups.
"""

import numpy as np
import pandas as pd
import pytest

from multiomics_fusion.matrices import FeatureMatrix, ReferenceLabels

N_PER_GROUP = 15
N_GROUPS = 3


def make_planted_frame(n_features: int, seed: int,
                       n_per_group: int = N_PER_GROUP,
                       n_groups: int = N_GROUPS,
                       separation: float = 3.0) -> pd.DataFrame:
    """
    Samples × features frame with n_groups well separated clusters,
    z-scored per feature.
    """
    rng = np.random.default_rng(seed)
    centers = rng.normal(0.0, separation, size=(n_groups, n_features))
    data = np.vstack([
        centers[g] + rng.normal(0.0, 1.0, size=(n_per_group, n_features))
        for g in range(n_groups)
    ])
    data = (data - data.mean(axis=0)) / data.std(axis=0)
    ids = [f"S{i:03d}" for i in range(n_groups * n_per_group)]
    return pd.DataFrame(data, index=ids,
                        columns=[f"f{j}" for j in range(n_features)])


def block_similarity(sizes, within: float = 1.0,
                     between: float = 0.0) -> np.ndarray:
    """Block-diagonal similarity matrix with unit diagonal."""
    n = sum(sizes)
    W = np.full((n, n), between, dtype=float)
    start = 0
    for size in sizes:
        W[start:start + size, start:start + size] = within
        start += size
    np.fill_diagonal(W, 1.0)
    return W


@pytest.fixture
def planted_frames():
    return {
        "mRNA":    make_planted_frame(30, seed=1),
        "miRNA":   make_planted_frame(20, seed=2),
        "protein": make_planted_frame(12, seed=3),
    }


@pytest.fixture
def planted_modalities(planted_frames):
    return {name: FeatureMatrix.from_frame(name, df)
            for name, df in planted_frames.items()}


@pytest.fixture
def planted_truth():
    return np.repeat(np.arange(1, N_GROUPS + 1), N_PER_GROUP)


@pytest.fixture
def planted_reference(planted_truth):
    ids = [f"S{i:03d}" for i in range(len(planted_truth))]
    subtypes = np.array(["Basal", "Her2", "LumA"])[planted_truth - 1]
    return ReferenceLabels.from_series(pd.Series(subtypes, index=ids))


@pytest.fixture
def random_similarities():
    """Three random symmetric non-negative 12 × 12 similarity matrices."""
    rng = np.random.default_rng(7)
    mats = []
    for _ in range(3):
        A = rng.random((12, 12))
        W = (A + A.T) / 2.0
        np.fill_diagonal(W, 1.0)
        mats.append(W)
    return mats
