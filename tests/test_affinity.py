import numpy as np
import pytest

from multiomics_fusion.affinity import (affinity_matrix, build_affinities,
                                        pairwise_distances)
from multiomics_fusion.errors import InputValidationError


def test_affinity_is_symmetric_bounded_with_unit_diagonal(planted_modalities):
    W = affinity_matrix(planted_modalities["mRNA"], K=10)
    assert W.shape == (45, 45)
    np.testing.assert_array_equal(W, W.T)
    np.testing.assert_array_equal(np.diag(W), np.ones(45))
    assert (W > 0).all() and (W <= 1.0).all()


def test_affinity_accepts_plain_arrays(planted_frames):
    data = planted_frames["miRNA"].to_numpy()
    W = affinity_matrix(data, K=5, mu=0.8)
    assert W.shape == (45, 45)


def test_identical_samples_have_similarity_one():
    data = np.array([[0.0, 1.0], [0.0, 1.0], [3.0, -2.0], [1.0, 1.5]])
    W = affinity_matrix(data, K=2)
    assert W[0, 1] == 1.0
    assert W[1, 0] == 1.0
    assert np.isfinite(W).all()


def test_affinity_reflects_planted_groups(planted_modalities, planted_truth):
    W = affinity_matrix(planted_modalities["protein"], K=10)
    same = planted_truth[:, None] == planted_truth[None, :]
    off_diag = ~np.eye(len(planted_truth), dtype=bool)
    assert W[same & off_diag].mean() > 10 * W[~same].mean()


def test_neighbourhood_is_clipped_to_sample_count():
    data = np.random.default_rng(0).normal(size=(4, 3))
    W = affinity_matrix(data, K=20)
    assert W.shape == (4, 4)
    assert np.isfinite(W).all()


def test_cosine_metric(planted_modalities):
    W = affinity_matrix(planted_modalities["mRNA"], K=10, metric="cosine")
    np.testing.assert_allclose(W, W.T)
    np.testing.assert_allclose(np.diag(W), 1.0)


def test_pairwise_distances_zero_diagonal():
    data = np.random.default_rng(3).normal(size=(6, 4))
    D = pairwise_distances(data)
    np.testing.assert_array_equal(np.diag(D), np.zeros(6))
    assert D[0, 1] == pytest.approx(np.linalg.norm(data[0] - data[1]))


@pytest.mark.parametrize("data, kwargs", [
    (np.array([[0.0, np.nan], [1.0, 2.0]]), {}),
    (np.array([[0.0, np.inf], [1.0, 2.0]]), {}),
    (np.zeros(5), {}),
    (np.zeros((1, 3)), {}),
    (np.zeros((3, 2)), {"K": 0}),
    (np.zeros((3, 2)), {"mu": 0.0}),
    (np.zeros((3, 2)), {"metric": "manhattan"}),
])
def test_affinity_rejects_malformed_input(data, kwargs):
    with pytest.raises(InputValidationError):
        affinity_matrix(data, **kwargs)


def test_build_affinities_keeps_modality_order(planted_modalities):
    affinities = build_affinities(planted_modalities, K=10)
    assert list(affinities) == ["mRNA", "miRNA", "protein"]
