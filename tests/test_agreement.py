import numpy as np
import pytest

from multiomics_fusion.agreement import (AgreementScore, adjusted_rand_index,
                                         normalized_mutual_info, rand_index,
                                         score_agreement)
from multiomics_fusion.errors import InputValidationError


def test_identical_toy_labelings():
    score = score_agreement([1, 1, 2, 2], [1, 1, 2, 2])
    assert score.rand == 1.0
    assert score.ari == 1.0
    assert score.nmi == 1.0


def test_relabelled_toy_labelings_agree_perfectly():
    score = score_agreement([1, 1, 2, 2], [2, 2, 1, 1])
    assert score.rand == 1.0
    assert score.ari == 1.0
    assert score.nmi == 1.0


def test_crossed_toy_labelings():
    # n11 = 0, n00 = 2 of 6 pairs
    x, y = [1, 1, 2, 2], [1, 2, 1, 2]
    assert rand_index(x, y) == pytest.approx(1.0 / 3.0)
    assert adjusted_rand_index(x, y) == pytest.approx(-0.5)
    assert normalized_mutual_info(x, y) == pytest.approx(0.0, abs=1e-12)


def test_self_agreement_on_larger_labeling():
    labels = np.random.default_rng(5).integers(1, 5, size=200)
    score = score_agreement(labels, labels)
    assert score.rand == 1.0
    assert score.ari == 1.0
    assert score.nmi == 1.0


def test_string_reference_labels():
    score = score_agreement([3, 3, 1, 1, 2], ["LumA", "LumA", "Basal", "Basal", "Her2"])
    assert score == AgreementScore(1.0, 1.0, 1.0)


def test_single_cluster_nmi_is_zero():
    assert normalized_mutual_info([1, 1, 1, 1], [1, 1, 2, 2]) == 0.0
    assert normalized_mutual_info([1, 2, 1, 2], [5, 5, 5, 5]) == 0.0
    assert normalized_mutual_info([1, 1, 1], [1, 1, 1]) == 0.0


def test_ari_is_zero_in_expectation_for_random_labelings():
    rng = np.random.default_rng(2024)
    base = np.repeat([1, 2, 3], [20, 25, 15])
    aris = [adjusted_rand_index(rng.permutation(base), rng.permutation(base))
            for _ in range(500)]
    assert abs(np.mean(aris)) < 0.01


def test_metric_ranges():
    rng = np.random.default_rng(9)
    for _ in range(20):
        x = rng.integers(1, 4, size=30)
        y = rng.integers(1, 5, size=30)
        score = score_agreement(x, y)
        assert 0.0 <= score.rand <= 1.0
        assert -1.0 <= score.ari <= 1.0
        assert 0.0 <= score.nmi <= 1.0


@pytest.mark.parametrize("x, y", [
    ([1, 2, 3], [1, 2]),
    ([[1, 2], [1, 2]], [[1, 2], [1, 2]]),
    ([1], [1]),
])
def test_rejects_malformed_label_vectors(x, y):
    with pytest.raises(InputValidationError):
        score_agreement(x, y)
