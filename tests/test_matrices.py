import numpy as np
import pandas as pd
import pytest

from multiomics_fusion.errors import InputValidationError
from multiomics_fusion.matrices import (FeatureMatrix, ReferenceLabels,
                                        align_modalities, check_alignment,
                                        validate_k, validate_similarity)


def test_feature_matrix_is_read_only_copy():
    data = np.arange(6, dtype=float).reshape(3, 2)
    fm = FeatureMatrix("mRNA", ("a", "b", "c"), data)

    data[0, 0] = 99.0
    assert fm.values[0, 0] == 0.0
    assert not fm.values.flags.writeable
    with pytest.raises(ValueError):
        fm.values[0, 0] = 1.0


@pytest.mark.parametrize("values, ids", [
    (np.array([[1.0, np.nan], [0.0, 1.0]]), ("a", "b")),
    (np.array([[1.0, np.inf], [0.0, 1.0]]), ("a", "b")),
    (np.zeros((2, 2)), ("a", "a")),
    (np.zeros((3, 2)), ("a", "b")),
    (np.zeros((1, 4)), ("a",)),
    (np.zeros(4), ("a", "b", "c", "d")),
])
def test_feature_matrix_rejects_malformed_input(values, ids):
    with pytest.raises(InputValidationError):
        FeatureMatrix("bad", ids, values)


def test_feature_matrix_frame_round_trip(planted_frames):
    df = planted_frames["mRNA"]
    fm = FeatureMatrix.from_frame("mRNA", df)
    assert fm.shape == df.shape
    assert fm.sample_ids == tuple(df.index)
    pd.testing.assert_frame_equal(fm.to_frame(), df)


def test_reference_labels_from_series_encodes_sorted_categories():
    s = pd.Series(["LumA", "Basal", "LumA", "Her2"], index=["a", "b", "c", "d"])
    ref = ReferenceLabels.from_series(s)
    assert ref.categories == ("Basal", "Her2", "LumA")
    assert ref.labels.tolist() == [3, 1, 3, 2]
    assert ref.to_series().tolist() == s.tolist()


def test_reference_labels_reject_missing():
    s = pd.Series(["LumA", None], index=["a", "b"])
    with pytest.raises(InputValidationError):
        ReferenceLabels.from_series(s)


def test_validate_similarity_checks():
    W = np.array([[1.0, 0.5], [0.5, 1.0]])
    assert validate_similarity(W) is not None

    with pytest.raises(InputValidationError):
        validate_similarity(np.ones((2, 3)))
    with pytest.raises(InputValidationError):
        validate_similarity(np.array([[1.0, 0.2], [0.5, 1.0]]))
    with pytest.raises(InputValidationError):
        validate_similarity(np.array([[1.0, -0.5], [-0.5, 1.0]]))
    with pytest.raises(InputValidationError):
        validate_similarity(np.array([[1.0, np.nan], [np.nan, 1.0]]))


@pytest.mark.parametrize("k", [0, -1, 5, 6])
def test_validate_k_rejects_out_of_range(k):
    with pytest.raises(InputValidationError):
        validate_k(k, 5)


def test_check_alignment_detects_order_mismatch(planted_modalities,
                                                planted_reference):
    ids = check_alignment(planted_modalities, planted_reference)
    assert len(ids) == 45

    mrna = planted_modalities["mRNA"]
    shuffled = FeatureMatrix("mRNA", mrna.sample_ids[::-1], mrna.values[::-1])
    with pytest.raises(InputValidationError):
        check_alignment({"mRNA": shuffled,
                         "miRNA": planted_modalities["miRNA"]})


def test_check_alignment_detects_reference_mismatch(planted_modalities):
    ids = planted_modalities["mRNA"].sample_ids
    ref = ReferenceLabels(ids[:-1], np.ones(len(ids) - 1, dtype=int))
    with pytest.raises(InputValidationError):
        check_alignment(planted_modalities, ref)


def test_align_modalities_keeps_common_labelled_samples(planted_frames):
    frames = dict(planted_frames)
    frames["miRNA"] = frames["miRNA"].drop(index="S000").iloc[::-1]
    labels = pd.Series("LumA", index=planted_frames["mRNA"].index)
    labels.loc["S001"] = None

    modalities, ref = align_modalities(frames, labels)

    ids = modalities["mRNA"].sample_ids
    assert "S000" not in ids and "S001" not in ids
    assert len(ids) == 43
    assert ids[0] == "S002"
    assert all(fm.sample_ids == ids for fm in modalities.values())
    assert ref.sample_ids == ids
    np.testing.assert_array_equal(
        modalities["miRNA"].values,
        planted_frames["miRNA"].loc[list(ids)].to_numpy())
