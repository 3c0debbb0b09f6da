import numpy as np
import pandas as pd
import pytest

from multiomics_fusion.config import FusionConfig
from multiomics_fusion.errors import InputValidationError
from multiomics_fusion.io import (load_checkpoint, load_feature_table,
                                  load_modalities, write_assignments, write_cohort,
                                  write_metrics_table)
from multiomics_fusion.matrices import ReferenceLabels
from multiomics_fusion.pipeline import compare_methods, sensitivity_sweep

CONFIG = FusionConfig(k_neighbours=10, t_iterations=10, n_clusters=3)


def test_compare_methods_table_layout(planted_modalities, planted_reference):
    result = compare_methods(planted_modalities, planted_reference, CONFIG)

    assert list(result.table.index) == [
        ("snf", "pam"), ("snf", "spectral"),
        ("average", "pam"), ("average", "spectral"),
    ]
    assert {"rand", "ari", "nmi"} <= set(result.table.columns)
    assert set(result.assignments) == set(result.table.index)
    assert set(result.graphs) == {"snf", "average"}


def test_compare_methods_recovers_planted_subtypes(planted_modalities,
                                                   planted_reference):
    result = compare_methods(planted_modalities, planted_reference, CONFIG)
    assert (result.table["ari"] > 0.9).all()
    assert (result.table["nmi"] > 0.9).all()
    for assignment in result.assignments.values():
        assert assignment.cluster_sizes == [15, 15, 15]


def test_compare_methods_single_modality_baselines(planted_modalities,
                                                   planted_reference):
    result = compare_methods(planted_modalities, planted_reference, CONFIG,
                             integrations=("snf",), clusterers=("pam",),
                             include_single=True)
    assert list(result.table.index.get_level_values("integration")) == [
        "snf", "mRNA (single)", "miRNA (single)", "protein (single)",
    ]


def test_compare_methods_rejects_misaligned_reference(planted_modalities,
                                                      planted_reference):
    reversed_ref = ReferenceLabels(planted_reference.sample_ids[::-1],
                                   planted_reference.labels[::-1])
    with pytest.raises(InputValidationError):
        compare_methods(planted_modalities, reversed_ref, CONFIG)


def test_compare_methods_rejects_k_not_below_n(planted_modalities,
                                               planted_reference):
    with pytest.raises(InputValidationError):
        compare_methods(planted_modalities, planted_reference,
                        CONFIG.replace(n_clusters=45))


def test_fusion_config_validation():
    with pytest.raises(InputValidationError):
        FusionConfig(k_neighbours=0)
    with pytest.raises(InputValidationError):
        FusionConfig(metric="manhattan")
    with pytest.raises(InputValidationError):
        CONFIG.replace(mu=-1.0)
    assert CONFIG.replace(seed=3).seed == 3


def test_sensitivity_sweep_one_at_a_time(planted_modalities, planted_reference):
    sweep = sensitivity_sweep(planted_modalities, planted_reference, CONFIG,
                              k_values=(5, 10), t_values=(5,),
                              metrics=("euclidean", "cosine"))
    assert sweep["parameter"].tolist() == [
        "k_neighbours", "k_neighbours", "t_iterations", "metric", "metric",
    ]
    assert sweep["reference"].tolist() == [False, True, False, True, False]
    assert (sweep["ari"] > 0.9).all()


def test_file_boundary_round_trip(tmp_path, planted_frames, planted_reference):
    paths = {}
    for name, df in planted_frames.items():
        path = tmp_path / f"{name.lower()}_preprocessed.tsv"
        df.T.to_csv(path, sep="\t")      # stored features × samples
        paths[name] = path
    ref_path = tmp_path / "clinical.csv"
    clinical = planted_reference.to_series().rename("subtype").to_frame()
    clinical.loc["S099"] = "LumB"        # not present in any modality
    clinical.to_csv(ref_path)

    modalities, reference = load_modalities(paths, ref_path, "subtype")
    assert reference.sample_ids == planted_reference.sample_ids
    np.testing.assert_allclose(modalities["mRNA"].values,
                               planted_frames["mRNA"].to_numpy())

    result = compare_methods(modalities, reference, CONFIG,
                             integrations=("average",), clusterers=("pam",))
    table_path = write_metrics_table(result.table, tmp_path / "out" / "metrics.tsv")
    table = pd.read_csv(table_path, sep="\t", index_col=[0, 1])
    assert table.loc[("average", "pam"), "ari"] == pytest.approx(
        result.table.loc[("average", "pam"), "ari"], abs=1e-4)

    asg_path = write_assignments(result.assignments, reference.sample_ids,
                                 tmp_path / "out" / "assignments.tsv")
    assignments = pd.read_csv(asg_path, sep="\t", index_col=0)
    assert list(assignments.columns) == ["average|pam"]
    assert assignments.shape == (45, 1)


def test_load_feature_table_rejects_non_numeric_cells(tmp_path):
    path = tmp_path / "mrna.csv"
    pd.DataFrame({"S1": ["1.0", "x"], "S2": ["2.0", "3.0"]},
                 index=["g1", "g2"]).to_csv(path)
    with pytest.raises(InputValidationError, match="non-numeric"):
        load_feature_table(path)


def test_write_cohort_reports_changed_samples(tmp_path):
    path = tmp_path / "cohort.txt"
    assert write_cohort(["S1", "S2", "S3"], path)
    assert not write_cohort(["S1", "S2", "S3"], path)
    # same size, different members
    assert write_cohort(["S1", "S2", "S4"], path)
    assert path.read_text().split() == ["S1", "S2", "S4"]


def test_load_checkpoint_rejects_other_cohort_size(tmp_path):
    path = tmp_path / "affinity.npy"
    assert load_checkpoint(path, 3) is None
    np.save(path, np.eye(4))
    assert load_checkpoint(path, 3) is None
    np.testing.assert_array_equal(load_checkpoint(path, 4), np.eye(4))
