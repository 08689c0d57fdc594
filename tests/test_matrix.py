"""Tests for matrix validation and matrix/network alignment."""

import numpy as np
import pandas as pd
import pytest

from regactivity.core.errors import EmptyResultError, ValidationError
from regactivity.core.matrix import align_network, center_matrix, validate_matrix
from regactivity.core.network import filter_by_minsize, format_network


class TestValidateMatrix:
    """Tests for validate_matrix()."""

    def test_returns_float_copy_with_str_labels(self):
        """Integer labels and values come back as str labels and float64."""
        raw = pd.DataFrame([[1, 2], [3, 4]], index=[10, 11], columns=[0, 1])
        mat = validate_matrix(raw)
        assert mat.index.tolist() == ["10", "11"]
        assert mat.columns.tolist() == ["0", "1"]
        assert (mat.dtypes == np.float64).all()
        assert mat is not raw

    def test_series_is_single_condition(self, mat):
        """A Series becomes a one-column matrix."""
        validated = validate_matrix(mat["C1"])
        assert validated.shape == (50, 1)
        assert validated.columns.tolist() == ["C1"]

    def test_nan_raises_with_offending_features(self, mat):
        """NaN values are rejected and the affected features reported."""
        mat.loc["G03", "C2"] = np.nan
        with pytest.raises(ValidationError) as excinfo:
            validate_matrix(mat)
        assert excinfo.value.rule == "finite_values"
        assert excinfo.value.items == ["G03"]

    def test_inf_raises(self, mat):
        """Infinite values are rejected."""
        mat.iloc[0, 0] = np.inf
        with pytest.raises(ValidationError, match="infinite"):
            validate_matrix(mat)

    def test_duplicate_features_raise(self, mat):
        """Feature ids must be unique."""
        mat.index = ["G00"] * 2 + list(mat.index[2:])
        with pytest.raises(ValidationError) as excinfo:
            validate_matrix(mat)
        assert excinfo.value.rule == "unique_features"

    def test_duplicate_conditions_raise(self, mat):
        """Condition ids must be unique."""
        mat.columns = ["C1", "C1", "C3", "C4"]
        with pytest.raises(ValidationError) as excinfo:
            validate_matrix(mat)
        assert excinfo.value.rule == "unique_conditions"

    def test_non_numeric_column_raises(self, mat):
        """String columns are rejected."""
        mat["label"] = "x"
        with pytest.raises(ValidationError) as excinfo:
            validate_matrix(mat)
        assert excinfo.value.rule == "numeric"
        assert excinfo.value.items == ["label"]

    def test_empty_matrix_raises(self):
        """A matrix without rows is rejected."""
        with pytest.raises(ValidationError) as excinfo:
            validate_matrix(pd.DataFrame(columns=["C1"], dtype=float))
        assert excinfo.value.rule == "non_empty"

    def test_wrong_type_raises(self):
        """Arrays must be wrapped in a DataFrame."""
        with pytest.raises(ValidationError) as excinfo:
            validate_matrix(np.zeros((3, 2)))
        assert excinfo.value.rule == "matrix_type"


class TestCenterMatrix:
    """Tests for center_matrix()."""

    def test_rows_have_zero_mean(self):
        """Each row's mean is subtracted."""
        values = np.array([[1.0, 2.0, 3.0], [10.0, 10.0, 13.0]])
        centered = center_matrix(values)
        np.testing.assert_allclose(centered.mean(axis=1), 0.0, atol=1e-12)
        np.testing.assert_allclose(centered[0], [-1.0, 0.0, 1.0])

    def test_na_rm_ignores_missing(self):
        """With na_rm, NaN does not poison the row mean."""
        values = np.array([[1.0, np.nan, 3.0]])
        centered = center_matrix(values, na_rm=True)
        np.testing.assert_allclose(centered[0, [0, 2]], [-1.0, 1.0])


class TestAlignNetwork:
    """Tests for align_network()."""

    def test_restrict_keeps_targets_in_matrix_order(self, mat, net):
        """restrict=True keeps only matrix rows that are network targets."""
        aligned = align_network(mat, format_network(net))
        assert aligned.features.tolist() == [f"G{i:02d}" for i in range(20)]
        assert aligned.mat.shape == (20, 4)
        np.testing.assert_array_equal(aligned.mat, mat.iloc[:20].to_numpy())

    def test_unrestricted_keeps_all_features(self, mat, net):
        """restrict=False keeps every matrix row."""
        aligned = align_network(mat, format_network(net), restrict=False)
        assert aligned.n_features == 50
        assert aligned.weights.shape == (3, 50)

    def test_sources_sorted_regardless_of_edge_order(self, mat, net):
        """Source order does not depend on edge order."""
        shuffled = net.sample(frac=1.0, random_state=0)
        aligned = align_network(mat, format_network(shuffled))
        assert aligned.sources.tolist() == ["T1", "T2", "T3"]

    def test_weights_placed_on_feature_axis(self, mat, net):
        """Edge weights land at (source, target); missing edges are 0."""
        aligned = align_network(mat, format_network(net))
        t2 = aligned.weights[1]
        assert t2[10] == -1.0
        assert t2[11] == 1.0
        assert (t2[:10] == 0).all()
        assert (aligned.likelihood[aligned.weights != 0] == 1.0).all()
        np.testing.assert_array_equal(aligned.n_targets, [10, 10, 10])

    def test_arrays_are_read_only(self, mat, net):
        """Aligned arrays cannot be modified in place."""
        aligned = align_network(mat, format_network(net))
        with pytest.raises(ValueError):
            aligned.weights[0, 0] = 5.0
        with pytest.raises(ValueError):
            aligned.mat[0, 0] = 5.0

    def test_center(self, mat, net):
        """center=True row-centers the aligned matrix."""
        aligned = align_network(mat, format_network(net), center=True)
        np.testing.assert_allclose(aligned.mat.mean(axis=1), 0.0, atol=1e-12)

    def test_empty_sources_flagged(self, mat, net):
        """Sources kept by minsize=0 without overlap are flagged empty."""
        extra = pd.DataFrame({"source": ["T9"], "target": ["absent"], "weight": [1.0]})
        formatted = format_network(pd.concat([net, extra], ignore_index=True))
        filtered = filter_by_minsize(formatted, mat.index, minsize=0)
        aligned = align_network(mat, filtered)
        assert aligned.sources.tolist() == ["T1", "T2", "T3", "T9"]
        np.testing.assert_array_equal(aligned.empty_sources, [False, False, False, True])

    def test_no_overlap_raises(self, mat):
        """A network sharing no target with the matrix is an EmptyResultError."""
        net = format_network(pd.DataFrame({"source": ["T1"], "target": ["absent"]}))
        with pytest.raises(EmptyResultError):
            align_network(mat, net)
