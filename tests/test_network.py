"""Tests for network formatting and target-size filtering."""

import numpy as np
import pandas as pd
import pytest

from regactivity.core.errors import EmptyResultError, SchemaError
from regactivity.core.network import (
    NetworkColumns,
    count_targets,
    filter_by_minsize,
    format_network,
)


class TestFormatNetwork:
    """Tests for format_network()."""

    def test_renames_to_canonical_columns(self):
        """Custom column names are mapped to source/target/weight/likelihood."""
        raw = pd.DataFrame({
            "tf": ["T1", "T1", "T2"],
            "gene": ["G1", "G2", "G1"],
            "mor": [1.0, -1.0, 0.5],
            "conf": [0.9, 0.8, 1.0],
        })
        net = format_network(raw, NetworkColumns(source="tf", target="gene", weight="mor", likelihood="conf"))

        assert list(net.columns) == ["source", "target", "weight", "likelihood"]
        assert net["weight"].tolist() == [1.0, -1.0, 0.5]
        assert net["likelihood"].tolist() == [0.9, 0.8, 1.0]

    def test_missing_weight_and_likelihood_default_to_one(self, net):
        """Absent optional columns are filled with 1.0."""
        formatted = format_network(net.drop(columns="weight"))
        assert (formatted["weight"] == 1.0).all()
        assert (formatted["likelihood"] == 1.0).all()

    def test_none_weight_column_defaults_to_one(self, net):
        """weight=None ignores an existing weight column."""
        formatted = format_network(net, NetworkColumns(weight=None))
        assert (formatted["weight"] == 1.0).all()

    def test_idempotent_on_canonical_input(self, net):
        """Formatting a formatted network returns an equal table."""
        once = format_network(net)
        twice = format_network(once)
        pd.testing.assert_frame_equal(once, twice)

    def test_does_not_modify_input(self, net):
        """The raw table is left untouched."""
        before = net.copy()
        format_network(net)
        pd.testing.assert_frame_equal(net, before)

    def test_ids_cast_to_str(self):
        """Integer ids become strings so they match matrix labels."""
        raw = pd.DataFrame({"source": [1, 1], "target": [10, 11]})
        net = format_network(raw)
        assert net["source"].tolist() == ["1", "1"]
        assert net["target"].tolist() == ["10", "11"]

    def test_missing_source_column_raises(self, net):
        """A missing required column is a SchemaError naming the column."""
        with pytest.raises(SchemaError, match="tf"):
            format_network(net, NetworkColumns(source="tf"))

    def test_missing_target_ids_raise(self, net):
        """NaN target ids are rejected."""
        net.loc[0, "target"] = np.nan
        with pytest.raises(SchemaError, match="missing"):
            format_network(net)

    def test_non_numeric_weight_raises(self, net):
        """Weights must be numeric."""
        net["weight"] = net["weight"].astype(object)
        net.loc[0, "weight"] = "strong"
        with pytest.raises(SchemaError, match="non-numeric"):
            format_network(net)

    def test_infinite_weight_raises(self, net):
        """Infinite weights are rejected."""
        net.loc[0, "weight"] = np.inf
        with pytest.raises(SchemaError, match="infinite"):
            format_network(net)

    def test_negative_likelihood_raises(self, net):
        """Likelihoods must be non-negative."""
        net["likelihood"] = 1.0
        net.loc[3, "likelihood"] = -0.5
        with pytest.raises(SchemaError, match="negative"):
            format_network(net)

    def test_identical_duplicates_dropped(self, net):
        """Exact duplicate edges collapse to one row."""
        doubled = pd.concat([net, net.iloc[:3]], ignore_index=True)
        formatted = format_network(doubled)
        assert len(formatted) == len(net)
        assert formatted.index.equals(pd.RangeIndex(len(net)))

    def test_conflicting_duplicates_raise(self, net):
        """The same edge with two different weights is a SchemaError."""
        conflict = net.iloc[[0]].assign(weight=-1.0)
        with pytest.raises(SchemaError, match="Conflicting"):
            format_network(pd.concat([net, conflict], ignore_index=True))

    def test_non_dataframe_raises(self):
        """Only DataFrames are accepted."""
        with pytest.raises(SchemaError):
            format_network([("T1", "G1")])

    def test_schema_error_is_value_error(self, net):
        """SchemaError can be caught as ValueError."""
        with pytest.raises(ValueError):
            format_network(net, NetworkColumns(target="gene"))


class TestFilterByMinsize:
    """Tests for filter_by_minsize() and count_targets()."""

    def test_count_targets_only_counts_present_features(self, net):
        """Targets missing from the feature list are not counted."""
        features = [f"G{i:02d}" for i in range(5)] + ["G12"]
        counts = count_targets(format_network(net), features)
        assert counts["T1"] == 5
        assert counts["T2"] == 1
        assert counts["T3"] == 0

    @pytest.mark.parametrize("minsize", [1, 5, 10])
    def test_survivors_meet_threshold(self, net, mat, minsize):
        """Every surviving source has at least minsize overlapping targets."""
        filtered = filter_by_minsize(format_network(net), mat.index, minsize)
        counts = count_targets(filtered, mat.index)
        assert (counts >= minsize).all()

    def test_drops_small_sources(self, net, mat):
        """Sources under the threshold are removed with all their edges."""
        formatted = format_network(net)
        features = mat.index[:8]  # T1: 8 targets, T3: 3 targets, T2: 0
        filtered = filter_by_minsize(formatted, features, minsize=5)
        assert set(filtered["source"]) == {"T1"}
        assert len(filtered) == 10

    def test_minsize_zero_keeps_every_source(self, net):
        """minsize=0 leaves the source set unchanged, even without overlap."""
        formatted = format_network(net)
        filtered = filter_by_minsize(formatted, ["unrelated"], minsize=0)
        pd.testing.assert_frame_equal(filtered, formatted)

    def test_no_survivor_raises(self, net, mat):
        """Raising the threshold above every source is an EmptyResultError."""
        with pytest.raises(EmptyResultError):
            filter_by_minsize(format_network(net), mat.index, minsize=11)

    @pytest.mark.parametrize("minsize", [-1, 2.5, True, "5"])
    def test_invalid_minsize_raises(self, net, mat, minsize):
        """minsize must be a non-negative integer."""
        with pytest.raises(ValueError, match="minsize"):
            filter_by_minsize(format_network(net), mat.index, minsize)
