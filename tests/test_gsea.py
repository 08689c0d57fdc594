"""Tests for rank-based running-sum enrichment."""

import numpy as np
import pandas as pd
import pytest

from regactivity.stats.methods.gsea import enrichment_scores, normalize_enrichment, run_gsea
from regactivity.stats.results import pivot_scores


class TestEnrichmentScores:
    """Tests for enrichment_scores()."""

    def test_top_targets_positive(self):
        """Targets at the top of the ranking give a positive ES near 1."""
        values = np.arange(10, 0, -1, dtype=float)
        weights = np.zeros((1, 10))
        weights[0, :3] = 1.0
        es = enrichment_scores(values, weights)
        assert es[0] == pytest.approx(1.0)

    def test_bottom_targets_negative(self):
        values = np.arange(10, 0, -1, dtype=float)
        weights = np.zeros((1, 10))
        weights[0, -3:] = 1.0
        es = enrichment_scores(values, weights)
        assert es[0] == pytest.approx(-1.0)

    def test_repressed_targets_flip_sign(self):
        """Low values of negatively weighted targets count as activation."""
        values = np.arange(10, 0, -1, dtype=float) - 5.5
        weights = np.zeros((1, 10))
        weights[0, -3:] = -1.0
        assert enrichment_scores(values, weights)[0] > 0.5
        assert enrichment_scores(values, -weights)[0] == pytest.approx(-1.0)

    def test_ties_ordered_by_position(self):
        """Equal values keep their (feature id) order."""
        values = np.ones(4)
        first = np.array([[1.0, 1.0, 0.0, 0.0]])
        last = np.array([[0.0, 0.0, 1.0, 1.0]])
        assert enrichment_scores(values, first)[0] == pytest.approx(1.0)
        assert enrichment_scores(values, last)[0] == pytest.approx(-1.0)

    def test_degenerate_sources_are_nan(self):
        """No hits, no misses, or zero increments give NaN."""
        values = np.array([3.0, 2.0, 1.0])
        weights = np.array([
            [0.0, 0.0, 0.0],
            [1.0, 1.0, 1.0],
        ])
        assert np.isnan(enrichment_scores(values, weights)).all()
        zeros = enrichment_scores(np.zeros(3), np.array([[1.0, 0.0, 0.0]]))
        assert np.isnan(zeros).all()

    def test_unweighted_walk(self):
        """exponent=0 ignores value magnitudes."""
        values = np.array([100.0, 1.0, 0.5, 0.1])
        weights = np.array([[1.0, 1.0, 0.0, 0.0]])
        assert enrichment_scores(values, weights, exponent=0.0)[0] == pytest.approx(1.0)


class TestNormalizeEnrichment:
    """Tests for normalize_enrichment()."""

    def test_divides_by_same_sign_null_mean(self):
        null = np.array([0.25, 0.75, -0.5]).reshape(3, 1, 1)
        assert normalize_enrichment(np.array([[0.5]]), null)[0, 0] == pytest.approx(1.0)
        assert normalize_enrichment(np.array([[-1.0]]), null)[0, 0] == pytest.approx(-2.0)

    def test_no_same_sign_null_is_nan(self):
        null = np.array([0.25, 0.75]).reshape(2, 1, 1)
        assert np.isnan(normalize_enrichment(np.array([[-0.5]]), null)[0, 0])


class TestRunGSEA:
    """Tests for run_gsea()."""

    def test_statistics(self, mat, net):
        res = run_gsea(mat, net, times=20)
        assert res["statistic"].unique().tolist() == ["gsea", "norm_gsea"]
        assert len(res) == 2 * 3 * 4

    def test_upregulated_targets_enriched(self, mat, net):
        """Raising T1's targets in C1 gives a strong positive enrichment."""
        mat.loc[[f"G{i:02d}" for i in range(10)], "C1"] += 5.0
        res = run_gsea(mat, net, times=50)
        es = pivot_scores(res, "gsea")
        nes = pivot_scores(res, "norm_gsea")
        pvals = pivot_scores(res, "gsea", value="p_value")
        assert es.loc["T1", "C1"] > 0.8
        assert nes.loc["T1", "C1"] > 1.0
        assert pvals.loc["T1", "C1"] == pytest.approx(1 / 51)

    def test_uses_all_features_as_universe(self, mat, net):
        """Non-target matrix rows take part in the ranking."""
        full = run_gsea(mat, net, times=10)
        trimmed = run_gsea(mat.iloc[:25], net, times=10)
        assert not np.allclose(
            full.loc[full["statistic"] == "gsea", "score"],
            trimmed.loc[trimmed["statistic"] == "gsea", "score"],
        )

    def test_reproducible_and_thread_independent(self, mat, net):
        a = run_gsea(mat, net, times=30, seed=5)
        b = run_gsea(mat, net, times=30, seed=5, n_workers=3)
        pd.testing.assert_frame_equal(a, b)

    def test_row_order_does_not_matter(self, mat, net):
        """Shuffling matrix rows leaves scores unchanged."""
        a = run_gsea(mat, net, times=20, seed=5)
        b = run_gsea(mat.sample(frac=1.0, random_state=1), net, times=20, seed=5)
        pd.testing.assert_frame_equal(a, b)
