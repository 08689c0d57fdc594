"""
Over-Representation Analysis (ORA).

For each condition the ``n_up`` highest and ``n_bottom`` lowest features
form the selected set. Each source's targets are tested for enrichment in
that set with a one-sided Fisher exact test on

                    selected    not selected
    target              a             b
    not target          c             d        (d from the background size)

The upper-tail Fisher p-value equals the hypergeometric survival function
P(X >= a), which is evaluated for all sources at once. The activity is
``-log10(p)``. Edge signs are ignored.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from regactivity.core.matrix import AlignedData
from regactivity.stats.methods._base import _BaseMethod, mask_empty_sources
from regactivity.stats.results import MethodName, assemble_results

logger = logging.getLogger(__name__)


def select_features(values: np.ndarray, n_up: int, n_bottom: int) -> np.ndarray:
    """Boolean mask of the top ``n_up`` and bottom ``n_bottom`` features (ties by position)."""
    order = np.argsort(-values, kind='stable')
    selected = np.zeros(len(values), dtype=bool)
    selected[order[:n_up]] = True
    if n_bottom > 0:
        selected[order[len(order) - n_bottom:]] = True
    return selected


def ora_pvalues(targets: np.ndarray, selected: np.ndarray, n_background: int) -> np.ndarray:
    """
    One-sided Fisher exact p-values for every source.

    Args:
        targets: (n_sources, n_features) target membership
        selected: (n_features,) selected-set membership
        n_background: Total number of features in the background

    Returns:
        (n_sources,) p-values
    """
    a = (targets & selected[np.newaxis, :]).sum(axis=1)
    n_targets = targets.sum(axis=1)
    n_selected = int(selected.sum())
    return scipy_stats.hypergeom.sf(a - 1, n_background, n_targets, n_selected)


class ORAMethod(_BaseMethod):
    """
    Over-representation activity inference.

    Attributes:
        n_up: Number of top features per condition (default: 5% of features)
        n_bottom: Number of bottom features per condition
        n_background: Background size, raised to the number of matrix features
            when None or smaller
    """

    restrict = False

    def __init__(
        self,
        n_up: Optional[int] = None,
        n_bottom: int = 0,
        n_background: Optional[int] = 20000,
    ) -> None:
        if n_up is not None and n_up < 0:
            raise ValueError(f"n_up must be >= 0, got {n_up}")
        if n_bottom < 0:
            raise ValueError(f"n_bottom must be >= 0, got {n_bottom}")
        self.n_up = n_up
        self.n_bottom = n_bottom
        self.n_background = n_background

    @property
    def name(self) -> MethodName:
        return MethodName.ORA

    def score(self, aligned: AlignedData) -> pd.DataFrame:
        n_features = aligned.n_features
        n_up = self.n_up if self.n_up is not None else math.ceil(0.05 * n_features)
        n_up = min(n_up, n_features)
        n_bottom = min(self.n_bottom, n_features - n_up)
        n_background = self.n_background if self.n_background is not None else n_features
        if n_background < n_features:
            logger.warning(
                f"ora: n_background ({n_background}) is smaller than the number of features "
                f"({n_features}); using {n_features} as background"
            )
            n_background = n_features

        by_id = np.argsort(aligned.features.to_numpy(dtype=str), kind='stable')
        mat = aligned.mat[by_id]
        targets = aligned.weights[:, by_id] != 0

        pvals = np.column_stack([
            ora_pvalues(targets, select_features(mat[:, c], n_up, n_bottom), n_background)
            for c in range(aligned.n_conditions)
        ])
        pvals = np.clip(pvals, np.finfo(np.float64).tiny, 1.0)
        scores = -np.log10(pvals)
        mask_empty_sources(aligned, scores, pvals)

        return assemble_results(self.name.value, scores, pvals, aligned.sources, aligned.conditions)


def run_ora(
    mat: pd.DataFrame | pd.Series,
    network: pd.DataFrame,
    source: str = 'source',
    target: str = 'target',
    weight: Optional[str] = 'weight',
    likelihood: Optional[str] = 'likelihood',
    n_up: Optional[int] = None,
    n_bottom: int = 0,
    n_background: Optional[int] = 20000,
    minsize: int = 5,
) -> pd.DataFrame:
    """
    Over-Representation Analysis (ORA).

    Args:
        mat: Features x conditions matrix
        network: Regulatory network table
        source, target, weight, likelihood: Network column names
        n_up: Top features per condition (default: ceil(5% of features))
        n_bottom: Bottom features per condition
        n_background: Background size; None uses the number of matrix features
            (also used when smaller than the number of matrix features)
        minsize: Minimum number of targets per source

    Returns:
        Long table with statistic ``ora`` (score = -log10 p)
    """
    method = ORAMethod(n_up=n_up, n_bottom=n_bottom, n_background=n_background)
    return method.run(mat, network, source, target, weight, likelihood, minsize)


__all__ = ["ORAMethod", "run_ora", "ora_pvalues", "select_features"]
