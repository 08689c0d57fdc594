"""
Univariate Linear Model (ULM).

For every source and condition, the condition's measurements are regressed
on the source's weights (targets without an edge weigh 0). The activity is
the t-value of the slope, obtained from the Pearson correlation:

    t = r * sqrt(df / ((1 - r + eps) * (1 + r + eps))),   df = n_features - 2

with eps = 1e-20 keeping |r| = 1 finite. Two-sided p-values come from
Student's t with ``df`` degrees of freedom.

Degenerate cells (df <= 0, constant weights or constant measurements) are
reported as NaN instead of raising.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from regactivity.core.matrix import AlignedData
from regactivity.stats.methods._base import _BaseMethod, mask_empty_sources
from regactivity.stats.results import MethodName, assemble_results

EPS = 1.0e-20


def correlate_rows(weights: np.ndarray, mat: np.ndarray) -> np.ndarray:
    """
    Pearson correlation of each weight row with each matrix column.

    Args:
        weights: (n_sources, n_features)
        mat: (n_features, n_conditions)

    Returns:
        (n_sources, n_conditions) correlations, NaN where either side is constant
    """
    w = weights - weights.mean(axis=1, keepdims=True)
    x = mat - mat.mean(axis=0, keepdims=True)
    w_norm = np.sqrt((w ** 2).sum(axis=1))
    x_norm = np.sqrt((x ** 2).sum(axis=0))
    denom = np.outer(w_norm, x_norm)
    with np.errstate(divide='ignore', invalid='ignore'):
        r = (w @ x) / denom
    r[denom == 0] = np.nan
    return np.clip(r, -1.0, 1.0)


def ulm_tvalues(r: np.ndarray, df: int) -> tuple[np.ndarray, np.ndarray]:
    """Convert correlations to t-values and two-sided p-values."""
    if df <= 0:
        nan = np.full_like(r, np.nan)
        return nan, nan.copy()
    t = r * np.sqrt(df / ((1.0 - r + EPS) * (1.0 + r + EPS)))
    p = 2.0 * scipy_stats.t.sf(np.abs(t), df)
    return t, p


class ULMMethod(_BaseMethod):
    """
    Univariate linear model activity inference.

    Attributes:
        center: Row-center the matrix before fitting
        na_rm: Ignore missing values when computing row means
    """

    def __init__(self, center: bool = False, na_rm: bool = False) -> None:
        self.center = center
        self.na_rm = na_rm

    @property
    def name(self) -> MethodName:
        return MethodName.ULM

    def _preprocessing(self) -> dict[str, bool]:
        return {'center': self.center, 'na_rm': self.na_rm}

    def score(self, aligned: AlignedData) -> pd.DataFrame:
        df = aligned.n_features - 2
        r = correlate_rows(aligned.weights, aligned.mat)
        scores, pvals = ulm_tvalues(r, df)
        mask_empty_sources(aligned, scores, pvals)
        return assemble_results(
            self.name.value, scores, pvals, aligned.sources, aligned.conditions,
        )


def run_ulm(
    mat: pd.DataFrame | pd.Series,
    network: pd.DataFrame,
    source: str = 'source',
    target: str = 'target',
    weight: Optional[str] = 'weight',
    likelihood: Optional[str] = 'likelihood',
    center: bool = False,
    na_rm: bool = False,
    minsize: int = 5,
) -> pd.DataFrame:
    """
    Univariate Linear Model (ULM).

    Fits ``condition values ~ source weights`` for every source and condition
    and reports the slope's t-value as the activity.

    Args:
        mat: Features x conditions matrix
        network: Regulatory network table
        source, target, weight, likelihood: Network column names
        center: Row-center ``mat`` before fitting
        na_rm: Ignore missing values when computing row means
        minsize: Minimum number of targets per source

    Returns:
        Long table with statistic ``ulm``

    Example:
        >>> res = run_ulm(mat, net, minsize=0)
        >>> res.columns.tolist()
        ['statistic', 'source', 'condition', 'score', 'p_value']
    """
    return ULMMethod(center=center, na_rm=na_rm).run(
        mat, network, source, target, weight, likelihood, minsize,
    )


__all__ = ["ULMMethod", "run_ulm", "correlate_rows", "ulm_tvalues"]
