"""
Multivariate Linear Model (MLM).

One ordinary least squares fit per condition, with the condition's
measurements as response and an intercept plus every source's weight vector
as design. The activity of a source is the t-value of its coefficient.

All conditions share the same design matrix, so ``(X'X)^-1`` is computed
once and the fits are solved together as a batched OLS:

    beta   = (X'X)^-1 X' Y                 (n_params, n_conditions)
    sigma2 = ||Y - X beta||^2 / df         df = n_features - n_params
    se     = sqrt(diag((X'X)^-1) * sigma2)

A rank-deficient design (duplicated or colinear weight vectors, more
regulators than features) raises :class:`RankDeficiencyError`; sources
without any target are left out of the design and reported as NaN.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from regactivity.core.errors import RankDeficiencyError
from regactivity.core.matrix import AlignedData
from regactivity.stats.methods._base import _BaseMethod
from regactivity.stats.results import MethodName, assemble_results

logger = logging.getLogger(__name__)


def build_design(weights: np.ndarray) -> np.ndarray:
    """Design matrix [intercept, weights^T] of shape (n_features, n_sources + 1)."""
    return np.column_stack([np.ones(weights.shape[1]), weights.T])


def dependent_columns(X: np.ndarray, rank: int) -> np.ndarray:
    """Boolean mask of design columns taking part in a linear dependency."""
    _, _, vt = np.linalg.svd(X, full_matrices=True)
    null_space = vt[rank:]
    if null_space.size == 0:
        return np.zeros(X.shape[1], dtype=bool)
    return np.abs(null_space).max(axis=0) > 1e-8


def batched_ols(X: np.ndarray, Y: np.ndarray) -> tuple[np.ndarray, np.ndarray, int]:
    """
    OLS coefficient t-values and p-values for every column of ``Y``.

    Args:
        X: Full-rank design matrix (n_obs, n_params)
        Y: Responses (n_obs, n_fits)

    Returns:
        (t_values, p_values, df) with arrays of shape (n_params, n_fits).
        With df == 0 both arrays are NaN.
    """
    n_obs, n_params = X.shape
    df = n_obs - n_params
    if df <= 0:
        nan = np.full((n_params, Y.shape[1]), np.nan)
        return nan, nan.copy(), df

    XtX_inv = np.linalg.inv(X.T @ X)
    beta = XtX_inv @ (X.T @ Y)
    resid = Y - X @ beta
    sigma2 = (resid ** 2).sum(axis=0) / df
    se = np.sqrt(np.outer(np.diag(XtX_inv), sigma2))

    with np.errstate(divide='ignore', invalid='ignore'):
        t = beta / se
    t[se == 0] = np.nan
    p = 2.0 * scipy_stats.t.sf(np.abs(t), df)
    return t, p, df


class MLMMethod(_BaseMethod):
    """
    Multivariate linear model activity inference.

    Attributes:
        center: Row-center the matrix before fitting
        na_rm: Ignore missing values when computing row means
    """

    def __init__(self, center: bool = False, na_rm: bool = False) -> None:
        self.center = center
        self.na_rm = na_rm

    @property
    def name(self) -> MethodName:
        return MethodName.MLM

    def _preprocessing(self) -> dict[str, bool]:
        return {'center': self.center, 'na_rm': self.na_rm}

    def score(self, aligned: AlignedData) -> pd.DataFrame:
        active = ~aligned.empty_sources
        active_sources = aligned.sources[active]
        X = build_design(aligned.weights[active])
        n_params = X.shape[1]

        rank = int(np.linalg.matrix_rank(X))
        if rank < n_params:
            involved = dependent_columns(X, rank)[1:]
            raise RankDeficiencyError(rank, n_params, active_sources[involved])

        t, p, df = batched_ols(X, aligned.mat)
        if df <= 0:
            logger.warning(
                f"mlm: {aligned.n_features} features for {n_params} parameters leaves no "
                f"residual degrees of freedom; all scores are NaN"
            )

        scores = np.full((aligned.n_sources, aligned.n_conditions), np.nan)
        pvals = np.full_like(scores, np.nan)
        scores[active] = t[1:]
        pvals[active] = p[1:]

        return assemble_results(
            self.name.value, scores, pvals, aligned.sources, aligned.conditions,
        )


def run_mlm(
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
    Multivariate Linear Model (MLM).

    Fits ``condition values ~ 1 + weights of all sources`` per condition and
    reports each coefficient's t-value as the source activity.

    Args:
        mat: Features x conditions matrix
        network: Regulatory network table
        source, target, weight, likelihood: Network column names
        center: Row-center ``mat`` before fitting
        na_rm: Ignore missing values when computing row means
        minsize: Minimum number of targets per source

    Returns:
        Long table with statistic ``mlm``

    Raises:
        RankDeficiencyError: Design matrix is not of full column rank
    """
    return MLMMethod(center=center, na_rm=na_rm).run(
        mat, network, source, target, weight, likelihood, minsize,
    )


__all__ = ["MLMMethod", "run_mlm", "batched_ols", "build_design"]
