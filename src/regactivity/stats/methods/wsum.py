"""
Weighted sum (WSUM) and weighted mean (WMEAN) with a permutation null.

Raw scores multiply the effective weights (weight x likelihood) with the
measurements:

    wsum  = W @ X
    wmean = wsum / k          k = number of targets with a non-zero weight

The null distribution comes from ``times`` permutations of the feature
axis of W (see :mod:`regactivity.stats.permutation`). Each method emits three
statistics, all sharing the empirical two-sided p-value:

    <m>        raw score
    norm_<m>   (raw - null mean) / null std      (0.0 when null std is 0)
    corr_<m>   norm_<m> * -log10(p)
"""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np
import pandas as pd

from regactivity.core.matrix import AlignedData
from regactivity.stats.methods._base import _BaseMethod, _PermutationOptions, mask_empty_sources
from regactivity.stats.permutation import empirical_pvalue, null_zscore
from regactivity.stats.results import MethodName, assemble_results


class WeightedSumMethod(_PermutationOptions, _BaseMethod):
    """
    WSUM / WMEAN activity inference.

    Attributes:
        mean: Divide by the number of contributing targets (WMEAN)
        times: Number of permutations
        seed: Base seed for the permutation null
        n_workers: Threads evaluating permutation batches
    """

    def __init__(self, mean: bool = False, **permutation_options) -> None:
        super().__init__(**permutation_options)
        self.mean = mean

    @property
    def name(self) -> MethodName:
        return MethodName.WMEAN if self.mean else MethodName.WSUM

    def score(self, aligned: AlignedData) -> pd.DataFrame:
        wmat = aligned.weights * aligned.likelihood
        mat = aligned.mat
        n_contrib = (wmat != 0).sum(axis=1).astype(np.float64)
        n_contrib[n_contrib == 0] = np.nan

        def statistic(w: np.ndarray) -> np.ndarray:
            scores = w @ mat
            if self.mean:
                scores = scores / n_contrib[:, np.newaxis]
            return scores

        observed = statistic(wmat)
        null = self._null(statistic, wmat)

        norm = null_zscore(observed, null)
        pvals = empirical_pvalue(observed, null)
        corr = norm * -np.log10(pvals)
        mask_empty_sources(aligned, observed, norm, corr, pvals)

        name = self.name.value
        return pd.concat([
            assemble_results(stat, values, pvals, aligned.sources, aligned.conditions)
            for stat, values in ((name, observed), (f"norm_{name}", norm), (f"corr_{name}", corr))
        ], ignore_index=True)


def run_wsum(
    mat: pd.DataFrame | pd.Series,
    network: pd.DataFrame,
    source: str = 'source',
    target: str = 'target',
    weight: Optional[str] = 'weight',
    likelihood: Optional[str] = 'likelihood',
    times: int = 100,
    seed: Optional[int] = 42,
    minsize: int = 5,
    n_workers: int = 1,
    batch_size: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> pd.DataFrame:
    """
    Weighted sum (WSUM) with permutation-based normalization.

    Args:
        mat: Features x conditions matrix
        network: Regulatory network table
        source, target, weight, likelihood: Network column names
        times: Number of permutations (>= 2)
        seed: Base seed; the same seed reproduces results bit for bit
        minsize: Minimum number of targets per source
        n_workers: Threads evaluating permutation batches
        batch_size: Permutations per batch
        cancel_event: Set to abort between batches

    Returns:
        Long table with statistics ``wsum``, ``norm_wsum`` and ``corr_wsum``
    """
    method = WeightedSumMethod(
        mean=False, times=times, seed=seed, n_workers=n_workers,
        batch_size=batch_size, cancel_event=cancel_event,
    )
    return method.run(mat, network, source, target, weight, likelihood, minsize)


def run_wmean(
    mat: pd.DataFrame | pd.Series,
    network: pd.DataFrame,
    source: str = 'source',
    target: str = 'target',
    weight: Optional[str] = 'weight',
    likelihood: Optional[str] = 'likelihood',
    times: int = 100,
    seed: Optional[int] = 42,
    minsize: int = 5,
    n_workers: int = 1,
    batch_size: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> pd.DataFrame:
    """
    Weighted mean (WMEAN) with permutation-based normalization.

    Same as :func:`run_wsum` but each raw score is divided by the number of
    targets with a non-zero effective weight.

    Returns:
        Long table with statistics ``wmean``, ``norm_wmean`` and ``corr_wmean``
    """
    method = WeightedSumMethod(
        mean=True, times=times, seed=seed, n_workers=n_workers,
        batch_size=batch_size, cancel_event=cancel_event,
    )
    return method.run(mat, network, source, target, weight, likelihood, minsize)


__all__ = ["WeightedSumMethod", "run_wsum", "run_wmean"]
