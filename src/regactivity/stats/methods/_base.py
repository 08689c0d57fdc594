"""
Shared base class for activity inference methods.

Every method runs the same preparation pipeline before scoring:

    1. Validate the data matrix (fail fast on NaN/Inf, duplicated ids)
    2. Format the network into canonical source/target/weight/likelihood
    3. Drop sources with fewer than ``minsize`` targets in the data
    4. Align the network to the matrix feature axis

Subclasses only implement :meth:`_BaseMethod.score`, which receives the
immutable :class:`AlignedData` snapshot and returns the long result table.
"""

from __future__ import annotations

import abc
import logging
import threading
from typing import Optional

import numpy as np
import pandas as pd

from regactivity.core.matrix import AlignedData, align_network, validate_matrix
from regactivity.core.network import NetworkColumns, filter_by_minsize, format_network
from regactivity.stats.permutation import StatisticFn, run_permutation_null
from regactivity.stats.results import MethodName

logger = logging.getLogger(__name__)


def prepare_inputs(
    mat: pd.DataFrame | pd.Series,
    network: pd.DataFrame,
    source: str = 'source',
    target: str = 'target',
    weight: Optional[str] = 'weight',
    likelihood: Optional[str] = 'likelihood',
    minsize: int = 5,
    *,
    restrict: bool = True,
    center: bool = False,
    na_rm: bool = False,
) -> AlignedData:
    """Validate, format, filter and align raw inputs."""
    mat = validate_matrix(mat)
    columns = NetworkColumns(source=source, target=target, weight=weight, likelihood=likelihood)
    net = format_network(network, columns)
    net = filter_by_minsize(net, mat.index, minsize)
    return align_network(mat, net, restrict=restrict, center=center, na_rm=na_rm)


def mask_empty_sources(aligned: AlignedData, *arrays: np.ndarray) -> None:
    """Set rows of sources without targets to NaN, in place."""
    empty = aligned.empty_sources
    if empty.any():
        logger.debug(f"{int(empty.sum())} sources have no targets in the data; scores set to NaN")
        for array in arrays:
            array[empty, :] = np.nan


class _PermutationOptions:
    """Options shared by every permutation-based method."""

    def __init__(
        self,
        times: int = 100,
        seed: Optional[int] = 42,
        n_workers: int = 1,
        batch_size: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if times < 2:
            raise ValueError(f"times must be >= 2 to estimate a null distribution, got {times}")
        self.times = times
        self.seed = seed
        self.n_workers = n_workers
        self.batch_size = batch_size
        self.cancel_event = cancel_event

    def _null(self, statistic_fn: StatisticFn, weights: np.ndarray) -> np.ndarray:
        return run_permutation_null(
            statistic_fn,
            weights,
            times=self.times,
            seed=self.seed,
            n_workers=self.n_workers,
            batch_size=self.batch_size,
            cancel_event=self.cancel_event,
        )


class _BaseMethod(abc.ABC):
    """
    Skeleton for a scoring method.

    Subclasses define:
        * ``name``  (MethodName)
        * ``restrict``  whether the feature axis is limited to network targets
        * ``score``  the statistic itself
    """

    restrict: bool = True

    @property
    @abc.abstractmethod
    def name(self) -> MethodName:  # pragma: no cover
        ...

    @abc.abstractmethod
    def score(self, aligned: AlignedData) -> pd.DataFrame:
        """Compute the long result table from aligned inputs."""
        ...

    def _preprocessing(self) -> dict[str, bool]:
        """Alignment options (centering is only meaningful for linear models)."""
        return {}

    def run(
        self,
        mat: pd.DataFrame | pd.Series,
        network: pd.DataFrame,
        source: str = 'source',
        target: str = 'target',
        weight: Optional[str] = 'weight',
        likelihood: Optional[str] = 'likelihood',
        minsize: int = 5,
    ) -> pd.DataFrame:
        """Prepare inputs and score them."""
        aligned = prepare_inputs(
            mat, network, source, target, weight, likelihood, minsize,
            restrict=self.restrict,
            **self._preprocessing(),
        )
        logger.info(
            f"{self.name.value}: scoring {aligned.n_sources} sources over "
            f"{aligned.n_features} features x {aligned.n_conditions} conditions"
        )
        return self.score(aligned)
