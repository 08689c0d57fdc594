"""
Feature-label permutation engine for empirical null distributions.

The null for a regulator is obtained by shuffling which features its
weights attach to (columns of the weight matrix) while the regulator
structure and the data stay fixed, then recomputing the statistic.

Reproducibility:
    Permutation ``i`` always draws from its own generator, seeded by the
    i-th child of ``SeedSequence(seed)``. Batches of permutation indices can
    therefore run on any number of threads in any order and the assembled
    null array is bit-identical for a given seed.

Cancellation:
    An optional ``threading.Event`` is checked before every batch. Once set,
    remaining batches are skipped and :class:`PermutationCancelledError` is
    raised.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np
from numpy.random import SeedSequence

from regactivity.core.errors import PermutationCancelledError

__all__ = [
    'spawn_permutation_seeds',
    'permute_features',
    'run_permutation_null',
    'empirical_pvalue',
    'null_zscore',
]

logger = logging.getLogger(__name__)

StatisticFn = Callable[[np.ndarray], np.ndarray]


def spawn_permutation_seeds(seed: Optional[int], times: int) -> list[SeedSequence]:
    """One independent child seed per permutation index."""
    return SeedSequence(seed).spawn(times)


def permute_features(weights: np.ndarray, seed_seq: SeedSequence) -> np.ndarray:
    """Shuffle the feature axis (columns) of a weight matrix."""
    order = np.random.default_rng(seed_seq).permutation(weights.shape[1])
    return weights[:, order]


def _default_batch_size(times: int, n_workers: int) -> int:
    return max(1, math.ceil(times / (4 * max(n_workers, 1))))


def run_permutation_null(
    statistic_fn: StatisticFn,
    weights: np.ndarray,
    times: int,
    seed: Optional[int] = 42,
    n_workers: int = 1,
    batch_size: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> np.ndarray:
    """
    Evaluate ``statistic_fn`` on ``times`` feature permutations of ``weights``.

    Args:
        statistic_fn: Maps a (n_sources, n_features) weight matrix to a
            (n_sources, n_conditions) score matrix. Must not mutate its input.
        weights: Aligned weight matrix (read-only, shared by all workers)
        times: Number of permutations
        seed: Base seed. None draws fresh OS entropy (not reproducible).
        n_workers: Threads used to evaluate batches
        batch_size: Permutations per batch (default: ~4 batches per worker)
        cancel_event: Cooperative abort flag checked between batches

    Returns:
        Null statistics of shape (times, n_sources, n_conditions)

    Raises:
        ValueError: times < 1 or n_workers < 1
        PermutationCancelledError: cancel_event was set before completion
    """
    if times < 1:
        raise ValueError(f"times must be >= 1, got {times}")
    if n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {n_workers}")

    seeds = spawn_permutation_seeds(seed, times)
    batch_size = batch_size or _default_batch_size(times, n_workers)
    batches = [range(start, min(start + batch_size, times)) for start in range(0, times, batch_size)]
    null: list[Optional[np.ndarray]] = [None] * times

    def run_batch(indices: range) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return False
        for i in indices:
            null[i] = statistic_fn(permute_features(weights, seeds[i]))
        return True

    logger.debug(f"Running {times} permutations in {len(batches)} batches on {n_workers} workers")

    if n_workers == 1:
        for batch in batches:
            if not run_batch(batch):
                break
    else:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            list(executor.map(run_batch, batches))

    completed = sum(1 for stat in null if stat is not None)
    if completed < times:
        raise PermutationCancelledError(completed, times)

    return np.stack(null)


def empirical_pvalue(observed: np.ndarray, null: np.ndarray) -> np.ndarray:
    """
    Two-sided empirical p-value with add-one smoothing.

    p = (#{|null| >= |observed|} + 1) / (times + 1), never exactly zero.
    NaN observations give NaN.
    """
    times = null.shape[0]
    exceed = (np.abs(null) >= np.abs(observed)[np.newaxis]).sum(axis=0)
    pvals = (exceed + 1.0) / (times + 1.0)
    pvals[np.isnan(observed)] = np.nan
    return pvals


def null_zscore(observed: np.ndarray, null: np.ndarray) -> np.ndarray:
    """
    Standardize observations against their null: (obs - mean) / std.

    Cells whose null has no spread (std < 1e-10) get 0.0.
    """
    mean = null.mean(axis=0)
    std = null.std(axis=0)
    flat = std < 1e-10
    z = (observed - mean) / np.where(flat, 1.0, std)
    z[flat] = 0.0
    z[np.isnan(observed)] = np.nan
    return z
