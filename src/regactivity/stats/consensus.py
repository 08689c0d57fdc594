"""
Consensus activity across methods.

Methods report activities on different scales (t-values, permutation
z-scores, -log10 p-values). The consensus puts them on a common scale and
averages them:

    1. Pick one statistic per method (``CONSENSUS_STATISTICS`` preference)
    2. Inner-join the selected statistics on (source, condition)
    3. Standardize each statistic across the joined pairs:
       z = (score - mean) / sd   (sample sd, NaN-aware; sd == 0 -> z = 0)
    4. consensus = NaN-aware mean of the z-scores per (source, condition)
    5. p_value = two-sided normal tail of the consensus score

Data loss:
    Pairs not scored by every method are dropped by the inner join and
    logged at WARNING level.
"""

from __future__ import annotations

import logging
import warnings
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from regactivity.core.errors import EmptyResultError, ValidationError
from regactivity.stats.results import MethodName, RESULT_COLUMNS, sort_results

__all__ = [
    'CONSENSUS_STATISTICS',
    'select_statistics',
    'standardize',
    'run_consensus',
]

logger = logging.getLogger(__name__)

# Preferred statistic per method, in priority order
CONSENSUS_STATISTICS = {
    MethodName.ULM.value: 'ulm',
    MethodName.MLM.value: 'mlm',
    MethodName.WSUM.value: 'norm_wsum',
    MethodName.WMEAN.value: 'norm_wmean',
    MethodName.GSEA.value: 'norm_gsea',
    MethodName.ORA.value: 'ora',
}


def select_statistics(results: pd.DataFrame) -> list[str]:
    """Preferred statistic of every method present in ``results``."""
    available = set(results['statistic'].unique())
    return [stat for stat in CONSENSUS_STATISTICS.values() if stat in available]


def standardize(scores: pd.Series) -> pd.Series:
    """Z-score a column across all its values (sample sd, NaN-aware)."""
    mean = scores.mean()
    sd = scores.std(ddof=1)
    if not np.isfinite(sd) or sd == 0:
        return pd.Series(np.where(scores.isna(), np.nan, 0.0), index=scores.index)
    return (scores - mean) / sd


def run_consensus(
    results: pd.DataFrame | Iterable[pd.DataFrame],
    statistics: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Combine the activities of several methods into one consensus score.

    Args:
        results: Long table(s) holding the outputs of two or more methods
        statistics: Statistics to combine. Default: the preferred statistic
            of every method found (see ``CONSENSUS_STATISTICS``)

    Returns:
        Long table with statistic ``consensus``

    Raises:
        ValidationError: Fewer than two statistics, a requested statistic is
            missing, or a statistic has duplicated (source, condition) rows
        EmptyResultError: The methods share no (source, condition) pair
    """
    if not isinstance(results, pd.DataFrame):
        results = pd.concat(list(results), ignore_index=True)

    if statistics is None:
        statistics = select_statistics(results)
    else:
        missing = [s for s in statistics if s not in set(results['statistic'])]
        if missing:
            raise ValidationError("Statistics not found in results", rule="consensus_statistics", items=missing)

    if len(statistics) < 2:
        raise ValidationError(
            f"Consensus needs at least 2 methods, got {len(statistics)}",
            rule="consensus_min_methods",
            items=statistics,
        )

    joined: Optional[pd.DataFrame] = None
    n_pairs = {}
    for stat in statistics:
        subset = results.loc[results['statistic'] == stat, ['source', 'condition', 'score']]
        if subset.duplicated(subset=['source', 'condition']).any():
            raise ValidationError(
                "Duplicated (source, condition) rows", rule="unique_cells", items=[stat],
            )
        n_pairs[stat] = len(subset)
        subset = subset.rename(columns={'score': stat})
        joined = subset if joined is None else joined.merge(subset, on=['source', 'condition'], how='inner')

    if joined.empty:
        raise EmptyResultError(f"No (source, condition) pair is scored by all of {', '.join(statistics)}")

    n_dropped = max(n_pairs.values()) - len(joined)
    if n_dropped:
        logger.warning(
            f"Consensus dropped {n_dropped} (source, condition) pairs not scored by all of "
            f"{', '.join(statistics)}"
        )

    for stat in statistics:
        joined[stat] = standardize(joined[stat])

    with warnings.catch_warnings():
        warnings.simplefilter('ignore', category=RuntimeWarning)
        score = np.nanmean(joined[list(statistics)].to_numpy(dtype=np.float64), axis=1)

    consensus = pd.DataFrame({
        'statistic': MethodName.CONSENSUS.value,
        'source': joined['source'].to_numpy(),
        'condition': joined['condition'].to_numpy(),
        'score': score,
        'p_value': 2.0 * scipy_stats.norm.sf(np.abs(score)),
    }, columns=RESULT_COLUMNS)
    return sort_results(consensus)
