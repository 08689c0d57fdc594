"""
Canonical result schema shared by every scoring method.

Methods compute dense (n_sources, n_conditions) score and p-value matrices;
:func:`assemble_results` reshapes them into the long table that all methods
and the consensus emit:

    statistic   str       method or sub-statistic name ("ulm", "norm_wsum", ...)
    source      str       regulator id
    condition   str       condition id
    score       float64   activity score
    p_value     float64   p-value, NaN when the statistic has none

Rows are sorted by source, then condition. The reverse reshaping
(long -> wide) is :func:`pivot_scores`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, Optional

import numpy as np
import pandas as pd

__all__ = [
    'RESULT_COLUMNS',
    'MethodName',
    'ResultRecord',
    'assemble_results',
    'records_to_frame',
    'frame_to_records',
    'sort_results',
    'pivot_scores',
    'empty_results',
]

RESULT_COLUMNS = ['statistic', 'source', 'condition', 'score', 'p_value']


class MethodName(Enum):
    """
    Registered activity inference methods.

    The value is the key used by the method registry and the orchestrator's
    per-method options map.
    """

    ULM = "ulm"
    MLM = "mlm"
    WSUM = "wsum"
    WMEAN = "wmean"
    GSEA = "gsea"
    ORA = "ora"
    CONSENSUS = "consensus"


@dataclass(frozen=True)
class ResultRecord:
    """One (statistic, source, condition) activity estimate."""
    statistic: str
    source: str
    condition: str
    score: float
    p_value: float = np.nan

    @property
    def has_p_value(self) -> bool:
        return bool(np.isfinite(self.p_value))


def empty_results() -> pd.DataFrame:
    """Zero-row table with the canonical columns and dtypes."""
    return pd.DataFrame({
        'statistic': pd.Series(dtype=object),
        'source': pd.Series(dtype=object),
        'condition': pd.Series(dtype=object),
        'score': pd.Series(dtype=np.float64),
        'p_value': pd.Series(dtype=np.float64),
    })


def sort_results(results: pd.DataFrame) -> pd.DataFrame:
    """Stable sort by source then condition; statistic groups keep their order."""
    return results.sort_values(['source', 'condition'], kind='mergesort').reset_index(drop=True)


def assemble_results(
    statistic: str,
    scores: np.ndarray,
    p_values: Optional[np.ndarray],
    sources: Iterable[str],
    conditions: Iterable[str],
) -> pd.DataFrame:
    """
    Reshape score/p-value matrices into the canonical long table.

    Args:
        statistic: Name recorded in the ``statistic`` column
        scores: (n_sources, n_conditions) scores
        p_values: Matching p-values, or None when the statistic has none
        sources: Row labels of ``scores``
        conditions: Column labels of ``scores``

    Returns:
        Long table with one row per (source, condition)
    """
    sources = np.asarray(list(sources), dtype=object)
    conditions = np.asarray(list(conditions), dtype=object)
    scores = np.asarray(scores, dtype=np.float64)
    if scores.shape != (len(sources), len(conditions)):
        raise ValueError(
            f"scores shape {scores.shape} does not match "
            f"({len(sources)} sources, {len(conditions)} conditions)"
        )
    if p_values is None:
        p_values = np.full_like(scores, np.nan)
    else:
        p_values = np.asarray(p_values, dtype=np.float64)
        if p_values.shape != scores.shape:
            raise ValueError(f"p_values shape {p_values.shape} != scores shape {scores.shape}")

    n_sources, n_conditions = scores.shape
    results = pd.DataFrame({
        'statistic': np.full(n_sources * n_conditions, statistic, dtype=object),
        'source': np.repeat(sources, n_conditions),
        'condition': np.tile(conditions, n_sources),
        'score': scores.ravel(),
        'p_value': p_values.ravel(),
    })
    return sort_results(results)


def records_to_frame(records: Iterable[ResultRecord]) -> pd.DataFrame:
    """Build a sorted long table from result records."""
    rows = [asdict(r) for r in records]
    if not rows:
        return empty_results()
    results = pd.DataFrame(rows, columns=RESULT_COLUMNS)
    results['score'] = results['score'].astype(np.float64)
    results['p_value'] = results['p_value'].astype(np.float64)
    return sort_results(results)


def frame_to_records(results: pd.DataFrame) -> list[ResultRecord]:
    """Convert a long table into result records (missing p_value -> NaN)."""
    p_values = results['p_value'] if 'p_value' in results.columns else pd.Series(np.nan, index=results.index)
    return [
        ResultRecord(
            statistic=str(stat),
            source=str(src),
            condition=str(cond),
            score=float(score),
            p_value=float(pval),
        )
        for stat, src, cond, score, pval in zip(
            results['statistic'], results['source'], results['condition'],
            results['score'], p_values,
        )
    ]


def pivot_scores(results: pd.DataFrame, statistic: str, value: str = 'score') -> pd.DataFrame:
    """
    Long -> wide: sources x conditions matrix for one statistic.

    Raises:
        KeyError: ``statistic`` is not present in ``results``
    """
    subset = results[results['statistic'] == statistic]
    if subset.empty:
        raise KeyError(f"Statistic '{statistic}' not found in results")
    wide = subset.pivot(index='source', columns='condition', values=value)
    wide.columns.name = None
    return wide
