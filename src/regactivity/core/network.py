"""
Prior-knowledge network formatting and target-size filtering.

A network arrives as an arbitrary table linking regulators (sources) to
features (targets). Column roles are resolved once through
:class:`NetworkColumns`, after which every downstream step works on the
canonical four-column form:

    source      str       regulator id
    target      str       feature id
    weight      float64   signed mode of regulation (default 1.0)
    likelihood  float64   non-negative edge confidence (default 1.0)

Duplicate edges:
    Identical (source, target, weight, likelihood) rows are collapsed to the
    first occurrence. Repeated (source, target) pairs that disagree on weight
    or likelihood are rejected with :class:`SchemaError`, since there is no
    principled way to pick one.

Examples:
    >>> import pandas as pd
    >>> raw = pd.DataFrame({
    ...     'tf': ['T1', 'T1', 'T2'],
    ...     'gene': ['G1', 'G2', 'G1'],
    ...     'mor': [1.0, -1.0, 1.0],
    ... })
    >>> net = format_network(raw, NetworkColumns(source='tf', target='gene', weight='mor'))
    >>> list(net.columns)
    ['source', 'target', 'weight', 'likelihood']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from regactivity.core.errors import EmptyResultError, SchemaError

__all__ = [
    'NetworkColumns',
    'CANONICAL_COLUMNS',
    'format_network',
    'count_targets',
    'filter_by_minsize',
]

logger = logging.getLogger(__name__)

CANONICAL_COLUMNS = ('source', 'target', 'weight', 'likelihood')


@dataclass(frozen=True)
class NetworkColumns:
    """
    Mapping of logical network roles to physical column names.

    Attributes:
        source: Column holding regulator ids (required)
        target: Column holding feature ids (required)
        weight: Column holding signed weights; ``None`` or absent -> 1.0
        likelihood: Column holding edge likelihoods; ``None`` or absent -> 1.0
    """
    source: str = 'source'
    target: str = 'target'
    weight: Optional[str] = 'weight'
    likelihood: Optional[str] = 'likelihood'


def _id_column(network: pd.DataFrame, name: str, role: str) -> np.ndarray:
    if name not in network.columns:
        raise SchemaError(
            f"Network is missing the {role} column '{name}' "
            f"(available: {', '.join(map(str, network.columns))})"
        )
    n_missing = int(network[name].isna().sum())
    if n_missing:
        raise SchemaError(f"{role} column '{name}' has {n_missing} missing values")
    return network[name].astype(str).to_numpy()


def _numeric_column(network: pd.DataFrame, name: Optional[str], role: str) -> np.ndarray:
    if name is None or name not in network.columns:
        logger.debug(f"No {role} column found, filling with 1.0")
        return np.ones(len(network), dtype=np.float64)

    raw = network[name]
    values = pd.to_numeric(raw, errors='coerce')
    n_bad = int((values.isna() & raw.notna()).sum())
    if n_bad:
        raise SchemaError(f"{role} column '{name}' has {n_bad} non-numeric values")
    n_missing = int(values.isna().sum())
    if n_missing:
        raise SchemaError(f"{role} column '{name}' has {n_missing} missing values")

    values = values.to_numpy(dtype=np.float64)
    if not np.isfinite(values).all():
        raise SchemaError(f"{role} column '{name}' has infinite values")
    return values


def format_network(
    network: pd.DataFrame,
    columns: Optional[NetworkColumns] = None,
) -> pd.DataFrame:
    """
    Validate and rename a raw network into canonical form.

    Args:
        network: Raw network table
        columns: Role -> column mapping (defaults to canonical names)

    Returns:
        New DataFrame with columns source, target, weight, likelihood and a
        fresh RangeIndex. Applying it again to its own output is a no-op.

    Raises:
        SchemaError: Missing source/target column, missing ids, non-numeric
            weights or likelihoods, negative likelihoods, or conflicting
            duplicate edges
    """
    if not isinstance(network, pd.DataFrame):
        raise SchemaError(f"network must be pd.DataFrame, got {type(network)}")

    columns = columns or NetworkColumns()

    formatted = pd.DataFrame({
        'source': _id_column(network, columns.source, 'source'),
        'target': _id_column(network, columns.target, 'target'),
        'weight': _numeric_column(network, columns.weight, 'weight'),
        'likelihood': _numeric_column(network, columns.likelihood, 'likelihood'),
    }, columns=list(CANONICAL_COLUMNS))

    if (formatted['likelihood'] < 0).any():
        n_neg = int((formatted['likelihood'] < 0).sum())
        raise SchemaError(f"likelihood column has {n_neg} negative values")

    if formatted.duplicated(subset=['source', 'target']).any():
        deduplicated = formatted.drop_duplicates(keep='first')
        conflicts = deduplicated[deduplicated.duplicated(subset=['source', 'target'], keep=False)]
        if not conflicts.empty:
            first = conflicts.iloc[0]
            raise SchemaError(
                f"Conflicting duplicate edges for ({first['source']}, {first['target']}): "
                f"{len(conflicts)} rows disagree on weight or likelihood"
            )
        logger.debug(f"Dropped {len(formatted) - len(deduplicated)} duplicate edges")
        formatted = deduplicated

    return formatted.reset_index(drop=True)


def count_targets(network: pd.DataFrame, features: Iterable[str]) -> pd.Series:
    """
    Number of distinct targets per source that are present in ``features``.

    Sources with no overlapping target are reported with a count of 0.
    """
    present = network['target'].isin(pd.Index(features))
    counts = network.loc[present].groupby('source')['target'].nunique()
    all_sources = pd.Index(network['source'].unique())
    return counts.reindex(all_sources, fill_value=0).astype(int)


def filter_by_minsize(
    network: pd.DataFrame,
    features: Iterable[str],
    minsize: int = 5,
) -> pd.DataFrame:
    """
    Drop sources with fewer than ``minsize`` targets present in the data.

    Args:
        network: Canonical network (see :func:`format_network`)
        features: Feature ids of the data matrix
        minsize: Minimum number of overlapping targets. 0 disables filtering.

    Returns:
        Network restricted to the edges of passing sources (edges unchanged)

    Raises:
        ValueError: minsize is not a non-negative integer
        EmptyResultError: No source passes the threshold
    """
    if isinstance(minsize, bool) or not isinstance(minsize, (int, np.integer)) or minsize < 0:
        raise ValueError(f"minsize must be a non-negative integer, got {minsize!r}")

    if minsize == 0:
        if network.empty:
            raise EmptyResultError("Network has no edges")
        return network.copy()

    counts = count_targets(network, features)
    keep = counts.index[counts >= minsize]
    n_removed = len(counts) - len(keep)
    if n_removed:
        logger.debug(f"Removed {n_removed}/{len(counts)} sources with fewer than {minsize} targets")

    if len(keep) == 0:
        raise EmptyResultError(
            f"No sources with at least {minsize} targets in the data "
            f"(largest overlap: {int(counts.max()) if len(counts) else 0})"
        )

    return network[network['source'].isin(keep)].reset_index(drop=True)
