"""
Run several activity inference methods and their consensus in one call.

Pipeline:
    1. Validate the data matrix once (fail fast before any method starts)
    2. Run each requested method with the shared network/minsize settings
       plus its own options from ``args``
    3. Concatenate the method tables (one statistic group after another)
    4. Append the ``consensus`` group when two or more methods ran

Methods are independent and can run concurrently on a thread pool
(``n_jobs``); the matrix and network are never modified.

Example:
    >>> from regactivity import decouple
    >>> res = decouple(
    ...     mat, net,
    ...     methods=["ulm", "mlm", "wsum"],
    ...     args={"wsum": {"times": 1000, "seed": 7}},
    ...     minsize=5,
    ... )
    >>> res["statistic"].unique().tolist()
    ['ulm', 'mlm', 'wsum', 'norm_wsum', 'corr_wsum', 'consensus']
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from regactivity.core.matrix import validate_matrix
from regactivity.stats.consensus import CONSENSUS_STATISTICS, run_consensus
from regactivity.stats.methods import METHODS

__all__ = [
    'DEFAULT_METHODS',
    'run_method',
    'show_methods',
    'decouple',
]

logger = logging.getLogger(__name__)

DEFAULT_METHODS = ("ulm", "mlm", "wsum")


def _resolve_method(name: str):
    try:
        return METHODS[name]
    except KeyError:
        raise ValueError(
            f"Unknown method '{name}'. Available: {', '.join(METHODS)}"
        ) from None


def run_method(name: str, mat: pd.DataFrame | pd.Series, network: pd.DataFrame, **kwargs: Any) -> pd.DataFrame:
    """
    Run a registered method by name.

    Raises:
        ValueError: ``name`` is not a registered method
    """
    return _resolve_method(name)(mat, network, **kwargs)


def show_methods() -> pd.DataFrame:
    """Table of registered methods: function name and one-line description."""
    rows = []
    for name, func in METHODS.items():
        doc = (func.__doc__ or "").strip().splitlines()
        rows.append({'Function': func.__name__, 'Name': doc[0].rstrip('.') if doc else name})
    return pd.DataFrame(rows, columns=['Function', 'Name'])


def decouple(
    mat: pd.DataFrame | pd.Series,
    network: pd.DataFrame,
    methods: Optional[Sequence[str]] = None,
    args: Optional[Mapping[str, Mapping[str, Any]]] = None,
    consensus: bool = True,
    source: str = 'source',
    target: str = 'target',
    weight: Optional[str] = 'weight',
    likelihood: Optional[str] = 'likelihood',
    minsize: int = 5,
    n_jobs: int = 1,
) -> pd.DataFrame:
    """
    Run multiple methods and, optionally, their consensus.

    Args:
        mat: Features x conditions matrix
        network: Regulatory network table
        methods: Method names (default: ulm, mlm, wsum)
        args: Per-method options, e.g. ``{"wsum": {"times": 1000}}``
        consensus: Append a ``consensus`` group (needs >= 2 methods)
        source, target, weight, likelihood: Network column names
        minsize: Minimum number of targets per source
        n_jobs: Methods run concurrently

    Returns:
        Long table with every method's statistics, plus ``consensus``

    Raises:
        ValueError: Unknown method name, or options for a method not requested
    """
    methods = list(dict.fromkeys(methods or DEFAULT_METHODS))
    for name in methods:
        _resolve_method(name)

    args = dict(args or {})
    extra = sorted(set(args) - set(methods))
    if extra:
        raise ValueError(f"Options given for methods that are not run: {', '.join(extra)}")

    validate_matrix(mat)

    shared = {
        'source': source,
        'target': target,
        'weight': weight,
        'likelihood': likelihood,
        'minsize': minsize,
    }

    def run_one(name: str) -> pd.DataFrame:
        logger.info(f"Running {name}")
        return run_method(name, mat, network, **{**shared, **args.get(name, {})})

    if n_jobs > 1 and len(methods) > 1:
        with ThreadPoolExecutor(max_workers=min(n_jobs, len(methods))) as executor:
            tables = list(executor.map(run_one, methods))
    else:
        tables = [run_one(name) for name in methods]

    results = pd.concat(tables, ignore_index=True)

    if consensus:
        if len(methods) >= 2:
            statistics = [CONSENSUS_STATISTICS[name] for name in methods]
            results = pd.concat([results, run_consensus(results, statistics)], ignore_index=True)
        else:
            logger.info("Consensus skipped: it needs at least 2 methods")

    return results
