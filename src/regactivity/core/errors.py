"""
Exception taxonomy for regulator activity inference.

Input problems (malformed network, invalid matrix) fail the whole call
before any scoring starts. Numeric degeneracies inside a method (perfect
correlation, zero-variance weights, no residual degrees of freedom) are
not exceptions: they surface as NaN in the affected result cells.
"""

from __future__ import annotations

from typing import Iterable, Optional

__all__ = [
    'RegActivityError',
    'SchemaError',
    'ValidationError',
    'EmptyResultError',
    'RankDeficiencyError',
    'PermutationCancelledError',
]


def _preview(items: Iterable[str], limit: int = 5) -> str:
    items = list(items)
    shown = ", ".join(str(i) for i in items[:limit])
    if len(items) > limit:
        shown += f", ... ({len(items) - limit} more)"
    return shown


class RegActivityError(Exception):
    """Base class for all regactivity errors."""
    pass


class SchemaError(RegActivityError, ValueError):
    """Raised when a network table is missing required columns or values."""
    pass


class ValidationError(RegActivityError, ValueError):
    """
    Raised when an input violates a validation rule.

    Attributes:
        rule: Short identifier of the violated rule (e.g. "finite_values")
        items: Offending identifiers (features, conditions, statistics), if any
    """

    def __init__(self, message: str, rule: str = "invalid_input", items: Optional[Iterable[str]] = None):
        self.rule = rule
        self.items = list(items) if items is not None else []
        if self.items:
            message = f"{message}: {_preview(self.items)}"
        super().__init__(message)


class EmptyResultError(RegActivityError):
    """Raised when no regulator survives filtering or nothing overlaps."""
    pass


class RankDeficiencyError(RegActivityError):
    """
    Raised when the multivariate design matrix is not of full column rank.

    Attributes:
        rank: Numerical rank of the design matrix
        n_params: Number of columns (intercept + regulators)
        sources: Regulators involved in the linear dependency
    """

    def __init__(self, rank: int, n_params: int, sources: Iterable[str] = ()):
        self.rank = rank
        self.n_params = n_params
        self.sources = list(sources)
        message = f"Design matrix is rank deficient (rank {rank} < {n_params} parameters)"
        if self.sources:
            message += f"; colinear or redundant regulators: {_preview(self.sources)}"
        super().__init__(message)


class PermutationCancelledError(RegActivityError):
    """Raised when a permutation run is aborted through its cancel event."""

    def __init__(self, completed: int, total: int):
        self.completed = completed
        self.total = total
        super().__init__(f"Permutation run cancelled after {completed}/{total} permutations")
