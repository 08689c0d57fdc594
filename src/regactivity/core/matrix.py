"""
Data matrix validation and matrix/network alignment.

Every scoring method consumes the same :class:`AlignedData` snapshot:

    mat         (n_features, n_conditions)  measurements, matrix row order
    weights     (n_sources, n_features)     network weights, 0 where no edge
    likelihood  (n_sources, n_features)     edge likelihoods, 0 where no edge

The feature axis of ``weights`` is the row axis of ``mat``; products such as
``weights @ mat`` are therefore (n_sources, n_conditions) score matrices.
Sources are sorted ascending so the layout is deterministic regardless of
edge order in the input network.

Arrays in an AlignedData are flagged read-only so the snapshot can be shared
across concurrent scorers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from regactivity.core.errors import EmptyResultError, ValidationError

__all__ = [
    'AlignedData',
    'validate_matrix',
    'center_matrix',
    'align_network',
]

logger = logging.getLogger(__name__)


def validate_matrix(mat: pd.DataFrame | pd.Series) -> pd.DataFrame:
    """
    Check a features x conditions matrix and return a float64 copy.

    Feature and condition labels are converted to strings so they match
    network ids. A Series is treated as a single condition.

    Raises:
        ValidationError: Wrong type, empty matrix, duplicated feature or
            condition ids, non-numeric columns, or NaN/Inf values
    """
    if isinstance(mat, pd.Series):
        name = mat.name if mat.name is not None else 0
        mat = mat.to_frame(name=name)

    if not isinstance(mat, pd.DataFrame):
        raise ValidationError(
            f"mat must be pd.DataFrame or pd.Series, got {type(mat).__name__}",
            rule="matrix_type",
        )
    if mat.shape[0] == 0 or mat.shape[1] == 0:
        raise ValidationError(f"mat is empty (shape {mat.shape})", rule="non_empty")

    features = mat.index.astype(str)
    conditions = mat.columns.astype(str)

    if features.has_duplicates:
        raise ValidationError(
            "Feature ids must be unique",
            rule="unique_features",
            items=features[features.duplicated()].unique(),
        )
    if conditions.has_duplicates:
        raise ValidationError(
            "Condition ids must be unique",
            rule="unique_conditions",
            items=conditions[conditions.duplicated()].unique(),
        )

    non_numeric = [str(c) for c, dtype in mat.dtypes.items() if not pd.api.types.is_numeric_dtype(dtype)
                   or pd.api.types.is_bool_dtype(dtype)]
    if non_numeric:
        raise ValidationError("Matrix columns must be numeric", rule="numeric", items=non_numeric)

    values = mat.to_numpy(dtype=np.float64, copy=True)
    finite = np.isfinite(values)
    if not finite.all():
        bad_rows = features[~finite.all(axis=1)]
        raise ValidationError(
            f"Matrix contains {int((~finite).sum())} NaN or infinite values in features",
            rule="finite_values",
            items=bad_rows,
        )

    return pd.DataFrame(values, index=features, columns=conditions)


def center_matrix(values: np.ndarray, na_rm: bool = False) -> np.ndarray:
    """Subtract each row's mean (NaN-aware when ``na_rm``)."""
    means = np.nanmean(values, axis=1, keepdims=True) if na_rm else values.mean(axis=1, keepdims=True)
    return values - means


@dataclass(frozen=True)
class AlignedData:
    """
    Matrix and network laid out on a shared feature axis.

    Attributes:
        mat: Measurements (n_features, n_conditions)
        features: Feature ids, in data matrix order
        conditions: Condition ids
        sources: Regulator ids, sorted ascending
        weights: Signed weights (n_sources, n_features), 0 where no edge
        likelihood: Edge likelihoods (n_sources, n_features), 0 where no edge
        n_targets: Overlapping targets per source (n_sources,)
    """
    mat: np.ndarray
    features: pd.Index
    conditions: pd.Index
    sources: pd.Index
    weights: np.ndarray
    likelihood: np.ndarray
    n_targets: np.ndarray

    @property
    def n_features(self) -> int:
        return len(self.features)

    @property
    def n_conditions(self) -> int:
        return len(self.conditions)

    @property
    def n_sources(self) -> int:
        return len(self.sources)

    @property
    def empty_sources(self) -> np.ndarray:
        """Boolean mask of sources without any target on the feature axis."""
        return self.n_targets == 0


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def align_network(
    mat: pd.DataFrame | pd.Series,
    network: pd.DataFrame,
    *,
    restrict: bool = True,
    center: bool = False,
    na_rm: bool = False,
) -> AlignedData:
    """
    Build the source x feature weight matrix aligned to the data matrix.

    Args:
        mat: Data matrix (features x conditions)
        network: Canonical network (see ``format_network``)
        restrict: If True, keep only matrix features that are targets of at
            least one edge. If False, keep every matrix feature.
        center: Subtract row means from the matrix
        na_rm: Ignore missing values when computing row means

    Returns:
        AlignedData snapshot

    Raises:
        ValidationError: Invalid matrix
        EmptyResultError: No matrix feature is a network target
    """
    mat = validate_matrix(mat)

    is_target = mat.index.isin(pd.Index(network['target'].unique()))
    if not is_target.any():
        raise EmptyResultError("No overlap between matrix features and network targets")

    features = mat.index[is_target] if restrict else mat.index
    values = mat.loc[features].to_numpy(dtype=np.float64, copy=True)
    if center:
        values = center_matrix(values, na_rm=na_rm)

    sources = pd.Index(sorted(network['source'].unique()), name='source')
    src_idx = sources.get_indexer(network['source'])
    tgt_idx = features.get_indexer(network['target'])
    mapped = tgt_idx >= 0

    weights = np.zeros((len(sources), len(features)), dtype=np.float64)
    likelihood = np.zeros_like(weights)
    weights[src_idx[mapped], tgt_idx[mapped]] = network['weight'].to_numpy(dtype=np.float64)[mapped]
    likelihood[src_idx[mapped], tgt_idx[mapped]] = network['likelihood'].to_numpy(dtype=np.float64)[mapped]
    n_targets = np.bincount(src_idx[mapped], minlength=len(sources))

    logger.debug(
        f"Aligned {len(sources)} sources to {len(features)} features x {mat.shape[1]} conditions"
    )

    return AlignedData(
        mat=_readonly(values),
        features=pd.Index(features, name='feature'),
        conditions=pd.Index(mat.columns, name='condition'),
        sources=sources,
        weights=_readonly(weights),
        likelihood=_readonly(likelihood),
        n_targets=_readonly(n_targets),
    )
