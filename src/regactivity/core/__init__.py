"""
Core data handling: error taxonomy, network formatting, matrix alignment.
"""

from regactivity.core.errors import (
    RegActivityError,
    SchemaError,
    ValidationError,
    EmptyResultError,
    RankDeficiencyError,
    PermutationCancelledError,
)
from regactivity.core.network import (
    NetworkColumns,
    format_network,
    count_targets,
    filter_by_minsize,
)
from regactivity.core.matrix import (
    AlignedData,
    validate_matrix,
    center_matrix,
    align_network,
)

__all__ = [
    'RegActivityError',
    'SchemaError',
    'ValidationError',
    'EmptyResultError',
    'RankDeficiencyError',
    'PermutationCancelledError',
    'NetworkColumns',
    'format_network',
    'count_targets',
    'filter_by_minsize',
    'AlignedData',
    'validate_matrix',
    'center_matrix',
    'align_network',
]
