"""
Statistical scoring of regulator activities.

Exports the result schema helpers, the permutation engine, the scoring
methods and the consensus aggregation.
"""

from .results import (
    RESULT_COLUMNS,
    MethodName,
    ResultRecord,
    assemble_results,
    records_to_frame,
    frame_to_records,
    sort_results,
    pivot_scores,
)
from .permutation import (
    spawn_permutation_seeds,
    run_permutation_null,
    empirical_pvalue,
    null_zscore,
)
from .methods import (
    METHODS,
    run_ulm,
    run_mlm,
    run_wsum,
    run_wmean,
    run_gsea,
    run_ora,
)
from .consensus import CONSENSUS_STATISTICS, run_consensus

__all__ = [
    "RESULT_COLUMNS",
    "MethodName",
    "ResultRecord",
    "assemble_results",
    "records_to_frame",
    "frame_to_records",
    "sort_results",
    "pivot_scores",
    "spawn_permutation_seeds",
    "run_permutation_null",
    "empirical_pvalue",
    "null_zscore",
    "METHODS",
    "run_ulm",
    "run_mlm",
    "run_wsum",
    "run_wmean",
    "run_gsea",
    "run_ora",
    "CONSENSUS_STATISTICS",
    "run_consensus",
]
