"""
regactivity - Regulator activity inference from omics data

Scores the activity of regulators (transcription factors, kinases,
pathways) in every condition of a features x conditions matrix, using a
prior-knowledge network of signed regulator -> target edges and an
ensemble of enrichment methods combined into a consensus.
"""

__version__ = "0.1.0"

from regactivity.core.errors import (
    RegActivityError,
    SchemaError,
    ValidationError,
    EmptyResultError,
    RankDeficiencyError,
    PermutationCancelledError,
)
from regactivity.core.network import NetworkColumns, format_network, filter_by_minsize
from regactivity.core.matrix import AlignedData, align_network
from regactivity.stats import (
    run_ulm,
    run_mlm,
    run_wsum,
    run_wmean,
    run_gsea,
    run_ora,
    run_consensus,
)
from regactivity.pipeline import decouple, run_method, show_methods

__all__ = [
    "RegActivityError",
    "SchemaError",
    "ValidationError",
    "EmptyResultError",
    "RankDeficiencyError",
    "PermutationCancelledError",
    "NetworkColumns",
    "format_network",
    "filter_by_minsize",
    "AlignedData",
    "align_network",
    "run_ulm",
    "run_mlm",
    "run_wsum",
    "run_wmean",
    "run_gsea",
    "run_ora",
    "run_consensus",
    "decouple",
    "run_method",
    "show_methods",
]
