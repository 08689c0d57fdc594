"""
Activity inference method implementations.

Each method follows the same contract::

    run_<method>(mat, network, source, target, weight, likelihood,
                 ..., minsize) -> long result table

* :func:`run_ulm`   -- univariate linear model (t-value per source)
* :func:`run_mlm`   -- multivariate linear model (t-value per coefficient)
* :func:`run_wsum`  -- weighted sum with permutation null
* :func:`run_wmean` -- weighted mean with permutation null
* :func:`run_gsea`  -- rank-based running-sum enrichment
* :func:`run_ora`   -- over-representation (Fisher exact test)

``METHODS`` maps each method name to its ``run_`` function.
"""

from __future__ import annotations

from .ulm import ULMMethod, run_ulm
from .mlm import MLMMethod, run_mlm
from .wsum import WeightedSumMethod, run_wsum, run_wmean
from .gsea import GSEAMethod, run_gsea
from .ora import ORAMethod, run_ora

METHODS = {
    "ulm": run_ulm,
    "mlm": run_mlm,
    "wsum": run_wsum,
    "wmean": run_wmean,
    "gsea": run_gsea,
    "ora": run_ora,
}

__all__ = [
    "METHODS",
    "ULMMethod",
    "MLMMethod",
    "WeightedSumMethod",
    "GSEAMethod",
    "ORAMethod",
    "run_ulm",
    "run_mlm",
    "run_wsum",
    "run_wmean",
    "run_gsea",
    "run_ora",
]
