"""
regactivity run command - infer regulator activities from a matrix and a network.

Reads a features x conditions matrix and a regulator -> target network from
CSV, runs the selected methods (plus their consensus) and writes the long
results table to CSV.

Usage:
    regactivity run --mat expr.csv --net collectri.csv --output activities.csv
    regactivity run --mat expr.csv --net net.csv --output out.csv --methods ulm wsum --times 1000
    regactivity run --config run.yaml --minsize 10
"""

import argparse
import logging
from pathlib import Path

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from regactivity.cli._validators import _non_negative_int, _permutation_count, _positive_int
from regactivity.core.errors import RegActivityError
from regactivity.pipeline import DEFAULT_METHODS, decouple
from regactivity.stats.methods import METHODS

logger = logging.getLogger(__name__)

# Methods that accept permutation options
PERMUTATION_METHODS = ("wsum", "wmean", "gsea")


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the run subcommand."""
    parser = subparsers.add_parser(
        "run",
        help="Infer regulator activities",
        description="Score regulator activities per condition with an ensemble of methods.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Input Formats:
  --mat  CSV with feature IDs in the first column and one column per condition
  --net  CSV with one edge per row (source, target, optional weight/likelihood)

Output:
  CSV with columns statistic, source, condition, score, p_value
  (plus p_adj with --fdr)

Examples:
  regactivity run --mat expr.csv --net net.csv --output activities.csv
  regactivity run --mat expr.csv --net net.csv --output out.csv --methods ulm mlm --no-consensus
  regactivity run --config run.yaml --times 1000 --seed 7
        """
    )

    parser.add_argument("--mat", "-m", type=Path, default=None,
                        help="Features x conditions matrix (CSV)")
    parser.add_argument("--net", "-n", type=Path, default=None,
                        help="Regulatory network edge table (CSV)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output CSV for the results table")
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML/JSON config file (CLI flags override it)")

    parser.add_argument("--methods", nargs="+", choices=list(METHODS),
                        default=list(DEFAULT_METHODS),
                        help="Methods to run (default: %(default)s)")
    parser.add_argument("--no-consensus", action="store_false", dest="consensus",
                        help="Do not append the consensus score")

    parser.add_argument("--source", default="source", help="Network source column")
    parser.add_argument("--target", default="target", help="Network target column")
    parser.add_argument("--weight", default="weight",
                        help="Network weight column (absent column means weight 1)")
    parser.add_argument("--likelihood", default="likelihood",
                        help="Network likelihood column (absent column means likelihood 1)")
    parser.add_argument("--minsize", type=_non_negative_int, default=5,
                        help="Minimum targets per regulator (default: %(default)s)")

    parser.add_argument("--times", type=_permutation_count, default=None,
                        help="Permutations for wsum/wmean/gsea (default: method default)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for wsum/wmean/gsea permutations")
    parser.add_argument("--n-jobs", type=_positive_int, default=1, dest="n_jobs",
                        help="Methods run concurrently (default: %(default)s)")

    parser.add_argument("--fdr", action="store_true",
                        help="Add Benjamini-Hochberg adjusted p-values per statistic")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")

    parser.set_defaults(func=run_decouple)


def adjust_pvalues(results: pd.DataFrame) -> pd.DataFrame:
    """Add a ``p_adj`` column (Benjamini-Hochberg within each statistic)."""
    results = results.copy()
    results['p_adj'] = np.nan
    for _, index in results.groupby('statistic', sort=False).groups.items():
        pvals = results.loc[index, 'p_value']
        valid = pvals.notna()
        if valid.any():
            _, p_adj, _, _ = multipletests(pvals[valid].to_numpy(), method='fdr_bh')
            results.loc[pvals[valid].index, 'p_adj'] = p_adj
    return results


def _method_args(args: argparse.Namespace) -> dict:
    method_args = {
        name: dict(options)
        for name, options in (getattr(args, 'method_args', None) or {}).items()
        if name in args.methods
    }
    for name in args.methods:
        if name not in PERMUTATION_METHODS:
            continue
        if args.times is not None:
            method_args.setdefault(name, {})['times'] = args.times
        if args.seed is not None:
            method_args.setdefault(name, {})['seed'] = args.seed
    return method_args


def run_decouple(args: argparse.Namespace) -> int:
    """Execute the run command."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    if args.config:
        from regactivity.cli.config import load_config, merge_config_with_args, validate_config

        logger.info(f"Loading configuration from: {args.config}")
        try:
            config = load_config(args.config)
            validate_config(config)
            args = merge_config_with_args(config, args, getattr(args, 'cli_args', None))
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Config file error: {e}")
            return 1

    for required in ('mat', 'net', 'output'):
        if not getattr(args, required):
            logger.error(f"--{required} is required (via CLI or config file)")
            return 1

    try:
        mat = pd.read_csv(args.mat, index_col=0)
        network = pd.read_csv(args.net)
    except (FileNotFoundError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.error(f"Could not read input: {e}")
        return 1

    logger.info(f"Matrix: {mat.shape[0]} features x {mat.shape[1]} conditions")
    logger.info(f"Network: {len(network)} edges")

    try:
        results = decouple(
            mat,
            network,
            methods=args.methods,
            args=_method_args(args),
            consensus=args.consensus,
            source=args.source,
            target=args.target,
            weight=args.weight,
            likelihood=args.likelihood,
            minsize=args.minsize,
            n_jobs=args.n_jobs,
        )
    except (RegActivityError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    if args.fdr:
        results = adjust_pvalues(results)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    results.to_csv(output, index=False)
    logger.info(f"Wrote {len(results)} rows to {output}")
    return 0
