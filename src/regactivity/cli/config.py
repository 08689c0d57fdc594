"""
Configuration file support for the regactivity CLI.

Supports YAML and JSON config files with CLI argument override.

Example config::

    mat: data/expression.csv
    net: data/collectri.csv
    output: results/activities.csv
    network:
      source: tf
      target: gene
      weight: mor
    minsize: 5
    methods: [ulm, mlm, wsum]
    consensus: true
    n_jobs: 2
    args:
      wsum:
        times: 1000
        seed: 7
"""

import json
from argparse import Namespace
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from regactivity.stats.methods import METHODS


@dataclass
class NetworkConfig:
    """Network column mapping."""
    source: str = "source"
    target: str = "target"
    weight: Optional[str] = "weight"
    likelihood: Optional[str] = "likelihood"


@dataclass
class DecoupleConfig:
    """
    Complete configuration schema for the ``regactivity run`` command.

    Mirrors the CLI argument structure for consistency.
    """
    mat: Optional[Path] = None
    net: Optional[Path] = None
    output: Optional[Path] = None
    network: NetworkConfig = field(default_factory=NetworkConfig)
    minsize: int = 5
    methods: List[str] = field(default_factory=lambda: ["ulm", "mlm", "wsum"])
    consensus: bool = True
    n_jobs: int = 1
    args: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            elif suffix == '.json':
                config = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Raises:
        ValueError: If configuration is invalid
    """
    known = {f.name for f in fields(DecoupleConfig)}
    unknown_keys = sorted(set(config) - known)
    if unknown_keys:
        raise ValueError(f"Unknown config key(s): {', '.join(unknown_keys)}")

    methods = config.get('methods')
    if methods is not None:
        if not isinstance(methods, list):
            raise ValueError(f"methods must be a list, got: {methods!r}")
        unknown = [m for m in methods if m not in METHODS]
        if unknown:
            raise ValueError(
                f"Invalid method(s) {', '.join(map(str, unknown))}. "
                f"Choose from: {', '.join(METHODS)}"
            )

    if 'minsize' in config:
        minsize = config['minsize']
        if isinstance(minsize, bool) or not isinstance(minsize, int) or minsize < 0:
            raise ValueError(f"minsize must be a non-negative integer, got: {minsize!r}")

    if 'n_jobs' in config:
        n_jobs = config['n_jobs']
        if isinstance(n_jobs, bool) or not isinstance(n_jobs, int) or n_jobs < 1:
            raise ValueError(f"n_jobs must be a positive integer, got: {n_jobs!r}")

    if 'network' in config and not isinstance(config['network'], dict):
        raise ValueError("network section must be a mapping")
    if 'network' in config:
        roles = {f.name for f in fields(NetworkConfig)}
        unknown_roles = sorted(set(config['network']) - roles)
        if unknown_roles:
            raise ValueError(f"Unknown network column role(s): {', '.join(unknown_roles)}")

    args = config.get('args')
    if args is not None:
        if not isinstance(args, dict) or not all(isinstance(v, dict) for v in args.values()):
            raise ValueError("args must map method names to option mappings")
        unknown = [m for m in args if m not in METHODS]
        if unknown:
            raise ValueError(f"args given for unknown method(s): {', '.join(unknown)}")


def build_config(config: Dict[str, Any]) -> DecoupleConfig:
    """
    Build a typed DecoupleConfig from a validated config mapping.

    Keys absent from the mapping keep the schema defaults.
    """
    values = {key: value for key, value in config.items() if key != 'network'}
    for key in ('mat', 'net', 'output'):
        if values.get(key) is not None:
            values[key] = Path(values[key])
    if 'args' in values:
        values['args'] = {name: dict(options) for name, options in (values['args'] or {}).items()}
    return DecoupleConfig(network=NetworkConfig(**(config.get('network') or {})), **values)


def _explicit_args(cli_args: Optional[List[str]]) -> set:
    """Names of arguments explicitly given on the command line."""
    short_to_long = {
        'm': 'mat',
        'n': 'net',
        'o': 'output',
    }
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            name = arg[2:].split('=', 1)[0].replace('-', '_')
            if name == 'no_consensus':
                name = 'consensus'
            explicit.add(name)
        elif arg.startswith('-') and len(arg) == 2 and arg[1] in short_to_long:
            explicit.add(short_to_long[arg[1]])
    return explicit


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep CLI default
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


def merge_config_with_args(config: Dict[str, Any], args: Namespace, cli_args: Optional[List[str]] = None) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Per-method ``args`` from the config are attached as ``method_args``.

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values)
                  If None, assumes all args are defaults

    Returns:
        Updated Namespace with merged values
    """
    explicit = _explicit_args(cli_args)
    schema = build_config(config)
    merged = Namespace(**vars(args))

    # Only keys present in the file override the CLI defaults
    for key in ('mat', 'net', 'output', 'minsize', 'methods', 'consensus', 'n_jobs'):
        if key in config:
            setattr(merged, key, _merge_value(getattr(merged, key), getattr(schema, key), key in explicit))

    network = config.get('network') or {}
    for role in ('source', 'target', 'weight', 'likelihood'):
        if role in network:
            setattr(merged, role, _merge_value(getattr(merged, role), getattr(schema.network, role), role in explicit))

    merged.method_args = schema.args
    return merged
