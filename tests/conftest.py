"""
Pytest configuration and shared fixtures.

Provides a small synthetic expression matrix and a three-regulator network
used across the method test suites.
"""

import numpy as np
import pandas as pd
import pytest


def make_matrix(n_features: int = 50, n_conditions: int = 4, seed: int = 42) -> pd.DataFrame:
    """
    Random features x conditions matrix.

    Features are named G00, G01, ... and conditions C1, C2, ...
    """
    rng = np.random.default_rng(seed)
    return pd.DataFrame(
        rng.normal(size=(n_features, n_conditions)),
        index=[f"G{i:02d}" for i in range(n_features)],
        columns=[f"C{j + 1}" for j in range(n_conditions)],
    )


def make_network(seed: int = 7) -> pd.DataFrame:
    """
    Three regulators over features G00-G19.

    T1 activates G00-G09, T2 alternately activates/represses G10-G19 and
    T3 has random positive weights on G05-G14. No likelihood column.
    """
    rng = np.random.default_rng(seed)
    rows = [("T1", f"G{i:02d}", 1.0) for i in range(10)]
    rows += [("T2", f"G{i:02d}", 1.0 if i % 2 else -1.0) for i in range(10, 20)]
    rows += [("T3", f"G{i:02d}", float(rng.uniform(0.5, 2.0))) for i in range(5, 15)]
    return pd.DataFrame(rows, columns=["source", "target", "weight"])


@pytest.fixture
def mat():
    """50 features x 4 conditions of standard normal noise."""
    return make_matrix()


@pytest.fixture
def net():
    """Three-regulator network (see make_network)."""
    return make_network()


@pytest.fixture
def single_net():
    """One regulator with graded weights over G00-G09."""
    return pd.DataFrame({
        "source": ["T1"] * 10,
        "target": [f"G{i:02d}" for i in range(10)],
        "weight": np.linspace(-1.0, 2.0, 10),
    })
