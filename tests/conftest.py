"""
Shared fixtures for chartpages tests.
"""

import os

import numpy as np
import pandas as pd
import pytest

from chartpages.settings import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Ignore CHARTPAGES_* variables from the developer's environment."""
    for name in list(os.environ):
        if name.startswith("CHARTPAGES_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sales() -> pd.DataFrame:
    """Twelve rows of monthly sales across two regions."""
    return pd.DataFrame({
        "month": pd.date_range("2024-01-01", periods=12, freq="MS"),
        "region": ["EU", "US"] * 6,
        "quarter": np.repeat(["Q1", "Q2", "Q3", "Q4"], 3),
        "revenue": np.linspace(100.0, 210.5, 12),
        "units": np.arange(10, 22, dtype="int64"),
    })


@pytest.fixture
def costs() -> pd.DataFrame:
    return pd.DataFrame({
        "category": ["rent", "staff", "travel"],
        "amount": [1200.0, 5400.5, 310.25],
    })
