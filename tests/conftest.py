"""
Shared fixtures for the income / savings VECM tests.

Synthetic monthly data with known properties, and a fake FRED reader so the
whole pipeline runs offline.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from leadlag_models import fit_vecm


# ---------------------------------------------------------------------------
# Synthetic series
# ---------------------------------------------------------------------------

@pytest.fixture
def random_walk_pair():
    """A = random walk (I(1)); B = A + stationary noise, so A - B is I(0)."""
    rng = np.random.default_rng(42)
    n = 500
    a = np.cumsum(rng.normal(0, 1, n))
    b = a + rng.normal(0, 1, n)
    idx = pd.period_range("1980-01", periods=n, freq="M", name="period")
    return pd.DataFrame({"A": a, "B": b}, index=idx)


@pytest.fixture
def income_savings_wide():
    """Positive income and saving levels, cointegrated in logs."""
    rng = np.random.default_rng(7)
    n = 300
    log_income = np.log(4000.0) + np.cumsum(rng.normal(0.004, 0.006, n))
    gap = np.zeros(n)
    for t in range(1, n):
        gap[t] = 0.5 * gap[t - 1] + rng.normal(0, 0.05)
    log_saving = np.log(0.07) + log_income + gap
    idx = pd.period_range("1995-01", periods=n, freq="M", name="period")
    return pd.DataFrame({"DSPI": np.exp(log_income), "PMSAVE": np.exp(log_saving)}, index=idx)


@pytest.fixture
def fake_reader(income_savings_wide):
    """Stands in for pandas_datareader's FRED reader: date-indexed, one column per series."""
    frame = income_savings_wide.copy()
    frame.index = frame.index.to_timestamp()
    frame.index.name = "DATE"

    def reader(series_ids, start, end=None):
        for sid in series_ids:
            if sid not in frame.columns:
                raise OSError(f"Failed to get the data. Check that {sid!r} is a valid FRED series.")
        out = frame.loc[pd.Timestamp(start):, list(series_ids)]
        if end is not None:
            out = out.loc[:pd.Timestamp(end)]
        return out

    return reader


@pytest.fixture
def long_observations(income_savings_wide):
    """The synthetic data in long format (period, series_id, value)."""
    long = income_savings_wide.reset_index().melt(
        id_vars="period", var_name="series_id", value_name="value"
    )
    return long[["period", "series_id", "value"]]


@pytest.fixture
def fitted_vecm(random_walk_pair):
    return fit_vecm(random_walk_pair, k_ar_diff=1)
