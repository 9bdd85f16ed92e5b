"""
Shared fixtures: a synthetic Boyer River-like record.

Daily flow from 2003-10-01 to 2012-09-30 (the Boyer River at Logan, IA
calibration period) with a seasonal cycle and AR(1) noise, and nitrate
samples every four weeks whose log load follows a known model including
a one-day hysteresis term. The coefficients are hypothetical; they only
fix the signs and magnitudes the fitting code must recover.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hydroload.core import dectime, load_conversion_factor
from hydroload.hysteresis import hysteresis

START = "2003-10-01"
END = "2012-09-30"

# True log-load model (natural log, kg/day)
TRUE_COEFFICIENTS = {
    "intercept": 7.0,
    "lnq": 1.1,
    "lnq2": -0.12,
    "trend": -0.04,
    "sin1": 0.35,
    "cos1": -0.25,
    "sin2": 0.12,
    "cos2": 0.10,
    "dQ1": 0.6,
}
LNQ_REF = 5.5
TIME_REF = 2008.3
NOISE_SD = 0.12


def make_daily_flow(seed: int = 6609500) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    dates = pd.date_range(START, END, freq="D")
    t = dectime(dates)
    shocks = rng.normal(0.0, 0.25, len(dates))
    noise = np.zeros(len(dates))
    for i in range(1, len(dates)):
        noise[i] = 0.9 * noise[i - 1] + shocks[i]
    log_q = LNQ_REF + 0.6 * np.sin(2 * np.pi * t) + 0.3 * np.cos(2 * np.pi * t) + noise
    daily = pd.DataFrame({"Date": dates, "Flow": np.exp(log_q)})
    daily["dQ1"] = hysteresis(log_q, 1)
    daily["dQ3"] = hysteresis(log_q, 3)
    return daily


def make_samples(daily: pd.DataFrame, seed: int = 631) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    sample_dates = pd.date_range("2003-10-15", END, freq="28D")
    rows = daily.set_index("Date").loc[sample_dates]
    c = TRUE_COEFFICIENTS
    t = dectime(sample_dates)
    x = np.log(rows["Flow"].to_numpy()) - LNQ_REF
    log_load = (
        c["intercept"]
        + c["lnq"] * x
        + c["lnq2"] * x**2
        + c["trend"] * (t - TIME_REF)
        + c["sin1"] * np.sin(2 * np.pi * t)
        + c["cos1"] * np.cos(2 * np.pi * t)
        + c["sin2"] * np.sin(4 * np.pi * t)
        + c["cos2"] * np.cos(4 * np.pi * t)
        + c["dQ1"] * rows["dQ1"].to_numpy()
        + rng.normal(0.0, NOISE_SD, len(sample_dates))
    )
    factor = load_conversion_factor("mg/L", "cfs", "kg")
    nitrate = np.exp(log_load) / (rows["Flow"].to_numpy() * factor)
    return pd.DataFrame({"Date": sample_dates, "Nitrate": nitrate})


@pytest.fixture
def daily_flow() -> pd.DataFrame:
    """Daily flow with dQ1 and dQ3 hysteresis columns."""
    return make_daily_flow()


@pytest.fixture
def boyer_samples(daily_flow) -> pd.DataFrame:
    """Nitrate samples (mg/L) on dates covered by ``daily_flow``."""
    return make_samples(daily_flow)


@pytest.fixture
def boyer_data(daily_flow, boyer_samples) -> pd.DataFrame:
    """Samples with Flow, dQ1 and dQ3 attached (same-date merge)."""
    flow = daily_flow.set_index("Date")
    data = boyer_samples.copy()
    for column in ("Flow", "dQ1", "dQ3"):
        data[column] = flow.loc[data["Date"], column].to_numpy()
    return data
