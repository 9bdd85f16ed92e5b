"""
hydroload.regression.prediction - Load estimation from daily flow.

Applies a fitted load model to a daily flow record and sums the daily
loads by day, month, water year or over the whole record.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

from hydroload.core import InvalidArgumentError, water_year
from hydroload.regression.load_reg import FittedModel

log = logging.getLogger(__name__)

PERIODS = ("day", "month", "water_year", "total")


def aggregate_loads(loads: pd.Series, period: str = "total") -> pd.DataFrame:
    """
    Sum daily loads over ``period``.

    Parameters
    ----------
    loads : pd.Series
        Daily loads indexed by date.
    period : {"day", "month", "water_year", "total"}
        Aggregation period.

    Returns
    -------
    pd.DataFrame
        Columns ``period``, ``n_days``, ``load`` (total over the period)
        and ``mean_daily_load``.
    """
    if period not in PERIODS:
        raise InvalidArgumentError(f"Unknown period {period!r}; expected one of {PERIODS}")
    if loads.empty:
        raise InvalidArgumentError("No daily loads to aggregate")

    dates = pd.DatetimeIndex(loads.index)
    if period == "day":
        keys = dates.normalize()
    elif period == "month":
        keys = dates.to_period("M").astype(str)
    elif period == "water_year":
        keys = water_year(dates)
    else:
        keys = np.repeat("total", len(loads))

    grouped = pd.Series(loads.to_numpy(), index=keys).groupby(level=0, sort=True)
    out = pd.DataFrame(
        {
            "n_days": grouped.size(),
            "load": grouped.sum(),
            "mean_daily_load": grouped.mean(),
        }
    )
    out.index.name = "period"
    return out.reset_index()


def estimate_loads(
    model: FittedModel,
    daily: pd.DataFrame,
    period: str = "total",
    bias_correction: Optional[str] = "mle",
) -> pd.DataFrame:
    """
    Estimate loads for a daily record and aggregate them.

    Days lacking any column the model needs (for example the first days
    of a hysteresis series) are skipped and counted in the log.

    Parameters
    ----------
    model : FittedModel
        Fitted load model.
    daily : pd.DataFrame
        Daily flow record with the flow, date and covariate columns.
    period : str
        Aggregation period (see :func:`aggregate_loads`).
    bias_correction : {"mle", "duan", None}
        Retransformation bias correction.
    """
    needed = [model.flow, model.dates] + [
        c for c in model.specification.source_columns() if c not in (model.flow, model.dates)
    ]
    missing = [c for c in needed if c not in daily.columns]
    if missing:
        raise InvalidArgumentError(f"Daily data is missing columns: {missing}")

    complete = daily[needed].notna().all(axis=1)
    n_skipped = int((~complete).sum())
    if n_skipped:
        log.warning("%d days with missing values skipped in load estimation", n_skipped)
    usable = daily.loc[complete]

    loads = model.predict_load(usable, bias_correction=bias_correction)
    return aggregate_loads(loads, period)
