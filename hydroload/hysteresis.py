"""
hydroload.hysteresis - Lagged log-flow difference metric
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .core import FormatError, InvalidArgumentError

logger = logging.getLogger(__name__)


def hysteresis(
    x: Union[np.ndarray, pd.Series, list], lag: int = 1
) -> Union[np.ndarray, pd.Series]:
    """
    Compute the hysteresis metric ``x[i] - x[i - lag]``.

    ``x`` is normally the natural log of daily flow, so the metric is the
    change in log-flow over ``lag`` days: positive on the rising limb of a
    hydrograph, negative on the falling limb. Differences are taken by
    position, so ``x`` should be a complete, date-ordered daily series.

    Parameters
    ----------
    x : array-like or pd.Series
        Log-flow series.
    lag : int
        Lag in days (>= 1).

    Returns
    -------
    np.ndarray or pd.Series
        Same length as ``x``; the first ``lag`` values are NaN. A Series
        input gives a Series with the same index named ``dQ{lag}``.

    Raises
    ------
    InvalidArgumentError
        If ``lag`` is not an integer >= 1 or ``x`` has fewer than
        ``lag + 1`` values.

    Examples
    --------
    >>> hysteresis(np.log([10.0, 20.0, 40.0]), lag=1)
    array([       nan, 0.69314718, 0.69314718])
    """
    if isinstance(lag, bool) or not isinstance(lag, (int, np.integer)):
        raise InvalidArgumentError(f"lag must be an integer, got {lag!r}")
    if lag < 1:
        raise InvalidArgumentError(f"lag must be >= 1, got {lag}")

    values = np.asarray(x, dtype=float)
    if values.ndim != 1:
        raise InvalidArgumentError("hysteresis requires a one-dimensional series")
    if len(values) < lag + 1:
        raise InvalidArgumentError(
            f"Series of length {len(values)} is too short for lag {lag} (need {lag + 1})"
        )

    result = np.full(len(values), np.nan)
    result[lag:] = values[lag:] - values[:-lag]

    if isinstance(x, pd.Series):
        return pd.Series(result, index=x.index, name=f"dQ{lag}")
    return result


def add_hysteresis(
    daily_flow: pd.DataFrame,
    flow: str = "Flow",
    dates: str = "Date",
    lags: Sequence[int] = (1,),
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Add ``dQ{lag}`` columns to a daily flow record.

    Differences are taken over calendar days: the record is laid on a
    complete daily range first, so a day whose lagged partner falls in
    a gap gets NaN rather than a difference across the gap. Only the
    days present in ``daily_flow`` are returned.

    Parameters
    ----------
    daily_flow : pd.DataFrame
        Daily flow with ``dates`` and ``flow`` columns.
    flow, dates : str
        Column names.
    lags : sequence of int
        Lags in days.

    Returns
    -------
    daily : pd.DataFrame
        Copy sorted by date (dates normalised to midnight) with the new
        columns.
    columns : list of str
        Names of the added columns.

    Raises
    ------
    FormatError
        If a date occurs more than once.
    InvalidArgumentError
        If a column is missing, the record is empty or has missing dates.
    """
    missing = [c for c in (flow, dates) if c not in daily_flow.columns]
    if missing:
        raise InvalidArgumentError(f"Daily flow is missing columns: {missing}")
    if daily_flow.empty:
        raise InvalidArgumentError("Daily flow is empty")

    daily = daily_flow.copy()
    daily[dates] = pd.to_datetime(daily[dates]).dt.normalize()
    if daily[dates].isna().any():
        raise InvalidArgumentError(f"Daily flow has missing values in {dates!r}")
    duplicated = daily[dates][daily[dates].duplicated()]
    if not duplicated.empty:
        raise FormatError(
            f"Daily flow has {len(duplicated)} duplicate dates, "
            f"first {duplicated.iloc[0].date()}"
        )
    daily = daily.sort_values(dates).reset_index(drop=True)

    full = pd.date_range(daily[dates].iloc[0], daily[dates].iloc[-1], freq="D")
    n_gap = len(full) - len(daily)
    if n_gap:
        logger.warning("Daily flow has %d missing days; dQ is NaN next to gaps", n_gap)
    log_flow = np.log(daily.set_index(dates)[flow].reindex(full).to_numpy(dtype=float))
    observed = full.isin(daily[dates])

    columns = []
    for lag in lags:
        name = f"dQ{lag}"
        daily[name] = hysteresis(log_flow, lag)[observed]
        columns.append(name)
    return daily, columns
