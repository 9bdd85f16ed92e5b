"""
hydroload.merge - Align water-quality samples with daily flow.

Samples are joined to a daily flow record on the calendar date. Only
exact date matches are used; there is no interpolation between days.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

import pandas as pd

from .core import FormatError, InvalidArgumentError

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Result of merging samples with daily flow.

    Parameters
    ----------
    data : pd.DataFrame
        Sample rows with the requested flow columns attached.
    n_samples : int
        Number of sample rows supplied.
    n_dropped : int
        Number of sample rows with no matching flow date.
    dropped_dates : list of pd.Timestamp
        Dates of the dropped rows, in input order.
    """

    data: pd.DataFrame
    n_samples: int
    n_dropped: int = 0
    dropped_dates: List[pd.Timestamp] = field(default_factory=list)

    @property
    def n_merged(self) -> int:
        return len(self.data)


def _normalized_dates(frame: pd.DataFrame, column: str, what: str) -> pd.Series:
    if column not in frame.columns:
        raise InvalidArgumentError(f"{what} has no date column {column!r}")
    try:
        dates = pd.to_datetime(frame[column])
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{what} column {column!r} is not date-like: {exc}") from exc
    if dates.isna().any():
        raise InvalidArgumentError(f"{what} column {column!r} has missing dates")
    return dates.dt.normalize()


def merge_flow(
    samples: pd.DataFrame,
    flow: pd.DataFrame,
    flow_columns: Union[str, Sequence[str]] = "Flow",
    sample_dates: str = "Date",
    flow_dates: Optional[str] = None,
) -> MergeResult:
    """
    Attach daily flow (and derived metrics) to water-quality samples.

    Parameters
    ----------
    samples : pd.DataFrame
        Water-quality samples with a date column.
    flow : pd.DataFrame
        Daily flow record; must have at most one row per date.
    flow_columns : str or sequence of str
        Columns of ``flow`` to copy onto the samples, e.g.
        ``["Flow", "dQ1", "dQ3"]``.
    sample_dates : str
        Date column in ``samples``.
    flow_dates : str, optional
        Date column in ``flow``; defaults to ``sample_dates``.

    Returns
    -------
    MergeResult
        Merged rows in sample order plus the count of dropped samples.

    Raises
    ------
    FormatError
        If ``flow`` contains duplicate dates.
    InvalidArgumentError
        If a date or flow column is missing.
    """
    if isinstance(flow_columns, str):
        flow_columns = [flow_columns]
    flow_columns = list(flow_columns)
    if not flow_columns:
        raise InvalidArgumentError("At least one flow column is required")
    flow_dates = flow_dates or sample_dates

    missing = [c for c in flow_columns if c not in flow.columns]
    if missing:
        raise InvalidArgumentError(f"Flow data is missing columns: {missing}")
    clashes = [c for c in flow_columns if c in samples.columns and c != sample_dates]
    if clashes:
        raise InvalidArgumentError(f"Sample data already has columns {clashes}")

    s_dates = _normalized_dates(samples, sample_dates, "Sample data")
    q_dates = _normalized_dates(flow, flow_dates, "Flow data")

    duplicated = q_dates[q_dates.duplicated()]
    if not duplicated.empty:
        raise FormatError(
            f"Flow data has {len(duplicated)} duplicate dates, first {duplicated.iloc[0].date()}"
        )

    lookup = flow[flow_columns].copy()
    lookup.index = pd.DatetimeIndex(q_dates.to_numpy())

    matched = s_dates.isin(lookup.index).to_numpy()
    dropped = [pd.Timestamp(d) for d in s_dates[~matched]]
    if dropped:
        logger.warning(
            "%d of %d samples have no flow on the same date and were dropped",
            len(dropped),
            len(samples),
        )

    merged = samples.loc[matched].copy()
    merged[sample_dates] = s_dates[matched].to_numpy()
    attached = lookup.loc[merged[sample_dates].to_numpy()]
    for column in flow_columns:
        merged[column] = attached[column].to_numpy()

    logger.info("Merged %d samples with daily flow", len(merged))
    return MergeResult(
        data=merged.reset_index(drop=True),
        n_samples=len(samples),
        n_dropped=len(dropped),
        dropped_dates=dropped,
    )
