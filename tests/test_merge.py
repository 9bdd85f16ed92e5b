"""Tests for same-date merging of samples and daily flow."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from hydroload import FormatError, InvalidArgumentError, merge_flow


@pytest.fixture
def flow() -> pd.DataFrame:
    dates = pd.date_range("2010-01-01", "2010-03-31", freq="D")
    return pd.DataFrame(
        {
            "Date": dates,
            "Flow": np.arange(1.0, len(dates) + 1.0),
            "dQ1": np.linspace(-1, 1, len(dates)),
        }
    )


@pytest.fixture
def samples() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Date": [
                pd.Timestamp("2010-01-05"),
                pd.Timestamp("2010-02-10 13:45"),
                pd.Timestamp("2010-03-31"),
            ],
            "Nitrate": [5.1, 7.2, 3.3],
        }
    )


class TestMergeFlow:
    def test_all_dates_contained(self, samples, flow) -> None:
        result = merge_flow(samples, flow, flow_columns=["Flow", "dQ1"])
        assert result.n_merged == len(samples)
        assert result.n_dropped == 0
        assert result.n_samples == 3
        assert list(result.data["Flow"]) == [5.0, 41.0, 90.0]

    def test_time_of_day_ignored(self, samples, flow) -> None:
        result = merge_flow(samples, flow)
        assert result.data.loc[1, "Date"] == pd.Timestamp("2010-02-10")

    def test_unmatched_dates_dropped_and_counted(self, samples, flow, caplog) -> None:
        extra = pd.DataFrame(
            {"Date": pd.to_datetime(["2009-12-31", "2010-04-02"]), "Nitrate": [1.0, 2.0]}
        )
        with caplog.at_level(logging.WARNING):
            result = merge_flow(pd.concat([samples, extra]), flow)
        assert result.n_merged == 3
        assert result.n_dropped == 2
        assert result.dropped_dates == [pd.Timestamp("2009-12-31"), pd.Timestamp("2010-04-02")]
        assert "dropped" in caplog.text

    def test_multiple_samples_same_day(self, flow) -> None:
        samples = pd.DataFrame(
            {"Date": pd.to_datetime(["2010-01-05 08:00", "2010-01-05 16:00"]), "Nitrate": [1, 2]}
        )
        result = merge_flow(samples, flow)
        assert result.n_merged == 2
        assert list(result.data["Flow"]) == [5.0, 5.0]

    def test_duplicate_flow_dates(self, samples, flow) -> None:
        with pytest.raises(FormatError, match="duplicate"):
            merge_flow(samples, pd.concat([flow, flow.iloc[[3]]]))

    def test_missing_flow_column(self, samples, flow) -> None:
        with pytest.raises(InvalidArgumentError, match="dQ3"):
            merge_flow(samples, flow, flow_columns=["Flow", "dQ3"])

    def test_missing_date_column(self, samples, flow) -> None:
        with pytest.raises(InvalidArgumentError, match="date column"):
            merge_flow(samples, flow, sample_dates="sample_dt")

    def test_separate_date_column_names(self, samples, flow) -> None:
        flow = flow.rename(columns={"Date": "dateTime"})
        result = merge_flow(samples, flow, sample_dates="Date", flow_dates="dateTime")
        assert result.n_merged == 3

    def test_sample_order_preserved(self, samples, flow) -> None:
        shuffled = samples.iloc[[2, 0, 1]]
        result = merge_flow(shuffled, flow)
        assert list(result.data["Nitrate"]) == [3.3, 5.1, 7.2]

    def test_synthetic_boyer(self, boyer_samples, daily_flow) -> None:
        result = merge_flow(boyer_samples, daily_flow, flow_columns=["Flow", "dQ1", "dQ3"])
        assert result.n_merged == len(boyer_samples)
        assert result.data["dQ1"].notna().all()
