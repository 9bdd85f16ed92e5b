"""Tests for load estimation and aggregation."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from hydroload.core import InvalidArgumentError, ModelSpecification, Term
from hydroload.regression.load_reg import load_reg
from hydroload.regression.prediction import aggregate_loads, estimate_loads

SPEC = ModelSpecification(
    "Nitrate", (Term.quadratic("Flow"), Term.fourier("Date", 1), Term.custom("dQ1"))
)


@pytest.fixture
def daily_loads() -> pd.Series:
    dates = pd.date_range("2004-09-29", "2004-10-03", freq="D")
    return pd.Series([1.0, 2.0, 3.0, 4.0, 5.0], index=dates, name="load")


class TestAggregateLoads:
    def test_total(self, daily_loads) -> None:
        out = aggregate_loads(daily_loads, "total")
        assert len(out) == 1
        assert out.loc[0, "load"] == 15.0
        assert out.loc[0, "n_days"] == 5
        assert out.loc[0, "mean_daily_load"] == 3.0

    def test_month(self, daily_loads) -> None:
        out = aggregate_loads(daily_loads, "month")
        assert list(out["period"]) == ["2004-09", "2004-10"]
        assert list(out["load"]) == [3.0, 12.0]

    def test_water_year(self, daily_loads) -> None:
        out = aggregate_loads(daily_loads, "water_year")
        assert list(out["period"]) == [2004, 2005]
        assert list(out["n_days"]) == [2, 3]

    def test_day(self, daily_loads) -> None:
        out = aggregate_loads(daily_loads, "day")
        assert len(out) == 5
        np.testing.assert_array_equal(out["load"], daily_loads.to_numpy())

    def test_unknown_period(self, daily_loads) -> None:
        with pytest.raises(InvalidArgumentError, match="period"):
            aggregate_loads(daily_loads, "season")

    def test_empty(self) -> None:
        with pytest.raises(InvalidArgumentError):
            aggregate_loads(pd.Series([], dtype=float, index=pd.DatetimeIndex([])))


class TestEstimateLoads:
    def test_total_skips_incomplete_days(self, boyer_data, daily_flow, caplog) -> None:
        model = load_reg(SPEC, boyer_data)
        with caplog.at_level(logging.WARNING):
            out = estimate_loads(model, daily_flow, "total")
        # dQ1 is undefined on the first day of the record
        assert out.loc[0, "n_days"] == len(daily_flow) - 1
        assert "skipped" in caplog.text

    def test_periods_sum_to_total(self, boyer_data, daily_flow) -> None:
        model = load_reg(SPEC, boyer_data)
        total = estimate_loads(model, daily_flow, "total").loc[0, "load"]
        by_year = estimate_loads(model, daily_flow, "water_year")
        assert list(by_year["period"]) == list(range(2004, 2013))
        assert by_year["load"].sum() == pytest.approx(total)

    def test_bias_correction_scales_loads(self, boyer_data, daily_flow) -> None:
        model = load_reg(SPEC, boyer_data)
        raw = estimate_loads(model, daily_flow, bias_correction=None).loc[0, "load"]
        mle = estimate_loads(model, daily_flow, bias_correction="mle").loc[0, "load"]
        assert mle / raw == pytest.approx(model.bias_correction.mle)

    def test_missing_covariate_column(self, boyer_data, daily_flow) -> None:
        model = load_reg(SPEC, boyer_data)
        with pytest.raises(InvalidArgumentError, match="dQ1"):
            estimate_loads(model, daily_flow.drop(columns=["dQ1"]))
