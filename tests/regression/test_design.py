"""Tests for design-matrix construction."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hydroload.core import (
    InvalidArgumentError,
    ModelSpecification,
    Term,
    Transform,
    dectime,
    loadest_center,
)
from hydroload.regression.design import build_design, primary_variable


@pytest.fixture
def frame() -> pd.DataFrame:
    dates = pd.date_range("2005-01-01", periods=12, freq="30D")
    return pd.DataFrame(
        {
            "Date": dates,
            "Flow": np.array([50, 80, 120, 300, 900, 400, 200, 150, 90, 70, 60, 55], float),
            "dQ1": np.linspace(-0.5, 0.5, 12),
        }
    )


class TestBuildDesign:
    def test_shape_and_intercept(self, frame) -> None:
        spec = ModelSpecification(
            "Nitrate",
            (Term.quadratic("Flow"), Term.dectime("Date"), Term.fourier("Date", 2)),
        )
        X, info = build_design(spec, frame)
        assert X.shape == (12, 8)
        assert np.all(X[:, 0] == 1.0)
        assert info.column_names == spec.column_names

    def test_quadratic_centring(self, frame) -> None:
        spec = ModelSpecification("Nitrate", (Term.quadratic("Flow"),))
        X, info = build_design(spec, frame)
        lnq = np.log(frame["Flow"].to_numpy())
        c = loadest_center(lnq)
        assert info.centers["log(Flow)"] == pytest.approx(c)
        np.testing.assert_allclose(X[:, 1], lnq - c)
        np.testing.assert_allclose(X[:, 2], (lnq - c) ** 2)

    def test_centring_disabled(self, frame) -> None:
        spec = ModelSpecification("Nitrate", (Term.linear("Flow"),))
        X, info = build_design(spec, frame, center_terms=False)
        assert info.centers["log(Flow)"] == 0.0
        np.testing.assert_allclose(X[:, 1], np.log(frame["Flow"].to_numpy()))

    def test_fourier_columns(self, frame) -> None:
        spec = ModelSpecification("Nitrate", (Term.fourier("Date", 2),))
        X, _ = build_design(spec, frame)
        t = dectime(frame["Date"])
        np.testing.assert_allclose(X[:, 1], np.sin(2 * np.pi * t))
        np.testing.assert_allclose(X[:, 2], np.cos(2 * np.pi * t))
        np.testing.assert_allclose(X[:, 3], np.sin(4 * np.pi * t))
        np.testing.assert_allclose(X[:, 4], np.cos(4 * np.pi * t))

    def test_custom_column_uncentred(self, frame) -> None:
        spec = ModelSpecification("Nitrate", (Term.custom("dQ1"),))
        X, info = build_design(spec, frame)
        np.testing.assert_array_equal(X[:, 1], frame["dQ1"].to_numpy())
        assert info.centers == {}

    def test_stored_centres_reused(self, frame) -> None:
        spec = ModelSpecification("Nitrate", (Term.linear("Flow"), Term.dectime("Date")))
        _, info = build_design(spec, frame)
        X_new, info_new = build_design(spec, frame.iloc[:3], centers=info.centers)
        assert info_new.centers == info.centers
        np.testing.assert_allclose(
            X_new[:, 1], np.log(frame["Flow"].to_numpy()[:3]) - info.centers["log(Flow)"]
        )

    def test_term_slices(self, frame) -> None:
        quad = Term.quadratic("Flow")
        season = Term.fourier("Date", 1)
        spec = ModelSpecification("Nitrate", (quad, season, Term.custom("dQ1")))
        _, info = build_design(spec, frame)
        assert info.term_slices[quad] == slice(1, 3)
        assert info.term_slices[season] == slice(3, 5)

    def test_quadratic_dectime(self, frame) -> None:
        spec = ModelSpecification("Nitrate", (Term.quadratic("Date", Transform.DECTIME),))
        X, info = build_design(spec, frame)
        assert "dectime(Date)" in info.centers
        np.testing.assert_allclose(X[:, 2], X[:, 1] ** 2)

    def test_missing_column(self, frame) -> None:
        spec = ModelSpecification("Nitrate", (Term.custom("dQ3"),))
        with pytest.raises(InvalidArgumentError, match="dQ3"):
            build_design(spec, frame)

    def test_non_positive_flow(self, frame) -> None:
        frame.loc[2, "Flow"] = 0.0
        spec = ModelSpecification("Nitrate", (Term.linear("Flow"),))
        with pytest.raises(InvalidArgumentError, match="positive"):
            build_design(spec, frame)

    def test_missing_custom_value(self, frame) -> None:
        frame.loc[0, "dQ1"] = np.nan
        spec = ModelSpecification("Nitrate", (Term.custom("dQ1"),))
        with pytest.raises(InvalidArgumentError, match="missing"):
            build_design(spec, frame)


class TestPrimaryVariable:
    def test_fourier_is_season(self, frame) -> None:
        season = primary_variable(Term.fourier("Date", 1), frame)
        assert np.all((season >= 0) & (season < 1))

    def test_log_flow(self, frame) -> None:
        np.testing.assert_allclose(
            primary_variable(Term.quadratic("Flow"), frame), np.log(frame["Flow"].to_numpy())
        )
