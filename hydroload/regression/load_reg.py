"""
hydroload.regression.load_reg - Load regression models.

Fits ``log(load) = b0 + sum(b_j * x_j) + e`` by ordinary least squares,
where load is concentration x flow x a unit conversion factor and the
``x_j`` come from an explicit list of :class:`~hydroload.core.Term`
descriptors (quadratic log-flow, decimal time, Fourier seasonal terms,
custom covariates such as a hysteresis metric).

Examples
--------
>>> from hydroload import LoadRegression, ModelSpecification, Term
>>> spec = ModelSpecification(
...     "Nitrate",
...     (Term.quadratic("Flow"), Term.dectime("Date"),
...      Term.fourier("Date", 2), Term.custom("dQ1")),
... )
>>> model = LoadRegression(spec, merged.data, flow="Flow", dates="Date").fit()
>>> print(model.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from hydroload.config import LoadModelConfig
from hydroload.core import (
    FitError,
    InvalidArgumentError,
    ModelSpecification,
    Term,
    check_positive,
)
from hydroload.regression import diagnostics
from hydroload.regression.bias import BiasCorrection, BiasCorrector
from hydroload.regression.design import DesignInfo, build_design, primary_variable

log = logging.getLogger(__name__)


def _read_only(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=float)
    a.setflags(write=False)
    return a


def _all_bool(values: pd.Series) -> bool:
    """True for an object column holding only True/False (and missing) values."""
    if values.dtype != object:
        return False
    present = values.dropna()
    return not present.empty and all(isinstance(v, (bool, np.bool_)) for v in present)


# ---------------------------------------------------------------------------
# FittedModel - immutable result of one fit
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    A fitted load model.

    Instances are immutable; refitting produces a new object. Arrays are
    ordered like ``data`` (calibration samples sorted by date).

    Parameters
    ----------
    specification : ModelSpecification
        Model terms and response column.
    design : DesignInfo
        Centring values and term column slices used for the fit.
    config : LoadModelConfig
        Units and fitting options.
    flow, dates : str
        Flow and date column names.
    data : pd.DataFrame
        Calibration samples actually used.
    design_matrix : np.ndarray
        Design matrix (intercept first).
    response : np.ndarray
        Observed log load.
    beta : np.ndarray
        Coefficient estimates.
    covariance : np.ndarray
        Coefficient covariance matrix.
    n_censored : int
        Censored samples excluded from calibration.
    station : str
        Station identifier used in summaries.
    """

    specification: ModelSpecification
    design: DesignInfo
    config: LoadModelConfig
    flow: str
    dates: str
    data: pd.DataFrame
    design_matrix: np.ndarray
    response: np.ndarray
    beta: np.ndarray
    covariance: np.ndarray
    n_censored: int = 0
    station: str = ""

    # ------------------------------------------------------------------
    # Basic quantities
    # ------------------------------------------------------------------

    @property
    def n_obs(self) -> int:
        return len(self.response)

    @property
    def n_coefficients(self) -> int:
        return len(self.beta)

    @property
    def degrees_of_freedom(self) -> int:
        return self.n_obs - self.n_coefficients

    @cached_property
    def fitted(self) -> np.ndarray:
        """Fitted log load."""
        return _read_only(self.design_matrix @ self.beta)

    @cached_property
    def residuals(self) -> np.ndarray:
        return _read_only(self.response - self.fitted)

    @cached_property
    def coefficients(self) -> pd.DataFrame:
        """Coefficient table: estimate, std_error, t_value, p_value."""
        se = np.sqrt(np.diag(self.covariance))
        with np.errstate(divide="ignore", invalid="ignore"):
            t_value = self.beta / se
        p_value = 2.0 * stats.t.sf(np.abs(t_value), self.degrees_of_freedom)
        return pd.DataFrame(
            {
                "estimate": self.beta,
                "std_error": se,
                "t_value": t_value,
                "p_value": p_value,
            },
            index=pd.Index(self.design.column_names, name="term"),
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @cached_property
    def residual_variance(self) -> float:
        """Unbiased residual variance ``RSS / (n - p)``."""
        return float(np.sum(self.residuals**2)) / self.degrees_of_freedom

    @property
    def residual_std_error(self) -> float:
        return float(np.sqrt(self.residual_variance))

    @cached_property
    def r_squared(self) -> float:
        return diagnostics.r_squared(self.response, self.residuals)

    @property
    def adj_r_squared(self) -> float:
        return diagnostics.adjusted_r_squared(self.r_squared, self.n_obs, self.n_coefficients)

    @cached_property
    def aic(self) -> float:
        return diagnostics.aic(self.residuals, self.n_coefficients)

    @cached_property
    def sppc(self) -> float:
        return diagnostics.sppc(self.residuals, self.n_coefficients)

    @cached_property
    def ppcc(self) -> float:
        return diagnostics.ppcc(self.residuals)

    @property
    def ppcc_pvalue(self) -> float:
        return diagnostics.ppcc_pvalue(self.ppcc, self.n_obs)

    @cached_property
    def serial_correlation(self) -> float:
        return diagnostics.serial_correlation(self.residuals)

    @cached_property
    def vif(self) -> Dict[str, float]:
        return diagnostics.variance_inflation(self.design_matrix, self.design.column_names)

    @cached_property
    def bias_correction(self) -> BiasCorrection:
        return BiasCorrector.compute(self.residuals, ddof=self.n_coefficients)

    @cached_property
    def observed_load(self) -> np.ndarray:
        return _read_only(np.exp(self.response))

    @cached_property
    def estimated_load(self) -> np.ndarray:
        """Calibration loads back-transformed with the MLE factor."""
        return _read_only(np.exp(self.fitted) * self.bias_correction.mle)

    @cached_property
    def load_bias(self) -> Dict[str, float]:
        """Bp, PLR and E for the calibration loads."""
        return diagnostics.load_bias_statistics(self.observed_load, self.estimated_load)

    @property
    def percent_bias(self) -> float:
        return self.load_bias["Bp"]

    def statistics(self) -> Dict[str, float]:
        """Summary statistics as a flat dict."""
        bcf = self.bias_correction
        return {
            "n_obs": self.n_obs,
            "n_censored": self.n_censored,
            "n_coefficients": self.n_coefficients,
            "residual_variance": self.residual_variance,
            "r_squared": self.r_squared,
            "adj_r_squared": self.adj_r_squared,
            "aic": self.aic,
            "sppc": self.sppc,
            "ppcc": self.ppcc,
            "ppcc_pvalue": self.ppcc_pvalue,
            "serial_correlation": self.serial_correlation,
            "bcf_mle": bcf.mle,
            "bcf_duan": bcf.duan,
            **self.load_bias,
        }

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _resolve_term(self, term: Union[Term, str]) -> Term:
        if isinstance(term, Term):
            if term not in self.design.term_slices:
                raise InvalidArgumentError(f"Term {term.label} is not in the model")
            return term
        for t in self.specification.terms:
            if term in (t.label, t.variable, t.source) or term in t.column_names:
                return t
        raise InvalidArgumentError(f"No model term matches {term!r}")

    def partial_residuals(self, term: Union[Term, str]) -> pd.DataFrame:
        """
        Partial residuals for one term.

        The partial residual is the residual plus the fitted contribution
        of the term; plotted against ``x`` it shows whether the term's
        functional form is adequate.

        Parameters
        ----------
        term : Term or str
            The term, or its label / variable / source column name.

        Returns
        -------
        pd.DataFrame
            Columns ``date``, ``x`` (uncentred variable, or season for
            Fourier terms), ``contribution`` and ``partial_residual``.
        """
        t = self._resolve_term(term)
        cols = self.design.term_slices[t]
        contribution = self.design_matrix[:, cols] @ self.beta[cols]
        return pd.DataFrame(
            {
                "date": self.data[self.dates].to_numpy(),
                "x": primary_variable(t, self.data),
                "contribution": contribution,
                "partial_residual": self.residuals + contribution,
            }
        )

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict_log(self, newdata: pd.DataFrame) -> np.ndarray:
        """Log-load predictions (median) using the calibration centring."""
        X, _ = build_design(self.specification, newdata, centers=self.design.centers)
        return X @ self.beta

    def predict_load(
        self, newdata: pd.DataFrame, bias_correction: Optional[str] = "mle"
    ) -> pd.Series:
        """
        Daily load estimates for ``newdata``.

        Parameters
        ----------
        newdata : pd.DataFrame
            Rows with the flow, date and custom covariate columns; rows
            missing any of them must be removed beforehand.
        bias_correction : {"mle", "duan", None}
            Factor applied to the back-transformed predictions.

        Returns
        -------
        pd.Series
            Load per day in ``config.load_units``, indexed by date.
        """
        factor = self.bias_correction.factor(bias_correction or "none")
        loads = np.exp(self.predict_log(newdata)) * factor
        index = pd.DatetimeIndex(pd.to_datetime(newdata[self.dates]), name=self.dates)
        return pd.Series(loads, index=index, name="load")

    def predict_concentration(
        self, newdata: pd.DataFrame, bias_correction: Optional[str] = "mle"
    ) -> pd.Series:
        """Concentration implied by the predicted load and the flow."""
        loads = self.predict_load(newdata, bias_correction)
        flow = newdata[self.flow].to_numpy(dtype=float)
        check_positive(flow, self.flow)
        conc = loads.to_numpy() / (flow * self.config.conversion_factor)
        return pd.Series(conc, index=loads.index, name=self.specification.response)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summary(self) -> str:
        """Text summary of the fitted model."""
        c = self.config
        header = "Load Regression Model"
        if self.station:
            header += f" - {self.station}"
        lines = [
            header,
            "=" * 60,
            f"Model: {self.specification.formula}",
            f"Response: {self.specification.response} ({c.conc_units}), "
            f"flow {self.flow} ({c.flow_units}), load {c.load_units}/day",
            f"Observations: {self.n_obs}  (censored excluded: {self.n_censored})",
            "",
            f"{'Term':<24}{'Estimate':>12}{'Std.Error':>12}{'t':>9}{'p':>10}",
        ]
        for name, row in self.coefficients.iterrows():
            lines.append(
                f"{name:<24}{row['estimate']:>12.5f}{row['std_error']:>12.5f}"
                f"{row['t_value']:>9.2f}{row['p_value']:>10.4f}"
            )
        if self.design.centers:
            lines.append("")
            lines.append("Centring values:")
            for name, value in self.design.centers.items():
                lines.append(f"  {name:<22}{value:>12.5f}")
        lines.extend(
            [
                "",
                f"Residual variance:   {self.residual_variance:.5f}",
                f"R-squared:           {100 * self.r_squared:.2f} %",
                f"AIC:                 {self.aic:.3f}",
                f"SPPC:                {self.sppc:.3f}",
                f"PPCC:                {self.ppcc:.4f} (p = {self.ppcc_pvalue:.4f})",
                f"Serial correlation:  {self.serial_correlation:.4f}",
                f"BCF (MLE / Duan):    {self.bias_correction.mle:.4f} / "
                f"{self.bias_correction.duan:.4f}",
                f"Bp:                  {self.percent_bias:.3f} %",
                f"PLR:                 {self.load_bias['PLR']:.4f}",
                f"E:                   {self.load_bias['E']:.4f}",
                "",
                "Variance inflation factors:",
            ]
        )
        for name, value in self.vif.items():
            lines.append(f"  {name:<22}{value:>10.3f}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()


# ---------------------------------------------------------------------------
# LoadRegression - fits a specification to calibration data
# ---------------------------------------------------------------------------


class LoadRegression:
    """
    Least-squares load regression for one model specification.

    Parameters
    ----------
    specification : ModelSpecification
        Response column and terms.
    data : pd.DataFrame
        Calibration samples with concentration, flow, date and any custom
        covariate columns (typically :attr:`MergeResult.data`).
    flow : str
        Flow column.
    dates : str
        Date column.
    config : LoadModelConfig, optional
        Units and fitting options.
    censored : str, optional
        Boolean column (or remark column where ``"<"`` marks a censored
        value). Censored samples are excluded from the fit.
    station : str
        Station identifier for summaries.
    """

    def __init__(
        self,
        specification: ModelSpecification,
        data: pd.DataFrame,
        flow: str = "Flow",
        dates: str = "Date",
        config: Optional[LoadModelConfig] = None,
        censored: Optional[str] = None,
        station: str = "",
    ):
        self._specification = specification
        self._data = data
        self._flow = flow
        self._dates = dates
        self._config = config or LoadModelConfig()
        self._censored = censored
        self._station = station
        self._model: Optional[FittedModel] = None

    @property
    def specification(self) -> ModelSpecification:
        return self._specification

    @property
    def config(self) -> LoadModelConfig:
        return self._config

    @property
    def model(self) -> Optional[FittedModel]:
        """Most recent fit, or None before :meth:`fit` is called."""
        return self._model

    def _censored_mask(self, frame: pd.DataFrame) -> np.ndarray:
        if self._censored is None:
            return np.zeros(len(frame), dtype=bool)
        if self._censored not in frame.columns:
            raise InvalidArgumentError(f"Data has no censoring column {self._censored!r}")
        flags = frame[self._censored]
        if pd.api.types.is_bool_dtype(flags) or _all_bool(flags):
            # missing flags count as uncensored
            return flags.astype("boolean").fillna(False).to_numpy(dtype=bool)
        return flags.astype(str).str.strip().eq("<").to_numpy()

    def prepare(self) -> Tuple[pd.DataFrame, int]:
        """
        Calibration frame: required columns present, incomplete and
        censored rows removed, sorted by date.

        Returns the frame and the number of censored samples excluded.
        """
        spec = self._specification
        frame = self._data
        required = [spec.response, self._flow, self._dates]
        required += [c for c in spec.source_columns() if c not in required]
        missing = [c for c in required if c not in frame.columns]
        if missing:
            raise InvalidArgumentError(f"Data is missing columns: {missing}")
        if frame.empty:
            raise InvalidArgumentError("Calibration data is empty")

        censored = self._censored_mask(frame)
        n_censored = int(censored.sum())
        if n_censored:
            log.warning("%d censored samples excluded from calibration", n_censored)

        numeric = [c for c in required if c != self._dates]
        values = frame[numeric].apply(pd.to_numeric, errors="coerce")
        complete = values.notna().all(axis=1).to_numpy() & frame[self._dates].notna().to_numpy()
        n_incomplete = int((~complete & ~censored).sum())
        if n_incomplete:
            log.warning("%d samples with missing values dropped", n_incomplete)

        prepared = frame.loc[complete & ~censored].copy()
        prepared[self._dates] = pd.to_datetime(prepared[self._dates])
        prepared = prepared.sort_values(self._dates, kind="mergesort").reset_index(drop=True)
        return prepared, n_censored

    def fit(self) -> FittedModel:
        """
        Fit the model, replacing any previous fit.

        Raises
        ------
        FitError
            If there are too few samples or the design matrix is rank
            deficient.
        InvalidArgumentError
            If required columns are missing or flow / concentration are
            not positive.
        """
        spec = self._specification
        cfg = self._config
        frame, n_censored = self.prepare()

        conc = frame[spec.response].to_numpy(dtype=float)
        flow = frame[self._flow].to_numpy(dtype=float)
        check_positive(conc, spec.response)
        check_positive(flow, self._flow)
        y = np.log(conc * flow * cfg.conversion_factor)

        X, info = build_design(spec, frame, center_terms=cfg.center_terms)
        n, p = X.shape
        if n < cfg.min_samples:
            raise FitError(f"{n} usable samples; at least {cfg.min_samples} are required")
        if n <= p:
            raise FitError(f"{n} samples cannot determine {p} coefficients")
        rank = np.linalg.matrix_rank(X)
        if rank < p:
            raise FitError(
                f"Design matrix is rank deficient (rank {rank} < {p} columns) "
                f"for {spec.formula}"
            )

        beta, *_ = np.linalg.lstsq(X, y, rcond=None)
        resid = y - X @ beta
        s2 = float(np.sum(resid**2)) / (n - p)
        covariance = s2 * np.linalg.inv(X.T @ X)

        self._model = FittedModel(
            specification=spec,
            design=info,
            config=cfg,
            flow=self._flow,
            dates=self._dates,
            data=frame,
            design_matrix=_read_only(X),
            response=_read_only(y),
            beta=_read_only(beta),
            covariance=_read_only(covariance),
            n_censored=n_censored,
            station=self._station,
        )
        log.info(
            "Fitted %s: n=%d R2=%.4f AIC=%.3f",
            spec.formula,
            n,
            self._model.r_squared,
            self._model.aic,
        )
        return self._model


def load_reg(
    specification: ModelSpecification,
    data: pd.DataFrame,
    flow: str = "Flow",
    dates: str = "Date",
    config: Optional[LoadModelConfig] = None,
    censored: Optional[str] = None,
    station: str = "",
) -> FittedModel:
    """Fit ``specification`` to ``data`` and return the fitted model."""
    return LoadRegression(
        specification,
        data,
        flow=flow,
        dates=dates,
        config=config,
        censored=censored,
        station=station,
    ).fit()
