"""
hydroload - Python library for water-quality load regression

Includes:
- Hysteresis metric (lagged log-flow differences) for daily flow
- Same-date merging of water-quality samples with daily flow
- Load regression with quadratic flow, decimal time, Fourier seasonal
  and custom covariate terms
- LOADEST predefined model ranking by AIC, SPPC and PPCC
- MLE and Duan retransformation bias correction
- Daily, monthly, water-year and total load estimation
"""

import logging
from typing import Optional, Sequence

import pandas as pd

from .config import LoadModelConfig
from .core import (
    FitError,
    FormatError,
    HydroloadError,
    InvalidArgumentError,
    ModelSpecification,
    Term,
    TermKind,
    Transform,
    dectime,
    load_conversion_factor,
    water_year,
)
from .hysteresis import add_hysteresis, hysteresis
from .merge import MergeResult, merge_flow
from .regression import (
    BiasCorrection,
    BiasCorrector,
    CandidateTable,
    FittedModel,
    LoadRegression,
    ModelSelector,
    aggregate_loads,
    estimate_loads,
    load_reg,
    loadest_models,
)

logger = logging.getLogger(__name__)


def build_load_model(
    samples: pd.DataFrame,
    daily_flow: pd.DataFrame,
    response: str,
    specification: Optional[ModelSpecification] = None,
    flow: str = "Flow",
    dates: str = "Date",
    lags: Sequence[int] = (1,),
    config: Optional[LoadModelConfig] = None,
    station: str = "",
) -> dict:
    """
    Complete load model workflow for one station.

    Adds ``dQ{lag}`` hysteresis columns to the daily flow (see
    :func:`~hydroload.hysteresis.add_hysteresis`), merges flow onto
    the samples, ranks the LOADEST candidate models (each extended with the
    hysteresis terms) and fits the chosen specification. When
    ``specification`` is None the lowest-AIC candidate is fitted.

    Parameters
    ----------
    samples : pd.DataFrame
        Water-quality samples with ``dates`` and ``response`` columns.
    daily_flow : pd.DataFrame
        Daily flow record with ``dates`` and ``flow`` columns.
    response : str
        Concentration column.
    specification : ModelSpecification, optional
        Model to fit after reviewing the candidate table.
    flow, dates : str
        Column names.
    lags : sequence of int
        Hysteresis lags in days.
    config : LoadModelConfig, optional
        Units and fitting options.
    station : str
        Station identifier.

    Returns
    -------
    dict
        ``daily_flow`` (with hysteresis columns), ``merge``
        (:class:`MergeResult`), ``candidates`` (:class:`CandidateTable`)
        and ``model`` (:class:`FittedModel`).
    """
    config = config or LoadModelConfig()

    daily, hyst_columns = add_hysteresis(daily_flow, flow=flow, dates=dates, lags=lags)

    merged = merge_flow(samples, daily, flow_columns=[flow] + hyst_columns, sample_dates=dates)
    logger.info(
        "Station %s: %d samples merged, %d dropped", station, merged.n_merged, merged.n_dropped
    )

    selector = ModelSelector(
        response,
        merged.data,
        flow=flow,
        dates=dates,
        add_terms=[Term.custom(c) for c in hyst_columns],
        config=config,
        station=station,
    )
    candidates = selector.evaluate()

    if specification is None:
        model = candidates.best("aic").model
    else:
        model = load_reg(
            specification, merged.data, flow=flow, dates=dates, config=config, station=station
        )

    return {
        "daily_flow": daily,
        "merge": merged,
        "candidates": candidates,
        "model": model,
    }


__version__ = "0.1.0"
__author__ = "HydroLoad"

__all__ = [
    # Core
    "HydroloadError",
    "InvalidArgumentError",
    "FormatError",
    "FitError",
    "Term",
    "TermKind",
    "Transform",
    "ModelSpecification",
    "LoadModelConfig",
    "dectime",
    "water_year",
    "load_conversion_factor",
    # Data preparation
    "hysteresis",
    "add_hysteresis",
    "merge_flow",
    "MergeResult",
    # Regression
    "LoadRegression",
    "FittedModel",
    "load_reg",
    "ModelSelector",
    "CandidateTable",
    "loadest_models",
    "BiasCorrector",
    "BiasCorrection",
    "estimate_loads",
    "aggregate_loads",
    # Convenience
    "build_load_model",
]
