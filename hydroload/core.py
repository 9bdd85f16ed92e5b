"""
hydroload.core - Core data structures and utility functions
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import ClassVar, Dict, Optional, Tuple

import numpy as np
import pandas as pd


# =============================================================================
# ERRORS
# =============================================================================


class HydroloadError(Exception):
    """Base class for hydroload errors."""


class InvalidArgumentError(HydroloadError, ValueError):
    """Raised for bad arguments: lags, empty series, units, columns."""


class FormatError(HydroloadError, ValueError):
    """Raised when input series are structurally malformed (duplicate keys)."""


class FitError(HydroloadError, RuntimeError):
    """Raised when a regression cannot be fitted (degenerate design matrix)."""


# =============================================================================
# TERM DESCRIPTORS
# =============================================================================


class TermKind(Enum):
    """Kind of explanatory term in a load model."""
    LINEAR = auto()
    QUADRATIC = auto()
    FOURIER = auto()
    CUSTOM = auto()


class Transform(Enum):
    """Transformation applied to a term's source column."""
    IDENTITY = auto()
    LOG = auto()
    DECTIME = auto()


@dataclass(frozen=True)
class Term:
    """
    One explanatory term of a load model.

    For LINEAR and QUADRATIC terms the source column is transformed
    (natural log for flow, decimal time for dates) before entering the
    design matrix. FOURIER terms always use the decimal time of a date
    column and add ``order`` sine/cosine pairs. CUSTOM terms use a
    numeric column as-is.
    """
    kind: TermKind
    source: str
    transform: Transform = Transform.IDENTITY
    order: int = 1

    def __post_init__(self):
        if not isinstance(self.source, str) or not self.source:
            raise InvalidArgumentError(
                f"Term source column must be a non-empty string, got {self.source!r}"
            )
        if self.kind == TermKind.FOURIER:
            if not isinstance(self.order, (int, np.integer)) or self.order < 1:
                raise InvalidArgumentError(
                    f"Fourier order must be a positive integer, got {self.order!r}"
                )
            if self.transform != Transform.DECTIME:
                raise InvalidArgumentError("Fourier terms require a DECTIME transform")
        if self.kind == TermKind.CUSTOM and self.transform != Transform.IDENTITY:
            raise InvalidArgumentError("Custom terms cannot be transformed")

    @classmethod
    def linear(cls, source: str, transform: Transform = Transform.LOG) -> Term:
        return cls(TermKind.LINEAR, source, transform)

    @classmethod
    def quadratic(cls, source: str, transform: Transform = Transform.LOG) -> Term:
        return cls(TermKind.QUADRATIC, source, transform)

    @classmethod
    def dectime(cls, source: str) -> Term:
        return cls(TermKind.LINEAR, source, Transform.DECTIME)

    @classmethod
    def fourier(cls, source: str, order: int = 1) -> Term:
        return cls(TermKind.FOURIER, source, Transform.DECTIME, order)

    @classmethod
    def custom(cls, source: str) -> Term:
        return cls(TermKind.CUSTOM, source)

    @property
    def variable(self) -> str:
        """Label of the transformed source variable, e.g. ``log(Flow)``."""
        if self.transform == Transform.LOG:
            return f"log({self.source})"
        if self.transform == Transform.DECTIME:
            return f"dectime({self.source})"
        return self.source

    @property
    def label(self) -> str:
        """Formula text for this term."""
        if self.kind == TermKind.QUADRATIC:
            return f"quadratic({self.variable})"
        if self.kind == TermKind.FOURIER:
            return f"fourier({self.source}, {self.order})"
        return self.variable

    @property
    def column_names(self) -> Tuple[str, ...]:
        """Names of the design-matrix columns generated by this term."""
        if self.kind == TermKind.QUADRATIC:
            return (self.variable, f"{self.variable}^2")
        if self.kind == TermKind.FOURIER:
            names = []
            for k in range(1, self.order + 1):
                names.extend([f"sin{k}({self.source})", f"cos{k}({self.source})"])
            return tuple(names)
        return (self.variable,)

    @property
    def is_centered(self) -> bool:
        """True if the term is centred before fitting (LOADEST convention)."""
        return self.kind in (TermKind.LINEAR, TermKind.QUADRATIC) and self.transform in (
            Transform.LOG,
            Transform.DECTIME,
        )

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class ModelSpecification:
    """
    Load model specification: a response column and an explicit term list.

    The model is always ``log(load) ~ 1 + terms`` where load is computed
    from the concentration in ``response`` and the flow column.
    """
    response: str
    terms: Tuple[Term, ...]
    name: Optional[str] = None

    def __post_init__(self):
        if not self.response:
            raise InvalidArgumentError("Response column must be a non-empty string")
        terms = tuple(self.terms)
        if not terms:
            raise InvalidArgumentError("A model specification needs at least one term")
        if len(set(terms)) != len(terms):
            raise InvalidArgumentError(f"Duplicate terms in specification: {terms}")
        columns = [c for t in terms for c in t.column_names]
        if len(set(columns)) != len(columns):
            raise InvalidArgumentError(f"Terms generate overlapping columns: {columns}")
        object.__setattr__(self, "terms", terms)

    @property
    def formula(self) -> str:
        return "log(load) ~ " + " + ".join(t.label for t in self.terms)

    @property
    def column_names(self) -> Tuple[str, ...]:
        """Design-matrix column names, intercept first."""
        return ("(Intercept)",) + tuple(c for t in self.terms for c in t.column_names)

    @property
    def n_coefficients(self) -> int:
        return len(self.column_names)

    def with_terms(self, *extra: Term, name: Optional[str] = None) -> ModelSpecification:
        """Return a copy with ``extra`` terms appended."""
        return ModelSpecification(self.response, self.terms + tuple(extra), name or self.name)

    def source_columns(self) -> Tuple[str, ...]:
        """Data columns read by the terms (in first-use order)."""
        seen: Dict[str, None] = {}
        for t in self.terms:
            seen.setdefault(t.source, None)
        return tuple(seen)

    def __str__(self) -> str:
        return self.formula


# =============================================================================
# DECIMAL TIME
# =============================================================================


def dectime(dates) -> np.ndarray:
    """
    Convert dates to decimal years.

    Uses the mid-day convention ``year + (day_of_year - 0.5) / days_in_year``
    so that each calendar day maps to the centre of its interval.
    """
    dt = pd.DatetimeIndex(pd.to_datetime(np.asarray(dates)))
    if dt.hasnans:
        raise InvalidArgumentError("Dates contain missing values")
    days_in_year = np.where(dt.is_leap_year, 366.0, 365.0)
    return dt.year.to_numpy(dtype=float) + (dt.dayofyear.to_numpy(dtype=float) - 0.5) / days_in_year


def water_year(dates) -> np.ndarray:
    """Water year (October 1 - September 30) of each date."""
    dt = pd.DatetimeIndex(pd.to_datetime(np.asarray(dates)))
    return np.where(dt.month >= 10, dt.year + 1, dt.year).astype(int)


# =============================================================================
# UNIT CONVERSION
# =============================================================================


class Units:
    """Unit tables for flow, concentration and daily load."""

    # litres per second for one unit of flow
    FLOW: ClassVar[Dict[str, float]] = {
        "cfs": 28.316846592,
        "cms": 1000.0,
    }
    # milligrams per litre for one unit of concentration
    CONCENTRATION: ClassVar[Dict[str, float]] = {
        "mg/L": 1.0,
        "ug/L": 1.0e-3,
        "ng/L": 1.0e-6,
    }
    # kilograms in one unit of load
    LOAD: ClassVar[Dict[str, float]] = {
        "kg": 1.0,
        "g": 1.0e-3,
        "lb": 0.45359237,
        "tons": 907.18474,
        "Mg": 1000.0,
    }

    @classmethod
    def check(cls, table: str, unit: str) -> None:
        values = getattr(cls, table)
        if unit not in values:
            raise InvalidArgumentError(
                f"Unknown {table.lower()} unit {unit!r}; expected one of {sorted(values)}"
            )


SECONDS_PER_DAY = 86400.0


@lru_cache(maxsize=64)
def load_conversion_factor(conc_units: str, flow_units: str, load_units: str) -> float:
    """
    Factor converting concentration x flow into load per day.

    >>> round(load_conversion_factor("mg/L", "cfs", "kg"), 6)
    2.446576
    """
    Units.check("CONCENTRATION", conc_units)
    Units.check("FLOW", flow_units)
    Units.check("LOAD", load_units)
    mg_per_day = Units.CONCENTRATION[conc_units] * Units.FLOW[flow_units] * SECONDS_PER_DAY
    return mg_per_day / 1.0e6 / Units.LOAD[load_units]


def check_positive(values: np.ndarray, name: str) -> None:
    """Raise InvalidArgumentError if any finite value is <= 0."""
    values = np.asarray(values, dtype=float)
    bad = np.isfinite(values) & (values <= 0)
    if np.any(bad):
        raise InvalidArgumentError(
            f"{name} must be positive to take logarithms; {int(bad.sum())} values are <= 0"
        )


def loadest_center(x: np.ndarray) -> float:
    """
    LOADEST centring value ``m + sum((x-m)^3) / (2 sum((x-m)^2))``.

    Centring with this value makes the linear and quadratic terms of a
    variable nearly orthogonal.
    """
    x = np.asarray(x, dtype=float)
    m = float(np.mean(x))
    d = x - m
    ss = float(np.sum(d**2))
    if ss == 0.0 or not math.isfinite(ss):
        return m
    return m + float(np.sum(d**3)) / (2.0 * ss)
