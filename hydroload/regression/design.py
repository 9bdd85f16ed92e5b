"""
hydroload.regression.design - Design matrices for load models.

Turns a :class:`~hydroload.core.ModelSpecification` and a data frame into
the numeric design matrix used by least squares. Centring values are
computed from the calibration data and kept in :class:`DesignInfo` so that
the same transformation is applied when estimating loads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from hydroload.core import (
    InvalidArgumentError,
    ModelSpecification,
    Term,
    TermKind,
    Transform,
    check_positive,
    dectime,
    loadest_center,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DesignInfo:
    """
    Everything needed to rebuild a design matrix on new data.

    Parameters
    ----------
    specification : ModelSpecification
        Model the matrix was built for.
    centers : dict
        Term variable label (e.g. ``"log(Flow)"``) -> centring value.
    term_slices : dict
        Term -> slice of design-matrix columns generated by the term.
    """

    specification: ModelSpecification
    centers: Dict[str, float] = field(default_factory=dict)
    term_slices: Dict[Term, slice] = field(default_factory=dict)

    @property
    def column_names(self) -> Tuple[str, ...]:
        return self.specification.column_names


def term_variable(term: Term, data: pd.DataFrame) -> np.ndarray:
    """Return the transformed source variable of ``term`` (before centring)."""
    if term.source not in data.columns:
        raise InvalidArgumentError(f"Data has no column {term.source!r} for term {term.label}")
    column = data[term.source]

    if term.transform == Transform.DECTIME:
        return dectime(column)

    values = pd.to_numeric(column, errors="coerce").to_numpy(dtype=float)
    if term.transform == Transform.LOG:
        check_positive(values, term.source)
        values = np.log(values)
    if not np.all(np.isfinite(values)):
        raise InvalidArgumentError(f"Column {term.source!r} has missing or non-numeric values")
    return values


def build_design(
    specification: ModelSpecification,
    data: pd.DataFrame,
    centers: Optional[Dict[str, float]] = None,
    center_terms: bool = True,
) -> Tuple[np.ndarray, DesignInfo]:
    """
    Build the design matrix (intercept first) for ``specification``.

    Parameters
    ----------
    specification : ModelSpecification
        Model terms.
    data : pd.DataFrame
        Data holding every source column.
    centers : dict, optional
        Centring values from a previous call. When omitted they are
        computed from ``data`` (calibration).
    center_terms : bool
        Centre LOG and DECTIME linear/quadratic terms. Ignored when
        ``centers`` is given.

    Returns
    -------
    X : np.ndarray
        Design matrix of shape (n, p).
    info : DesignInfo
        Centring values and term column slices.
    """
    n = len(data)
    calibrating = centers is None
    centers = dict(centers or {})
    columns = [np.ones(n)]
    slices: Dict[Term, slice] = {}
    position = 1

    for term in specification.terms:
        v = term_variable(term, data)

        if term.kind == TermKind.FOURIER:
            block = []
            for k in range(1, term.order + 1):
                angle = 2.0 * np.pi * k * v
                block.extend([np.sin(angle), np.cos(angle)])
        elif term.kind == TermKind.CUSTOM:
            block = [v]
        else:
            if term.is_centered:
                if calibrating and term.variable not in centers:
                    centers[term.variable] = loadest_center(v) if center_terms else 0.0
                    log.debug("Centre for %s: %.6f", term.variable, centers[term.variable])
                v = v - centers.get(term.variable, 0.0)
            block = [v] if term.kind == TermKind.LINEAR else [v, v**2]

        slices[term] = slice(position, position + len(block))
        position += len(block)
        columns.extend(block)

    X = np.column_stack(columns) if n else np.empty((0, position))
    return X, DesignInfo(specification, centers, slices)


def primary_variable(term: Term, data: pd.DataFrame) -> np.ndarray:
    """
    Variable a term's partial residuals are plotted against.

    For Fourier terms this is the season (fraction of the year); for
    everything else the transformed source variable.
    """
    v = term_variable(term, data)
    if term.kind == TermKind.FOURIER:
        return v - np.floor(v)
    return v
