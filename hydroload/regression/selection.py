"""
hydroload.regression.selection - Candidate model ranking.

Fits the nine LOADEST predefined load models (optionally extended with
extra terms such as a hysteresis metric) and tabulates AIC, SPPC, PPCC
and R-squared for each. The ranking is meant for review: the lowest-AIC
model is not always the one to use, so every candidate is kept in the
table, including those that failed to fit.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from hydroload.config import LoadModelConfig
from hydroload.core import (
    FitError,
    InvalidArgumentError,
    ModelSpecification,
    Term,
    Transform,
)
from hydroload.regression.load_reg import FittedModel, LoadRegression

log = logging.getLogger(__name__)

# Ranking direction per criterion: True = smaller is better
RANK_CRITERIA: Dict[str, bool] = {
    "aic": True,
    "sppc": False,
    "ppcc": False,
    "r_squared": False,
}


def loadest_models(
    response: str, flow: str = "Flow", dates: str = "Date"
) -> Dict[int, ModelSpecification]:
    """
    The nine LOADEST predefined models.

    lnQ is the centred log flow, dtime the centred decimal time and
    sin/cos the first Fourier harmonic of the date.
    """
    lnq = Term.linear(flow)
    lnq2 = Term.quadratic(flow)
    dtime = Term.dectime(dates)
    dtime2 = Term.quadratic(dates, Transform.DECTIME)
    season = Term.fourier(dates, 1)

    terms: Dict[int, Tuple[Term, ...]] = {
        1: (lnq,),
        2: (lnq2,),
        3: (lnq, dtime),
        4: (lnq, season),
        5: (lnq2, dtime),
        6: (lnq2, season),
        7: (lnq, season, dtime),
        8: (lnq2, season, dtime),
        9: (lnq2, season, dtime2),
    }
    return {
        number: ModelSpecification(response, t, name=f"model {number}")
        for number, t in terms.items()
    }


@dataclass(frozen=True, eq=False)
class CandidateEntry:
    """One evaluated candidate: the specification and its fit (or error)."""

    order: int
    label: str
    specification: ModelSpecification
    model: Optional[FittedModel] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.model is not None

    def statistic(self, name: str) -> float:
        if self.model is None:
            return math.nan
        return float(getattr(self.model, name))

    def to_record(self) -> Dict[str, object]:
        return {
            "order": self.order,
            "model": self.label,
            "formula": self.specification.formula,
            "aic": self.statistic("aic"),
            "sppc": self.statistic("sppc"),
            "ppcc": self.statistic("ppcc"),
            "r_squared": self.statistic("r_squared"),
            "error": self.error,
        }


class CandidateTable:
    """
    Candidates in evaluation order.

    Stored order never changes; :meth:`ranked` returns a sorted view.
    """

    def __init__(self, entries: Sequence[CandidateEntry] = ()):
        self._entries: List[CandidateEntry] = list(entries)

    def add(self, entry: CandidateEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> List[CandidateEntry]:
        return self._entries.copy()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, label: str) -> CandidateEntry:
        for entry in self._entries:
            if entry.label == label:
                return entry
        raise KeyError(label)

    def to_frame(self) -> pd.DataFrame:
        """All candidates in evaluation order."""
        columns = ["order", "model", "formula", "aic", "sppc", "ppcc", "r_squared", "error"]
        return pd.DataFrame([e.to_record() for e in self._entries], columns=columns)

    def _sorted(self, by: str) -> pd.DataFrame:
        if by not in RANK_CRITERIA:
            raise InvalidArgumentError(
                f"Unknown ranking criterion {by!r}; expected one of {sorted(RANK_CRITERIA)}"
            )
        # index stays the position in self._entries
        return self.to_frame().sort_values(
            [by, "order"],
            ascending=[RANK_CRITERIA[by], True],
            na_position="last",
            kind="mergesort",
        )

    def ranked(self, by: str = "aic") -> pd.DataFrame:
        """
        Candidates sorted by ``by`` (``aic``, ``sppc``, ``ppcc`` or
        ``r_squared``), best first; failed fits sort last.
        """
        frame = self._sorted(by)
        frame.insert(0, "rank", range(1, len(frame) + 1))
        return frame.reset_index(drop=True)

    def best(self, by: str = "aic") -> CandidateEntry:
        """Top-ranked successfully fitted candidate."""
        for position in self._sorted(by).index:
            entry = self._entries[position]
            if entry.ok:
                return entry
        raise FitError("No candidate model could be fitted")


class ModelSelector:
    """
    Fit and rank candidate load models for one response.

    Parameters
    ----------
    response : str
        Concentration column.
    data : pd.DataFrame
        Calibration samples.
    flow, dates : str
        Flow and date columns.
    candidates : dict, optional
        Label -> specification. Defaults to the nine LOADEST models.
    add_terms : sequence of Term
        Terms appended to every candidate (for example
        ``Term.custom("dQ1")``).
    config : LoadModelConfig, optional
        Units and fitting options.
    censored : str, optional
        Censoring column passed to :class:`LoadRegression`.
    station : str
        Station identifier.

    Examples
    --------
    >>> selector = ModelSelector("Nitrate", merged.data, add_terms=[Term.custom("dQ1")])
    >>> table = selector.evaluate()
    >>> table.ranked("aic")
    """

    def __init__(
        self,
        response: str,
        data: pd.DataFrame,
        flow: str = "Flow",
        dates: str = "Date",
        candidates: Optional[Dict[object, ModelSpecification]] = None,
        add_terms: Sequence[Term] = (),
        config: Optional[LoadModelConfig] = None,
        censored: Optional[str] = None,
        station: str = "",
    ):
        self.response = response
        self.data = data
        self.flow = flow
        self.dates = dates
        self.config = config or LoadModelConfig()
        self.censored = censored
        self.station = station
        self.add_terms = tuple(add_terms)

        if candidates is None:
            candidates = loadest_models(response, flow, dates)
        if not candidates:
            raise InvalidArgumentError("No candidate models supplied")
        self.candidates: Dict[str, ModelSpecification] = {}
        for label, spec in candidates.items():
            if spec.response != response:
                raise InvalidArgumentError(
                    f"Candidate {label!r} has response {spec.response!r}, expected {response!r}"
                )
            if self.add_terms:
                spec = spec.with_terms(*self.add_terms)
            self.candidates[str(label)] = spec

    def evaluate(self) -> CandidateTable:
        """Fit every candidate and return the table in evaluation order."""
        table = CandidateTable()
        for order, (label, spec) in enumerate(self.candidates.items(), start=1):
            regression = LoadRegression(
                spec,
                self.data,
                flow=self.flow,
                dates=self.dates,
                config=self.config,
                censored=self.censored,
                station=self.station,
            )
            try:
                model = regression.fit()
            except FitError as exc:
                log.warning("Candidate %s (%s) failed: %s", label, spec.formula, exc)
                table.add(CandidateEntry(order, label, spec, error=str(exc)))
                continue
            table.add(CandidateEntry(order, label, spec, model=model))

        log.info("Evaluated %d candidate models for %s", len(table), self.response)
        return table
