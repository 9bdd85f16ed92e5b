"""
Load model configuration.

Holds the unit system used to convert concentration and flow into daily
load, and the fitting options shared by :class:`LoadRegression` and
:class:`ModelSelector`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace

from hydroload.core import InvalidArgumentError, Units, load_conversion_factor

logger = logging.getLogger(__name__)

_ENV_PREFIX = "HYDROLOAD_"


@dataclass(frozen=True)
class LoadModelConfig:
    """Configuration for load model fitting.

    Parameters
    ----------
    flow_units : str
        Units of the flow column, ``"cfs"`` or ``"cms"``.
    conc_units : str
        Units of the concentration column: ``"mg/L"``, ``"ug/L"`` or ``"ng/L"``.
    load_units : str
        Units of the estimated daily load: ``"kg"``, ``"g"``, ``"lb"``,
        ``"tons"`` (short tons) or ``"Mg"``.
    center_terms : bool
        If True, log-flow and decimal-time terms are centred with the
        LOADEST centring value before fitting.
    min_samples : int
        Minimum number of uncensored samples required to fit a model.
    """

    flow_units: str = "cfs"
    conc_units: str = "mg/L"
    load_units: str = "kg"
    center_terms: bool = True
    min_samples: int = 12

    def __post_init__(self) -> None:
        Units.check("FLOW", self.flow_units)
        Units.check("CONCENTRATION", self.conc_units)
        Units.check("LOAD", self.load_units)
        if self.min_samples < 2:
            raise InvalidArgumentError(f"min_samples must be >= 2, got {self.min_samples}")

    @property
    def conversion_factor(self) -> float:
        """Multiplier from concentration x flow to load per day."""
        return load_conversion_factor(self.conc_units, self.flow_units, self.load_units)

    def with_overrides(self, **changes) -> LoadModelConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, **defaults) -> LoadModelConfig:
        """Build a config from ``HYDROLOAD_*`` environment variables.

        Reads ``HYDROLOAD_FLOW_UNITS``, ``HYDROLOAD_CONC_UNITS`` and
        ``HYDROLOAD_LOAD_UNITS``; keyword arguments supply the values
        used when a variable is unset.
        """
        values = dict(defaults)
        for name in ("flow_units", "conc_units", "load_units"):
            env_value = os.environ.get(_ENV_PREFIX + name.upper())
            if env_value:
                logger.debug("Using %s=%s from environment", name, env_value)
                values[name] = env_value
        return cls(**values)
