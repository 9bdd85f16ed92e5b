"""
hydroload.regression.bias - Retransformation bias-correction factors.

A regression fitted in log space estimates the median, not the mean, of
load. Multiplying ``exp(prediction)`` by a bias-correction factor (BCF)
gives an estimate of the mean load.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from hydroload.core import InvalidArgumentError


@dataclass(frozen=True)
class BiasCorrection:
    """MLE and Duan smearing factors for one set of residuals."""

    mle: float
    duan: float
    residual_variance: float

    def factor(self, method: str) -> float:
        """Return the factor for ``"mle"``, ``"duan"`` or ``"none"``."""
        method = (method or "none").lower()
        if method == "mle":
            return self.mle
        if method == "duan":
            return self.duan
        if method == "none":
            return 1.0
        raise InvalidArgumentError(f"Unknown bias correction method: {method!r}")


class BiasCorrector:
    """
    Bias-correction factors for log-space regressions.

    Examples
    --------
    >>> round(BiasCorrector.mle_from_variance(0.06958), 4)
    1.0354
    """

    @staticmethod
    def _residuals(residuals) -> np.ndarray:
        r = np.asarray(residuals, dtype=float).ravel()
        if r.size == 0:
            raise InvalidArgumentError("Residual vector is empty")
        if not np.all(np.isfinite(r)):
            raise InvalidArgumentError("Residuals contain missing or infinite values")
        return r

    @staticmethod
    def mle_from_variance(variance: float) -> float:
        """MLE factor ``exp(variance / 2)``."""
        if variance is None or not math.isfinite(variance) or variance < 0:
            raise InvalidArgumentError(f"Residual variance must be >= 0, got {variance!r}")
        return math.exp(variance / 2.0)

    @classmethod
    def mle(cls, residuals, ddof: int = 1) -> float:
        """
        MLE factor from residuals.

        The variance is ``sum(r**2) / (n - ddof)``, taken about zero as for
        regression residuals. Pass the number of fitted coefficients as
        ``ddof`` for the unbiased regression variance.
        """
        r = cls._residuals(residuals)
        if r.size <= ddof:
            raise InvalidArgumentError(
                f"Need more than {ddof} residuals for the variance, got {r.size}"
            )
        return cls.mle_from_variance(float(np.sum(r**2) / (r.size - ddof)))

    @classmethod
    def duan(cls, residuals) -> float:
        """Duan's smearing factor, the mean of ``exp(residual)``."""
        r = cls._residuals(residuals)
        return float(np.mean(np.exp(r)))

    @classmethod
    def compute(cls, residuals, ddof: int = 1) -> BiasCorrection:
        r = cls._residuals(residuals)
        variance = float(np.sum(r**2) / (r.size - ddof)) if r.size > ddof else float("nan")
        return BiasCorrection(
            mle=cls.mle(r, ddof),
            duan=cls.duan(r),
            residual_variance=variance,
        )
