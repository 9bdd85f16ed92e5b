"""
hydroload.regression.diagnostics - Fit statistics for load models.

Definitions used here:

* **AIC** ``= -2 logL + 2k`` with the Gaussian log-likelihood evaluated at
  the MLE variance ``RSS / n`` and ``k`` = coefficients + 1 (the scale).
* **SPPC** (Schwarz posterior probability criterion) ``= logL - (k/2) ln n``;
  larger is better.
* **PPCC** is the correlation between the ordered residuals and standard
  normal quantiles at Blom plotting positions ``(i - 3/8) / (n + 1/4)``.
* **Bp**, **PLR** and **E** compare estimated and observed calibration
  loads in natural units.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Sequence

import numpy as np
from scipy import stats

log = logging.getLogger(__name__)


def gaussian_loglik(residuals: np.ndarray) -> float:
    """Gaussian log-likelihood at the MLE variance."""
    r = np.asarray(residuals, dtype=float)
    n = r.size
    sigma2 = float(np.sum(r**2)) / n
    if sigma2 <= 0:
        return math.inf
    return -0.5 * n * (math.log(2.0 * math.pi * sigma2) + 1.0)


def aic(residuals: np.ndarray, n_coefficients: int) -> float:
    return -2.0 * gaussian_loglik(residuals) + 2.0 * (n_coefficients + 1)


def sppc(residuals: np.ndarray, n_coefficients: int) -> float:
    n = np.asarray(residuals).size
    return gaussian_loglik(residuals) - 0.5 * (n_coefficients + 1) * math.log(n)


def blom_positions(n: int) -> np.ndarray:
    i = np.arange(1, n + 1)
    return (i - 0.375) / (n + 0.25)


def ppcc(residuals: np.ndarray) -> float:
    """
    Probability-plot correlation coefficient of ``residuals``.

    Returns NaN for fewer than 3 values or constant residuals.
    """
    r = np.sort(np.asarray(residuals, dtype=float))
    if r.size < 3 or np.ptp(r) == 0:
        return float("nan")
    q = stats.norm.ppf(blom_positions(r.size))
    return float(np.corrcoef(r, q)[0, 1])


def ppcc_pvalue(value: float, n: int) -> float:
    """
    Approximate p-value of the PPCC normality test.

    Uses the Royston (1993) normalising transformation of ``1 - W``
    (the Shapiro-Francia statistic ``W = PPCC**2``), valid for
    5 <= n <= 5000.
    """
    if not math.isfinite(value) or n < 5:
        return float("nan")
    w = min(value**2, 1.0 - 1e-12)
    u = math.log(math.log(n))
    v = math.log(n)
    mu = -1.2725 + 1.0521 * (u - v)
    sigma = 1.0308 - 0.26758 * (u + 2.0 / v)
    z = (math.log(1.0 - w) - mu) / sigma
    return float(stats.norm.sf(z))


def r_squared(y: np.ndarray, residuals: np.ndarray) -> float:
    y = np.asarray(y, dtype=float)
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0:
        return float("nan")
    return 1.0 - float(np.sum(np.asarray(residuals) ** 2)) / ss_tot


def adjusted_r_squared(r2: float, n: int, n_coefficients: int) -> float:
    if n <= n_coefficients:
        return float("nan")
    return 1.0 - (1.0 - r2) * (n - 1) / (n - n_coefficients)


def serial_correlation(residuals: np.ndarray) -> float:
    """Lag-1 autocorrelation of residuals (in the order supplied)."""
    r = np.asarray(residuals, dtype=float)
    if r.size < 3:
        return float("nan")
    d = r - r.mean()
    denom = float(np.sum(d**2))
    if denom == 0:
        return float("nan")
    return float(np.sum(d[1:] * d[:-1]) / denom)


def variance_inflation(X: np.ndarray, names: Sequence[str]) -> Dict[str, float]:
    """
    Variance inflation factor for each non-intercept design column.

    ``X`` must include the intercept as its first column.
    """
    vif: Dict[str, float] = {}
    p = X.shape[1]
    if p <= 2:
        return {name: 1.0 for name in names[1:]}
    for j in range(1, p):
        target = X[:, j]
        others = np.delete(X, j, axis=1)
        coef, *_ = np.linalg.lstsq(others, target, rcond=None)
        resid = target - others @ coef
        ss_tot = float(np.sum((target - target.mean()) ** 2))
        if ss_tot == 0:
            vif[names[j]] = float("inf")
            continue
        r2 = 1.0 - float(np.sum(resid**2)) / ss_tot
        vif[names[j]] = float("inf") if r2 >= 1.0 else 1.0 / (1.0 - r2)
    return vif


def load_bias_statistics(observed: np.ndarray, estimated: np.ndarray) -> Dict[str, float]:
    """
    Percent bias (Bp), partial load ratio (PLR) and Nash-Sutcliffe E.

    Parameters
    ----------
    observed, estimated : np.ndarray
        Calibration loads in natural (not log) units.
    """
    obs = np.asarray(observed, dtype=float)
    est = np.asarray(estimated, dtype=float)
    total = float(np.sum(obs))
    if total == 0:
        log.warning("Observed loads sum to zero; bias statistics undefined")
        return {"Bp": float("nan"), "PLR": float("nan"), "E": float("nan")}
    plr = float(np.sum(est)) / total
    ss_obs = float(np.sum((obs - obs.mean()) ** 2))
    e = 1.0 - float(np.sum((obs - est) ** 2)) / ss_obs if ss_obs > 0 else float("nan")
    return {"Bp": 100.0 * (plr - 1.0), "PLR": plr, "E": e}
