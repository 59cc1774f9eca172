"""Descriptive statistics and small hypothesis tests for population NCA.

p-values come from the exact Student t distribution (``scipy.stats``).
The 95% confidence interval of a regression slope uses the normal
critical value 1.96 regardless of sample size.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pynca.population._common import BiasAnalysis, ParameterStats

Z_975 = float(stats.norm.ppf(0.975))


def _as_array(
    values: Sequence[float] | NDArray[np.floating],
) -> NDArray[np.float64]:
    return np.asarray(values, dtype=np.float64).ravel()


def _sample_std(x: NDArray[np.float64]) -> float:
    return float(np.std(x, ddof=1)) if len(x) > 1 else 0.0


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------

def describe(values: Sequence[float] | NDArray[np.floating]) -> ParameterStats:
    """Arithmetic and (for positive data) geometric summary of a sample.

    Quartiles use linear interpolation between order statistics
    (``numpy.percentile`` default).  Geometric CV% is
    ``100 * sqrt(exp(s**2) - 1)`` with ``s`` the SD of the log values.

    Raises
    ------
    ValueError
        Empty sample.
    """
    x = _as_array(values)
    n = len(x)
    if n == 0:
        raise ValueError("Need at least one value for descriptive statistics")

    mean = float(np.mean(x))
    std = _sample_std(x)
    cv = std / mean * 100.0 if mean != 0 else 0.0
    q25, median, q75 = (float(q) for q in np.percentile(x, [25, 50, 75]))

    geometric_mean = geometric_cv = None
    if np.all(x > 0):
        log_x = np.log(x)
        log_sd = _sample_std(log_x)
        geometric_mean = float(np.exp(np.mean(log_x)))
        geometric_cv = float(np.sqrt(np.expm1(log_sd ** 2)) * 100.0)

    return ParameterStats(
        n=n,
        mean=mean,
        std=std,
        cv_percent=cv,
        median=median,
        q25=q25,
        q75=q75,
        min=float(np.min(x)),
        max=float(np.max(x)),
        geometric_mean=geometric_mean,
        geometric_cv_percent=geometric_cv,
    )


# ---------------------------------------------------------------------------
# Correlation and regression
# ---------------------------------------------------------------------------

def pearson(
    x: Sequence[float] | NDArray[np.floating],
    y: Sequence[float] | NDArray[np.floating],
) -> float:
    """Pearson correlation; 0 when either variable is constant."""
    x, y = _as_array(x), _as_array(y)
    if len(x) != len(y) or len(x) < 2:
        return 0.0
    dx = x - x.mean()
    dy = y - y.mean()
    denom = np.sqrt(np.sum(dx ** 2) * np.sum(dy ** 2))
    if denom == 0:
        return 0.0
    return float(np.clip(np.sum(dx * dy) / denom, -1.0, 1.0))


def correlation_p_value(r: float, n: int) -> float:
    """Two-sided p-value of H0: rho = 0 (t = r * sqrt((n-2)/(1-r²)))."""
    if n < 3:
        return 1.0
    if abs(r) >= 1.0:
        return 0.0
    df = n - 2
    t_stat = r * np.sqrt(df / (1.0 - r * r))
    return float(2.0 * stats.t.sf(abs(t_stat), df))


def simple_linear_regression(
    x: Sequence[float] | NDArray[np.floating],
    y: Sequence[float] | NDArray[np.floating],
) -> tuple[float, float, float, float, tuple[float, float]]:
    """OLS fit of y on x.

    Returns
    -------
    slope, intercept, r_squared, p_value, ci
        ``p_value`` tests slope = 0 (t with n-2 df); ``ci`` is the 95%
        interval ``slope ± 1.96 * SE(slope)``.
    """
    x, y = _as_array(x), _as_array(y)
    n = len(x)
    if len(y) != n:
        raise ValueError(
            f"x and y must have equal length, got {n} and {len(y)}"
        )
    if n < 2:
        return 0.0, 0.0, 0.0, 1.0, (0.0, 0.0)

    mean_x, mean_y = x.mean(), y.mean()
    sxx = float(np.sum((x - mean_x) ** 2))
    sxy = float(np.sum((x - mean_x) * (y - mean_y)))
    slope = sxy / sxx if sxx != 0 else 0.0
    intercept = float(mean_y - slope * mean_x)

    ss_tot = float(np.sum((y - mean_y) ** 2))
    ss_res = float(np.sum((y - (intercept + slope * x)) ** 2))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot != 0 else 0.0

    mse = ss_res / (n - 2) if n > 2 else 0.0
    se_slope = float(np.sqrt(mse / sxx)) if sxx > 0 and mse > 0 else 0.0
    if n <= 2:
        p_value = 1.0
    elif se_slope > 0:
        p_value = float(2.0 * stats.t.sf(abs(slope / se_slope), n - 2))
    else:
        # Exact fit: any non-zero slope is certain
        p_value = 0.0 if slope != 0 else 1.0

    margin = Z_975 * se_slope
    return slope, intercept, r_squared, p_value, (slope - margin, slope + margin)


# ---------------------------------------------------------------------------
# Two-sample comparisons
# ---------------------------------------------------------------------------

def welch_t_test(
    values1: Sequence[float] | NDArray[np.floating],
    values2: Sequence[float] | NDArray[np.floating],
) -> tuple[float, float, float]:
    """Welch's unequal-variance t-test.

    Returns
    -------
    t_stat, df, p_value
        Welch-Satterthwaite degrees of freedom, two-sided p-value.
        Samples smaller than 2 give ``(0.0, 0.0, 1.0)``.
    """
    a, b = _as_array(values1), _as_array(values2)
    n1, n2 = len(a), len(b)
    if n1 < 2 or n2 < 2:
        return 0.0, 0.0, 1.0

    v1 = float(np.var(a, ddof=1)) / n1
    v2 = float(np.var(b, ddof=1)) / n2
    se = np.sqrt(v1 + v2)
    if se == 0:
        return 0.0, float(n1 + n2 - 2), 1.0

    t_stat = float((a.mean() - b.mean()) / se)
    df = float((v1 + v2) ** 2 / (v1 ** 2 / (n1 - 1) + v2 ** 2 / (n2 - 1)))
    p_value = float(2.0 * stats.t.sf(abs(t_stat), df))
    return t_stat, df, p_value


def cohens_d(
    values1: Sequence[float] | NDArray[np.floating],
    values2: Sequence[float] | NDArray[np.floating],
) -> float:
    """Absolute standardised mean difference with pooled SD."""
    a, b = _as_array(values1), _as_array(values2)
    n1, n2 = len(a), len(b)
    if n1 < 2 or n2 < 2:
        return 0.0
    pooled_var = (
        (n1 - 1) * np.var(a, ddof=1) + (n2 - 1) * np.var(b, ddof=1)
    ) / (n1 + n2 - 2)
    pooled_sd = float(np.sqrt(pooled_var))
    if pooled_sd == 0:
        return 0.0
    return float(abs(a.mean() - b.mean()) / pooled_sd)


def bias_analysis(
    values1: Sequence[float] | NDArray[np.floating],
    values2: Sequence[float] | NDArray[np.floating],
) -> BiasAnalysis:
    """Bland-Altman mean difference and 95% limits of agreement."""
    a, b = _as_array(values1), _as_array(values2)
    if len(a) != len(b) or len(a) == 0:
        raise ValueError("bias analysis needs two non-empty paired samples")

    diff = a - b
    pair_mean = (a + b) / 2.0
    with np.errstate(divide="ignore", invalid="ignore"):
        pct = np.where(pair_mean != 0, diff / pair_mean * 100.0, 0.0)
    mean_diff = float(diff.mean())
    sd_diff = _sample_std(diff)
    return BiasAnalysis(
        mean_difference=mean_diff,
        mean_percent_difference=float(pct.mean()),
        limits_of_agreement=(
            mean_diff - Z_975 * sd_diff,
            mean_diff + Z_975 * sd_diff,
        ),
    )
