"""AUC / AUMC integration.

Four interval rules are available for AUC:

- linear trapezoidal;
- log trapezoidal (only intervals where both concentrations are
  positive contribute);
- linear-log: log rule on declining positive intervals, linear otherwise
  (Phoenix WinNonlin "linear log");
- linear-up/log-down: linear on rising or flat intervals, log rule on
  declining positive intervals, linear when the log rule is undefined.

AUMC always uses the linear trapezoidal analogue, whatever the AUC method.
Intervals with non-increasing time (duplicates, unsorted input) are
skipped by every rule.

References
----------
Gabrielsson & Weiner (2000). *Pharmacokinetic and Pharmacodynamic
Data Analysis*, 3rd ed.

Gibaldi & Perrier (1982). *Pharmacokinetics*, 2nd ed.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np
from numpy.typing import NDArray

from pynca._config import (
    AUCMethod,
    BLQHandling,
    _coerce_auc_method,
    method_label,
)
from pynca._errors import CalculationError, InsufficientDataError
from pynca.nca._common import Observation

# Below this log-difference the log rule degenerates to 0/0; use linear.
_LOG_EQUAL_TOL = 1e-10


# ---------------------------------------------------------------------------
# BLQ handling
# ---------------------------------------------------------------------------

def apply_blq_handling(
    observations: Iterable[Observation],
    handling: BLQHandling,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Reconcile BLQ-flagged samples with the BLQ policy.

    Returns time and concentration arrays in input order.  ``DROP``
    removes BLQ samples, ``ZERO`` sets them to 0, ``HALF_LLOQ`` sets them
    to LLOQ/2 (0 when the LLOQ is unknown).
    """
    times: list[float] = []
    concs: list[float] = []
    for obs in observations:
        if not obs.blq:
            conc = obs.concentration
        elif handling is BLQHandling.DROP:
            continue
        elif handling is BLQHandling.ZERO:
            conc = 0.0
        else:
            conc = (obs.lloq or 0.0) / 2.0
        times.append(obs.time)
        concs.append(conc)
    return (
        np.asarray(times, dtype=np.float64),
        np.asarray(concs, dtype=np.float64),
    )


# ---------------------------------------------------------------------------
# Interval rules
# ---------------------------------------------------------------------------

def _auc_linear_segment(t1: float, t2: float, c1: float, c2: float) -> float:
    """Linear trapezoidal AUC for a single interval."""
    return 0.5 * (c1 + c2) * (t2 - t1)


def _auc_log_segment(t1: float, t2: float, c1: float, c2: float) -> float:
    """Log trapezoidal AUC for a single interval (c1, c2 > 0).

    AUC = (t2 - t1) * (C1 - C2) / ln(C1/C2); falls back to linear when the
    two concentrations are numerically equal.
    """
    log_diff = np.log(c1) - np.log(c2)
    if abs(log_diff) < _LOG_EQUAL_TOL:
        return _auc_linear_segment(t1, t2, c1, c2)
    return (t2 - t1) * (c1 - c2) / log_diff


def _auc_segment(
    method: AUCMethod, t1: float, t2: float, c1: float, c2: float,
) -> float:
    if method is AUCMethod.LINEAR_TRAPEZOIDAL:
        return _auc_linear_segment(t1, t2, c1, c2)

    both_positive = c1 > 0 and c2 > 0
    if method is AUCMethod.LOG_TRAPEZOIDAL:
        if not both_positive:
            return 0.0
        return _auc_log_segment(t1, t2, c1, c2)
    if method is AUCMethod.LINEAR_LOG_TRAPEZOIDAL:
        if both_positive and c2 < c1:
            return _auc_log_segment(t1, t2, c1, c2)
        return _auc_linear_segment(t1, t2, c1, c2)
    # Linear up / log down
    if c2 >= c1 or not both_positive:
        return _auc_linear_segment(t1, t2, c1, c2)
    return _auc_log_segment(t1, t2, c1, c2)


def _compute_auc_segments(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    method: AUCMethod,
) -> NDArray[np.float64]:
    """Compute per-interval AUC contributions.

    Returns an array of length n-1; skipped intervals contribute 0.
    """
    n = len(time)
    segments = np.zeros(max(n - 1, 0), dtype=np.float64)
    for i in range(n - 1):
        t1, t2 = time[i], time[i + 1]
        if t2 <= t1:
            continue
        segments[i] = _auc_segment(
            method, t1, t2, concentration[i], concentration[i + 1]
        )
    return segments


def _aumc_linear_segment(t1: float, t2: float, c1: float, c2: float) -> float:
    """Linear trapezoidal AUMC for a single interval.

    AUMC = integral of t*C(t) dt.  Linear trapezoidal:
    AUMC_i = 0.5 * (t1*C1 + t2*C2) * (t2 - t1)
    """
    return 0.5 * (t1 * c1 + t2 * c2) * (t2 - t1)


def _check_points(time: NDArray[np.float64], what: str) -> None:
    if len(time) < 2:
        raise InsufficientDataError(
            f"Need at least 2 data points for {what} calculation, "
            f"got {len(time)}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def auc(
    time: Sequence[float] | NDArray[np.floating],
    concentration: Sequence[float] | NDArray[np.floating],
    method: AUCMethod | str = AUCMethod.LINEAR_TRAPEZOIDAL,
) -> float:
    """Area under the concentration-time curve over the whole profile.

    Parameters
    ----------
    time, concentration : array-like
        Time-ordered profile, BLQ policy already applied.
    method : AUCMethod or str
        Interval rule.

    Raises
    ------
    InsufficientDataError
        Fewer than 2 points.
    """
    time = np.asarray(time, dtype=np.float64).ravel()
    concentration = np.asarray(concentration, dtype=np.float64).ravel()
    if time.shape[0] != concentration.shape[0]:
        raise ValueError(
            f"time and concentration must have equal length, "
            f"got {time.shape[0]} and {concentration.shape[0]}"
        )
    _check_points(time, "AUC")
    method = _coerce_auc_method(method)
    return float(np.sum(_compute_auc_segments(time, concentration, method)))


def aumc(
    time: Sequence[float] | NDArray[np.floating],
    concentration: Sequence[float] | NDArray[np.floating],
) -> float:
    """Area under the first-moment curve (linear trapezoidal)."""
    time = np.asarray(time, dtype=np.float64).ravel()
    concentration = np.asarray(concentration, dtype=np.float64).ravel()
    _check_points(time, "AUMC")
    total = 0.0
    for i in range(len(time) - 1):
        t1, t2 = time[i], time[i + 1]
        if t2 <= t1:
            continue
        total += _aumc_linear_segment(
            t1, t2, concentration[i], concentration[i + 1]
        )
    return float(total)


def auc_by_method(
    observations: Iterable[Observation],
    methods: Iterable[AUCMethod],
    blq_handling: BLQHandling,
) -> dict[str, float]:
    """AUC of a time-sorted profile for each requested method.

    Returns a mapping from :func:`method_label` to AUC, in request order.
    """
    time, concentration = apply_blq_handling(observations, blq_handling)
    _check_points(time, "AUC")
    return {
        method_label(m): float(
            np.sum(_compute_auc_segments(time, concentration, m))
        )
        for m in methods
    }


def extrapolate_auc_inf(auc_last: float, clast: float, lambda_z: float) -> float:
    """AUC_inf = AUC_last + Clast / lambda_z."""
    if lambda_z <= 0:
        raise CalculationError(
            "Lambda_z must be positive for AUC infinity calculation"
        )
    return auc_last + clast / lambda_z


def extrapolate_aumc_inf(
    aumc_last: float, tlast: float, clast: float, lambda_z: float,
) -> float:
    """AUMC_inf = AUMC_last + Tlast*Clast/lambda_z + Clast/lambda_z**2."""
    if lambda_z <= 0:
        raise CalculationError(
            "Lambda_z must be positive for AUMC infinity calculation"
        )
    return aumc_last + tlast * clast / lambda_z + clast / (lambda_z * lambda_z)
