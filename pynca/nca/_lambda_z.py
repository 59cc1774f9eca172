"""Terminal elimination rate constant (lambda_z).

lambda_z is minus the slope of an ordinary least-squares fit of ln(C) on
time over a window of the time-sorted profile.  Only points with a
positive concentration inside the window enter the fit.  Three window
selection strategies are provided:

- **auto**: tail windows ``[start, n)`` for every start index from 0 to
  n-3; the window end is pinned to the last observation.  The fit with
  the strictly highest R² among those with R² >= 0.8 wins, so ties go to
  the longest window.
- **manual**: a single fit over caller-supplied indices.
- **best fit**: every contiguous window of at least ``min_points``
  points, scanned by ascending start then ascending end; the strictly
  highest R² at or above the threshold wins.

The selection criterion is R² alone.  A window with a rising log-linear
trend can therefore be selected; the resulting non-positive lambda_z is
reported by the fit and rejected by the parameter calculations that
need a positive rate constant.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pynca._config import (
    AutoSelection,
    BestFitSelection,
    LambdaZSelection,
    ManualSelection,
)
from pynca._errors import CalculationError, InsufficientDataError

AUTO_R_SQUARED_THRESHOLD = 0.8


@dataclass(frozen=True)
class LambdaZFit:
    """Log-linear regression over a terminal-phase window."""

    lambda_z: float  # minus the fitted slope
    intercept: float  # ln(C) at t = 0
    r_squared: float
    indices: tuple[int, ...]  # window indices into the sorted profile
    n_points: int  # positive-concentration points actually fitted

    @property
    def r_squared_adj(self) -> float:
        """Adjusted R-squared (equals R² for two-point fits)."""
        n = self.n_points
        if n <= 2:
            return self.r_squared
        return 1.0 - (1.0 - self.r_squared) * (n - 1) / (n - 2)


# ---------------------------------------------------------------------------
# Regression
# ---------------------------------------------------------------------------

def fit_lambda_z(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    indices: Sequence[int],
) -> LambdaZFit:
    """Fit ln(C) vs time over the given indices.

    Indices past the end of the profile are ignored, as are points whose
    concentration is not positive.

    Raises
    ------
    InsufficientDataError
        Fewer than 2 usable points, or all usable points share one time.
    """
    n = len(time)
    usable = [i for i in indices if 0 <= i < n and concentration[i] > 0]
    if len(usable) < 2:
        raise InsufficientDataError(
            "Need at least 2 positive concentrations for lambda_z, "
            f"got {len(usable)}"
        )

    t_fit = time[usable]
    log_c_fit = np.log(concentration[usable])
    if np.ptp(t_fit) == 0:
        raise InsufficientDataError(
            "lambda_z regression needs at least 2 distinct time points"
        )

    result = stats.linregress(t_fit, log_c_fit)
    r_squared = float(np.clip(result.rvalue ** 2, 0.0, 1.0))
    return LambdaZFit(
        lambda_z=float(-result.slope),
        intercept=float(result.intercept),
        r_squared=r_squared,
        indices=tuple(int(i) for i in indices),
        n_points=len(usable),
    )


# ---------------------------------------------------------------------------
# Window selection
# ---------------------------------------------------------------------------

def _best_window(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    windows,
    threshold: float,
) -> LambdaZFit | None:
    """First fit with the strictly highest R² >= threshold."""
    best: LambdaZFit | None = None
    for window in windows:
        try:
            fit = fit_lambda_z(time, concentration, window)
        except InsufficientDataError:
            continue
        if fit.r_squared < threshold:
            continue
        if best is None or fit.r_squared > best.r_squared:
            best = fit
    return best


def _auto_selection(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
) -> LambdaZFit:
    n = len(time)
    if n < 3:
        raise InsufficientDataError(
            f"Need at least 3 points for lambda_z calculation, got {n}"
        )
    windows = (range(start, n) for start in range(n - 2))
    best = _best_window(time, concentration, windows, AUTO_R_SQUARED_THRESHOLD)
    if best is None:
        raise CalculationError(
            "Could not find suitable points for lambda_z calculation "
            f"(no tail window with R² >= {AUTO_R_SQUARED_THRESHOLD})"
        )
    return best


def _best_fit_selection(
    time: NDArray[np.float64],
    concentration: NDArray[np.float64],
    min_points: int,
    r_squared_threshold: float,
) -> LambdaZFit:
    n = len(time)
    if n < min_points:
        raise InsufficientDataError(
            f"Need at least {min_points} points for lambda_z calculation, "
            f"got {n}"
        )
    windows = (
        range(start, end + 1)
        for start in range(n - min_points + 1)
        for end in range(start + min_points - 1, n)
    )
    best = _best_window(time, concentration, windows, r_squared_threshold)
    if best is None:
        raise CalculationError(
            "Could not find suitable points with R² >= "
            f"{r_squared_threshold}"
        )
    return best


def select_lambda_z(
    time: Sequence[float] | NDArray[np.floating],
    concentration: Sequence[float] | NDArray[np.floating],
    selection: LambdaZSelection | None = None,
) -> LambdaZFit:
    """Estimate lambda_z from a time-sorted profile.

    Parameters
    ----------
    time, concentration : array-like
        The full sorted profile (no BLQ substitution; non-positive
        concentrations are simply not fitted).
    selection : AutoSelection, ManualSelection or BestFitSelection
        Window selection strategy (default: auto).

    Returns
    -------
    LambdaZFit

    Raises
    ------
    InsufficientDataError
        Too few points for the chosen strategy.
    CalculationError
        No window meets the R² criterion.
    """
    time = np.asarray(time, dtype=np.float64).ravel()
    concentration = np.asarray(concentration, dtype=np.float64).ravel()
    if time.shape[0] != concentration.shape[0]:
        raise ValueError(
            f"time and concentration must have equal length, "
            f"got {time.shape[0]} and {concentration.shape[0]}"
        )

    if selection is None or isinstance(selection, AutoSelection):
        return _auto_selection(time, concentration)
    if isinstance(selection, ManualSelection):
        return fit_lambda_z(time, concentration, selection.indices)
    if isinstance(selection, BestFitSelection):
        return _best_fit_selection(
            time, concentration,
            selection.min_points, selection.r_squared_threshold,
        )
    raise ValueError(f"unknown lambda_z selection: {selection!r}")
