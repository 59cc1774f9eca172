"""Derived NCA parameters.

Each function checks its own precondition and raises
:class:`~pynca.CalculationError` (or :class:`~pynca.InsufficientDataError`
for empty input) instead of returning a non-finite or negative value.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from pynca._errors import CalculationError, InsufficientDataError
from pynca.nca._common import Observation


# ---------------------------------------------------------------------------
# Observed extremes
# ---------------------------------------------------------------------------

def find_cmax_tmax(observations: Sequence[Observation]) -> tuple[float, float]:
    """Peak concentration and its time (first occurrence on ties)."""
    if not observations:
        raise InsufficientDataError("No observations available")
    conc = np.array([obs.concentration for obs in observations], dtype=np.float64)
    idx = int(np.argmax(conc))
    return float(conc[idx]), float(observations[idx].time)


def find_tlast_clast(observations: Sequence[Observation]) -> tuple[float, float]:
    """Time and concentration of the last quantifiable (positive, non-BLQ) sample."""
    for obs in reversed(observations):
        if obs.is_quantifiable:
            return float(obs.time), float(obs.concentration)
    raise InsufficientDataError("No quantifiable concentrations found")


# ---------------------------------------------------------------------------
# Terminal-phase parameters
# ---------------------------------------------------------------------------

def half_life(lambda_z: float) -> float:
    """t1/2 = ln(2) / lambda_z."""
    if lambda_z <= 0:
        raise CalculationError(
            "Lambda_z must be positive for half-life calculation"
        )
    return float(np.log(2) / lambda_z)


def auc_pct_extrap(auc_last: float, auc_inf: float) -> float:
    """Percentage of AUC_inf obtained by extrapolation."""
    if auc_inf <= 0:
        raise CalculationError("AUC_inf must be positive")
    return (auc_inf - auc_last) / auc_inf * 100.0


def mrt(aumc_inf: float, auc_inf: float) -> float:
    """Mean residence time, AUMC_inf / AUC_inf."""
    if auc_inf <= 0:
        raise CalculationError(
            "AUC_inf must be positive for MRT calculation"
        )
    return aumc_inf / auc_inf


# ---------------------------------------------------------------------------
# Clearance and volumes
# ---------------------------------------------------------------------------

def clearance_iv(dose: float, auc_inf: float) -> float:
    """CL = Dose / AUC_inf."""
    if auc_inf <= 0:
        raise CalculationError(
            "AUC_inf must be positive for clearance calculation"
        )
    if dose <= 0:
        raise CalculationError(
            "Dose must be positive for clearance calculation"
        )
    return dose / auc_inf


def clearance_oral(
    dose: float, auc_inf: float, bioavailability: float | None = None,
) -> float:
    """Apparent oral clearance.

    Returns CL/F when the bioavailability is unknown, CL/F divided by F
    otherwise.
    """
    cl_f = clearance_iv(dose, auc_inf)
    if bioavailability is not None and bioavailability > 0:
        return cl_f / bioavailability
    return cl_f


def vss(clearance: float, mean_residence_time: float) -> float:
    """Steady-state volume, CL * MRT."""
    if clearance <= 0 or mean_residence_time <= 0:
        raise CalculationError(
            "Clearance and MRT must be positive for Vss calculation"
        )
    return clearance * mean_residence_time


def vz(clearance: float, lambda_z: float) -> float:
    """Terminal volume, CL / lambda_z."""
    if clearance <= 0 or lambda_z <= 0:
        raise CalculationError(
            "Clearance and lambda_z must be positive for Vz calculation"
        )
    return clearance / lambda_z
