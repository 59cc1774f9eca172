"""
Per-subject non-compartmental pharmacokinetic analysis (NCA).

AUC/AUMC integration under four trapezoidal rules and three BLQ
policies, terminal-phase (lambda_z) window selection, and the derived
parameters: Cmax/Tmax, Tlast/Clast, half-life, clearance, Vss, Vz, MRT
and the extrapolated fraction of AUC.

Validates against: R packages PKNCA, NonCompart.
"""

from pynca.nca._common import (
    Demographics,
    DosingEvent,
    DosingRoute,
    FailedSubjectAnalysis,
    IndividualParameters,
    NCAResults,
    Observation,
    Subject,
)
from pynca.nca._auc import (
    apply_blq_handling,
    auc,
    auc_by_method,
    aumc,
    extrapolate_auc_inf,
    extrapolate_aumc_inf,
)
from pynca.nca._lambda_z import LambdaZFit, fit_lambda_z, select_lambda_z
from pynca.nca._parameters import (
    auc_pct_extrap,
    clearance_iv,
    clearance_oral,
    find_cmax_tmax,
    find_tlast_clast,
    half_life,
    mrt,
    vss,
    vz,
)
from pynca.nca._subject import analyze_subject, check_parameters

__all__ = [
    "Demographics",
    "DosingEvent",
    "DosingRoute",
    "FailedSubjectAnalysis",
    "IndividualParameters",
    "NCAResults",
    "Observation",
    "Subject",
    "LambdaZFit",
    "apply_blq_handling",
    "auc",
    "auc_by_method",
    "aumc",
    "extrapolate_auc_inf",
    "extrapolate_aumc_inf",
    "fit_lambda_z",
    "select_lambda_z",
    "auc_pct_extrap",
    "clearance_iv",
    "clearance_oral",
    "find_cmax_tmax",
    "find_tlast_clast",
    "half_life",
    "mrt",
    "vss",
    "vz",
    "analyze_subject",
    "check_parameters",
]
