"""Per-subject NCA: sort, gate, compute, compare methods, validate.

A subject needs at least three quantifiable (positive, non-BLQ)
observations; otherwise :func:`analyze_subject` raises
:class:`~pynca.InsufficientDataError` and the subject is reported as
failed by the population layer.  Past that gate, a parameter whose
precondition does not hold is left as ``None`` and described by a
warning; it never fails the subject.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import numpy as np

from pynca._config import AnalysisConfig, AUCMethod, method_label
from pynca._errors import CalculationError, InsufficientDataError, NCAError
from pynca.nca import _parameters
from pynca.nca._auc import (
    apply_blq_handling,
    auc_by_method,
    aumc,
    extrapolate_auc_inf,
    extrapolate_aumc_inf,
)
from pynca.nca._common import (
    IndividualParameters,
    NCAResults,
    Observation,
    Subject,
)
from pynca.nca._lambda_z import (
    AUTO_R_SQUARED_THRESHOLD,
    LambdaZFit,
    select_lambda_z,
)

logger = logging.getLogger(__name__)

MIN_QUANTIFIABLE = 3
MAX_PCT_EXTRAP = 20.0
HALF_LIFE_RANGE = (0.1, 1000.0)

_PRIMARY_METHOD = method_label(AUCMethod.LINEAR_TRAPEZOIDAL)


def _attempt(
    warnings: list[str],
    label: str,
    func: Callable[..., float],
    *args: float,
) -> float | None:
    """Evaluate one derived parameter; a CalculationError becomes a warning."""
    try:
        return func(*args)
    except CalculationError as exc:
        warnings.append(f"{label} could not be calculated - {exc}")
        return None


def _fit_terminal_phase(
    observations: Sequence[Observation],
    config: AnalysisConfig,
    warnings: list[str],
) -> LambdaZFit | None:
    time = np.array([obs.time for obs in observations], dtype=np.float64)
    conc = np.array([obs.concentration for obs in observations], dtype=np.float64)
    try:
        fit = select_lambda_z(time, conc, config.lambda_z_selection)
    except NCAError as exc:
        warnings.append(f"Terminal phase regression failed - {exc}")
        return None
    if fit.lambda_z <= 0:
        warnings.append(
            f"Terminal phase slope is not declining (lambda_z = {fit.lambda_z:.4g})"
        )
        return None
    return fit


def _calculate_parameters(
    observations: Sequence[Observation],
    subject: Subject,
    config: AnalysisConfig,
    methods: Sequence[AUCMethod],
) -> tuple[IndividualParameters, list[str]]:
    """All parameters of a sorted profile using the given AUC methods."""
    warnings: list[str] = []

    cmax, tmax = _parameters.find_cmax_tmax(observations)
    tlast, clast = _parameters.find_tlast_clast(observations)

    # ----- AUC / AUMC to last observation -----
    aucs = auc_by_method(observations, methods, config.blq_handling)
    auc_last = aucs.get(_PRIMARY_METHOD, next(iter(aucs.values())))
    aumc_last = aumc(*apply_blq_handling(observations, config.blq_handling))

    # ----- Terminal phase -----
    fit = _fit_terminal_phase(observations, config, warnings)
    if fit is None:
        return IndividualParameters(
            auc_last=auc_last,
            aumc_last=aumc_last,
            cmax=cmax,
            tmax=tmax,
            tlast=tlast,
            clast=clast,
        ), warnings

    lambda_z = fit.lambda_z
    auc_inf = extrapolate_auc_inf(auc_last, clast, lambda_z)
    aumc_inf = extrapolate_aumc_inf(aumc_last, tlast, clast, lambda_z)
    clast_pred = float(np.exp(fit.intercept - lambda_z * tlast))
    auc_inf_pred = extrapolate_auc_inf(auc_last, clast_pred, lambda_z)

    t_half = _attempt(warnings, "Half-life", _parameters.half_life, lambda_z)
    pct_extrap = _attempt(
        warnings, "AUC extrapolation", _parameters.auc_pct_extrap, auc_last, auc_inf
    )
    mrt = _attempt(warnings, "MRT", _parameters.mrt, aumc_inf, auc_inf)

    # ----- Dose-dependent -----
    if subject.is_oral:
        clearance = _attempt(
            warnings, "Clearance", _parameters.clearance_oral,
            subject.total_dose, auc_inf, None,
        )
    else:
        clearance = _attempt(
            warnings, "Clearance", _parameters.clearance_iv,
            subject.total_dose, auc_inf,
        )
    vss = vz = None
    if clearance is not None:
        vz = _attempt(warnings, "Vz", _parameters.vz, clearance, lambda_z)
        if mrt is not None:
            vss = _attempt(warnings, "Vss", _parameters.vss, clearance, mrt)

    return IndividualParameters(
        auc_last=auc_last,
        auc_inf=auc_inf,
        auc_inf_pred=auc_inf_pred,
        auc_pct_extrap=pct_extrap,
        aumc_last=aumc_last,
        aumc_inf=aumc_inf,
        cmax=cmax,
        tmax=tmax,
        tlast=tlast,
        clast=clast,
        half_life=t_half,
        lambda_z=lambda_z,
        lambda_z_r_squared=fit.r_squared,
        lambda_z_n_points=fit.n_points,
        clearance=clearance,
        vss=vss,
        vz=vz,
        mrt=mrt,
    ), warnings


def check_parameters(
    params: IndividualParameters, time_units: str = "h",
) -> list[str]:
    """Plausibility and completeness warnings for one parameter set."""
    warnings = []

    if params.lambda_z is None:
        warnings.append("Lambda_z could not be calculated - poor terminal phase fit")
    if params.auc_inf is None:
        warnings.append(
            "AUC_inf could not be calculated - insufficient terminal phase data"
        )
    if params.half_life is None:
        warnings.append("Half-life could not be calculated - lambda_z unavailable")
    if params.clearance is None and params.auc_inf is None:
        warnings.append("Clearance could not be calculated - AUC_inf unavailable")
    if params.mrt is None and params.auc_inf is None:
        warnings.append(
            "MRT could not be calculated - AUMC_inf or AUC_inf unavailable"
        )

    if params.auc_pct_extrap is not None and params.auc_pct_extrap > MAX_PCT_EXTRAP:
        warnings.append(
            f"High AUC extrapolation ({params.auc_pct_extrap:.1f}%) "
            "- results may be unreliable"
        )
    r_sq = params.lambda_z_r_squared
    if r_sq is not None and r_sq < AUTO_R_SQUARED_THRESHOLD:
        warnings.append(
            f"Poor terminal phase fit (R² = {r_sq:.3f}) "
            "- lambda_z may be unreliable"
        )
    low, high = HALF_LIFE_RANGE
    if params.half_life is not None and not low <= params.half_life <= high:
        warnings.append(
            f"Unusual half-life ({params.half_life:.3f} {time_units})"
        )
    return warnings


def analyze_subject(
    subject: Subject, config: AnalysisConfig | None = None,
) -> tuple[NCAResults, list[str]]:
    """Non-compartmental analysis of one subject.

    Parameters
    ----------
    subject : Subject
        Observations in any order, dosing events, demographics.
    config : AnalysisConfig or None
        Analysis options (defaults when ``None``).

    Returns
    -------
    results : NCAResults
        Primary parameters (all configured AUC methods, primary AUC_last
        from the linear trapezoidal rule when configured) and one entry
        per AUC method keyed by :func:`~pynca.method_label`.
    warnings : list of str
        Calculation failures and plausibility findings.

    Raises
    ------
    InsufficientDataError
        No observations, or fewer than 3 quantifiable concentrations.
    """
    if config is None:
        config = AnalysisConfig()
    if not subject.observations:
        raise InsufficientDataError("No observations available for analysis")

    observations = sorted(subject.observations, key=lambda obs: obs.time)
    n_quantifiable = sum(1 for obs in observations if obs.is_quantifiable)
    if n_quantifiable < MIN_QUANTIFIABLE:
        raise InsufficientDataError(
            f"Subject {subject.id} has only {n_quantifiable} quantifiable "
            f"concentrations (minimum {MIN_QUANTIFIABLE} required)"
        )

    logger.debug(
        "Analysing subject %s (%d observations)", subject.id, len(observations)
    )
    params, warnings = _calculate_parameters(
        observations, subject, config, config.auc_methods
    )

    method_comparisons: dict[str, IndividualParameters] = {}
    for method in config.auc_methods:
        try:
            method_params, _ = _calculate_parameters(
                observations, subject, config, (method,)
            )
        except NCAError as exc:
            logger.debug(
                "Subject %s: %s skipped: %s", subject.id, method_label(method), exc
            )
            continue
        method_comparisons[method_label(method)] = method_params

    warnings.extend(check_parameters(params, config.time_units))
    results = NCAResults(
        subject_id=subject.id,
        parameters=params,
        method_comparisons=method_comparisons,
    )
    return results, warnings
