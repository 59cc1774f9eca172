"""Covariate analysis and dose normalisation.

Correlations and simple regressions relate demographic covariates (age,
weight, height) to individual PK parameters.  Dose normalisation divides
AUC_inf and Cmax by each subject's total dose within treatment groups
and assesses dose linearity: under linear PK, dose-normalised AUC does
not depend on dose, so its regression on dose has a slope near zero and
a low R².
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from pynca.nca._common import NCAResults, Subject
from pynca.population._common import (
    CovariateAnalysis,
    CovariateCorrelation,
    DoseNormalizedAnalysis,
    LinearityAssessment,
    ParameterStats,
    RegressionResults,
)
from pynca.population._stats import (
    correlation_p_value,
    describe,
    pearson,
    simple_linear_regression,
)

logger = logging.getLogger(__name__)

COVARIATES = ("age", "weight", "height")
CORRELATION_PARAMETERS = ("auc_inf", "cmax", "clearance", "half_life", "vz")
REGRESSION_PARAMETERS = ("auc_inf", "cmax", "clearance")

MIN_PAIRS = 3

# Dose-linearity decision thresholds on |slope| and R²
LINEAR_MAX_SLOPE = 0.1
LINEAR_MAX_R_SQUARED = 0.3
NONLINEAR_MIN_SLOPE = 0.3
NONLINEAR_MIN_R_SQUARED = 0.7


def _paired_values(
    results: Sequence[NCAResults],
    subjects: Mapping[str, Subject],
    covariate: str,
    parameter: str,
) -> tuple[list[float], list[float]]:
    """(covariate, parameter) pairs over subjects where both are present."""
    xs, ys = [], []
    for result in results:
        subject = subjects.get(result.subject_id)
        if subject is None:
            continue
        x = getattr(subject.demographics, covariate)
        y = getattr(result.parameters, parameter)
        if x is not None and y is not None:
            xs.append(float(x))
            ys.append(float(y))
    return xs, ys


# ---------------------------------------------------------------------------
# Correlation / regression
# ---------------------------------------------------------------------------

def covariate_correlations(
    results: Sequence[NCAResults],
    subjects: Mapping[str, Subject],
) -> dict[str, CovariateCorrelation]:
    """Pearson correlation of each covariate with each parameter (n >= 3)."""
    correlations = {}
    for covariate in COVARIATES:
        coefs, p_values, n_pairs = {}, {}, {}
        for parameter in CORRELATION_PARAMETERS:
            xs, ys = _paired_values(results, subjects, covariate, parameter)
            if len(xs) < MIN_PAIRS:
                continue
            r = pearson(xs, ys)
            coefs[parameter] = r
            p_values[parameter] = correlation_p_value(r, len(xs))
            n_pairs[parameter] = len(xs)
        if coefs:
            correlations[covariate] = CovariateCorrelation(
                covariate_name=covariate,
                parameter_correlations=coefs,
                p_values=p_values,
                n_pairs=n_pairs,
            )
    return correlations


def covariate_regressions(
    results: Sequence[NCAResults],
    subjects: Mapping[str, Subject],
) -> dict[str, RegressionResults]:
    """OLS regression of each parameter on each covariate (n >= 3).

    Keyed ``'<parameter>_<covariate>'``.
    """
    regressions = {}
    for covariate in COVARIATES:
        for parameter in REGRESSION_PARAMETERS:
            xs, ys = _paired_values(results, subjects, covariate, parameter)
            if len(xs) < MIN_PAIRS:
                continue
            slope, intercept, r_sq, p_value, ci = simple_linear_regression(xs, ys)
            regressions[f"{parameter}_{covariate}"] = RegressionResults(
                parameter=parameter,
                covariate=covariate,
                slope=slope,
                intercept=intercept,
                r_squared=r_sq,
                p_value=p_value,
                confidence_interval=ci,
                n=len(xs),
            )
    return regressions


# ---------------------------------------------------------------------------
# Dose normalisation
# ---------------------------------------------------------------------------

def assess_dose_linearity(
    doses: Sequence[float], dn_auc: Sequence[float],
) -> LinearityAssessment:
    """Classify dose linearity from dose-normalised AUC vs dose.

    ``Linear`` if |slope| < 0.1 and R² < 0.3; ``Non-linear`` if
    |slope| > 0.3 or R² > 0.7; ``Inconclusive`` otherwise.
    """
    if len(doses) != len(dn_auc):
        raise ValueError(
            f"doses and dn_auc must have equal length, "
            f"got {len(doses)} and {len(dn_auc)}"
        )
    if len(doses) < MIN_PAIRS:
        return LinearityAssessment(
            slope=0.0, r_squared=0.0, linearity_conclusion="Insufficient data"
        )

    slope, _, r_squared, _, _ = simple_linear_regression(doses, dn_auc)
    if abs(slope) < LINEAR_MAX_SLOPE and r_squared < LINEAR_MAX_R_SQUARED:
        conclusion = "Linear"
    elif abs(slope) > NONLINEAR_MIN_SLOPE or r_squared > NONLINEAR_MIN_R_SQUARED:
        conclusion = "Non-linear"
    else:
        conclusion = "Inconclusive"
    return LinearityAssessment(
        slope=slope, r_squared=r_squared, linearity_conclusion=conclusion
    )


def dose_normalized_analysis(
    results: Sequence[NCAResults],
    subjects: Mapping[str, Subject],
) -> DoseNormalizedAnalysis:
    """Dose-normalised AUC_inf and Cmax per treatment group.

    Groups with fewer than 3 analysed subjects are skipped.  Subjects
    without a positive total dose are left out of the normalisation.
    """
    groups: dict[str, list[NCAResults]] = {}
    for result in results:
        subject = subjects.get(result.subject_id)
        if subject is None:
            continue
        treatment = subject.demographics.treatment or "Unknown"
        groups.setdefault(treatment, []).append(result)

    dn_auc_stats: dict[str, ParameterStats] = {}
    dn_cmax_stats: dict[str, ParameterStats] = {}
    linearity: dict[str, LinearityAssessment] = {}
    for treatment, group in sorted(groups.items()):
        if len(group) < MIN_PAIRS:
            logger.debug(
                "Skipping dose normalisation for %s (n=%d)", treatment, len(group)
            )
            continue

        dn_auc, dn_cmax, doses = [], [], []
        for result in group:
            dose = subjects[result.subject_id].total_dose
            if dose <= 0:
                continue
            if result.parameters.auc_inf is not None:
                dn_auc.append(result.parameters.auc_inf / dose)
                doses.append(dose)
            if result.parameters.cmax is not None:
                dn_cmax.append(result.parameters.cmax / dose)

        if dn_auc:
            dn_auc_stats[treatment] = describe(dn_auc)
        if dn_cmax:
            dn_cmax_stats[treatment] = describe(dn_cmax)
        if len(doses) >= MIN_PAIRS:
            linearity[treatment] = assess_dose_linearity(doses, dn_auc)

    return DoseNormalizedAnalysis(
        dose_normalized_auc=dn_auc_stats,
        dose_normalized_cmax=dn_cmax_stats,
        dose_linearity_assessment=linearity,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def analyze_covariates(
    results: Sequence[NCAResults],
    subjects: Sequence[Subject],
    *,
    correlations: bool = True,
    dose_normalization: bool = True,
) -> CovariateAnalysis:
    """Covariate analysis of successfully analysed subjects.

    Parameters
    ----------
    results : sequence of NCAResults
        Individual results; matched to subjects by id.
    subjects : sequence of Subject
        Subject records supplying demographics and doses.
    correlations : bool
        Compute covariate correlations and regressions.
    dose_normalization : bool
        Compute dose-normalised exposure and dose linearity.
    """
    by_id = {s.id: s for s in subjects}
    return CovariateAnalysis(
        correlations=covariate_correlations(results, by_id) if correlations else {},
        regression_analysis=(
            covariate_regressions(results, by_id) if correlations else {}
        ),
        dose_normalized_analysis=(
            dose_normalized_analysis(results, by_id) if dose_normalization else None
        ),
    )
