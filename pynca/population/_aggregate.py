"""Population NCA: parallel per-subject analysis and aggregation.

Subjects are independent, so the per-subject analyses are scattered over
a thread pool and gathered in input order.  A subject that fails the
minimum-data gate becomes a :class:`FailedSubjectAnalysis` record inside
its own task; it never aborts sibling tasks or the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial

from pynca._config import AnalysisConfig, method_label
from pynca._errors import NCAError
from pynca.nca._common import FailedSubjectAnalysis, NCAResults, Subject
from pynca.nca._subject import analyze_subject
from pynca.population._common import (
    CovariateAnalysis,
    MethodComparison,
    ParameterStats,
    PopulationResults,
)
from pynca.population._stats import bias_analysis, describe, pearson

logger = logging.getLogger(__name__)

# Parameters summarised across subjects (IndividualParameters field names)
SUMMARY_PARAMETERS = (
    "auc_last",
    "auc_inf",
    "cmax",
    "tmax",
    "half_life",
    "clearance",
    "vz",
    "mrt",
)

_Outcome = tuple[NCAResults | FailedSubjectAnalysis, list[str]]


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------

def _analyze_one(subject: Subject, config: AnalysisConfig) -> _Outcome:
    """Analyse one subject, capturing a data failure as a record."""
    try:
        return analyze_subject(subject, config)
    except NCAError as exc:
        logger.warning("Failed to analyze subject %s: %s", subject.id, exc)
        failed = FailedSubjectAnalysis(
            subject_id=subject.id,
            failure_reason=str(exc),
            quantifiable_concentrations=subject.n_quantifiable,
            total_observations=len(subject.observations),
        )
        return failed, []


def _run_subjects(
    subjects: Sequence[Subject], config: AnalysisConfig,
) -> list[_Outcome]:
    if not subjects:
        return []
    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        return list(pool.map(partial(_analyze_one, config=config), subjects))


# ---------------------------------------------------------------------------
# Fan-in
# ---------------------------------------------------------------------------

def summary_statistics(
    results: Iterable[NCAResults],
    parameters: Sequence[str] = SUMMARY_PARAMETERS,
) -> dict[str, ParameterStats]:
    """Descriptive statistics per parameter over subjects where it is present."""
    results = list(results)
    summary: dict[str, ParameterStats] = {}
    for name in parameters:
        values = [
            getattr(r.parameters, name) for r in results
            if getattr(r.parameters, name) is not None
        ]
        if values:
            summary[name] = describe(values)
    return summary


def compare_methods(
    results: Iterable[NCAResults],
    labels: Sequence[str] | None = None,
) -> MethodComparison:
    """Mean AUC_last per AUC method, with pairwise correlation and bias.

    Pairwise statistics use the subjects for which both methods produced
    an AUC_last and need at least two such subjects.
    """
    by_method: dict[str, dict[str, float]] = {}
    for r in results:
        for label, params in r.method_comparisons.items():
            if params.auc_last is not None:
                by_method.setdefault(label, {})[r.subject_id] = params.auc_last
    if labels is None:
        labels = list(by_method)
    labels = [label for label in labels if by_method.get(label)]

    auc_methods = {
        label: sum(by_method[label].values()) / len(by_method[label])
        for label in labels
    }

    correlation_matrix: dict[str, dict[str, float]] = {
        label: {label: 1.0} for label in labels
    }
    bias = {}
    for i, m1 in enumerate(labels):
        for m2 in labels[i + 1:]:
            common = sorted(by_method[m1].keys() & by_method[m2].keys())
            if len(common) < 2:
                continue
            v1 = [by_method[m1][s] for s in common]
            v2 = [by_method[m2][s] for s in common]
            r = pearson(v1, v2)
            correlation_matrix[m1][m2] = r
            correlation_matrix[m2][m1] = r
            bias[f"{m1}_vs_{m2}"] = bias_analysis(v1, v2)

    return MethodComparison(
        auc_methods=auc_methods,
        correlation_matrix=correlation_matrix,
        bias_analysis=bias,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def analyze_population(
    subjects: Iterable[Subject],
    config: AnalysisConfig | None = None,
) -> PopulationResults:
    """Non-compartmental analysis of a study population.

    Parameters
    ----------
    subjects : iterable of Subject
        Subject records (read only).
    config : AnalysisConfig or None
        Analysis options (defaults when ``None``).

    Returns
    -------
    PopulationResults
        Individual and failed results (sorted by subject id), summary
        statistics, AUC method comparison, and, when configured,
        stratified results, strata comparisons and covariate analysis.

    Notes
    -----
    Per-subject analyses run concurrently on ``config.max_workers``
    threads.  Configuration is shared read-only by every task.
    """
    if config is None:
        config = AnalysisConfig()
    subjects = list(subjects)
    logger.info("Starting population analysis for %d subjects", len(subjects))

    individual_results: list[NCAResults] = []
    failed_subjects: list[FailedSubjectAnalysis] = []
    warnings: dict[str, list[str]] = {}
    for outcome, subject_warnings in _run_subjects(subjects, config):
        if isinstance(outcome, FailedSubjectAnalysis):
            failed_subjects.append(outcome)
            continue
        individual_results.append(outcome)
        if subject_warnings:
            logger.warning(
                "Warnings for subject %s: %s", outcome.subject_id, subject_warnings
            )
            warnings[outcome.subject_id] = subject_warnings

    individual_results.sort(key=lambda r: r.subject_id)
    failed_subjects.sort(key=lambda f: f.subject_id)
    logger.info("Successfully analyzed %d subjects", len(individual_results))
    if failed_subjects:
        logger.warning("Failed to analyze %d subjects", len(failed_subjects))

    labels = [method_label(m) for m in config.auc_methods]
    stratified_results = {}
    strata_comparisons = {}
    if config.stratification is not None:
        from pynca.population._stratify import (
            analyze_stratified,
            compare_by_variable,
        )

        stratified_results = analyze_stratified(subjects, config)
        if config.stratification.perform_statistical_tests:
            strata_comparisons = compare_by_variable(stratified_results)

    covariate_analysis = CovariateAnalysis()
    if config.perform_covariate_analysis or config.dose_normalization:
        from pynca.population._covariate import analyze_covariates

        covariate_analysis = analyze_covariates(
            individual_results,
            subjects,
            correlations=config.perform_covariate_analysis,
            dose_normalization=config.dose_normalization,
        )

    return PopulationResults(
        individual_results=individual_results,
        failed_subjects=failed_subjects,
        summary_statistics=summary_statistics(individual_results),
        method_comparison=compare_methods(individual_results, labels),
        stratified_results=stratified_results,
        strata_comparisons=strata_comparisons,
        covariate_analysis=covariate_analysis,
        warnings=warnings,
    )
