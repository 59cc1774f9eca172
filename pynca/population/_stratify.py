"""Stratified population analysis.

Subjects are partitioned by the resolved value of each stratification
variable (and, optionally, of each pair of variables), and the
population analysis is re-run on every stratum holding at least
``minimum_n_per_stratum`` subjects.  Nested runs use
:meth:`AnalysisConfig.without_stratification`, so a stratum is never
stratified again.

Strata can then be compared pairwise with Welch's t-test.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import fields

import numpy as np

from pynca._config import AnalysisConfig
from pynca.nca._common import IndividualParameters, NCAResults, Subject
from pynca.population._aggregate import analyze_population
from pynca.population._common import (
    PairwiseComparison,
    StrataComparison,
    StratifiedResults,
)
from pynca.population._stats import cohens_d, welch_t_test

logger = logging.getLogger(__name__)

ALPHA = 0.05

# Parameters compared between strata when statistical tests are requested
COMPARED_PARAMETERS = ("auc_last", "auc_inf", "cmax", "half_life", "clearance")

_PARAMETER_NAMES = frozenset(f.name for f in fields(IndividualParameters))


# ---------------------------------------------------------------------------
# Stratum resolution
# ---------------------------------------------------------------------------

def categorize_age(age: float | None) -> str | None:
    if age is None:
        return None
    if age < 18:
        return "Pediatric"
    if age < 65:
        return "Adult"
    return "Elderly"


def categorize_weight(weight: float | None) -> str | None:
    if weight is None:
        return None
    if weight < 60:
        return "Low"
    if weight < 90:
        return "Normal"
    return "High"


def categorize_dose(total_dose: float) -> str | None:
    if total_dose <= 0:
        return None
    if total_dose < 100:
        return "Low"
    if total_dose < 500:
        return "Medium"
    return "High"


def _optional_str(value) -> str | None:
    return None if value is None else str(value)


_RESOLVERS = {
    "SEX": lambda s: s.demographics.sex,
    "RACE": lambda s: s.demographics.race,
    "TREATMENT": lambda s: s.demographics.treatment,
    "TRT": lambda s: s.demographics.treatment,
    "PERIOD": lambda s: _optional_str(s.demographics.period),
    "SEQUENCE": lambda s: s.demographics.sequence,
    "SEQ": lambda s: s.demographics.sequence,
    "FORMULATION": lambda s: s.demographics.formulation,
    "FORM": lambda s: s.demographics.formulation,
    "AGE_GROUP": lambda s: categorize_age(s.demographics.age),
    "WEIGHT_GROUP": lambda s: categorize_weight(s.demographics.weight),
    "DOSE_GROUP": lambda s: categorize_dose(s.total_dose),
}


def stratum_value(subject: Subject, variable: str) -> str | None:
    """Resolved stratum of a subject, or ``None`` if unknown/missing."""
    resolver = _RESOLVERS.get(variable.upper())
    if resolver is None:
        return None
    return resolver(subject)


def create_strata(
    subjects: Iterable[Subject], variable: str,
) -> dict[str, list[Subject]]:
    """Partition subjects by one variable (missing values are left out)."""
    strata: dict[str, list[Subject]] = {}
    for subject in subjects:
        value = stratum_value(subject, variable)
        if value is not None:
            strata.setdefault(value, []).append(subject)
    return dict(sorted(strata.items()))


def create_interaction_strata(
    subjects: Iterable[Subject], var1: str, var2: str,
) -> dict[str, list[Subject]]:
    """Partition subjects by the value pair of two variables (``'v1-v2'``)."""
    strata: dict[str, list[Subject]] = {}
    for subject in subjects:
        value1 = stratum_value(subject, var1)
        value2 = stratum_value(subject, var2)
        if value1 is not None and value2 is not None:
            strata.setdefault(f"{value1}-{value2}", []).append(subject)
    return dict(sorted(strata.items()))


# ---------------------------------------------------------------------------
# Stratified analysis
# ---------------------------------------------------------------------------

def analyze_stratum(
    subjects: Sequence[Subject],
    config: AnalysisConfig,
    name: str,
    value: str,
) -> StratifiedResults:
    """Population analysis of one stratum (stratification disabled)."""
    logger.info("Analyzing stratum: %s = %s (n = %d)", name, value, len(subjects))
    nested = analyze_population(subjects, config.without_stratification())
    return StratifiedResults(
        stratum_name=name,
        stratum_value=value,
        n_subjects=len(subjects),
        individual_results=nested.individual_results,
        failed_subjects=nested.failed_subjects,
        summary_statistics=nested.summary_statistics,
        method_comparison=nested.method_comparison,
    )


def _large_enough(name: str, value: str, n: int, minimum: int) -> bool:
    if n < minimum:
        logger.warning(
            "Skipping stratum %s=%s (n=%d, minimum required: %d)",
            name, value, n, minimum,
        )
        return False
    return True


def analyze_stratified(
    subjects: Sequence[Subject],
    config: AnalysisConfig,
) -> dict[str, StratifiedResults]:
    """Stratified results for every configured variable (and pair).

    Keys are ``'<variable>_<value>'`` for single-variable strata and
    ``'interaction_<var1>_<var2>_<value1>-<value2>'`` for two-way
    interaction strata.  Strata smaller than ``minimum_n_per_stratum``
    are left out.
    """
    strat = config.stratification
    if strat is None:
        return {}
    minimum = strat.minimum_n_per_stratum

    results: dict[str, StratifiedResults] = {}
    for variable in strat.stratify_columns:
        for value, members in create_strata(subjects, variable).items():
            if _large_enough(variable, value, len(members), minimum):
                results[f"{variable}_{value}"] = analyze_stratum(
                    members, config, variable, value
                )

    columns = strat.stratify_columns
    if strat.include_interactions and len(columns) >= 2:
        for i, var1 in enumerate(columns):
            for var2 in columns[i + 1:]:
                name = f"{var1}_{var2}"
                strata = create_interaction_strata(subjects, var1, var2)
                for value, members in strata.items():
                    if _large_enough(name, value, len(members), minimum):
                        results[f"interaction_{name}_{value}"] = analyze_stratum(
                            members, config, name, value
                        )
    return results


# ---------------------------------------------------------------------------
# Statistical comparison
# ---------------------------------------------------------------------------

def _parameter_values(
    results: Iterable[NCAResults], parameter: str,
) -> list[float]:
    values = (getattr(r.parameters, parameter) for r in results)
    return [v for v in values if v is not None]


def compare_two_strata(
    stratum1: StratifiedResults,
    stratum2: StratifiedResults,
    parameter: str,
) -> PairwiseComparison:
    """Welch's t-test and Cohen's d for one parameter between two strata."""
    values1 = _parameter_values(stratum1.individual_results, parameter)
    values2 = _parameter_values(stratum2.individual_results, parameter)
    n1, n2 = len(values1), len(values2)

    if n1 < 2 or n2 < 2:
        return PairwiseComparison(
            stratum1_name=stratum1.stratum_value,
            stratum2_name=stratum2.stratum_value,
            n1=n1,
            n2=n2,
            mean1=float(np.mean(values1)) if values1 else 0.0,
            mean2=float(np.mean(values2)) if values2 else 0.0,
            test_statistic=0.0,
            df=0.0,
            p_value=1.0,
            effect_size=0.0,
            significant=False,
            test_type="insufficient_data",
        )

    t_stat, df, p_value = welch_t_test(values1, values2)
    return PairwiseComparison(
        stratum1_name=stratum1.stratum_value,
        stratum2_name=stratum2.stratum_value,
        n1=n1,
        n2=n2,
        mean1=float(np.mean(values1)),
        mean2=float(np.mean(values2)),
        test_statistic=t_stat,
        df=df,
        p_value=p_value,
        effect_size=cohens_d(values1, values2),
        significant=p_value < ALPHA,
        test_type="welch_t_test",
    )


def compare_strata(
    strata: Mapping[str, StratifiedResults],
    parameter: str,
) -> StrataComparison:
    """All pairwise comparisons of ``parameter`` between the given strata."""
    if parameter not in _PARAMETER_NAMES:
        raise ValueError(
            f"unknown parameter {parameter!r}; "
            f"expected one of {sorted(_PARAMETER_NAMES)}"
        )
    keys = list(strata)
    comparisons = [
        compare_two_strata(strata[a], strata[b], parameter)
        for i, a in enumerate(keys)
        for b in keys[i + 1:]
    ]
    return StrataComparison(parameter=parameter, pairwise_comparisons=comparisons)


def compare_by_variable(
    stratified_results: Mapping[str, StratifiedResults],
    parameters: Sequence[str] = COMPARED_PARAMETERS,
) -> dict[str, dict[str, StrataComparison]]:
    """Compare the strata of each stratification variable among themselves.

    Returns ``{stratum_name: {parameter: StrataComparison}}`` for every
    variable (or interaction pair) with at least two surviving strata.
    """
    groups: dict[str, dict[str, StratifiedResults]] = {}
    for key, result in stratified_results.items():
        groups.setdefault(result.stratum_name, {})[key] = result

    comparisons = {}
    for name, strata in groups.items():
        if len(strata) < 2:
            continue
        comparisons[name] = {p: compare_strata(strata, p) for p in parameters}
    return comparisons
