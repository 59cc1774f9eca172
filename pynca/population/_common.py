"""Result types for population-level NCA."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from pynca.nca._common import FailedSubjectAnalysis, NCAResults


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParameterStats:
    """Descriptive statistics of one parameter across subjects.

    ``std`` is the sample standard deviation (n-1 denominator, 0 for a
    single value).  The geometric mean and CV% are ``None`` unless every
    value is strictly positive.
    """

    n: int
    mean: float
    std: float
    cv_percent: float
    median: float
    q25: float
    q75: float
    min: float
    max: float
    geometric_mean: float | None = None
    geometric_cv_percent: float | None = None

    def summary(self, name: str = "") -> str:
        line = (
            f"{name:<16s} n={self.n:<4d} mean={self.mean:.4g} "
            f"sd={self.std:.4g} cv={self.cv_percent:.1f}% "
            f"median={self.median:.4g} [{self.min:.4g}, {self.max:.4g}]"
        )
        if self.geometric_mean is not None:
            line += (
                f" gmean={self.geometric_mean:.4g} "
                f"gcv={self.geometric_cv_percent:.1f}%"
            )
        return line


# ---------------------------------------------------------------------------
# AUC method comparison
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BiasAnalysis:
    """Bland-Altman agreement between two AUC methods."""

    mean_difference: float
    mean_percent_difference: float
    limits_of_agreement: tuple[float, float]  # mean diff ± 1.96 SD


@dataclass(frozen=True)
class MethodComparison:
    """AUC_last agreement across AUC methods.

    Attributes
    ----------
    auc_methods : dict
        Mean AUC_last per method label.
    correlation_matrix : dict
        Pearson correlation of per-subject AUC_last between methods,
        ``correlation_matrix[m1][m2]``.
    bias_analysis : dict
        :class:`BiasAnalysis` keyed ``'<m1>_vs_<m2>'``.
    """

    auc_methods: dict[str, float] = field(default_factory=dict)
    correlation_matrix: dict[str, dict[str, float]] = field(default_factory=dict)
    bias_analysis: dict[str, BiasAnalysis] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Stratification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StratifiedResults:
    """Population results restricted to one stratum."""

    stratum_name: str  # variable, or 'var1_var2' for interactions
    stratum_value: str
    n_subjects: int
    individual_results: list[NCAResults]
    failed_subjects: list[FailedSubjectAnalysis]
    summary_statistics: dict[str, ParameterStats]
    method_comparison: MethodComparison

    def summary(self) -> str:
        lines = [
            f"Stratum {self.stratum_name} = {self.stratum_value} "
            f"(n = {self.n_subjects}, failed = {len(self.failed_subjects)})"
        ]
        for name, stats in self.summary_statistics.items():
            lines.append("  " + stats.summary(name))
        return "\n".join(lines)


@dataclass(frozen=True)
class PairwiseComparison:
    """Welch two-sample t-test of one parameter between two strata."""

    stratum1_name: str
    stratum2_name: str
    n1: int
    n2: int
    mean1: float
    mean2: float
    test_statistic: float
    df: float
    p_value: float
    effect_size: float  # Cohen's d, pooled SD
    significant: bool
    test_type: str  # 'welch_t_test' or 'insufficient_data'


@dataclass(frozen=True)
class StrataComparison:
    """All pairwise comparisons of one parameter across a set of strata."""

    parameter: str
    pairwise_comparisons: list[PairwiseComparison]

    def summary(self) -> str:
        lines = [f"Strata comparison: {self.parameter}"]
        for c in self.pairwise_comparisons:
            if c.test_type != "welch_t_test":
                lines.append(
                    f"  {c.stratum1_name} vs {c.stratum2_name}: insufficient data "
                    f"(n = {c.n1}, {c.n2})"
                )
                continue
            flag = " *" if c.significant else ""
            lines.append(
                f"  {c.stratum1_name} vs {c.stratum2_name}: "
                f"mean {c.mean1:.4g} vs {c.mean2:.4g}, t = {c.test_statistic:.3f}, "
                f"df = {c.df:.1f}, p = {c.p_value:.4f}, d = {c.effect_size:.2f}{flag}"
            )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Covariates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CovariateCorrelation:
    """Pearson correlations of one covariate with each parameter."""

    covariate_name: str
    parameter_correlations: dict[str, float]
    p_values: dict[str, float]
    n_pairs: dict[str, int]


@dataclass(frozen=True)
class RegressionResults:
    """Simple OLS regression of a parameter on a covariate."""

    parameter: str
    covariate: str
    slope: float
    intercept: float
    r_squared: float
    p_value: float
    confidence_interval: tuple[float, float]  # 95% CI of the slope
    n: int


@dataclass(frozen=True)
class LinearityAssessment:
    """Regression of dose-normalised AUC on dose within one treatment."""

    slope: float
    r_squared: float
    linearity_conclusion: str  # 'Linear', 'Non-linear' or 'Inconclusive'


@dataclass(frozen=True)
class DoseNormalizedAnalysis:
    """Dose-normalised exposure per treatment group."""

    dose_normalized_auc: dict[str, ParameterStats]
    dose_normalized_cmax: dict[str, ParameterStats]
    dose_linearity_assessment: dict[str, LinearityAssessment]


@dataclass(frozen=True)
class CovariateAnalysis:
    """Covariate correlations, regressions and dose normalisation."""

    correlations: dict[str, CovariateCorrelation] = field(default_factory=dict)
    regression_analysis: dict[str, RegressionResults] = field(default_factory=dict)
    dose_normalized_analysis: DoseNormalizedAnalysis | None = None

    def summary(self) -> str:
        lines = ["Covariate analysis"]
        for cov in self.correlations.values():
            for param, r in cov.parameter_correlations.items():
                lines.append(
                    f"  r({cov.covariate_name}, {param}) = {r:.3f} "
                    f"(p = {cov.p_values[param]:.4f}, n = {cov.n_pairs[param]})"
                )
        for key, reg in self.regression_analysis.items():
            lines.append(
                f"  {key}: slope = {reg.slope:.4g} "
                f"[{reg.confidence_interval[0]:.4g}, {reg.confidence_interval[1]:.4g}]"
                f", R² = {reg.r_squared:.3f}"
            )
        dn = self.dose_normalized_analysis
        if dn is not None:
            for treatment, assessment in dn.dose_linearity_assessment.items():
                lines.append(
                    f"  Dose linearity ({treatment}): "
                    f"{assessment.linearity_conclusion}"
                )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# PopulationResults
# ---------------------------------------------------------------------------

def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class PopulationResults:
    """Result of a population NCA run.

    Attributes
    ----------
    individual_results : list of NCAResults
        Successfully analysed subjects, sorted by subject id.
    failed_subjects : list of FailedSubjectAnalysis
        Subjects that failed the minimum-data gate, sorted by subject id.
    summary_statistics : dict
        :class:`ParameterStats` per parameter name.
    method_comparison : MethodComparison
    stratified_results : dict
        :class:`StratifiedResults` keyed ``'<var>_<value>'`` or
        ``'interaction_<var1>_<var2>_<v1>-<v2>'``.
    strata_comparisons : dict
        ``strata_comparisons[variable][parameter]`` ->
        :class:`StrataComparison` (only when statistical tests are on).
    covariate_analysis : CovariateAnalysis
    warnings : dict
        Subject id -> warnings raised while analysing that subject.
    """

    individual_results: list[NCAResults]
    failed_subjects: list[FailedSubjectAnalysis]
    summary_statistics: dict[str, ParameterStats]
    method_comparison: MethodComparison
    stratified_results: dict[str, StratifiedResults] = field(default_factory=dict)
    strata_comparisons: dict[str, dict[str, StrataComparison]] = field(
        default_factory=dict
    )
    covariate_analysis: CovariateAnalysis = field(default_factory=CovariateAnalysis)
    warnings: dict[str, list[str]] = field(default_factory=dict)

    @property
    def n_subjects(self) -> int:
        return len(self.individual_results) + len(self.failed_subjects)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict/list/float structure, ready for ``json.dumps``."""
        return _jsonable(asdict(self))

    def summary(self) -> str:
        """Human-readable population summary."""
        lines = [
            "Population Non-Compartmental Analysis",
            "=" * 40,
            f"Subjects analysed : {len(self.individual_results)}",
            f"Subjects failed   : {len(self.failed_subjects)}",
            "",
        ]
        for name, stats in self.summary_statistics.items():
            lines.append("  " + stats.summary(name))
        if self.method_comparison.auc_methods:
            lines.append("")
            lines.append("  Mean AUC(0-last) by method:")
            for label, value in self.method_comparison.auc_methods.items():
                lines.append(f"    {label:<24s}= {value:.4g}")
        if self.stratified_results:
            lines.append("")
            lines.append(f"  Strata analysed   : {len(self.stratified_results)}")
        for failed in self.failed_subjects:
            lines.append(f"  FAILED {failed.subject_id}: {failed.failure_reason}")
        return "\n".join(lines)
