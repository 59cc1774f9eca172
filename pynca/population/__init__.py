"""
Population non-compartmental analysis.

Parallel per-subject NCA with failure isolation, summary statistics,
AUC method comparison, stratified sub-analyses with Welch comparisons
between strata, covariate correlation/regression and dose-linearity
assessment.
"""

from pynca.population._common import (
    BiasAnalysis,
    CovariateAnalysis,
    CovariateCorrelation,
    DoseNormalizedAnalysis,
    LinearityAssessment,
    MethodComparison,
    PairwiseComparison,
    ParameterStats,
    PopulationResults,
    RegressionResults,
    StrataComparison,
    StratifiedResults,
)
from pynca.population._stats import (
    bias_analysis,
    cohens_d,
    correlation_p_value,
    describe,
    pearson,
    simple_linear_regression,
    welch_t_test,
)
from pynca.population._aggregate import (
    analyze_population,
    compare_methods,
    summary_statistics,
)
from pynca.population._stratify import (
    analyze_stratified,
    categorize_age,
    categorize_dose,
    categorize_weight,
    compare_by_variable,
    compare_strata,
    compare_two_strata,
    create_interaction_strata,
    create_strata,
    stratum_value,
)
from pynca.population._covariate import (
    analyze_covariates,
    assess_dose_linearity,
    dose_normalized_analysis,
)

__all__ = [
    "BiasAnalysis",
    "CovariateAnalysis",
    "CovariateCorrelation",
    "DoseNormalizedAnalysis",
    "LinearityAssessment",
    "MethodComparison",
    "PairwiseComparison",
    "ParameterStats",
    "PopulationResults",
    "RegressionResults",
    "StrataComparison",
    "StratifiedResults",
    "bias_analysis",
    "cohens_d",
    "correlation_p_value",
    "describe",
    "pearson",
    "simple_linear_regression",
    "welch_t_test",
    "analyze_population",
    "compare_methods",
    "summary_statistics",
    "analyze_stratified",
    "categorize_age",
    "categorize_dose",
    "categorize_weight",
    "compare_by_variable",
    "compare_strata",
    "compare_two_strata",
    "create_interaction_strata",
    "create_strata",
    "stratum_value",
    "analyze_covariates",
    "assess_dose_linearity",
    "dose_normalized_analysis",
]
