"""
PyNCA: Population non-compartmental pharmacokinetic analysis for Python.

PyNCA computes the standard NCA parameters for every subject of a study
(AUC, AUMC, Cmax, half-life, clearance, volumes, MRT) and aggregates them
across the population: summary statistics, AUC method comparison,
stratified sub-analyses, and covariate / dose-linearity analysis.

Usage:
    from pynca import AnalysisConfig, nca, population
"""

__version__ = "0.1.0"
__author__ = "Hai-Shuo"
__email__ = "contact@sgcx.org"

from pynca._config import (
    AnalysisConfig,
    AUCMethod,
    AutoSelection,
    BestFitSelection,
    BLQHandling,
    ManualSelection,
    StratificationConfig,
    method_label,
)
from pynca._errors import CalculationError, InsufficientDataError, NCAError
from pynca import nca
from pynca import population

__all__ = [
    "__version__",
    "AnalysisConfig",
    "AUCMethod",
    "AutoSelection",
    "BestFitSelection",
    "BLQHandling",
    "ManualSelection",
    "StratificationConfig",
    "method_label",
    "NCAError",
    "InsufficientDataError",
    "CalculationError",
    "nca",
    "population",
]
