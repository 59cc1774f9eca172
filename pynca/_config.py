"""Analysis configuration.

An :class:`AnalysisConfig` is immutable: one population run (including
every nested per-stratum run) reads the same configuration object, and
worker threads share it without locking.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union


# ---------------------------------------------------------------------------
# Enumerated options
# ---------------------------------------------------------------------------

class AUCMethod(Enum):
    """Interval rule used to integrate the concentration-time curve."""

    LINEAR_TRAPEZOIDAL = "linear_trapezoidal"
    LOG_TRAPEZOIDAL = "log_trapezoidal"
    LINEAR_LOG_TRAPEZOIDAL = "linear_log_trapezoidal"
    LINEAR_UP_LOG_DOWN = "linear_up_log_down"


class BLQHandling(Enum):
    """Treatment of below-LLOQ observations before integration."""

    ZERO = "zero"
    DROP = "drop"
    HALF_LLOQ = "half_lloq"


def method_label(method: AUCMethod | str) -> str:
    """Stable string label of an AUC method (used as a result-map key)."""
    return _coerce_auc_method(method).value


def _coerce_auc_method(method: AUCMethod | str) -> AUCMethod:
    if isinstance(method, AUCMethod):
        return method
    try:
        return AUCMethod(method)
    except ValueError:
        valid = tuple(m.value for m in AUCMethod)
        raise ValueError(
            f"auc method must be one of {valid}, got {method!r}"
        ) from None


def _coerce_blq_handling(handling: BLQHandling | str) -> BLQHandling:
    if isinstance(handling, BLQHandling):
        return handling
    try:
        return BLQHandling(handling)
    except ValueError:
        valid = tuple(h.value for h in BLQHandling)
        raise ValueError(
            f"blq_handling must be one of {valid}, got {handling!r}"
        ) from None


# ---------------------------------------------------------------------------
# Lambda_z selection variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AutoSelection:
    """Search tail windows ending at the last observation (R² >= 0.8)."""


@dataclass(frozen=True)
class ManualSelection:
    """Fit lambda_z over caller-chosen observation indices (time-sorted)."""

    indices: tuple[int, ...]

    def __post_init__(self) -> None:
        indices = tuple(int(i) for i in self.indices)
        if any(i < 0 for i in indices):
            raise ValueError(
                f"manual lambda_z indices must be non-negative, got {indices}"
            )
        object.__setattr__(self, "indices", indices)


@dataclass(frozen=True)
class BestFitSelection:
    """Search every contiguous window of at least ``min_points`` points."""

    min_points: int = 3
    r_squared_threshold: float = 0.8

    def __post_init__(self) -> None:
        if self.min_points < 2:
            raise ValueError(
                f"min_points must be >= 2, got {self.min_points}"
            )
        if not 0.0 <= self.r_squared_threshold <= 1.0:
            raise ValueError(
                "r_squared_threshold must be in [0, 1], "
                f"got {self.r_squared_threshold}"
            )


LambdaZSelection = Union[AutoSelection, ManualSelection, BestFitSelection]


# ---------------------------------------------------------------------------
# Stratification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StratificationConfig:
    """Which covariates to stratify by, and how.

    ``stratify_columns`` accepts the categorical names ``sex``, ``race``,
    ``treatment`` (``trt``), ``period``, ``sequence`` (``seq``),
    ``formulation`` (``form``) and the derived bins ``age_group``,
    ``weight_group`` and ``dose_group`` (case-insensitive).
    """

    stratify_columns: tuple[str, ...]
    include_interactions: bool = False
    minimum_n_per_stratum: int = 3
    perform_statistical_tests: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.stratify_columns, str):
            raise ValueError("stratify_columns must be a sequence of names")
        object.__setattr__(self, "stratify_columns", tuple(self.stratify_columns))
        if self.minimum_n_per_stratum < 1:
            raise ValueError(
                "minimum_n_per_stratum must be >= 1, "
                f"got {self.minimum_n_per_stratum}"
            )


# ---------------------------------------------------------------------------
# AnalysisConfig
# ---------------------------------------------------------------------------

_DEFAULT_METHODS = (
    AUCMethod.LINEAR_TRAPEZOIDAL,
    AUCMethod.LOG_TRAPEZOIDAL,
    AUCMethod.LINEAR_LOG_TRAPEZOIDAL,
    AUCMethod.LINEAR_UP_LOG_DOWN,
)


@dataclass(frozen=True)
class AnalysisConfig:
    """Options for a population NCA run.

    Parameters
    ----------
    auc_methods : sequence of AUCMethod or str
        AUC methods to compute, in order.  The primary AUC_last is the
        linear trapezoidal value if it is listed, otherwise the first
        method that could be computed.
    lambda_z_selection : AutoSelection, ManualSelection or BestFitSelection
        How the terminal-phase regression window is chosen.
    blq_handling : BLQHandling or str
        ``'zero'``, ``'drop'`` or ``'half_lloq'``.
    stratification : StratificationConfig or None
        Stratified sub-analyses to run after the main aggregation.
    dose_normalization : bool
        Compute dose-normalised AUC/Cmax and dose-linearity assessment.
    perform_covariate_analysis : bool
        Compute covariate correlations and regressions.
    time_units, concentration_units : str
        Descriptive only; carried through to result summaries.
    max_workers : int or None
        Thread pool size for the per-subject fan-out (``None`` lets the
        executor choose).
    """

    auc_methods: tuple[AUCMethod, ...] = _DEFAULT_METHODS
    lambda_z_selection: LambdaZSelection = field(default_factory=AutoSelection)
    blq_handling: BLQHandling = BLQHandling.HALF_LLOQ
    stratification: StratificationConfig | None = None
    dose_normalization: bool = False
    perform_covariate_analysis: bool = False
    time_units: str = "h"
    concentration_units: str = "ng/mL"
    max_workers: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.auc_methods, (str, AUCMethod)):
            methods = (_coerce_auc_method(self.auc_methods),)
        else:
            methods = tuple(_coerce_auc_method(m) for m in self.auc_methods)
        if not methods:
            raise ValueError("auc_methods must name at least one method")
        if len(set(methods)) != len(methods):
            raise ValueError(
                f"auc_methods contains duplicates: {[m.value for m in methods]}"
            )
        object.__setattr__(self, "auc_methods", methods)
        object.__setattr__(
            self, "blq_handling", _coerce_blq_handling(self.blq_handling)
        )

        if not isinstance(
            self.lambda_z_selection,
            (AutoSelection, ManualSelection, BestFitSelection),
        ):
            raise ValueError(
                "lambda_z_selection must be AutoSelection, ManualSelection "
                f"or BestFitSelection, got {self.lambda_z_selection!r}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(
                f"max_workers must be >= 1 or None, got {self.max_workers}"
            )

    def with_auc_methods(self, *methods: AUCMethod) -> AnalysisConfig:
        """Copy of this configuration restricted to the given AUC methods."""
        return replace(self, auc_methods=methods)

    def without_stratification(self) -> AnalysisConfig:
        """Copy of this configuration with stratification disabled.

        Per-stratum population runs use this variant so that the nested
        aggregation does not stratify again.
        """
        return replace(self, stratification=None)
