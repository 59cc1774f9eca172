"""Subject data and result types for non-compartmental analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

class DosingRoute(Enum):
    """Administration route of a dosing event."""

    IV_BOLUS = "IV"
    IV_INFUSION = "INFUSION"
    ORAL = "ORAL"


@dataclass(frozen=True)
class Observation:
    """One concentration sample.

    ``concentration`` is the value as reported; when ``blq`` is set it is
    reconciled with the configured BLQ policy before integration.  ``dv``
    is the recorded dependent variable and defaults to ``concentration``.
    """

    time: float
    concentration: float
    lloq: float | None = None
    blq: bool = False
    evid: int = 0
    dv: float | None = None

    def __post_init__(self) -> None:
        if self.dv is None:
            object.__setattr__(self, "dv", self.concentration)

    @property
    def is_quantifiable(self) -> bool:
        """Positive concentration that is not flagged below LLOQ."""
        return self.concentration > 0 and not self.blq


@dataclass(frozen=True)
class DosingEvent:
    """One administered dose."""

    time: float
    dose: float
    route: DosingRoute = DosingRoute.IV_BOLUS
    infusion_duration: float | None = None
    evid: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.route, DosingRoute):
            object.__setattr__(self, "route", DosingRoute(self.route))
        if self.dose < 0:
            raise ValueError(f"dose must be non-negative, got {self.dose}")
        if self.route is DosingRoute.IV_INFUSION:
            if self.infusion_duration is None or self.infusion_duration <= 0:
                raise ValueError(
                    "infusion dosing requires a positive infusion_duration, "
                    f"got {self.infusion_duration!r}"
                )


@dataclass(frozen=True)
class Demographics:
    """Subject covariates and study-design metadata (all optional)."""

    age: float | None = None
    weight: float | None = None
    height: float | None = None
    sex: str | None = None
    race: str | None = None
    treatment: str | None = None
    formulation: str | None = None
    period: int | None = None
    sequence: str | None = None
    study_day: int | None = None


@dataclass(frozen=True)
class Subject:
    """Concentration-time profile and dosing history of one subject.

    Observations need not be sorted; the analysis sorts a private copy.
    """

    id: str
    observations: tuple[Observation, ...]
    dosing_events: tuple[DosingEvent, ...] = ()
    demographics: Demographics = field(default_factory=Demographics)

    def __post_init__(self) -> None:
        object.__setattr__(self, "observations", tuple(self.observations))
        object.__setattr__(self, "dosing_events", tuple(self.dosing_events))

    @property
    def total_dose(self) -> float:
        return float(sum(d.dose for d in self.dosing_events))

    @property
    def n_quantifiable(self) -> int:
        return sum(1 for obs in self.observations if obs.is_quantifiable)

    @property
    def is_oral(self) -> bool:
        """True when every dose was given orally (clearance is CL/F)."""
        return bool(self.dosing_events) and all(
            d.route is DosingRoute.ORAL for d in self.dosing_events
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IndividualParameters:
    """NCA parameters of one subject.

    Every field is optional: a parameter is ``None`` when its
    preconditions did not hold (e.g. no terminal phase could be fitted,
    so AUC_inf, half-life, clearance and the volumes are unavailable).
    """

    # Exposure
    auc_last: float | None = None
    auc_inf: float | None = None
    auc_inf_pred: float | None = None
    auc_pct_extrap: float | None = None
    aumc_last: float | None = None
    aumc_inf: float | None = None

    # Observed
    cmax: float | None = None
    tmax: float | None = None
    tlast: float | None = None
    clast: float | None = None

    # Terminal phase
    half_life: float | None = None
    lambda_z: float | None = None
    lambda_z_r_squared: float | None = None
    lambda_z_n_points: int | None = None

    # Dose-dependent
    clearance: float | None = None
    vss: float | None = None
    vz: float | None = None
    mrt: float | None = None
    bioavailability: float | None = None

    def summary(self) -> str:
        """Human-readable PK summary."""
        rows = [
            ("Cmax", self.cmax),
            ("Tmax", self.tmax),
            ("Tlast", self.tlast),
            ("Clast", self.clast),
            ("AUC(0-last)", self.auc_last),
            ("AUC(0-inf)", self.auc_inf),
            ("AUMC(0-last)", self.aumc_last),
            ("AUMC(0-inf)", self.aumc_inf),
            ("lambda_z", self.lambda_z),
            ("t1/2", self.half_life),
            ("CL", self.clearance),
            ("Vz", self.vz),
            ("Vss", self.vss),
            ("MRT", self.mrt),
        ]
        lines = []
        for label, value in rows:
            if value is not None:
                lines.append(f"  {label:<14s}= {value:.4g}")
        if self.auc_pct_extrap is not None:
            lines.append(f"  {'%AUC extrap':<14s}= {self.auc_pct_extrap:.1f}%")
        if self.lambda_z_r_squared is not None:
            lines.append(f"  {'r-squared':<14s}= {self.lambda_z_r_squared:.4f}")
        return "\n".join(lines)


@dataclass(frozen=True)
class NCAResults:
    """Primary parameters of one subject plus one entry per AUC method."""

    subject_id: str
    parameters: IndividualParameters
    method_comparisons: dict[str, IndividualParameters] = field(
        default_factory=dict
    )

    def summary(self) -> str:
        lines = [f"Non-Compartmental Analysis: subject {self.subject_id}", ""]
        lines.append(self.parameters.summary())
        if self.method_comparisons:
            lines.append("")
            lines.append("  AUC(0-last) by method:")
            for label, params in self.method_comparisons.items():
                if params.auc_last is not None:
                    lines.append(f"    {label:<24s}= {params.auc_last:.4g}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FailedSubjectAnalysis:
    """A subject that could not be analysed at all."""

    subject_id: str
    failure_reason: str
    quantifiable_concentrations: int
    total_observations: int
    failed_parameters: tuple[str, ...] = ("All parameters",)
