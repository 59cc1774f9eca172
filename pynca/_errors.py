"""Exception hierarchy for NCA calculations.

Invalid arguments (bad configuration, malformed inputs) raise a plain
``ValueError``.  The classes below describe data-dependent failures of a
calculation on otherwise valid input.
"""

from __future__ import annotations


class NCAError(ValueError):
    """Base class for data-dependent NCA failures."""


class InsufficientDataError(NCAError):
    """Too few usable observations for AUC, lambda_z, or Cmax/Tmax."""


class CalculationError(NCAError):
    """A derived parameter's precondition does not hold (e.g. lambda_z <= 0)."""
