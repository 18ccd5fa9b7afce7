"""Step-size control for the field-line tracing of :class:`DiffusionSDE`.

The controller runs a small state machine for every candidate step:

``Propose`` the full parallel displacement, ``Evaluate`` the embedded-pair
error, then either ``Accept`` it or ``Reject`` and retry with half the arc
length from the same starting point.  Once halving would fall below
``min_step`` the current proposal is accepted anyway and flagged as
``forced``; the tracing error of such a step may exceed the tolerance.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .. import constants

logger = logging.getLogger(__name__)

__all__ = ["ERROR_SCALE", "GROWTH_FACTOR", "StepOutcome", "StepSizeController"]

# positional errors are measured in kpc before comparing with the tolerance
ERROR_SCALE: float = constants.KPC
GROWTH_FACTOR: float = 4.0


@dataclass(frozen=True)
class StepOutcome:
    """Verdict for one proposed field-line step."""

    position: np.ndarray
    error: float
    accepted: bool
    forced: bool
    next_step: float


class StepSizeController:
    """Accept, reject or rescale field-line steps.

    Parameters
    ----------
    tolerance:
        Maximum accepted error ``|high - low|`` in units of ``ERROR_SCALE``.
    min_step, max_step:
        Bounds of the candidate step length in metres.
    """

    def __init__(self, tolerance: float, min_step: float, max_step: float) -> None:
        self.tolerance = float(tolerance)
        self.min_step = float(min_step)
        self.max_step = float(max_step)

    def clip(self, step: float) -> float:
        return float(min(max(step, self.min_step), self.max_step))

    def error_ratio(self, low: np.ndarray, high: np.ndarray) -> float:
        return float(np.linalg.norm(high - low)) / ERROR_SCALE / self.tolerance

    def evaluate(self, low: np.ndarray, high: np.ndarray, step: float) -> StepOutcome:
        """Judge a proposal of signed arc length ``step``.

        NaN errors compare false against the tolerance and are accepted;
        the caller checks the final position for finiteness.
        """

        ratio = self.error_ratio(low, high)
        if not ratio > 1.0:
            return StepOutcome(high, ratio, accepted=True, forced=False, next_step=step)
        half = 0.5 * step
        if abs(half) >= self.min_step:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("reject step %.3e m (error ratio %.3e), retry with %.3e m", step, ratio, half)
            return StepOutcome(high, ratio, accepted=False, forced=False, next_step=half)
        return StepOutcome(high, ratio, accepted=True, forced=True, next_step=step)

    def next_step(self, step_length: float, substeps: int) -> float:
        """Return the step hint for the candidate's following call.

        A step traced without subdivision grows by ``GROWTH_FACTOR``;
        otherwise the hint shrinks with the square of the number of substeps.
        """

        if substeps > 1:
            proposal = step_length / float(substeps) ** 2
        else:
            proposal = GROWTH_FACTOR * step_length
        return self.clip(proposal)
