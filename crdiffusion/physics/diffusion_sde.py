"""Propagation of charged candidates as diffusing pseudo-particles.

The transport equation is solved by integrating the equivalent stochastic
differential equation with an Euler–Maruyama scheme.  Each call to
:meth:`DiffusionSDE.process` performs one time step ``dt = step / c``:

1. a parallel displacement ``sqrt(2 D_par dt) * eta_0`` is traced along the
   magnetic field line with an adaptive Cash–Karp integrator,
2. perpendicular displacements ``sqrt(2 D_perp dt) * eta_{1,2}`` are added
   in the plane orthogonal to the traced chord.

Neutral candidates and candidates in a vanishing field move rectilinearly.
"""
from __future__ import annotations

import logging
import math
import warnings
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

from .. import constants
from ..candidate import Candidate
from ..errors import ConfigurationError
from ..module import Module
from ..warnings import NumericalWarning
from .diffusion_tensor import DiffusionTensorBuilder
from .fieldlines import FieldLineIntegrator, unit_tangent
from .fields import MagneticField
from .stepsize import StepSizeController
from .stochastic import StochasticStepper

if TYPE_CHECKING:
    from ..schema import DiffusionParams

logger = logging.getLogger(__name__)

__all__ = ["DiffusionSDE", "FORCED_STEPS_KEY", "RECTILINEAR_GROWTH"]

FORCED_STEPS_KEY = "DiffusionSDE.forced_steps"
RECTILINEAR_GROWTH = 5.0


class DiffusionSDE(Module):
    """Anisotropic diffusion along and across magnetic field lines.

    Parameters
    ----------
    field:
        Magnetic field sampled along the trajectory.
    tolerance:
        Field-line tracing tolerance, relative to 1 kpc; ``0 < tolerance <= 1``.
    min_step, max_step:
        Bounds of the propagation step in metres; ``min_step / c`` and
        ``max_step / c`` are the bounds of the integration time step.
    epsilon:
        Ratio of perpendicular to parallel diffusion, ``0 <= epsilon <= 1``.
    alpha:
        Power-law index of the rigidity dependence of the diffusion
        coefficient; 1/3 corresponds to Kolmogorov turbulence.
    scale:
        Normalisation of the diffusion coefficient relative to ``D0``.
    """

    def __init__(
        self,
        field: MagneticField,
        tolerance: float = 1e-4,
        min_step: float = 10.0 * constants.PARSEC,
        max_step: float = 1.0 * constants.KPC,
        epsilon: float = 0.1,
        alpha: float = 1.0 / 3.0,
        scale: float = 1.0,
    ) -> None:
        self._min_step = 0.0
        self._max_step = math.inf
        self.field = field
        self.max_step = max_step
        self.min_step = min_step
        self.tolerance = tolerance
        self.epsilon = epsilon
        self.alpha = alpha
        self.scale = scale
        self._stepper = StochasticStepper()

    @classmethod
    def from_config(cls, params: "DiffusionParams", field: MagneticField) -> "DiffusionSDE":
        return cls(
            field,
            tolerance=params.tolerance,
            min_step=params.min_step_pc * constants.PARSEC,
            max_step=params.max_step_pc * constants.PARSEC,
            epsilon=params.epsilon,
            alpha=params.alpha,
            scale=params.scale,
        )

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    @property
    def field(self) -> MagneticField:
        return self._field

    @field.setter
    def field(self, value: MagneticField) -> None:
        if value is None or not isinstance(value, MagneticField):
            raise ConfigurationError("DiffusionSDE: a magnetic field providing get_field() is required")
        self._field = value

    @property
    def min_step(self) -> float:
        return self._min_step

    @min_step.setter
    def min_step(self, value: float) -> None:
        value = float(value)
        if not value > 0.0:
            raise ConfigurationError(f"DiffusionSDE: min_step must be positive, got {value!r}")
        if value > self._max_step:
            raise ConfigurationError("DiffusionSDE: min_step must not exceed max_step")
        self._min_step = value

    @property
    def max_step(self) -> float:
        return self._max_step

    @max_step.setter
    def max_step(self, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            raise ConfigurationError("DiffusionSDE: max_step must be finite")
        if value < self._min_step:
            raise ConfigurationError("DiffusionSDE: max_step must not be smaller than min_step")
        self._max_step = value

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        value = float(value)
        if not 0.0 < value <= 1.0:
            raise ConfigurationError(f"DiffusionSDE: tolerance must lie in (0, 1], got {value!r}")
        self._tolerance = value

    @property
    def epsilon(self) -> float:
        return self._epsilon

    @epsilon.setter
    def epsilon(self, value: float) -> None:
        value = float(value)
        if not 0.0 <= value <= 1.0:
            raise ConfigurationError(f"DiffusionSDE: epsilon must lie in [0, 1], got {value!r}")
        self._epsilon = value

    @property
    def alpha(self) -> float:
        return self._alpha

    @alpha.setter
    def alpha(self, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            raise ConfigurationError("DiffusionSDE: alpha must be finite")
        self._alpha = value

    @property
    def scale(self) -> float:
        return self._scale

    @scale.setter
    def scale(self, value: float) -> None:
        value = float(value)
        if not (math.isfinite(value) and value >= 0.0):
            raise ConfigurationError(f"DiffusionSDE: scale must be finite and non-negative, got {value!r}")
        self._scale = value

    @property
    def description(self) -> str:
        text = (
            f"DiffusionSDE: minStep: {self.min_step / constants.KPC:g} kpc, "
            f"maxStep: {self.max_step / constants.KPC:g} kpc, "
            f"tolerance: {self.tolerance:g}, "
            f"epsilon: {self.epsilon:g}, alpha: {self.alpha:g}, scale: {self.scale:g}"
        )
        if self.epsilon == 0.0:
            text += " (pure field-line following)"
        return text

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def tensor_builder(self) -> DiffusionTensorBuilder:
        return DiffusionTensorBuilder(self.epsilon, self.alpha, self.scale)

    def controller(self) -> StepSizeController:
        return StepSizeController(self.tolerance, self.min_step, self.max_step)

    def integrator(self) -> FieldLineIntegrator:
        return FieldLineIntegrator(self.field)

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def trace(
        self,
        position: np.ndarray,
        arc: float,
        z: float,
        integrator: FieldLineIntegrator,
        controller: StepSizeController,
    ) -> Tuple[np.ndarray, int, bool]:
        """Trace the signed arc length ``arc`` along the field line.

        Returns the end point, the number of substeps used and whether the
        substep size was accepted without meeting the tolerance.
        """

        substep = arc
        substeps = 1
        while True:
            low, high = integrator.advance(position, substep, z)
            outcome = controller.evaluate(low, high, substep)
            if outcome.accepted:
                break
            substep = outcome.next_step
            substeps *= 2

        end = outcome.position
        for _ in range(substeps - 1):
            _, end = integrator.advance(end, substep, z)
        return end, substeps, outcome.forced

    def _move_rectilinear(self, candidate: Candidate, step_length: float, next_step: float) -> None:
        current = candidate.current
        current.position = current.position + current.direction * step_length
        candidate.set_current_step(step_length)
        candidate.set_next_step(next_step)

    def _deactivate(self, candidate: Candidate) -> None:
        candidate.active = False
        warnings.warn(
            f"DiffusionSDE: non-finite position for {candidate.current!r}; candidate deactivated",
            NumericalWarning,
            stacklevel=3,
        )

    def process(self, candidate: Candidate, rng: Optional[np.random.Generator] = None) -> None:
        """Advance ``candidate`` by one diffusion step.

        ``rng`` overrides the candidate's own generator.  A
        :class:`~crdiffusion.errors.DomainError` raised by the field is not
        caught.
        """

        generator = candidate.rng if rng is None else rng
        current = candidate.current
        candidate.previous = current.copy()

        controller = self.controller()
        step_length = controller.clip(candidate.next_step)

        if current.charge_number == 0:
            self._move_rectilinear(candidate, step_length, self.max_step)
            return

        z = candidate.redshift
        start = current.position.copy()
        integrator = self.integrator()
        field_dir = integrator.tangent(start, z)
        if not np.any(field_dir):
            self._move_rectilinear(candidate, step_length, controller.clip(RECTILINEAR_GROWTH * step_length))
            return

        tensor = self.tensor_builder().build(current.rigidity, field_dir, current.energy, z)
        eta = self._stepper.draw(generator)
        arc = self._stepper.parallel_displacement(tensor, step_length, eta)

        if arc == 0.0:
            # no parallel diffusion; the field line is not traced
            traced, substeps, forced = start.copy(), 1, False
        else:
            traced, substeps, forced = self.trace(start, arc, z, integrator, controller)
        if forced:
            count = candidate.increment_property(FORCED_STEPS_KEY)
            logger.info(
                "DiffusionSDE: tolerance %.3g not met at minimum step; accepted %d substeps (forced steps: %d)",
                self.tolerance,
                substeps,
                count,
            )
            warnings.warn(
                "DiffusionSDE: field-line tracing accepted at the minimum step without meeting the tolerance",
                NumericalWarning,
                stacklevel=2,
            )

        chord = traced - start
        chord_norm = float(np.linalg.norm(chord))
        if not math.isfinite(chord_norm):
            self._deactivate(candidate)
            return
        tangent = chord / chord_norm if chord_norm > 0.0 else field_dir

        new_position = self._stepper.apply(traced, tensor.aligned_to(tangent), step_length, eta)
        if not np.all(np.isfinite(new_position)):
            self._deactivate(candidate)
            return

        new_tangent = integrator.tangent(new_position, z)
        direction = math.copysign(1.0, arc) * new_tangent if np.any(new_tangent) else tangent
        current.position = new_position
        current.direction = direction
        candidate.set_current_step(step_length)
        candidate.set_next_step(controller.next_step(step_length, substeps))

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "process: step=%.3e m arc=%.3e m substeps=%d next=%.3e m",
                step_length,
                arc,
                substeps,
                candidate.next_step,
            )
