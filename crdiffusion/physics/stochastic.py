"""Euler–Maruyama increments for the diffusive part of the transport SDE."""
from __future__ import annotations

import numpy as np

from .. import constants
from .diffusion_tensor import DiffusionTensor

__all__ = ["StochasticStepper"]


class StochasticStepper:
    """Apply Gaussian displacements scaled by a :class:`DiffusionTensor`.

    Step lengths are distances; they are converted to the time step
    ``dt = step_length / c`` before being combined with the coefficients.
    The generator is always supplied by the caller.
    """

    @staticmethod
    def draw(rng: np.random.Generator) -> np.ndarray:
        """Return three independent standard normal variates."""
        return rng.standard_normal(3)

    @staticmethod
    def increments(tensor: DiffusionTensor, step_length: float, eta: np.ndarray) -> np.ndarray:
        """Displacements along the principal axes ``(t, n, b)`` in metres."""
        dt = step_length / constants.C_LIGHT
        return tensor.amplitudes(dt) * np.asarray(eta, dtype=float)

    def parallel_displacement(self, tensor: DiffusionTensor, step_length: float, eta: np.ndarray) -> float:
        """Signed arc length to be traced along the field line."""
        return float(self.increments(tensor, step_length, eta)[0])

    def apply(
        self,
        advected_position: np.ndarray,
        tensor: DiffusionTensor,
        step_length: float,
        eta: np.ndarray,
    ) -> np.ndarray:
        """Add the perpendicular increments to ``advected_position``.

        The parallel increment is realised by tracing the field line and is
        therefore not added again here.
        """

        local = self.increments(tensor, step_length, eta)
        return np.asarray(advected_position, dtype=float) + tensor.basis[:, 1:] @ local[1:]
