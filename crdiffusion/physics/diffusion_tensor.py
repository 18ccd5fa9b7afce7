r"""Anisotropic diffusion tensor in a field-aligned frame.

The spatial diffusion coefficient follows a rigidity power law

.. math::

    \kappa(R) = s \, D_0 \left(\frac{|R|}{R_0}\right)^{\alpha}

with :math:`D_0 = 6.1\times10^{24}\,\mathrm{m^2\,s^{-1}}` at the reference
rigidity :math:`R_0 = 4\,\mathrm{GV}`.  Diffusion along the magnetic field
uses :math:`\kappa` directly; across the field it is reduced by the ratio
``epsilon`` so that the tensor is diagonal
:math:`(\kappa, \epsilon\kappa, \epsilon\kappa)` in the local basis whose
first axis is the field direction.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .. import constants
from ..errors import PhysicsError

logger = logging.getLogger(__name__)

__all__ = [
    "D0",
    "R0",
    "DiffusionTensor",
    "DiffusionTensorBuilder",
    "diffusion_coefficient",
    "field_aligned_basis",
]

D0: float = 6.1e24 * constants.METER**2 / constants.SECOND
R0: float = 4.0e9 * constants.VOLT


def diffusion_coefficient(rigidity: float, alpha: float = 1.0 / 3.0, scale: float = 1.0) -> float:
    """Return the parallel diffusion coefficient ``κ(R)`` in m^2/s.

    A candidate at rest (``R = 0``) does not diffuse, whatever ``alpha``.
    """

    if rigidity == 0.0:
        return 0.0
    return float(scale * D0 * (abs(rigidity) / R0) ** alpha)


def field_aligned_basis(direction: np.ndarray) -> np.ndarray:
    """Return an orthonormal basis ``(t, n, b)`` as matrix columns.

    ``t`` is the normalised ``direction``; ``n`` and ``b`` span the plane
    perpendicular to it and ``t × n = b``.
    """

    t = np.asarray(direction, dtype=float)
    norm = float(np.linalg.norm(t))
    if norm == 0.0 or not math.isfinite(norm):
        raise PhysicsError("field direction must be a finite, non-zero vector")
    t = t / norm
    helper = np.array([1.0, 0.0, 0.0]) if abs(t[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    n = np.cross(t, helper)
    n /= np.linalg.norm(n)
    b = np.cross(t, n)
    return np.column_stack((t, n, b))


@dataclass(frozen=True)
class DiffusionTensor:
    """Diagonal diffusion tensor together with its principal axes.

    Attributes
    ----------
    d_par:
        Coefficient along the field direction (m^2/s).
    d_perp:
        Coefficient in both perpendicular directions (m^2/s).
    basis:
        Orthonormal matrix whose columns are the principal axes; the first
        column is the field direction.
    """

    d_par: float
    d_perp: float
    basis: np.ndarray

    @property
    def coefficients(self) -> np.ndarray:
        return np.array([self.d_par, self.d_perp, self.d_perp])

    @property
    def matrix(self) -> np.ndarray:
        """Symmetric 3x3 tensor in global coordinates."""
        return self.basis @ np.diag(self.coefficients) @ self.basis.T

    def amplitudes(self, dt: float) -> np.ndarray:
        """Return the Euler–Maruyama scale ``sqrt(2 D_i dt)`` per principal axis."""
        return np.sqrt(2.0 * self.coefficients * dt)

    def aligned_to(self, direction: np.ndarray) -> "DiffusionTensor":
        """Return the same coefficients expressed in the frame of ``direction``."""
        return DiffusionTensor(self.d_par, self.d_perp, field_aligned_basis(direction))


class DiffusionTensorBuilder:
    """Build :class:`DiffusionTensor` instances from the local particle state.

    Parameters
    ----------
    epsilon:
        Ratio ``D_perp / D_par``.
    alpha:
        Power-law index of the rigidity dependence.
    scale:
        Normalisation factor applied to ``D0``.
    """

    def __init__(self, epsilon: float = 0.1, alpha: float = 1.0 / 3.0, scale: float = 1.0) -> None:
        self.epsilon = float(epsilon)
        self.alpha = float(alpha)
        self.scale = float(scale)

    def build(
        self,
        rigidity: float,
        field_direction: np.ndarray,
        energy: Optional[float] = None,
        z: float = 0.0,
    ) -> DiffusionTensor:
        """Return the tensor for ``rigidity`` aligned with ``field_direction``.

        ``energy`` and ``z`` are part of the builder interface for models that
        depend on them; the power law implemented here uses the rigidity only.
        """

        kappa = diffusion_coefficient(rigidity, self.alpha, self.scale)
        tensor = DiffusionTensor(
            d_par=kappa,
            d_perp=self.epsilon * kappa,
            basis=field_aligned_basis(field_direction),
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "build: R=%.3e V -> D_par=%.3e D_perp=%.3e m^2/s", rigidity, tensor.d_par, tensor.d_perp
            )
        return tensor
