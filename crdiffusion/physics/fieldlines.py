"""Cash–Karp tracing of magnetic field lines.

The integrator advances a position by a signed arc length along the local
field tangent ``B / |B|`` and returns the embedded fourth- and fifth-order
estimates.  Their difference drives the step-size control in
:mod:`crdiffusion.physics.stepsize`.
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from .fields import MagneticField

__all__ = ["CK_A", "CK_B", "CK_BS", "FieldLineIntegrator", "unit_tangent"]

# Cash–Karp tableau
CK_A = np.array(
    [
        [0.0, 0.0, 0.0, 0.0, 0.0],
        [1.0 / 5.0, 0.0, 0.0, 0.0, 0.0],
        [3.0 / 40.0, 9.0 / 40.0, 0.0, 0.0, 0.0],
        [3.0 / 10.0, -9.0 / 10.0, 6.0 / 5.0, 0.0, 0.0],
        [-11.0 / 54.0, 5.0 / 2.0, -70.0 / 27.0, 35.0 / 27.0, 0.0],
        [1631.0 / 55296.0, 175.0 / 512.0, 575.0 / 13824.0, 44275.0 / 110592.0, 253.0 / 4096.0],
    ]
)
# fifth order weights
CK_B = np.array([37.0 / 378.0, 0.0, 250.0 / 621.0, 125.0 / 594.0, 0.0, 512.0 / 1771.0])
# embedded fourth order weights
CK_BS = np.array([2825.0 / 27648.0, 0.0, 18575.0 / 48384.0, 13525.0 / 55296.0, 277.0 / 14336.0, 1.0 / 4.0])


def unit_tangent(field_vector: np.ndarray) -> np.ndarray:
    """Return ``B / |B|``, or the zero vector where the field vanishes."""

    norm = float(np.linalg.norm(field_vector))
    if norm == 0.0:
        return np.zeros(3)
    return np.asarray(field_vector, dtype=float) / norm


class FieldLineIntegrator:
    """Embedded Runge–Kutta pair for ``dx/ds = B(x) / |B(x)|``."""

    def __init__(self, field: MagneticField) -> None:
        self.field = field

    def tangent(self, position: np.ndarray, z: float = 0.0) -> np.ndarray:
        return unit_tangent(self.field.get_field(position, z))

    def advance(self, position: np.ndarray, step: float, z: float = 0.0) -> Tuple[np.ndarray, np.ndarray]:
        """Trace ``step`` metres along the field line starting at ``position``.

        Returns the fourth-order (``low``) and fifth-order (``high``)
        estimates of the end point.  Field errors such as
        :class:`~crdiffusion.errors.DomainError` propagate to the caller.
        """

        start = np.asarray(position, dtype=float)
        k = np.zeros((6, 3))
        for i in range(6):
            y = start + step * (CK_A[i, :i] @ k[:i]) if i else start
            k[i] = self.tangent(y, z)
        high = start + step * (CK_B @ k)
        low = start + step * (CK_BS @ k)
        return low, high
