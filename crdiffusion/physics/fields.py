"""Magnetic field models sampled by the propagation modules.

Every field implements the :class:`MagneticField` protocol: a single
``get_field(position, z)`` call returning the field vector in tesla.  Three
families are provided:

* analytic fields (:class:`UniformMagneticField`,
  :class:`AnalyticMagneticField`),
* a turbulence model built from random-phase plane waves
  (:class:`TurbulentMagneticField`),
* tabulated fields on a regular grid (:class:`GridMagneticField`).

Fields are immutable once constructed so that a single instance can be
shared by concurrently propagated candidates.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Iterable, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
import pandas as pd

from ..errors import ConfigurationError, DomainError

logger = logging.getLogger(__name__)

__all__ = [
    "MagneticField",
    "UniformMagneticField",
    "AnalyticMagneticField",
    "TurbulentMagneticField",
    "GridMagneticField",
]


@runtime_checkable
class MagneticField(Protocol):
    """Structural typing port for pluggable magnetic field models."""

    def get_field(self, position: np.ndarray, z: float = 0.0) -> np.ndarray: ...


class UniformMagneticField:
    """Homogeneous field ``B(x) = B0``."""

    def __init__(self, value: Iterable[float]) -> None:
        vec = np.array(value, dtype=float).reshape(-1)
        if vec.shape != (3,):
            raise ConfigurationError("uniform field needs three components")
        vec.setflags(write=False)
        self._value = vec

    @property
    def value(self) -> np.ndarray:
        return self._value

    def get_field(self, position: np.ndarray, z: float = 0.0) -> np.ndarray:
        return self._value.copy()


class AnalyticMagneticField:
    """Field given by a callable ``func(position, z) -> B``.

    Useful for closed-form configurations such as toroidal or helical
    fields.  Exceptions raised by ``func`` propagate unchanged, so a callable
    may raise :class:`~crdiffusion.errors.DomainError` outside its domain of
    validity.
    """

    def __init__(self, func: Callable[[np.ndarray, float], Sequence[float]]) -> None:
        if not callable(func):
            raise ConfigurationError("analytic field requires a callable")
        self._func = func

    def get_field(self, position: np.ndarray, z: float = 0.0) -> np.ndarray:
        value = np.asarray(self._func(np.asarray(position, dtype=float), z), dtype=float)
        if value.shape != (3,):
            raise DomainError(f"analytic field returned shape {value.shape} at {position!r}")
        return value


class TurbulentMagneticField:
    r"""Isotropic turbulence as a superposition of transverse plane waves.

    .. math::

        \delta B(x) = \sum_n A_n \, \xi_n \cos(k_n \hat{\kappa}_n \cdot x + \phi_n)

    with random propagation directions :math:`\hat{\kappa}_n`, polarisations
    :math:`\xi_n \perp \hat{\kappa}_n` and phases :math:`\phi_n`.  Wave
    numbers are log-spaced between ``2π/l_max`` and ``2π/l_min`` and the
    amplitudes follow :math:`A_n^2 \propto k_n^{-q} \Delta k_n` with the
    spectral index ``q`` (5/3 for a Kolmogorov spectrum).  The amplitudes are
    normalised so that :math:`\langle \delta B^2 \rangle = b_{rms}^2`.  Each
    mode is divergence free, hence so is the sum.

    Parameters
    ----------
    b_rms:
        Root-mean-square turbulent field strength in tesla.
    l_min, l_max:
        Smallest and largest turbulent length scales in metres.
    n_modes:
        Number of plane waves.
    spectral_index:
        Power-law index ``q`` of the one-dimensional energy spectrum.
    mean_field:
        Optional regular field added to the turbulence.
    seed:
        Seed for the mode generator.  Modes are drawn once at construction.
    """

    def __init__(
        self,
        b_rms: float,
        l_min: float,
        l_max: float,
        n_modes: int = 64,
        spectral_index: float = 5.0 / 3.0,
        mean_field: Optional[Iterable[float]] = None,
        seed: Optional[int] = None,
    ) -> None:
        if b_rms < 0.0:
            raise ConfigurationError("b_rms must be non-negative")
        if not (0.0 < l_min < l_max):
            raise ConfigurationError(f"need 0 < l_min < l_max, got l_min={l_min}, l_max={l_max}")
        if n_modes < 1:
            raise ConfigurationError("n_modes must be at least 1")

        rng = np.random.default_rng(seed)
        k = np.geomspace(2.0 * math.pi / l_max, 2.0 * math.pi / l_min, n_modes)
        dk = np.gradient(k) if n_modes > 1 else np.ones(1)
        power = k ** (-spectral_index) * dk
        # <cos^2> = 1/2 per mode
        amplitudes = np.sqrt(2.0 * power / power.sum()) * b_rms

        cos_theta = rng.uniform(-1.0, 1.0, n_modes)
        phi = rng.uniform(0.0, 2.0 * math.pi, n_modes)
        sin_theta = np.sqrt(1.0 - cos_theta**2)
        kappa = np.column_stack((sin_theta * np.cos(phi), sin_theta * np.sin(phi), cos_theta))
        e1 = np.column_stack((cos_theta * np.cos(phi), cos_theta * np.sin(phi), -sin_theta))
        e2 = np.column_stack((-np.sin(phi), np.cos(phi), np.zeros(n_modes)))
        alpha = rng.uniform(0.0, 2.0 * math.pi, n_modes)
        xi = np.cos(alpha)[:, None] * e1 + np.sin(alpha)[:, None] * e2

        self._wave_vectors = k[:, None] * kappa
        self._polarisations = amplitudes[:, None] * xi
        self._phases = rng.uniform(0.0, 2.0 * math.pi, n_modes)
        self._mean = np.zeros(3) if mean_field is None else np.array(mean_field, dtype=float).reshape(3)
        for arr in (self._wave_vectors, self._polarisations, self._phases, self._mean):
            arr.setflags(write=False)
        self.b_rms = float(b_rms)
        self.l_min = float(l_min)
        self.l_max = float(l_max)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "TurbulentMagneticField: n_modes=%d b_rms=%.3e T l=[%.3e, %.3e] m",
                n_modes,
                b_rms,
                l_min,
                l_max,
            )

    @property
    def correlation_length(self) -> float:
        """Approximate correlation length ``l_max / 5`` of a Kolmogorov spectrum."""
        return self.l_max / 5.0

    def get_field(self, position: np.ndarray, z: float = 0.0) -> np.ndarray:
        phase = self._wave_vectors @ np.asarray(position, dtype=float) + self._phases
        return self._mean + np.cos(phase) @ self._polarisations


class GridMagneticField:
    """Field tabulated on a regular Cartesian grid.

    ``values`` has shape ``(nx, ny, nz, 3)``; node ``(i, j, k)`` sits at
    ``origin + (i, j, k) * spacing``.  The field between nodes is obtained by
    trilinear interpolation.  Outside the grid a :class:`DomainError` is
    raised unless ``periodic`` is set, in which case the grid repeats with
    period ``n * spacing`` along each axis.
    """

    def __init__(
        self,
        origin: Iterable[float],
        spacing: float | Iterable[float],
        values: np.ndarray,
        periodic: bool = False,
    ) -> None:
        vals = np.array(values, dtype=float)
        if vals.ndim != 4 or vals.shape[3] != 3:
            raise ConfigurationError(f"grid values must have shape (nx, ny, nz, 3), got {vals.shape}")
        if min(vals.shape[:3]) < 2:
            raise ConfigurationError("grid needs at least two nodes along every axis")
        if not np.all(np.isfinite(vals)):
            raise ConfigurationError("grid contains non-finite field values")
        spacing_arr = np.broadcast_to(np.asarray(spacing, dtype=float), (3,)).copy()
        if np.any(spacing_arr <= 0.0):
            raise ConfigurationError("grid spacing must be positive")
        self.origin = np.array(origin, dtype=float).reshape(3)
        self.spacing = spacing_arr
        self.periodic = bool(periodic)
        self._values = vals
        self._shape = np.array(vals.shape[:3])
        self._values.setflags(write=False)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, periodic: bool = False) -> "GridMagneticField":
        """Build a grid from long-format columns ``x, y, z, bx, by, bz``."""

        required = {"x", "y", "z", "bx", "by", "bz"}
        missing = required.difference(df.columns)
        if missing:
            names = ", ".join(sorted(missing))
            raise ConfigurationError(f"field grid table is missing required columns: {names}")
        work = df.sort_values(["x", "y", "z"])
        if work.duplicated(subset=["x", "y", "z"]).any():
            raise ConfigurationError("field grid table has duplicate nodes")
        axes = [np.sort(work[c].unique().astype(float)) for c in ("x", "y", "z")]
        shape = tuple(len(a) for a in axes)
        if len(work) != shape[0] * shape[1] * shape[2]:
            raise ConfigurationError("field grid table does not cover a full regular grid")
        spacing = []
        for a in axes:
            if len(a) < 2:
                raise ConfigurationError("field grid needs at least two nodes along every axis")
            steps = np.diff(a)
            if not np.allclose(steps, steps[0], rtol=1e-9):
                raise ConfigurationError("field grid nodes must be evenly spaced")
            spacing.append(float(steps[0]))
        values = work[["bx", "by", "bz"]].to_numpy(dtype=float).reshape(*shape, 3)
        origin = [a[0] for a in axes]
        return cls(origin=origin, spacing=spacing, values=values, periodic=periodic)

    @property
    def extent(self) -> np.ndarray:
        """Upper corner of the grid (last node position)."""
        return self.origin + (self._shape - 1) * self.spacing

    def get_field(self, position: np.ndarray, z: float = 0.0) -> np.ndarray:
        rel = (np.asarray(position, dtype=float) - self.origin) / self.spacing
        if self.periodic:
            rel = np.mod(rel, self._shape)
            i0 = np.floor(rel).astype(int)
            i1 = (i0 + 1) % self._shape
        else:
            if np.any(rel < 0.0) or np.any(rel > self._shape - 1) or not np.all(np.isfinite(rel)):
                raise DomainError(f"position {np.asarray(position).tolist()} lies outside the field grid")
            i0 = np.minimum(np.floor(rel).astype(int), self._shape - 2)
            i1 = i0 + 1
        xd, yd, zd = rel - i0
        v = self._values
        # trilinear interpolation
        c00 = v[i0[0], i0[1], i0[2]] * (1 - xd) + v[i1[0], i0[1], i0[2]] * xd
        c01 = v[i0[0], i0[1], i1[2]] * (1 - xd) + v[i1[0], i0[1], i1[2]] * xd
        c10 = v[i0[0], i1[1], i0[2]] * (1 - xd) + v[i1[0], i1[1], i0[2]] * xd
        c11 = v[i0[0], i1[1], i1[2]] * (1 - xd) + v[i1[0], i1[1], i1[2]] * xd
        c0 = c00 * (1 - yd) + c10 * yd
        c1 = c01 * (1 - yd) + c11 * yd
        return c0 * (1 - zd) + c1 * zd
