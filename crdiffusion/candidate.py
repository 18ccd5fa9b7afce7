"""Particle state and candidate containers handed from module to module.

A :class:`Candidate` is created by the caller, mutated in place by every
module it passes through and discarded once it leaves the simulation.  It
owns its own :class:`numpy.random.Generator` so that stochastic modules never
share a generator between candidates.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

import numpy as np

from . import constants
from .errors import PhysicsError

__all__ = ["ParticleState", "Candidate"]


def _as_vector(values: Iterable[float], name: str) -> np.ndarray:
    vec = np.array(values, dtype=float).reshape(-1)
    if vec.shape != (3,):
        raise PhysicsError(f"{name} must have exactly three components")
    return vec


class ParticleState:
    """Kinematic state of a single pseudo-particle.

    Parameters
    ----------
    energy:
        Kinetic energy in joules.  Must be non-negative.
    charge_number:
        Charge number ``Z`` in units of the elementary charge.
    mass_number:
        Mass number ``A``; zero for non-nuclear particles.
    position:
        Position in metres.
    direction:
        Propagation direction; normalised on assignment.
    """

    def __init__(
        self,
        energy: float,
        charge_number: int = 1,
        mass_number: int = 1,
        position: Iterable[float] = (0.0, 0.0, 0.0),
        direction: Iterable[float] = (1.0, 0.0, 0.0),
    ) -> None:
        self.charge_number = int(charge_number)
        self.mass_number = int(mass_number)
        self.energy = energy
        self.position = position
        self.direction = direction

    @property
    def energy(self) -> float:
        return self._energy

    @energy.setter
    def energy(self, value: float) -> None:
        value = float(value)
        if not value >= 0.0:
            raise PhysicsError(f"energy must be non-negative, got {value!r}")
        self._energy = value

    @property
    def position(self) -> np.ndarray:
        return self._position

    @position.setter
    def position(self, value: Iterable[float]) -> None:
        self._position = _as_vector(value, "position")

    @property
    def direction(self) -> np.ndarray:
        return self._direction

    @direction.setter
    def direction(self, value: Iterable[float]) -> None:
        vec = _as_vector(value, "direction")
        norm = float(np.linalg.norm(vec))
        if norm == 0.0 or not np.isfinite(norm):
            raise PhysicsError("direction must be a finite, non-zero vector")
        self._direction = vec / norm

    @property
    def charge(self) -> float:
        """Electric charge in coulomb."""
        return self.charge_number * constants.EPLUS

    @property
    def rigidity(self) -> float:
        """Return ``E / (Z e)`` in volts; infinite for neutral particles."""
        if self.charge_number == 0:
            return float("inf")
        return self.energy / self.charge

    @property
    def is_nucleus(self) -> bool:
        return self.mass_number >= 1

    def copy(self) -> "ParticleState":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (
            f"ParticleState(E={self.energy / constants.EEV:g} EeV, Z={self.charge_number}, "
            f"A={self.mass_number}, position={self.position.tolist()}, "
            f"direction={self.direction.tolist()})"
        )


@dataclass
class Candidate:
    """Mutable simulation state of one pseudo-particle.

    ``trajectory_length`` accumulates every step passed to
    :meth:`set_current_step`.  ``next_step`` is the step-size hint read by the
    propagation modules at the start of their next call.
    """

    current: ParticleState
    redshift: float = 0.0
    current_step: float = 0.0
    next_step: float = 0.0
    trajectory_length: float = 0.0
    active: bool = True
    properties: Dict[str, Any] = field(default_factory=dict)
    rng: np.random.Generator = field(default_factory=np.random.default_rng, repr=False)
    previous: Optional[ParticleState] = None

    def __post_init__(self) -> None:
        if self.previous is None:
            self.previous = self.current.copy()

    @classmethod
    def create(
        cls,
        energy: float,
        charge_number: int = 1,
        mass_number: int = 1,
        position: Iterable[float] = (0.0, 0.0, 0.0),
        direction: Iterable[float] = (1.0, 0.0, 0.0),
        *,
        redshift: float = 0.0,
        seed: Optional[int] = None,
    ) -> "Candidate":
        """Build a candidate with a freshly seeded generator."""

        state = ParticleState(energy, charge_number, mass_number, position, direction)
        return cls(current=state, redshift=redshift, rng=np.random.default_rng(seed))

    def set_current_step(self, step: float) -> None:
        """Record the step just taken and add it to the trajectory length."""

        self.current_step = float(step)
        self.trajectory_length += abs(self.current_step)

    def set_next_step(self, step: float) -> None:
        self.next_step = float(step)

    def increment_property(self, key: str, amount: int = 1) -> int:
        value = int(self.properties.get(key, 0)) + amount
        self.properties[key] = value
        return value
