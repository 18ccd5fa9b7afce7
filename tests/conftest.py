from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crdiffusion import constants  # noqa: E402
from crdiffusion.candidate import Candidate  # noqa: E402
from crdiffusion.physics.fields import AnalyticMagneticField, UniformMagneticField  # noqa: E402


def circular_field(strength: float = constants.MICROGAUSS) -> AnalyticMagneticField:
    """Toroidal field around the z axis; field lines are circles."""

    def _field(position: np.ndarray, z: float) -> np.ndarray:
        x, y = position[0], position[1]
        r = np.hypot(x, y)
        if r == 0.0:
            return np.zeros(3)
        return strength * np.array([-y / r, x / r, 0.0])

    return AnalyticMagneticField(_field)


@pytest.fixture()
def uniform_z_field() -> UniformMagneticField:
    return UniformMagneticField([0.0, 0.0, constants.MICROGAUSS])


@pytest.fixture()
def make_proton():
    """Factory for 1 EeV protons at the origin with an explicit seed."""

    def _make(seed: int = 0, energy: float = constants.EEV, **kwargs) -> Candidate:
        kwargs.setdefault("direction", (0.0, 0.0, 1.0))
        return Candidate.create(energy, charge_number=1, mass_number=1, seed=seed, **kwargs)

    return _make


@pytest.fixture()
def toroidal_field() -> AnalyticMagneticField:
    return circular_field()
