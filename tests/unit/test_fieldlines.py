import numpy as np
import pytest

from crdiffusion import constants
from crdiffusion.errors import DomainError
from crdiffusion.physics.fieldlines import CK_B, CK_BS, FieldLineIntegrator, unit_tangent
from crdiffusion.physics.fields import AnalyticMagneticField, UniformMagneticField


def test_weights_are_consistent():
    assert CK_B.sum() == pytest.approx(1.0)
    assert CK_BS.sum() == pytest.approx(1.0)


def test_unit_tangent_handles_zero_field():
    assert np.array_equal(unit_tangent(np.zeros(3)), np.zeros(3))
    assert np.allclose(unit_tangent(np.array([0.0, 3.0, 4.0])), [0.0, 0.6, 0.8])


def test_uniform_field_is_traced_exactly():
    field = UniformMagneticField([0.0, 2.0 * constants.MICROGAUSS, 0.0])
    integrator = FieldLineIntegrator(field)
    start = np.array([1.0, 2.0, 3.0]) * constants.PARSEC
    step = 5.0 * constants.PARSEC

    low, high = integrator.advance(start, step)
    assert np.allclose(high, start + [0.0, step, 0.0], rtol=1e-12)
    assert np.linalg.norm(high - low) < 1e-9 * step

    _, back = integrator.advance(start, -step)
    assert np.allclose(back, start - [0.0, step, 0.0], rtol=1e-12)


def test_circle_error_shrinks_with_step(toroidal_field):
    radius = constants.KPC
    integrator = FieldLineIntegrator(toroidal_field)
    start = np.array([radius, 0.0, 0.0])

    errors = []
    for step in (0.8 * radius, 0.4 * radius, 0.2 * radius):
        low, high = integrator.advance(start, step)
        errors.append(np.linalg.norm(high - low))
        angle = step / radius
        exact = radius * np.array([np.cos(angle), np.sin(angle), 0.0])
        assert np.linalg.norm(high - exact) < 1e-2 * radius
    assert errors[0] > errors[1] > errors[2]
    # embedded error of a fifth-order pair falls off at least like step**4
    assert errors[1] / errors[2] > 10.0


def test_domain_errors_propagate():
    def _bounded(position, z):
        if position[0] > constants.PARSEC:
            raise DomainError("outside")
        return np.array([1.0, 0.0, 0.0])

    integrator = FieldLineIntegrator(AnalyticMagneticField(_bounded))
    with pytest.raises(DomainError):
        integrator.advance(np.zeros(3), 2.0 * constants.PARSEC)
