"""Parameter handling and single-step behaviour of :class:`DiffusionSDE`."""

import numpy as np
import pytest

from crdiffusion import constants
from crdiffusion.candidate import Candidate
from crdiffusion.errors import ConfigurationError, DomainError
from crdiffusion.physics.diffusion_sde import FORCED_STEPS_KEY, DiffusionSDE
from crdiffusion.physics.fields import GridMagneticField, UniformMagneticField
from crdiffusion.warnings import NumericalWarning

PC = constants.PARSEC


def test_defaults(uniform_z_field):
    sde = DiffusionSDE(uniform_z_field)
    assert sde.tolerance == 1e-4
    assert sde.min_step == pytest.approx(10 * PC)
    assert sde.max_step == pytest.approx(constants.KPC)
    assert sde.epsilon == 0.1
    assert sde.alpha == pytest.approx(1.0 / 3.0)
    assert sde.scale == 1.0
    assert "minStep: 0.01 kpc" in sde.description


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_step": 2 * constants.KPC},
        {"min_step": 0.0},
        {"tolerance": 0.0},
        {"tolerance": -1e-3},
        {"tolerance": 2.0},
        {"epsilon": -0.1},
        {"epsilon": 1.5},
        {"scale": -1.0},
        {"alpha": float("nan")},
    ],
)
def test_invalid_construction(uniform_z_field, kwargs):
    with pytest.raises(ConfigurationError):
        DiffusionSDE(uniform_z_field, **kwargs)


def test_setters_revalidate(uniform_z_field):
    sde = DiffusionSDE(uniform_z_field)
    with pytest.raises(ConfigurationError):
        sde.min_step = 2 * constants.KPC
    with pytest.raises(ConfigurationError):
        sde.max_step = 1 * PC
    with pytest.raises(ConfigurationError):
        sde.field = None
    with pytest.raises(ConfigurationError):
        sde.field = object()
    with pytest.raises(ConfigurationError):
        sde.tolerance = 0.0
    assert sde.min_step == pytest.approx(10 * PC)
    assert sde.max_step == pytest.approx(constants.KPC)
    assert sde.tolerance == 1e-4

    sde.max_step = 5 * constants.KPC
    sde.min_step = 2 * constants.KPC
    sde.alpha = 0.5
    assert sde.min_step == pytest.approx(2 * constants.KPC)
    assert sde.alpha == 0.5


def test_single_step_in_uniform_field(uniform_z_field, make_proton):
    sde = DiffusionSDE(uniform_z_field, alpha=0.0)
    cand = make_proton(seed=1)
    sde.process(cand)

    pos = cand.current.position
    assert cand.current_step == pytest.approx(10 * PC)
    assert cand.next_step == pytest.approx(40 * PC)
    assert cand.trajectory_length == pytest.approx(10 * PC)
    assert np.linalg.norm(cand.current.direction) == pytest.approx(1.0)
    assert abs(abs(cand.current.direction[2]) - 1.0) < 1e-12
    assert np.sign(cand.current.direction[2]) == np.sign(pos[2])
    assert np.array_equal(cand.previous.position, np.zeros(3))
    assert FORCED_STEPS_KEY not in cand.properties


def test_vanishing_diffusion_leaves_position_unchanged(uniform_z_field, make_proton):
    sde = DiffusionSDE(uniform_z_field, scale=0.0)
    cand = make_proton(direction=(1.0, 0.0, 0.0))
    sde.process(cand)

    assert np.array_equal(cand.current.position, np.zeros(3))
    assert abs(cand.current.direction[2]) == pytest.approx(1.0)
    assert cand.current_step == pytest.approx(10 * PC)
    assert cand.next_step == pytest.approx(40 * PC)
    assert cand.active


@pytest.mark.parametrize("alpha", [-0.5, 1.0 / 3.0])
def test_candidate_at_rest_stays_in_place(uniform_z_field, alpha):
    sde = DiffusionSDE(uniform_z_field, alpha=alpha)
    cand = Candidate.create(0.0, seed=0)
    sde.process(cand)
    assert np.array_equal(cand.current.position, np.zeros(3))
    assert cand.active


def test_step_hint_is_clipped(uniform_z_field, make_proton):
    sde = DiffusionSDE(uniform_z_field)
    cand = make_proton()
    cand.next_step = 1e6 * PC
    sde.process(cand)
    assert cand.current_step == pytest.approx(sde.max_step)
    assert cand.next_step == pytest.approx(sde.max_step)


def test_explicit_generator_overrides_candidate(uniform_z_field, make_proton):
    sde = DiffusionSDE(uniform_z_field)
    a, b = make_proton(seed=1), make_proton(seed=2)
    sde.process(a, rng=np.random.default_rng(9))
    sde.process(b, rng=np.random.default_rng(9))
    assert np.array_equal(a.current.position, b.current.position)


def test_neutral_candidates_move_rectilinearly(uniform_z_field):
    sde = DiffusionSDE(uniform_z_field)
    cand = Candidate.create(constants.EEV, charge_number=0, direction=(1.0, 0.0, 0.0), seed=0)
    sde.process(cand)
    assert np.allclose(cand.current.position, [10 * PC, 0.0, 0.0])
    assert cand.next_step == pytest.approx(sde.max_step)


def test_vanishing_field_falls_back_to_rectilinear(make_proton):
    sde = DiffusionSDE(UniformMagneticField([0.0, 0.0, 0.0]))
    cand = make_proton(direction=(0.0, 1.0, 0.0))
    cand.next_step = 100 * PC
    sde.process(cand)
    assert np.allclose(cand.current.position, [0.0, 100 * PC, 0.0])
    assert cand.next_step == pytest.approx(500 * PC)


def test_domain_error_propagates(make_proton):
    values = np.zeros((2, 2, 2, 3))
    values[..., 2] = constants.MICROGAUSS
    grid = GridMagneticField(origin=(0.0, 0.0, 0.0), spacing=constants.KPC, values=values)
    sde = DiffusionSDE(grid)
    cand = make_proton(position=(2 * constants.KPC, 0.5 * constants.KPC, 0.5 * constants.KPC))
    with pytest.raises(DomainError):
        sde.process(cand)


def test_forced_acceptance_is_recorded(toroidal_field, make_proton):
    sde = DiffusionSDE(toroidal_field, tolerance=1e-9, epsilon=0.0, alpha=0.0)
    candidates = [make_proton(seed=i, position=(PC, 0.0, 0.0)) for i in range(20)]
    with pytest.warns(NumericalWarning):
        for cand in candidates:
            sde.process(cand)
    forced = [c for c in candidates if c.properties.get(FORCED_STEPS_KEY)]
    assert forced
    for cand in forced:
        assert cand.properties[FORCED_STEPS_KEY] == 1
        assert sde.min_step <= cand.current_step <= sde.max_step
        assert np.all(np.isfinite(cand.current.position))
