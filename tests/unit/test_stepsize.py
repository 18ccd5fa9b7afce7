import numpy as np
import pytest

from crdiffusion import constants
from crdiffusion.physics.stepsize import ERROR_SCALE, GROWTH_FACTOR, StepSizeController

PC = constants.PARSEC


@pytest.fixture()
def controller():
    return StepSizeController(tolerance=1e-4, min_step=10 * PC, max_step=1000 * PC)


def test_small_error_is_accepted(controller):
    high = np.array([0.0, 0.0, 50 * PC])
    low = high + [0.5e-4 * ERROR_SCALE, 0.0, 0.0]
    outcome = controller.evaluate(low, high, 50 * PC)
    assert outcome.accepted and not outcome.forced
    assert outcome.error == pytest.approx(0.5)
    assert outcome.next_step == 50 * PC
    assert outcome.position is high


def test_large_error_halves_step(controller):
    high = np.zeros(3)
    low = np.array([1e-2 * ERROR_SCALE, 0.0, 0.0])
    outcome = controller.evaluate(low, high, -80 * PC)
    assert not outcome.accepted
    assert outcome.next_step == pytest.approx(-40 * PC)


def test_forced_acceptance_below_minimum(controller):
    high = np.zeros(3)
    low = np.array([1e-2 * ERROR_SCALE, 0.0, 0.0])
    outcome = controller.evaluate(low, high, 15 * PC)
    assert outcome.accepted and outcome.forced
    assert outcome.error > 1.0
    assert outcome.next_step == 15 * PC


def test_retry_loop_terminates(controller):
    """Halving an always-failing proposal reaches the floor in finitely many tries."""
    high = np.zeros(3)
    low = np.array([1.0 * ERROR_SCALE, 0.0, 0.0])
    step = 1000 * PC
    tries = 0
    while True:
        tries += 1
        outcome = controller.evaluate(low, high, step)
        if outcome.accepted:
            break
        step = outcome.next_step
    assert outcome.forced
    assert 10 * PC <= step < 20 * PC
    assert tries == 7


def test_next_step_policy(controller):
    assert controller.next_step(10 * PC, 1) == pytest.approx(GROWTH_FACTOR * 10 * PC)
    assert controller.next_step(400 * PC, 1) == 1000 * PC
    assert controller.next_step(640 * PC, 4) == pytest.approx(40 * PC)
    assert controller.next_step(100 * PC, 8) == 10 * PC


def test_clip(controller):
    assert controller.clip(0.0) == 10 * PC
    assert controller.clip(5000 * PC) == 1000 * PC
    assert controller.clip(123 * PC) == 123 * PC
