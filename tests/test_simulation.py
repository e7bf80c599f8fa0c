"""Tests for the simulated hull and a boat running on it."""

import time

import numpy as np
import pytest

from boatbase.allocation import ThrustAllocator
from boatbase.boat import Boat
from boatbase.errors import DeadlineExceeded
from boatbase.simulation import (
    DEMO_CONFIG,
    HullParams,
    SimulatedHull,
    derivatives,
    rk4_step,
    simulated_dependencies,
)


@pytest.fixture
def hull():
    return SimulatedHull(DEMO_CONFIG)


def test_rest_is_equilibrium(hull):
    """No thrust, no motion: all derivatives are zero."""
    deriv = derivatives(np.zeros(4), np.zeros(3), hull.envelope, hull.params)
    np.testing.assert_allclose(deriv, 0.0, atol=1e-12)


def test_forward_thrust_reaches_max_speed(hull):
    hull.powers[:] = [1.0, 1.0, 0.0]
    hull.step(10.0)
    v_x, v_y, omega_z, heading = hull.state
    assert v_y == pytest.approx(hull.params.max_speed, rel=0.01)
    assert v_x == pytest.approx(0.0, abs=1e-6)
    assert omega_z == pytest.approx(0.0, abs=1e-6)
    assert heading == pytest.approx(0.0, abs=1e-6)


def test_first_order_lag(hull):
    """After one time constant velocity is ~63% of its final value."""
    hull.powers[:] = [1.0, 1.0, 0.0]
    hull.step(hull.params.tau_linear)
    assert hull.state[1] == pytest.approx(hull.params.max_speed * (1 - np.exp(-1)), rel=0.01)


def test_port_motor_turns_clockwise(hull):
    """Port motor alone yaws clockwise, so the compass heading increases."""
    hull.powers[:] = [1.0, 0.0, 0.0]
    hull.step(2.0)
    assert hull.state[2] < 0
    assert 0 < hull.state[3] < 180


def test_heading_wraps(hull):
    hull.state[3] = 359.0
    hull.state[2] = -30.0
    hull.powers[:] = [1.0, -1.0, 0.0]
    hull.step(0.5)
    assert 0 <= hull.state[3] < 359.0


def test_rk4_matches_exponential():
    params = HullParams()
    envelope = np.ones(3)
    state = np.zeros(4)
    dt = 0.01
    for _ in range(100):
        state = rk4_step(state, np.array([0.0, 1.0, 0.0]), envelope, params, dt)
    expected = params.max_speed * (1 - np.exp(-1.0 / params.tau_linear))
    assert state[1] == pytest.approx(expected, rel=1e-6)


def test_simulated_dependencies(hull):
    deps = simulated_dependencies(DEMO_CONFIG, hull)
    assert set(deps) == {"port", "starboard", "bow-thruster", "imu"}
    deps["port"].set_power(0.5)
    assert deps["port"].is_powered()
    deps["port"].stop()
    assert not deps["port"].is_powered()


@pytest.fixture
def sim_boat(hull):
    boat = Boat.from_dependencies(
        DEMO_CONFIG, simulated_dependencies(DEMO_CONFIG, hull),
        loop_period=0.05, allocator=ThrustAllocator(DEMO_CONFIG, max_time=0.05),
    )
    yield boat
    boat.close()


def test_velocity_hold_moves_forward(sim_boat, hull):
    sim_boat.set_velocity([0, 300, 0], [0, 0, 0])

    deadline = time.monotonic() + 1.5
    while hull.read()[1] <= 100 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert hull.read()[1] > 100

    sim_boat.stop()
    assert not sim_boat.is_moving()


def test_spin_turns_towards_goal(sim_boat, hull):
    """Heading-hold drives the compass heading up for a positive spin."""
    with pytest.raises(DeadlineExceeded):
        sim_boat.spin(90, 30, timeout=1.0, poll_interval=0.05)
    heading = hull.read()[3]
    assert 0 < heading < 90
