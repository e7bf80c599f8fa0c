"""Tests for the motor weight model."""

import math

import pytest

from boatbase.config import MotorConfig
from boatbase.motors import MotorWeights, compute_weights

THETA = 0.01


@pytest.mark.parametrize("motor, expected", [
    (MotorConfig(x_offset_mm=0, y_offset_mm=-10, angle_degs=0, weight=1), (0, 1, 0)),
    (MotorConfig(x_offset_mm=0, y_offset_mm=-10, angle_degs=180, weight=1), (0, -1, 0)),
    (MotorConfig(angle_degs=45, weight=math.sqrt(2)), (1, 1, 0)),
    (MotorConfig(x_offset_mm=-10, y_offset_mm=-10, angle_degs=45, weight=math.sqrt(2)), (1, 1, 0)),
    (MotorConfig(angle_degs=1, weight=1), (0.017, 0.99, 0)),   # almost entirely forward
    (MotorConfig(x_offset_mm=0, y_offset_mm=-10, angle_degs=90, weight=1), (1, 0, -1)),
])
def test_motor_weights(motor, expected):
    """Weights match hand-computed values for a 10 mm diagonal."""
    w = compute_weights(motor, 10)
    assert w.linear_x == pytest.approx(expected[0], abs=THETA)
    assert w.linear_y == pytest.approx(expected[1], abs=THETA)
    assert w.angular == pytest.approx(expected[2], abs=THETA)


def test_sideways_motor_on_center_line():
    """A sideways motor with no longitudinal offset gives pure lateral authority."""
    w = compute_weights(MotorConfig(angle_degs=90, weight=1), 1000)
    assert w.linear_x == pytest.approx(1.0)
    assert w.linear_y == pytest.approx(0.0, abs=1e-12)
    assert w.angular == pytest.approx(0.0, abs=1e-12)


def test_yaw_proportional_to_offset():
    """A sideways motor's yaw grows linearly with its distance from the center."""
    near = compute_weights(MotorConfig(y_offset_mm=-100, angle_degs=90), 1000)
    far = compute_weights(MotorConfig(y_offset_mm=-300, angle_degs=90), 1000)
    assert near.angular != 0
    assert far.angular == pytest.approx(3 * near.angular)


@pytest.mark.parametrize("angle", [0, 30, 90, 135, 270])
def test_center_motor_has_no_yaw(angle):
    """A motor at the geometric center never contributes yaw."""
    w = compute_weights(MotorConfig(angle_degs=angle, weight=2), 500)
    assert w.angular == pytest.approx(0.0, abs=1e-12)


def test_weight_scales_all_axes():
    """Relative strength scales every component."""
    base = compute_weights(MotorConfig(x_offset_mm=50, y_offset_mm=-80, angle_degs=20), 400)
    strong = compute_weights(MotorConfig(x_offset_mm=50, y_offset_mm=-80, angle_degs=20, weight=2.5), 400)
    assert strong.as_array() == pytest.approx(2.5 * base.as_array())


def test_stern_motor_pushing_port_turns_clockwise():
    """Pushing the stern to port swings the bow to starboard (negative yaw)."""
    w = compute_weights(MotorConfig(y_offset_mm=-500, angle_degs=90), 1000)
    assert w.angular < 0


def test_diff_is_squared_distance():
    a = MotorWeights(1.0, 2.0, 3.0)
    b = MotorWeights(1.5, 2.0, 1.0)
    assert a.diff(b) == pytest.approx(0.25 + 4.0)
    assert a.diff(a) == 0.0
