from __future__ import annotations

"""Per-tick control law for the boat's background loop."""

import logging
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np

from .pid_controller import PIDAxis

logger = logging.getLogger(__name__)

HEADING_FULL_SPEED_BAND = 5.0   # degrees
HEADING_CONVERGED_BAND = 1.0    # degrees


class ControlMode(IntEnum):
    NONE = 0
    VELOCITY = 1
    HEADING = 2


@dataclass
class ControlState:
    """Mutable control context of one boat. Guarded by the boat's state lock."""

    mode: ControlMode = ControlMode.NONE
    velocity_linear_goal: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity_angular_goal: np.ndarray = field(default_factory=lambda: np.zeros(3))
    compass_goal: float = 0.0
    spin_velocity: float = 0.0
    thread_started: bool = False
    linear_pid: PIDAxis = field(default_factory=PIDAxis)
    angular_pid: PIDAxis = field(default_factory=PIDAxis)


def angle_diff_deg(a: float, b: float) -> float:
    """Smallest angle between two headings, in [0, 180]."""
    diff = abs(a - b) % 360.0
    return min(diff, 360.0 - diff)


def update_velocity_goal_for_heading(state: ControlState, heading: float) -> None:
    """Set the yaw-rate goal that steers heading towards state.compass_goal.

    Full spin rate outside 5 degrees, a linear ramp between 5 and 1 degrees,
    zero inside 1 degree. Headings are compared without wrapping.
    """
    diff = heading - state.compass_goal
    if diff > HEADING_FULL_SPEED_BAND:
        goal = state.spin_velocity
    elif diff < -HEADING_FULL_SPEED_BAND:
        goal = -state.spin_velocity
    elif abs(diff) > HEADING_CONVERGED_BAND:
        goal = diff / HEADING_FULL_SPEED_BAND * state.spin_velocity
    else:
        goal = 0.0
    state.velocity_angular_goal[2] = goal


def compute_next_power(state: ControlState, linear_velocity, angular_velocity,
                       dt: float) -> tuple[np.ndarray, np.ndarray]:
    """Run both PIDs against the current goals.

    Returns (linear, angular) power commands in percent-of-max units, ready
    for the allocator. Only forward (linear[1]) and yaw (angular[2]) are
    driven.
    """
    linear = np.zeros(3)
    angular = np.zeros(3)

    linear[1] = state.linear_pid.control(
        state.velocity_linear_goal[1], float(linear_velocity[1]), dt
    )
    angular[2] = state.angular_pid.control(
        state.velocity_angular_goal[2], float(angular_velocity[2]), dt
    )

    logger.debug(
        "compute_next_power goal v: %0.2f av: %0.2f measured v: %0.2f av: %0.2f -> %0.2f %0.2f",
        state.velocity_linear_goal[1], state.velocity_angular_goal[2],
        linear_velocity[1], angular_velocity[2], linear[1], angular[2],
    )
    return linear, angular
