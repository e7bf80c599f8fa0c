from __future__ import annotations

"""Thrust allocation: turn a (linear, angular) command into motor powers.

A command is expressed in "percent of max" units: linear[0] lateral,
linear[1] forward and angular[2] yaw, each nominally in [-1, 1]. The goal
builder scales the command by the boat's envelope (the summed absolute
authority of every motor per axis) and the allocator then searches the
power box [-1, 1]^n for the powers whose combined output is closest to
that goal.

The search is DIRECT (scipy.optimize.direct), a derivative-free global
method. Redundant motor layouts have many equally good solutions, which
rules out a plain least-squares solve once the box constraint bites.
"""

import logging
import time

import numpy as np
from scipy.optimize import Bounds, direct

from .config import BoatConfig
from .errors import AllocationError, ConfigError
from .motors import MotorWeights, compute_weights

logger = logging.getLogger(__name__)

GOAL_DEADBAND = 0.05
ALLOCATION_TOLERANCE = 0.002
ALLOCATION_MAX_TIME = 0.25


class _SearchStopped(Exception):
    pass


def weights_matrix(config: BoatConfig) -> np.ndarray:
    """(3, n) matrix; rows are lateral, forward and yaw, one column per motor."""
    if config.diagonal_mm <= 0:
        raise ConfigError("boat width_mm and length_mm must be positive")
    matrix = np.zeros((3, len(config.motors)))
    for idx, motor in enumerate(config.motors):
        matrix[:, idx] = compute_weights(motor, config.diagonal_mm).as_array()
    return matrix


def max_weights(config: BoatConfig) -> MotorWeights:
    """Envelope of the boat: summed absolute authority per axis."""
    return MotorWeights.from_array(np.abs(weights_matrix(config)).sum(axis=1))


def goal_scale(current_val: float, other_val: float,
               current_goal: float, other_goal: float) -> float:
    """Shrink one axis so the achieved ratio does not exceed the requested one.

    examples:
        current_val=2  other_val=1, current_goal=1, other_goal=1 -> 1
        current_val=-2 other_val=1, current_goal=1, other_goal=1 -> 1
    """
    # near 0, do nothing
    if abs(current_goal) < GOAL_DEADBAND or abs(other_goal) < GOAL_DEADBAND:
        return current_val

    ratio_goal = abs(current_goal / other_goal)
    ratio_cur = np.inf if other_val == 0 else abs(current_val / other_val)

    if ratio_cur > ratio_goal:
        current_val = other_val * ratio_goal

    return current_val


class ThrustAllocator:
    """Goal builder and power solver for one boat configuration.

    The weight matrix and envelope are computed once; motor geometry never
    changes for the lifetime of a boat.

    Args:
        config: boat layout
        tolerance: stop searching once the squared error is at or below this
        max_time: wall-clock budget for one solve (seconds). The best powers
            found so far are returned when it runs out.
    """

    def __init__(self, config: BoatConfig,
                 tolerance: float = ALLOCATION_TOLERANCE,
                 max_time: float = ALLOCATION_MAX_TIME):
        self.tolerance = tolerance
        self.max_time = max_time
        self.matrix = weights_matrix(config)
        self.envelope = np.abs(self.matrix).sum(axis=1)

    @property
    def num_motors(self) -> int:
        return self.matrix.shape[1]

    def compute_goal(self, linear, angular) -> np.ndarray:
        linear = np.asarray(linear, dtype=float)
        angular = np.asarray(angular, dtype=float)

        goal = self.envelope * np.array([linear[0], linear[1], angular[2]])

        goal[0] = goal_scale(goal[0], goal[1], linear[0], linear[1])
        goal[1] = goal_scale(goal[1], goal[0], linear[1], linear[0])

        # angular is left alone, the ratios don't mean much against translation
        return goal

    def compute_power_output(self, powers) -> MotorWeights:
        """Combined lateral, forward and yaw output of the given motor powers."""
        powers = np.asarray(powers, dtype=float)
        if powers.shape != (self.num_motors,):
            raise ValueError(
                f"powers wrong length got: {powers.size} should be: {self.num_motors}"
            )
        return MotorWeights.from_array(self.matrix @ powers)

    def compute_power(self, linear, angular) -> np.ndarray:
        """Per-motor powers in [-1, 1] for a percent-of-max command."""
        return self.solve(self.compute_goal(linear, angular))

    def solve(self, goal) -> np.ndarray:
        n = self.num_motors
        if n == 0:
            raise AllocationError("no motors configured")
        goal = np.asarray(goal, dtype=float)
        if goal.shape != (3,) or not np.all(np.isfinite(goal)):
            raise AllocationError(f"invalid allocation goal: {goal}")

        best_x = np.zeros(n)
        best_f = float(np.sum((self.matrix @ best_x - goal) ** 2))
        if best_f <= self.tolerance:
            return best_x

        deadline = time.monotonic() + self.max_time

        def objective(x):
            nonlocal best_x, best_f
            x = np.asarray(x, dtype=float)
            f = float(np.sum((self.matrix @ x - goal) ** 2))
            if f < best_f:
                best_f = f
                best_x = x.copy()
            if best_f <= self.tolerance or time.monotonic() >= deadline:
                raise _SearchStopped()
            return f

        try:
            # budget and tolerance stop the search, not the evaluation caps
            # or the box-size criteria
            direct(objective, Bounds(-np.ones(n), np.ones(n)),
                   maxfun=10000 * n, maxiter=10000,
                   vol_tol=0.0, len_tol=0.0)
        except _SearchStopped:
            pass
        except (ValueError, TypeError) as e:
            raise AllocationError(f"allocator setup failed: {e}") from e

        if best_f > self.tolerance:
            logger.debug("allocation stopped at error %.4f (goal %s)", best_f, goal)
        return np.clip(best_x, -1.0, 1.0)
