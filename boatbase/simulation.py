from __future__ import annotations

"""Simulated hull, motors and movement sensor.

State vector (4 elements):
    [v_x, v_y, omega_z, heading]

v_x lateral (port positive) and v_y forward in mm/s, omega_z yaw rate in
deg/s (counter-clockwise positive), heading in compass degrees. Each
velocity relaxes towards the value the current thrust would sustain with a
first-order lag; thrust is the weight matrix times the motor powers.

The hull advances on wall-clock time whenever a driver touches it, so a
Boat wired to these drivers behaves as it would on the water. Tests can
call step() directly instead.
"""

import threading
import time
from dataclasses import dataclass

import numpy as np

from .allocation import weights_matrix
from .config import BoatConfig, MotorConfig


@dataclass
class HullParams:
    max_speed: float = 1000.0       # mm/s at full envelope, either linear axis
    max_yaw_rate: float = 60.0      # deg/s at full envelope
    tau_linear: float = 1.5         # s
    tau_yaw: float = 0.5            # s
    max_step: float = 0.02          # s, longest single integration step


def derivatives(state: np.ndarray, thrust: np.ndarray, envelope: np.ndarray,
                params: HullParams) -> np.ndarray:
    v_x, v_y, omega_z, _heading = state

    # fraction of full authority on each axis; an axis with no authority stays put
    frac = np.divide(thrust, envelope, out=np.zeros(3), where=envelope > 0)

    return np.array([
        (params.max_speed * frac[0] - v_x) / params.tau_linear,
        (params.max_speed * frac[1] - v_y) / params.tau_linear,
        (params.max_yaw_rate * frac[2] - omega_z) / params.tau_yaw,
        -omega_z,
    ])


def rk4_step(state: np.ndarray, thrust: np.ndarray, envelope: np.ndarray,
             params: HullParams, dt: float) -> np.ndarray:
    """Advance state by one RK4 integration step."""
    k1 = derivatives(state, thrust, envelope, params)
    k2 = derivatives(state + 0.5 * dt * k1, thrust, envelope, params)
    k3 = derivatives(state + 0.5 * dt * k2, thrust, envelope, params)
    k4 = derivatives(state + dt * k3, thrust, envelope, params)
    return state + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)


class SimulatedHull:
    def __init__(self, config: BoatConfig, params: HullParams | None = None,
                 heading: float = 0.0, clock=time.monotonic):
        self.params = params or HullParams()
        self.matrix = weights_matrix(config)
        self.envelope = np.abs(self.matrix).sum(axis=1)
        self.powers = np.zeros(len(config.motors))
        self.state = np.array([0.0, 0.0, 0.0, heading % 360.0])
        self.time = 0.0

        self._clock = clock
        self._last = clock()
        self._lock = threading.Lock()

    def step(self, dt: float) -> None:
        """Advance the hull by dt seconds under the current motor powers."""
        with self._lock:
            self._step_locked(dt)

    def advance(self) -> None:
        """Catch up with the wall clock."""
        with self._lock:
            now = self._clock()
            dt, self._last = now - self._last, now
            if dt > 0:
                self._step_locked(dt)

    def _step_locked(self, dt: float) -> None:
        thrust = self.matrix @ self.powers
        steps = max(1, int(np.ceil(dt / self.params.max_step)))
        h = dt / steps
        for _ in range(steps):
            self.state = rk4_step(self.state, thrust, self.envelope, self.params, h)
        self.state[3] %= 360.0
        self.time += dt

    def set_power(self, idx: int, power: float) -> None:
        self.advance()
        with self._lock:
            self.powers[idx] = float(np.clip(power, -1.0, 1.0))

    def power(self, idx: int) -> float:
        with self._lock:
            return float(self.powers[idx])

    def read(self) -> np.ndarray:
        self.advance()
        with self._lock:
            return self.state.copy()


class SimulatedMotor:
    def __init__(self, hull: SimulatedHull, idx: int):
        self.hull = hull
        self.idx = idx

    def set_power(self, power: float) -> None:
        self.hull.set_power(self.idx, power)

    def stop(self) -> None:
        self.hull.set_power(self.idx, 0.0)

    def is_powered(self) -> bool:
        return self.hull.power(self.idx) != 0.0


class SimulatedMovementSensor:
    def __init__(self, hull: SimulatedHull):
        self.hull = hull

    def angular_velocity(self) -> np.ndarray:
        return np.array([0.0, 0.0, self.hull.read()[2]])

    def linear_velocity(self) -> np.ndarray:
        v_x, v_y = self.hull.read()[:2]
        return np.array([v_x, v_y, 0.0])

    def compass_heading(self) -> float:
        return float(self.hull.read()[3])


DEMO_CONFIG = BoatConfig(
    motors=[
        MotorConfig(name="port", x_offset_mm=300, y_offset_mm=-600, angle_degs=0),
        MotorConfig(name="starboard", x_offset_mm=-300, y_offset_mm=-600, angle_degs=0),
        MotorConfig(name="bow-thruster", x_offset_mm=0, y_offset_mm=500, angle_degs=90,
                    weight=0.5),
    ],
    length_mm=1200,
    width_mm=600,
    movement_sensor="imu",
)


def simulated_dependencies(config: BoatConfig, hull: SimulatedHull) -> dict:
    """Dependency map of simulated drivers keyed by the names in config."""
    deps = {mc.name: SimulatedMotor(hull, idx) for idx, mc in enumerate(config.motors)}
    if config.movement_sensor:
        deps[config.movement_sensor] = SimulatedMovementSensor(hull)
    return deps
