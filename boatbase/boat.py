from __future__ import annotations

"""Boat base: command surface and background control loop.

A boat runs in one of three modes:

    NONE      motors only move on direct set_power commands
    VELOCITY  forward and yaw-rate PIDs chase the commanded velocities
    HEADING   the yaw-rate goal is reshaped every tick to steer towards a
              compass heading; forward velocity is held at zero

The loop thread is started on the first velocity or heading command and
runs until close(). It snapshots goals under the state lock and does all
sensor and motor I/O outside it. Motor writes are serialised by a separate
dispatch lock, and a tick whose goals were replaced while it was computing
drops its output instead of overwriting the newer command.
"""

import logging
import threading
import time

import numpy as np

from .allocation import ThrustAllocator
from .config import BoatConfig
from .controller import (
    HEADING_CONVERGED_BAND,
    ControlMode,
    ControlState,
    angle_diff_deg,
    compute_next_power,
    update_velocity_goal_for_heading,
)
from .errors import BoatError, ConfigError, DeadlineExceeded, MultiError, OperationCancelled, combine_errors
from .operation import SingleOperationManager

DEFAULT_LOOP_PERIOD = 0.5       # seconds
SPIN_POLL_INTERVAL = 1.0        # seconds


def _vec3(v) -> np.ndarray:
    arr = np.array(v, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got {v!r}")
    return arr


class Boat:
    """Multi-thruster surface vehicle.

    Args:
        config: motor layout and hull dimensions
        motors: one driver per entry in config.motors, in the same order
        movement_sensor: optional; velocity and heading commands need it
        loop_period: control loop period in seconds
        allocator: defaults to a ThrustAllocator built from config
        logger: defaults to this module's logger
    """

    def __init__(self, config: BoatConfig, motors, movement_sensor=None,
                 loop_period: float = DEFAULT_LOOP_PERIOD,
                 allocator: ThrustAllocator | None = None,
                 logger: logging.Logger | None = None):
        if len(motors) != len(config.motors):
            raise ConfigError(
                f"got {len(motors)} motors for {len(config.motors)} motor configs"
            )
        if loop_period <= 0:
            raise ConfigError("loop_period must be positive")

        self.config = config
        self.motors = list(motors)
        self.movement_sensor = movement_sensor
        self.loop_period = loop_period
        self.allocator = allocator or ThrustAllocator(config)
        self.logger = logger or logging.getLogger(__name__)

        self._state = ControlState()
        self._state_lock = threading.Lock()
        self._command_seq = 0
        self._closed = False

        self._dispatch_lock = threading.Lock()
        self._op_mgr = SingleOperationManager()

        self._cancel: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @classmethod
    def from_dependencies(cls, config: BoatConfig, deps: dict, **kwargs) -> Boat:
        """Build a boat, resolving motor and sensor names against deps."""
        config.validate()

        motors = []
        for mc in config.motors:
            if mc.name not in deps:
                raise ConfigError(f"missing motor dependency {mc.name!r}")
            motors.append(deps[mc.name])

        sensor = None
        if config.movement_sensor:
            if config.movement_sensor not in deps:
                raise ConfigError(f"missing movement sensor dependency {config.movement_sensor!r}")
            sensor = deps[config.movement_sensor]

        return cls(config, motors, sensor, **kwargs)

    # ------------------------------------------------------------------
    # commands

    def move_straight(self, distance_mm: float, mm_per_sec: float,
                      timeout: float | None = None) -> None:
        """Hold forward velocity long enough to cover distance_mm, then stop."""
        if mm_per_sec == 0:
            raise ValueError("mm_per_sec must be non-zero")
        if distance_mm < 0:
            mm_per_sec *= -1
            distance_mm *= -1
        duration = abs(distance_mm / mm_per_sec)

        self.logger.debug("MoveStraight distance: %s mm speed: %s mm/s", distance_mm, mm_per_sec)
        with self._op_mgr.new(timeout) as op:
            self._enter_velocity_hold(np.array([0.0, mm_per_sec, 0.0]), np.zeros(3))
            try:
                op.sleep(duration)
            except DeadlineExceeded:
                self.stop()
                raise
        self.stop()

    def spin(self, angle_deg: float, degs_per_sec: float,
             timeout: float | None = None,
             poll_interval: float = SPIN_POLL_INTERVAL) -> None:
        """Turn by angle_deg relative to the current heading and wait until within 1 degree.

        Raises OperationCancelled if a newer command supersedes the wait and
        DeadlineExceeded if timeout elapses. Neither leaves heading-hold; an
        explicit stop() or another command does.
        """
        if self.movement_sensor is None:
            raise ConfigError("no movement sensor")

        compass = self.movement_sensor.compass_heading()
        goal = compass + angle_deg

        self.logger.info(
            "Spin angle_deg: %s degs_per_sec: %s compass: %s goal: %s",
            angle_deg, degs_per_sec, compass, goal,
        )
        with self._op_mgr.new(timeout) as op:
            with self._state_lock:
                self._start_control_thread_locked()
                s = self._state
                s.mode = ControlMode.HEADING
                s.compass_goal = goal
                s.velocity_linear_goal = np.zeros(3)
                s.spin_velocity = degs_per_sec
                s.velocity_angular_goal = np.zeros(3)
                self._command_seq += 1

            op.wait_for_success(
                poll_interval,
                lambda: angle_diff_deg(goal, self.movement_sensor.compass_heading())
                < HEADING_CONVERGED_BAND,
            )

    def set_velocity(self, linear, angular) -> None:
        """Enter velocity-hold: linear[1] in mm/s forward, angular[2] in deg/s."""
        self.logger.debug("SetVelocity %s %s", linear, angular)
        self._op_mgr.cancel_running()
        self._enter_velocity_hold(_vec3(linear), _vec3(angular))

    def set_power(self, linear, angular) -> None:
        """Allocate and dispatch one percent-of-max command; leaves any hold mode."""
        self.logger.debug("SetPower %s %s", linear, angular)
        linear, angular = _vec3(linear), _vec3(angular)
        self._op_mgr.cancel_running()

        with self._state_lock:
            self._state.mode = ControlMode.NONE
            self._command_seq += 1
            seq = self._command_seq

        self._set_power_internal(linear, angular, seq)

    def stop(self) -> None:
        with self._state_lock:
            self._state.mode = ControlMode.NONE
            self._state.velocity_linear_goal = np.zeros(3)
            self._state.velocity_angular_goal = np.zeros(3)
            self._command_seq += 1

        self._op_mgr.cancel_running()

        with self._dispatch_lock:
            self._stop_motors()

    def is_moving(self) -> bool:
        return any(m.is_powered() for m in self.motors)

    def width(self) -> int:
        return int(self.config.width_mm)

    def close(self) -> None:
        """Stop the control loop, wait for it to exit, then stop every motor."""
        with self._state_lock:
            self._closed = True
            cancel, thread = self._cancel, self._thread
            self._cancel = None
            self._thread = None

        if cancel is not None:
            cancel.set()
            thread.join()

        self.stop()

    def snapshot(self) -> dict:
        """Copy of the control state for telemetry."""
        with self._state_lock:
            s = self._state
            return {
                "mode": s.mode.name.lower(),
                "velocity_linear_goal": s.velocity_linear_goal.tolist(),
                "velocity_angular_goal": s.velocity_angular_goal.tolist(),
                "compass_goal": s.compass_goal,
                "spin_velocity": s.spin_velocity,
                "loop_running": s.thread_started and not self._closed,
            }

    # ------------------------------------------------------------------
    # internals

    def _enter_velocity_hold(self, linear: np.ndarray, angular: np.ndarray) -> None:
        with self._state_lock:
            self._start_control_thread_locked()
            s = self._state
            s.mode = ControlMode.VELOCITY
            s.velocity_linear_goal = linear
            s.velocity_angular_goal = angular
            self._command_seq += 1

    def _start_control_thread_locked(self) -> None:
        if self._closed:
            raise BoatError("boat is closed")
        if self._state.thread_started:
            return
        if self.movement_sensor is None:
            raise ConfigError("no movement sensor")

        self._cancel = threading.Event()
        self._thread = threading.Thread(
            target=self._control_loop, args=(self._cancel,),
            name="boat-control", daemon=True,
        )
        self._thread.start()
        self._state.thread_started = True
        self.logger.info("started control loop, period %ss", self.loop_period)

    def _control_loop(self, cancel: threading.Event) -> None:
        last = time.monotonic()
        while not cancel.wait(self.loop_period):
            now = time.monotonic()
            dt, last = now - last, now
            try:
                self._control_tick(cancel, dt)
            except OperationCancelled:
                break
            except Exception as e:
                self.logger.warning("control tick skipped: %s", e)
        self.logger.info("control loop stopped")

    def _control_tick(self, cancel: threading.Event, dt: float) -> None:
        """One loop iteration; dt is the measured time since the previous tick."""
        sensor = self.movement_sensor
        av = sensor.angular_velocity()
        lv = sensor.linear_velocity()
        heading = sensor.compass_heading()

        with self._state_lock:
            s = self._state
            if s.mode == ControlMode.NONE:
                return
            if s.mode == ControlMode.HEADING:
                update_velocity_goal_for_heading(s, heading)
                self.logger.debug(
                    "heading control compass: %s goal: %s angular z: %s",
                    heading, s.compass_goal, s.velocity_angular_goal[2],
                )
            linear, angular = compute_next_power(s, lv, av, dt)
            seq = self._command_seq

        self._set_power_internal(linear, angular, seq, cancel)

    def _set_power_internal(self, linear: np.ndarray, angular: np.ndarray, seq: int,
                            cancel: threading.Event | None = None) -> None:
        power = self.allocator.compute_power(linear, angular)

        with self._dispatch_lock:
            with self._state_lock:
                if seq != self._command_seq:
                    return

            for motor, p in zip(self.motors, power):
                try:
                    motor.set_power(float(p))
                except Exception as err:
                    try:
                        self._stop_motors()
                    except Exception as stop_err:
                        raise MultiError([err, stop_err]) from err
                    raise
                if cancel is not None and cancel.is_set():
                    raise OperationCancelled("control loop cancelled")

    def _stop_motors(self) -> None:
        errors = []
        for m in self.motors:
            try:
                m.stop()
            except Exception as e:
                errors.append(e)
        err = combine_errors(*errors)
        if err is not None:
            raise err
