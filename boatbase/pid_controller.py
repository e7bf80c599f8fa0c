"""PID loop used for the boat's forward velocity and yaw rate.

Two instances run per boat, one per axis. Output is a motor power
fraction; the integral term is not limited, only the final output is.
"""

from __future__ import annotations


class PIDAxis:
    """Single-axis PID with clamped output.

    A clamp bound of None leaves that side unbounded. A bound of exactly 0
    also leaves it unbounded, so a controller that must never go negative
    cannot be expressed with min_output=0; use a tiny positive value.
    """

    def __init__(self, kp: float = 0.08, ki: float = 0.075, kd: float = 0.0001,
                 min_output: float | None = -1.0, max_output: float | None = 1.0):
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.min_output = min_output
        self.max_output = max_output
        self.integral = 0.0
        self.prev_error = 0.0

    def control(self, target: float, current: float, dt: float) -> float:
        """Advance one step of dt seconds and return the clamped output."""
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        error = target - current

        p = self.kp * error

        self.integral += error * dt
        i = self.ki * self.integral

        d = self.kd * (error - self.prev_error) / dt
        self.prev_error = error

        out = p + i + d

        if self.min_output and out < self.min_output:
            out = self.min_output
        if self.max_output and out > self.max_output:
            out = self.max_output

        return out
