"""Driver interfaces the boat base consumes.

Motors and the movement sensor are owned by the hosting runtime. Each call is
made from one thread at a time; failures are reported by raising.
"""

from typing import Protocol, Sequence


class Motor(Protocol):
    def set_power(self, power: float) -> None:
        """Drive the motor at a signed fraction of full power in [-1, 1]."""

    def stop(self) -> None:
        ...

    def is_powered(self) -> bool:
        ...


class MovementSensor(Protocol):
    def angular_velocity(self) -> Sequence[float]:
        """(x, y, z) angular velocity in degrees/sec; z is yaw, CCW positive."""

    def linear_velocity(self) -> Sequence[float]:
        """(x, y, z) linear velocity in mm/sec; x is lateral (port positive), y is forward."""

    def compass_heading(self) -> float:
        """Compass heading in degrees, clockwise from north."""
