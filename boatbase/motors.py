from __future__ import annotations

"""Per-motor contribution to lateral, forward and yaw motion.

Body frame: x lateral (port positive), y forward (bow positive). A motor's
thrust direction is measured from the forward axis towards port, so angle 0
pushes the boat forward and angle 90 pushes it to port.

Yaw is counter-clockwise positive seen from above, which in this frame is
the negated planar moment -(x*Fy - y*Fx). A motor at the stern pushing to
port swings the bow to starboard and so gives negative yaw. Dividing by the
hull diagonal keeps yaw authority in the same range as the linear terms
for boats of any size.
"""

import math
from dataclasses import dataclass

import numpy as np

from .config import MotorConfig


@dataclass(frozen=True)
class MotorWeights:
    linear_x: float = 0.0   # lateral
    linear_y: float = 0.0   # forward
    angular: float = 0.0    # yaw

    def as_array(self) -> np.ndarray:
        return np.array([self.linear_x, self.linear_y, self.angular])

    def diff(self, other: MotorWeights) -> float:
        """Sum of squared per-axis differences; zero only on an exact match."""
        return (
            (self.linear_x - other.linear_x) ** 2
            + (self.linear_y - other.linear_y) ** 2
            + (self.angular - other.angular) ** 2
        )

    @classmethod
    def from_array(cls, values) -> MotorWeights:
        x, y, a = (float(v) for v in values)
        return cls(linear_x=x, linear_y=y, angular=a)


def compute_weights(motor: MotorConfig, diagonal_mm: float) -> MotorWeights:
    """Contribution of one motor at full forward power."""
    rad = math.radians(motor.angle_degs)
    fx = math.sin(rad) * motor.weight
    fy = math.cos(rad) * motor.weight

    moment = motor.x_offset_mm * fy - motor.y_offset_mm * fx
    angular = -moment / diagonal_mm

    return MotorWeights(linear_x=fx, linear_y=fy, angular=angular)
