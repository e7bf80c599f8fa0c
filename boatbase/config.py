from __future__ import annotations

"""Boat configuration: motor layout and hull dimensions.

Attribute names match the JSON the hosting runtime hands over:

    {
        "width_mm": 600, "length_mm": 1200, "movement_sensor": "imu",
        "motors": [
            {"name": "port", "x_offset_mm": 300, "y_offset_mm": -600,
             "angle_degs": 0, "weight": 1},
            ...
        ]
    }
"""

import math
from dataclasses import dataclass, field

from .errors import ConfigError


@dataclass
class MotorConfig:
    name: str = ""
    x_offset_mm: float = 0.0    # lateral, port positive
    y_offset_mm: float = 0.0    # longitudinal, bow positive
    angle_degs: float = 0.0     # thrust direction, 0 = forward, 90 = port
    weight: float = 1.0         # relative strength

    @classmethod
    def from_dict(cls, attrs: dict) -> MotorConfig:
        return cls(
            name=str(attrs.get("name", "")),
            x_offset_mm=float(attrs.get("x_offset_mm", 0.0)),
            y_offset_mm=float(attrs.get("y_offset_mm", 0.0)),
            angle_degs=float(attrs.get("angle_degs", 0.0)),
            weight=float(attrs.get("weight", 1.0)),
        )


@dataclass
class BoatConfig:
    motors: list[MotorConfig] = field(default_factory=list)
    length_mm: float = 0.0
    width_mm: float = 0.0
    movement_sensor: str | None = None

    @classmethod
    def from_dict(cls, attrs: dict) -> BoatConfig:
        try:
            motors = [MotorConfig.from_dict(m) for m in attrs.get("motors") or []]
            return cls(
                motors=motors,
                length_mm=float(attrs.get("length_mm", 0.0)),
                width_mm=float(attrs.get("width_mm", 0.0)),
                movement_sensor=attrs.get("movement_sensor") or None,
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"invalid boat config: {e}") from e

    @property
    def diagonal_mm(self) -> float:
        return math.hypot(self.width_mm, self.length_mm)

    def validate(self, path: str = "") -> list[str]:
        """Check required fields and return the names this boat depends on."""
        prefix = f"{path}." if path else ""
        if self.width_mm <= 0:
            raise ConfigError(f"{prefix}width_mm is required")
        if self.length_mm <= 0:
            raise ConfigError(f"{prefix}length_mm is required")
        for idx, m in enumerate(self.motors):
            if not m.name:
                raise ConfigError(f"{prefix}motors.{idx}.name is required")
        return self.dependencies()

    def dependencies(self) -> list[str]:
        deps = []
        if self.movement_sensor:
            deps.append(self.movement_sensor)
        deps.extend(m.name for m in self.motors)
        return deps
