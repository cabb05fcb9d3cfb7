"""Sensor data model."""

import functools
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class SensorType(Enum):
    """Kinds of sensor the system can track."""
    DOOR = "DOOR"
    WINDOW = "WINDOW"
    MOTION = "MOTION"


@functools.total_ordering
@dataclass(eq=False)
class Sensor:
    """A door, window or motion sensor with a binary active state.

    Equality, hashing and ordering use (name, sensor_type, active).
    ``sensor_id`` identifies the stored record and is what repositories
    use to replace a sensor on update.
    """
    name: str
    sensor_type: SensorType
    active: bool = False
    sensor_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def _key(self) -> tuple:
        return (self.name, self.sensor_type.name, self.active)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sensor):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "Sensor") -> bool:
        if not isinstance(other, Sensor):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the sensor for storage."""
        return {
            'sensor_id': self.sensor_id,
            'name': self.name,
            'sensor_type': self.sensor_type.name,
            'active': self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sensor":
        """Rebuild a sensor from ``to_dict`` output."""
        return cls(
            name=data['name'],
            sensor_type=SensorType[data['sensor_type']],
            active=bool(data.get('active', False)),
            sensor_id=data.get('sensor_id') or str(uuid.uuid4()),
        )
