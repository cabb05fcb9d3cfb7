"""Service interfaces and abstract base classes."""

from abc import ABC, abstractmethod
from typing import Any, Set

from ..models.sensor import Sensor
from ..models.status import AlarmStatus, ArmingStatus


class SecurityRepositoryInterface(ABC):
    """Interface for the store of sensors and system statuses."""

    @abstractmethod
    def get_sensors(self) -> Set[Sensor]:
        """Get all sensors."""
        pass

    @abstractmethod
    def add_sensor(self, sensor: Sensor) -> None:
        """Add a sensor."""
        pass

    @abstractmethod
    def remove_sensor(self, sensor: Sensor) -> None:
        """Remove a sensor."""
        pass

    @abstractmethod
    def update_sensor(self, sensor: Sensor) -> None:
        """Replace the stored sensor with the same identity."""
        pass

    @abstractmethod
    def get_alarm_status(self) -> AlarmStatus:
        """Get the current alarm status."""
        pass

    @abstractmethod
    def set_alarm_status(self, alarm_status: AlarmStatus) -> None:
        """Set the current alarm status."""
        pass

    @abstractmethod
    def get_arming_status(self) -> ArmingStatus:
        """Get the current arming status."""
        pass

    @abstractmethod
    def set_arming_status(self, arming_status: ArmingStatus) -> None:
        """Set the current arming status."""
        pass


class ImageServiceInterface(ABC):
    """Interface for image analysis."""

    @abstractmethod
    def image_contains_cat(self, image: Any, confidence_threshold: float) -> bool:
        """Return True if a cat is found with at least the given confidence (0-100)."""
        pass


class StatusListener(ABC):
    """Receives state change notifications from the security service."""

    @abstractmethod
    def notify(self, status: AlarmStatus) -> None:
        """Called after every alarm status write."""
        pass

    @abstractmethod
    def cat_detected(self, cat_detected: bool) -> None:
        """Called with the result of every processed image."""
        pass

    @abstractmethod
    def sensor_status_changed(self) -> None:
        """Called after an arming change, which may have reset sensors."""
        pass
