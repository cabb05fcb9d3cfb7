"""Security service: alarm state machine and status listener fan-out."""

import logging
from typing import Any, Optional, Set

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger, log_with_context
from ..models.sensor import Sensor
from ..models.status import AlarmStatus, ArmingStatus
from .interfaces import ImageServiceInterface, SecurityRepositoryInterface, StatusListener

logger = get_logger("security_service")

CAT_CONFIDENCE_THRESHOLD = SYSTEM_CONSTANTS["CAT_CONFIDENCE_THRESHOLD"]


class SecurityService:
    """Derives the alarm status from arming changes, sensor activity and cat detection.

    The service holds no lock. Callers running it from more than one thread
    must serialize every call, including the queries. Errors raised by the
    repository, the image service or a listener propagate to the caller and
    abort any remaining notifications for that call.
    """

    def __init__(self, security_repository: SecurityRepositoryInterface,
                 image_service: ImageServiceInterface):
        self.security_repository = security_repository
        self.image_service = image_service
        self._status_listeners: Set[StatusListener] = set()
        self._cat_detected = False

    @property
    def cat_detected(self) -> bool:
        """Result of the most recently processed image."""
        return self._cat_detected

    # Listener registry

    def add_status_listener(self, status_listener: StatusListener) -> None:
        self._status_listeners.add(status_listener)

    def remove_status_listener(self, status_listener: StatusListener) -> None:
        self._status_listeners.discard(status_listener)

    # Mutations

    def set_arming_status(self, arming_status: ArmingStatus) -> None:
        """Change the arming status.

        Disarming clears the alarm. Arming deactivates every sensor, and
        raises the alarm straight away if a cat is currently detected.
        Listeners always get ``sensor_status_changed``.
        """
        if arming_status == ArmingStatus.DISARMED:
            self.set_alarm_status(AlarmStatus.NO_ALARM)
        else:
            sensors = list(self.security_repository.get_sensors())
            for sensor in sensors:
                sensor.active = False
                self.security_repository.update_sensor(sensor)
            logger.debug(f"Deactivated {len(sensors)} sensors for {arming_status.name}")

        self.security_repository.set_arming_status(arming_status)
        logger.info(f"Arming status set to {arming_status.name}")

        if arming_status.is_armed and self._cat_detected:
            self.set_alarm_status(AlarmStatus.ALARM)

        for status_listener in list(self._status_listeners):
            status_listener.sensor_status_changed()

    def change_sensor_activation_status(self, sensor: Optional[Sensor], active: bool) -> None:
        """Record a sensor's new state and run the alarm rules for it.

        The sensor is persisted on every call. While the alarm is sounding
        no sensor change affects it. Activation escalates even when the
        sensor was already active; deactivation only counts when the
        sensor was active before.
        """
        if sensor is None:
            return

        actual_alarm_status = self.security_repository.get_alarm_status()
        was_active = sensor.active

        sensor.active = active
        self.security_repository.update_sensor(sensor)

        log_with_context(logger, logging.DEBUG, "Sensor activation changed", {
            'sensor': sensor.name,
            'was_active': was_active,
            'active': active,
            'alarm_status': actual_alarm_status.name
        })

        if actual_alarm_status == AlarmStatus.ALARM:
            return

        if active:
            self._handle_sensor_activated()
        elif was_active:
            self._handle_sensor_deactivated()

    def process_image(self, image: Any) -> None:
        """Run cat detection on a camera image and apply the result."""
        cat = self.image_service.image_contains_cat(image, CAT_CONFIDENCE_THRESHOLD)
        self._handle_cat_detected(cat)

    def set_alarm_status(self, status: AlarmStatus) -> None:
        """Persist the alarm status and notify every listener, even if unchanged."""
        self.security_repository.set_alarm_status(status)
        logger.info(f"Alarm status set to {status.name}")

        for status_listener in list(self._status_listeners):
            status_listener.notify(status)

    # Queries

    def get_alarm_status(self) -> AlarmStatus:
        return self.security_repository.get_alarm_status()

    def get_arming_status(self) -> ArmingStatus:
        return self.security_repository.get_arming_status()

    def get_sensors(self) -> Set[Sensor]:
        return self.security_repository.get_sensors()

    def add_sensor(self, sensor: Sensor) -> None:
        self.security_repository.add_sensor(sensor)

    def remove_sensor(self, sensor: Sensor) -> None:
        self.security_repository.remove_sensor(sensor)

    # Rules

    def _handle_cat_detected(self, cat: bool) -> None:
        self._cat_detected = cat

        # ARMED_AWAY is deliberately not checked here; arming re-checks the flag.
        if cat and self.get_arming_status() == ArmingStatus.ARMED_HOME:
            self.set_alarm_status(AlarmStatus.ALARM)
        elif not cat and self._all_sensors_inactive() and self.get_arming_status() != ArmingStatus.DISARMED:
            self.set_alarm_status(AlarmStatus.NO_ALARM)

        log_with_context(logger, logging.INFO, "Image processed", {'cat_detected': cat})

        for status_listener in list(self._status_listeners):
            status_listener.cat_detected(cat)

    def _handle_sensor_activated(self) -> None:
        if self.security_repository.get_arming_status() == ArmingStatus.DISARMED:
            return

        alarm_status = self.security_repository.get_alarm_status()
        if alarm_status == AlarmStatus.NO_ALARM:
            self.set_alarm_status(AlarmStatus.PENDING_ALARM)
        elif alarm_status == AlarmStatus.PENDING_ALARM:
            self.set_alarm_status(AlarmStatus.ALARM)

    def _handle_sensor_deactivated(self) -> None:
        if (self.security_repository.get_alarm_status() == AlarmStatus.PENDING_ALARM
                and self._all_sensors_inactive()):
            self.set_alarm_status(AlarmStatus.NO_ALARM)

    def _all_sensors_inactive(self) -> bool:
        return not any(sensor.active for sensor in self.get_sensors())
