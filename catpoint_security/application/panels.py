"""Text-mode panels that present security service state."""

from typing import List, Optional

from ..config.defaults import SYSTEM_CONSTANTS
from ..logging_config import get_logger
from ..models.sensor import Sensor, SensorType
from ..models.status import AlarmStatus
from ..services.interfaces import StatusListener
from ..services.security_service import SecurityService

logger = get_logger("panels")

CAT_DETECTED_TEXT = "DANGER - CAT DETECTED"
CAT_FREE_TEXT = "Cat Free"


class SensorPanel(StatusListener):
    """Lets users add, toggle and remove sensors.

    The sensor quota lives here rather than in the security service.
    """

    def __init__(self, security_service: SecurityService,
                 max_sensors: int = SYSTEM_CONSTANTS["MAX_SENSORS"]):
        self.security_service = security_service
        self.max_sensors = max_sensors
        self.rows: List[str] = []

        self.security_service.add_status_listener(self)
        self.update_sensor_list()

    def add_sensor(self, name: str, sensor_type: SensorType) -> bool:
        """Add a new sensor unless the quota is reached."""
        if len(self.security_service.get_sensors()) >= self.max_sensors:
            logger.warning(f"Sensor limit of {self.max_sensors} reached, not adding {name}")
            return False

        self.security_service.add_sensor(Sensor(name, sensor_type))
        self.update_sensor_list()
        return True

    def set_sensor_activity(self, sensor: Sensor, active: bool) -> None:
        self.security_service.change_sensor_activation_status(sensor, active)
        self.update_sensor_list()

    def remove_sensor(self, sensor: Sensor) -> None:
        self.security_service.remove_sensor(sensor)
        self.update_sensor_list()

    def find_sensor(self, name: str) -> Optional[Sensor]:
        """First sensor with the given name, in display order."""
        for sensor in sorted(self.security_service.get_sensors()):
            if sensor.name == name:
                return sensor
        return None

    def update_sensor_list(self) -> None:
        self.rows = [
            f"{s.name}({s.sensor_type.name}): {'Active' if s.active else 'Inactive'}"
            for s in sorted(self.security_service.get_sensors())
        ]

    def sensor_status_changed(self) -> None:
        self.update_sensor_list()

    def notify(self, status: AlarmStatus) -> None:
        pass

    def cat_detected(self, cat_detected: bool) -> None:
        pass


class StatusDisplay(StatusListener):
    """Shows the current alarm status and the latest camera verdict."""

    def __init__(self, security_service: SecurityService):
        self.security_service = security_service
        self.alarm_text = security_service.get_alarm_status().description
        self.camera_text = CAT_DETECTED_TEXT if security_service.cat_detected else CAT_FREE_TEXT

        self.security_service.add_status_listener(self)

    def notify(self, status: AlarmStatus) -> None:
        self.alarm_text = status.description

    def cat_detected(self, cat_detected: bool) -> None:
        self.camera_text = CAT_DETECTED_TEXT if cat_detected else CAT_FREE_TEXT

    def sensor_status_changed(self) -> None:
        pass

    def render(self) -> str:
        return (f"System Status: {self.alarm_text} | "
                f"Arming: {self.security_service.get_arming_status().description} | "
                f"Camera: {self.camera_text}")
