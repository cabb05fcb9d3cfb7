"""Arming and alarm status enumerations."""

from enum import Enum


class ArmingStatus(Enum):
    """Whether the system is disarmed or armed for a home/away profile."""
    DISARMED = "Disarmed"
    ARMED_HOME = "Armed - At Home"
    ARMED_AWAY = "Armed - Away"

    @property
    def description(self) -> str:
        return self.value

    @property
    def is_armed(self) -> bool:
        """True for ARMED_HOME and ARMED_AWAY."""
        return self is not ArmingStatus.DISARMED


class AlarmStatus(Enum):
    """Escalation level: NO_ALARM -> PENDING_ALARM -> ALARM."""
    NO_ALARM = "Cool and Good"
    PENDING_ALARM = "I'm in Danger..."
    ALARM = "Awooga!"

    @property
    def description(self) -> str:
        return self.value
