"""Data models for the catpoint security system."""

from .sensor import Sensor, SensorType
from .status import AlarmStatus, ArmingStatus
from .config import SystemConfig

__all__ = ['Sensor', 'SensorType', 'AlarmStatus', 'ArmingStatus', 'SystemConfig']
