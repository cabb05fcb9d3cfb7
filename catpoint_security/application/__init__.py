"""Console presentation of the security service."""

from .panels import SensorPanel, StatusDisplay

__all__ = ['SensorPanel', 'StatusDisplay']
