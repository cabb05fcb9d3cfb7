"""
Catpoint Security System

A home security alarm controller that tracks sensors and arming status and
raises the alarm from sensor activity and camera-based cat detection.
"""

__version__ = "1.0.0"

# Import core components
from .config_manager import ConfigManager
from .errors import (
    CatpointError,
    ConfigError,
    RepositoryError,
    ImageServiceError,
    ModelLoadError
)
from .models import (
    Sensor,
    SensorType,
    AlarmStatus,
    ArmingStatus,
    SystemConfig
)
from .services import (
    SecurityRepositoryInterface,
    ImageServiceInterface,
    StatusListener,
    SecurityService,
    InMemorySecurityRepository,
    SqliteSecurityRepository,
    FakeImageService,
    OpenCVImageService
)

__all__ = [
    # Core management
    'ConfigManager',
    'SecurityService',

    # Errors
    'CatpointError',
    'ConfigError',
    'RepositoryError',
    'ImageServiceError',
    'ModelLoadError',

    # Data models
    'Sensor',
    'SensorType',
    'AlarmStatus',
    'ArmingStatus',
    'SystemConfig',

    # Service interfaces
    'SecurityRepositoryInterface',
    'ImageServiceInterface',
    'StatusListener',

    # Implementations
    'InMemorySecurityRepository',
    'SqliteSecurityRepository',
    'FakeImageService',
    'OpenCVImageService'
]
