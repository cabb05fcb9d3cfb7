"""Default configuration values and constants."""

from typing import Dict, Any

# Default system configuration
DEFAULT_CONFIG: Dict[str, Any] = {
    # Detection settings
    "image_service": "fake",
    "cascade_path": None,
    "cascade_scale_factor": 1.1,
    "cascade_min_neighbors": 3,

    # Sensor settings
    "max_sensors": 4,

    # Storage settings
    "repository_backend": "sqlite",
    "database_file": "data/security.db",

    # Logging settings
    "log_level": "INFO",
    "log_dir": "logs"
}

# System constants
SYSTEM_CONSTANTS = {
    "CAT_CONFIDENCE_THRESHOLD": 50.0,  # Threshold the security service passes to the detector
    "MAX_SENSORS": 4,
    "REPOSITORY_RETRY_ATTEMPTS": 3,
    "REPOSITORY_RETRY_DELAY_SECONDS": 0.1,
    "LOG_ROTATION_SIZE_MB": 10,
    "LOG_BACKUP_COUNT": 5
}

# File paths and directories
DEFAULT_PATHS = {
    "config_file": "security_config.json"
}

# Haar cascade settings
MODEL_SETTINGS = {
    # Tried in order inside OpenCV's bundled cascade directory
    "cascade_files": (
        "haarcascade_frontalcatface.xml",
        "haarcascade_frontalcatface_extended.xml"
    ),
    "min_size": (30, 30),
    "max_size": (300, 300)
}

VALID_REPOSITORY_BACKENDS = ("memory", "sqlite")
VALID_IMAGE_SERVICES = ("fake", "opencv")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
