"""Configuration data models."""

from dataclasses import dataclass
from typing import Optional

from ..config.defaults import DEFAULT_CONFIG


@dataclass
class SystemConfig:
    """System configuration settings, defaulting to ``DEFAULT_CONFIG``."""
    # Detection settings
    image_service: str = DEFAULT_CONFIG["image_service"]  # fake, opencv
    cascade_path: Optional[str] = DEFAULT_CONFIG["cascade_path"]
    cascade_scale_factor: float = DEFAULT_CONFIG["cascade_scale_factor"]
    cascade_min_neighbors: int = DEFAULT_CONFIG["cascade_min_neighbors"]

    # Sensor settings
    max_sensors: int = DEFAULT_CONFIG["max_sensors"]

    # Storage settings
    repository_backend: str = DEFAULT_CONFIG["repository_backend"]  # memory, sqlite
    database_file: str = DEFAULT_CONFIG["database_file"]

    # Logging settings
    log_level: str = DEFAULT_CONFIG["log_level"]
    log_dir: str = DEFAULT_CONFIG["log_dir"]
