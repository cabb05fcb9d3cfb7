"""Services for the catpoint security system."""

from .interfaces import (
    SecurityRepositoryInterface,
    ImageServiceInterface,
    StatusListener
)
from .security_service import SecurityService
from .security_repository import InMemorySecurityRepository, SqliteSecurityRepository
from .image_service import FakeImageService, OpenCVImageService

__all__ = [
    'SecurityRepositoryInterface',
    'ImageServiceInterface',
    'StatusListener',
    'SecurityService',
    'InMemorySecurityRepository',
    'SqliteSecurityRepository',
    'FakeImageService',
    'OpenCVImageService'
]
