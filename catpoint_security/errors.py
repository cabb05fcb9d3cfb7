"""Exception types raised by the catpoint security system."""


class CatpointError(Exception):
    """Base class for all catpoint security errors."""


class ConfigError(CatpointError):
    """Configuration could not be loaded or is invalid."""


class RepositoryError(CatpointError):
    """The security repository failed to read or write state."""


class ImageServiceError(CatpointError):
    """An image could not be analysed."""


class ModelLoadError(ImageServiceError):
    """The detection model could not be loaded."""
