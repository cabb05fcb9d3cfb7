"""Utility functions for the catpoint security system."""

import os
from typing import Any

import numpy as np
from PIL import Image

from .errors import ImageServiceError


def ensure_directory_exists(path: str) -> None:
    """Ensure a directory exists, create if it doesn't."""
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def load_image_array(image: Any) -> np.ndarray:
    """Return an RGB or grayscale numpy array for a path, PIL image or array."""
    if isinstance(image, np.ndarray):
        return image

    if isinstance(image, (str, os.PathLike)):
        if not os.path.exists(image):
            raise ImageServiceError(f"Image file not found: {image}")
        try:
            with Image.open(image) as pil_image:
                return np.array(pil_image.convert('RGB'))
        except OSError as e:
            raise ImageServiceError(f"Cannot read image {image}: {e}") from e

    if isinstance(image, Image.Image):
        return np.array(image.convert('RGB'))

    raise ImageServiceError(f"Unsupported image type: {type(image).__name__}")
