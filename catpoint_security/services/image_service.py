"""Image services that decide whether a camera image contains a cat."""

import os
import random
from typing import Any, List, Optional, Tuple

import cv2
import numpy as np

from ..config.defaults import MODEL_SETTINGS
from ..errors import ModelLoadError
from ..logging_config import get_logger
from ..utils import load_image_array
from .error_decorators import log_execution_time
from .interfaces import ImageServiceInterface

logger = get_logger("image_service")


def find_bundled_cascade() -> Optional[str]:
    """Path of the first cat-face cascade shipped with OpenCV, or None."""
    for cascade_file in MODEL_SETTINGS["cascade_files"]:
        path = os.path.join(cv2.data.haarcascades, cascade_file)
        if os.path.exists(path):
            return path
        logger.debug(f"Bundled cascade not found: {path}")
    return None


class FakeImageService(ImageServiceInterface):
    """Stand-in detector that answers at random, ignoring image and threshold."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def image_contains_cat(self, image: Any, confidence_threshold: float) -> bool:
        result = bool(self._rng.getrandbits(1))
        logger.debug(f"Fake image analysis returned {result}")
        return result


class OpenCVImageService(ImageServiceInterface):
    """Cat detector using an OpenCV Haar cascade for cat faces.

    Each raw detection is scored 0-100 from its size and how close it sits
    to the frame center; the image contains a cat when any score reaches
    the requested threshold.
    """

    def __init__(self,
                 cascade_path: Optional[str] = None,
                 scale_factor: float = 1.1,
                 min_neighbors: int = 3,
                 min_size: Tuple[int, int] = MODEL_SETTINGS["min_size"],
                 max_size: Tuple[int, int] = MODEL_SETTINGS["max_size"]):
        self.cascade_path = cascade_path or find_bundled_cascade()
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_detection_size = tuple(min_size)
        self.max_detection_size = tuple(max_size)
        self.haar_cascade = None

        self.load_model()

    def load_model(self) -> None:
        """Load the Haar cascade, raising ModelLoadError on failure."""
        if self.cascade_path is None:
            raise ModelLoadError(
                f"No cat-face cascade in {cv2.data.haarcascades}; set cascade_path in the config"
            )

        if not os.path.exists(self.cascade_path):
            raise ModelLoadError(f"Cascade file not found: {self.cascade_path}")

        cascade = cv2.CascadeClassifier(self.cascade_path)
        if cascade.empty():
            raise ModelLoadError(f"Failed to load cascade from {self.cascade_path}")

        self.haar_cascade = cascade
        logger.info(f"Loaded Haar cascade from {self.cascade_path}")

    @log_execution_time("image_service")
    def image_contains_cat(self, image: Any, confidence_threshold: float) -> bool:
        frame = load_image_array(image)
        scores = self.score_detections(frame)

        contains_cat = any(score >= confidence_threshold for score in scores)
        logger.debug(f"Cat scores {[round(s, 1) for s in scores]} "
                     f"against threshold {confidence_threshold}: {contains_cat}")
        return contains_cat

    def score_detections(self, frame: np.ndarray) -> List[float]:
        """Run the cascade on a frame and return a 0-100 score per detection."""
        gray = self._preprocess_frame(frame)

        detections = self.haar_cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_detection_size,
            maxSize=self.max_detection_size,
            flags=cv2.CASCADE_SCALE_IMAGE
        )

        frame_h, frame_w = frame.shape[:2]
        return [
            self._score(int(x), int(y), int(w), int(h), frame_w, frame_h)
            for x, y, w, h in detections
        ]

    def _preprocess_frame(self, frame: np.ndarray) -> np.ndarray:
        """Convert to equalized grayscale for the cascade."""
        if frame.dtype != np.uint8:
            frame = frame.astype(np.uint8)

        if len(frame.shape) == 3 and frame.shape[2] == 4:
            gray = cv2.cvtColor(frame, cv2.COLOR_RGBA2GRAY)
        elif len(frame.shape) == 3:
            gray = cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY)
        else:
            gray = frame

        return cv2.equalizeHist(gray)

    def _score(self, x: int, y: int, w: int, h: int, frame_w: int, frame_h: int) -> float:
        # Larger detections near the center of the frame score higher
        center_x = x + w // 2
        center_y = y + h // 2
        center_dist = ((center_x - frame_w // 2) ** 2 + (center_y - frame_h // 2) ** 2) ** 0.5
        max_dist = (frame_w ** 2 + frame_h ** 2) ** 0.5
        center_factor = 1.0 - (center_dist / max_dist) if max_dist else 0.0

        max_area = self.max_detection_size[0] * self.max_detection_size[1]
        size_factor = min(1.0, (w * h) / max_area)

        confidence = 0.6 + 0.2 * center_factor + 0.2 * size_factor
        return max(0.0, min(1.0, confidence)) * 100.0
