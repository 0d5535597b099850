"""
orientation.py

Page orientation estimate from two image-backend confidence scalars.

``up_conf`` measures whether text is upright (positive) or upside down
(negative); ``left_conf`` measures the same on the page turned a quarter
turn. When the up/down signal clearly dominates, the page is at 0 or 180
degrees, otherwise it is taken to be on its side.
"""

import logging
from typing import NamedTuple

from pageocr.backend import ImageBackend, ThresholdedImage
from pageocr.errors import OrientationDetectionError
from pageocr.schemas import Orientation

logger = logging.getLogger(__name__)

# Margin by which |up_conf| must exceed |left_conf| to pick 0/180 degrees
UP_DOWN_MARGIN = 5.0


class OrientationSignals(NamedTuple):
    up_conf: float
    left_conf: float
    error: bool


class OrientationDetector:
    """Obtains orientation signals for a thresholded page."""

    def __init__(self, image_backend: ImageBackend):
        self._image_backend = image_backend

    def detect(self, image: ThresholdedImage) -> OrientationSignals:
        """
        Compute orientation signals with no minimum ascender/descender count.

        Backend failures are reported through ``error`` rather than raised.
        The caller keeps ownership of ``image``.
        """
        try:
            up_conf, left_conf = self._image_backend.orient_detect(image, min_count=0)
        except OrientationDetectionError as e:
            logger.warning("Orientation detection failed: %s", e)
            return OrientationSignals(0.0, 0.0, True)
        return OrientationSignals(up_conf, left_conf, False)


def estimate_orientation(signals: OrientationSignals) -> Orientation:
    """Map orientation signals to a rotation in 90 degree steps."""
    if signals.error:
        return Orientation(rotation=0, confidence=0.0)

    if abs(signals.up_conf) - abs(signals.left_conf) > UP_DOWN_MARGIN:
        rotation = 0 if signals.up_conf > 0 else 180
    else:
        rotation = 90 if signals.left_conf < 0 else 270
    return Orientation(rotation=rotation, confidence=1.0)
