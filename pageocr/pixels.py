"""
pixels.py

OpenCV/numpy implementation of the image backend.

Thresholding uses Otsu's method. Orientation signals follow the
ascender/descender idea behind Leptonica's up/down detector: in Latin
lowercase text, strokes rising above the x-height outnumber strokes falling
below it, so counting both on the page (and on the page turned a quarter
turn) gives a signed confidence for each axis.

The detector is designed for non-uppercase Latin text and will perform
poorly on other scripts or all-caps pages.
"""

import logging
import math
from typing import List, Tuple

import cv2
import numpy as np
from PIL import Image as PILImage

from pageocr.backend import ImageBackend, ThresholdedImage
from pageocr.errors import OrientationDetectionError

logger = logging.getLogger(__name__)

# Bands shorter than this cannot hold a core plus ascenders/descenders
MIN_BAND_HEIGHT = 3

# Rows at least this dense (relative to the densest row) form the x-height core
CORE_ROW_FRACTION = 0.5


class PixelBackend(ImageBackend):
    """Image backend working on numpy arrays."""

    def threshold(self, image: PILImage.Image) -> ThresholdedImage:
        """Binarize ``image`` with Otsu's threshold; dark pixels become ink."""
        gray = np.asarray(image.convert("L"), dtype=np.uint8)
        _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return ThresholdedImage(binary == 0)

    def orient_detect(
        self, image: ThresholdedImage, min_count: int = 0
    ) -> Tuple[float, float]:
        """
        Compute up/down and left/right orientation confidences.

        Args:
            image: Thresholded page.
            min_count: Minimum number of ascenders plus descenders needed
                for a non-zero confidence.

        Returns:
            ``(up_conf, left_conf)``. ``up_conf`` is positive for upright
            text and negative for upside-down text. ``left_conf`` is the
            same measure taken on the page rotated 90 degrees clockwise.

        Raises:
            OrientationDetectionError: If the image is released or empty.
        """
        try:
            ink = image.pixels
        except ValueError as e:
            raise OrientationDetectionError(str(e)) from e

        if ink.size == 0:
            raise OrientationDetectionError("Cannot detect orientation of an empty image")

        up_conf = up_down_confidence(ink, min_count)
        left_conf = up_down_confidence(np.rot90(ink, k=-1), min_count)
        logger.debug("Orientation signals: up=%.3f left=%.3f", up_conf, left_conf)
        return up_conf, left_conf


def up_down_confidence(ink: np.ndarray, min_count: int = 0) -> float:
    """
    Signed confidence that the text in ``ink`` is right side up.

    Each horizontal band of ink is treated as a text line. Within a band,
    the x-height core is the span of dense rows; column runs of ink above
    it count as ascenders and below it as descenders. The result is
    ``2 * (n_up - n_down) / sqrt(n_up + n_down)``.
    """
    n_up = 0
    n_down = 0

    for start, stop in _runs(ink.any(axis=1)):
        band = ink[start:stop]
        if band.shape[0] < MIN_BAND_HEIGHT:
            continue

        profile = band.sum(axis=1)
        core_rows = np.flatnonzero(profile >= profile.max() * CORE_ROW_FRACTION)
        core_top = int(core_rows[0])
        core_bottom = int(core_rows[-1]) + 1

        n_up += len(_runs(band[:core_top].any(axis=0)))
        n_down += len(_runs(band[core_bottom:].any(axis=0)))

    total = n_up + n_down
    if total == 0 or total < min_count:
        return 0.0
    return 2.0 * (n_up - n_down) / math.sqrt(total)


def _runs(mask: np.ndarray) -> List[Tuple[int, int]]:
    """Return ``(start, stop)`` pairs for each run of True in a 1-D mask."""
    padded = np.concatenate(([0], mask.astype(np.int8), [0]))
    edges = np.flatnonzero(np.diff(padded))
    return [(int(a), int(b)) for a, b in zip(edges[::2], edges[1::2])]
