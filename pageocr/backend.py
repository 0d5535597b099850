"""
backend.py

Interfaces to the services the engine orchestrates.

IMPORTANT:
- A ``RecognitionBackend`` performs layout analysis and recognition and
  exposes its results through region iterators, page text and markup.
- An ``ImageBackend`` thresholds page images and computes the two
  orientation confidence scalars.
- Neither backend tracks what has already been computed; caching is the
  engine's job.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Optional, Tuple

import numpy as np
from PIL import Image as PILImage

from pageocr.progress import ProgressMonitor
from pageocr.schemas import PageSegmentationMode


class IteratorLevel(IntEnum):
    """Region granularity, ordered from coarsest to finest."""

    BLOCK = 0
    PARA = 1
    TEXTLINE = 2
    WORD = 3
    SYMBOL = 4


class ThresholdedImage:
    """
    Binarized page image produced by an image backend.

    ``pixels`` is a 2-D boolean array, ``True`` where there is ink. The owner
    must ``close()`` it when done.
    """

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got shape {pixels.shape}")
        self._pixels: Optional[np.ndarray] = pixels.astype(bool, copy=False)

    @property
    def pixels(self) -> np.ndarray:
        if self._pixels is None:
            raise ValueError("Thresholded image has been released")
        return self._pixels

    @property
    def closed(self) -> bool:
        return self._pixels is None

    def close(self) -> None:
        self._pixels = None


class RegionIterator(ABC):
    """
    Cursor over the regions of the current page at one granularity.

    A backend returns it positioned on the first region; ``next()`` advances
    and returns False once the regions are exhausted.
    """

    @abstractmethod
    def next(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def bounding_box(self) -> Tuple[int, int, int, int]:
        """Return ``(left, top, right, bottom)``."""
        raise NotImplementedError

    @abstractmethod
    def confidence(self) -> float:
        """Recognition confidence as a percentage (0-100)."""
        raise NotImplementedError

    @abstractmethod
    def text(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def is_at_beginning_of_line(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def is_at_final_element_of_line(self) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        pass


class RecognitionBackend(ABC):
    """Layout analysis and text recognition service."""

    @abstractmethod
    def initialize(self, model_data: bytes, language: str) -> bool:
        """Load a recognition model. Returns False if the data is rejected."""
        raise NotImplementedError

    @abstractmethod
    def version(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def set_page_seg_mode(self, mode: PageSegmentationMode) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_image(
        self,
        data: bytes,
        width: int,
        height: int,
        bytes_per_pixel: int,
        bytes_per_line: int,
    ) -> None:
        """Copy pixel data into the backend's image slot."""
        raise NotImplementedError

    @abstractmethod
    def set_rectangle(self, left: int, top: int, width: int, height: int) -> None:
        """Restrict processing to a region of the current image."""
        raise NotImplementedError

    @abstractmethod
    def clear_image(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def analyze_layout(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def recognize(self, monitor: ProgressMonitor) -> None:
        """Run full recognition, reporting progress through ``monitor``."""
        raise NotImplementedError

    @abstractmethod
    def iterate_regions(self, level: IteratorLevel) -> Optional[RegionIterator]:
        """Return an iterator at ``level``, or None when there is nothing to visit."""
        raise NotImplementedError

    @abstractmethod
    def get_text(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_markup(self) -> str:
        """Return the hOCR fragment for the page (without document wrapper)."""
        raise NotImplementedError

    @abstractmethod
    def get_variable(self, name: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set_variable(self, name: str, value: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_thresholded_image(self) -> Optional[ThresholdedImage]:
        """Binarized copy of the current image, or None without an image."""
        raise NotImplementedError

    def close(self) -> None:
        pass


class ImageBackend(ABC):
    """Pixel-level services: thresholding and orientation signals."""

    @abstractmethod
    def threshold(self, image: PILImage.Image) -> ThresholdedImage:
        raise NotImplementedError

    @abstractmethod
    def orient_detect(
        self, image: ThresholdedImage, min_count: int = 0
    ) -> Tuple[float, float]:
        """
        Compute ``(up_conf, left_conf)`` for a thresholded page.

        Raises:
            OrientationDetectionError: If the signals cannot be computed.
        """
        raise NotImplementedError
