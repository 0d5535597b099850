"""
engine.py

OCR orchestration over a recognition backend.

``OCREngine`` owns one backend handle and remembers what has been computed
for the current image, so that layout analysis and recognition each run at
most once per loaded image:

1. ``load_image`` / ``clear_image`` reset the cache to ``CLEAN``
2. Box queries need layout analysis (``LAYOUT_ANALYZED``)
3. Text, text boxes and hOCR need recognition (``RECOGNIZED``), which
   implies layout analysis

Orientation detection works on the raw image and ignores the cache.
"""

import logging
from contextlib import closing
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image as PILImage

from pageocr import config
from pageocr.backend import ImageBackend, RecognitionBackend
from pageocr.errors import (
    InvalidImageError,
    ModelLoadError,
    ModelNotLoadedError,
    VariableNotFoundError,
    VariableSetError,
)
from pageocr.extractor import ResultExtractor
from pageocr.hocr import wrap_hocr
from pageocr.image import SUPPORTED_BYTES_PER_PIXEL, Image
from pageocr.orientation import OrientationDetector, estimate_orientation
from pageocr.progress import ProgressListener, ProgressMonitor
from pageocr.schemas import Orientation, PageSegmentationMode, TextRegion, TextUnit
from pageocr.utils import load_model_data

logger = logging.getLogger(__name__)


class RecognitionState(Enum):
    """What the backend has computed for the current image."""

    CLEAN = "clean"
    LAYOUT_ANALYZED = "layout_analyzed"
    RECOGNIZED = "recognized"

    @property
    def layout_done(self) -> bool:
        return self is not RecognitionState.CLEAN

    @property
    def ocr_done(self) -> bool:
        return self is RecognitionState.RECOGNIZED


# (state, step) -> next state. Steps missing from the table are already done.
_TRANSITIONS = {
    (RecognitionState.CLEAN, "analyze_layout"): RecognitionState.LAYOUT_ANALYZED,
    (RecognitionState.CLEAN, "recognize"): RecognitionState.RECOGNIZED,
    (RecognitionState.LAYOUT_ANALYZED, "recognize"): RecognitionState.RECOGNIZED,
}


class OCREngine:
    """
    Synchronous OCR engine for one image at a time.

    Expensive work is deferred until results are requested and cached until
    the image changes. Not safe for concurrent use.
    """

    def __init__(
        self,
        backend: Optional[RecognitionBackend] = None,
        image_backend: Optional[ImageBackend] = None,
    ):
        if image_backend is None:
            from pageocr.pixels import PixelBackend

            image_backend = PixelBackend()
        if backend is None:
            from pageocr.tesseract_backend import TesseractBackend

            backend = TesseractBackend(image_backend=image_backend)

        self._backend: Optional[RecognitionBackend] = backend
        self._extractor = ResultExtractor(backend)
        self._orientation = OrientationDetector(image_backend)
        self._state = RecognitionState.CLEAN
        self._model_loaded = False
        self._image_loaded = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def model_loaded(self) -> bool:
        return self._model_loaded

    @property
    def image_loaded(self) -> bool:
        return self._image_loaded

    def version(self) -> str:
        """Version identifier of the recognition backend."""
        return self._require_backend().version()

    def load_model(self, model: Union[bytes, bytearray, memoryview, str, Path]) -> None:
        """
        Load a trained text recognition model.

        Args:
            model: Model data, or a path to a ``.traineddata`` file.

        Raises:
            ModelLoadError: If the backend rejects the data. The previously
                loaded model, if any, stays in use.
        """
        backend = self._require_backend()
        if isinstance(model, (str, Path)):
            model_data = load_model_data(model)
        else:
            model_data = bytes(model)

        if not backend.initialize(model_data, config.OCR_LANGUAGE):
            raise ModelLoadError("Text recognition model failed to load")

        self._model_loaded = True
        logger.info("Loaded %s recognition model", config.OCR_LANGUAGE)

    def load_image(
        self,
        image: Union[Image, PILImage.Image],
        page_seg_mode: PageSegmentationMode = PageSegmentationMode.SINGLE_BLOCK,
    ) -> None:
        """
        Load a document image for subsequent operations.

        This is cheap; analysis is deferred until results are requested.
        Results cached for a previous image are discarded.

        Args:
            image: Pixel buffer to copy into the backend. A Pillow image is
                converted first.
            page_seg_mode: How the backend should segment the page.

        Raises:
            InvalidImageError: If the buffer is shorter than
                ``height * bytes_per_line``, a row is narrower than
                ``width * bytes_per_pixel`` or a dimension is not positive.
                Such images are rejected before the engine is touched. If
                the backend still rejects the pixels, the previous image is
                already released and the engine is left with no image.
        """
        backend = self._require_backend()
        if isinstance(image, PILImage.Image):
            image = Image.from_pil(image)

        _validate_image(image)
        page_seg_mode = PageSegmentationMode(page_seg_mode)

        # Free the previous image before copying in the new one; its results
        # are gone from here on even if the copy fails
        backend.clear_image()
        self._state = RecognitionState.CLEAN
        self._image_loaded = False
        backend.set_page_seg_mode(page_seg_mode)
        try:
            backend.set_image(
                image.data,
                image.width,
                image.height,
                image.bytes_per_pixel,
                image.bytes_per_line,
            )
        except ValueError as e:
            logger.error("Backend rejected %r: %s", image, e)
            backend.clear_image()
            raise InvalidImageError(f"Backend rejected image: {e}") from e
        backend.set_rectangle(0, 0, image.width, image.height)

        self._image_loaded = True
        logger.info(
            "Loaded %dx%d image (psm=%s)", image.width, image.height, page_seg_mode.name
        )

    def clear_image(self) -> None:
        """Release the current image and its results; the model stays loaded."""
        self._require_backend().clear_image()
        self._state = RecognitionState.CLEAN
        self._image_loaded = False

    def close(self) -> None:
        """Shut the backend down. The engine cannot be used afterwards."""
        if self._backend is None:
            return
        self._backend.close()
        self._backend = None
        self._state = RecognitionState.CLEAN
        self._model_loaded = False
        self._image_loaded = False

    def __enter__(self) -> "OCREngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_bounding_boxes(self, unit: Union[TextUnit, str]) -> List[TextRegion]:
        """
        Return region boxes for ``unit`` from layout analysis.

        Cheaper than recognition and does not need a model. Once
        recognition has run, the boxes come from the recognition results.
        Regions carry no text and zero confidence.
        """
        unit = TextUnit.coerce(unit)
        self._require_backend()
        if not self._image_loaded:
            return []
        self._ensure_layout()
        return self._extractor.extract(unit, with_text=False)

    def get_text_boxes(
        self, unit: Union[TextUnit, str], on_progress: ProgressListener = None
    ) -> List[TextRegion]:
        """
        Return regions with text and confidence for ``unit``.

        Raises:
            ModelNotLoadedError: If no model has been loaded.
        """
        unit = TextUnit.coerce(unit)
        self._require_model()
        if not self._image_loaded:
            return []
        self._ensure_recognized(on_progress)
        return self._extractor.extract(unit, with_text=True)

    def get_text(self, on_progress: ProgressListener = None) -> str:
        """
        Return the page text.

        Raises:
            ModelNotLoadedError: If no model has been loaded.
        """
        backend = self._require_model()
        if not self._image_loaded:
            return ""
        self._ensure_recognized(on_progress)
        return backend.get_text()

    def get_hocr(self, on_progress: ProgressListener = None) -> str:
        """
        Return the page as an hOCR document.

        Raises:
            ModelNotLoadedError: If no model has been loaded.
        """
        backend = self._require_model()
        body = ""
        if self._image_loaded:
            self._ensure_recognized(on_progress)
            body = backend.get_markup()
        return wrap_hocr(body, backend.version())

    def get_orientation(self) -> Orientation:
        """
        Estimate the rotation of the current image.

        Designed for non-uppercase Latin text; other scripts or all-caps
        pages give unreliable results. Failures yield a zero-confidence
        estimate instead of an error.
        """
        backend = self._require_backend()
        if not self._image_loaded:
            return Orientation(rotation=0, confidence=0.0)

        thresholded = backend.get_thresholded_image()
        if thresholded is None:
            return Orientation(rotation=0, confidence=0.0)

        with closing(thresholded):
            signals = self._orientation.detect(thresholded)
        return estimate_orientation(signals)

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def get_variable(self, name: str) -> str:
        """
        Return a backend configuration variable as a string.

        Raises:
            VariableNotFoundError: If the backend has no such variable.
        """
        value = self._require_backend().get_variable(name)
        if value is None:
            raise VariableNotFoundError(f"Unable to get variable {name}")
        return value

    def set_variable(self, name: str, value: str) -> None:
        """
        Set a backend configuration variable.

        Raises:
            VariableSetError: If the backend rejects the name or value.
        """
        if not self._require_backend().set_variable(name, value):
            raise VariableSetError(f"Unable to set variable {name}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_backend(self) -> RecognitionBackend:
        if self._backend is None:
            raise RuntimeError("OCREngine has been closed")
        return self._backend

    def _require_model(self) -> RecognitionBackend:
        backend = self._require_backend()
        if not self._model_loaded:
            raise ModelNotLoadedError("No text recognition model loaded")
        return backend

    def _advance(self, step: str) -> None:
        self._state = _TRANSITIONS.get((self._state, step), self._state)

    def _ensure_layout(self) -> None:
        if self._state.layout_done:
            logger.debug("Layout analysis cached (%s)", self._state.value)
            return
        logger.info("Running layout analysis")
        self._require_backend().analyze_layout()
        self._advance("analyze_layout")

    def _ensure_recognized(self, on_progress: ProgressListener) -> None:
        with ProgressMonitor(on_progress) as monitor:
            if self._state.ocr_done:
                logger.debug("Recognition results cached")
                return
            logger.info("Running text recognition")
            self._require_backend().recognize(monitor)
            self._advance("recognize")


def _validate_image(image: Image) -> None:
    if image.released:
        raise InvalidImageError("Image buffer has been released")
    if image.width <= 0 or image.height <= 0:
        raise InvalidImageError("Image width or height is zero")
    if image.bytes_per_pixel not in SUPPORTED_BYTES_PER_PIXEL:
        raise InvalidImageError(
            f"Unsupported bytes per pixel: {image.bytes_per_pixel}"
        )
    if image.bytes_per_line < image.width * image.bytes_per_pixel:
        raise InvalidImageError("Image row stride is shorter than its width")
    if len(image.data) < image.height * image.bytes_per_line:
        raise InvalidImageError("Image data length does not match width/height")
