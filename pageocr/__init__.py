"""
pageocr

Lazy, cached OCR of a single page image on top of Tesseract.

Load a model and an image, then ask for bounding boxes, text boxes, page
text, hOCR or an orientation estimate. Layout analysis and recognition run
at most once per loaded image.

Public API:
    OCREngine            - Orchestrator over a recognition backend
    Image                - Pixel buffer handed to OCREngine.load_image
    TextRegion           - Box, flags, confidence and text of a region
    TextUnit             - Word or line granularity
    LayoutFlag           - Start/end-of-line flags on word regions
    Orientation          - Rotation estimate
    PageSegmentationMode - Page segmentation modes
"""

from pageocr.engine import OCREngine
from pageocr.errors import (
    InvalidImageError,
    ModelLoadError,
    ModelNotLoadedError,
    OCRError,
    OrientationDetectionError,
    VariableNotFoundError,
    VariableSetError,
)
from pageocr.image import Image
from pageocr.progress import ProgressMonitor, ProgressSink
from pageocr.schemas import (
    LayoutFlag,
    Orientation,
    PageSegmentationMode,
    Rectangle,
    TextRegion,
    TextUnit,
)

__all__ = [
    "OCREngine",
    "Image",
    "TextRegion",
    "Rectangle",
    "TextUnit",
    "LayoutFlag",
    "Orientation",
    "PageSegmentationMode",
    "ProgressSink",
    "ProgressMonitor",
    "OCRError",
    "ModelLoadError",
    "ModelNotLoadedError",
    "InvalidImageError",
    "VariableNotFoundError",
    "VariableSetError",
    "OrientationDetectionError",
]
