"""
errors.py

Exceptions raised by the OCR engine.

Every failure an engine operation reports to its caller is an ``OCRError``
carrying a human-readable message. None of them leave the engine in an
invalid state; the caller may retry with corrected input.
"""


class OCRError(Exception):
    """Base class for engine errors."""

    pass


class ModelLoadError(OCRError):
    """Raised when the backend rejects the recognition model data."""

    pass


class ModelNotLoadedError(OCRError):
    """Raised when text recognition is requested before a model is loaded."""

    pass


class InvalidImageError(OCRError):
    """Raised when an image buffer is too short or has a non-positive size."""

    pass


class VariableNotFoundError(OCRError):
    """Raised when the backend has no configuration variable of that name."""

    pass


class VariableSetError(OCRError):
    """Raised when the backend rejects a configuration value."""

    pass


class OrientationDetectionError(OCRError):
    """
    Raised by an image backend when orientation signals cannot be computed.

    The engine never propagates this; it maps it to a zero-confidence result.
    """

    pass
