"""
utils.py

File I/O, validation and security checks for pageocr inputs.

Handles:
- Image loading and format validation
- Model file loading
- File path sanitization against path traversal
- File size enforcement
"""

import logging
from pathlib import Path
from typing import Union

from PIL import Image as PILImage

from pageocr import config
from pageocr.image import Image

logger = logging.getLogger(__name__)


class OCRFileError(Exception):
    """Raised when file validation fails."""

    pass


class OCRSecurityError(Exception):
    """Raised when a security check fails (e.g., path traversal)."""

    pass


def sanitize_path(file_path: Union[str, Path]) -> Path:
    """
    Validate and sanitize a file path.

    Rejects paths containing '..', symlinks, or anything that is not an
    existing regular file.

    Args:
        file_path: Raw file path string or Path object.

    Returns:
        Resolved, sanitized Path object.

    Raises:
        OCRSecurityError: If path traversal is detected.
        OCRFileError: If file does not exist or is not readable.
    """
    raw = str(file_path)
    if ".." in Path(raw).parts:
        raise OCRSecurityError(f"Path traversal detected in: {raw}")

    if Path(raw).is_symlink():
        raise OCRSecurityError(f"Symlinks are not allowed: {raw}")

    path = Path(raw).resolve()

    if not path.exists():
        raise OCRFileError(f"File not found: {path}")

    if not path.is_file():
        raise OCRFileError(f"Not a regular file: {path}")

    return path


def validate_file(file_path: Path, max_size_mb: float = config.MAX_FILE_SIZE_MB) -> None:
    """
    Validate file size and emptiness.

    Args:
        file_path: Sanitized Path object.
        max_size_mb: Size limit in megabytes.

    Raises:
        OCRFileError: If validation fails.
    """
    size = file_path.stat().st_size
    if size == 0:
        raise OCRFileError(f"File is empty: {file_path}")

    size_mb = size / (1024 * 1024)
    if size_mb > max_size_mb:
        raise OCRFileError(
            f"File too large: {size_mb:.1f}MB exceeds limit of {max_size_mb}MB"
        )


def load_image(file_path: Union[str, Path]) -> Image:
    """
    Load an image file into an RGBA ``Image`` buffer.

    Args:
        file_path: Path to a PNG, JPEG, TIFF, BMP, GIF or WebP file.

    Returns:
        Image ready for ``OCREngine.load_image``.

    Raises:
        OCRFileError: If the extension is not allowed or loading fails.
        OCRSecurityError: If path validation fails.
    """
    path = sanitize_path(file_path)
    ext = path.suffix.lower()
    if ext not in config.ALLOWED_EXTENSIONS:
        raise OCRFileError(
            f"Unsupported file extension '{ext}'. "
            f"Allowed: {config.ALLOWED_EXTENSIONS}"
        )
    validate_file(path)

    try:
        with PILImage.open(path) as pil_image:
            image = Image.from_pil(pil_image)
    except OSError as e:
        raise OCRFileError(f"Failed to load image from {path.name}: {e}") from e

    logger.info("Loaded image %s: %dx%d", path.name, image.width, image.height)
    return image


def load_model_data(file_path: Union[str, Path]) -> bytes:
    """
    Read a trained model file.

    Raises:
        OCRFileError: If the file is missing, empty or too large.
        OCRSecurityError: If path validation fails.
    """
    path = sanitize_path(file_path)
    validate_file(path, max_size_mb=config.MAX_MODEL_SIZE_MB)
    data = path.read_bytes()
    logger.info("Read model %s (%d bytes)", path.name, len(data))
    return data
