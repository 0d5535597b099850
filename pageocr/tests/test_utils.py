"""
Tests for file loading and validation helpers.
"""

import os

import pytest
from PIL import Image as PILImage

from pageocr.image import Image
from pageocr.utils import (
    OCRFileError,
    OCRSecurityError,
    load_image,
    load_model_data,
    sanitize_path,
    validate_file,
)


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "page.png"
    PILImage.new("RGB", (8, 4), (255, 255, 255)).save(path)
    return path


class TestSanitizePath:
    def test_rejects_traversal(self, tmp_path):
        with pytest.raises(OCRSecurityError):
            sanitize_path(str(tmp_path / ".." / "page.png"))

    def test_rejects_symlink(self, tmp_path, png_file):
        link = tmp_path / "link.png"
        os.symlink(png_file, link)
        with pytest.raises(OCRSecurityError):
            sanitize_path(link)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OCRFileError, match="File not found"):
            sanitize_path(tmp_path / "missing.png")

    def test_directory(self, tmp_path):
        with pytest.raises(OCRFileError, match="Not a regular file"):
            sanitize_path(tmp_path)

    def test_returns_resolved_path(self, png_file):
        assert sanitize_path(str(png_file)) == png_file.resolve()


class TestValidateFile:
    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.png"
        path.write_bytes(b"")
        with pytest.raises(OCRFileError, match="empty"):
            validate_file(path)

    def test_too_large(self, tmp_path):
        path = tmp_path / "big.png"
        path.write_bytes(b"x" * 2048)
        with pytest.raises(OCRFileError, match="too large"):
            validate_file(path, max_size_mb=0.001)

    def test_within_limit(self, png_file):
        validate_file(png_file)


class TestLoadImage:
    def test_loads_rgba_image(self, png_file):
        image = load_image(png_file)
        assert isinstance(image, Image)
        assert (image.width, image.height) == (8, 4)
        assert image.bytes_per_pixel == 4
        assert bytes(image.data[:4]) == b"\xff\xff\xff\xff"

    def test_rejects_extension(self, tmp_path):
        path = tmp_path / "page.txt"
        path.write_text("not an image")
        with pytest.raises(OCRFileError, match="Unsupported file extension"):
            load_image(path)

    def test_corrupt_image(self, tmp_path):
        path = tmp_path / "page.png"
        path.write_bytes(b"definitely not a png")
        with pytest.raises(OCRFileError, match="Failed to load image"):
            load_image(path)


class TestLoadModelData:
    def test_reads_bytes(self, tmp_path):
        path = tmp_path / "eng.traineddata"
        path.write_bytes(b"\x00model\x01")
        assert load_model_data(path) == b"\x00model\x01"

    def test_missing_model(self, tmp_path):
        with pytest.raises(OCRFileError):
            load_model_data(tmp_path / "eng.traineddata")
