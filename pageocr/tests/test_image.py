"""
Tests for the Image buffer and result schemas.
"""

import pytest
from PIL import Image as PILImage
from pydantic import ValidationError

from pageocr.hocr import HOCR_CAPABILITIES, wrap_hocr
from pageocr.image import Image
from pageocr.schemas import (
    LayoutFlag,
    Orientation,
    PageSegmentationMode,
    Rectangle,
    TextRegion,
    TextUnit,
)


class TestImage:
    def test_allocates_zeroed_rgba_buffer(self):
        image = Image(3, 2)
        assert image.bytes_per_pixel == 4
        assert image.bytes_per_line == 12
        assert len(image.data) == 24
        assert not any(image.data)

    def test_buffer_is_mutable(self):
        image = Image(2, 2)
        image.data[0:4] = b"\xff\x00\x00\xff"
        assert image.to_pil().getpixel((0, 0)) == (255, 0, 0, 255)

    def test_from_pil(self):
        pil_image = PILImage.new("RGB", (4, 3), (10, 20, 30))
        image = Image.from_pil(pil_image)
        assert (image.width, image.height) == (4, 3)
        assert bytes(image.data[:4]) == bytes([10, 20, 30, 255])

    def test_from_grayscale_pil(self):
        image = Image.from_pil(PILImage.new("L", (2, 2), 128))
        assert bytes(image.data[:4]) == bytes([128, 128, 128, 255])

    def test_release(self):
        with Image(2, 2) as image:
            assert image.released is False
        assert image.released is True
        with pytest.raises(ValueError):
            image.data

    def test_explicit_stride(self):
        image = Image(2, 2, bytes_per_line=16)
        assert len(image.data) == 32


class TestSchemas:
    def test_rectangle_rejects_inverted(self):
        with pytest.raises(ValidationError):
            Rectangle(left=10, top=0, right=5, bottom=10)

    def test_degenerate_rectangle_is_valid(self):
        rect = Rectangle(left=5, top=5, right=5, bottom=5)
        assert rect.right == 5

    def test_text_region_defaults(self):
        region = TextRegion(rect=Rectangle(left=0, top=0, right=1, bottom=1))
        assert region.confidence == 0.0
        assert region.text == ""
        assert region.flags == 0

    def test_text_region_confidence_range(self):
        with pytest.raises(ValidationError):
            TextRegion(rect=Rectangle(left=0, top=0, right=1, bottom=1), confidence=1.5)

    def test_text_region_flag_helpers(self):
        region = TextRegion(
            rect=Rectangle(left=0, top=0, right=1, bottom=1),
            flags=LayoutFlag.START_OF_LINE | LayoutFlag.END_OF_LINE,
        )
        assert region.starts_line and region.ends_line

    def test_orientation_rejects_odd_rotation(self):
        with pytest.raises(ValidationError):
            Orientation(rotation=45, confidence=1.0)

    def test_text_unit_coerce(self):
        assert TextUnit.coerce("line") is TextUnit.LINE
        assert TextUnit.coerce(TextUnit.WORD) is TextUnit.WORD
        with pytest.raises(ValueError, match="Invalid text unit"):
            TextUnit.coerce("block")

    def test_page_seg_mode_ordinals(self):
        assert len(PageSegmentationMode) == 14
        assert PageSegmentationMode.OSD_ONLY == 0
        assert PageSegmentationMode.SINGLE_BLOCK == 6
        assert PageSegmentationMode.RAW_LINE == 13

    def test_layout_flag_bits(self):
        assert LayoutFlag.START_OF_LINE == 1
        assert LayoutFlag.END_OF_LINE == 2


class TestWrapHOCR:
    def test_document_structure(self):
        hocr = wrap_hocr("<div class='ocr_page'></div>\n", "5.3.0")
        assert hocr.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert "XHTML 1.0 Transitional" in hocr
        assert "<meta name='ocr-system' content='tesseract 5.3.0' />" in hocr
        assert f"<meta name='ocr-capabilities' content='{HOCR_CAPABILITIES}'/>" in hocr
        assert hocr.endswith(" </body>\n</html>\n")

    def test_body_is_verbatim(self):
        body = "<span class='ocrx_word'>a &lt; b</span>\n"
        assert body in wrap_hocr(body, "5.3.0")
