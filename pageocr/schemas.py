"""
schemas.py

Pydantic models and enums describing OCR results.

Rectangles, text regions and orientation estimates are validated on
construction so that callers never observe an inverted box or an
out-of-range confidence.
"""

from enum import Enum, IntEnum, IntFlag
from typing import Union

from pydantic import BaseModel, Field, field_validator, model_validator


class TextUnit(str, Enum):
    """Granularity at which text regions are enumerated."""

    WORD = "word"
    LINE = "line"

    @classmethod
    def coerce(cls, unit: Union["TextUnit", str]) -> "TextUnit":
        """Accept a ``TextUnit`` or its string value."""
        try:
            return cls(unit)
        except ValueError:
            raise ValueError("Invalid text unit") from None


class LayoutFlag(IntFlag):
    """Position of a region within its text line."""

    START_OF_LINE = 1
    END_OF_LINE = 2


class PageSegmentationMode(IntEnum):
    """How the backend partitions the page before recognition."""

    OSD_ONLY = 0
    AUTO_OSD = 1
    AUTO_ONLY = 2
    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK_VERT_TEXT = 5
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    CIRCLE_WORD = 9
    SINGLE_CHAR = 10
    SPARSE_TEXT = 11
    SPARSE_TEXT_OSD = 12
    RAW_LINE = 13


class Rectangle(BaseModel):
    """Integer bounding box in image pixel coordinates."""

    left: int = Field(..., description="Left edge (inclusive)")
    top: int = Field(..., description="Top edge (inclusive)")
    right: int = Field(..., description="Right edge")
    bottom: int = Field(..., description="Bottom edge")

    @model_validator(mode="after")
    def _check_ordering(self) -> "Rectangle":
        if self.left > self.right or self.top > self.bottom:
            raise ValueError(
                f"Inverted rectangle: ({self.left}, {self.top}, "
                f"{self.right}, {self.bottom})"
            )
        return self


class TextRegion(BaseModel):
    """A region of the page found by layout analysis or recognition."""

    rect: Rectangle = Field(..., description="Bounding box of the region")
    flags: int = Field(
        default=0, ge=0, le=3, description="Combination of LayoutFlag bits"
    )
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Recognition confidence (0.0 to 1.0)"
    )
    text: str = Field(default="", description="Recognized text, empty without OCR")

    @property
    def starts_line(self) -> bool:
        return bool(self.flags & LayoutFlag.START_OF_LINE)

    @property
    def ends_line(self) -> bool:
        return bool(self.flags & LayoutFlag.END_OF_LINE)


class Orientation(BaseModel):
    """Estimated page rotation."""

    rotation: int = Field(default=0, description="Rotation in degrees: 0, 90, 180 or 270")
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Estimate confidence (0.0 to 1.0)"
    )

    @field_validator("rotation")
    @classmethod
    def _check_rotation(cls, value: int) -> int:
        if value not in (0, 90, 180, 270):
            raise ValueError(f"Rotation must be a multiple of 90, got {value}")
        return value
