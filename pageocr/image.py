"""
image.py

Pixel buffer handed to the engine by the host.

An ``Image`` owns a mutable byte buffer laid out row by row, ``bytes_per_line``
bytes per row. The host fills it (directly or via ``from_pil``) and passes it
to ``OCREngine.load_image``, which only reads it for the duration of the call.
"""

from typing import Optional

from PIL import Image as PILImage

from pageocr import config


class Image:
    """
    Raster image with an explicit width, height and pixel buffer.

    The buffer is zero-filled when ``data`` is not supplied. No validation
    is done here; the engine checks buffer size and dimensions when the
    image is loaded so that malformed images can be constructed in tests.
    """

    def __init__(
        self,
        width: int,
        height: int,
        data: Optional[bytes] = None,
        bytes_per_pixel: int = config.IMAGE_BYTES_PER_PIXEL,
        bytes_per_line: Optional[int] = None,
    ):
        self._width = width
        self._height = height
        self._bytes_per_pixel = bytes_per_pixel
        if bytes_per_line is None:
            bytes_per_line = max(width, 0) * bytes_per_pixel
        self._bytes_per_line = bytes_per_line
        if data is None:
            self._data: Optional[bytearray] = bytearray(
                max(height, 0) * bytes_per_line
            )
        else:
            self._data = bytearray(data)

    @classmethod
    def from_pil(cls, pil_image: PILImage.Image) -> "Image":
        """Copy a Pillow image of any mode into an RGBA buffer."""
        rgba = pil_image.convert("RGBA")
        return cls(rgba.width, rgba.height, data=rgba.tobytes())

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def bytes_per_pixel(self) -> int:
        return self._bytes_per_pixel

    @property
    def bytes_per_line(self) -> int:
        return self._bytes_per_line

    @property
    def data(self) -> bytearray:
        """Mutable pixel buffer. Raises ``ValueError`` once released."""
        if self._data is None:
            raise ValueError("Image buffer has been released")
        return self._data

    @property
    def released(self) -> bool:
        return self._data is None

    def to_pil(self) -> PILImage.Image:
        """Build a Pillow image sharing the layout of this buffer."""
        mode = _MODES[self._bytes_per_pixel]
        return PILImage.frombuffer(
            mode,
            (self._width, self._height),
            bytes(self.data),
            "raw",
            mode,
            self._bytes_per_line,
            1,
        )

    def release(self) -> None:
        """Drop the pixel buffer."""
        self._data = None

    def __enter__(self) -> "Image":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"Image(width={self._width}, height={self._height}, "
            f"bytes_per_pixel={self._bytes_per_pixel})"
        )


_MODES = {1: "L", 3: "RGB", 4: "RGBA"}

SUPPORTED_BYTES_PER_PIXEL = tuple(_MODES)
