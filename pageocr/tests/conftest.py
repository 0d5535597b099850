"""
Shared fixtures for pageocr tests.

``FakeBackend`` is a scripted in-memory recognition backend that counts
calls, so tests can check caching without running Tesseract.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np
import pytest

from pageocr.backend import (
    ImageBackend,
    IteratorLevel,
    RecognitionBackend,
    RegionIterator,
    ThresholdedImage,
)
from pageocr.engine import OCREngine
from pageocr.errors import OrientationDetectionError
from pageocr.image import Image

Box = Tuple[int, int, int, int]

# Two lines of (text, box, confidence percent)
DEFAULT_PAGE = [
    [
        ("The", (10, 10, 40, 30), 96.0),
        ("quick", (50, 10, 100, 30), 91.5),
        ("fox", (110, 10, 140, 30), 88.0),
    ],
    [
        ("jumps", (10, 40, 70, 60), 79.0),
        ("over", (80, 40, 120, 60), 100.0),
    ],
]


class FakeRegionIterator(RegionIterator):
    def __init__(self, regions, owner):
        self._regions = regions
        self._index = 0
        self._owner = owner

    def next(self) -> bool:
        if self._index + 1 >= len(self._regions):
            return False
        self._index += 1
        return True

    def bounding_box(self) -> Box:
        return self._regions[self._index][1]

    def confidence(self) -> float:
        return self._regions[self._index][2]

    def text(self) -> str:
        return self._regions[self._index][0]

    def is_at_beginning_of_line(self) -> bool:
        return self._regions[self._index][3]

    def is_at_final_element_of_line(self) -> bool:
        return self._regions[self._index][4]

    def close(self) -> None:
        self._owner.iterators_closed += 1


class FakeBackend(RecognitionBackend):
    """Recognition backend returning a scripted page."""

    VERSION = "5.3.0-fake"
    MARKUP = "  <div class='ocr_page' id='page_1'>Fish &amp; Chips</div>\n"

    def __init__(self, page=None, progress_steps=(0, 50)):
        self.page = DEFAULT_PAGE if page is None else page
        self.progress_steps = progress_steps
        self.accept_model = True
        self.variables: Dict[str, str] = {"tessedit_char_whitelist": ""}
        self.image: Optional[Tuple[bytes, int, int, int, int]] = None
        self.psm = None
        self.rectangle = None
        self.analyzed = False
        self.recognized = False
        self.initialize_calls = 0
        self.analyze_calls = 0
        self.recognize_calls = 0
        self.clear_calls = 0
        self.iterators_closed = 0
        self.thresholded: List[ThresholdedImage] = []
        self.closed = False

    def initialize(self, model_data: bytes, language: str) -> bool:
        self.initialize_calls += 1
        self.language = language
        return self.accept_model

    def version(self) -> str:
        return self.VERSION

    def set_page_seg_mode(self, mode) -> None:
        self.psm = mode

    def set_image(self, data, width, height, bytes_per_pixel, bytes_per_line) -> None:
        self.image = (bytes(data), width, height, bytes_per_pixel, bytes_per_line)
        self.analyzed = False
        self.recognized = False

    def set_rectangle(self, left, top, width, height) -> None:
        self.rectangle = (left, top, width, height)

    def clear_image(self) -> None:
        self.clear_calls += 1
        self.image = None
        self.analyzed = False
        self.recognized = False

    def analyze_layout(self) -> None:
        self.analyze_calls += 1
        self.analyzed = True

    def recognize(self, monitor) -> None:
        self.recognize_calls += 1
        for step in self.progress_steps:
            monitor.update(step)
        self.analyzed = True
        self.recognized = True

    def iterate_regions(self, level: IteratorLevel) -> Optional[RegionIterator]:
        if self.image is None or not self.analyzed or not self.page:
            return None
        if level <= IteratorLevel.TEXTLINE:
            regions = [
                (
                    " ".join(w[0] for w in line),
                    (line[0][1][0], line[0][1][1], line[-1][1][2], line[-1][1][3]),
                    sum(w[2] for w in line) / len(line),
                    True,
                    True,
                )
                for line in self.page
            ]
        else:
            regions = [
                (text, box, conf, i == 0, i == len(line) - 1)
                for line in self.page
                for i, (text, box, conf) in enumerate(line)
            ]
        return FakeRegionIterator(regions, self)

    def get_text(self) -> str:
        if not self.recognized:
            return ""
        return "".join(" ".join(w[0] for w in line) + "\n" for line in self.page)

    def get_markup(self) -> str:
        return self.MARKUP if self.recognized else ""

    def get_variable(self, name: str) -> Optional[str]:
        return self.variables.get(name)

    def set_variable(self, name: str, value: str) -> bool:
        if name not in self.variables:
            return False
        self.variables[name] = value
        return True

    def get_thresholded_image(self) -> Optional[ThresholdedImage]:
        if self.image is None:
            return None
        _, width, height, _, _ = self.image
        thresholded = ThresholdedImage(np.zeros((height, width), dtype=bool))
        self.thresholded.append(thresholded)
        return thresholded

    def close(self) -> None:
        self.closed = True


class FakeImageBackend(ImageBackend):
    """Image backend returning fixed orientation signals."""

    def __init__(self, up_conf=10.0, left_conf=1.0, fail=False):
        self.up_conf = up_conf
        self.left_conf = left_conf
        self.fail = fail
        self.min_counts: List[int] = []

    def threshold(self, image):
        return ThresholdedImage(np.asarray(image.convert("L")) < 128)

    def orient_detect(self, image, min_count=0):
        self.min_counts.append(min_count)
        if self.fail:
            raise OrientationDetectionError("signal computation failed")
        return self.up_conf, self.left_conf


class RecordingSink:
    """Progress callback that remembers every value it receives."""

    def __init__(self):
        self.values: List[int] = []

    def __call__(self, progress: int) -> None:
        self.values.append(progress)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def image_backend():
    return FakeImageBackend()


@pytest.fixture
def engine(backend, image_backend):
    return OCREngine(backend=backend, image_backend=image_backend)


@pytest.fixture
def loaded_engine(engine):
    """Engine with a model and a 200x100 image loaded."""
    engine.load_model(b"model-bytes")
    engine.load_image(Image(200, 100))
    return engine


@pytest.fixture
def sink():
    return RecordingSink()
