"""
tesseract_backend.py

Recognition backend driving the Tesseract CLI through pytesseract.

Each layout or recognition pass is one ``image_to_data`` run whose TSV
output (block/paragraph/line/word rows with boxes and confidences) is kept
in memory and served through region iterators, page text and markup until
the image changes. The model passed to ``initialize`` is written to a
private tessdata directory that lives as long as the backend.

The CLI has no layout-only mode and no progress channel, so layout
analysis runs the same pass as recognition, and progress is reported as
``0`` when the pass starts; the engine's monitor supplies the final ``100``.
"""

import logging
import re
import shlex
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

import pytesseract
from PIL import Image as PILImage
from pytesseract import Output

from pageocr import config
from pageocr.backend import (
    ImageBackend,
    IteratorLevel,
    RecognitionBackend,
    RegionIterator,
    ThresholdedImage,
)
from pageocr.pixels import PixelBackend
from pageocr.progress import ProgressMonitor
from pageocr.schemas import PageSegmentationMode

logger = logging.getLogger(__name__)

# TSV row levels: 1=page, 2=block, 3=paragraph, 4=line, 5=word
TSV_LINE_LEVEL = 4
TSV_WORD_LEVEL = 5

_PIL_MODES = {1: "L", 3: "RGB", 4: "RGBA"}

_BODY_RE = re.compile(r"<body>\n?(.*?)</body>", re.DOTALL)

Box = Tuple[int, int, int, int]


class _Word(NamedTuple):
    box: Box
    confidence: float
    text: str


@dataclass
class _Line:
    box: Box
    block: int
    paragraph: int
    words: List[_Word] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(word.text for word in self.words)

    @property
    def confidence(self) -> float:
        return sum(w.confidence for w in self.words) / len(self.words)


class _Region(NamedTuple):
    box: Box
    confidence: float
    text: str
    starts_line: bool
    ends_line: bool


class TsvRegionIterator(RegionIterator):
    """Iterator over regions parsed from Tesseract TSV output."""

    def __init__(self, regions: List[_Region]):
        if not regions:
            raise ValueError("TsvRegionIterator needs at least one region")
        self._regions: Optional[List[_Region]] = regions
        self._index = 0

    @property
    def _current(self) -> _Region:
        if self._regions is None:
            raise ValueError("Region iterator has been closed")
        return self._regions[self._index]

    def next(self) -> bool:
        if self._regions is None or self._index + 1 >= len(self._regions):
            return False
        self._index += 1
        return True

    def bounding_box(self) -> Box:
        return self._current.box

    def confidence(self) -> float:
        return self._current.confidence

    def text(self) -> str:
        return self._current.text

    def is_at_beginning_of_line(self) -> bool:
        return self._current.starts_line

    def is_at_final_element_of_line(self) -> bool:
        return self._current.ends_line

    def close(self) -> None:
        self._regions = None


class TesseractBackend(RecognitionBackend):
    """
    ``RecognitionBackend`` over the ``tesseract`` executable.

    Results of the last pass are cached until the image is replaced or
    cleared. Markup needs its own CLI run and is cached separately.
    """

    def __init__(
        self,
        image_backend: Optional[ImageBackend] = None,
        tesseract_cmd: str = config.TESSERACT_CMD,
        timeout: float = config.TESSERACT_TIMEOUT_S,
    ):
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._image_backend = image_backend or PixelBackend()
        self._timeout = timeout
        self._tessdata: Optional[tempfile.TemporaryDirectory] = None
        self._language = config.OCR_LANGUAGE
        self._psm = PageSegmentationMode.SINGLE_BLOCK
        self._variables: Dict[str, str] = {}
        self._parameters: Optional[Dict[str, str]] = None
        self._image: Optional[PILImage.Image] = None
        self._rect: Box = (0, 0, 0, 0)
        self._reset_results()

    # ------------------------------------------------------------------
    # Model and configuration
    # ------------------------------------------------------------------

    def initialize(self, model_data: bytes, language: str) -> bool:
        """
        Install ``model_data`` as ``<language>.traineddata`` and probe it.

        The probe runs Tesseract once on a blank image; a model the CLI
        cannot load makes it exit with an error.
        """
        if not model_data:
            logger.error("Empty model data")
            return False

        tessdata = tempfile.TemporaryDirectory(prefix="pageocr-tessdata-")
        Path(tessdata.name, f"{language}.traineddata").write_bytes(model_data)

        probe = PILImage.new("L", (32, 32), 255)
        probe_config = _join_config(
            [
                "--tessdata-dir",
                tessdata.name,
                "--psm",
                str(int(PageSegmentationMode.SINGLE_WORD)),
            ]
        )
        try:
            pytesseract.image_to_string(
                probe, lang=language, config=probe_config, timeout=self._timeout
            )
        except pytesseract.TesseractError as e:
            logger.error("Tesseract rejected model data: %s", e)
            tessdata.cleanup()
            return False

        if self._tessdata is not None:
            self._tessdata.cleanup()
        self._tessdata = tessdata
        self._language = language
        logger.info("Installed %s model (%d bytes)", language, len(model_data))
        return True

    def version(self) -> str:
        return str(pytesseract.get_tesseract_version())

    def set_page_seg_mode(self, mode: PageSegmentationMode) -> None:
        self._psm = PageSegmentationMode(mode)

    def get_variable(self, name: str) -> Optional[str]:
        if name in self._variables:
            return self._variables[name]
        return self._load_parameters().get(name)

    def set_variable(self, name: str, value: str) -> bool:
        if name not in self._load_parameters():
            logger.warning("Unknown Tesseract variable: %s", name)
            return False
        self._variables[name] = str(value)
        return True

    # ------------------------------------------------------------------
    # Image
    # ------------------------------------------------------------------

    def set_image(
        self,
        data: bytes,
        width: int,
        height: int,
        bytes_per_pixel: int,
        bytes_per_line: int,
    ) -> None:
        mode = _PIL_MODES.get(bytes_per_pixel)
        if mode is None:
            raise ValueError(f"Unsupported bytes per pixel: {bytes_per_pixel}")

        pixels = bytes(data[: height * bytes_per_line])
        image = PILImage.frombuffer(
            mode, (width, height), pixels, "raw", mode, bytes_per_line, 1
        )
        self._image = image.convert("RGB")
        self._rect = (0, 0, width, height)
        self._reset_results()

    def set_rectangle(self, left: int, top: int, width: int, height: int) -> None:
        if self._image is None:
            return
        right = min(left + width, self._image.width)
        bottom = min(top + height, self._image.height)
        self._rect = (max(left, 0), max(top, 0), right, bottom)
        self._reset_results()

    def clear_image(self) -> None:
        self._image = None
        self._rect = (0, 0, 0, 0)
        self._reset_results()

    def get_thresholded_image(self) -> Optional[ThresholdedImage]:
        if self._image is None:
            return None
        return self._image_backend.threshold(self._active_image())

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_layout(self) -> None:
        if self._image is None:
            return
        self._lines = self._run_tsv()

    def recognize(self, monitor: ProgressMonitor) -> None:
        if self._image is None:
            return
        monitor.update(0)
        self._lines = self._run_tsv()
        self._recognized = True

    def iterate_regions(self, level: IteratorLevel) -> Optional[RegionIterator]:
        if not self._lines:
            return None
        return TsvRegionIterator(_regions_at_level(self._lines, level))

    def get_text(self) -> str:
        """
        Page text in Tesseract's plain-text layout.

        Lines end with a newline and paragraphs are separated by an empty
        line.
        """
        if not self._recognized or not self._lines:
            return ""
        paragraphs = _group_lines(self._lines, by_paragraph=True)
        return "\n".join(
            "".join(line.text + "\n" for line in paragraph) for paragraph in paragraphs
        )

    def get_markup(self) -> str:
        if self._image is None or not self._recognized:
            return ""
        if self._markup is None:
            document = pytesseract.image_to_pdf_or_hocr(
                self._active_image(),
                lang=self._language,
                config=self._config(),
                extension="hocr",
                timeout=self._timeout,
            )
            self._markup = _hocr_body(document.decode("utf-8"))
        return self._markup

    def close(self) -> None:
        self.clear_image()
        if self._tessdata is not None:
            self._tessdata.cleanup()
            self._tessdata = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset_results(self) -> None:
        self._lines: Optional[List[_Line]] = None
        self._recognized = False
        self._markup: Optional[str] = None

    def _active_image(self) -> PILImage.Image:
        if self._image is None:
            raise ValueError("No image loaded")
        if self._rect == (0, 0, self._image.width, self._image.height):
            return self._image
        return self._image.crop(self._rect)

    def _config(self) -> str:
        args = ["--psm", str(int(self._psm))]
        if self._tessdata is not None:
            args.extend(["--tessdata-dir", self._tessdata.name])
        for name, value in self._variables.items():
            args.extend(["-c", f"{name}={value}"])
        return _join_config(args)

    def _run_tsv(self) -> List[_Line]:
        logger.debug("Running tesseract (psm=%d, lang=%s)", self._psm, self._language)
        data = pytesseract.image_to_data(
            self._active_image(),
            lang=self._language,
            config=self._config(),
            output_type=Output.DICT,
            timeout=self._timeout,
        )
        lines = _parse_tsv(data, offset=self._rect[:2])
        logger.debug("Tesseract found %d line(s)", len(lines))
        return lines

    def _load_parameters(self) -> Dict[str, str]:
        """Default values of all Tesseract variables, read once per backend."""
        if self._parameters is None:
            try:
                proc = subprocess.run(
                    [pytesseract.pytesseract.tesseract_cmd, "--print-parameters"],
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except FileNotFoundError:
                raise pytesseract.TesseractNotFoundError() from None
            self._parameters = parse_parameters(proc.stdout)
        return self._parameters


def parse_parameters(output: str) -> Dict[str, str]:
    """Parse ``tesseract --print-parameters`` into a name -> value map."""
    parameters: Dict[str, str] = {}
    for row in output.splitlines():
        parts = row.split("\t")
        if len(parts) < 2 or not parts[0] or " " in parts[0]:
            continue
        parameters[parts[0]] = parts[1]
    return parameters


def _join_config(args: List[str]) -> str:
    # pytesseract splits the config string with shlex
    return " ".join(shlex.quote(arg) for arg in args)


def _safe_float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return -1.0


def _parse_tsv(data: Dict[str, list], offset: Tuple[int, int] = (0, 0)) -> List[_Line]:
    """
    Group ``image_to_data`` rows into lines of words, in TSV order.

    Words without text are dropped, as are lines left without words.
    Negative (missing) confidences are reported as zero.
    """
    dx, dy = offset
    lines: List[_Line] = []
    by_key: Dict[Tuple[int, int, int, int], _Line] = {}

    for i in range(len(data.get("text", []))):
        level = int(data["level"][i])
        if level not in (TSV_LINE_LEVEL, TSV_WORD_LEVEL):
            continue

        key = (
            int(data["page_num"][i]),
            int(data["block_num"][i]),
            int(data["par_num"][i]),
            int(data["line_num"][i]),
        )
        left = int(data["left"][i]) + dx
        top = int(data["top"][i]) + dy
        box = (left, top, left + int(data["width"][i]), top + int(data["height"][i]))

        if level == TSV_LINE_LEVEL:
            line = _Line(box=box, block=key[1], paragraph=key[2])
            by_key[key] = line
            lines.append(line)
            continue

        text = str(data["text"][i] or "").strip()
        if not text:
            continue
        line = by_key.get(key)
        if line is None:
            line = _Line(box=box, block=key[1], paragraph=key[2])
            by_key[key] = line
            lines.append(line)
        confidence = max(_safe_float(data["conf"][i]), 0.0)
        line.words.append(_Word(box=box, confidence=confidence, text=text))

    return [line for line in lines if line.words]


def _group_lines(lines: List[_Line], by_paragraph: bool) -> List[List[_Line]]:
    """Split consecutive lines into blocks (or paragraphs)."""
    groups: List[List[_Line]] = []
    last_key = None
    for line in lines:
        key = (line.block, line.paragraph) if by_paragraph else line.block
        if key != last_key:
            groups.append([])
            last_key = key
        groups[-1].append(line)
    return groups


def _union(boxes: List[Box]) -> Box:
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )


def _regions_at_level(lines: List[_Line], level: IteratorLevel) -> List[_Region]:
    if level >= IteratorLevel.WORD:
        # TSV output stops at words, so symbols are served as words
        regions = []
        for line in lines:
            last = len(line.words) - 1
            for i, word in enumerate(line.words):
                regions.append(
                    _Region(word.box, word.confidence, word.text, i == 0, i == last)
                )
        return regions

    if level == IteratorLevel.TEXTLINE:
        return [
            _Region(line.box, line.confidence, line.text, True, True) for line in lines
        ]

    regions = []
    for group in _group_lines(lines, by_paragraph=level == IteratorLevel.PARA):
        words = [w for line in group for w in line.words]
        regions.append(
            _Region(
                _union([line.box for line in group]),
                sum(w.confidence for w in words) / len(words),
                "\n".join(line.text for line in group),
                True,
                True,
            )
        )
    return regions


def _hocr_body(document: str) -> str:
    """Extract the page markup between ``<body>`` and ``</body>``."""
    match = _BODY_RE.search(document)
    if match is None:
        logger.warning("Tesseract hOCR output has no <body> element")
        return ""
    return match.group(1)
