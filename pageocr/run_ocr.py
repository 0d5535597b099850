"""
Run OCR on an image file and print the result.

Usage:
    python -m pageocr.run_ocr page.png --model eng.traineddata
    python -m pageocr.run_ocr page.png --output boxes --unit line
    python -m pageocr.run_ocr page.png --output hocr --var tessedit_char_whitelist=0123456789
    python -m pageocr.run_ocr page.png --output orientation
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Tuple

from pageocr import config
from pageocr.engine import OCREngine
from pageocr.errors import OCRError
from pageocr.schemas import PageSegmentationMode, TextUnit
from pageocr.utils import OCRFileError, OCRSecurityError, load_image

logger = logging.getLogger(__name__)

OUTPUTS = ["text", "hocr", "boxes", "text-boxes", "orientation"]


def _parse_var(raw: str) -> Tuple[str, str]:
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"Expected NAME=VALUE, got {raw!r}")
    return name, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pageocr", description="Layout analysis and OCR of a page image."
    )
    parser.add_argument("image", help="Path to the page image")
    parser.add_argument(
        "--model",
        default=config.MODEL_PATH or None,
        help="Path to a .traineddata model (default: $PAGEOCR_MODEL_PATH)",
    )
    parser.add_argument(
        "--psm",
        default=config.DEFAULT_PAGE_SEG_MODE,
        choices=[mode.name for mode in PageSegmentationMode],
        help="Page segmentation mode",
    )
    parser.add_argument(
        "--unit",
        default=TextUnit.WORD.value,
        choices=[unit.value for unit in TextUnit],
        help="Granularity of boxes",
    )
    parser.add_argument("--output", default="text", choices=OUTPUTS)
    parser.add_argument(
        "--var",
        action="append",
        default=[],
        type=_parse_var,
        metavar="NAME=VALUE",
        help="Set a Tesseract variable (repeatable)",
    )
    return parser


def _print_progress(progress: int) -> None:
    print(f"\rRecognizing... {progress:3d}%", end="", file=sys.stderr)
    if progress == 100:
        print(file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        image = load_image(args.image)
    except (OCRFileError, OCRSecurityError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    needs_model = args.output in ("text", "hocr", "text-boxes")
    if needs_model and not args.model:
        print("Error: --model is required for text output", file=sys.stderr)
        return 1

    with OCREngine() as engine:
        try:
            if args.model:
                engine.load_model(args.model)
            for name, value in args.var:
                engine.set_variable(name, value)
            with image:
                engine.load_image(image, PageSegmentationMode[args.psm])
            result = _run(engine, args)
        except (OCRError, OCRFileError, OCRSecurityError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(result)
    return 0


def _run(engine: OCREngine, args: argparse.Namespace) -> str:
    if args.output == "text":
        return engine.get_text(_print_progress)
    if args.output == "hocr":
        return engine.get_hocr(_print_progress)
    if args.output == "orientation":
        return engine.get_orientation().model_dump_json()

    if args.output == "boxes":
        regions = engine.get_bounding_boxes(args.unit)
    else:
        regions = engine.get_text_boxes(args.unit, _print_progress)
    return json.dumps([region.model_dump() for region in regions], ensure_ascii=False)


if __name__ == "__main__":
    sys.exit(main())
