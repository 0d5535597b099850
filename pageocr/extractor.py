"""
extractor.py

Conversion of backend regions into ``TextRegion`` lists.

The extractor walks a backend region iterator at the granularity matching
the requested ``TextUnit`` and emits one ``TextRegion`` per region, in the
backend's reading order.
"""

import logging
from contextlib import closing
from typing import List, Union

from pageocr.backend import IteratorLevel, RecognitionBackend
from pageocr.schemas import LayoutFlag, Rectangle, TextRegion, TextUnit

logger = logging.getLogger(__name__)

_LEVEL_FOR_UNIT = {
    TextUnit.LINE: IteratorLevel.TEXTLINE,
    TextUnit.WORD: IteratorLevel.WORD,
}


def level_for_unit(unit: TextUnit) -> IteratorLevel:
    """Iterator level for ``unit``; symbols when the unit has no mapping."""
    return _LEVEL_FOR_UNIT.get(unit, IteratorLevel.SYMBOL)


class ResultExtractor:
    """Reads text regions out of a recognition backend."""

    def __init__(self, backend: RecognitionBackend):
        self._backend = backend

    def extract(self, unit: Union[TextUnit, str], with_text: bool) -> List[TextRegion]:
        """
        Collect the regions of the current page at ``unit`` granularity.

        Args:
            unit: Word or line granularity.
            with_text: Whether to read confidence and text. Only meaningful
                after recognition; otherwise both stay at their defaults.

        Returns:
            Regions in reading order. Empty when the backend has nothing to
            iterate (e.g. no image loaded).
        """
        level = level_for_unit(TextUnit.coerce(unit))
        iterator = self._backend.iterate_regions(level)
        if iterator is None:
            return []

        regions: List[TextRegion] = []
        with closing(iterator):
            while True:
                confidence = 0.0
                text = ""
                if with_text:
                    # Backends report confidence as a percentage
                    confidence = min(max(iterator.confidence() * 0.01, 0.0), 1.0)
                    text = iterator.text()

                flags = 0
                if level > IteratorLevel.TEXTLINE:
                    if iterator.is_at_beginning_of_line():
                        flags |= LayoutFlag.START_OF_LINE
                    if iterator.is_at_final_element_of_line():
                        flags |= LayoutFlag.END_OF_LINE

                left, top, right, bottom = iterator.bounding_box()
                regions.append(
                    TextRegion(
                        rect=Rectangle(left=left, top=top, right=right, bottom=bottom),
                        flags=int(flags),
                        confidence=confidence,
                        text=text,
                    )
                )
                if not iterator.next():
                    break

        logger.debug("Extracted %d region(s) at level %s", len(regions), level.name)
        return regions
