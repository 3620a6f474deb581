from __future__ import annotations

from collections import Counter
from typing import List, Optional, Tuple

import fitz

from ...models.document import RawDocument
from ...models.text import WHITE, Color, Rect
from ...utils.logging import get_logger

# Width of the ring sampled around a covering rectangle, in points
SAMPLE_RING = 2.0


class BackgroundSampler:
    """Estimates the paint behind a covering rectangle from a low-resolution raster.

    Pixels along the outer edge of a slightly enlarged clip are rasterised and the
    most frequent colour wins. Any rendering failure falls back to white.
    """

    def __init__(self, document: RawDocument, enabled: bool = True) -> None:
        self.document = document
        self.enabled = enabled
        self.logger = get_logger(self.__class__.__name__)
        self._doc: Optional[fitz.Document] = None

    def __enter__(self) -> "BackgroundSampler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    def sample(self, page: int, rect: Rect) -> Color:
        if not self.enabled:
            return WHITE
        try:
            if self._doc is None:
                self._doc = self.document.open_fitz()
            fitz_page = self._doc[page]
            x0, y0, x1, y1 = rect
            clip = fitz.Rect(x0 - SAMPLE_RING, y0 - SAMPLE_RING, x1 + SAMPLE_RING, y1 + SAMPLE_RING)
            clip = clip * fitz_page.transformation_matrix
            clip = clip & fitz_page.rect
            if clip.is_empty:
                return WHITE
            pix = fitz_page.get_pixmap(matrix=fitz.Matrix(1, 1), clip=clip, alpha=False, colorspace=fitz.csRGB)
            colors = _edge_pixels(pix)
        except Exception:
            self.logger.debug("Background sampling failed, using white", page=page, exc_info=True)
            return WHITE

        if not colors:
            return WHITE
        (red, green, blue), _ = Counter(colors).most_common(1)[0]
        return (round(red / 255.0, 4), round(green / 255.0, 4), round(blue / 255.0, 4))


def _edge_pixels(pix: fitz.Pixmap) -> List[Tuple[int, int, int]]:
    width, height = pix.width, pix.height
    if width <= 0 or height <= 0:
        return []
    coords = set()
    for x in range(width):
        coords.add((x, 0))
        coords.add((x, height - 1))
    for y in range(height):
        coords.add((0, y))
        coords.add((width - 1, y))
    return [tuple(pix.pixel(x, y)[:3]) for x, y in sorted(coords)]
