"""Slider puzzle solving by exhaustive offset search.

The challenge container is captured as one PNG. Two fixed regions are
cropped from it: the draggable piece and the background strip holding the
slot. Both are normalized (grayscale, autocontrast, edge filter) because
the widget jitters colours between instances while edges stay put. The
piece is then slid over every offset of the background and the offset
with the lowest mean pixel difference wins. Its ``x`` is the drag
distance.
"""

import io
import logging
from dataclasses import dataclass

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from errors import GeometryError, SolveError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_tuple(cls, values) -> "Rect":
        return cls(*(int(v) for v in values))

    @property
    def box(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def fits_in(self, width: int, height: int) -> bool:
        return (
            self.x >= 0 and self.y >= 0 and self.width > 0 and self.height > 0
            and self.x + self.width <= width and self.y + self.height <= height
        )


@dataclass(frozen=True)
class PuzzleLayout:
    """Where the piece and the slot strip sit inside the container capture."""
    piece: Rect
    background: Rect


@dataclass
class PuzzleGeometry:
    piece_region: Rect
    background_region: Rect
    best_offset: tuple[int, int]
    match_score: float

    @property
    def drag_distance(self) -> int:
        return self.best_offset[0]


class EdgeMatcher:
    """Grayscale + contrast + edge normalization with mean-absolute-difference scoring."""

    def normalize(self, image: Image.Image) -> np.ndarray:
        gray = ImageOps.grayscale(image)
        gray = ImageOps.autocontrast(gray)
        edges = gray.filter(ImageFilter.FIND_EDGES)
        return np.asarray(edges, dtype=np.float32) / 255.0

    def distance(self, a: np.ndarray, b: np.ndarray):
        """Mean absolute difference over the last two axes; ``a`` may be a stack of windows."""
        if a.shape[-2:] != b.shape[-2:]:
            raise ValueError(f"Shape mismatch {a.shape} vs {b.shape}")
        return np.abs(a - b).mean(axis=(-2, -1))

    def score_map(self, piece: np.ndarray, background: np.ndarray) -> np.ndarray:
        """Distance for every offset; ``scores[y, x]``."""
        ph, pw = piece.shape
        bh, bw = background.shape
        if ph > bh or pw > bw:
            raise GeometryError(f"Piece {pw}x{ph} does not fit background {bw}x{bh}")
        scores = np.empty((bh - ph + 1, bw - pw + 1), dtype=np.float64)
        # One row of offsets at a time keeps the temporary at (bw-pw+1, ph, pw)
        for y in range(bh - ph + 1):
            strip = background[y:y + ph, :]
            windows = sliding_window_view(strip, (ph, pw))[0]
            scores[y] = self.distance(windows, piece)
        return scores


def best_offset(scores: np.ndarray) -> tuple[tuple[int, int], float]:
    """First minimum in scan order: x outer, y inner."""
    flat = scores.T.ravel()
    index = int(np.argmin(flat))
    height = scores.shape[0]
    x, y = divmod(index, height)
    return (x, y), float(flat[index])


def crop(image: Image.Image, region: Rect, label: str) -> Image.Image:
    width, height = image.size
    if not region.fits_in(width, height):
        raise GeometryError(f"{label} region {region} outside {width}x{height} capture")
    return image.crop(region.box)


def locate_piece(capture: bytes, layout: PuzzleLayout, matcher: EdgeMatcher | None = None) -> PuzzleGeometry:
    """Find where the piece fits in the background of a container capture."""
    matcher = matcher or EdgeMatcher()
    try:
        image = Image.open(io.BytesIO(capture))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise GeometryError(f"Unreadable challenge capture: {e}") from e

    piece = matcher.normalize(crop(image, layout.piece, "Piece"))
    background = matcher.normalize(crop(image, layout.background, "Background"))
    (x, y), score = best_offset(matcher.score_map(piece, background))
    return PuzzleGeometry(
        piece_region=layout.piece,
        background_region=layout.background,
        best_offset=(x, y),
        match_score=score,
    )


class PuzzleSolver:
    def __init__(self, layout: PuzzleLayout, frame_name: str, container_selector: str,
                 matcher: EdgeMatcher | None = None):
        self.layout = layout
        self.frame_name = frame_name
        self.container_selector = container_selector
        self.matcher = matcher or EdgeMatcher()

    async def solve(self, page) -> PuzzleGeometry:
        """Capture the challenge container and locate the piece target."""
        capture = await page.element_screenshot(self.frame_name, self.container_selector)
        if capture is None:
            raise SolveError("Challenge container could not be captured", url=page.url)
        geometry = locate_piece(capture, self.layout, self.matcher)
        logger.info(
            "Puzzle piece target at x=%d (y=%d, score=%.4f)",
            geometry.best_offset[0], geometry.best_offset[1], geometry.match_score,
        )
        return geometry
