import io
import random

import numpy as np
import pytest
from PIL import Image

from errors import LaunchError
from puzzle import PuzzleLayout, Rect

LAYOUT = PuzzleLayout(piece=Rect(25, 175, 60, 60), background=Rect(25, 45, 280, 110))
CAPTURE_SIZE = (330, 240)

ARTICLE_HTML = (
    "<html><body><main><article>"
    + "<p>" + "Quarterly results beat expectations across every region. " * 15 + "</p>"
    + "</article></main></body></html>"
)
BLOCKED_HTML = "<html><body><h1>Just a moment...</h1><p>Checking your browser</p></body></html>"


def make_capture(dx: int, dy: int, layout: PuzzleLayout = LAYOUT, noise: float = 0.0, seed: int = 7) -> bytes:
    """Container capture whose piece region copies the background at ``(dx, dy)``."""
    rng = np.random.default_rng(seed)
    width, height = CAPTURE_SIZE
    gray = rng.integers(0, 256, size=(height, width)).astype(np.float64)
    bg, piece = layout.background, layout.piece
    src = gray[bg.y + dy:bg.y + dy + piece.height, bg.x + dx:bg.x + dx + piece.width].copy()
    gray[piece.y:piece.y + piece.height, piece.x:piece.x + piece.width] = src
    if noise:
        gray = gray + rng.normal(0, noise, size=gray.shape)
    gray = np.clip(gray, 0, 255).astype(np.uint8)
    image = Image.fromarray(np.stack([gray] * 3, axis=-1))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePage:
    """Stands in for ``PageHandle``; the challenge frame exists while ``challenge`` is true."""

    def __init__(self, url="https://example.com/a", html=ARTICLE_HTML, challenge=False,
                 confirm_selectors=(), capture=None, handle_box=None, clears=True):
        self.url = url
        self.html = html
        self.challenge = challenge
        self.confirm_selectors = set(confirm_selectors)
        self.capture = capture
        self.handle_box = handle_box if handle_box is not None else {"x": 40, "y": 300, "width": 40, "height": 30}
        self.clears = clears
        self.clicked = []
        self.moves = []
        self.pressed = False
        self.drag_path = []
        self.scrolls = []
        self.paused_ms = 0.0

    def frame(self, name):
        return object() if self.challenge else None

    async def wait_visible(self, frame_name, selector, timeout_ms=5000):
        return self.challenge

    async def click_in_frame(self, frame_name, selector, timeout_ms=5000):
        if self.challenge and selector in self.confirm_selectors:
            self.clicked.append(selector)
            return True
        return False

    async def element_screenshot(self, frame_name, selector):
        return self.capture if self.challenge else None

    async def bounding_box(self, frame_name, selector):
        return self.handle_box if self.challenge else None

    async def mouse_move(self, x, y, steps=1):
        self.moves.append((x, y))
        if self.pressed:
            self.drag_path.append((x, y))

    async def mouse_down(self):
        self.pressed = True
        self.drag_path = [self.moves[-1]] if self.moves else []

    async def mouse_up(self):
        self.pressed = False
        if self.clears:
            self.challenge = False

    async def pause(self, ms):
        self.paused_ms += ms

    async def wait_for_reload(self, timeout_ms=20000):
        return True

    async def hover_random(self, selector, rng):
        return True

    async def scroll_by(self, dy):
        self.scrolls.append(dy)

    async def screenshot(self, full_page=True):
        return b"\x89PNG fake"

    async def content(self):
        return self.html


class FakeSession:
    def __init__(self, driver):
        self.driver = driver
        self.page = None
        self.handle = None
        self.closed = False

    async def navigate(self, url, timeout_ms):
        entry = self.driver.pages.get(url) or FakePage(url=url)
        if isinstance(entry, Exception):
            raise entry
        self.page = entry
        self.handle = entry
        return entry

    async def content(self):
        return await self.page.content()


class FakeDriver:
    """Hands out one prepared session per open; ``pages`` maps url -> FakePage or exception."""

    def __init__(self, pages=None, launch_error=None):
        self.pages = pages or {}
        self.launch_error = launch_error
        self.opened = []
        self.closed = 0

    async def open(self, options):
        if self.launch_error:
            raise LaunchError(self.launch_error)
        session = FakeSession(self)
        self.opened.append(session)
        return session

    async def close(self, session):
        session.closed = True
        self.closed += 1


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def seeded_rng():
    return random.Random(1234)
