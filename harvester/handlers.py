"""Handlers for the interactive parts of a harvest: confirmation, drag, browsing."""

import logging
from typing import TYPE_CHECKING

from motion import Point

if TYPE_CHECKING:
    from browser import PageHandle
    from motion import MotionSynthesizer

logger = logging.getLogger(__name__)

HOVER_SELECTOR = "p, h2, a, img"


async def click_first_match(
    page: "PageHandle", frame_name: str, selectors: list[str], timeout_ms: int = 5000
) -> str | None:
    """Try each selector in order inside the frame; return the one that was clicked."""
    for sel in selectors:
        if await page.click_in_frame(frame_name, sel, timeout_ms=timeout_ms):
            return sel
    return None


async def move_along(page: "PageHandle", motion: "MotionSynthesizer", start, end, steps: int = 25) -> Point:
    """Replay a synthesized curve as individual pointer moves."""
    points = motion.curve(start, end, steps)
    pauses = motion.segment_pauses(len(points) - 1)
    for point, pause in zip(points[1:], pauses):
        await page.mouse_move(point.x, point.y)
        await page.pause(pause)
    return points[-1]


async def drag_along(page: "PageHandle", motion: "MotionSynthesizer", start, end) -> None:
    """Press at ``start``, move through a human-like curve to ``end``, release."""
    await page.mouse_move(start[0], start[1])
    await page.mouse_down()
    await page.pause(200)
    await move_along(page, motion, start, end)
    await page.pause(motion.idle(80, 200))
    await page.mouse_up()


async def wander(page: "PageHandle", motion: "MotionSynthesizer", origin=None) -> Point:
    """Short aimless pointer movement, the way a reader drifts the mouse."""
    origin = origin or motion.start_point()
    await page.mouse_move(origin[0], origin[1])
    await page.pause(motion.idle(100, 300))
    target = motion.wander_target(origin)
    end = await move_along(page, motion, origin, target, steps=15)
    await page.pause(motion.idle(200, 500))
    return end


async def browse_like_human(page: "PageHandle", motion: "MotionSynthesizer", min_delay_ms: int, max_delay_ms: int) -> None:
    """Dwell, drift, hover, scroll and drift again before the final capture."""
    await page.pause(motion.idle(min_delay_ms, max_delay_ms))
    await wander(page, motion)

    if await page.hover_random(HOVER_SELECTOR, motion.rng):
        await page.pause(motion.idle(500, 1500))

    for dy in motion.scroll_plan():
        if dy < 0:
            # thinking time before scrolling back up
            await page.pause(motion.idle(200, 500))
        await page.scroll_by(dy)
        await page.pause(motion.idle(800, 2000) if dy > 0 else motion.idle(500, 1500))

    await wander(page, motion)
    await page.pause(motion.idle(1000, 3000))
