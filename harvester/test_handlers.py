import asyncio
import random

import pytest
from unittest.mock import AsyncMock
from handlers import browse_like_human, click_first_match, drag_along
from motion import MotionSynthesizer
from conftest import FakePage


def test_click_first_match_tries_in_order():
    page = FakePage(challenge=True, confirm_selectors=["#b", "#c"])
    clicked = asyncio.run(click_first_match(page, "frame", ["#a", "#b", "#c"]))
    assert clicked == "#b"
    assert page.clicked == ["#b"]


def test_click_first_match_none():
    page = FakePage(challenge=True)
    assert asyncio.run(click_first_match(page, "frame", ["#a"])) is None


def test_drag_presses_moves_and_releases():
    page = AsyncMock()
    motion = MotionSynthesizer(random.Random(4))
    asyncio.run(drag_along(page, motion, (10, 10), (90, 10)))
    page.mouse_down.assert_awaited_once()
    page.mouse_up.assert_awaited_once()
    last_move = page.mouse_move.await_args_list[-1].args
    assert last_move == pytest.approx((90, 10))


def test_browse_like_human_scrolls_and_pauses():
    page = FakePage()
    motion = MotionSynthesizer(random.Random(6))
    asyncio.run(browse_like_human(page, motion, 3000, 7000))
    assert sum(1 for dy in page.scrolls if dy > 0) >= 2
    assert page.paused_ms >= 3000 + 1000
    assert len(page.moves) > 4
