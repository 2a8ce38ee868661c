import asyncio

import pytest
from detector import ChallengeDetector, ChallengeState
from conftest import ARTICLE_HTML, BLOCKED_HTML, FakePage


@pytest.fixture
def detector():
    return ChallengeDetector("datadome-captcha-popup", "#captcha-container")


def test_absent_frame_is_none(detector):
    assert asyncio.run(detector.inspect(FakePage(challenge=False))) == ChallengeState.NONE


def test_visible_container_is_detected(detector):
    assert asyncio.run(detector.inspect(FakePage(challenge=True))) == ChallengeState.DETECTED


def test_frame_without_visible_container_is_none(detector):
    page = FakePage(challenge=True)

    async def hidden(frame_name, selector, timeout_ms=5000):
        return False
    page.wait_visible = hidden
    assert asyncio.run(detector.inspect(page)) == ChallengeState.NONE


def test_blocked_page_reason(detector):
    reason = asyncio.run(detector.blocked_reason(FakePage(html=BLOCKED_HTML)))
    assert reason.startswith("Blocked by CAPTCHA/security page")


def test_article_is_not_blocked(detector):
    assert asyncio.run(detector.blocked_reason(FakePage(html=ARTICLE_HTML))) is None


def test_thin_page_without_signature_is_not_blocked(detector):
    assert asyncio.run(detector.blocked_reason(FakePage(html="<p>Hello</p>"))) is None


def test_terminal_states():
    assert ChallengeState.SOLVED.terminal
    assert ChallengeState.FAILED.terminal
    assert not ChallengeState.AWAITING_PUZZLE.terminal
    assert ChallengeState.DETECTED == "detected"
