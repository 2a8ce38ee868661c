"""Challenge presence checks on a loaded page."""

import logging
from enum import Enum

from dom_parser import find_block_signature, has_main_content

logger = logging.getLogger(__name__)


class ChallengeState(str, Enum):
    NONE = "none"
    DETECTED = "detected"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_PUZZLE = "awaiting_puzzle"
    SOLVED = "solved"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ChallengeState.SOLVED, ChallengeState.FAILED)


class ChallengeDetector:
    def __init__(self, frame_name: str, container_selector: str, visible_timeout_ms: int = 5000):
        self.frame_name = frame_name
        self.container_selector = container_selector
        self.visible_timeout_ms = visible_timeout_ms

    async def inspect(self, page) -> ChallengeState:
        """``DETECTED`` when the challenge frame shows its container, else ``NONE``."""
        if page.frame(self.frame_name) is None:
            return ChallengeState.NONE
        if await page.wait_visible(self.frame_name, self.container_selector, self.visible_timeout_ms):
            logger.info("Challenge container visible in frame %r", self.frame_name)
            return ChallengeState.DETECTED
        return ChallengeState.NONE

    async def blocked_reason(self, page) -> str | None:
        """Reason string when the page is a blocking page rather than content."""
        html = await page.content()
        if has_main_content(html):
            return None
        signature = find_block_signature(html)
        if signature:
            return f"Blocked by CAPTCHA/security page (matched {signature!r})"
        return None
