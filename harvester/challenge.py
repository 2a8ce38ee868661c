"""Detect -> Confirm -> Solve -> Verify sequencing for one slider challenge."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from detector import ChallengeDetector, ChallengeState
from errors import SolveError
from handlers import click_first_match, drag_along, move_along
from motion import MotionSynthesizer, Point
from puzzle import PuzzleGeometry, PuzzleSolver

logger = logging.getLogger(__name__)

# Detected, AwaitingConfirmation, AwaitingPuzzle and one terminal state
MAX_TRANSITIONS = 4


@dataclass
class ChallengeOutcome:
    state: ChallengeState
    history: list[ChallengeState] = field(default_factory=list)
    geometry: Optional[PuzzleGeometry] = None
    confirm_selector: Optional[str] = None
    reason: Optional[str] = None

    @property
    def solved(self) -> bool:
        return self.state == ChallengeState.SOLVED


class ChallengeStateMachine:
    """One confirmation attempt and one puzzle attempt per ``run``; never loops."""

    def __init__(
        self,
        detector: ChallengeDetector,
        solver: PuzzleSolver,
        motion: MotionSynthesizer,
        confirm_selectors: list[str],
        slider_selector: str,
        confirm_timeout_ms: int = 5000,
        settle_ms: int = 3000,
        clearance_timeout_ms: int = 20000,
        time_limit_s: float = 90.0,
    ):
        self.detector = detector
        self.solver = solver
        self.motion = motion
        self.confirm_selectors = confirm_selectors
        self.slider_selector = slider_selector
        self.confirm_timeout_ms = confirm_timeout_ms
        self.settle_ms = settle_ms
        self.clearance_timeout_ms = clearance_timeout_ms
        self.time_limit_s = time_limit_s

    def _enter(self, outcome: ChallengeOutcome, state: ChallengeState) -> None:
        if len(outcome.history) >= MAX_TRANSITIONS:
            raise RuntimeError(f"Challenge machine exceeded {MAX_TRANSITIONS} states: {outcome.history}")
        logger.info("Challenge state: %s", state.value)
        outcome.history.append(state)
        outcome.state = state

    def _fail(self, outcome: ChallengeOutcome, reason: str) -> ChallengeOutcome:
        outcome.reason = reason
        self._enter(outcome, ChallengeState.FAILED)
        logger.warning("Challenge failed: %s", reason)
        return outcome

    async def run(self, page) -> ChallengeOutcome:
        """Resolve the challenge on ``page`` within the time limit."""
        outcome = ChallengeOutcome(state=ChallengeState.NONE)
        try:
            await asyncio.wait_for(self._drive(page, outcome), timeout=self.time_limit_s)
        except asyncio.TimeoutError:
            if not outcome.state.terminal:
                self._fail(outcome, f"Challenge not resolved within {self.time_limit_s:.0f}s")
        return outcome

    async def _drive(self, page, outcome: ChallengeOutcome) -> None:
        if await self.detector.inspect(page) == ChallengeState.NONE:
            return
        self._enter(outcome, ChallengeState.DETECTED)

        self._enter(outcome, ChallengeState.AWAITING_CONFIRMATION)
        outcome.confirm_selector = await click_first_match(
            page, self.detector.frame_name, self.confirm_selectors, self.confirm_timeout_ms
        )
        if outcome.confirm_selector:
            logger.info("Clicked confirmation control %r, waiting for puzzle", outcome.confirm_selector)
            await page.pause(self.settle_ms)
        else:
            logger.info("No confirmation control, assuming the slider is ready")

        self._enter(outcome, ChallengeState.AWAITING_PUZZLE)
        try:
            outcome.geometry = await self.solver.solve(page)
        except SolveError as e:
            self._fail(outcome, f"Puzzle solve failed: {e.message}")
            return

        handle = await page.bounding_box(self.detector.frame_name, self.slider_selector)
        if handle is None:
            self._fail(outcome, "Slider handle not found")
            return

        start = Point(handle["x"] + handle["width"] / 2, handle["y"] + handle["height"] / 2)
        end = Point(start.x + outcome.geometry.drag_distance, start.y)
        logger.info("Dragging slider from %.0f to %.0f", start.x, end.x)

        approach = await move_along(page, self.motion, self.motion.start_point(), start, steps=20)
        await drag_along(page, self.motion, approach, end)

        if not await page.wait_for_reload(self.clearance_timeout_ms):
            logger.info("No reload after drag within %dms", self.clearance_timeout_ms)

        # Container absence after the wait is the only clearance signal available
        if await self.detector.inspect(page) == ChallengeState.DETECTED:
            self._fail(outcome, "Challenge container still present after drag")
            return
        self._enter(outcome, ChallengeState.SOLVED)
