"""Sequential harvest loop: admit, navigate, resolve, browse, archive."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError

from archive import ArchiveRecord, ArchiveWriter, DiagnosticCapture, DiagnosticRecord
from browser import SessionOptions
from challenge import ChallengeOutcome, ChallengeStateMachine
from detector import ChallengeDetector, ChallengeState
from errors import ChallengeUnresolved, NavigationError, PersistenceError, SolveError
from events import EventLog
from handlers import browse_like_human
from metrics import HarvestMetrics
from motion import MotionSynthesizer
from rate_limiter import RateLimiter
from targets import HarvestTarget

logger = logging.getLogger(__name__)


def domain_of(url: str) -> str:
    host = urlparse(url).hostname
    if not host:
        return "unknown"
    return host[4:] if host.startswith("www.") else host


@dataclass
class HarvestReport:
    archived: list[ArchiveRecord] = field(default_factory=list)
    diagnostics: list[DiagnosticRecord] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    lost: list[str] = field(default_factory=list)
    outcomes: dict[str, ChallengeOutcome] = field(default_factory=dict)


class Harvester:
    """Processes targets one at a time; each gets a fresh browser session.

    Per-target failures become diagnostics and the loop moves on. A
    ``LaunchError`` from the driver propagates and ends the run.
    """

    def __init__(
        self,
        driver,
        session_options: SessionOptions,
        limiter: RateLimiter,
        detector: ChallengeDetector,
        machine: ChallengeStateMachine,
        motion: MotionSynthesizer,
        archive: ArchiveWriter,
        diagnostics: DiagnosticCapture,
        events: Optional[EventLog] = None,
        metrics: Optional[HarvestMetrics] = None,
        timeout_ms: int = 60000,
        min_delay_ms: int = 3000,
        max_delay_ms: int = 7000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.driver = driver
        self.session_options = session_options
        self.limiter = limiter
        self.detector = detector
        self.machine = machine
        self.motion = motion
        self.archive = archive
        self.diagnostics = diagnostics
        self.events = events
        self.metrics = metrics or HarvestMetrics()
        self.timeout_ms = timeout_ms
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self.sleep = sleep

    def _event(self, tag: str, **fields) -> None:
        if self.events:
            self.events.event(tag, **fields)

    async def run(self, targets: list[HarvestTarget]) -> HarvestReport:
        report = HarvestReport()
        self._event("harvest:start", count=len(targets))
        for i, target in enumerate(targets, start=1):
            logger.info("[%d/%d] Harvesting %s", i, len(targets), target.url)
            await self.process(target, report)
        self._event("harvest:end", archived=len(report.archived), failed=len(report.diagnostics))
        return report

    async def _admit(self, domain: str) -> None:
        while True:
            decision = self.limiter.admit(domain)
            if decision.allowed:
                return
            logger.info(
                "Rate limit for %s reached. Waiting %d minutes...",
                domain, round(decision.wait_seconds / 60),
            )
            await self.sleep(decision.wait_seconds)

    async def process(self, target: HarvestTarget, report: HarvestReport) -> None:
        self.metrics.start_target(target.id, target.url)
        if self.archive.is_archived(target.id):
            logger.info("  > %s already archived, skipping", target.id)
            self._event("harvest:skipped", id=target.id, url=target.url)
            report.skipped.append(target.id)
            self.metrics.end_target(target.id, success=False, skipped=True)
            return

        domain = domain_of(target.url)
        await self._admit(domain)

        # LaunchError is fatal and deliberately not caught here
        session = await self.driver.open(self.session_options)
        page = None
        outcome: Optional[ChallengeOutcome] = None
        try:
            started = time.monotonic()
            page = await session.navigate(target.url, self.timeout_ms)
            if self.events:
                self.events.server(
                    "harvest:goto", host=domain, url=target.url,
                    dur_ms=round((time.monotonic() - started) * 1000),
                    counts=self.limiter.window_counts(domain),
                )

            logger.info("  > Page loaded. Waiting to settle...")
            await page.pause(self.motion.idle(self.min_delay_ms, self.max_delay_ms) + 2000)

            outcome = await self.machine.run(page)
            report.outcomes[target.id] = outcome
            if outcome.state == ChallengeState.FAILED:
                raise ChallengeUnresolved(outcome.reason or "Challenge unresolved", url=target.url)

            blocked = await self.detector.blocked_reason(page)
            if blocked:
                raise ChallengeUnresolved(blocked, url=target.url)
            logger.info("  > Content verified. Proceeding with human-like interactions.")

            await browse_like_human(page, self.motion, self.min_delay_ms, self.max_delay_ms)
            html = await session.content()
            record = self.archive.record(target, html, source_domain=domain)
            if record is not None:
                report.archived.append(record)
                self._event("harvest:archived", id=target.id, url=target.url, htmlPath=record.path)
            self.metrics.end_target(target.id, success=record is not None, states=self._states(outcome))
        except (NavigationError, SolveError, ChallengeUnresolved, PlaywrightError) as e:
            # PlaywrightError: the page detached or navigated away mid-interaction
            logger.warning("  x Error: %s", e)
            self._event("harvest:error", url=target.url, message=str(e))
            self.metrics.end_target(target.id, success=False, states=self._states(outcome), error=str(e))
            await self._capture_failure(target, page or getattr(session, "handle", None), str(e), report)
        except PersistenceError as e:
            logger.error("  x Lost %s: %s", target.id, e)
            self._event("harvest:error", url=target.url, message=str(e))
            report.lost.append(target.id)
            self.metrics.end_target(target.id, success=False, states=self._states(outcome), error=str(e))
        finally:
            await self.driver.close(session)

    @staticmethod
    def _states(outcome: Optional[ChallengeOutcome]) -> list[str]:
        return [s.value for s in outcome.history] if outcome else []

    async def _capture_failure(self, target: HarvestTarget, page, reason: str, report: HarvestReport) -> None:
        screenshot = html = None
        if page is not None:
            try:
                screenshot = await page.screenshot(full_page=True)
                html = await page.content()
            except Exception as e:
                # the page may have crashed or detached; record what we have
                logger.warning("  > Could not capture page state: %s", e)
        try:
            report.diagnostics.append(self.diagnostics.record_failure(target, reason, screenshot, html))
        except PersistenceError as e:
            logger.error("  x Diagnostics for %s lost: %s", target.id, e)
            report.lost.append(target.id)
