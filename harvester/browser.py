import logging
import random
from dataclasses import dataclass, field
from typing import Any, Optional

from playwright.async_api import (
    async_playwright,
    BrowserContext,
    Page,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
)

from errors import LaunchError, NavigationError, NavigationTimeout

logger = logging.getLogger(__name__)

# Runs before any page script: hide the automation flag the page can read
STEALTH_INIT_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => false });
    window.chrome = window.chrome || { runtime: {} };
    Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
"""

BASE_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--window-size=1920,1080",
]


@dataclass
class SessionOptions:
    headless: bool = False
    user_data_dir: Optional[str] = None
    profile_dir: str = "Default"
    executable_path: Optional[str] = None
    channel: Optional[str] = None
    proxies: list[str] = field(default_factory=list)
    rng: Optional[random.Random] = None

    def pick_proxy(self) -> Optional[str]:
        """One proxy endpoint per session, chosen at random from the pool."""
        if not self.proxies:
            return None
        return (self.rng or random).choice(self.proxies)


class PageHandle:
    """The narrow set of page operations the harvest core relies on.

    Probing helpers (frames, selectors, clicks) return ``None``/``False``
    when the element is absent; absence is the common case.
    """

    def __init__(self, page: Page):
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str, timeout_ms: int) -> None:
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Navigation exceeded {timeout_ms}ms", url=url) from e
        except PlaywrightError as e:
            if "net::ERR_ABORTED" in str(e):
                # Usually the challenge interrupting the load; inspection decides
                logger.warning("Navigation to %s was interrupted, checking for a challenge", url)
                return
            raise NavigationError(str(e).splitlines()[0], url=url) from e

    def frame(self, name: str):
        return self.page.frame(name=name)

    async def wait_visible(self, frame_name: str, selector: str, timeout_ms: int = 5000) -> bool:
        """Wait for ``selector`` to be visible inside the named frame."""
        frame = self.frame(frame_name)
        if frame is None:
            return False
        try:
            await frame.wait_for_selector(selector, state="visible", timeout=timeout_ms)
            return True
        except PlaywrightError:
            return False

    async def click_in_frame(self, frame_name: str, selector: str, timeout_ms: int = 5000) -> bool:
        """Click the first element matching ``selector`` in the named frame."""
        frame = self.frame(frame_name)
        if frame is None:
            return False
        try:
            button = frame.locator(selector).first
            if await button.count() == 0:
                return False
            await button.click(timeout=timeout_ms)
            return True
        except PlaywrightError:
            return False

    async def element_screenshot(self, frame_name: str, selector: str) -> Optional[bytes]:
        """PNG of one element inside the named frame, in CSS pixels like the pointer."""
        frame = self.frame(frame_name)
        if frame is None:
            return None
        try:
            element = await frame.query_selector(selector)
            if element is None:
                return None
            return await element.screenshot(type="png", scale="css")
        except PlaywrightError:
            return None

    async def bounding_box(self, frame_name: str, selector: str) -> Optional[dict]:
        """Viewport-relative ``{x, y, width, height}`` of an element in the named frame."""
        frame = self.frame(frame_name)
        if frame is None:
            return None
        try:
            element = await frame.query_selector(selector)
            if element is None:
                return None
            return await element.bounding_box()
        except PlaywrightError:
            return None

    async def mouse_move(self, x: float, y: float, steps: int = 1) -> None:
        await self.page.mouse.move(x, y, steps=steps)

    async def mouse_down(self) -> None:
        await self.page.mouse.down()

    async def mouse_up(self) -> None:
        await self.page.mouse.up()

    async def pause(self, ms: float) -> None:
        await self.page.wait_for_timeout(ms)

    async def wait_for_reload(self, timeout_ms: int = 20000) -> bool:
        """Wait for the page to fire ``load`` again, then settle on network idle."""
        try:
            await self.page.wait_for_event("load", timeout=timeout_ms)
            await self.page.wait_for_load_state("networkidle", timeout=timeout_ms)
            return True
        except PlaywrightError:
            return False

    async def hover_random(self, selector: str, rng: random.Random) -> bool:
        elements = await self.page.query_selector_all(selector)
        if not elements:
            return False
        try:
            await rng.choice(elements).hover(timeout=2000)
            return True
        except PlaywrightError:
            return False

    async def scroll_by(self, dy: int) -> None:
        await self.page.evaluate("(dy) => window.scrollBy(0, dy)", dy)

    async def screenshot(self, full_page: bool = True) -> bytes:
        return await self.page.screenshot(type="png", full_page=full_page)

    async def content(self) -> str:
        return await self.page.content()


class BrowserSession:
    """One single-use browser session bound to one target."""

    def __init__(self, playwright, context: BrowserContext, browser=None, proxy: Optional[str] = None):
        self.playwright = playwright
        self.context = context
        self.browser = browser
        self.proxy = proxy
        self.handle: Optional[PageHandle] = None

    async def navigate(self, url: str, timeout_ms: int) -> PageHandle:
        if self.handle is None:
            pages = self.context.pages
            page = pages[0] if pages else await self.context.new_page()
            self.handle = PageHandle(page)
        await self.handle.goto(url, timeout_ms)
        return self.handle

    async def content(self) -> str:
        if self.handle is None:
            raise NavigationError("No page loaded in this session")
        return await self.handle.content()

    async def close(self) -> None:
        """Close context, browser and driver; errors during teardown are logged."""
        for closer in (self.context.close, getattr(self.browser, "close", None), self.playwright.stop):
            if closer is None:
                continue
            try:
                await closer()
            except PlaywrightError as e:
                logger.warning("Session teardown: %s", e)
        self.handle = None


class SessionDriver:
    """Launches browser sessions configured to look like a regular desktop browser."""

    async def open(self, options: SessionOptions) -> BrowserSession:
        proxy = options.pick_proxy()
        args = list(BASE_ARGS)
        launch_kwargs: dict[str, Any] = {"headless": options.headless, "args": args}
        if options.executable_path:
            launch_kwargs["executable_path"] = options.executable_path
        if options.channel:
            launch_kwargs["channel"] = options.channel
        if proxy:
            logger.info("Using proxy: %s", proxy)
            launch_kwargs["proxy"] = {"server": proxy}

        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise LaunchError(f"Automation runtime failed to start: {e}") from e

        browser = None
        try:
            if options.user_data_dir:
                args.append(f"--profile-directory={options.profile_dir}")
                context = await playwright.chromium.launch_persistent_context(
                    options.user_data_dir, no_viewport=True, **launch_kwargs
                )
            else:
                browser = await playwright.chromium.launch(**launch_kwargs)
                context = await browser.new_context(no_viewport=True)
            await context.add_init_script(STEALTH_INIT_SCRIPT)
        except PlaywrightError as e:
            await playwright.stop()
            raise LaunchError(f"Browser launch failed: {str(e).splitlines()[0]}") from e

        return BrowserSession(playwright, context, browser=browser, proxy=proxy)

    async def close(self, session: BrowserSession) -> None:
        await session.close()
