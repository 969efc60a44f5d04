"""
Fetch layer for the lunch menu scraper.
Drives a Playwright browser until the client-side rendered menu is complete and snapshots it.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Protocol, TypeVar
from playwright.async_api import async_playwright, Browser, BrowserContext, ElementHandle, Page

from .config import ScraperConfig
from .parse import RestaurantPage, parse_restaurant_page

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCROLL_INTO_VIEW = "element => element.scrollIntoView({block: 'center'})"


class FetchError(Exception):
    """Custom exception for fetch errors"""
    pass


class WaitTimeoutError(FetchError):
    """Raised when a waited-for condition is not met in time"""
    pass


async def wait_for(
    condition: Callable[[], Awaitable[T]],
    timeout: float,
    poll_interval: float = 0.25,
    description: str = "condition"
) -> T:
    """
    Poll condition until it returns a truthy value

    Args:
        condition: Async callable checked on every poll
        timeout: Seconds to keep polling
        poll_interval: Seconds between polls

    Returns:
        The first truthy value returned by condition

    Raises:
        WaitTimeoutError: condition stayed falsy for timeout seconds
    """
    deadline = time.monotonic() + timeout
    while True:
        result = await condition()
        if result:
            return result
        if time.monotonic() >= deadline:
            raise WaitTimeoutError(f"Timed out after {timeout}s waiting for {description}")
        await asyncio.sleep(poll_interval)


class BrowserSession(Protocol):
    """What the scraper needs from a browser; elements behave like Playwright's ElementHandle"""

    @property
    def current_url(self) -> str: ...

    async def navigate(self, url: str) -> None: ...

    async def find_all(self, selector: str) -> List[Any]: ...

    async def wait_for(self, condition: Callable[[], Awaitable[T]], timeout: float, description: str = "condition") -> T: ...

    async def run_script(self, script: str, arg: Any = None) -> Any: ...

    async def snapshot(self) -> str: ...


class PlaywrightSession:
    """Single Playwright page reused for every restaurant of a run"""

    def __init__(self, config: ScraperConfig):
        self.config = config
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self):
        """Async context manager entry"""
        self.playwright = await async_playwright().start()
        try:
            browser_launcher = getattr(self.playwright, self.config.browser_type)
            self.browser = await browser_launcher.launch(
                headless=self.config.headless,
                slow_mo=self.config.slow_mo,
                args=self.config.browser_args
            )
            self.context = await self.browser.new_context(
                viewport={
                    'width': self.config.viewport_width,
                    'height': self.config.viewport_height
                }
            )
            self.page = await self.context.new_page()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()

    async def close(self):
        """Release the context, browser and Playwright even if one of them fails to close"""
        context, browser, playwright = self.context, self.browser, self.playwright
        self.page = self.context = self.browser = self.playwright = None
        try:
            if context:
                await context.close()
        finally:
            try:
                if browser:
                    await browser.close()
            finally:
                if playwright:
                    await playwright.stop()

    def _require_page(self) -> Page:
        if not self.page:
            raise FetchError("Browser not initialized. Use async context manager.")
        return self.page

    @property
    def current_url(self) -> str:
        return self.page.url if self.page else ""

    async def navigate(self, url: str) -> None:
        await self._require_page().goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.config.request_timeout * 1000
        )

    async def find_all(self, selector: str) -> List[ElementHandle]:
        return await self._require_page().query_selector_all(selector)

    async def wait_for(self, condition, timeout: float, description: str = "condition"):
        return await wait_for(condition, timeout, self.config.poll_interval, description)

    async def run_script(self, script: str, arg: Any = None) -> Any:
        return await self._require_page().evaluate(script, arg)

    async def snapshot(self) -> str:
        return await self._require_page().content()


async def is_clickable(element) -> bool:
    return await element.is_visible() and await element.is_enabled()


async def first_clickable(session: BrowserSession, selector: str):
    for element in await session.find_all(selector):
        if await is_clickable(element):
            return element
    return None


async def prime_session(session: BrowserSession, config: ScraperConfig, logger: logging.Logger = logger) -> bool:
    """
    Open the site once and decline the cookie banner so it can't cover the menus

    Returns:
        True if a banner was dismissed
    """
    await session.navigate(config.site_root)
    selector = config.selector("cookie_decline")

    try:
        decline = await session.wait_for(
            lambda: first_clickable(session, selector),
            config.banner_timeout,
            "cookie banner"
        )
        await decline.click()

        async def banner_gone():
            return not await decline.is_visible()

        await session.wait_for(banner_gone, config.banner_timeout, "cookie banner to close")
    except WaitTimeoutError:
        logger.debug("No cookie banner to dismiss")
        return False

    logger.info("Cookie banner dismissed")
    return True


class AccordionState(str, Enum):
    COLLAPSED = "collapsed"
    EXPANDING = "expanding"
    EXPANDED = "expanded"
    STUCK = "stuck"


class AccordionExpander:
    """Expands accordion panels, retrying a click whose expansion never shows up"""

    def __init__(self, session: BrowserSession, config: ScraperConfig, logger: logging.Logger = logger):
        self.session = session
        self.config = config
        self.logger = logger

    async def _state(self, accordion) -> AccordionState:
        # Anything but an explicit "false" counts as open
        if await accordion.get_attribute("aria-expanded") == "false":
            return AccordionState.COLLAPSED
        return AccordionState.EXPANDED

    async def expand(self, accordion) -> AccordionState:
        # Scrolling triggers the lazy rendering of the panel
        await self.session.run_script(SCROLL_INTO_VIEW, accordion)

        async def clickable():
            return await is_clickable(accordion)

        try:
            await self.session.wait_for(clickable, self.config.accordion_timeout, "accordion to be clickable")
        except WaitTimeoutError as e:
            self.logger.warning(f"Accordion not clickable on {self.session.current_url}: {e}")
            return AccordionState.STUCK

        async def expanded():
            return await accordion.get_attribute("aria-expanded") == "true"

        state = await self._state(accordion)
        attempts = 0

        while state is AccordionState.COLLAPSED:
            if attempts >= self.config.accordion_click_attempts:
                state = AccordionState.STUCK
                break

            await accordion.click()
            attempts += 1
            state = AccordionState.EXPANDING

            try:
                await self.session.wait_for(expanded, self.config.accordion_timeout, "accordion to expand")
                state = AccordionState.EXPANDED
            except WaitTimeoutError:
                state = await self._state(accordion)

        if state is AccordionState.STUCK:
            self.logger.warning(
                f"Accordion did not expand after {attempts} clicks on {self.session.current_url}"
            )
        return state


class PageSynchronizer:
    """Brings a restaurant page to a fully rendered state and snapshots it"""

    def __init__(self, session: BrowserSession, config: ScraperConfig, logger: logging.Logger = logger):
        self.session = session
        self.config = config
        self.logger = logger
        self.expander = AccordionExpander(session, config, logger)

    async def _present(self, selector: str, timeout: float) -> List[Any]:
        async def found():
            return await self.session.find_all(selector)

        return await self.session.wait_for(found, timeout, f"{selector!r}")

    async def _meal_text_rendered(self) -> bool:
        for item in await self.session.find_all(self.config.selector("meal_item")):
            if (await item.inner_text()).strip():
                return True
        return False

    async def synchronize(self, url: str) -> Optional[str]:
        """
        Load a restaurant page and wait until its menus are rendered

        Returns:
            HTML snapshot of the rendered page, or None when the
            restaurant has no menu today
        """
        await self.session.navigate(url)

        try:
            await self._present(self.config.selector("menu_package"), self.config.menu_presence_timeout)
        except WaitTimeoutError:
            self.logger.debug(f"No menu today at {url}")
            return None

        try:
            accordions = await self._present(self.config.selector("accordion"), self.config.accordion_timeout)
        except WaitTimeoutError:
            self.logger.warning(f"No accordions found on {url}")
            accordions = []

        for accordion in accordions:
            await self.expander.expand(accordion)

        await self.session.wait_for(
            self._meal_text_rendered,
            self.config.render_timeout,
            "meal items to render"
        )

        return await self.session.snapshot() or None

    async def scrape(self, url: str) -> Optional[RestaurantPage]:
        """
        Snapshot a restaurant page and split it into the restaurant name and its days

        Returns:
            RestaurantPage, or None when there is no menu or no restaurant title
        """
        html = await self.synchronize(url)
        if html is None:
            return None

        page = parse_restaurant_page(html, self.config.selectors)
        if page is None:
            self.logger.warning(f"No restaurant title on {url}, skipping")
            return None

        self.logger.info(f"Found {len(page.days)} days for {page.name}")
        return page
