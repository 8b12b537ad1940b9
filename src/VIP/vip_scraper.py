"""
VIP Reformas Professional Zone Scraper

Logs into https://www.vipreformas.es/ with a professional account and reads
work (lead) data from it using Playwright.

Architecture:
1. Launch one Chromium per request (no pooling, nothing shared)
2. Log in and confirm the professional zone was reached
3. Navigate to the work detail page or the received-works listing
4. Hand the rendered HTML to the parser
5. Close the browser on every exit path

Can be used from the HTTP API or from the command line.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from playwright.async_api import (
    Browser,
    Error as PWError,
    Page,
    Playwright,
    TimeoutError as PWTimeout,
    async_playwright,
)

from src.VIP.config import (
    AUTHENTICATED_ZONE_MARKER,
    EMAIL_INPUT,
    PASSWORD_INPUT,
    READY_POLICY,
    SEARCH_BUTTON,
    SEARCH_INPUT,
    SUBMIT_BUTTON,
    USER_AGENT,
    VIEWPORT,
    Settings,
)
from src.VIP.errors import AuthenticationError, ClientInputError, NavigationTimeout
from src.VIP.models import Credentials, PriceSummary, WorkRecord
from src.VIP.parser import page_exists, parse_html, parse_price_summary, parse_work_record

logger = logging.getLogger(__name__)

# Flags the listing before the filter runs; cleared by the first DOM mutation.
# A full page load drops the flag entirely, which also counts as settled.
WATCH_LISTING_SCRIPT = """
() => {
    window.__vipListingSettled = false;
    const observer = new MutationObserver(() => {
        window.__vipListingSettled = true;
        observer.disconnect();
    });
    observer.observe(document.body, { childList: true, subtree: true });
}
"""
LISTING_SETTLED_PREDICATE = "() => window.__vipListingSettled !== false"

# Inputs filled from script keep their value only as a DOM property, which
# page.content() does not serialize. Mirror non-empty properties into the
# attribute so the parser sees them.
SYNC_INPUT_VALUES_SCRIPT = """
() => {
    document.querySelectorAll('input, textarea').forEach((input) => {
        if (input.value) {
            input.setAttribute('value', input.value);
        }
    });
}
"""


# ============================================================================
# BROWSER SESSION
# ============================================================================

@dataclass
class BrowserSession:
    """One Chromium process and the page used for a single request."""
    page: Page
    browser: Browser
    playwright: Optional[Playwright] = None

    async def close(self) -> None:
        try:
            await self.browser.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()


Launcher = Callable[[Settings], Awaitable[BrowserSession]]


async def launch_chromium(settings: Settings) -> BrowserSession:
    """
    Start Playwright and a headless Chromium with a desktop viewport.

    Returns:
        BrowserSession owning the browser; the caller must close it
    """
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(
            headless=settings.headless,
            args=list(settings.browser_args),
        )
        context = await browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
        page = await context.new_page()
    except Exception:
        await playwright.stop()
        raise

    return BrowserSession(page=page, browser=browser, playwright=playwright)


# ============================================================================
# NAVIGATION
# ============================================================================

async def goto(page: Page, url: str, timeout: Optional[int] = None) -> Page:
    """
    Navigate and wait until network activity settles.

    Args:
        page: Playwright page object
        url: Target URL
        timeout: Milliseconds; None uses Playwright's default

    Raises:
        NavigationTimeout: If the page does not settle in time
    """
    try:
        await page.goto(url, wait_until=READY_POLICY, timeout=timeout)
    except PWTimeout as exc:
        logger.warning(f"Navigation timed out: {url}")
        raise NavigationTimeout(url, timeout) from exc
    return page


async def login(
    page: Page,
    credentials: Credentials,
    login_url: str,
    timeout: Optional[int] = None,
) -> Page:
    """
    Log into the professional zone.

    Success is judged only by the URL reached after submitting the form.
    The session stays open; closing it is the caller's job.

    Raises:
        NavigationTimeout: If the login page itself does not load
        AuthenticationError: If the professional zone is not reached
    """
    logger.info("📝 Logging in...")
    await goto(page, login_url, timeout)

    await page.fill(EMAIL_INPUT, credentials.email)
    await page.fill(PASSWORD_INPUT, credentials.password)

    try:
        async with page.expect_navigation(wait_until=READY_POLICY, timeout=timeout):
            await page.click(SUBMIT_BUTTON)
    except PWTimeout as exc:
        raise AuthenticationError(
            "Login fallido: no hubo respuesta tras enviar el formulario", url=page.url
        ) from exc

    if AUTHENTICATED_ZONE_MARKER not in page.url:
        logger.warning(f"✗ Login rejected, landed on {page.url}")
        raise AuthenticationError(url=page.url)

    logger.info("✓ Logged in")
    return page


async def apply_listing_filter(page: Page, search_text: str, settle_timeout: int) -> None:
    """
    Type the search text into the listing filter and wait for the results.

    The listing gives no "results updated" signal, so the wait ends at the
    first DOM change (or page load) followed by network idle. If neither
    happens within settle_timeout the current listing is used as is.
    """
    logger.info(f"Filtering listing by '{search_text}'")
    await page.fill(SEARCH_INPUT, search_text)
    await page.evaluate(WATCH_LISTING_SCRIPT)
    await page.click(SEARCH_BUTTON)

    try:
        await page.wait_for_function(LISTING_SETTLED_PREDICATE, timeout=settle_timeout)
        await page.wait_for_load_state(READY_POLICY, timeout=settle_timeout)
    except PWError as exc:
        logger.warning(f"⚠️  Listing did not settle after filtering: {exc}")


def require_work_id(work_id: Union[str, int, None]) -> str:
    if work_id is None or str(work_id).strip() == "":
        raise ClientInputError("work_id")
    return str(work_id).strip()


# ============================================================================
# SCRAPER
# ============================================================================

class VipScraper:
    """Runs each portal operation inside its own authenticated browser session."""

    def __init__(self, settings: Settings, launcher: Optional[Launcher] = None):
        self.settings = settings
        self._launcher = launcher or launch_chromium
        self._semaphore = asyncio.Semaphore(settings.max_sessions) if settings.max_sessions > 0 else None

    @asynccontextmanager
    async def _slot(self) -> AsyncIterator[None]:
        if self._semaphore is None:
            yield
            return
        async with self._semaphore:
            yield

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserSession]:
        """Open a browser session and always close it afterwards."""
        missing = self.settings.missing()
        if missing:
            raise AuthenticationError(f"Credenciales no configuradas: {', '.join(missing)}")

        async with self._slot():
            browser_session = await self._launcher(self.settings)
            try:
                yield browser_session
            finally:
                # A failed close must not mask the error raised inside the session
                try:
                    await browser_session.close()
                    logger.info("Browser closed")
                except Exception as exc:
                    logger.warning(f"⚠️  Error closing browser: {exc}")

    async def _open_detail(self, browser_session: BrowserSession, work_id: str) -> str:
        page = browser_session.page
        await login(page, self.settings.credentials, self.settings.login_url, self.settings.nav_timeout)

        logger.info(f"🔎 Navigating to work_id: {work_id}")
        await goto(page, self.settings.detail_url(work_id), self.settings.nav_timeout)
        await page.evaluate(SYNC_INPUT_VALUES_SCRIPT)
        return await page.content()

    async def check_work(self, work_id: Union[str, int, None]) -> bool:
        """
        Check whether a work record exists.

        Raises:
            ClientInputError: If work_id is missing (no browser is started)
            AuthenticationError, NavigationTimeout: On login/navigation failure
        """
        work_id = require_work_id(work_id)
        logger.info(f"🔍 Checking work_id: {work_id}")

        async with self.session() as browser_session:
            html = await self._open_detail(browser_session, work_id)

        exists = page_exists(parse_html(html))
        logger.info(f"✓ Work {work_id}: {'EXISTS' if exists else 'DOES NOT EXIST'}")
        return exists

    async def get_work_data(self, work_id: Union[str, int, None]) -> WorkRecord:
        """
        Extract the contact fields and lead status of a work record.

        Fields that cannot be located come back empty.
        """
        work_id = require_work_id(work_id)
        logger.info(f"📊 Getting data for work_id: {work_id}")

        async with self.session() as browser_session:
            html = await self._open_detail(browser_session, work_id)

        logger.info("📋 Extracting fields...")
        record = parse_work_record(parse_html(html), work_id)
        logger.info(f"✓ Data extracted for work {work_id} (status: {record.lead_status.value})")
        return record

    async def search_works(self, search_text: Optional[str] = None) -> PriceSummary:
        """
        Summarize contact prices on the received-works listing.

        Args:
            search_text: Optional free-text filter applied before reading prices
        """
        async with self.session() as browser_session:
            page = browser_session.page
            await login(page, self.settings.credentials, self.settings.login_url)
            await goto(page, self.settings.listing_url)

            if search_text:
                await apply_listing_filter(page, search_text, self.settings.filter_settle_timeout)

            html = await page.content()

        summary = parse_price_summary(parse_html(html))
        logger.info(
            f"✓ Found {summary.total_trabajos} prices "
            f"(first: {summary.primer_precio}, mean: {summary.promedio})"
        )
        return summary
