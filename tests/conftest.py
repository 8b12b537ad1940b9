from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PWTimeout

# Ensure repo root is importable for src.VIP
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.VIP.config import EMAIL_INPUT, PASSWORD_INPUT, Settings  # noqa: E402
from src.VIP.models import Credentials  # noqa: E402
from src.VIP.vip_scraper import SYNC_INPUT_VALUES_SCRIPT  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PORTAL = "https://portal.test"
LOGIN_URL = f"{PORTAL}/registro-profesionales"
ZONE_URL = f"{PORTAL}/zona-profesionales/"
LISTING_URL = f"{PORTAL}/trabajos-recibidos/"
VALID_EMAIL = "pro@example.com"
VALID_PASSWORD = "s3cret"


def detail_url(work_id: str) -> str:
    return f"{PORTAL}/detalle-trabajo/{work_id}"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakePage:
    """In-memory stand-in for a Playwright page: URL -> HTML, plus a login form."""

    def __init__(self, pages: dict[str, str] | None = None):
        self.pages = dict(pages or {})
        self.url = "about:blank"
        self.visited: list[tuple[str, str | None, int | None]] = []
        self.filled: dict[str, str] = {}
        self.clicks: list[str] = []
        self.evaluated: list[str] = []
        self.waits: list[tuple[str, int | None]] = []
        self.timeout_urls: set[str] = set()
        self.login_hangs = False
        # selector -> value set from script; only visible after the sync script
        self.live_values: dict[str, str] = {}

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append((url, wait_until, timeout))
        if url in self.timeout_urls:
            raise PWTimeout(f"Timeout {timeout}ms exceeded.")
        self.url = url

    async def fill(self, selector, value):
        self.filled[selector] = value

    async def click(self, selector):
        self.clicks.append(selector)

    @asynccontextmanager
    async def expect_navigation(self, wait_until=None, timeout=None):
        yield
        if self.login_hangs:
            raise PWTimeout(f"Timeout {timeout}ms exceeded.")
        credentials = (self.filled.get(EMAIL_INPUT), self.filled.get(PASSWORD_INPUT))
        if credentials == (VALID_EMAIL, VALID_PASSWORD):
            self.url = ZONE_URL
        else:
            self.url = f"{LOGIN_URL}?error=1"

    async def content(self):
        return self.pages.get(self.url, "<html><body></body></html>")

    async def evaluate(self, script):
        self.evaluated.append(script)
        if script == SYNC_INPUT_VALUES_SCRIPT and self.url in self.pages:
            soup = BeautifulSoup(self.pages[self.url], "html.parser")
            for selector, value in self.live_values.items():
                for element in soup.select(selector):
                    element["value"] = value
            self.pages[self.url] = str(soup)

    async def wait_for_function(self, predicate, timeout=None):
        self.waits.append(("function", timeout))

    async def wait_for_load_state(self, state=None, timeout=None):
        self.waits.append((state, timeout))


class FakeSession:
    def __init__(self, page: FakePage):
        self.page = page
        self.close_calls = 0

    async def close(self):
        self.close_calls += 1


class FakeLauncher:
    """Launcher that hands out FakeSessions and remembers them."""

    def __init__(self, page: FakePage):
        self.page = page
        self.sessions: list[FakeSession] = []

    async def __call__(self, settings):
        session = FakeSession(self.page)
        self.sessions.append(session)
        return session

    @property
    def close_calls(self) -> int:
        return sum(session.close_calls for session in self.sessions)


def make_settings(email: str = VALID_EMAIL, password: str = VALID_PASSWORD, **overrides) -> Settings:
    return Settings(
        credentials=Credentials(email=email, password=password),
        login_url=LOGIN_URL,
        detail_url_template=f"{PORTAL}/detalle-trabajo/{{work_id}}",
        listing_url=LISTING_URL,
        **overrides,
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage({
        detail_url("12345"): read_fixture("detail_12345.html"),
        detail_url("99999"): read_fixture("not_found_99999.html"),
        LISTING_URL: read_fixture("listing.html"),
    })


@pytest.fixture
def launcher(fake_page: FakePage) -> FakeLauncher:
    return FakeLauncher(fake_page)


@pytest.fixture
def detail_html() -> str:
    return read_fixture("detail_12345.html")


@pytest.fixture
def not_found_html() -> str:
    return read_fixture("not_found_99999.html")


@pytest.fixture
def listing_html() -> str:
    return read_fixture("listing.html")
