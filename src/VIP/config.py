"""
Configuration for the VIP Reformas professional zone scraper
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from src.VIP.models import Credentials

# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs" / "VIP"
ENV_FILE = PROJECT_ROOT / ".env"

SERVICE_NAME = "VIP Reformas Scraper"

# Portal URLs
BASE_URL = "https://www.vipreformas.es"
LOGIN_URL = f"{BASE_URL}/registro-profesionales"
DETAIL_URL_TEMPLATE = f"{BASE_URL}/detalle-trabajo/{{work_id}}"
LISTING_URL = f"{BASE_URL}/trabajos-recibidos/"

# Substring present in the URL once logged in
AUTHENTICATED_ZONE_MARKER = "zona-profesionales"

# Login form
EMAIL_INPUT = "#proEmail"
PASSWORD_INPUT = "#proPasswd"
SUBMIT_BUTTON = 'button[type="submit"]'

# Listing filter
SEARCH_INPUT = "#texto_libre"
SEARCH_BUTTON = "a.button-link.dark-blue"

# Browser settings
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
VIEWPORT = {"width": 1920, "height": 1080}
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]
READY_POLICY = "networkidle"

# Timeouts (milliseconds)
NAV_TIMEOUT = 30000
FILTER_SETTLE_TIMEOUT = 3000

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Process configuration, built once at startup and never mutated."""
    credentials: Credentials
    login_url: str = LOGIN_URL
    detail_url_template: str = DETAIL_URL_TEMPLATE
    listing_url: str = LISTING_URL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    headless: bool = True
    nav_timeout: int = NAV_TIMEOUT
    filter_settle_timeout: int = FILTER_SETTLE_TIMEOUT
    max_sessions: int = 0
    browser_args: Tuple[str, ...] = tuple(BROWSER_ARGS)

    def detail_url(self, work_id: str) -> str:
        return self.detail_url_template.format(work_id=work_id)

    def missing(self) -> List[str]:
        """Names of required environment variables that are not set."""
        missing = []
        if not self.credentials.email:
            missing.append("VIP_EMAIL")
        if not self.credentials.password:
            missing.append("VIP_PASSWORD")
        return missing


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")


def load_settings(env_file: Optional[Path] = ENV_FILE) -> Settings:
    """
    Load settings from the environment.

    Values in the project .env file are loaded first but never override
    variables already present in the process environment.

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    if env_file is not None:
        load_dotenv(env_file)

    credentials = Credentials(
        email=os.getenv("VIP_EMAIL", "").strip(),
        password=os.getenv("VIP_PASSWORD", ""),
    )

    return Settings(
        credentials=credentials,
        login_url=os.getenv("VIP_LOGIN_URL") or LOGIN_URL,
        detail_url_template=os.getenv("VIP_DETAIL_URL_TEMPLATE") or DETAIL_URL_TEMPLATE,
        listing_url=os.getenv("VIP_LISTING_URL") or LISTING_URL,
        host=os.getenv("HOST") or DEFAULT_HOST,
        port=_int_env("PORT", DEFAULT_PORT),
        headless=os.getenv("VIP_HEADLESS", "true").strip().lower() in _TRUTHY,
        nav_timeout=_int_env("VIP_NAV_TIMEOUT_MS", NAV_TIMEOUT),
        filter_settle_timeout=_int_env("VIP_FILTER_SETTLE_MS", FILTER_SETTLE_TIMEOUT),
        max_sessions=_int_env("VIP_MAX_SESSIONS", 0),
    )
