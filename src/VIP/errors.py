"""
Exceptions raised by the VIP Reformas scraper.

Anything else that escapes a scraping operation (Playwright errors, a
crashed browser) is unclassified and reported with its own message.
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for classified scraper failures."""


class ClientInputError(ScraperError):
    """A required request field is missing. Raised before any browser starts."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"{field_name} es requerido")


class AuthenticationError(ScraperError):
    """Login was submitted but the professional zone was never reached."""

    def __init__(self, message: str = "Login fallido", url: str = ""):
        self.url = url
        super().__init__(message)


class NavigationTimeout(ScraperError):
    """A page did not settle before its navigation timeout."""

    def __init__(self, url: str, timeout_ms: Optional[int] = None):
        self.url = url
        self.timeout_ms = timeout_ms
        limit = f"{timeout_ms} ms" if timeout_ms is not None else "por defecto"
        super().__init__(f"Timeout de navegación ({limit}) cargando {url}")
