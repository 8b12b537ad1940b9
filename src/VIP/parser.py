"""
Parser for VIP Reformas professional zone pages

Extracts structured data from the HTML of work detail and listing pages.
The portal's markup changes without notice, so every field is read through
an ordered list of fallback selectors and a missing element degrades to an
empty value instead of raising.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup

from .models import LeadStatus, PriceSummary, WorkRecord

logger = logging.getLogger(__name__)

TEXT = "text"  # Read the element's text content instead of an attribute


@dataclass(frozen=True)
class FieldStrategy:
    """One way of locating a field: a CSS selector and what to read from it."""
    selector: str
    attribute: str = "value"

    def resolve(self, soup: BeautifulSoup) -> Optional[str]:
        element = soup.select_one(self.selector)
        if element is None:
            return None
        if self.attribute == TEXT:
            return clean_text(element.get_text())
        value = element.get(self.attribute)
        if isinstance(value, list):
            # class-like attributes come back as lists
            value = " ".join(value)
        return clean_text(value)


# Ordered strategies for a single field; earlier entries are more authoritative
FieldSpec = Sequence[FieldStrategy]

NOMBRE = (
    FieldStrategy("input.tituloObra[value]", "value"),
    FieldStrategy(".readonly.small.tituloObra", TEXT),
)
TELEFONO = (
    FieldStrategy('.grupoCampo:has(label[for="tel1"]) input', "value"),
    FieldStrategy("a.lab-field input", "value"),
)
EMAIL = (
    FieldStrategy(".zonaDerecha .grupoCampo:nth-child(3) input", "value"),
)
FECHA_RESERVA = (
    FieldStrategy('.grupoCampo:has(label[for="fReserva"]) input', "value"),
)

# Existence heuristics
ERROR_SELECTOR = '.error, .not-found, [class*="error"]'
NOT_FOUND_PHRASES = ("página no existe", "no encontrado")

# Heading carrying the work ID, e.g. "DETALLE DEL TRABAJO con ID 12345"
TITLE_MARKER = "DETALLE DEL TRABAJO con ID"
TITLE_ID_PATTERN = re.compile(r"ID\s+(\d+)")

# Lead status
STATUS_SELECTOR = '[class*="estado"], [class*="status"], .precioObra'
CLOSED_KEYWORDS = ("cerrada", "completado")

# Listing prices
PRICE_ROW_SELECTOR = ".fecha-tabl.v-desktop"
PRICE_MARKER = "Precio de Contacto:"
PRICE_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)\s*€?")


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace; None becomes an empty string."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def extract_value(soup: BeautifulSoup, spec: FieldSpec) -> str:
    """
    Return the first non-empty value produced by the strategies in order.

    Args:
        soup: Parsed page
        spec: Ordered strategies for one field

    Returns:
        The value, or an empty string when no strategy matches
    """
    for strategy in spec:
        value = strategy.resolve(soup)
        if value:
            return value
    return ""


def page_exists(soup: BeautifulSoup) -> bool:
    """
    Decide whether a detail page shows a real work record.

    The portal gives no explicit signal, so a page counts as missing when it
    has an error-like element or mentions a not-found phrase anywhere.
    """
    if soup.select_one(ERROR_SELECTOR) is not None:
        return False

    page_text = soup.get_text(" ")
    return not any(phrase in page_text for phrase in NOT_FOUND_PHRASES)


def extract_title_work_id(soup: BeautifulSoup) -> str:
    """Read the numeric work ID from the detail heading, if present."""
    for span in soup.find_all("span"):
        text = span.get_text()
        if TITLE_MARKER in text:
            match = TITLE_ID_PATTERN.search(text)
            return match.group(1) if match else ""
    return ""


def classify_lead_status(soup: BeautifulSoup) -> LeadStatus:
    """A lead is completed as soon as any status-like element says so."""
    for element in soup.select(STATUS_SELECTOR):
        text = element.get_text().lower()
        if any(keyword in text for keyword in CLOSED_KEYWORDS):
            return LeadStatus.COMPLETADO
    return LeadStatus.PENDIENTE


def parse_work_record(soup: BeautifulSoup, work_id: str) -> WorkRecord:
    """
    Parse a work detail page.

    Args:
        soup: Parsed detail page
        work_id: ID the caller asked for; it is the ID reported in the record

    Returns:
        WorkRecord with every field found (missing ones left empty)
    """
    title_work_id = extract_title_work_id(soup)
    if title_work_id and title_work_id != str(work_id):
        logger.warning(
            f"⚠️  Work ID mismatch: requested {work_id}, page heading shows {title_work_id}"
        )

    return WorkRecord(
        work_id=str(work_id),
        title_work_id=title_work_id,
        nombre=extract_value(soup, NOMBRE),
        telefono=extract_value(soup, TELEFONO),
        email=extract_value(soup, EMAIL),
        fecha_reserva=extract_value(soup, FECHA_RESERVA),
        lead_status=classify_lead_status(soup),
    )


def parse_price(text: str) -> Optional[Decimal]:
    """
    Parse a contact price such as "200,50 €" or "150€".

    Only the text after the "Precio de Contacto:" marker is considered,
    so dates sharing the same cell are not mistaken for prices.

    Returns:
        The price, or None if the text holds no price
    """
    if PRICE_MARKER in text:
        text = text.split(PRICE_MARKER, 1)[1]

    match = PRICE_PATTERN.search(text)
    if not match:
        return None
    return Decimal(match.group(1).replace(",", "."))


def parse_prices(soup: BeautifulSoup) -> List[Decimal]:
    """Collect contact prices from the listing rows in document order."""
    prices = []

    for element in soup.select(PRICE_ROW_SELECTOR):
        text = element.get_text(" ")
        if PRICE_MARKER not in text:
            continue

        price = parse_price(text)
        if price is None:
            logger.debug(f"No price found in row: '{clean_text(text)}'")
            continue
        prices.append(price)

    return prices


def summarize_prices(prices: List[Decimal]) -> PriceSummary:
    """Compute first price, rounded mean and count."""
    if not prices:
        return PriceSummary()

    mean = sum(prices, Decimal(0)) / len(prices)
    return PriceSummary(
        precios=list(prices),
        primer_precio=prices[0],
        promedio=mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        total_trabajos=len(prices),
    )


def parse_price_summary(soup: BeautifulSoup) -> PriceSummary:
    return summarize_prices(parse_prices(soup))


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")
