"""
Data models for VIP Reformas work records and listing prices.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credentials:
    """Portal login. The password never appears in repr or logs."""
    email: str
    password: str = field(repr=False)


class LeadStatus(str, Enum):
    PENDIENTE = "pendiente"
    COMPLETADO = "completado"


@dataclass
class WorkRecord:
    """Fields scraped from a work detail page."""

    # Identifiers
    work_id: str
    title_work_id: str = ""  # ID read from the page heading

    # Contact fields
    nombre: str = ""
    telefono: str = ""
    email: str = ""
    fecha_reserva: str = ""

    # Derived
    lead_status: LeadStatus = LeadStatus.PENDIENTE
    scraped_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """
        Convert the record to a dictionary suitable for JSON serialization.

        Returns:
            Dictionary representation of the work record
        """
        data = {}

        for key, value in self.__dict__.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
            elif isinstance(value, LeadStatus):
                data[key] = value.value
            else:
                data[key] = value

        return data


# Reported when the listing has no prices
DEFAULT_PRICE = Decimal(9)


@dataclass
class PriceSummary:
    """Summary of the contact prices shown on the work listing."""
    precios: List[Decimal] = field(default_factory=list)
    primer_precio: Decimal = DEFAULT_PRICE
    promedio: Decimal = DEFAULT_PRICE
    total_trabajos: int = 0

    def to_dict(self) -> dict:
        return {
            "precios": list(self.precios),
            "primer_precio": self.primer_precio,
            "promedio": self.promedio,
            "total_trabajos": self.total_trabajos,
        }
