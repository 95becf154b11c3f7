"""
Data models for the record scanner.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Annotated, Any, Final

from pydantic import BaseModel, ConfigDict, Field

ISIN_PATTERN: Final[str] = r"^IT\d{10}$"

_ISIN_RE: Final[re.Pattern[str]] = re.compile(ISIN_PATTERN)


def is_valid_isin(value: str) -> bool:
    """Return True if ``value`` is exactly ``IT`` followed by 10 digits."""
    return _ISIN_RE.fullmatch(value) is not None


class InstrumentKind(StrEnum):
    """Instrument family, valued with the published type code."""

    COUPON_BOND = "BTP"
    DISCOUNT_BILL = "BOT"


class ScanField(StrEnum):
    """Fields recovered by the scanner."""

    IDENTIFIER = "isin"
    DESCRIPTION = "description"
    PRICE = "price"
    COUPON_RATE = "coupon_rate"
    MATURITY_DATE = "maturity_date"
    NET_YIELD = "net_yield"


@dataclass(frozen=True)
class FieldRecognizer:
    """Marker-based recognizer for one field.

    ``pattern`` must define one capturing group holding the raw value.
    ``anchor``, when set, must also appear on the same line.
    ``convert`` turns the raw text into a typed value and raises
    ``MalformedFieldError`` when it cannot.
    """

    field: ScanField
    pattern: re.Pattern[str]
    convert: Callable[[str], Any]
    anchor: str | None = None
    optional: bool = False
    default: Any = None

    def match(self, line: str) -> str | None:
        """Return the raw captured value if this recognizer accepts ``line``."""
        if self.anchor is not None and self.anchor not in line:
            return None
        if found := self.pattern.search(line):
            return found.group(1).strip()
        return None


@dataclass(frozen=True)
class FamilyLayout:
    """Ordered field transitions for one instrument family.

    The first recognizer is always the identifier: a match on it starts
    a new record.
    """

    kind: InstrumentKind
    fields: tuple[FieldRecognizer, ...]

    def __post_init__(self) -> None:
        if not self.fields or self.fields[0].field is not ScanField.IDENTIFIER:
            raise ValueError("A family layout must start with the identifier field")

    @property
    def identifier(self) -> FieldRecognizer:
        return self.fields[0]


class ScannedRecord(BaseModel):
    """Raw field tuple recovered from one listing row."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        frozen=True,
    )

    kind: Annotated[InstrumentKind, Field(description="Instrument family")]
    isin: Annotated[str, Field(pattern=ISIN_PATTERN, description="ISIN code")]
    description: Annotated[str, Field(min_length=1, description="Published name")]
    price: Annotated[float, Field(description="Quoted price per 100 nominal")]
    maturity_date: Annotated[date, Field(description="Maturity date")]
    coupon_rate: Annotated[
        float | None, Field(description="Coupon rate (BTP only)")
    ] = None
    net_yield: Annotated[
        float | None, Field(description="Published net yield (BOT only)")
    ] = None
