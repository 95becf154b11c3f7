"""
Field layouts for the two listing pages.

Each layout is the ordered list of fields one listing row publishes, with
the recognizer for each. Everything tied to upstream markup lives here.
"""

import math
import re
from datetime import date
from typing import Final

from ..shared.exceptions import MalformedFieldError
from .models import FamilyLayout, FieldRecognizer, InstrumentKind, ScanField

COUPON_BOND_ANCHOR: Final[str] = "/borsa/obbligazioni/mot/btp/"


def parse_decimal(field: ScanField):
    """Build a converter from decimal text to a finite float."""

    def convert(raw: str) -> float:
        try:
            value = float(raw)
        except ValueError as e:
            raise MalformedFieldError(field, raw, "not a decimal number") from e
        if not math.isfinite(value):
            raise MalformedFieldError(field, raw, "not a finite number")
        return value

    return convert


def parse_price(raw: str) -> float:
    """Convert a quoted price, which must be positive."""
    value = parse_decimal(ScanField.PRICE)(raw)
    if value <= 0:
        raise MalformedFieldError(ScanField.PRICE, raw, "price must be positive")
    return value


def parse_maturity(raw: str) -> date:
    """Convert ``YYYY-MM-DD`` or ``YYYY/MM/DD`` text to a date."""
    try:
        return date.fromisoformat(raw.replace("/", "-"))
    except ValueError as e:
        raise MalformedFieldError(ScanField.MATURITY_DATE, raw, str(e)) from e


def parse_text(field: ScanField):
    """Build a converter for free-text labels."""

    def convert(raw: str) -> str:
        if not (value := " ".join(raw.split())):
            raise MalformedFieldError(field, raw, "empty text")
        return value

    return convert


def _identity(raw: str) -> str:
    return raw


COUPON_BOND_LAYOUT: Final[FamilyLayout] = FamilyLayout(
    kind=InstrumentKind.COUPON_BOND,
    fields=(
        FieldRecognizer(
            field=ScanField.IDENTIFIER,
            pattern=re.compile(r">(IT\d{10})<"),
            convert=_identity,
            anchor=COUPON_BOND_ANCHOR,
        ),
        FieldRecognizer(
            field=ScanField.DESCRIPTION,
            pattern=re.compile(r">\s*(Btp[^<]+)<", re.IGNORECASE),
            convert=parse_text(ScanField.DESCRIPTION),
        ),
        FieldRecognizer(
            field=ScanField.PRICE,
            pattern=re.compile(r">\s*(\d{2,3}\.\d{3})\s*<"),
            convert=parse_price,
        ),
        FieldRecognizer(
            field=ScanField.COUPON_RATE,
            pattern=re.compile(r">\s*(\d+(?:\.\d+)?)\s*<"),
            convert=parse_decimal(ScanField.COUPON_RATE),
            optional=True,
            default=0.0,
        ),
        FieldRecognizer(
            field=ScanField.MATURITY_DATE,
            pattern=re.compile(r">\s*(\d{4}/\d{2}/\d{2})\s*<"),
            convert=parse_maturity,
        ),
    ),
)


DISCOUNT_BILL_LAYOUT: Final[FamilyLayout] = FamilyLayout(
    kind=InstrumentKind.DISCOUNT_BILL,
    fields=(
        FieldRecognizer(
            field=ScanField.IDENTIFIER,
            pattern=re.compile(r">(IT\d{10})<"),
            convert=_identity,
        ),
        FieldRecognizer(
            field=ScanField.DESCRIPTION,
            pattern=re.compile(r">\s*(Bot Zc[^<]+)<", re.IGNORECASE),
            convert=parse_text(ScanField.DESCRIPTION),
        ),
        FieldRecognizer(
            field=ScanField.MATURITY_DATE,
            pattern=re.compile(r">\s*(\d{4}-\d{2}-\d{2})\s*<"),
            convert=parse_maturity,
        ),
        # The row carries a bare "months to maturity" cell before the price.
        FieldRecognizer(
            field=ScanField.PRICE,
            pattern=re.compile(r">\s*(\d{2,3}\.\d+)\s*<"),
            convert=parse_price,
        ),
        FieldRecognizer(
            field=ScanField.NET_YIELD,
            pattern=re.compile(r">\s*(-?\d+(?:\.\d+)?)\s*%\s*<"),
            convert=parse_decimal(ScanField.NET_YIELD),
        ),
    ),
)


LAYOUTS: Final[dict[InstrumentKind, FamilyLayout]] = {
    InstrumentKind.COUPON_BOND: COUPON_BOND_LAYOUT,
    InstrumentKind.DISCOUNT_BILL: DISCOUNT_BILL_LAYOUT,
}
