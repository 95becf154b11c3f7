"""
Yield derivation for scanned records.

All functions are pure: the same inputs always give the same quote.
"""

import math
from datetime import UTC, date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

from ..scanner.models import InstrumentKind, ScannedRecord, ScanField
from ..shared.exceptions import MalformedFieldError
from ..snapshot.models import BondQuote

PAR_VALUE: Final[float] = 100.0
DAYS_PER_YEAR: Final[int] = 365

# Floor on time to maturity. Near-maturity and already-matured bonds would
# otherwise divide the pull-to-par term by ~0 or by a negative span.
MIN_YEARS_TO_MATURITY: Final[float] = 0.1

# Withholding tax on Italian government securities.
WITHHOLDING_TAX_RATE: Final[float] = 0.125

YIELD_QUANTUM: Final[Decimal] = Decimal("0.01")


def round_yield(value: float) -> Decimal:
    """Round a yield to 2 decimals, half away from zero."""
    if not math.isfinite(value):
        raise MalformedFieldError("yield", value, "not a finite number")
    return Decimal(value).quantize(YIELD_QUANTUM, rounding=ROUND_HALF_UP)


def years_to_maturity(maturity_date: date, fetch_time: datetime) -> float:
    """Years from ``fetch_time`` to the start of ``maturity_date``, floored at 0.1.

    Naive ``fetch_time`` values are taken as UTC.
    """
    tz = fetch_time.tzinfo or UTC
    maturity = datetime.combine(maturity_date, time.min, tzinfo=tz)
    if fetch_time.tzinfo is None:
        fetch_time = fetch_time.replace(tzinfo=UTC)
    span = (maturity - fetch_time) / timedelta(days=DAYS_PER_YEAR)
    return max(MIN_YEARS_TO_MATURITY, span)


def coupon_bond_gross_yield(
    price: float, coupon_rate: float, maturity_date: date, fetch_time: datetime
) -> Decimal:
    """
    Simplified annualized gross yield of a coupon bond.

    ``((coupon + (100 - price) / years) / price) * 100``: the coupon plus the
    pull to par spread evenly over the remaining years, over the price paid.

    Raises:
        MalformedFieldError: If the price is not positive
    """
    if price <= 0:
        raise MalformedFieldError(ScanField.PRICE, price, "price must be positive")
    years = years_to_maturity(maturity_date, fetch_time)
    return round_yield((coupon_rate + (PAR_VALUE - price) / years) / price * 100)


def gross_from_net(net_yield: float) -> Decimal:
    """Convert a published net yield back to gross."""
    return round_yield(net_yield / (1 - WITHHOLDING_TAX_RATE))


def price_record(record: ScannedRecord, fetch_time: datetime) -> BondQuote:
    """
    Build the immutable quote for a scanned record.

    Args:
        record: Raw fields from the scanner
        fetch_time: When the page was fetched

    Returns:
        BondQuote: Quote with its derived yields

    Raises:
        MalformedFieldError: If the record cannot be priced
    """
    match record.kind:
        case InstrumentKind.COUPON_BOND:
            coupon_rate = record.coupon_rate or 0.0
            return BondQuote(
                isin=record.isin,
                description=record.description,
                kind=record.kind,
                price=record.price,
                coupon_rate=coupon_rate,
                maturity_date=record.maturity_date,
                gross_yield=coupon_bond_gross_yield(
                    record.price, coupon_rate, record.maturity_date, fetch_time
                ),
            )
        case InstrumentKind.DISCOUNT_BILL:
            if record.net_yield is None:
                raise MalformedFieldError(
                    ScanField.NET_YIELD, None, "missing published net yield"
                )
            return BondQuote(
                isin=record.isin,
                description=record.description,
                kind=record.kind,
                price=record.price,
                maturity_date=record.maturity_date,
                gross_yield=gross_from_net(record.net_yield),
                net_yield=round_yield(record.net_yield),
            )
