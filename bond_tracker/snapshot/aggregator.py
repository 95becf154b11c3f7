"""
Aggregation of per-family quotes into a snapshot.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

from .models import BondQuote, Snapshot, SnapshotSummary

ZERO_YIELD: Final[Decimal] = Decimal("0.00")


def average_gross_yield(quotes: Sequence[BondQuote]) -> Decimal:
    """Arithmetic mean of gross yields, 2 decimals; 0.00 when empty."""
    if not quotes:
        return ZERO_YIELD
    total = sum((quote.gross_yield for quote in quotes), start=Decimal(0))
    return (total / len(quotes)).quantize(ZERO_YIELD, rounding=ROUND_HALF_UP)


def build_snapshot(
    coupon_bonds: Sequence[BondQuote],
    discount_bills: Sequence[BondQuote],
    generated_at: datetime,
) -> Snapshot:
    """
    Assemble a snapshot, keeping each family in scan order.

    Args:
        coupon_bonds: BTP quotes
        discount_bills: BOT quotes
        generated_at: Pipeline completion time

    Returns:
        Snapshot: New snapshot with a freshly computed summary
    """
    return Snapshot(
        generated_at=generated_at,
        coupon_bonds=list(coupon_bonds),
        discount_bills=list(discount_bills),
        summary=SnapshotSummary(
            total_coupon_bonds=len(coupon_bonds),
            total_discount_bills=len(discount_bills),
            average_gross_yield=average_gross_yield(
                [*coupon_bonds, *discount_bills]
            ),
        ),
    )
