"""
Snapshot data models for the bond tracker application.

Field aliases are the persisted document's key names, which the
presentation layer depends on.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    model_validator,
)

from ..scanner.models import ISIN_PATTERN, InstrumentKind


def format_yield(value: Decimal) -> str:
    """Render a yield as a decimal string with exactly 2 fraction digits."""
    return f"{value:.2f}"


class BondQuote(BaseModel):
    """Model representing one priced instrument."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    isin: Annotated[str, Field(pattern=ISIN_PATTERN, description="ISIN code")]
    description: Annotated[str, Field(description="Published instrument name")]
    kind: Annotated[InstrumentKind, Field(alias="type", description="BTP or BOT")]
    price: Annotated[float, Field(gt=0, description="Price per 100 nominal")]
    coupon_rate: Annotated[
        float | None, Field(alias="coupon", description="Coupon rate (BTP only)")
    ] = None
    maturity_date: Annotated[date, Field(alias="expiry", description="Maturity date")]
    gross_yield: Annotated[
        Decimal, Field(alias="grossYield", description="Annualized gross yield, %")
    ]
    net_yield: Annotated[
        Decimal | None,
        Field(alias="netYield", description="Published net yield, % (BOT only)"),
    ] = None

    @model_validator(mode="after")
    def check_family_fields(self) -> Self:
        """Coupon belongs to BTPs only, published net yield to BOTs only."""
        match self.kind:
            case InstrumentKind.COUPON_BOND if self.coupon_rate is None:
                raise ValueError("A BTP quote requires a coupon rate")
            case InstrumentKind.DISCOUNT_BILL if self.coupon_rate is not None:
                raise ValueError("A BOT quote has no coupon rate")
            case InstrumentKind.DISCOUNT_BILL if self.net_yield is None:
                raise ValueError("A BOT quote requires a net yield")
        return self

    @field_serializer("gross_yield")
    def serialize_gross_yield(self, value: Decimal) -> str:
        return format_yield(value)

    @field_serializer("net_yield")
    def serialize_net_yield(self, value: Decimal | None) -> str | None:
        return None if value is None else format_yield(value)


class SnapshotSummary(BaseModel):
    """Summary statistics derived from the snapshot's quotes."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total_coupon_bonds: Annotated[int, Field(ge=0, alias="totalBTPs")]
    total_discount_bills: Annotated[int, Field(ge=0, alias="totalBOTs")]
    average_gross_yield: Annotated[Decimal, Field(alias="avgYield")]

    @field_serializer("average_gross_yield")
    def serialize_average(self, value: Decimal) -> str:
        return format_yield(value)


class Snapshot(BaseModel):
    """Model representing one persisted pipeline run."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    generated_at: Annotated[
        datetime, Field(alias="lastUpdate", description="Pipeline completion time")
    ]
    coupon_bonds: Annotated[list[BondQuote], Field(alias="btps")]
    discount_bills: Annotated[list[BondQuote], Field(alias="bots")]
    summary: SnapshotSummary

    @model_validator(mode="after")
    def check_summary_counts(self) -> Self:
        """Summary totals must describe the lists they summarize."""
        if self.summary.total_coupon_bonds != len(self.coupon_bonds):
            raise ValueError("totalBTPs does not match the number of BTP quotes")
        if self.summary.total_discount_bills != len(self.discount_bills):
            raise ValueError("totalBOTs does not match the number of BOT quotes")
        return self

    @field_serializer("generated_at")
    def serialize_generated_at(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()

    def to_document(self) -> dict[str, Any]:
        """Return the persisted JSON document as a dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        """Return the persisted JSON document as text."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    def content(self) -> dict[str, Any]:
        """Return the document without the run timestamp."""
        document = self.to_document()
        del document["lastUpdate"]
        return document
