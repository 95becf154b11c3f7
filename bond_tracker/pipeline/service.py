"""
Scrape pipeline: fetch both listings, price the records, persist a snapshot.
"""

import asyncio
import logging
import sys
import warnings
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import ValidationError

from ..fetcher.service import HtmlFetcher
from ..scanner.families import LAYOUTS
from ..scanner.models import InstrumentKind
from ..scanner.record_scanner import RecordScanner
from ..shared.exceptions import (
    BondTrackerError,
    ExtractionEmptyResult,
    MalformedFieldError,
    RunTimeoutError,
)
from ..snapshot.aggregator import build_snapshot
from ..snapshot.models import BondQuote, Snapshot
from ..snapshot.writer import SnapshotWriter
from ..yields.calculator import price_record
from .settings import PipelineSettings, pipeline_settings

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class SnapshotPipeline:
    """One scrape run over both instrument families."""

    def __init__(
        self,
        fetcher: HtmlFetcher | None = None,
        writer: SnapshotWriter | None = None,
        settings: PipelineSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the pipeline."""
        self.fetcher = fetcher or HtmlFetcher()
        self.writer = writer or SnapshotWriter()
        self.settings = settings or pipeline_settings
        self.clock = clock

    def source_url(self, kind: InstrumentKind) -> str:
        match kind:
            case InstrumentKind.COUPON_BOND:
                return self.settings.coupon_bond_url
            case InstrumentKind.DISCOUNT_BILL:
                return self.settings.discount_bill_url

    async def run(self) -> Snapshot:
        """
        Run the pipeline and persist the resulting snapshot.

        Nothing is written unless both families were fetched.

        Returns:
            Snapshot: The snapshot that was persisted

        Raises:
            NetworkError: If a fetch fails or the run exceeds its budget
            SnapshotWriteError: If the snapshot cannot be written
        """
        snapshot = await self.collect()
        previous = await asyncio.to_thread(self._read_previous)
        await asyncio.to_thread(self.writer.write, snapshot)

        if previous is not None and previous.content() == snapshot.content():
            logger.info(
                f"Listings unchanged since {previous.generated_at.isoformat()}"
            )
        logger.info(
            f"Summary: {snapshot.summary.total_coupon_bonds} BTPs, "
            f"{snapshot.summary.total_discount_bills} BOTs, "
            f"avg yield {snapshot.summary.average_gross_yield}%"
        )
        return snapshot

    def _read_previous(self) -> Snapshot | None:
        """Load the snapshot about to be replaced; None if absent or unreadable."""
        try:
            return self.writer.read()
        except (OSError, ValidationError) as e:
            logger.warning(
                f"Previous snapshot at {self.writer.path} is unreadable, replacing it: {e}"
            )
            return None

    async def collect(self) -> Snapshot:
        """Fetch and price both families concurrently, without persisting."""
        fetch_time = self.clock()

        try:
            async with asyncio.timeout(self.settings.run_timeout):
                try:
                    async with asyncio.TaskGroup() as tg:
                        coupon_bonds = tg.create_task(
                            self._collect_family(InstrumentKind.COUPON_BOND, fetch_time)
                        )
                        discount_bills = tg.create_task(
                            self._collect_family(
                                InstrumentKind.DISCOUNT_BILL, fetch_time
                            )
                        )
                except ExceptionGroup as eg:
                    for exc in eg.exceptions:
                        logger.error(f"Pipeline error: {exc}")
                    first = next(
                        (e for e in eg.exceptions if isinstance(e, BondTrackerError)),
                        None,
                    )
                    if first is None:
                        raise
                    raise first from None
        except TimeoutError as e:
            raise RunTimeoutError(self.settings.run_timeout) from e

        return build_snapshot(
            coupon_bonds.result(), discount_bills.result(), self.clock()
        )

    async def _collect_family(
        self, kind: InstrumentKind, fetch_time: datetime
    ) -> list[BondQuote]:
        """Fetch, scan and price one family's listing."""
        url = self.source_url(kind)
        logger.info(f"Fetching {kind} listing from {url}")
        html = await self.fetcher.fetch(url)

        quotes: list[BondQuote] = []
        for record in RecordScanner(LAYOUTS[kind]).scan(html):
            try:
                quotes.append(price_record(record, fetch_time))
            except (MalformedFieldError, ValidationError) as e:
                logger.warning(f"Dropping {kind} record {record.isin}: {e}")

        if not quotes:
            warnings.warn(ExtractionEmptyResult(str(kind), url), stacklevel=1)
        else:
            logger.info(f"Found {len(quotes)} {kind}s")
        return quotes


async def main() -> None:
    """Main entry point for a single scrape run."""
    pipeline = SnapshotPipeline()
    await pipeline.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except BondTrackerError as e:
        logger.error(f"Scrape failed: {e}")
        sys.exit(1)
