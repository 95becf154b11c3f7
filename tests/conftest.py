"""
Test configuration for the bond tracker tests.
"""

import asyncio
import socket
import sys
from collections import Counter
from collections.abc import AsyncGenerator
from contextlib import closing
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

# Add project root to path before importing our modules
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Import our modules after path setup
from bond_tracker.fetcher.settings import FetcherSettings  # noqa: E402
from bond_tracker.scanner.models import InstrumentKind  # noqa: E402
from bond_tracker.snapshot.models import BondQuote  # noqa: E402
from bond_tracker.snapshot.writer import SnapshotWriter  # noqa: E402

FETCH_TIME = datetime(2025, 1, 1, tzinfo=UTC)

COUPON_BOND_HTML = """<html>
<body>
<table class="m-table">
<tr><th>ISIN</th><th>Description</th><th>Last</th><th>Coupon</th><th>Maturity</th></tr>
<tr>
<td><a href="/borsa/obbligazioni/mot/btp/scheda/IT0005024234.html?lang=en">IT0005024234</a></td>
<td><span>Btp-1gn26 5%</span></td>
<td>100.000</td>
<td>5</td>
<td>2026/01/01</td>
</tr>
<tr>
<td><a href="/borsa/obbligazioni/mot/btp/scheda/IT0005383309.html?lang=en">IT0005383309</a></td>
<td><span>Btp-1ap30 2,5%</span></td>
<td>95.000</td>
<td>2.5</td>
<td>2030/01/01</td>
</tr>
</table>
</body>
</html>
"""

DISCOUNT_BILL_HTML = """<html>
<body>
<table>
<tr><th>ISIN</th><th>Titolo</th><th>Scadenza</th><th>Mesi</th><th>Prezzo</th><th>Rend. netto</th></tr>
<tr>
<td><a href="/bot/IT0005689887">IT0005689887</a></td>
<td>Bot Zc Jan26 A Eur</td>
<td>2026-01-14</td>
<td>12</td>
<td>98.067</td>
<td>1.75%</td>
</tr>
<tr>
<td><a href="/bot/IT0005684888">IT0005684888</a></td>
<td>Bot Zc Dec25 A Eur</td>
<td>2025-12-12</td>
<td>11</td>
<td>98.254</td>
<td>1.77%</td>
</tr>
</table>
</body>
</html>
"""

EMPTY_LISTING_HTML = "<html><body><p>Service temporarily unavailable</p></body></html>"

LATIN1_LISTING_HTML = (
    "<html><body><td>Btp Italia Sc\xe8lta 2%</td><td>100,50 \u20ac</td></body></html>"
)


def find_free_port() -> int:
    """Find a free port on localhost."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class Upstream:
    """In-process stand-in for the two listing sites."""

    def __init__(self, server: TestServer, hits: Counter) -> None:
        self.server = server
        self.hits = hits

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))


def create_upstream_app(hits: Counter) -> web.Application:
    """Build the aiohttp application serving fixture pages."""

    async def coupon_bonds(_: web.Request) -> web.Response:
        return web.Response(text=COUPON_BOND_HTML, content_type="text/html")

    async def discount_bills(_: web.Request) -> web.Response:
        return web.Response(text=DISCOUNT_BILL_HTML, content_type="text/html")

    async def empty_listing(_: web.Request) -> web.Response:
        return web.Response(text=EMPTY_LISTING_HTML, content_type="text/html")

    async def relative_redirect(_: web.Request) -> web.Response:
        raise web.HTTPFound("/btp")

    async def absolute_redirect(request: web.Request) -> web.Response:
        raise web.HTTPMovedPermanently(str(request.url.with_path("/bot")))

    async def redirect_chain(request: web.Request) -> web.Response:
        remaining = int(request.match_info["remaining"])
        if remaining == 0:
            return web.Response(text="end of chain")
        raise web.HTTPFound(f"/chain/{remaining - 1}")

    async def redirect_loop(_: web.Request) -> web.Response:
        hits["loop"] += 1
        raise web.HTTPFound("/loop")

    async def redirect_without_location(_: web.Request) -> web.Response:
        hits["no-location"] += 1
        return web.Response(status=302)

    async def missing(_: web.Request) -> web.Response:
        hits["missing"] += 1
        return web.Response(status=404, text="not here")

    async def flaky(_: web.Request) -> web.Response:
        hits["flaky"] += 1
        if hits["flaky"] == 1:
            return web.Response(status=503, text="try again")
        return web.Response(text="recovered")

    async def down(_: web.Request) -> web.Response:
        hits["down"] += 1
        return web.Response(status=503, text="down")

    async def latin1_listing(_: web.Request) -> web.Response:
        return web.Response(
            body=LATIN1_LISTING_HTML.encode("cp1252"), content_type="text/html"
        )

    async def unknown_charset(_: web.Request) -> web.Response:
        return web.Response(
            body=LATIN1_LISTING_HTML.encode("cp1252"),
            headers={"Content-Type": "text/html; charset=x-no-such-charset"},
        )

    async def slow(_: web.Request) -> web.Response:
        await asyncio.sleep(2)
        return web.Response(text=COUPON_BOND_HTML, content_type="text/html")

    app = web.Application()
    app.router.add_get("/btp", coupon_bonds)
    app.router.add_get("/bot", discount_bills)
    app.router.add_get("/empty", empty_listing)
    app.router.add_get("/redirect", relative_redirect)
    app.router.add_get("/redirect-absolute", absolute_redirect)
    app.router.add_get("/chain/{remaining}", redirect_chain)
    app.router.add_get("/loop", redirect_loop)
    app.router.add_get("/no-location", redirect_without_location)
    app.router.add_get("/missing", missing)
    app.router.add_get("/flaky", flaky)
    app.router.add_get("/down", down)
    app.router.add_get("/latin1", latin1_listing)
    app.router.add_get("/unknown-charset", unknown_charset)
    app.router.add_get("/slow", slow)
    return app


@pytest.fixture
def coupon_bond_html() -> str:
    """Borsa Italiana style BTP listing with two rows."""
    return COUPON_BOND_HTML


@pytest.fixture
def discount_bill_html() -> str:
    """Rendimenti.it style BOT listing with two rows."""
    return DISCOUNT_BILL_HTML


@pytest.fixture
def empty_listing_html() -> str:
    """Page without any listing rows."""
    return EMPTY_LISTING_HTML


@pytest_asyncio.fixture
async def upstream() -> AsyncGenerator[Upstream, None]:
    """Run the fixture listing sites on a local port."""
    hits: Counter = Counter()
    async with TestServer(create_upstream_app(hits)) as server:
        yield Upstream(server, hits)


@pytest.fixture
def unused_url() -> str:
    """URL on a local port nothing listens on."""
    return f"http://127.0.0.1:{find_free_port()}/btp"


@pytest.fixture
def fetcher_settings() -> FetcherSettings:
    """Fetcher settings with no backoff delay."""
    return FetcherSettings(
        request_timeout=2.0,
        max_redirects=5,
        retry_attempts=3,
        retry_backoff=0.0,
    )


@pytest.fixture
def snapshot_writer(tmp_path: Path) -> SnapshotWriter:
    """Snapshot writer targeting a not-yet-existing directory."""
    return SnapshotWriter(tmp_path / "data" / "btp-data.json")


class TickingClock:
    """Clock that advances one second on every reading."""

    def __init__(self, start: datetime = FETCH_TIME) -> None:
        self.current = start - timedelta(seconds=1)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def sample_quotes() -> list[BondQuote]:
    """Provide one BTP and one BOT quote."""
    return [
        BondQuote(
            isin="IT0005024234",
            description="Btp-1gn26 5%",
            kind=InstrumentKind.COUPON_BOND,
            price=100.0,
            coupon_rate=5.0,
            maturity_date=date(2026, 1, 1),
            gross_yield=Decimal("5.00"),
        ),
        BondQuote(
            isin="IT0005689887",
            description="Bot Zc Jan26 A Eur",
            kind=InstrumentKind.DISCOUNT_BILL,
            price=98.067,
            maturity_date=date(2026, 1, 14),
            gross_yield=Decimal("3.00"),
            net_yield=Decimal("2.63"),
        ),
    ]
