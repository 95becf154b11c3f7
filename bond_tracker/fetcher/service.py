"""
HTML fetcher for the upstream market-data pages.
"""

import asyncio
import logging
from typing import Final
from urllib.parse import urljoin

import aiohttp

from ..shared.exceptions import NetworkError, RedirectLoopError
from .settings import FetcherSettings, fetcher_settings

REDIRECT_STATUSES: Final[frozenset[int]] = frozenset({301, 302, 303, 307, 308})
TOO_MANY_REQUESTS: Final[int] = 429

# Italian listings that declare no charset and are not UTF-8 are Windows-1252
FALLBACK_CHARSET: Final[str] = "cp1252"

logger = logging.getLogger(__name__)


class _TransientFetchError(NetworkError):
    """Fetch failure that may succeed on another attempt."""


def decode_body(body: bytes, charset: str | None, url: str) -> str:
    """
    Decode a response body, falling back to Windows-1252.

    The declared charset (UTF-8 when none is declared) is tried first. Bytes
    the fallback cannot map are replaced rather than failing the fetch.
    """
    try:
        return body.decode(charset or "utf-8")
    except (UnicodeDecodeError, LookupError) as e:
        logger.debug(
            f"Body of {url} is not valid {charset or 'utf-8'}, "
            f"decoding as {FALLBACK_CHARSET}: {e}"
        )
        return body.decode(FALLBACK_CHARSET, errors="replace")


class HtmlFetcher:
    """Fetches page bodies as text, following redirects manually."""

    def __init__(self, settings: FetcherSettings | None = None) -> None:
        """Initialize the fetcher."""
        self.settings = settings or fetcher_settings

    async def fetch(self, url: str) -> str:
        """
        Fetch a page and return its body as text.

        Connection errors, request timeouts, HTTP 429 and 5xx responses are
        retried with exponential backoff. Everything else fails immediately.

        Args:
            url: Absolute URL of the page

        Returns:
            str: Decoded response body

        Raises:
            NetworkError: If the page cannot be fetched
            RedirectLoopError: If the redirect chain is too long
        """
        attempts = self.settings.retry_attempts
        delay = self.settings.retry_backoff

        for attempt in range(1, attempts + 1):
            try:
                return await self._fetch_once(url)
            except _TransientFetchError as e:
                if attempt == attempts:
                    logger.error(f"Giving up on {url} after {attempts} attempts: {e}")
                    raise NetworkError(e.url, e.reason, e.status_code) from e

                logger.warning(
                    f"Fetch attempt {attempt}/{attempts} for {url} failed: "
                    f"{e.reason}, retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.settings.retry_backoff_max)

        raise NetworkError(url, "no fetch attempts configured")

    async def _fetch_once(self, url: str) -> str:
        """Issue one request, following up to ``max_redirects`` redirects."""
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)
        headers = {"User-Agent": self.settings.user_agent}
        current_url = url

        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                for _ in range(self.settings.max_redirects + 1):
                    async with session.get(
                        current_url, allow_redirects=False
                    ) as response:
                        status = response.status

                        if status in REDIRECT_STATUSES:
                            if not (location := response.headers.get("Location")):
                                raise NetworkError(
                                    current_url,
                                    f"HTTP {status} without Location header",
                                    status,
                                )
                            next_url = urljoin(current_url, location)
                            logger.debug(f"Redirect {status}: {current_url} -> {next_url}")
                            current_url = next_url
                            continue

                        if status == TOO_MANY_REQUESTS or status >= 500:
                            raise _TransientFetchError(
                                current_url, f"HTTP {status}", status
                            )

                        if not 200 <= status < 300:
                            raise NetworkError(current_url, f"HTTP {status}", status)

                        return decode_body(
                            await response.read(), response.charset, current_url
                        )

        except (aiohttp.ClientError, TimeoutError) as e:
            raise _TransientFetchError(
                current_url, f"{type(e).__name__}: {e}"
            ) from e

        raise RedirectLoopError(url, self.settings.max_redirects)
