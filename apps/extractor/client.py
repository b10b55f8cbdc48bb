"""
Billing API Client - Paginated Event Fetching

Wraps the events list endpoint of the billing API:
- Bearer token authentication
- Time window (created[gte]) and event type filters
- Cursor pagination via `starting_after`, bounded by a page budget
- Optional retries of a single page on transient failures

Usage:
    client = StripeClient(token)
    client.set_start_date("2023-07-01")
    client.set_category_selector("customer.subscription.*")
    events = await client.fetch_all(retries_remaining=5)
"""

import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from utils.errors import ConfigurationError, DateFormatError, PaginationError, RequestFailedError
from utils.query import stringify_nested
from utils.schemas import EventPage, EventRecord

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.stripe.com/v1/events"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_DELAY = 1.0
START_LEAD_TIME = timedelta(minutes=75)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})


def _is_transient(exc: BaseException) -> bool:
    """Transport errors and throttling/5xx responses are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, RequestFailedError) and exc.status_code in TRANSIENT_STATUSES


class StripeClient:
    """Client for the billing API events endpoint."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        page_delay: float = DEFAULT_PAGE_DELAY,
        max_retries: int = 0,
        retry_wait: float = 1.0,
        reference_tz: str = "UTC",
        lead_time: timedelta = START_LEAD_TIME,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize client.

        Args:
            token: Bearer token for the API
            base_url: Events endpoint, without query string
            timeout: Per-request timeout in seconds
            page_delay: Pause before each continuation page, in seconds
            max_retries: Extra attempts for a single page on transient failures
            retry_wait: Base of the exponential wait between attempts, in seconds
            reference_tz: IANA timezone used to interpret start dates
            lead_time: How far behind "now" the default start date lies
            transport: Optional httpx transport (used by tests)
        """
        self.token = token
        self.base_url = base_url.rstrip("?")
        self.timeout = timeout
        self.page_delay = page_delay
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self.reference_tz = ZoneInfo(reference_tz)
        self.lead_time = lead_time
        self.transport = transport

        self.start_date: Optional[int] = None
        self.category_selector: Optional[str] = None
        self.headers = {"Authorization": f"Bearer {self.token}"}

    def set_start_date(self, date: Optional[str] = None) -> int:
        """
        Set the lower bound of the time window.

        Args:
            date: Calendar date in YYYY-MM-DD format; midnight in the reference
                timezone. Defaults to now minus the lead time.

        Returns:
            The start timestamp in seconds since epoch

        Raises:
            DateFormatError: If date is not a valid YYYY-MM-DD date
        """
        if date is None:
            start = datetime.now(self.reference_tz) - self.lead_time
        else:
            if not isinstance(date, str) or not DATE_PATTERN.match(date):
                raise DateFormatError(f"Invalid date format: {date!r}. Expected format: YYYY-MM-DD")
            try:
                start = datetime.strptime(date, "%Y-%m-%d").replace(tzinfo=self.reference_tz)
            except ValueError as e:
                raise DateFormatError(f"Invalid date: {date!r} - {e}") from e

        self.start_date = int(start.timestamp())
        logger.info("Start date set: date=%s, timestamp=%d", date or "default", self.start_date)
        return self.start_date

    def set_category_selector(self, selector: str) -> None:
        """Set the event type filter, e.g. `customer.subscription.*`."""
        self.category_selector = selector

    def build_url(self, cursor: Optional[str] = None) -> str:
        """
        Build the request URL for one page.

        Args:
            cursor: ID of the last event of the previous page

        Returns:
            Full request URL with encoded filters

        Raises:
            ConfigurationError: If start date or category selector are not set
        """
        if self.start_date is None:
            raise ConfigurationError("Set start date before building a request URL")
        if not self.category_selector:
            raise ConfigurationError("Set category selector before building a request URL")

        query: dict[str, Any] = {
            "created": {"gte": self.start_date},
            "type": self.category_selector,
        }
        if cursor:
            query["starting_after"] = cursor

        return f"{self.base_url}?{stringify_nested(query)}"

    def _new_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.headers,
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        )

    async def _get_page(self, http: httpx.AsyncClient, url: str) -> EventPage:
        response = await http.get(url)

        if response.status_code != 200:
            raise RequestFailedError(
                f"Request failed: GET {url} - HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return EventPage.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            reason = str(e).split("\n")[0]
            raise RequestFailedError(
                f"Malformed response from GET {url}: {reason}",
                status_code=response.status_code,
            ) from e

    async def fetch_page(
        self, cursor: Optional[str] = None, http: Optional[httpx.AsyncClient] = None
    ) -> EventPage:
        """
        Fetch a single page of events.

        Transient failures are retried up to `max_retries` times; anything
        still failing is raised as RequestFailedError.

        Args:
            cursor: ID of the last event of the previous page
            http: Open httpx client to reuse; a new one is created when omitted

        Returns:
            Validated event page

        Raises:
            ConfigurationError: If filters are not set
            RequestFailedError: If the request fails or the body is malformed
        """
        url = self.build_url(cursor)

        if http is None:
            async with self._new_http_client() as owned:
                return await self.fetch_page(cursor, owned)

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_transient),
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(multiplier=self.retry_wait, min=self.retry_wait, max=10),
                reraise=True,
            ):
                with attempt:
                    return await self._get_page(http, url)
        except RequestFailedError:
            raise
        except httpx.HTTPError as e:
            raise RequestFailedError(f"Request failed: GET {url} - {e}") from e

    async def fetch_all(self, cursor: Optional[str] = None, retries_remaining: int = 1) -> list[EventRecord]:
        """
        Fetch events page by page, earlier pages first.

        `retries_remaining` is the continuation budget: the number of pages
        that may be requested after the first one. When it runs out while the
        API still reports more pages, the pages fetched so far are returned.

        Args:
            cursor: Event ID to start after
            retries_remaining: Continuation page budget

        Returns:
            Events from all fetched pages, in page order

        Raises:
            ConfigurationError: If filters are not set
            RequestFailedError: If any page request fails (no partial result)
            PaginationError: If more pages are reported but no cursor is available
        """
        # Raises before a connection is opened if filters are missing
        self.build_url(cursor)

        events: list[EventRecord] = []
        pages = 0

        async with self._new_http_client() as http:
            while True:
                page = await self.fetch_page(cursor, http)
                events.extend(page.data)
                pages += 1

                logger.debug(
                    "Fetched page",
                    extra={"page": pages, "cursor": cursor, "count": len(page.data), "has_more": page.has_more},
                )

                if not page.has_more:
                    break

                if retries_remaining <= 0:
                    logger.warning(
                        "Page budget exhausted with more pages remaining, returning fetched pages",
                        extra={"pages": pages, "events": len(events)},
                    )
                    break

                if not page.data:
                    raise PaginationError(
                        f"API reported more pages after page {pages} but returned no events to continue from"
                    )

                cursor = page.data[-1].id
                retries_remaining -= 1
                await asyncio.sleep(self.page_delay)

        logger.info("Fetch complete: pages=%d, events=%d", pages, len(events))
        return events
