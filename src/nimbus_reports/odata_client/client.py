"""Nimbus OData client: paginated, retried collection fetches."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

from ..progress import ScopedProgress
from ..session import Session
from .query import EXPAND_PAGE_SIZE, ODataQuery, id_in_filter
from .retry import DEFAULT_MAX_ATTEMPTS, Sleep, call_with_retry
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

# Pagination safety limits
DEFAULT_MAX_PAGES = 20
MAX_CONSECUTIVE_MALFORMED = 3
LOOKUP_BATCH_SIZE = 50

NEXT_LINK_KEYS = ("@odata.nextLink", "odata.nextLink")
COUNT_KEYS = ("@odata.count", "odata.count")

RawRecord = dict[str, Any]


@dataclass
class PageResult:
    """One decoded page of an OData collection."""

    records: list[RawRecord] = field(default_factory=list)
    next_link: str | None = None
    total_count: int | None = None
    malformed: bool = False


def parse_page(body: str | None) -> PageResult:
    """
    Decode a response body into a page.

    Accepts a bare JSON array or an envelope ``{"value": [...]}`` with an
    optional continuation link and count. Anything else is reported as a
    malformed (empty) page rather than raised.
    """
    if not body or not body.strip():
        logger.warning("OData response had no body")
        return PageResult(malformed=True)

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse OData response: {e}; body starts: {body[:200]!r}")
        return PageResult(malformed=True)

    if isinstance(parsed, list):
        return PageResult(records=[r for r in parsed if isinstance(r, dict)])

    if not isinstance(parsed, dict) or not isinstance(parsed.get("value"), list):
        logger.error(f"Unexpected OData response shape: {body[:200]!r}")
        return PageResult(malformed=True)

    next_link = next((parsed[k] for k in NEXT_LINK_KEYS if parsed.get(k)), None)
    total_count = None
    for key in COUNT_KEYS:
        if key in parsed:
            try:
                total_count = int(parsed[key])
            except (TypeError, ValueError):
                total_count = None
            break

    return PageResult(
        records=[r for r in parsed["value"] if isinstance(r, dict)],
        next_link=next_link,
        total_count=total_count,
    )


_UNSET: Any = object()


class ODataClient:
    """Client for reading entity collections from the Nimbus CoreAPI OData endpoint."""

    def __init__(
        self,
        session: Session,
        transport: Transport | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_pages: int | None = DEFAULT_MAX_PAGES,
        expand_page_size: int = EXPAND_PAGE_SIZE,
        timeout: float = 30.0,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize the OData client.

        Args:
            session: Credentials and base URL
            transport: GET executor; an :class:`HttpTransport` is created when omitted
            max_attempts: Attempts per page request (retry with 1s, 2s, 4s backoff)
            max_pages: Page ceiling per fetch; None disables the ceiling
            expand_page_size: Upper bound on page size for queries with $expand
            timeout: HTTP timeout when the transport is created here
            sleep: Backoff sleep (injectable for tests)
        """
        self.session = session
        self._owns_transport = transport is None
        self.transport: Transport = transport or HttpTransport(session, timeout=timeout)
        self.max_attempts = max_attempts
        self.max_pages = max_pages
        self.expand_page_size = expand_page_size
        self._sleep = sleep

    @property
    def odata_base(self) -> str:
        return self.session.odata_base

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport and isinstance(self.transport, HttpTransport):
            await self.transport.close()

    async def __aenter__(self) -> ODataClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _get_page(self, url: str) -> PageResult:
        """Fetch and decode one page, retrying transport failures."""
        logger.debug(f"[OData] Fetching: {url}")
        response = await call_with_retry(
            functools.partial(self.transport.execute_get, url),
            max_attempts=self.max_attempts,
            sleep=self._sleep,
            description=f"GET {url}",
        )
        page = parse_page(response.body)
        logger.debug(f"[OData] Response: {len(page.records)} records")
        return page

    def _resolve_link(self, link: str) -> str:
        return urljoin(f"{self.odata_base}/", link)

    async def fetch_paged(
        self,
        query: ODataQuery,
        progress: ScopedProgress | None = None,
        max_pages: int | None = _UNSET,
    ) -> list[RawRecord]:
        """
        Fetch every page of a query and concatenate the records.

        Server continuation links are followed verbatim. Without one, a full
        page triggers the next ``$skip`` request and a short page ends the
        fetch. Malformed pages count as empty and paging continues by offset.

        Args:
            query: Query to run
            progress: Optional progress sink for per-page milestones
            max_pages: Override the client's page ceiling for this fetch

        Returns:
            All records in the order the server returned them (no deduplication)

        Raises:
            TransportError: When a page still fails after all retry attempts
        """
        page_limit = self.max_pages if max_pages is _UNSET else max_pages
        page_size = query.page_size

        records: list[RawRecord] = []
        skip = 0
        url: str | None = query.build_url(self.odata_base, skip=0)
        page_count = 0
        malformed_run = 0

        while url:
            page_count += 1
            if progress:
                progress(
                    "fetch",
                    f"Fetching {query.entity}: {len(records)} loaded (page {page_count})...",
                    len(records),
                )

            page = await self._get_page(url)
            records.extend(page.records)
            skip += page_size

            if page.malformed:
                malformed_run += 1
                if malformed_run >= MAX_CONSECUTIVE_MALFORMED:
                    logger.warning(
                        f"{query.entity}: {malformed_run} malformed pages in a row; "
                        f"stopping with {len(records)} records"
                    )
                    break
            else:
                malformed_run = 0

            if page.next_link:
                url = self._resolve_link(page.next_link)
            elif page.malformed:
                url = query.build_url(self.odata_base, skip=skip)
            elif len(page.records) < page_size:
                url = None
            elif page.total_count is not None and skip >= page.total_count:
                url = None
            else:
                url = query.build_url(self.odata_base, skip=skip)

            if url and page_limit is not None and page_count >= page_limit:
                logger.warning(
                    f"{query.entity}: reached safety limit of {page_limit} pages; "
                    f"returning {len(records)} records"
                )
                break

        logger.info(f"Fetched {len(records)} {query.entity} records in {page_count} pages")
        return records

    async def fetch_with_expand(
        self,
        query: ODataQuery,
        progress: ScopedProgress | None = None,
        max_pages: int | None = _UNSET,
    ) -> list[RawRecord]:
        """Fetch a query carrying ``$expand``, capping the page size.

        Expanded payloads are much larger per record, so pages are kept to
        ``expand_page_size`` records.
        """
        if query.page_size > self.expand_page_size:
            query = query.model_copy(update={"page_size": self.expand_page_size})
        return await self.fetch_paged(query, progress=progress, max_pages=max_pages)

    async def fetch_many(
        self,
        queries: dict[str, ODataQuery],
        progress: ScopedProgress | None = None,
    ) -> dict[str, list[RawRecord]]:
        """
        Fetch several independent queries concurrently.

        All fetches are started together and each owns its own accumulator.
        The call returns once every fetch has settled; if any failed, the
        first failure is raised.
        """
        total = len(queries)

        def _progress_for(index: int) -> ScopedProgress | None:
            if progress is None:
                return None
            return progress.prefixed(f"[{index}/{total}]")

        names = list(queries)
        results = await asyncio.gather(
            *(
                self.fetch_paged(queries[name], progress=_progress_for(i))
                for i, name in enumerate(names, start=1)
            ),
            return_exceptions=True,
        )

        fetched: dict[str, list[RawRecord]] = {}
        for name, result in zip(names, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(f"Fetch of {name} failed: {result}")
                raise result
            fetched[name] = result
        return fetched

    async def lookup_by_ids(
        self,
        entity: str,
        ids: list[int],
        select: list[str] | None = None,
        batch_size: int = LOOKUP_BATCH_SIZE,
    ) -> dict[int, RawRecord]:
        """Fetch records by primary key in ``Id eq a or Id eq b`` batches."""
        unique_ids = sorted({i for i in ids if i})
        found: dict[int, RawRecord] = {}
        for start in range(0, len(unique_ids), batch_size):
            batch = unique_ids[start : start + batch_size]
            query = ODataQuery(
                entity=entity,
                filter=id_in_filter("Id", batch),
                select=select or [],
            )
            for record in await self.fetch_paged(query):
                if isinstance(record.get("Id"), int):
                    found[record["Id"]] = record
        logger.debug(f"Loaded {len(found)} {entity} records for {len(unique_ids)} ids")
        return found

    async def test_connection(self) -> bool:
        """Check that the session can read a single User record."""
        query = ODataQuery(entity="User", select=["Id"], page_size=1)
        records = await self.fetch_paged(query, max_pages=1)
        return len(records) > 0
