"""
Cursor-paginated listing ingestion.

A ListingStream walks a ``{data: {children, after, before}}`` listing one
page per step and yields non-empty batches of validated records. It is a
plain async iterator: nothing is fetched until the consumer pulls, and a
finished stream stays finished.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.exceptions import NetworkError
from ..domain.models import is_substantive_text
from ..foundation.logging import LoggerMixin
from .http_client import HttpRetryClient

RecordT = TypeVar("RecordT", bound=BaseModel)

SECONDS_PER_DAY = 24 * 60 * 60


class StopReason(str, Enum):
    """Why a stream stopped producing batches."""
    MAX_ITEMS = "max_items"
    MAX_REQUESTS = "max_requests"
    END_OF_LISTING = "end_of_listing"
    EMPTY_PAGE = "empty_page"
    CANCELLED = "cancelled"
    ERROR = "error"
    CLOSED = "closed"


class ListingStream(Generic[RecordT]):
    """Bounded, filtered, lazily paginated sequence of record batches.

    Stops on whichever comes first: ``max_items`` records yielded,
    ``max_requests`` pages fetched, the listing running out of cursors or
    returning an empty page, cancellation, or a fetch error. Fetch errors
    end the stream quietly; the cause is kept on ``error``.
    """

    def __init__(
        self,
        client: HttpRetryClient,
        url: str,
        record_type: Type[RecordT],
        body_field: str,
        max_items: int,
        max_requests: int,
        max_age_days: int = 365,
        page_size: int = 100,
        sort: str = "new",
        page_delay: float = 1.0,
        track_backward_cursor: bool = True,
        cancel_event: Optional[asyncio.Event] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        logger: Optional[LoggerMixin] = None
    ):
        self.client = client
        self.url = url
        self.record_type = record_type
        self.body_field = body_field
        self.max_items = max_items
        self.max_requests = max_requests
        self.page_size = page_size
        self.sort = sort
        self.page_delay = page_delay
        self.track_backward_cursor = track_backward_cursor
        self.cutoff = clock() - max_age_days * SECONDS_PER_DAY

        self._cancel_event = cancel_event
        self._cancelled_locally = False
        self._sleep = sleep
        self._owner = logger or client

        self._after: Optional[str] = None
        self._before: Optional[str] = None
        self._request_count = 0
        self._total_items = 0
        self._filtered_count = 0
        self._stop_reason: Optional[StopReason] = None
        self._finished_logged = False
        self.error: Optional[NetworkError] = None

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self._stop_reason

    @property
    def request_count(self) -> int:
        return self._request_count

    @property
    def total_items(self) -> int:
        return self._total_items

    @property
    def exhausted(self) -> bool:
        return self._stop_reason is not None

    def cancel(self) -> None:
        """Request a stop; honored before the next fetch."""
        self._cancelled_locally = True

    async def aclose(self) -> None:
        if self._stop_reason is None:
            self._stop(StopReason.CLOSED)
        self._log_completion()

    def __aiter__(self) -> "ListingStream[RecordT]":
        return self

    async def __anext__(self) -> List[RecordT]:
        while True:
            if self._stop_reason is None:
                self._check_limits()
            if self._stop_reason is not None:
                self._log_completion()
                raise StopAsyncIteration

            if self._request_count > 0 and self.page_delay > 0:
                await self._sleep(self.page_delay)
                if self._is_cancelled():
                    self._stop(StopReason.CANCELLED)
                    continue

            try:
                payload = await self.client.fetch_json(self.url, self._page_params())
            except NetworkError as e:
                self._owner.logger.warning(
                    "Listing fetch failed, ending stream early",
                    url=self.url,
                    error=str(e),
                    requests=self._request_count
                )
                self.error = e
                self._stop(StopReason.ERROR)
                continue

            self._request_count += 1
            listing = payload.get("data") if isinstance(payload, dict) else None
            children = (listing or {}).get("children") or []

            if not children:
                self._trace("Empty page, listing exhausted")
                self._stop(StopReason.EMPTY_PAGE)
                continue

            batch = self._parse_page(children)

            self._after = listing.get("after")
            if self.track_backward_cursor:
                self._before = listing.get("before")
            if not self._after and not self._before:
                self._trace("Pagination complete, no more cursors")
                self._stop(StopReason.END_OF_LISTING)

            if batch:
                remaining = self.max_items - self._total_items
                batch = batch[:remaining]
                self._total_items += len(batch)
                self._trace(
                    "Batch yielded",
                    batch_size=len(batch),
                    total=self._total_items,
                    requests=self._request_count
                )
                return batch

    async def collect(self, limit: Optional[int] = None) -> List[RecordT]:
        """Drain the stream into one list, truncated to ``limit``."""
        records: List[RecordT] = []
        async for batch in self:
            records.extend(batch)
            if limit is not None and len(records) >= limit:
                await self.aclose()
                break
        return records if limit is None else records[:limit]

    def _page_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"limit": self.page_size, "sort": self.sort}
        if self._after:
            params["after"] = self._after
        if self._before:
            params["before"] = self._before
        return params

    def _parse_page(self, children: List[Dict[str, Any]]) -> List[RecordT]:
        batch: List[RecordT] = []
        for child in children:
            raw = child.get("data") if isinstance(child, dict) else None
            if not isinstance(raw, dict) or not self._keep(raw):
                self._filtered_count += 1
                continue
            try:
                batch.append(self.record_type.model_validate(raw))
            except ValidationError:
                self._filtered_count += 1
        self._trace(
            "Page parsed",
            children=len(children),
            kept=len(batch),
            filtered_total=self._filtered_count
        )
        return batch

    def _keep(self, raw: Dict[str, Any]) -> bool:
        if not is_substantive_text(raw.get(self.body_field)):
            return False
        created = raw.get("created_utc")
        return isinstance(created, (int, float)) and created >= self.cutoff

    def _is_cancelled(self) -> bool:
        return self._cancelled_locally or (
            self._cancel_event is not None and self._cancel_event.is_set()
        )

    def _check_limits(self) -> None:
        if self._is_cancelled():
            self._stop(StopReason.CANCELLED)
        elif self._total_items >= self.max_items:
            self._stop(StopReason.MAX_ITEMS)
        elif self._request_count >= self.max_requests:
            self._stop(StopReason.MAX_REQUESTS)

    def _stop(self, reason: StopReason) -> None:
        if self._stop_reason is None:
            self._stop_reason = reason

    def _trace(self, msg: str, **kwargs) -> None:
        self._owner.trace(msg, url=self.url, **kwargs)

    def _log_completion(self) -> None:
        if self._finished_logged:
            return
        self._finished_logged = True
        self._trace(
            "Listing iteration complete",
            total=self._total_items,
            requests=self._request_count,
            filtered=self._filtered_count,
            stop_reason=self._stop_reason.value if self._stop_reason else None
        )
