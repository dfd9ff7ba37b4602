"""
Reddit data acquisition for the contradiction analysis core.

Reads a user's public profile, comment history and self posts through the
public JSON listing endpoints. History is streamed page by page through
ListingStream so callers can stop early without fetching everything.
"""

import asyncio
import math
import time
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import FetchError, NetworkError, NotFoundError
from ..core.interfaces import HistorySource
from ..domain.models import Comment, Post, UserHistory, UserPreview, UserProfile
from ..foundation.config import HttpConfig, IngestionConfig
from ..foundation.logging import LoggerMixin
from .http_client import HttpRetryClient
from .listing_stream import ListingStream, SECONDS_PER_DAY


def format_account_age(age_days: int) -> str:
    """Bucket an account age: days below 30, 30-day months below 365, else years."""
    if age_days < 30:
        return f"{age_days} days"
    if age_days < 365:
        return f"{age_days // 30} months"
    return f"{age_days // 365} years"


def estimate_comment_volume(comment_karma: int, age_days: int) -> int:
    """Rough comment count: twice the daily comment karma, clamped to 100..8000."""
    daily_karma = comment_karma / max(age_days, 1)
    return math.floor(min(max(daily_karma * 2, 100), 8000))


class RedditAcquisition(HistorySource, LoggerMixin):
    """Profile and history fetcher backed by the public Reddit JSON API."""

    def __init__(
        self,
        http: Optional[HttpRetryClient] = None,
        ingestion: Optional[IngestionConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        verbose: bool = False
    ):
        """Initialize the fetcher.

        Args:
            http: Retrying JSON client; built from HttpConfig() when omitted
            ingestion: Page size, page delay and per-listing ceilings
            sleep: Delay between page fetches, injectable for tests
            clock: Epoch-seconds clock used for cutoffs and account age
            verbose: Trace every page and request at DEBUG
        """
        self.http = http or HttpRetryClient(HttpConfig())
        self.ingestion = ingestion or IngestionConfig()
        self._sleep = sleep
        self._clock = clock
        self.set_verbose(verbose)

    def set_verbose(self, verbose: bool) -> None:
        super().set_verbose(verbose)
        self.http.set_verbose(verbose)

    def _user_path(self, username: str, listing: str) -> str:
        return f"/user/{quote(username, safe='')}/{listing}.json"

    def iterate_comments(
        self,
        username: str,
        max_items: Optional[int] = None,
        max_age_days: int = 365,
        max_requests: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ListingStream[Comment]:
        """Stream a user's comments, newest first, in validated batches."""
        self.trace("Starting comment iteration", username=username,
                   max_items=max_items, max_age_days=max_age_days)
        return ListingStream(
            self.http,
            self._user_path(username, "comments"),
            Comment,
            body_field="body",
            max_items=max_items or self.ingestion.max_comment_items,
            max_requests=max_requests or self.ingestion.max_comment_requests,
            max_age_days=max_age_days,
            page_size=self.ingestion.page_size,
            page_delay=self.ingestion.page_delay,
            track_backward_cursor=True,
            cancel_event=cancel_event,
            sleep=self._sleep,
            clock=self._clock,
            logger=self
        )

    def iterate_posts(
        self,
        username: str,
        max_items: Optional[int] = None,
        max_age_days: int = 365,
        max_requests: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ListingStream[Post]:
        """Stream a user's self posts. Only the forward cursor is followed."""
        self.trace("Starting post iteration", username=username,
                   max_items=max_items, max_age_days=max_age_days)
        return ListingStream(
            self.http,
            self._user_path(username, "submitted"),
            Post,
            body_field="selftext",
            max_items=max_items or self.ingestion.max_post_items,
            max_requests=max_requests or self.ingestion.max_post_requests,
            max_age_days=max_age_days,
            page_size=self.ingestion.page_size,
            page_delay=self.ingestion.page_delay,
            track_backward_cursor=False,
            cancel_event=cancel_event,
            sleep=self._sleep,
            clock=self._clock,
            logger=self
        )

    async def get_user_info(self, username: str) -> UserProfile:
        self.trace("Fetching user info", username=username)
        url = self._user_path(username, "about")
        payload = await self.http.fetch_json(url)

        data = payload.get("data") if isinstance(payload, dict) else None
        if not data:
            raise NotFoundError(url=url)

        try:
            return UserProfile.model_validate(data)
        except PydanticValidationError as e:
            raise FetchError("malformed profile response", url=url) from e

    async def get_user_preview(self, username: str) -> UserPreview:
        try:
            user = await self.get_user_info(username)
            sample = self.iterate_comments(username, max_items=20, max_requests=1)
            first_batch = []
            async for batch in sample:
                first_batch = batch
                break
            await sample.aclose()
        except Exception as e:
            self.logger.info("Preview unavailable", username=username, error=str(e))
            return UserPreview.absent()

        age_days = math.floor((self._clock() - user.created_utc) / SECONDS_PER_DAY)
        return UserPreview(
            exists=True,
            karma=user.total_karma,
            account_age=format_account_age(age_days),
            has_recent_activity=len(first_batch) > 0,
            estimated_volume=estimate_comment_volume(user.comment_karma, age_days)
        )

    async def get_full_user_data(
        self,
        username: str,
        max_comments: int = 5000,
        max_posts: int = 1000,
        max_age_days: int = 365,
        cancel_event: Optional[asyncio.Event] = None
    ) -> UserHistory:
        """Fetch the profile, then stream comments and posts up to the caps.

        A missing account raises NotFoundError. Listing failures only cut
        the history short.
        """
        self.trace("Fetching comprehensive user data", username=username)
        user = await self.get_user_info(username)

        comments = await self.iterate_comments(
            username, max_items=max_comments, max_age_days=max_age_days,
            cancel_event=cancel_event
        ).collect(limit=max_comments)

        posts = await self.iterate_posts(
            username, max_items=max_posts, max_age_days=max_age_days,
            cancel_event=cancel_event
        ).collect(limit=max_posts)

        self.logger.info(
            "User history fetched",
            username=username,
            comments=len(comments),
            posts=len(posts)
        )
        return UserHistory(user=user, comments=comments, posts=posts)

    async def user_exists(self, username: str) -> bool:
        try:
            await self.get_user_info(username)
        except NetworkError:
            return False
        return True

    async def health_check(self) -> bool:
        return await self.http.probe("/r/test.json", timeout=5.0)

    async def aclose(self) -> None:
        await self.http.aclose()
