"""Tests for Reddit data acquisition."""

import httpx
import pytest

from thoughtpolice.core.exceptions import FetchError, NotFoundError
from thoughtpolice.data_acquisition.reddit import (
    estimate_comment_volume, format_account_age
)
from thoughtpolice.foundation.config import IngestionConfig

from factories import DAY, NOW, about, listing, raw_comment, raw_post


class RedditRoutes:
    """Routes listing API paths to canned JSON bodies."""

    def __init__(self, routes):
        self.routes = routes
        self.paths = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        body = self.routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"error": 404})
        if isinstance(body, httpx.Response):
            return body
        if isinstance(body, list):
            # successive pages
            page = body.pop(0) if len(body) > 1 else body[0]
            return httpx.Response(200, json=page)
        return httpx.Response(200, json=body)


def alice_routes(comments=None, posts=None, **about_overrides):
    return RedditRoutes({
        "/user/alice/about.json": about("alice", **about_overrides),
        "/user/alice/comments.json": comments if comments is not None else listing(
            [raw_comment(i) for i in range(3)]
        ),
        "/user/alice/submitted.json": posts if posts is not None else listing([raw_post(0)]),
        "/r/test.json": listing([]),
    })


class TestHelpers:
    """Test preview arithmetic."""

    @pytest.mark.parametrize("days,expected", [
        (0, "0 days"),
        (29, "29 days"),
        (30, "1 months"),
        (364, "12 months"),
        (365, "1 years"),
        (800, "2 years"),
    ])
    def test_format_account_age(self, days, expected):
        assert format_account_age(days) == expected

    def test_volume_lower_clamp(self):
        assert estimate_comment_volume(4000, 400) == 100

    def test_volume_upper_clamp(self):
        assert estimate_comment_volume(10_000_000, 10) == 8000

    def test_volume_in_range_is_floored(self):
        assert estimate_comment_volume(30_001, 100) == 600

    def test_volume_zero_age(self):
        assert estimate_comment_volume(1000, 0) == 2000


class TestUserInfo:
    """Test profile lookups."""

    @pytest.mark.asyncio
    async def test_get_user_info(self, reddit_factory):
        reddit = reddit_factory(alice_routes())

        user = await reddit.get_user_info("alice")

        assert user.name == "alice"
        assert user.comment_karma == 4000
        assert user.total_karma == 4500

    @pytest.mark.asyncio
    async def test_unknown_user_raises_not_found(self, reddit_factory):
        reddit = reddit_factory(alice_routes())

        with pytest.raises(NotFoundError):
            await reddit.get_user_info("ghost")

    @pytest.mark.asyncio
    async def test_missing_data_is_not_found(self, reddit_factory):
        reddit = reddit_factory(RedditRoutes({"/user/alice/about.json": {"kind": "t2"}}))

        with pytest.raises(NotFoundError):
            await reddit.get_user_info("alice")

    @pytest.mark.asyncio
    async def test_malformed_profile_is_fetch_error(self, reddit_factory):
        reddit = reddit_factory(RedditRoutes({
            "/user/alice/about.json": {"data": {"name": "alice", "created_utc": "yesterday"}}
        }))

        with pytest.raises(FetchError, match="malformed profile"):
            await reddit.get_user_info("alice")

    @pytest.mark.asyncio
    async def test_user_exists(self, reddit_factory):
        reddit = reddit_factory(alice_routes())

        assert await reddit.user_exists("alice") is True
        assert await reddit.user_exists("ghost") is False


class TestPreview:
    """Test lightweight account previews."""

    @pytest.mark.asyncio
    async def test_preview_values(self, reddit_factory):
        routes = alice_routes()
        reddit = reddit_factory(routes)

        preview = await reddit.get_user_preview("alice")

        assert preview.exists is True
        assert preview.karma == 4500
        assert preview.account_age == "1 years"
        assert preview.has_recent_activity is True
        assert preview.estimated_volume == 100
        assert routes.paths.count("/user/alice/comments.json") == 1

    @pytest.mark.asyncio
    async def test_preview_without_recent_activity(self, reddit_factory):
        stale = listing([raw_comment(0, created_utc=NOW - 500 * DAY)], after="t1_a")
        reddit = reddit_factory(alice_routes(comments=stale))

        preview = await reddit.get_user_preview("alice")

        assert preview.exists is True
        assert preview.has_recent_activity is False

    @pytest.mark.asyncio
    async def test_preview_absent_for_unknown_user(self, reddit_factory):
        reddit = reddit_factory(alice_routes())

        preview = await reddit.get_user_preview("ghost")

        assert preview.exists is False
        assert preview.karma == 0
        assert preview.account_age == "Unknown"
        assert preview.estimated_volume == 0

    @pytest.mark.asyncio
    async def test_preview_by_alias(self, reddit_factory):
        reddit = reddit_factory(alice_routes())

        data = (await reddit.get_user_preview("alice")).model_dump(by_alias=True)

        assert set(data) == {"exists", "karma", "accountAge", "hasRecentActivity", "estimatedVolume"}


class TestFullUserData:
    """Test full history acquisition."""

    @pytest.mark.asyncio
    async def test_collects_comments_and_posts(self, reddit_factory):
        reddit = reddit_factory(alice_routes())

        history = await reddit.get_full_user_data("alice")

        assert history.user.name == "alice"
        assert [c.id for c in history.comments] == ["c0", "c1", "c2"]
        assert [p.id for p in history.posts] == ["p0"]

    @pytest.mark.asyncio
    async def test_caps_are_honored(self, reddit_factory):
        comments = listing([raw_comment(i) for i in range(10)], after="t1_a")
        reddit = reddit_factory(alice_routes(comments=comments))

        history = await reddit.get_full_user_data("alice", max_comments=15, max_posts=1)

        assert len(history.comments) == 15
        assert len(history.posts) == 1

    @pytest.mark.asyncio
    async def test_request_ceiling_from_ingestion_config(self, reddit_factory):
        comments = listing([raw_comment(0)], after="t1_a")
        routes = alice_routes(comments=comments)
        reddit = reddit_factory(routes, IngestionConfig(max_comment_requests=4, page_delay=0))

        history = await reddit.get_full_user_data("alice")

        assert routes.paths.count("/user/alice/comments.json") == 4
        assert len(history.comments) == 4

    @pytest.mark.asyncio
    async def test_listing_failure_cuts_history_short(self, reddit_factory):
        routes = alice_routes(posts=httpx.Response(500))
        reddit = reddit_factory(routes)

        history = await reddit.get_full_user_data("alice")

        assert len(history.comments) == 3
        assert history.posts == []

    @pytest.mark.asyncio
    async def test_missing_user_raises(self, reddit_factory):
        reddit = reddit_factory(alice_routes())

        with pytest.raises(NotFoundError):
            await reddit.get_full_user_data("ghost")

    @pytest.mark.asyncio
    async def test_page_delay_between_pages(self, reddit_factory, no_sleep):
        pages = [
            listing([raw_comment(0)], after="t1_a"),
            listing([raw_comment(1)]),
        ]
        reddit = reddit_factory(alice_routes(comments=pages))

        await reddit.get_full_user_data("alice")

        assert no_sleep.delays == [1.0]


class TestHealth:
    """Test the health probe."""

    @pytest.mark.asyncio
    async def test_healthy(self, reddit_factory):
        routes = alice_routes()
        reddit = reddit_factory(routes)

        assert await reddit.health_check() is True
        assert routes.paths == ["/r/test.json"]

    @pytest.mark.asyncio
    async def test_unhealthy(self, reddit_factory):
        reddit = reddit_factory(RedditRoutes({"/r/test.json": httpx.Response(503)}))

        assert await reddit.health_check() is False
