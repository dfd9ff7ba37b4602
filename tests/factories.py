"""
Builders for listing payloads and in-memory fakes shared by the tests.
"""

from typing import Any, Callable, Dict, List, Optional

import httpx

from thoughtpolice.core.exceptions import NotFoundError
from thoughtpolice.core.interfaces import HistorySource, ScoringPipeline
from thoughtpolice.domain.models import (
    AnalysisReport,
    Comment,
    Post,
    ScoringRequest,
    UserHistory,
    UserPreview,
    UserProfile,
)
from thoughtpolice.foundation.config import HttpConfig
from thoughtpolice.data_acquisition.http_client import HttpRetryClient

# 2023-11-14T22:13:20Z
NOW = 1_700_000_000.0
DAY = 86400


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns at once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def raw_comment(index: int = 0, **overrides) -> Dict[str, Any]:
    data = {
        "id": f"c{index}",
        "body": f"This is a sufficiently long comment number {index}",
        "created_utc": NOW - DAY * (index + 1),
        "subreddit": "python",
        "score": 3,
        "permalink": f"/r/python/comments/x/c{index}",
        "author": "alice",
        "link_title": "A thread",
    }
    data.update(overrides)
    return data


def raw_post(index: int = 0, **overrides) -> Dict[str, Any]:
    data = {
        "id": f"p{index}",
        "title": f"Post {index}",
        "selftext": f"A self post body that is long enough to keep {index}",
        "created_utc": NOW - DAY * (index + 1),
        "subreddit": "python",
        "score": 10,
        "permalink": f"/r/python/comments/p{index}",
        "author": "alice",
        "num_comments": 2,
    }
    data.update(overrides)
    return data


def listing(records: List[Dict[str, Any]], after: Optional[str] = None, before: Optional[str] = None) -> Dict[str, Any]:
    return {
        "kind": "Listing",
        "data": {
            "children": [{"kind": "t1", "data": record} for record in records],
            "after": after,
            "before": before,
        },
    }


def about(name: str = "alice", **overrides) -> Dict[str, Any]:
    data = {
        "name": name,
        "created_utc": NOW - 400 * DAY,
        "comment_karma": 4000,
        "link_karma": 500,
        "total_karma": 4500,
        "verified": True,
        "is_gold": False,
        "is_mod": False,
    }
    data.update(overrides)
    return {"kind": "t2", "data": data}


def make_client(handler: Callable[[httpx.Request], httpx.Response], **config) -> HttpRetryClient:
    """HttpRetryClient over a MockTransport with instant backoff."""
    transport = httpx.MockTransport(handler)
    return HttpRetryClient(
        HttpConfig(**config),
        client=httpx.AsyncClient(transport=transport),
        sleep=RecordingSleep()
    )


class FakeSource(HistorySource):
    """In-memory history source."""

    def __init__(self, users: Optional[Dict[str, UserHistory]] = None):
        self.users = users or {}
        self.calls: List[str] = []
        self.healthy = True

    async def get_user_info(self, username: str) -> UserProfile:
        self.calls.append(f"info:{username}")
        if username not in self.users:
            raise NotFoundError()
        return self.users[username].user

    async def get_user_preview(self, username: str) -> UserPreview:
        self.calls.append(f"preview:{username}")
        if username not in self.users:
            return UserPreview.absent()
        user = self.users[username].user
        return UserPreview(exists=True, karma=user.total_karma, account_age="1 years",
                           has_recent_activity=True, estimated_volume=100)

    async def get_full_user_data(self, username, max_comments=5000, max_posts=1000,
                                 max_age_days=365, cancel_event=None) -> UserHistory:
        self.calls.append(f"full:{username}")
        if username not in self.users:
            raise NotFoundError()
        history = self.users[username]
        return UserHistory(
            user=history.user,
            comments=history.comments[:max_comments],
            posts=history.posts[:max_posts]
        )

    async def user_exists(self, username: str) -> bool:
        self.calls.append(f"exists:{username}")
        return username in self.users

    async def health_check(self) -> bool:
        return self.healthy


class FakeScoring(ScoringPipeline):
    """Scoring pipeline returning a canned report."""

    def __init__(self, report: Optional[AnalysisReport] = None, error: Optional[Exception] = None):
        self.report = report or AnalysisReport(summary="No contradictions")
        self.error = error
        self.requests: List[ScoringRequest] = []
        self.healthy = True

    async def analyze(self, request: ScoringRequest) -> AnalysisReport:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.report

    async def health_check(self) -> bool:
        return self.healthy


def make_history(name: str = "alice", comments: int = 3, posts: int = 1) -> UserHistory:
    return UserHistory(
        user=UserProfile.model_validate(about(name)["data"]),
        comments=[Comment.model_validate(raw_comment(i)) for i in range(comments)],
        posts=[Post.model_validate(raw_post(i)) for i in range(posts)],
    )


