"""
Core interfaces for the analysis core.

The orchestrator only talks to these abstractions, so tests can swap in
fakes and deployments can swap the scoring backend.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..domain.models import (
    AnalysisReport,
    ScoringRequest,
    UserHistory,
    UserPreview,
    UserProfile,
)


class HistorySource(ABC):
    """Source of user profiles and bounded user history."""

    @abstractmethod
    async def get_user_info(self, username: str) -> UserProfile:
        """Fetch account metadata.

        Raises:
            NotFoundError: if the account does not exist
        """
        pass

    @abstractmethod
    async def get_user_preview(self, username: str) -> UserPreview:
        """Fetch a cheap preview. Never raises; absent users yield UserPreview.absent()."""
        pass

    @abstractmethod
    async def get_full_user_data(
        self,
        username: str,
        max_comments: int = 5000,
        max_posts: int = 1000,
        max_age_days: int = 365,
        cancel_event: Optional[asyncio.Event] = None
    ) -> UserHistory:
        """Fetch profile, comments and posts within the given bounds."""
        pass

    @abstractmethod
    async def user_exists(self, username: str) -> bool:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        return None


class ScoringPipeline(ABC):
    """Opaque contradiction scoring service.

    Input is ``{comments, posts, targetName}``. Output is a report with
    summary, contradictions, timeline and stats, plus an optional cost.
    """

    @abstractmethod
    async def analyze(self, request: ScoringRequest) -> AnalysisReport:
        """Score a user's history.

        Raises:
            ScoringError: if the service fails or returns a malformed report
        """
        pass

    async def health_check(self) -> bool:
        return True

    def describe(self) -> Dict[str, Any]:
        return {"type": self.__class__.__name__}

    async def aclose(self) -> None:
        return None
