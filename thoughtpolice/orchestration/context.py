"""Explicit container for the collaborators an analysis run needs."""

from dataclasses import dataclass, field
from typing import Optional

from ..core.interfaces import HistorySource, ScoringPipeline
from ..data_acquisition.http_client import HttpRetryClient
from ..data_acquisition.reddit import RedditAcquisition
from ..foundation.config import AppConfig
from ..infrastructure.budget import BudgetTracker
from ..infrastructure.cache import ResultCache
from ..scoring.remote import RemoteScoringPipeline


@dataclass
class AnalysisContext:
    """History source, scoring pipeline, budget and cache for one process.

    Whoever builds the context owns it and closes it with ``aclose()``.
    """
    source: HistorySource
    scoring: ScoringPipeline
    budget: BudgetTracker = field(default_factory=BudgetTracker)
    cache: ResultCache = field(default_factory=ResultCache)

    @classmethod
    def from_config(cls, config: AppConfig, scoring: Optional[ScoringPipeline] = None) -> "AnalysisContext":
        source = RedditAcquisition(
            http=HttpRetryClient(config.http),
            ingestion=config.ingestion,
            verbose=config.verbose
        )
        return cls(
            source=source,
            scoring=scoring or RemoteScoringPipeline.from_config(config.scoring),
            budget=BudgetTracker.from_config(config.budget),
            cache=ResultCache.from_config(config.cache)
        )

    async def aclose(self) -> None:
        await self.source.aclose()
        await self.scoring.aclose()
