"""
Analysis Orchestrator.

Coordinates one contradiction analysis end to end: validate the target,
stream their history, hand it to the scoring pipeline, aggregate the
findings into a confidence score, then charge the budget and cache the
result. Failures never escape ``analyze_user``; they come back as a
``failed`` Analysis carrying the error code.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from ..core.exceptions import (
    AnalysisTimeoutError,
    NotFoundError,
    ThoughtPoliceError,
    ValidationError,
)
from ..domain.models import (
    Analysis,
    AnalysisReport,
    AnalysisStatus,
    ProgressEvent,
    ScoringRequest,
    UserPreview,
    normalize_username,
)
from ..foundation.config import AnalysisConfig
from ..foundation.logging import (
    LoggerMixin,
    correlation_id,
    generate_correlation_id,
)
from ..foundation.types import AnalysisStage
from .confidence import calculate_weighted_confidence
from .context import AnalysisContext

DEFAULT_ANALYZER_ID = "1"


class AnalysisOrchestrator(LoggerMixin):
    """Runs analyses against the collaborators held by an AnalysisContext."""

    def __init__(
        self,
        context: AnalysisContext,
        config: Optional[AnalysisConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        verbose: bool = False
    ):
        """Initialize the orchestrator.

        Args:
            context: Source, scoring pipeline, budget and cache
            config: Per-run bounds (history caps, batch delay, timeout)
            sleep: Delay between batch entries, injectable for tests
            clock: Epoch-seconds clock for ids and analysis dates
            verbose: Trace each stage at DEBUG
        """
        self.context = context
        self.config = config or AnalysisConfig()
        self._sleep = sleep
        self._clock = clock
        self.verbose = verbose

    def set_verbose(self, verbose: bool) -> None:
        super().set_verbose(verbose)
        source_set_verbose = getattr(self.context.source, "set_verbose", None)
        if source_set_verbose is not None:
            source_set_verbose(verbose)

    async def analyze_user(
        self,
        username: str,
        analyzer_user_id: str = DEFAULT_ANALYZER_ID,
        cancel_event: Optional[asyncio.Event] = None
    ) -> Analysis:
        """Analyze one user. Never raises except on task cancellation."""
        token = correlation_id.set(generate_correlation_id())
        try:
            return await self._analyze(username, analyzer_user_id, cancel_event)
        finally:
            correlation_id.reset(token)

    async def _analyze(
        self,
        username: str,
        analyzer_user_id: str,
        cancel_event: Optional[asyncio.Event]
    ) -> Analysis:
        timeout = self.config.analysis_timeout_seconds
        try:
            if timeout is not None:
                clean, report = await asyncio.wait_for(
                    self._fetch_and_score(username, cancel_event), timeout
                )
            else:
                clean, report = await self._fetch_and_score(username, cancel_event)
        except asyncio.TimeoutError:
            if cancel_event is not None:
                cancel_event.set()
            return self._failed_analysis(
                username, analyzer_user_id, AnalysisTimeoutError(timeout, username=username)
            )
        except ThoughtPoliceError as e:
            self.logger.warning(
                "Analysis failed",
                target=username,
                error=e.message,
                error_code=e.error_code
            )
            return self._failed_analysis(username, analyzer_user_id, e)
        except Exception as e:
            self.logger.exception("Unexpected analysis failure", target=username)
            return self._failed_analysis(username, analyzer_user_id, e)

        analysis = self._completed_analysis(clean, analyzer_user_id, report)
        self._charge(clean, report.cost)
        self.context.cache.put(clean, analysis)

        self.logger.info(
            "Analysis complete",
            target=clean,
            analysis_id=analysis.id,
            contradictions_found=analysis.contradictions_found,
            confidence_score=analysis.confidence_score
        )
        return analysis

    async def _fetch_and_score(
        self,
        username: str,
        cancel_event: Optional[asyncio.Event]
    ) -> Tuple[str, AnalysisReport]:
        clean = self._require_username(username)
        self.trace("Starting analysis", target=clean, stage=AnalysisStage.VALIDATION.value)

        status = self.context.budget.get_status()
        self.trace("Budget status", **status.to_dict())
        if status.is_warning:
            self.logger.warning(
                f"Budget warning: {status.percentage:.1f}% used",
                spend=status.spend,
                ceiling=status.ceiling
            )

        self.trace("Fetching history", target=clean, stage=AnalysisStage.FETCHING.value)
        history = await self.context.source.get_full_user_data(
            clean,
            max_comments=self.config.max_comments,
            max_posts=self.config.max_posts,
            max_age_days=self.config.max_age_days,
            cancel_event=cancel_event
        )

        self.trace(
            "Scoring history",
            target=clean,
            stage=AnalysisStage.ANALYZING.value,
            comments=len(history.comments),
            posts=len(history.posts)
        )
        report = await self.context.scoring.analyze(
            ScoringRequest(comments=history.comments, posts=history.posts, target_name=clean)
        )
        return clean, report

    @staticmethod
    def _require_username(username: str) -> str:
        clean = normalize_username(username)
        if not clean:
            raise ValidationError("Username is required", field="username", value=username)
        return clean

    def _charge(self, clean: str, cost: float) -> None:
        """Record what the run cost; a rejected amount is logged, never raised."""
        if not cost:
            return
        try:
            self.context.budget.record_spend(cost)
        except ThoughtPoliceError as e:
            self.logger.error(
                "Could not record analysis spend",
                target=clean,
                cost=cost,
                error=e.message,
                error_code=e.error_code
            )

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def _completed_analysis(self, clean: str, analyzer_user_id: str, report: AnalysisReport) -> Analysis:
        now = self._now()
        return Analysis(
            id=f"analysis-{int(now.timestamp() * 1000)}-{clean}",
            target_username=clean,
            analyzer_user_id=analyzer_user_id,
            contradictions_found=len(report.contradictions),
            confidence_score=calculate_weighted_confidence(report.contradictions, now=now),
            analysis_date=now,
            report_data=report,
            status=AnalysisStatus.COMPLETED
        )

    def _failed_analysis(self, username: str, analyzer_user_id: str, error: Exception) -> Analysis:
        now = self._now()
        if isinstance(error, ThoughtPoliceError):
            message, code = error.message, error.error_code
        else:
            message, code = str(error) or "Unknown error occurred", "ANALYSIS_ERROR"
        return Analysis(
            id=f"analysis-failed-{int(now.timestamp() * 1000)}",
            target_username=username or "",
            analyzer_user_id=analyzer_user_id,
            contradictions_found=0,
            confidence_score=0,
            analysis_date=now,
            report_data=AnalysisReport.failed(message),
            status=AnalysisStatus.FAILED,
            error=message,
            error_code=code
        )

    async def analyze_user_stream(
        self,
        username: str,
        analyzer_user_id: str = DEFAULT_ANALYZER_ID
    ) -> AsyncIterator[ProgressEvent]:
        """Run an analysis while reporting progress.

        Stages arrive in order: validation, fetching (with the preview),
        analyzing (with the raw report), complete (with the Analysis). Any
        failure ends the stream with a single ``error`` event.
        """
        yield ProgressEvent(stage=AnalysisStage.VALIDATION, progress=0)

        try:
            clean = self._require_username(username)
            if not await self.context.source.user_exists(clean):
                raise NotFoundError()
            error_event = None
        except ThoughtPoliceError as e:
            error_event = self._error_event(e.message)

        if error_event is not None:
            yield error_event
            return

        yield ProgressEvent(stage=AnalysisStage.VALIDATION, progress=100)

        yield ProgressEvent(stage=AnalysisStage.FETCHING, progress=0)
        preview: UserPreview = await self.context.source.get_user_preview(clean)
        yield ProgressEvent(stage=AnalysisStage.FETCHING, progress=100, data=preview)

        yield ProgressEvent(stage=AnalysisStage.ANALYZING, progress=0)
        analysis = await self.analyze_user(clean, analyzer_user_id)
        if analysis.is_failed:
            yield self._error_event(analysis.error)
            return
        yield ProgressEvent(stage=AnalysisStage.ANALYZING, progress=100, data=analysis.report_data)

        yield ProgressEvent(stage=AnalysisStage.COMPLETE, progress=100, data=analysis)

    @staticmethod
    def _error_event(message: Optional[str]) -> ProgressEvent:
        return ProgressEvent(
            stage=AnalysisStage.ERROR,
            progress=0,
            data={"error": message or "Unknown error occurred"}
        )

    async def analyze_batch(
        self,
        usernames: List[str],
        analyzer_user_id: str = DEFAULT_ANALYZER_ID,
        on_result: Optional[Callable[[str, Analysis], None]] = None
    ) -> List[Analysis]:
        """Analyze users one after another; only completed analyses are returned."""
        results: List[Analysis] = []

        for index, username in enumerate(usernames):
            analysis = await self.analyze_user(username, analyzer_user_id)
            if on_result is not None:
                on_result(username, analysis)

            if analysis.is_completed:
                results.append(analysis)
            else:
                self.trace("Batch entry failed", target=username, error=analysis.error)

            if index < len(usernames) - 1:
                await self._sleep(self.config.batch_delay)

        self.logger.info(
            "Batch analysis complete",
            requested=len(usernames),
            completed=len(results)
        )
        return results

    async def validate_username(self, username: str) -> bool:
        clean = normalize_username(username)
        if not clean:
            return False
        return await self.context.source.user_exists(clean)

    async def get_user_preview(self, username: str) -> UserPreview:
        clean = normalize_username(username)
        if not clean:
            return UserPreview.absent()
        return await self.context.source.get_user_preview(clean)

    def get_cached_analysis(self, username: str) -> Optional[Analysis]:
        return self.context.cache.get(username)

    def clear_user_cache(self, username: str) -> bool:
        return self.context.cache.clear(username)

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.context.cache.stats()

    def get_budget_stats(self) -> Dict[str, Any]:
        return {
            "budget": self.context.budget.get_status().to_dict(),
            "usage": self.context.budget.get_usage_stats(),
        }

    def set_budget(self, max_dollar: float, warning_threshold: float = 80.0) -> None:
        self.context.budget.configure(max_dollar, warning_threshold)

    def reset_budget(self) -> None:
        self.context.budget.reset()

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            "cache": self.context.cache.get_debug_info(),
            "cache_stats": self.get_cache_stats(),
            "budget": self.get_budget_stats(),
            "scoring": self.context.scoring.describe(),
            "verbose": self.verbose,
        }

    async def health_check(self) -> Dict[str, Any]:
        """Probe collaborators: all up is healthy, one down degraded, worse unhealthy."""
        services = {
            "reddit": await self.context.source.health_check(),
            "scoring": await self.context.scoring.health_check(),
            "cache": True,
        }
        healthy = sum(1 for ok in services.values() if ok)
        if healthy == len(services):
            status = "healthy"
        elif healthy >= len(services) - 1:
            status = "degraded"
        else:
            status = "unhealthy"

        return {
            "status": status,
            "services": services,
            "budget": self.get_budget_stats(),
        }
