"""
FastAPI application exposing the analysis core over HTTP.

Endpoints:
- POST /api/analyze: run one analysis and return its report
- POST /api/analyze/stream: same, as newline-delimited progress events
- GET /api/users/{username}/preview: cheap account preview
- cache, budget and health management endpoints
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from . import __version__
from .core.exceptions import ConfigurationError
from .foundation.config import AppConfig, load_config
from .foundation.logging import setup_logging
from .orchestration.analysis_orchestrator import AnalysisOrchestrator
from .orchestration.context import AnalysisContext

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_CODE = {
    "VALIDATION_ERROR": 400,
    "NOT_FOUND": 404,
}


class AnalyzeRequest(BaseModel):
    username: Optional[str] = None
    verbose: bool = False


class BudgetUpdateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_dollar: float
    warning_threshold: float = Field(default=80.0)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    return request.app.state.orchestrator


router = APIRouter(prefix="/api")


@router.post("/analyze")
async def analyze(
    body: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """Analyze a user and return the report, or ``{error}`` with 400/404/500."""
    if not body.username or not body.username.strip():
        return _error("Username is required", 400)

    if body.verbose:
        orchestrator.set_verbose(True)

    logger.info("Starting analysis for user: %s", body.username)
    analysis = await orchestrator.analyze_user(body.username)

    if analysis.is_failed:
        return _error(
            analysis.error or "Analysis failed",
            STATUS_BY_ERROR_CODE.get(analysis.error_code, 500)
        )
    return analysis.report_data.model_dump(mode="json", by_alias=True)


@router.post("/analyze/stream")
async def analyze_stream(
    body: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    if body.verbose:
        orchestrator.set_verbose(True)

    async def ndjson() -> AsyncIterator[str]:
        async for event in orchestrator.analyze_user_stream(body.username or ""):
            yield json.dumps(event.to_dict(), default=str) + "\n"

    return StreamingResponse(ndjson(), media_type="application/x-ndjson")


@router.get("/users/{username}/preview")
async def user_preview(username: str, orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    preview = await orchestrator.get_user_preview(username)
    return preview.model_dump(by_alias=True)


@router.get("/cache/stats")
async def cache_stats(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    return orchestrator.get_cache_stats()


@router.get("/cache/{username}")
async def cached_analysis(username: str, orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    analysis = orchestrator.get_cached_analysis(username)
    if analysis is None:
        return _error("No cached analysis", 404)
    return analysis.model_dump(mode="json", by_alias=True)


@router.delete("/cache/{username}")
async def clear_cached_analysis(username: str, orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    return {"cleared": orchestrator.clear_user_cache(username)}


@router.get("/budget")
async def budget_stats(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    return orchestrator.get_budget_stats()


@router.put("/budget")
async def update_budget(
    body: BudgetUpdateRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    try:
        orchestrator.set_budget(body.max_dollar, body.warning_threshold)
    except ConfigurationError as e:
        return _error(e.message, 400)
    return orchestrator.get_budget_stats()


@router.post("/budget/reset")
async def reset_budget(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    orchestrator.reset_budget()
    return orchestrator.get_budget_stats()


@router.get("/health")
async def health(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    report = await orchestrator.health_check()
    status_code = 503 if report["status"] == "unhealthy" else 200
    return JSONResponse(report, status_code=status_code)


def create_app(
    context: Optional[AnalysisContext] = None,
    config: Optional[AppConfig] = None
) -> FastAPI:
    """Create the application.

    With no context, one is built from the environment at startup and
    closed at shutdown. A context passed in stays owned by the caller.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        app_config = config
        owned: Optional[AnalysisContext] = None
        if context is None:
            app_config = app_config or load_config()
            setup_logging(app_config.log_level, structured=app_config.structured_logging)
            owned = AnalysisContext.from_config(app_config)
        app_config = app_config or AppConfig()

        orchestrator = AnalysisOrchestrator(context or owned, config=app_config.analysis)
        orchestrator.set_verbose(app_config.verbose)
        app.state.orchestrator = orchestrator
        logger.info("ThoughtPolice API v%s started", __version__)

        yield

        if owned is not None:
            await owned.aclose()
        logger.info("ThoughtPolice API stopped")

    app = FastAPI(
        title="ThoughtPolice",
        version=__version__,
        description="Contradiction analysis over a Reddit user's public history.",
        lifespan=lifespan
    )
    app.include_router(router)
    return app


app = create_app()
