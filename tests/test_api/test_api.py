"""Tests for the HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

from thoughtpolice.api import create_app
from thoughtpolice.core.exceptions import ScoringError
from thoughtpolice.domain.models import AnalysisReport, Finding
from thoughtpolice.infrastructure.budget import BudgetTracker
from thoughtpolice.infrastructure.cache import ResultCache
from thoughtpolice.orchestration import AnalysisContext

from factories import FakeScoring, FakeSource, make_history


@pytest.fixture
def source() -> FakeSource:
    return FakeSource({"alice": make_history("alice")})


@pytest.fixture
def scoring() -> FakeScoring:
    return FakeScoring(report=AnalysisReport(
        summary="One contradiction",
        contradictions=[Finding(confidence_score=70, verified=True, quote="Cats are great")],
        cost=1.25,
    ))


@pytest.fixture
def client(source, scoring):
    context = AnalysisContext(source=source, scoring=scoring, budget=BudgetTracker(), cache=ResultCache())
    with TestClient(create_app(context=context)) as test_client:
        yield test_client


@pytest.mark.integration
class TestAnalyzeEndpoint:
    """Test POST /api/analyze."""

    def test_success_returns_report(self, client):
        response = client.post("/api/analyze", json={"username": "u/alice"})

        assert response.status_code == 200
        body = response.json()
        assert body["summary"] == "One contradiction"
        assert body["contradictions"][0]["confidenceScore"] == 70.0
        assert body["contradictions"][0]["quote"] == "Cats are great"
        assert "cost" not in body

    @pytest.mark.parametrize("payload", [{}, {"username": ""}, {"username": "   "}])
    def test_missing_username(self, client, payload):
        response = client.post("/api/analyze", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Username is required"}

    def test_unknown_user(self, client):
        response = client.post("/api/analyze", json={"username": "ghost"})

        assert response.status_code == 404
        assert response.json() == {"error": "User not found"}

    def test_scoring_failure(self, client, scoring):
        scoring.error = ScoringError("Scoring service returned HTTP 502")

        response = client.post("/api/analyze", json={"username": "alice"})

        assert response.status_code == 500
        assert response.json() == {"error": "Scoring service returned HTTP 502"}

    def test_verbose_flag_turns_on_tracing(self, client):
        client.post("/api/analyze", json={"username": "alice", "verbose": True})

        assert client.app.state.orchestrator.verbose is True


@pytest.mark.integration
class TestStreamEndpoint:
    """Test POST /api/analyze/stream."""

    def test_ndjson_progress(self, client):
        response = client.post("/api/analyze/stream", json={"username": "alice"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")
        events = [json.loads(line) for line in response.text.splitlines() if line]
        assert [e["stage"] for e in events] == [
            "validation", "validation", "fetching", "fetching", "analyzing", "analyzing", "complete"
        ]
        assert events[-1]["data"]["confidence_score"] == 70

    def test_unknown_user_stream(self, client):
        response = client.post("/api/analyze/stream", json={"username": "ghost"})

        events = [json.loads(line) for line in response.text.splitlines() if line]
        assert events[-1] == {"stage": "error", "progress": 0, "data": {"error": "User not found"}}


class TestPreviewEndpoint:
    """Test GET /api/users/{username}/preview."""

    def test_known_user(self, client):
        response = client.get("/api/users/alice/preview")

        assert response.status_code == 200
        assert response.json()["exists"] is True
        assert response.json()["accountAge"] == "1 years"

    def test_unknown_user(self, client):
        assert client.get("/api/users/ghost/preview").json()["exists"] is False


class TestCacheEndpoints:
    """Test cache management endpoints."""

    def test_cached_analysis_lifecycle(self, client):
        assert client.get("/api/cache/alice").status_code == 404

        client.post("/api/analyze", json={"username": "alice"})

        cached = client.get("/api/cache/Alice")
        assert cached.status_code == 200
        assert cached.json()["target_username"] == "alice"
        assert client.get("/api/cache/stats").json()["entry_count"] == 1

        assert client.delete("/api/cache/alice").json() == {"cleared": True}
        assert client.delete("/api/cache/alice").json() == {"cleared": False}


class TestBudgetEndpoints:
    """Test budget endpoints."""

    def test_spend_is_reported(self, client):
        client.post("/api/analyze", json={"username": "alice"})

        body = client.get("/api/budget").json()

        assert body["budget"]["spend"] == 1.25
        assert body["usage"]["record_count"] == 1

    def test_update_and_reset(self, client):
        response = client.put("/api/budget", json={"maxDollar": 5, "warningThreshold": 10})
        assert response.status_code == 200
        assert response.json()["budget"]["ceiling"] == 5.0

        client.post("/api/analyze", json={"username": "alice"})
        assert client.get("/api/budget").json()["budget"]["is_warning"] is True

        reset = client.post("/api/budget/reset").json()
        assert reset["budget"]["spend"] == 0.0
        assert reset["budget"]["ceiling"] == 5.0

    def test_invalid_budget(self, client):
        response = client.put("/api/budget", json={"maxDollar": 0})

        assert response.status_code == 400
        assert "positive" in response.json()["error"]


class TestHealthEndpoint:
    """Test GET /api/health."""

    def test_healthy(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_degraded_is_still_200(self, client, scoring):
        scoring.healthy = False

        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_unhealthy_is_503(self, client, source, scoring):
        source.healthy = False
        scoring.healthy = False

        assert client.get("/api/health").status_code == 503
