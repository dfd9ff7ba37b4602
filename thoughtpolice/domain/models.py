"""Domain models for user history, findings and analysis results."""

import math
from datetime import datetime, timezone
from typing import List, Dict, Optional, Any, Union
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..foundation.types import AnalysisStage

SENTINEL_BODIES = frozenset({"[deleted]", "[removed]"})
MIN_BODY_LENGTH = 20


def is_substantive_text(text: Optional[str]) -> bool:
    """True for text that is present, not a removal sentinel and longer than 20 chars."""
    return bool(text) and text not in SENTINEL_BODIES and len(text) > MIN_BODY_LENGTH


def normalize_username(username: str) -> str:
    """Trim whitespace and strip a leading ``u/`` prefix."""
    clean = (username or "").strip()
    if clean.startswith("u/"):
        clean = clean[2:]
    return clean


class CamelModel(BaseModel):
    """Base for models exchanged with the scoring service and HTTP clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Comment(BaseModel):
    """A single user comment, keyed with the listing API's field names."""

    id: str
    body: str
    created_utc: float = Field(..., description="Creation time, epoch seconds")
    subreddit: str = ""
    score: int = 0
    permalink: str = ""
    author: str = ""
    link_title: Optional[str] = None

    @field_validator('body')
    @classmethod
    def validate_body(cls, v):
        if not is_substantive_text(v):
            raise ValueError("comment body is empty, removed or too short")
        return v

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created_utc, tz=timezone.utc)


class Post(BaseModel):
    """A self post submitted by the user."""

    id: str
    title: str = ""
    selftext: str
    created_utc: float
    subreddit: str = ""
    score: int = 0
    permalink: str = ""
    author: str = ""
    num_comments: int = 0

    @field_validator('selftext')
    @classmethod
    def validate_selftext(cls, v):
        if not is_substantive_text(v):
            raise ValueError("post body is empty, removed or too short")
        return v

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created_utc, tz=timezone.utc)


class UserProfile(BaseModel):
    """Account metadata from the profile endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str
    created_utc: float
    comment_karma: int = 0
    link_karma: int = 0
    total_karma: int = 0
    verified: bool = False
    is_mod: bool = False
    is_gold: bool = False

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created_utc, tz=timezone.utc)


class UserPreview(CamelModel):
    """Cheap summary of an account, shown before a full analysis."""

    exists: bool
    karma: int = 0
    account_age: str = "Unknown"
    has_recent_activity: bool = False
    estimated_volume: int = 0

    @classmethod
    def absent(cls) -> "UserPreview":
        return cls(exists=False, karma=0, account_age="Unknown",
                   has_recent_activity=False, estimated_volume=0)


class UserHistory(BaseModel):
    """Profile plus the bounded comment and post history of one user."""

    user: UserProfile
    comments: List[Comment] = Field(default_factory=list)
    posts: List[Post] = Field(default_factory=list)


class Finding(CamelModel):
    """One detected contradiction.

    Only the fields used for confidence aggregation are typed. Whatever
    else the scoring service sends is kept as-is. A typed field that does
    not parse falls back to its default instead of rejecting the report.
    """

    model_config = ConfigDict(extra="allow")

    confidence_score: Optional[float] = None
    verified: bool = False
    dates: Optional[List[datetime]] = None

    @field_validator('confidence_score', mode='wrap')
    @classmethod
    def lenient_confidence(cls, v, handler):
        try:
            score = handler(v)
        except ValidationError:
            return None
        if score is None or not math.isfinite(score):
            return None
        return min(max(score, 0.0), 100.0)

    @field_validator('verified', mode='wrap')
    @classmethod
    def lenient_verified(cls, v, handler):
        try:
            return handler(v)
        except ValidationError:
            return False

    @field_validator('dates', mode='wrap')
    @classmethod
    def lenient_dates(cls, v, handler):
        # one bad entry discards the pair, so no recency weight applies
        try:
            return handler(v)
        except ValidationError:
            return None

    @property
    def effective_confidence(self) -> float:
        return 50.0 if self.confidence_score is None else self.confidence_score


class ReportStats(CamelModel):
    total_comments: int = 0
    timespan: str = "0 days"
    top_subreddits: List[str] = Field(default_factory=list)
    sentiment_trend: Union[float, str] = 0


class AnalysisReport(CamelModel):
    """Report produced by the scoring service.

    ``cost`` is what the run cost in currency units. It is charged to the
    budget and is not part of the serialized report.
    """

    summary: str = ""
    contradictions: List[Finding] = Field(default_factory=list)
    timeline: List[Dict[str, Any]] = Field(default_factory=list)
    stats: ReportStats = Field(default_factory=ReportStats)
    cost: float = Field(default=0.0, ge=0.0, allow_inf_nan=False, exclude=True)

    @classmethod
    def failed(cls, message: str) -> "AnalysisReport":
        return cls(summary=f"Analysis failed: {message}")


class ScoringRequest(CamelModel):
    """Input contract of the scoring service."""

    comments: List[Comment]
    posts: List[Post]
    target_name: str


class AnalysisStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class Analysis(BaseModel):
    """Result of one analysis run. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str
    target_username: str
    analyzer_user_id: str
    contradictions_found: int = Field(default=0, ge=0)
    confidence_score: int = Field(default=0, ge=0, le=100)
    analysis_date: datetime
    report_data: AnalysisReport
    status: AnalysisStatus
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == AnalysisStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == AnalysisStatus.FAILED


class ProgressEvent(BaseModel):
    """One step of the progress protocol."""

    stage: AnalysisStage
    progress: int = Field(..., ge=0, le=100)
    data: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form, with pydantic payloads dumped by alias."""
        payload = {"stage": self.stage.value, "progress": self.progress}
        if self.data is not None:
            if isinstance(self.data, BaseModel):
                payload["data"] = self.data.model_dump(mode="json", by_alias=True)
            else:
                payload["data"] = self.data
        return payload
