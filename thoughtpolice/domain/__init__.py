"""Domain models for the analysis core."""

from .models import (
    Comment,
    Post,
    UserProfile,
    UserPreview,
    UserHistory,
    Finding,
    ReportStats,
    AnalysisReport,
    ScoringRequest,
    AnalysisStatus,
    Analysis,
    ProgressEvent,
    normalize_username,
    is_substantive_text,
)

__all__ = [
    'Comment',
    'Post',
    'UserProfile',
    'UserPreview',
    'UserHistory',
    'Finding',
    'ReportStats',
    'AnalysisReport',
    'ScoringRequest',
    'AnalysisStatus',
    'Analysis',
    'ProgressEvent',
    'normalize_username',
    'is_substantive_text',
]
