"""
Core components for the ThoughtPolice analysis core.

Abstract interfaces for the collaborators the orchestrator depends on,
and the exception taxonomy shared by every layer.
"""

from .interfaces import (
    HistorySource,
    ScoringPipeline
)

from .exceptions import (
    ThoughtPoliceError,
    ValidationError,
    ConfigurationError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ServiceUnavailableError,
    FetchTimeoutError,
    FetchError,
    ScoringError,
    AnalysisTimeoutError
)

__all__ = [
    # Interfaces
    'HistorySource',
    'ScoringPipeline',

    # Exceptions
    'ThoughtPoliceError',
    'ValidationError',
    'ConfigurationError',
    'NetworkError',
    'NotFoundError',
    'RateLimitedError',
    'ServerError',
    'ServiceUnavailableError',
    'FetchTimeoutError',
    'FetchError',
    'ScoringError',
    'AnalysisTimeoutError'
]
