"""
ThoughtPolice analysis core

Ingests a Reddit user's public history through a bounded, retrying,
paginated client, sends it to an external contradiction scoring service
and turns the findings into a scored, cached analysis.

Layers:
1. Foundation (config, logging, retry)
2. Data acquisition (HTTP client, listing streams, Reddit source)
3. Infrastructure (budget tracker, result cache)
4. Scoring (remote scoring pipeline adapter)
5. Orchestration (analysis runs, progress stream, confidence aggregation)
"""

__version__ = "1.0.0"

from .orchestration import AnalysisOrchestrator, AnalysisContext, calculate_weighted_confidence
from .data_acquisition import RedditAcquisition, HttpRetryClient, ListingStream
from .infrastructure import BudgetTracker, ResultCache
from .scoring import RemoteScoringPipeline

__all__ = [
    # Orchestration
    'AnalysisOrchestrator',
    'AnalysisContext',
    'calculate_weighted_confidence',

    # Data acquisition
    'RedditAcquisition',
    'HttpRetryClient',
    'ListingStream',

    # Infrastructure
    'BudgetTracker',
    'ResultCache',

    # Scoring
    'RemoteScoringPipeline',
]
