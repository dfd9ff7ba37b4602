"""
Orchestration layer.

Ties the history source, scoring pipeline, budget and cache together into
single, streamed and batched analyses.
"""

from .analysis_orchestrator import AnalysisOrchestrator
from .confidence import calculate_weighted_confidence
from .context import AnalysisContext

__all__ = [
    'AnalysisOrchestrator',
    'AnalysisContext',
    'calculate_weighted_confidence',
]
