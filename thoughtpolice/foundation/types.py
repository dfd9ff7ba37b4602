"""Common types and enums shared across the analysis core."""

from enum import Enum
from typing import Any
from dataclasses import dataclass


class AnalysisStage(str, Enum):
    """Stages of the analysis progress protocol."""
    VALIDATION = "validation"
    FETCHING = "fetching"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


class LogLevel(Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ConfigValidationError(Exception):
    """Configuration validation error."""
    field: str
    message: str
    value: Any = None

    def __str__(self):
        return f"Configuration error in '{self.field}': {self.message}"
