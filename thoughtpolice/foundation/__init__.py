"""Foundation layer for the ThoughtPolice analysis core."""

from .config import ConfigManager, AppConfig, load_config
from .logging import get_logger, setup_logging, LoggerMixin
from .types import *

__all__ = [
    "ConfigManager",
    "AppConfig",
    "load_config",
    "get_logger",
    "setup_logging",
    "LoggerMixin",
    "AnalysisStage",
    "LogLevel",
    "ConfigValidationError",
]
