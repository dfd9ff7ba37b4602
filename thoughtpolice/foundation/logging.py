"""Structured logging with correlation IDs and per-component verbose tracing."""

import logging
import logging.config
import json
import traceback
import uuid
from datetime import datetime
from typing import Dict, Any, Optional, Union
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from pathlib import Path

from .types import LogLevel, AnalysisStage

# Context variable for correlation ID tracking
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)


@dataclass
class LogContext:
    """Structured logging context."""
    correlation_id: Optional[str] = None
    stage: Optional[AnalysisStage] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, filtering out None values."""
        data = asdict(self)
        if self.stage is not None:
            data['stage'] = self.stage.value
        return {k: v for k, v in data.items() if v is not None}


class StructuredFormatter(logging.Formatter):
    """Formats log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        corr_id = correlation_id.get()
        if corr_id:
            log_data['correlation_id'] = corr_id

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        fields = getattr(record, 'fields', None)
        if fields:
            log_data.update(fields)

        context = getattr(record, 'context', None)
        if context is not None:
            log_data.update(context.to_dict() if isinstance(context, LogContext) else context)

        return json.dumps(log_data, default=str)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that attaches a LogContext to every record."""

    def __init__(self, logger: logging.Logger, context: LogContext):
        super().__init__(logger, {})
        self.context = context

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.setdefault('extra', {})
        extra['context'] = self.context
        return msg, kwargs


class PipelineLogger:
    """Logger accepting structured keyword fields.

    ``logger.info("Fetched page", items=12)`` renders ``items`` as a JSON
    field under the structured formatter and is ignored by plain formatters.
    """

    def __init__(self, name: str, context: Optional[LogContext] = None):
        self.logger = logging.getLogger(name)
        self.context = context or LogContext()
        self.adapter = ContextualLoggerAdapter(self.logger, self.context)

    def debug(self, msg: str, **kwargs) -> None:
        self.adapter.debug(msg, extra={'fields': kwargs})

    def info(self, msg: str, **kwargs) -> None:
        self.adapter.info(msg, extra={'fields': kwargs})

    def warning(self, msg: str, **kwargs) -> None:
        self.adapter.warning(msg, extra={'fields': kwargs})

    def error(self, msg: str, **kwargs) -> None:
        self.adapter.error(msg, extra={'fields': kwargs})

    def exception(self, msg: str, **kwargs) -> None:
        """Log exception with traceback."""
        self.adapter.exception(msg, extra={'fields': kwargs})

    def with_context(self, **kwargs) -> 'PipelineLogger':
        """Create a new logger with updated context."""
        new_context = LogContext(**{**asdict(self.context), **kwargs})
        return PipelineLogger(self.logger.name, new_context)


def setup_logging(
    level: Union[str, LogLevel] = LogLevel.INFO,
    log_file: Optional[str] = None,
    structured: bool = True,
    console: bool = True
) -> None:
    """Setup logging configuration."""
    if isinstance(level, str):
        level = LogLevel(level.upper())

    handlers = {}

    if console:
        handlers['console'] = {
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stderr',
            'formatter': 'structured' if structured else 'simple',
            'level': level.value
        }

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(log_path),
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'formatter': 'structured' if structured else 'simple',
            'level': level.value
        }

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            },
            'structured': {
                '()': StructuredFormatter
            }
        },
        'handlers': handlers,
        'root': {
            'level': level.value,
            'handlers': list(handlers.keys())
        }
    }

    logging.config.dictConfig(config)


def get_logger(name: str, context: Optional[LogContext] = None) -> PipelineLogger:
    """Get a pipeline logger with optional context."""
    return PipelineLogger(name, context)


def set_correlation_id(corr_id: str):
    """Set correlation ID for current context and return the reset token."""
    return correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return correlation_id.get()


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


class LoggerMixin:
    """Adds a component logger and a per-instance verbose switch.

    Verbose tracing is independent per component: turning it on for the
    Reddit client does not make the orchestrator chatty, and vice versa.
    """

    verbose: bool = False
    _logger: Optional[PipelineLogger] = None

    @property
    def logger(self) -> PipelineLogger:
        """Get logger for this component."""
        if self._logger is None:
            self._logger = get_logger(
                self.__class__.__module__,
                LogContext(component=self.__class__.__name__)
            )
        return self._logger

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = bool(verbose)

    def trace(self, msg: str, **kwargs) -> None:
        """Emit a debug record only when verbose mode is on."""
        if self.verbose:
            self.logger.debug(msg, **kwargs)
