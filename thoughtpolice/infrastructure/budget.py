"""Process-wide spend tracking against a configured ceiling."""

import math
import threading
import time
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from ..core.exceptions import ConfigurationError, ValidationError
from ..foundation.config import BudgetConfig
from ..foundation.logging import get_logger, LogContext


@dataclass
class BudgetState:
    """Mutable tracker state. Only BudgetTracker touches it, under its lock."""
    max_dollar: float
    warning_threshold: float = 80.0
    spend: float = 0.0
    record_count: int = 0
    last_recorded_at: Optional[float] = None


@dataclass(frozen=True)
class BudgetStatus:
    """Snapshot of the budget at one point in time."""
    spend: float
    ceiling: float
    percentage: float
    is_warning: bool
    remaining: float
    warning_threshold: float = 80.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BudgetTracker:
    """Thread-safe cumulative spend counter.

    Spend only grows between resets. Crossing the warning threshold is
    reported through ``get_status().is_warning``; the tracker itself never
    refuses a charge.
    """

    def __init__(
        self,
        max_dollar: float = 100.0,
        warning_threshold: float = 80.0,
        clock: Callable[[], float] = time.time
    ):
        self._lock = threading.Lock()
        self._clock = clock
        self.logger = get_logger(__name__, LogContext(component="BudgetTracker"))
        self._validate_settings(max_dollar, warning_threshold)
        self._state = BudgetState(max_dollar=float(max_dollar), warning_threshold=float(warning_threshold))

    @classmethod
    def from_config(cls, config: BudgetConfig) -> "BudgetTracker":
        return cls(max_dollar=config.max_dollar, warning_threshold=config.warning_threshold)

    @staticmethod
    def _validate_settings(max_dollar: float, warning_threshold: float) -> None:
        if not isinstance(max_dollar, (int, float)) or not math.isfinite(max_dollar) or max_dollar <= 0:
            raise ConfigurationError(
                f"Budget ceiling must be a positive number, got {max_dollar!r}",
                config_key="max_dollar"
            )
        if not isinstance(warning_threshold, (int, float)) or not 0 <= warning_threshold <= 100:
            raise ConfigurationError(
                f"Warning threshold must be between 0 and 100, got {warning_threshold!r}",
                config_key="warning_threshold"
            )

    def configure(self, max_dollar: float, warning_threshold: float = 80.0) -> None:
        """Set a new ceiling and threshold and start a fresh period."""
        self._validate_settings(max_dollar, warning_threshold)
        with self._lock:
            self._state = BudgetState(
                max_dollar=float(max_dollar),
                warning_threshold=float(warning_threshold)
            )
        self.logger.info(
            "Budget configured",
            max_dollar=max_dollar,
            warning_threshold=warning_threshold
        )

    def record_spend(self, amount: float) -> BudgetStatus:
        """Add a charge and return the resulting status."""
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount):
            raise ValidationError("Spend amount must be a finite number", field="amount", value=amount)
        if amount < 0:
            raise ValidationError("Spend amount cannot be negative", field="amount", value=amount)

        with self._lock:
            was_warning = self._status_locked().is_warning
            self._state.spend += float(amount)
            self._state.record_count += 1
            self._state.last_recorded_at = self._clock()
            status = self._status_locked()

        if status.is_warning and not was_warning:
            self.logger.warning(
                "Budget warning threshold reached",
                spend=round(status.spend, 4),
                ceiling=status.ceiling,
                percentage=round(status.percentage, 2)
            )
        return status

    def get_status(self) -> BudgetStatus:
        with self._lock:
            return self._status_locked()

    def _status_locked(self) -> BudgetStatus:
        state = self._state
        percentage = state.spend * 100.0 / state.max_dollar
        return BudgetStatus(
            spend=state.spend,
            ceiling=state.max_dollar,
            percentage=percentage,
            is_warning=percentage >= state.warning_threshold,
            remaining=max(state.max_dollar - state.spend, 0.0),
            warning_threshold=state.warning_threshold
        )

    def reset(self) -> None:
        """Zero the spend; ceiling and threshold are kept."""
        with self._lock:
            self._state = BudgetState(
                max_dollar=self._state.max_dollar,
                warning_threshold=self._state.warning_threshold
            )
        self.logger.info("Budget reset")

    def get_usage_stats(self) -> Dict[str, Any]:
        with self._lock:
            state = self._state
            return {
                "record_count": state.record_count,
                "total_spend": state.spend,
                "average_spend": state.spend / state.record_count if state.record_count else 0.0,
                "last_recorded_at": (
                    datetime.fromtimestamp(state.last_recorded_at, tz=timezone.utc).isoformat()
                    if state.last_recorded_at is not None else None
                ),
            }
