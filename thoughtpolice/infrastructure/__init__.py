"""Shared in-process state: spend budget and result cache."""

from .budget import BudgetTracker, BudgetStatus, BudgetState
from .cache import ResultCache, CacheEntry, cache_key

__all__ = [
    'BudgetTracker',
    'BudgetStatus',
    'BudgetState',
    'ResultCache',
    'CacheEntry',
    'cache_key',
]
