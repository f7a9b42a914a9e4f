"""
infrastructure package

Shared building blocks for the SAT toolkit:
    - interfaces: engine contract (BaseReasoningEngine, ReasoningResult)
    - cache_manager: named TTL caches used for CNF memoization
"""

from infrastructure.cache_manager import CacheManager, NamedCache, get_cache_manager
from infrastructure.interfaces import BaseReasoningEngine, ReasoningResult

__all__ = [
    "BaseReasoningEngine",
    "ReasoningResult",
    "CacheManager",
    "NamedCache",
    "get_cache_manager",
]
