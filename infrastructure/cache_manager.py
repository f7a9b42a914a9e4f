"""
infrastructure/cache_manager.py

Memoization caches shared across the toolkit.

A CacheManager is a registry of NamedCache objects. Each NamedCache wraps one
cachetools.TTLCache together with its policy and hit/miss counters and guards
them with its own lock, so solver instances in different threads can share
it. The CNF converter keeps one cache keyed by the (immutable, hashable)
input formula.

Usage:
    from infrastructure.cache_manager import get_cache_manager

    cnf_cache = get_cache_manager().ensure_cache("cnf_conversion", maxsize=500, ttl=600)
    cnf_cache.put(formula, clauses)
    clauses = cnf_cache.lookup(formula)   # None on a miss or after expiry

    print(get_cache_manager().get_stats("cnf_conversion")["hit_rate"])
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Hashable, List, Optional

from cachetools import TTLCache

from component_15_logging_config import get_logger
from propsat_exceptions import InvalidConfigError

logger = get_logger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class CachePolicy:
    """Size bound and entry lifetime of one cache."""

    maxsize: int
    ttl: int  # seconds

    def validate(self) -> None:
        """
        Raises:
            InvalidConfigError: If maxsize or ttl is not positive
        """
        if self.maxsize <= 0:
            raise InvalidConfigError(
                f"Cache maxsize must be positive, got {self.maxsize}",
                parameter="maxsize",
            )
        if self.ttl <= 0:
            raise InvalidConfigError(
                f"Cache ttl must be positive, got {self.ttl}", parameter="ttl"
            )


@dataclass
class CacheStatistics:
    """Counters of one cache since it was registered."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Share of lookups answered from the cache (0.0 before any lookup)."""
        return self.hits / self.lookups if self.lookups else 0.0


class NamedCache:
    """One TTL-bounded cache with its own counters and lock."""

    def __init__(self, name: str, policy: CachePolicy):
        policy.validate()
        self.name = name
        self.policy = policy
        self.statistics = CacheStatistics()
        self._entries: TTLCache = TTLCache(maxsize=policy.maxsize, ttl=policy.ttl)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def lookup(self, key: Hashable) -> Optional[Any]:
        """Cached value, or None when the key is absent or expired."""
        with self._lock:
            value = self._entries.get(key, _MISSING)
            if value is _MISSING:
                self.statistics.misses += 1
                logger.debug("Cache miss", extra={"cache": self.name})
                return None

            self.statistics.hits += 1
            logger.debug("Cache hit", extra={"cache": self.name})
            return value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
            self.statistics.sets += 1

    def discard(self, key: Optional[Hashable] = None) -> int:
        """
        Drop one entry, or every entry when key is None.

        Returns:
            Number of entries dropped
        """
        with self._lock:
            if key is None:
                dropped = len(self._entries)
                self._entries.clear()
            elif key in self._entries:
                del self._entries[key]
                dropped = 1
            else:
                dropped = 0

            self.statistics.invalidations += dropped
            return dropped

    def snapshot(self) -> Dict[str, Any]:
        """Counters, policy and current size as a plain dict."""
        with self._lock:
            stats = self.statistics
            return {
                "cache_name": self.name,
                "hits": stats.hits,
                "misses": stats.misses,
                "sets": stats.sets,
                "invalidations": stats.invalidations,
                "total_requests": stats.lookups,
                "hit_rate": stats.hit_rate,
                "size": len(self._entries),
                "maxsize": self.policy.maxsize,
                "ttl": self.policy.ttl,
                "created_at": stats.created_at.isoformat(),
            }


class CacheManager:
    """
    Registry of named caches.

    The manager methods taking a cache name (get, set, invalidate, get_stats)
    raise ValueError for names that were never registered.
    """

    def __init__(self):
        self._caches: Dict[str, NamedCache] = {}
        self._lock = threading.RLock()

    def register_cache(
        self, name: str, maxsize: int, ttl: int, overwrite: bool = False
    ) -> NamedCache:
        """
        Create a cache under the given name.

        Raises:
            InvalidConfigError: If maxsize or ttl is not positive
            ValueError: If the name is taken and overwrite is False
        """
        cache = NamedCache(name, CachePolicy(maxsize=maxsize, ttl=ttl))

        with self._lock:
            replaced = name in self._caches
            if replaced and not overwrite:
                raise ValueError(
                    f"Cache {name!r} is already registered (pass overwrite=True to replace it)"
                )
            self._caches[name] = cache

        logger.info(
            "Cache replaced" if replaced else "Cache registered",
            extra={"cache": name, "maxsize": maxsize, "ttl": ttl},
        )
        return cache

    def ensure_cache(self, name: str, maxsize: int, ttl: int) -> NamedCache:
        """Existing cache of that name, or a newly registered one."""
        with self._lock:
            cache = self._caches.get(name)
            if cache is None:
                cache = self.register_cache(name, maxsize=maxsize, ttl=ttl)
            return cache

    def cache(self, name: str) -> NamedCache:
        with self._lock:
            cache = self._caches.get(name)
        if cache is None:
            raise ValueError(f"No cache registered under {name!r}")
        return cache

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._caches

    def get(self, cache_name: str, key: Hashable) -> Optional[Any]:
        return self.cache(cache_name).lookup(key)

    def set(self, cache_name: str, key: Hashable, value: Any) -> None:
        self.cache(cache_name).put(key, value)

    def invalidate(self, cache_name: str, key: Optional[Hashable] = None) -> int:
        """Drop one key or the whole cache; returns the number of entries dropped."""
        dropped = self.cache(cache_name).discard(key)
        if key is None:
            logger.info("Cache cleared", extra={"cache": cache_name, "entries": dropped})
        return dropped

    def get_stats(self, cache_name: Optional[str] = None) -> Dict[str, Any]:
        """Snapshot of one cache, or name -> snapshot for all caches."""
        if cache_name is not None:
            return self.cache(cache_name).snapshot()

        with self._lock:
            caches = list(self._caches.values())
        return {cache.name: cache.snapshot() for cache in caches}

    def list_caches(self) -> List[str]:
        with self._lock:
            return sorted(self._caches)


_default_manager: Optional[CacheManager] = None
_default_manager_lock = threading.Lock()


def get_cache_manager() -> CacheManager:
    """Process-wide CacheManager, created on first use."""
    global _default_manager

    with _default_manager_lock:
        if _default_manager is None:
            _default_manager = CacheManager()
        return _default_manager


def reset_cache_manager() -> None:
    """
    Forget the process-wide manager and all of its caches.

    Meant for tests; live converters fetch the new manager on their next call.
    """
    global _default_manager

    with _default_manager_lock:
        _default_manager = None
    logger.debug("Process-wide CacheManager reset")
