"""Caching layer for parsed schema ASTs.

Provides:
    * In-memory LRU cache, bounded by entry count, with TTL + file mtime
      staleness checks.
    * :class:`CachedGrammar`, a grammar front-end memoizing parsed ASTs per
      (source, configuration).

Design goals:
    1. Deterministic keys: All cache keys are md5 hashes of argument tuples.
    2. Predictable invalidation: TTL expiry OR upstream file modification time.
    3. Bounded memory: the least recently used entry is evicted once
       ``max_entries`` is reached.

Quick examples:

Local cache get/set::

    from xsd_typegen.cache import SchemaCache
    cache = SchemaCache(default_ttl=5)
    key = cache._make_key('xsd', '/path/to/file.xsd')
    cache.set(key, {'parsed': True})
    assert cache.get(key)['parsed'] is True

Cached grammar convenience::

    from xsd_typegen.cache import get_cached_grammar
    grammar = get_cached_grammar()
    ast = grammar.parse_xsd(Path('orders.xsd'))
    print([node.name for node in ast.children])
"""

from __future__ import annotations

import hashlib
import logging
import sys
import threading
import time
from dataclasses import dataclass, field, fields
from functools import lru_cache
from pathlib import Path
from collections import OrderedDict
from typing import Any, Dict, Optional, Union, cast

from .models import ASTNode
from .xsd_grammar import GrammarConfig, parse_xsd_string

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with TTL and source file mtime."""

    data: Any
    timestamp: float = field(default_factory=time.time)
    ttl: float = 3600.0  # 1 hour default
    file_mtime: float = 0.0

    def is_expired(self) -> bool:
        """Check if cache entry has expired."""
        return time.time() - self.timestamp > self.ttl

    def is_stale(self, file_path: Path) -> bool:
        """Check if cache is stale based on file modification time."""
        if not file_path.exists():
            return True
        return file_path.stat().st_mtime > self.file_mtime


class SchemaCache:
    """Simple in-memory cache for parsed schema objects.

    Notes:
        * Reads and writes share a lock; FastAPI runs sync endpoints in a
          thread pool.
        * Holds at most ``max_entries`` values, evicting least recently used.
        * Memory footprint estimation is approximate (shallow object sizes).
    """

    def __init__(self, default_ttl: float = 3600.0, max_entries: int = 128):
        """Initialize cache with default TTL in seconds and an entry bound."""
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.evictions = 0
        self.hits = 0
        self.misses = 0

    def _make_key(self, *args) -> str:
        """Create cache key from arguments."""
        key_data = str(args).encode()
        return hashlib.md5(key_data).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """Retrieve a value if present and not expired.

        Args:
            key: Opaque cache key (md5 hex string).
        Returns:
            Cached value or None if absent/expired.
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.is_expired():
                del self._cache[key]
                self.misses += 1
                return None

            self._cache.move_to_end(key)
            self.hits += 1
            return entry.data

    def set(
        self,
        key: str,
        data: Any,
        ttl: Optional[float] = None,
        file_path: Optional[Path] = None,
    ) -> None:
        """Insert or replace a value in the cache.

        Args:
            key: Cache key.
            data: Arbitrary Python object (stored as is).
            ttl: Optional time-to-live override in seconds (defaults to instance default).
            file_path: Optional source file whose mtime is used for stale detection.
        """
        file_mtime = 0.0
        if file_path and file_path.exists():
            file_mtime = file_path.stat().st_mtime

        entry = CacheEntry(data=data, ttl=ttl or self.default_ttl, file_mtime=file_mtime)
        with self._lock:
            self._cache[key] = entry
            self._cache.move_to_end(key)
            if len(self._cache) > self.max_entries:
                self._evict()

    def _evict(self) -> None:
        """Drop expired entries, then least recently used ones, down to the bound.

        Called with the lock held.
        """
        for key in [key for key, entry in self._cache.items() if entry.is_expired()]:
            del self._cache[key]
            self.evictions += 1
        while len(self._cache) > self.max_entries:
            key, _ = self._cache.popitem(last=False)
            logger.debug("evicted cache entry %s", key)
            self.evictions += 1

    def invalidate(self, key: str) -> None:
        """Remove specific entry from cache."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()

    def _estimate_memory_usage(self) -> float:
        """Estimate memory usage of cache in MB."""
        total_size = sys.getsizeof(self._cache)
        for key, entry in self._cache.items():
            total_size += sys.getsizeof(key)
            total_size += sys.getsizeof(entry)
            total_size += sys.getsizeof(entry.data)
        return total_size / (1024 * 1024)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get current cache statistics."""
        return {
            "cache_size": len(self._cache),
            "memory_usage_mb": self._estimate_memory_usage(),
            "max_entries": self.max_entries,
            "default_ttl": self.default_ttl,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

    def check_file_staleness(self, key: str, file_path: Path) -> bool:
        """Check if cached entry is stale based on file modification."""
        entry = self._cache.get(key)
        if entry is None:
            return True
        return entry.is_stale(file_path)


def parse_config_pairs(config_str: str, base: Optional[GrammarConfig] = None) -> GrammarConfig:
    """Build a :class:`GrammarConfig` from ``key=value`` pairs.

    Pairs are comma separated; unknown keys are ignored. Integer fields are
    converted, an empty value resets an optional field to ``None``.

    Example:
        >>> parse_config_pairs("schema_name=orders,regexp_max_length=20").regexp_max_length
        20
    """
    config = base or GrammarConfig()
    types = {f.name: f.type for f in fields(GrammarConfig)}
    for pair in config_str.split(","):
        if "=" not in pair:
            continue
        key, value = (part.strip() for part in pair.split("=", 1))
        if key not in types:
            logger.warning("ignoring unknown grammar option %r", key)
            continue
        if key == "regexp_max_length":
            setattr(config, key, int(value))
        elif key == "default_namespace":
            setattr(config, key, value or None)
        else:
            setattr(config, key, value)
    return config


_schema_cache = SchemaCache()


class CachedGrammar:
    """Grammar wrapper that memoizes parsed ASTs.

    Cache keys combine the source (file path or text) with the grammar
    configuration, so the same schema parsed under different configurations
    is cached separately.
    """

    def __init__(
        self,
        cache: Optional[SchemaCache] = None,
        config: Optional[GrammarConfig] = None,
    ):
        self.cache = cache or _schema_cache
        self.config = config or GrammarConfig()

    def parse_xsd(
        self,
        xsd_path: Union[str, Path],
        force_refresh: bool = False,
    ) -> ASTNode:
        """Parse an XSD file and return its AST (cached).

        Args:
            xsd_path: Path of the schema file.
            force_refresh: Skip cache and re-parse if True.
        Returns:
            ASTNode: The ``schema`` node.
        Raises:
            InvalidSchemaError: If the file is not a parsable schema.
        """
        xsd_path = Path(xsd_path)
        cache_key = self.cache._make_key("xsd", str(xsd_path), str(self.config.to_dict()))

        if not force_refresh and not self.cache.check_file_staleness(cache_key, xsd_path):
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cast(ASTNode, cached)

        result = parse_xsd_string(xsd_path.read_text(encoding="utf-8"), self.config)
        self.cache.set(cache_key, result, file_path=xsd_path)
        return result

    def parse_xsd_string(
        self,
        text: str,
        config: Optional[GrammarConfig] = None,
        force_refresh: bool = False,
    ) -> ASTNode:
        """Parse XSD text (cached by content and configuration)."""
        config = config or self.config
        cache_key = self.cache._make_key("text", text, str(config.to_dict()))
        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cast(ASTNode, cached)

        result = parse_xsd_string(text, config)
        self.cache.set(cache_key, result)
        return result

    def invalidate_all(self) -> None:
        """Clear all cached schemas."""
        self.cache.clear()


@lru_cache(maxsize=4)
def get_cached_grammar(config_key: Optional[str] = None) -> CachedGrammar:
    """Get or create a cached grammar instance.

    Args:
        config_key: Optional ``key=value,...`` representation of the grammar
            configuration (see :func:`parse_config_pairs`).

    Returns:
        CachedGrammar instance sharing the process-wide cache.
    """
    config = parse_config_pairs(config_key) if config_key else GrammarConfig()
    return CachedGrammar(cache=_schema_cache, config=config)


def get_cache_instance() -> SchemaCache:
    """Get the current cache instance for direct access."""
    return _schema_cache
