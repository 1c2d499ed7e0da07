"""
In-memory TTL caches for uploaded datasets and their statistics snapshots.

Datasets are keyed by a content hash, so uploading the same file twice
reuses the parsed rows instead of parsing again.
"""
import hashlib
import logging
import time
from typing import Optional, Dict, Any
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with expiration."""
    data: Any
    timestamp: float
    ttl: float  # seconds


@dataclass(frozen=True)
class CachedDataset:
    """Parsed rows of one upload, kept for chart and metric requests."""
    filename: str
    header: list
    rows: list
    dropped_rows: int = 0


class SimpleCache:
    """Thread-safe in-memory cache with TTL."""

    def __init__(self, default_ttl: float = 3600):
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = Lock()
        self.default_ttl = default_ttl

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if time.time() - entry.timestamp > entry.ttl:
                del self._cache[key]
                logger.debug(f"Cache entry expired: {key[:16]}...")
                return None

            logger.debug(f"Cache hit: {key[:16]}...")
            return entry.data

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        """Set value in cache with optional TTL."""
        ttl = ttl or self.default_ttl
        with self._lock:
            self._cache[key] = CacheEntry(data=value, timestamp=time.time(), ttl=ttl)
            logger.debug(f"Cache set: {key[:16]}... (TTL: {ttl}s)")

    def delete(self, key: str):
        with self._lock:
            self._cache.pop(key, None)

    def clear(self):
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()
            logger.info("Cache cleared")

    def cleanup_expired(self):
        """Remove expired entries."""
        with self._lock:
            now = time.time()
            expired_keys = [
                key for key, entry in self._cache.items()
                if now - entry.timestamp > entry.ttl
            ]
            for key in expired_keys:
                del self._cache[key]

            if expired_keys:
                logger.debug(f"Cleaned up {len(expired_keys)} expired cache entries")

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        self.cleanup_expired()
        with self._lock:
            return {
                'size': len(self._cache),
                'default_ttl': self.default_ttl
            }


# Global cache instances, TTL applied from settings on first use
_dataset_cache = SimpleCache(default_ttl=1800)
_stats_cache = SimpleCache(default_ttl=1800)


def get_dataset_cache() -> SimpleCache:
    """Parsed uploads by dataset id."""
    return _dataset_cache


def get_stats_cache() -> SimpleCache:
    """DatasetStats snapshots by dataset id."""
    return _stats_cache


def configure_cache_ttl(ttl_seconds: float):
    _dataset_cache.default_ttl = ttl_seconds
    _stats_cache.default_ttl = ttl_seconds


def generate_dataset_id(file_content: bytes, filename: str) -> str:
    """Stable id for an upload derived from its content and filename."""
    digest = hashlib.sha256()
    digest.update(file_content)
    digest.update(b"\0")
    digest.update(filename.encode())
    return digest.hexdigest()[:32]
