"""Incremental validation cache."""

from skillsentinel.engines.validation_cache.manager import CacheManager, CacheStats
from skillsentinel.engines.validation_cache.models import (
    CACHE_SCHEMA_VERSION,
    CachedFinding,
    CachedValidation,
    CacheManifest,
)

__all__ = [
    "CACHE_SCHEMA_VERSION",
    "CacheManager",
    "CacheManifest",
    "CacheStats",
    "CachedFinding",
    "CachedValidation",
]
