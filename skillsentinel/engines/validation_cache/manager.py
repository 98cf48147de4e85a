"""Incremental validation cache.

Entries are reused only while the file's mtime and SHA-256 are unchanged
(and, for skills with scripts, the scripts' combined digest). A manifest
written under a different config hash is discarded as a whole.
"""

from __future__ import annotations

import asyncio
import json
import os
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog
from pydantic import ValidationError

from skillsentinel.core.hashing import sha256_file
from skillsentinel.core.storage import atomic_write_json
from skillsentinel.engines.validation_cache.models import (
    CACHE_SCHEMA_VERSION,
    CachedFinding,
    CachedValidation,
    CacheManifest,
    SuppressedKey,
)
from skillsentinel.models.finding import Finding

log = structlog.get_logger("skillsentinel.cache")


@dataclass(frozen=True)
class CacheStats:
    entry_count: int
    oldest_entry_age: float | None  # seconds; None when empty


def _cache_key(path: Path | str) -> str:
    return os.path.abspath(os.fspath(path))


def _fingerprint(path: str) -> tuple[float, str]:
    """(mtime, sha256) of *path*. Raises OSError."""
    mtime = os.stat(path).st_mtime
    return mtime, sha256_file(Path(path))


class CacheManager:
    """Owns the manifest; every access goes through one asyncio lock."""

    def __init__(self, cache_path: Path | None, config_hash: str | None = None) -> None:
        self.cache_path = cache_path
        self.config_hash = config_hash
        self._manifest = self._load()
        self._lock = asyncio.Lock()

    def _empty(self) -> CacheManifest:
        return CacheManifest(config_hash=self.config_hash)

    def _load(self) -> CacheManifest:
        if self.cache_path is None:
            return self._empty()
        try:
            raw = self.cache_path.read_bytes()
        except FileNotFoundError:
            return self._empty()
        except OSError as exc:
            log.warning("cache.unreadable", path=str(self.cache_path), error=str(exc))
            return self._empty()
        try:
            manifest = CacheManifest.model_validate(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            log.warning("cache.corrupt", path=str(self.cache_path), error=str(exc))
            return self._empty()
        if manifest.schema_version != CACHE_SCHEMA_VERSION:
            log.info("cache.schema_mismatch", found=manifest.schema_version)
            return self._empty()
        if manifest.config_hash != self.config_hash:
            log.info("cache.config_changed", entries_dropped=len(manifest.entries))
            return self._empty()
        log.debug("cache.loaded", entries=len(manifest.entries))
        return manifest

    async def get_cached(
        self, path: Path | str, dependency_hash: str | None = None
    ) -> CachedValidation | None:
        key = _cache_key(path)
        async with self._lock:
            entry = self._manifest.entries.get(key)
        if entry is None:
            return None
        try:
            mtime, digest = await asyncio.to_thread(_fingerprint, key)
        except OSError:
            return None
        if (
            mtime != entry.modification_time
            or digest != entry.content_hash
            or dependency_hash != entry.dependency_hash
        ):
            return None
        return entry.model_copy(deep=True)

    async def set_cached(
        self,
        path: Path | str,
        findings: Iterable[Finding],
        dependency_hash: str | None = None,
        suppressed: Iterable[tuple[str, str, int | None]] = (),
    ) -> None:
        key = _cache_key(path)
        try:
            mtime, digest = await asyncio.to_thread(_fingerprint, key)
        except OSError as exc:
            log.warning("cache.fingerprint_failed", path=key, error=str(exc))
            return
        entry = CachedValidation(
            file_path=key,
            modification_time=mtime,
            content_hash=digest,
            findings=[CachedFinding.from_finding(f) for f in findings],
            cached_at=time.time(),
            dependency_hash=dependency_hash,
            suppressed=[
                SuppressedKey(rule_id=rule_id, file_path=file_path, line=line)
                for rule_id, file_path, line in suppressed
            ],
        )
        async with self._lock:
            self._manifest.entries[key] = entry

    async def invalidate(self, path: Path | str) -> bool:
        async with self._lock:
            return self._manifest.entries.pop(_cache_key(path), None) is not None

    async def save(self) -> None:
        """Persist atomically. No-op without a cache path."""
        if self.cache_path is None:
            return
        async with self._lock:
            payload = self._manifest.model_dump(mode="json", by_alias=True)
        await asyncio.to_thread(atomic_write_json, self.cache_path, payload)
        log.info("cache.saved", path=str(self.cache_path), entries=len(payload["entries"]))

    async def get_stats(self) -> CacheStats:
        async with self._lock:
            stamps = [e.cached_at for e in self._manifest.entries.values()]
        if not stamps:
            return CacheStats(entry_count=0, oldest_entry_age=None)
        return CacheStats(entry_count=len(stamps), oldest_entry_age=max(0.0, time.time() - min(stamps)))

    async def clear(self) -> None:
        async with self._lock:
            self._manifest = self._empty()
