"""Ignore-list — user-suppressed security findings, persisted apart from the cache."""

from __future__ import annotations

import asyncio
import json
import os
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skillsentinel.core.storage import atomic_write_json
from skillsentinel.models.finding import Finding

log = structlog.get_logger("skillsentinel.ignored")

IGNORE_SCHEMA_VERSION = 1


def normalize_path(path: Path | str) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(path)))


class IgnoredRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    rule_id: str = Field(alias="ruleID")
    file_path: str = Field(alias="filePath")
    line: int | None = None
    ignored_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="ignoredAt"
    )

    def matches(self, rule_id: str, file_path: str, line: int | None) -> bool:
        if self.rule_id != rule_id or self.file_path != file_path:
            return False
        return self.line is None or self.line == line


class IgnoreFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=IGNORE_SCHEMA_VERSION, alias="schemaVersion")
    records: list[IgnoredRecord] = Field(default_factory=list)


class IgnoreStore(Protocol):
    def load(self) -> list[IgnoredRecord]: ...

    def save(self, records: list[IgnoredRecord]) -> None: ...


class MemoryIgnoreStore:
    """Process-local store; nothing survives the process."""

    def __init__(self, records: Iterable[IgnoredRecord] = ()) -> None:
        self._records = list(records)

    def load(self) -> list[IgnoredRecord]:
        return list(self._records)

    def save(self, records: list[IgnoredRecord]) -> None:
        self._records = list(records)


class JsonFileIgnoreStore:
    """JSON file store. A missing or unreadable file loads as an empty list."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> list[IgnoredRecord]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as exc:
            log.warning("ignored.load_failed", path=str(self.path), error=str(exc))
            return []
        try:
            parsed = IgnoreFile.model_validate(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            log.warning("ignored.corrupt", path=str(self.path), error=str(exc))
            return []
        if parsed.schema_version != IGNORE_SCHEMA_VERSION:
            log.warning(
                "ignored.schema_mismatch", path=str(self.path), version=parsed.schema_version
            )
            return []
        return parsed.records

    def save(self, records: list[IgnoredRecord]) -> None:
        payload = IgnoreFile(records=records).model_dump(mode="json", by_alias=True)
        atomic_write_json(self.path, payload)


class IgnoredFindings:
    """Suppression list keyed by (rule, file, optional line).

    A record with no line suppresses the rule for the whole file. All
    mutation happens under one lock and is written through to the store.
    """

    def __init__(self, store: IgnoreStore | None = None) -> None:
        self._store: IgnoreStore = store or MemoryIgnoreStore()
        self._records: list[IgnoredRecord] = self._store.load()
        self._lock = asyncio.Lock()

    async def ignore(self, rule_id: str, file_path: Path | str, line: int | None = None) -> IgnoredRecord:
        path = normalize_path(file_path)
        async with self._lock:
            for record in self._records:
                if record.rule_id == rule_id and record.file_path == path and record.line == line:
                    return record
            record = IgnoredRecord(rule_id=rule_id, file_path=path, line=line)
            await self._commit([*self._records, record])
        log.info("ignored.added", rule_id=rule_id, path=path, line=line)
        return record

    async def unignore(self, rule_id: str, file_path: Path | str, line: int | None = None) -> int:
        """Remove matching records; ``line=None`` removes every record for the pair."""
        path = normalize_path(file_path)
        async with self._lock:
            remaining = [
                r
                for r in self._records
                if not (
                    r.rule_id == rule_id
                    and r.file_path == path
                    and (line is None or r.line == line)
                )
            ]
            removed = len(self._records) - len(remaining)
            if removed:
                await self._commit(remaining)
        if removed:
            log.info("ignored.removed", rule_id=rule_id, path=path, line=line, count=removed)
        return removed

    async def is_ignored(self, finding: Finding) -> bool:
        return await self.is_key_ignored(finding.key)

    async def is_key_ignored(self, key: tuple[str, str, int | None]) -> bool:
        rule_id, file_path, line = key
        path = normalize_path(file_path)
        async with self._lock:
            return any(r.matches(rule_id, path, line) for r in self._records)

    async def partition(self, findings: Iterable[Finding]) -> tuple[list[Finding], list[Finding]]:
        """Split into ``(kept, suppressed)`` against one snapshot of the list."""
        async with self._lock:
            records = list(self._records)
        kept: list[Finding] = []
        suppressed: list[Finding] = []
        for finding in findings:
            path = normalize_path(finding.file_path)
            if any(r.matches(finding.rule_id, path, finding.line) for r in records):
                suppressed.append(finding)
            else:
                kept.append(finding)
        return kept, suppressed

    async def list_all(self) -> list[IgnoredRecord]:
        async with self._lock:
            return sorted(self._records, key=lambda r: r.ignored_at, reverse=True)

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)

    async def clear_all(self) -> None:
        async with self._lock:
            await self._commit([])
        log.info("ignored.cleared")

    async def _commit(self, records: list[IgnoredRecord]) -> None:
        """Write *records* to the store, then adopt them. Caller holds the lock."""
        await asyncio.to_thread(self._store.save, list(records))
        self._records = records
