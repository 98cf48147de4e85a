"""SkillScanOrchestrator — discovery, cache and rules under bounded concurrency.

Steps:
1. Validate exclusions, roots and the concurrency limit (``ScanConfigError``).
2. Discover skill files in a worker thread.
3. Launch one unit per file, acquiring a semaphore slot *before* each task
   is created; a set ``cancel_event`` stops further launches while units
   already in flight run to completion.
4. Save the cache once, sort findings, return them with stats.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from skillsentinel.core.config import DEFAULT_EXCLUDE_DIRS, default_max_concurrency
from skillsentinel.core.hashing import compute_config_hash
from skillsentinel.core.logging import new_scan_id, scan_context
from skillsentinel.engines.discovery import (
    find_skill_files,
    load_skill_document,
    validate_exclusions,
    validate_roots,
)
from skillsentinel.engines.scan.models import ScanOutcome, ScanStats
from skillsentinel.engines.security import SecurityScanner
from skillsentinel.engines.validation_cache import CacheManager
from skillsentinel.engines.validator import SkillValidator, ValidationPolicy
from skillsentinel.exceptions import ScanConfigError, SkillLoadError
from skillsentinel.models.finding import Finding, Severity, sort_findings
from skillsentinel.models.skill import ScanRoot
from skillsentinel.progress import ProgressTracker

log = structlog.get_logger("skillsentinel.scan")


@dataclass
class _UnitResult:
    findings: list[Finding]
    cache_hit: bool = False
    unreadable: bool = False


class SkillScanOrchestrator:
    """Run validation and security rules over every discovered skill file."""

    def __init__(
        self,
        validator: SkillValidator | None = None,
        security_scanner: SecurityScanner | None = None,
        progress: ProgressTracker | None = None,
    ) -> None:
        self.validator = validator or SkillValidator()
        self.security = security_scanner or SecurityScanner()
        self.progress = progress
        self._in_flight = 0
        self._peak = 0

    def config_hash(self, policy: ValidationPolicy | None = None) -> str:
        """Hash to construct a :class:`CacheManager` with for this rule set."""
        return compute_config_hash(policy, self.security.registered_rule_ids())

    async def scan_and_validate(
        self,
        roots: Sequence[ScanRoot],
        exclude_dir_names: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        exclude_globs: Iterable[str] = (),
        policy: ValidationPolicy | None = None,
        cache_manager: CacheManager | None = None,
        max_concurrency: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ScanOutcome:
        with scan_context(scan_id=new_scan_id()):
            return await self._scan(
                roots,
                exclude_dir_names,
                exclude_globs,
                policy,
                cache_manager,
                max_concurrency,
                cancel_event,
            )

    async def _scan(
        self,
        roots: Sequence[ScanRoot],
        exclude_dir_names: Iterable[str],
        exclude_globs: Iterable[str],
        policy: ValidationPolicy | None,
        cache_manager: CacheManager | None,
        max_concurrency: int | None,
        cancel_event: asyncio.Event | None,
    ) -> ScanOutcome:
        exclude_dir_names = frozenset(exclude_dir_names)
        exclude_globs = tuple(exclude_globs)
        validate_exclusions(exclude_globs)
        validate_roots(roots)
        limit = default_max_concurrency() if max_concurrency is None else max_concurrency
        if limit < 1:
            raise ScanConfigError(f"max_concurrency must be at least 1, got {limit}")
        policy = policy or ValidationPolicy()

        started = time.monotonic()
        stats = ScanStats()
        self._in_flight = 0
        self._peak = 0

        self._start("discover")
        discovered = await asyncio.to_thread(
            find_skill_files, roots, exclude_dir_names, exclude_globs
        )
        units = [(root, path) for root, paths in discovered.items() for path in paths]
        stats.total_files = len(units)
        self._complete("discover", f"{len(units)} skill files")
        log.info("scan.discovered", roots=len(roots), files=len(units), max_concurrency=limit)

        self._start("validate", files_total=len(units))
        sem = asyncio.Semaphore(limit)
        tasks: list[asyncio.Task[_UnitResult]] = []
        for root, path in units:
            await sem.acquire()
            if cancel_event is not None and cancel_event.is_set():
                sem.release()
                stats.cancelled = True
                log.info("scan.cancelled", launched=len(tasks), total=len(units))
                break
            tasks.append(
                asyncio.create_task(self._run_unit(sem, root, path, policy, cache_manager))
            )
        results = await asyncio.gather(*tasks)
        self._complete("validate", f"{len(results)} of {len(units)} files")

        findings: list[Finding] = []
        for result in results:
            findings.extend(result.findings)
            if result.cache_hit:
                stats.cache_hits += 1
            else:
                stats.scanned_files += 1
            if result.unreadable:
                stats.unreadable_files += 1

        if cache_manager is not None:
            self._start("save_cache")
            try:
                await cache_manager.save()
            except OSError as exc:
                log.warning("scan.cache_save_failed", error=str(exc))
                self._fail("save_cache", str(exc))
            else:
                self._complete("save_cache")
        elif self.progress:
            self.progress.skip_phase("save_cache", "no cache configured")

        stats.peak_concurrency = self._peak
        stats.duration = round(time.monotonic() - started, 3)
        log.info(
            "scan.completed",
            total=stats.total_files,
            scanned=stats.scanned_files,
            cache_hits=stats.cache_hits,
            unreadable=stats.unreadable_files,
            findings=len(findings),
            cancelled=stats.cancelled,
            duration=stats.duration,
        )
        return ScanOutcome(findings=sort_findings(findings), stats=stats)

    async def _run_unit(
        self,
        sem: asyncio.Semaphore,
        root: ScanRoot,
        path: Path,
        policy: ValidationPolicy,
        cache: CacheManager | None,
    ) -> _UnitResult:
        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)
        try:
            with scan_context(agent=root.agent.value, skill=str(path.parent)):
                return await self._validate_file(root, path, policy, cache)
        finally:
            self._in_flight -= 1
            sem.release()
            if self.progress:
                self.progress.advance("validate")

    async def _validate_file(
        self,
        root: ScanRoot,
        path: Path,
        policy: ValidationPolicy,
        cache: CacheManager | None,
    ) -> _UnitResult:
        ignored = self.security.ignored
        try:
            dependency_hash = await asyncio.to_thread(self.security.dependency_hash, path.parent)

            if cache is not None:
                cached = await cache.get_cached(path, dependency_hash)
                if cached is not None and await self._suppressions_hold(cached.suppressed):
                    kept, _ = await ignored.partition(cached.to_findings())
                    log.debug("scan.cache_hit", path=str(path))
                    return _UnitResult(findings=kept, cache_hit=True)

            doc = await asyncio.to_thread(load_skill_document, root.agent, root.root_path, path)
            findings = self.validator.validate(doc, policy)
            findings.extend(await self.security.collect(doc))
            kept, suppressed = await ignored.partition(findings)

            if cache is not None:
                await cache.set_cached(
                    path, kept, dependency_hash, suppressed=[f.key for f in suppressed]
                )
            return _UnitResult(findings=kept)
        except (SkillLoadError, OSError) as exc:
            log.warning("scan.file_unreadable", path=str(path), error=str(exc))
            reason = exc.reason if isinstance(exc, SkillLoadError) else str(exc)
            return _UnitResult(findings=[self._unreadable(root, path, reason)], unreadable=True)
        except Exception as exc:
            log.error("scan.file_failed", path=str(path), exc_info=True)
            return _UnitResult(findings=[self._unreadable(root, path, repr(exc))], unreadable=True)

    async def _suppressions_hold(self, suppressed) -> bool:
        """A cached entry is only reusable if everything it filtered is still ignored."""
        for key in suppressed:
            if not await self.security.ignored.is_key_ignored(key.as_key()):
                return False
        return True

    @staticmethod
    def _unreadable(root: ScanRoot, path: Path, reason: str) -> Finding:
        return Finding(
            rule_id="document.unreadable",
            severity=Severity.ERROR,
            agent=root.agent,
            file_path=path,
            message=f"Skill file could not be read: {reason}",
        )

    def _start(self, phase: str, files_total: int = 0) -> None:
        if self.progress:
            self.progress.start_phase(phase, files_total=files_total)

    def _complete(self, phase: str, detail: str = "") -> None:
        if self.progress:
            self.progress.complete_phase(phase, detail)

    def _fail(self, phase: str, error: str) -> None:
        if self.progress:
            self.progress.fail_phase(phase, error)


async def scan_and_validate(roots: Sequence[ScanRoot], **kwargs) -> ScanOutcome:
    """Scan with a default orchestrator (default validators and security rules)."""
    return await SkillScanOrchestrator().scan_and_validate(roots, **kwargs)
