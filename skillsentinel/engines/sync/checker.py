"""Cross-agent sync checker.

Compares skill trees by directory name and content hash. Independent of the
validation cache; each root is enumerated in its own worker thread and the
results only meet in the final diff.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path

import structlog

from skillsentinel.core.config import DEFAULT_EXCLUDE_DIRS
from skillsentinel.core.hashing import combined_digest, sha256_file
from skillsentinel.engines.discovery import find_skill_files, validate_exclusions, validate_roots
from skillsentinel.engines.sync.models import (
    ContentDifference,
    MultiSyncReport,
    SkillFingerprint,
    SyncReport,
)
from skillsentinel.models.finding import AgentKind
from skillsentinel.models.skill import ScanRoot

log = structlog.get_logger("skillsentinel.sync")


def _skill_dir_files(skill_dir: Path) -> list[Path]:
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(skill_dir):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        files.extend(Path(dirpath) / f for f in filenames if not f.startswith("."))
    return files


class SyncChecker:
    def __init__(
        self,
        exclude_dir_names: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        exclude_globs: Iterable[str] = (),
        include_assets: bool = False,
    ) -> None:
        self.exclude_dir_names = frozenset(exclude_dir_names)
        self.exclude_globs = tuple(exclude_globs)
        self.include_assets = include_assets
        validate_exclusions(self.exclude_globs)

    def _fingerprint(self, agent: AgentKind, skill_file: Path) -> SkillFingerprint:
        skill_dir = skill_file.parent
        if self.include_assets:
            files = _skill_dir_files(skill_dir)
            content_hash = combined_digest(
                (f.relative_to(skill_dir).as_posix(), sha256_file(f)) for f in files
            )
            mtime = max(os.stat(f).st_mtime for f in files)
        else:
            content_hash = sha256_file(skill_file)
            mtime = os.stat(skill_file).st_mtime
        return SkillFingerprint(
            agent=agent,
            name=skill_dir.name,
            skill_file=skill_file,
            content_hash=content_hash,
            modified=datetime.fromtimestamp(mtime, tz=timezone.utc),
        )

    def _index_root(self, root: ScanRoot) -> dict[str, SkillFingerprint]:
        """Blocking: enumerate one root and hash every skill in it."""
        found = find_skill_files([root], self.exclude_dir_names, self.exclude_globs)
        index: dict[str, SkillFingerprint] = {}
        for skill_file in found.get(root, []):
            name = skill_file.parent.name
            if name in index:
                log.debug("sync.duplicate_name", name=name, kept=str(index[name].skill_file))
                continue
            try:
                index[name] = self._fingerprint(root.agent, skill_file)
            except OSError as exc:
                log.warning("sync.unreadable", path=str(skill_file), error=str(exc))
        return index

    async def check(self, roots: Sequence[ScanRoot]) -> MultiSyncReport:
        validate_roots(roots)
        indexes = await asyncio.gather(*(asyncio.to_thread(self._index_root, r) for r in roots))

        by_agent: dict[AgentKind, dict[str, SkillFingerprint]] = {}
        for root, index in zip(roots, indexes):
            merged = by_agent.setdefault(root.agent, {})
            for name, fp in index.items():
                merged.setdefault(name, fp)

        report = MultiSyncReport()
        all_names = sorted(set().union(*(idx.keys() for idx in by_agent.values())))
        for name in all_names:
            present = {agent: idx[name] for agent, idx in by_agent.items() if name in idx}
            for agent in by_agent:
                if agent not in present:
                    report.missing_by_agent.setdefault(agent, []).append(name)
            if len(present) >= 2 and len({fp.content_hash for fp in present.values()}) > 1:
                report.different_content.append(
                    ContentDifference(
                        name=name,
                        hashes={a: fp.content_hash for a, fp in present.items()},
                        modified={a: fp.modified for a, fp in present.items()},
                    )
                )

        log.info(
            "sync.completed",
            agents=len(by_agent),
            skills=len(all_names),
            missing=sum(len(v) for v in report.missing_by_agent.values()),
            different=len(report.different_content),
        )
        return report

    async def by_name(self, codex_root: Path, claude_root: Path, recursive: bool = False) -> SyncReport:
        report = await self.check(
            [
                ScanRoot(agent=AgentKind.CODEX, root_path=codex_root, recursive=recursive),
                ScanRoot(agent=AgentKind.CLAUDE, root_path=claude_root, recursive=recursive),
            ]
        )
        return SyncReport(
            only_in_codex=report.missing_by_agent.get(AgentKind.CLAUDE, []),
            only_in_claude=report.missing_by_agent.get(AgentKind.CODEX, []),
            different_content=[d.name for d in report.different_content],
        )
