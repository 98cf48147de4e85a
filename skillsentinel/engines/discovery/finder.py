"""Skill file discovery — walk scan roots and collect SKILL.md candidates."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Collection, Iterator, Sequence
from pathlib import Path

import structlog

from skillsentinel.core.config import DEFAULT_EXCLUDE_DIRS, SKILL_FILE_NAME
from skillsentinel.exceptions import ScanConfigError
from skillsentinel.models.skill import ScanRoot

log = structlog.get_logger("skillsentinel.discovery")


def validate_exclusions(exclude_globs: Sequence[str]) -> None:
    """Reject globs that cannot express what the caller meant."""
    for pattern in exclude_globs:
        if not pattern or not pattern.strip():
            raise ScanConfigError("exclusion glob must not be empty")
        if _has_unclosed_bracket(pattern):
            raise ScanConfigError(f"exclusion glob has an unclosed '[': {pattern!r}")


def validate_roots(roots: Sequence[ScanRoot]) -> None:
    for root in roots:
        if root.max_depth is not None and root.max_depth < 0:
            raise ScanConfigError(
                f"max_depth must be >= 0 for root {root.root_path} (got {root.max_depth})"
            )


def _has_unclosed_bracket(pattern: str) -> bool:
    i = 0
    while i < len(pattern):
        if pattern[i] == "[":
            # fnmatch allows ']' as the first member of a set ("[]]", "[!]]")
            j = i + 1
            if j < len(pattern) and pattern[j] == "!":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            close = pattern.find("]", j)
            if close == -1:
                return True
            i = close
        i += 1
    return False


def matches_any_glob(path: str, globs: Sequence[str]) -> bool:
    return any(fnmatch.fnmatchcase(path, g) for g in globs)


def find_skill_files(
    roots: Sequence[ScanRoot],
    exclude_dir_names: Collection[str] = DEFAULT_EXCLUDE_DIRS,
    exclude_globs: Sequence[str] = (),
) -> dict[ScanRoot, list[Path]]:
    """Map every root to the skill files found beneath it.

    A file reachable from several roots (directly or through symlinks) is
    reported once, under the first root that reaches it.
    """
    validate_exclusions(exclude_globs)
    validate_roots(roots)

    excluded = frozenset(exclude_dir_names)
    globs = tuple(exclude_globs)
    seen: set[str] = set()
    result: dict[ScanRoot, list[Path]] = {}

    for root in roots:
        if root in result:
            continue
        base = Path(os.path.abspath(root.root_path.expanduser()))
        if not base.is_dir():
            log.info("discovery.root_missing", agent=root.agent.value, root=str(base))
            result[root] = []
            continue

        if root.recursive:
            candidates = _walk(base, root.max_depth, excluded, globs)
        else:
            candidates = _shallow(base, excluded, globs)

        files: list[Path] = []
        for candidate in sorted(candidates):
            real = os.path.realpath(candidate)
            if real in seen:
                log.debug("discovery.duplicate_skipped", path=str(candidate))
                continue
            seen.add(real)
            files.append(candidate)
        result[root] = files
        log.debug("discovery.root_done", agent=root.agent.value, root=str(base), files=len(files))

    return result


def _shallow(base: Path, excluded: frozenset[str], globs: tuple[str, ...]) -> Iterator[Path]:
    """Only ``root/<skill>/SKILL.md``."""
    try:
        entries = sorted(os.scandir(base), key=lambda e: e.name)
    except OSError as exc:
        log.warning("discovery.scandir_failed", root=str(base), error=str(exc))
        return
    for entry in entries:
        if entry.name in excluded or not entry.is_dir():
            continue
        if matches_any_glob(entry.path, globs):
            continue
        candidate = Path(entry.path) / SKILL_FILE_NAME
        if candidate.is_file() and not matches_any_glob(str(candidate), globs):
            yield candidate


def _walk(
    base: Path,
    max_depth: int | None,
    excluded: frozenset[str],
    globs: tuple[str, ...],
) -> Iterator[Path]:
    visited = {os.path.realpath(base)}

    def _on_error(exc: OSError) -> None:
        log.warning("discovery.walk_error", path=exc.filename, error=exc.strerror)

    for dirpath, dirnames, filenames in os.walk(base, followlinks=True, onerror=_on_error):
        current = Path(dirpath)
        depth = len(current.relative_to(base).parts)

        if SKILL_FILE_NAME in filenames:
            candidate = current / SKILL_FILE_NAME
            if not matches_any_glob(str(candidate), globs):
                yield candidate

        if max_depth is not None and depth >= max_depth:
            dirnames[:] = []
            continue

        # Prune in place so os.walk never descends into excluded trees.
        kept: list[str] = []
        for name in sorted(dirnames):
            if name in excluded:
                continue
            full = os.path.join(dirpath, name)
            if matches_any_glob(full, globs):
                continue
            real = os.path.realpath(full)
            if real in visited:
                continue
            visited.add(real)
            kept.append(name)
        dirnames[:] = kept
