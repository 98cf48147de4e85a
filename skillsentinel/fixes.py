"""Suggested fixes for metadata findings.

Enrichment never mutates a Finding; it returns copies with ``suggested_fix``
populated.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from pathlib import Path

import structlog

from skillsentinel.core.storage import atomic_write_text
from skillsentinel.models.finding import FileChange, Finding, SuggestedFix, with_suggested_fix

log = structlog.get_logger("skillsentinel.fixes")

_NAME_LINE_RE = re.compile(r"^name:\s*(.*?)\s*$")
_MAX_NAME_LENGTH = 64


def normalize_skill_name(name: str) -> str:
    """Lowercase-hyphenated form: ``My_Cool Skill`` -> ``my-cool-skill``."""
    cleaned = re.sub(r"[\s_]+", "-", name.strip().strip("'\"").lower())
    cleaned = re.sub(r"[^a-z0-9-]", "", cleaned)
    cleaned = re.sub(r"-{2,}", "-", cleaned).strip("-")
    return cleaned[:_MAX_NAME_LENGTH].rstrip("-")


def _frontmatter_bounds(lines: list[str]) -> tuple[int, int] | None:
    """0-based indices of the opening and closing ``---`` lines."""
    start = next((i for i, line in enumerate(lines) if line.strip()), None)
    if start is None or lines[start].strip() != "---":
        return None
    for j in range(start + 1, len(lines)):
        if lines[j].strip() in ("---", "..."):
            return start, j
    return None


def _fix_missing_frontmatter(finding: Finding, lines: list[str]) -> SuggestedFix:
    first = lines[0] if lines else ""
    name = normalize_skill_name(finding.file_path.parent.name) or "skill-name"
    header = f"---\nname: {name}\ndescription: Brief description of what this skill does\n---\n\n"
    return SuggestedFix(
        rule_id=finding.rule_id,
        description="Add a YAML frontmatter block with name and description",
        automated=True,
        changes=(
            FileChange(
                file_path=finding.file_path,
                start_line=1,
                end_line=1,
                original_text=first,
                replacement_text=header + first,
            ),
        ),
    )


def _fix_name(finding: Finding, lines: list[str]) -> SuggestedFix | None:
    bounds = _frontmatter_bounds(lines)
    if bounds is None:
        return None
    start, end = bounds
    for index in range(start + 1, end):
        match = _NAME_LINE_RE.match(lines[index])
        if not match:
            continue
        fixed = normalize_skill_name(match.group(1))
        if not fixed or fixed == match.group(1):
            return None
        return SuggestedFix(
            rule_id=finding.rule_id,
            description=f"Rename the skill to {fixed!r} (lowercase letters, digits, hyphens)",
            automated=True,
            changes=(
                FileChange(
                    file_path=finding.file_path,
                    start_line=index + 1,
                    end_line=index + 1,
                    original_text=lines[index],
                    replacement_text=f"name: {fixed}",
                ),
            ),
        )
    return None


def _fix_missing_description(finding: Finding, lines: list[str]) -> SuggestedFix | None:
    bounds = _frontmatter_bounds(lines)
    if bounds is None:
        return None
    _, end = bounds
    return SuggestedFix(
        rule_id=finding.rule_id,
        description="Add a description to the frontmatter",
        automated=True,
        changes=(
            FileChange(
                file_path=finding.file_path,
                start_line=end + 1,
                end_line=end + 1,
                original_text=lines[end],
                replacement_text="description: Brief description of what this skill does\n"
                + lines[end],
            ),
        ),
    )


def suggest_fix(finding: Finding, content: str) -> SuggestedFix | None:
    """Build a fix for *finding* from the file's current *content*, if one is known."""
    lines = content.splitlines()
    if finding.rule_id == "frontmatter.missing":
        return _fix_missing_frontmatter(finding, lines)
    if finding.rule_id.endswith(".name.pattern"):
        return _fix_name(finding, lines)
    if finding.rule_id == "frontmatter.description.missing":
        return _fix_missing_description(finding, lines)
    return None


async def enrich_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Attach fixes where possible. Each file is read at most once."""
    findings = list(findings)
    contents: dict[Path, str | None] = {}
    enriched: list[Finding] = []
    for finding in findings:
        if finding.suggested_fix is not None:
            enriched.append(finding)
            continue
        path = finding.file_path
        if path not in contents:
            try:
                contents[path] = await asyncio.to_thread(path.read_text, encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                log.debug("fixes.read_failed", path=str(path), error=str(exc))
                contents[path] = None
        content = contents[path]
        fix = suggest_fix(finding, content) if content is not None else None
        enriched.append(with_suggested_fix(finding, fix) if fix is not None else finding)
    return enriched


def apply_fix(fix: SuggestedFix) -> None:
    """Apply every change in *fix*; on any failure restore the touched files and re-raise.

    Each change replaces lines ``start_line..end_line`` (1-based, inclusive)
    after checking they still read ``original_text``.
    """
    backups: dict[Path, str] = {}
    try:
        for change in fix.changes:
            if change.file_path not in backups:
                backups[change.file_path] = change.file_path.read_text(encoding="utf-8")
        for change in fix.changes:
            _apply_change(change)
    except (OSError, ValueError):
        for path, original in backups.items():
            atomic_write_text(path, original)
        raise
    log.info("fixes.applied", rule_id=fix.rule_id, changes=len(fix.changes))


def _apply_change(change: FileChange) -> None:
    text = change.file_path.read_text(encoding="utf-8")
    lines = text.splitlines()
    current = "\n".join(lines[change.start_line - 1 : change.end_line])
    if current != change.original_text:
        raise ValueError(
            f"{change.file_path}:{change.start_line} changed since the fix was suggested"
        )
    new_lines = lines[: change.start_line - 1] + [change.replacement_text] + lines[change.end_line :]
    trailing = "\n" if text.endswith("\n") else ""
    atomic_write_text(change.file_path, "\n".join(new_lines) + trailing)
