"""Skill document loader — frontmatter and the counts the rules need."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from skillsentinel.exceptions import SkillLoadError
from skillsentinel.models.finding import AgentKind
from skillsentinel.models.skill import SkillDocument

_FRONTMATTER_DELIMITER = "---"
_FRONTMATTER_END = {"---", "..."}

# [text](target) and [text](target "title")
_MARKDOWN_LINK_RE = re.compile(r"\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
_URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


@dataclass
class Frontmatter:
    start_line: int
    end_line: int | None
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.error is None


def parse_frontmatter(lines: list[str]) -> Frontmatter | None:
    """Parse the YAML block opening on the first non-blank line.

    Returns ``None`` when there is no opening delimiter at all.
    """
    start = next((i for i, line in enumerate(lines) if line.strip()), None)
    if start is None or lines[start].strip() != _FRONTMATTER_DELIMITER:
        return None

    end = next(
        (j for j in range(start + 1, len(lines)) if lines[j].strip() in _FRONTMATTER_END),
        None,
    )
    if end is None:
        return Frontmatter(start_line=start + 1, end_line=None, error="unterminated frontmatter block")

    block = "\n".join(lines[start + 1 : end])
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        return Frontmatter(start_line=start + 1, end_line=end + 1, error=f"invalid YAML: {exc}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return Frontmatter(
            start_line=start + 1, end_line=end + 1, error="frontmatter is not a key/value mapping"
        )
    return Frontmatter(start_line=start + 1, end_line=end + 1, data=data)


def _text_field(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return str(value).strip()


def _count_files(directory: Path) -> int:
    if not directory.is_dir():
        return 0
    count = 0
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        count += sum(1 for f in filenames if not f.startswith("."))
    return count


def _is_symlinked(root: Path, skill_dir: Path) -> bool:
    """True if the skill dir, or any directory between it and the root, is a symlink."""
    try:
        rel = skill_dir.relative_to(root)
    except ValueError:
        return skill_dir.is_symlink()
    current = root
    for part in rel.parts:
        current = current / part
        if current.is_symlink():
            return True
    return False


def _broken_references(body: str, skill_dir: Path) -> tuple[str, ...]:
    broken: list[str] = []
    for match in _MARKDOWN_LINK_RE.finditer(body):
        target = match.group(1)
        if target.startswith(("#", "/")) or _URL_SCHEME_RE.match(target):
            continue
        target = target.split("#", 1)[0].split("?", 1)[0]
        if not target or target in broken:
            continue
        if not (skill_dir / target).exists():
            broken.append(target)
    return tuple(broken)


def load_skill_document(agent: AgentKind, root_path: Path, skill_file: Path) -> SkillDocument:
    """Load *skill_file*; raises :class:`SkillLoadError` if it cannot be read."""
    try:
        raw = skill_file.read_bytes()
    except OSError as exc:
        raise SkillLoadError(skill_file, exc.strerror or str(exc)) from exc
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SkillLoadError(skill_file, "not valid UTF-8") from exc
    text = text.removeprefix("\ufeff")

    lines = text.splitlines()
    frontmatter = parse_frontmatter(lines)
    data = frontmatter.data if frontmatter is not None else {}
    body_start = frontmatter.end_line if frontmatter is not None and frontmatter.end_line else 0
    body = "\n".join(lines[body_start:])

    skill_dir = skill_file.parent
    return SkillDocument(
        agent=agent,
        root_path=root_path,
        skill_dir=skill_dir,
        skill_file=skill_file,
        name=_text_field(data, "name"),
        description=_text_field(data, "description"),
        line_count=len(lines),
        is_symlinked_dir=_is_symlinked(Path(os.path.abspath(root_path.expanduser())), skill_dir),
        has_frontmatter=frontmatter is not None and frontmatter.valid,
        frontmatter_start_line=frontmatter.start_line if frontmatter is not None else None,
        references_count=_count_files(skill_dir / "references"),
        assets_count=_count_files(skill_dir / "assets"),
        scripts_count=_count_files(skill_dir / "scripts"),
        frontmatter_error=frontmatter.error if frontmatter is not None else None,
        broken_references=_broken_references(body, skill_dir),
    )
