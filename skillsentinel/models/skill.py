"""Scan roots and loaded skill documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from skillsentinel.models.finding import AgentKind


@dataclass(frozen=True)
class ScanRoot:
    """One filesystem subtree to scan for one agent ecosystem."""

    agent: AgentKind
    root_path: Path
    recursive: bool = False
    max_depth: int | None = None  # directory depth below root_path; None = unbounded


@dataclass(frozen=True)
class SkillDocument:
    """Loaded representation of a single skill. Rules receive it read-only."""

    agent: AgentKind
    root_path: Path
    skill_dir: Path
    skill_file: Path
    name: str | None
    description: str | None
    line_count: int
    is_symlinked_dir: bool
    has_frontmatter: bool
    frontmatter_start_line: int | None = None
    references_count: int = 0
    assets_count: int = 0
    scripts_count: int = 0
    frontmatter_error: str | None = None
    broken_references: tuple[str, ...] = field(default=())

    @property
    def display_name(self) -> str:
        return self.name or self.skill_dir.name
