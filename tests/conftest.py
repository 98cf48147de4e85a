"""Shared pytest fixtures for skillsentinel tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillsentinel.engines.discovery import load_skill_document
from skillsentinel.models import AgentKind

VALID_FRONTMATTER = "---\nname: {name}\ndescription: Does {name} things\n---\n"


def write_skill(
    base: Path,
    name: str,
    body: str = "# Usage\n\nRun it.\n",
    frontmatter: str | None = None,
    scripts: dict[str, str] | None = None,
) -> Path:
    """Create ``base/<name>/SKILL.md`` (plus optional files) and return the SKILL.md path."""
    skill_dir = base / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    header = VALID_FRONTMATTER.format(name=name) if frontmatter is None else frontmatter
    skill_file = skill_dir / "SKILL.md"
    skill_file.write_text(header + body, encoding="utf-8")
    for rel, content in (scripts or {}).items():
        target = skill_dir / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return skill_file


@pytest.fixture
def make_skill():
    return write_skill


@pytest.fixture
def skill_root(tmp_path):
    root = tmp_path / "skills"
    root.mkdir()
    return root


@pytest.fixture
def load_doc():
    def _load(skill_file: Path, agent: AgentKind = AgentKind.CLAUDE, root: Path | None = None):
        return load_skill_document(agent, root or skill_file.parent.parent, skill_file)

    return _load
