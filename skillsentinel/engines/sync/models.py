"""Sync report types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from skillsentinel.models.finding import AgentKind


@dataclass(frozen=True)
class SkillFingerprint:
    agent: AgentKind
    name: str
    skill_file: Path
    content_hash: str
    modified: datetime


@dataclass
class ContentDifference:
    name: str
    hashes: dict[AgentKind, str]
    modified: dict[AgentKind, datetime]


@dataclass
class MultiSyncReport:
    # Only agents that lack at least one skill appear as keys.
    missing_by_agent: dict[AgentKind, list[str]] = field(default_factory=dict)
    different_content: list[ContentDifference] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.missing_by_agent and not self.different_content


@dataclass
class SyncReport:
    """Two-root comparison between a codex and a claude skill tree."""

    only_in_codex: list[str] = field(default_factory=list)
    only_in_claude: list[str] = field(default_factory=list)
    different_content: list[str] = field(default_factory=list)
