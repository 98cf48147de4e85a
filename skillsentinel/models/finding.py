"""Findings — the atomic unit of scanner output."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class AgentKind(str, Enum):
    """Agent ecosystem a skill root belongs to."""

    CODEX = "codex"
    CLAUDE = "claude"
    COPILOT = "copilot"
    CODEX_SKILL_MANAGER = "codex-skill-manager"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}

# Rule IDs for "this file could not be read", as opposed to content findings.
IO_ERROR_RULE_IDS = frozenset({"document.unreadable", "script.unreadable"})


@dataclass(frozen=True)
class FileChange:
    """A single text replacement inside one file."""

    file_path: Path
    start_line: int
    end_line: int
    original_text: str
    replacement_text: str


@dataclass(frozen=True)
class SuggestedFix:
    rule_id: str
    description: str
    automated: bool = False
    changes: tuple[FileChange, ...] = ()


@dataclass(frozen=True)
class Finding:
    """One validation or security issue scoped to a rule, file and optional position."""

    rule_id: str
    severity: Severity
    agent: AgentKind
    file_path: Path
    message: str
    line: int | None = None
    column: int | None = None
    suggested_fix: SuggestedFix | None = None

    @property
    def key(self) -> tuple[str, str, int | None]:
        """Identity used for deduplication and suppression."""
        return (self.rule_id, str(self.file_path), self.line)

    @property
    def is_io_error(self) -> bool:
        return self.rule_id in IO_ERROR_RULE_IDS


def with_suggested_fix(finding: Finding, fix: SuggestedFix | None) -> Finding:
    """Return a copy of *finding* carrying *fix*; the original is untouched."""
    return dataclasses.replace(finding, suggested_fix=fix)


def sort_key(finding: Finding) -> tuple:
    return (
        finding.severity.rank,
        finding.agent.value,
        str(finding.file_path),
        finding.message,
        finding.rule_id,
        finding.line if finding.line is not None else -1,
        finding.column if finding.column is not None else -1,
    )


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Deterministic order: severity, agent, file path, message."""
    return sorted(findings, key=sort_key)
