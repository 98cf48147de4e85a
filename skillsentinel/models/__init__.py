"""Data models shared by every engine."""

from skillsentinel.models.finding import (
    IO_ERROR_RULE_IDS,
    AgentKind,
    FileChange,
    Finding,
    Severity,
    SuggestedFix,
    sort_findings,
    with_suggested_fix,
)
from skillsentinel.models.skill import ScanRoot, SkillDocument

__all__ = [
    "IO_ERROR_RULE_IDS",
    "AgentKind",
    "FileChange",
    "Finding",
    "ScanRoot",
    "Severity",
    "SkillDocument",
    "SuggestedFix",
    "sort_findings",
    "with_suggested_fix",
]
