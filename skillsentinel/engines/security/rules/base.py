"""Security rule protocol."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from skillsentinel.models.finding import Finding, Severity
from skillsentinel.models.skill import SkillDocument


@runtime_checkable
class SecurityRule(Protocol):
    """A content rule. ``scan`` is pure and synchronous; the scanner threads it."""

    rule_id: str
    description: str
    severity: Severity

    def scan(self, content: str, file: Path, doc: SkillDocument) -> list[Finding]: ...
