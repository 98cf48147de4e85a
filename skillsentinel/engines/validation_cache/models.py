"""Pydantic models for the on-disk validation cache."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from skillsentinel.models.finding import AgentKind, Finding, Severity, SuggestedFix

CACHE_SCHEMA_VERSION = 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CachedFix(_CamelModel):
    rule_id: str = Field(alias="ruleID")
    description: str
    automated: bool = False


class CachedFinding(_CamelModel):
    rule_id: str = Field(alias="ruleID")
    severity: Severity
    agent: AgentKind
    message: str
    line: int | None = None
    column: int | None = None
    # Absent for findings on the cached file itself.
    file_path: str | None = Field(default=None, alias="filePath")
    suggested_fix: CachedFix | None = Field(default=None, alias="suggestedFix")

    @classmethod
    def from_finding(cls, finding: Finding) -> CachedFinding:
        fix = finding.suggested_fix
        return cls(
            rule_id=finding.rule_id,
            severity=finding.severity,
            agent=finding.agent,
            message=finding.message,
            line=finding.line,
            column=finding.column,
            file_path=str(finding.file_path),
            suggested_fix=(
                CachedFix(rule_id=fix.rule_id, description=fix.description, automated=fix.automated)
                if fix is not None
                else None
            ),
        )

    def to_finding(self, default_path: str) -> Finding:
        fix = self.suggested_fix
        return Finding(
            rule_id=self.rule_id,
            severity=self.severity,
            agent=self.agent,
            file_path=Path(self.file_path or default_path),
            message=self.message,
            line=self.line,
            column=self.column,
            suggested_fix=(
                SuggestedFix(rule_id=fix.rule_id, description=fix.description, automated=fix.automated)
                if fix is not None
                else None
            ),
        )


class SuppressedKey(_CamelModel):
    """A finding identity that was filtered out by the ignore-list when cached."""

    rule_id: str = Field(alias="ruleID")
    file_path: str = Field(alias="filePath")
    line: int | None = None

    def as_key(self) -> tuple[str, str, int | None]:
        return (self.rule_id, self.file_path, self.line)


class CachedValidation(_CamelModel):
    file_path: str = Field(alias="filePath")
    modification_time: float = Field(alias="modificationTime")
    content_hash: str = Field(alias="contentHash")
    findings: list[CachedFinding] = Field(default_factory=list)
    cached_at: float = Field(alias="cachedAt")
    dependency_hash: str | None = Field(default=None, alias="dependencyHash")
    suppressed: list[SuppressedKey] = Field(default_factory=list)

    def to_findings(self) -> list[Finding]:
        return [f.to_finding(self.file_path) for f in self.findings]


class CacheManifest(_CamelModel):
    schema_version: int = Field(default=CACHE_SCHEMA_VERSION, alias="schemaVersion")
    config_hash: str | None = Field(default=None, alias="configHash")
    entries: dict[str, CachedValidation] = Field(default_factory=dict)
