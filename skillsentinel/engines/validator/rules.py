"""General skill validators — structure and metadata checks."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Callable, Iterator

from skillsentinel.engines.validator.policy import ValidationPolicy
from skillsentinel.models.finding import Finding, Severity
from skillsentinel.models.skill import SkillDocument

_NAME_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

Check = Callable[[SkillDocument, ValidationPolicy], Iterator[Finding]]


def _finding(
    doc: SkillDocument,
    rule_id: str,
    severity: Severity,
    message: str,
    line: int | None = None,
) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity=severity,
        agent=doc.agent,
        file_path=doc.skill_file,
        message=message,
        line=line,
    )


def check_frontmatter(doc: SkillDocument, policy: ValidationPolicy) -> Iterator[Finding]:
    if doc.frontmatter_error is not None:
        yield _finding(
            doc,
            "frontmatter.invalid",
            Severity.ERROR,
            f"Frontmatter could not be parsed: {doc.frontmatter_error}",
            line=doc.frontmatter_start_line,
        )
        return
    if not doc.has_frontmatter:
        yield _finding(
            doc,
            "frontmatter.missing",
            Severity.ERROR,
            "Missing YAML frontmatter (expected '---' block with name and description)",
            line=1,
        )
        return
    if not doc.name:
        yield _finding(
            doc,
            "frontmatter.name.missing",
            Severity.ERROR,
            "Frontmatter is missing a non-empty 'name'",
            line=doc.frontmatter_start_line,
        )
    if not doc.description:
        yield _finding(
            doc,
            "frontmatter.description.missing",
            Severity.ERROR,
            "Frontmatter is missing a non-empty 'description'",
            line=doc.frontmatter_start_line,
        )


def check_name(doc: SkillDocument, policy: ValidationPolicy) -> Iterator[Finding]:
    if not doc.name or doc.agent not in policy.name_pattern_agents:
        return
    if len(doc.name) > policy.max_name_length or not _NAME_RE.match(doc.name):
        yield _finding(
            doc,
            f"{doc.agent.value}.name.pattern",
            Severity.ERROR,
            f"Skill name {doc.name!r} must be lowercase letters, digits and hyphens "
            f"(max {policy.max_name_length} characters)",
            line=doc.frontmatter_start_line,
        )


def check_description(doc: SkillDocument, policy: ValidationPolicy) -> Iterator[Finding]:
    if doc.description and len(doc.description) > policy.max_description_length:
        yield _finding(
            doc,
            f"{doc.agent.value}.description.length",
            Severity.WARNING,
            f"Description is {len(doc.description)} characters "
            f"(limit {policy.max_description_length})",
            line=doc.frontmatter_start_line,
        )


def check_length(doc: SkillDocument, policy: ValidationPolicy) -> Iterator[Finding]:
    if doc.line_count > policy.max_lines:
        yield _finding(
            doc,
            "skill.length.warning",
            Severity.WARNING,
            f"SKILL.md has {doc.line_count} lines (recommended max {policy.max_lines}); "
            "move detail into references/",
        )


def check_symlink(doc: SkillDocument, policy: ValidationPolicy) -> Iterator[Finding]:
    if doc.is_symlinked_dir:
        yield _finding(
            doc,
            "skill.symlinked_dir",
            Severity.WARNING if policy.strict_symlinks else Severity.INFO,
            "Skill directory is reached through a symlink",
        )


def check_references(doc: SkillDocument, policy: ValidationPolicy) -> Iterator[Finding]:
    for target in doc.broken_references:
        yield _finding(
            doc,
            "references.broken",
            Severity.WARNING,
            f"Linked file does not exist: {target}",
        )


DEFAULT_CHECKS: tuple[Check, ...] = (
    check_frontmatter,
    check_name,
    check_description,
    check_length,
    check_symlink,
    check_references,
)


class SkillValidator:
    """Run the structural checks and apply the policy's severity overrides."""

    def __init__(self, checks: tuple[Check, ...] = DEFAULT_CHECKS) -> None:
        self._checks = checks

    def validate(self, doc: SkillDocument, policy: ValidationPolicy | None = None) -> list[Finding]:
        policy = policy or ValidationPolicy()
        findings: list[Finding] = []
        for check in self._checks:
            for finding in check(doc, policy):
                severity = policy.severity_for(finding.rule_id, finding.severity)
                if severity is None:
                    continue
                if severity is not finding.severity:
                    finding = dataclasses.replace(finding, severity=severity)
                findings.append(finding)
        return findings
