"""Hardcoded secret detection."""

from __future__ import annotations

import re
from pathlib import Path

from skillsentinel.engines.security.patterns import SecretPatternConfig, is_comment_line
from skillsentinel.models.finding import Finding, Severity, SuggestedFix
from skillsentinel.models.skill import SkillDocument

# Single- or double-quoted literal on one line, backslash escapes allowed.
_LITERAL_RE = re.compile(r"\"((?:[^\"\\\n]|\\.)*)\"|'((?:[^'\\\n]|\\.)*)'")
_ASSIGNMENT_HINT_RE = re.compile(r"[:=]\s*['\"]")

FIX_DESCRIPTION = (
    "Move the secret out of the skill: read it from an environment variable "
    "or a secure credential store at runtime."
)


class HardcodedSecretRule:
    rule_id = "security.hardcoded_secret"
    description = "Detects hardcoded API keys, secrets, tokens and passwords"
    severity = Severity.ERROR

    def __init__(self, config: SecretPatternConfig | None = None) -> None:
        self.config = config or SecretPatternConfig()
        self._prefix_re = self.config.prefix_regex()
        self._assignment_re = self.config.assignment_regex()

    def scan(self, content: str, file: Path, doc: SkillDocument) -> list[Finding]:
        findings: list[Finding] = []
        for lineno, line in enumerate(content.splitlines(), start=1):
            if is_comment_line(line) and not _ASSIGNMENT_HINT_RE.search(line):
                continue
            for match in _LITERAL_RE.finditer(line):
                value = match.group(1) if match.group(1) is not None else match.group(2)
                if self._is_secret(value, line[: match.start()]):
                    findings.append(
                        Finding(
                            rule_id=self.rule_id,
                            severity=self.severity,
                            agent=doc.agent,
                            file_path=file,
                            message="Possible hardcoded secret "
                            f"({len(value)}-character credential literal)",
                            line=lineno,
                            column=match.start() + 1,
                            suggested_fix=SuggestedFix(
                                rule_id=self.rule_id, description=FIX_DESCRIPTION
                            ),
                        )
                    )
        return findings

    def _is_secret(self, value: str, before: str) -> bool:
        if len(value) < self.config.min_length:
            return False
        if self._prefix_re.match(value):
            pass
        elif self._assignment_re.search(before):
            if any(ch.isspace() for ch in value):
                return False
        else:
            return False
        return not self._looks_like_placeholder(value)

    def _looks_like_placeholder(self, value: str) -> bool:
        lowered = value.lower()
        if any(marker in lowered for marker in self.config.placeholders):
            return True
        if len(set(value)) == 1:
            return True
        return not any(ch.isalnum() for ch in value)
