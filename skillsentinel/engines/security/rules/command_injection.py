"""Command injection detection for shell-execution primitives."""

from __future__ import annotations

import re
from pathlib import Path

from skillsentinel.engines.security.patterns import (
    CommandPatternConfig,
    is_comment_line,
    strip_inline_comment,
)
from skillsentinel.models.finding import Finding, Severity, SuggestedFix
from skillsentinel.models.skill import SkillDocument

# "literal" + var  /  var + "literal"
_CONCAT_RE = re.compile(r"[\"'`]\s*\+\s*[\w$(]|[\w)\]]\s*\+\s*[\"'`]")
# ${var} interpolation, or an f-string with a {placeholder}
_INTERPOLATION_RE = re.compile(r"\$\{|\bf[\"'][^\"']*\{")

FIX_DESCRIPTION = (
    "Run the command through a Process API with an explicit argument list "
    "(e.g. subprocess.run([...]) or Process with arguments) instead of a shell "
    "string, and apply proper argument escaping to any external input."
)


def _call_argument(line: str, open_paren: int) -> str:
    """Text between ``open_paren`` and its matching ``)``, or the rest of the line."""
    depth = 0
    quote: str | None = None
    for i in range(open_paren, len(line)):
        ch = line[i]
        if quote:
            if ch == quote and line[i - 1] != "\\":
                quote = None
            continue
        if ch in "\"'`":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return line[open_paren + 1 : i]
    return line[open_paren + 1 :]


class CommandInjectionRule:
    rule_id = "security.command_injection"
    description = "Detects shell execution built from metacharacters or unescaped input"
    severity = Severity.ERROR

    def __init__(self, config: CommandPatternConfig | None = None) -> None:
        self.config = config or CommandPatternConfig()
        self._call_re = self.config.call_regex()

    def scan(self, content: str, file: Path, doc: SkillDocument) -> list[Finding]:
        findings: list[Finding] = []
        for lineno, raw in enumerate(content.splitlines(), start=1):
            if is_comment_line(raw):
                continue
            line = strip_inline_comment(raw)
            for match in self._call_re.finditer(line):
                reason = self._risk(_call_argument(line, match.end() - 1))
                if reason is None:
                    continue
                findings.append(
                    Finding(
                        rule_id=self.rule_id,
                        severity=self.severity,
                        agent=doc.agent,
                        file_path=file,
                        message=f"{match.group(1)}() called with {reason}",
                        line=lineno,
                        column=match.start() + 1,
                        suggested_fix=SuggestedFix(
                            rule_id=self.rule_id, description=FIX_DESCRIPTION
                        ),
                    )
                )
                break
        return findings

    def _risk(self, argument: str) -> str | None:
        for meta in self.config.metacharacters:
            if meta in argument:
                return f"shell metacharacter {meta!r}"
        if _CONCAT_RE.search(argument):
            return "string concatenation"
        if _INTERPOLATION_RE.search(argument):
            return "string interpolation"
        return None
