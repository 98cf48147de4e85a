"""Pattern configuration shared by the security rules.

Configured regexes go through :func:`validate_pattern` before use so that a
bad entry fails the scan up front instead of hanging a worker.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from skillsentinel.exceptions import ScanConfigError

MAX_COMPLEXITY_SCORE = 50
MAX_GROUP_NESTING = 3

# A quantified group whose body is itself quantified: (a+)+, (\w*)*, (x+){2,}
_NESTED_QUANTIFIER_RE = re.compile(r"\((?:[^()\\]|\\.)*[*+](?:[^()\\]|\\.)*\)(?:[*+]|\{\d*,\d*\})")
# Backreference to a quantified group: (.+)+\1
_KNOWN_DANGEROUS = frozenset({r"(?:a+)+", r"(?:a*)*", r"(.+)+\1"})

COMMENT_PREFIXES: tuple[str, ...] = ("//", "#")


def complexity_score(pattern: str) -> int:
    """Rough cost estimate: quantifiers, groups, classes and alternations."""
    score = sum(5 for ch in pattern if ch in "*+?")
    score += pattern.count("(") * 3
    score += pattern.count("[") * 2
    score += pattern.count("|") * 10
    return score


def _group_nesting(pattern: str) -> int:
    depth = deepest = 0
    escaped = False
    for ch in pattern:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "(":
            depth += 1
            deepest = max(deepest, depth)
        elif ch == ")":
            depth = max(0, depth - 1)
    return deepest


def validate_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a configured regex, rejecting ReDoS-prone shapes.

    Raises:
        ScanConfigError: invalid syntax, nested quantifiers, group nesting
            deeper than ``MAX_GROUP_NESTING`` or a complexity score above
            ``MAX_COMPLEXITY_SCORE``.
    """
    if pattern in _KNOWN_DANGEROUS or _NESTED_QUANTIFIER_RE.search(pattern):
        raise ScanConfigError(f"Pattern {pattern!r} has nested quantifiers")
    nesting = _group_nesting(pattern)
    if nesting > MAX_GROUP_NESTING:
        raise ScanConfigError(
            f"Pattern {pattern!r} nests groups {nesting} deep (max {MAX_GROUP_NESTING})"
        )
    score = complexity_score(pattern)
    if score > MAX_COMPLEXITY_SCORE:
        raise ScanConfigError(
            f"Pattern {pattern!r} complexity {score} exceeds {MAX_COMPLEXITY_SCORE}"
        )
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ScanConfigError(f"Invalid regex {pattern!r}: {exc}") from exc


def is_comment_line(line: str) -> bool:
    return line.lstrip().startswith(COMMENT_PREFIXES)


def strip_inline_comment(line: str) -> str:
    """Drop a trailing ``#`` or ``//`` comment that sits outside any quotes."""
    quote: str | None = None
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif ch == "#" and (i == 0 or line[i - 1].isspace()):
            return line[:i]
        elif ch == "/" and line[i + 1 : i + 2] == "/":
            return line[:i]
    return line


@dataclass(frozen=True)
class SecretPatternConfig:
    """Tuning for the hardcoded-secret rule."""

    min_length: int = 32
    credential_prefixes: tuple[str, ...] = (
        r"sk-",
        r"sk_",
        r"pk_",
        r"rk_",
        r"Bearer\s+",
        r"eyJ",
        r"ghp_",
        r"xox[bp]-",
        r"AKIA",
    )
    sensitive_names: tuple[str, ...] = (
        r"api[_-]?key",
        r"api[_-]?secret",
        r"secret(?:[_-]?key)?",
        r"auth[_-]?token",
        r"access[_-]?(?:key|token)",
        r"private[_-]?key",
        r"client[_-]?secret",
        r"token",
        r"password",
        r"passwd",
        r"passphrase",
    )
    placeholders: tuple[str, ...] = (
        "your_",
        "replace_with",
        "example",
        "demo",
        "placeholder",
        "xxx",
        "changeme",
        "dummy",
        "sample",
        "<",
        "${",
    )

    def __post_init__(self) -> None:
        if self.min_length < 1:
            raise ScanConfigError(f"min_length must be positive, got {self.min_length}")
        for pattern in (*self.credential_prefixes, *self.sensitive_names):
            validate_pattern(pattern)

    def prefix_regex(self) -> re.Pattern[str]:
        return re.compile("^(?:" + "|".join(self.credential_prefixes) + ")")

    def assignment_regex(self) -> re.Pattern[str]:
        """Matches the text *before* a literal when it assigns to a sensitive name.

        Covers ``let apiKey = ``, ``api_key: ``, ``"token": `` and annotated
        forms such as ``apiKey: String = ``.
        """
        names = "|".join(self.sensitive_names)
        return re.compile(
            r"(?i)[\w.$-]*(?:" + names + r")[\w-]*['\"]?"
            r"\s*(?::\s*[\w.<>\[\]?]+\s*)?(?:[:=]|=>|:=)\s*$"
        )


@dataclass(frozen=True)
class CommandPatternConfig:
    """Tuning for the command-injection rule."""

    primitives: tuple[str, ...] = ("shell", "system", "popen", "exec")
    metacharacters: tuple[str, ...] = (";", "|", "`", "$(")

    def __post_init__(self) -> None:
        if not self.primitives:
            raise ScanConfigError("At least one command primitive is required")
        for name in self.primitives:
            if not re.fullmatch(r"[A-Za-z_][\w.]*", name):
                raise ScanConfigError(f"Invalid command primitive name: {name!r}")

    def call_regex(self) -> re.Pattern[str]:
        names = "|".join(re.escape(p) for p in self.primitives)
        return re.compile(r"(?<![\w$])(" + names + r")\s*\(")
