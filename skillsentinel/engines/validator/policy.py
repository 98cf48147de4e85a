"""Validation policy — the loaded configuration the general validators honour."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from skillsentinel.models.finding import AgentKind, Severity

SEVERITY_OFF = "off"


@dataclass(frozen=True)
class ValidationPolicy:
    max_lines: int = 500
    max_description_length: int = 1024
    max_name_length: int = 64
    name_pattern_agents: frozenset[AgentKind] = frozenset({AgentKind.CLAUDE, AgentKind.CODEX})
    strict_symlinks: bool = False
    # rule_id -> "error" | "warning" | "info" | "off"
    severity_overrides: Mapping[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidationPolicy:
        """Build a policy from plain config data, ignoring unknown keys."""
        kwargs: dict[str, Any] = {}
        for key in ("max_lines", "max_description_length", "max_name_length"):
            if key in data:
                kwargs[key] = int(data[key])
        if "strict_symlinks" in data:
            kwargs["strict_symlinks"] = bool(data["strict_symlinks"])
        if "name_pattern_agents" in data:
            kwargs["name_pattern_agents"] = frozenset(
                AgentKind(a) for a in data["name_pattern_agents"]
            )
        if "severity_overrides" in data:
            overrides = dict(data["severity_overrides"])
            for rule_id, value in overrides.items():
                if value != SEVERITY_OFF:
                    Severity(value)  # raises ValueError on typos
            kwargs["severity_overrides"] = overrides
        return cls(**kwargs)

    def severity_for(self, rule_id: str, default: Severity) -> Severity | None:
        """Effective severity for *rule_id*; ``None`` means the rule is switched off."""
        override = self.severity_overrides.get(rule_id)
        if override is None:
            return default
        if override == SEVERITY_OFF:
            return None
        return Severity(override)

    def fingerprint(self) -> dict[str, Any]:
        return {
            "max_lines": self.max_lines,
            "max_description_length": self.max_description_length,
            "max_name_length": self.max_name_length,
            "name_pattern_agents": sorted(a.value for a in self.name_pattern_agents),
            "strict_symlinks": self.strict_symlinks,
            "severity_overrides": dict(sorted(self.severity_overrides.items())),
        }
