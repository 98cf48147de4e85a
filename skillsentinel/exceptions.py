"""Custom exceptions for skillsentinel."""

from __future__ import annotations

from pathlib import Path


class SkillSentinelError(Exception):
    """Base exception for all skillsentinel errors."""


class ScanConfigError(SkillSentinelError):
    """Raised before scanning when the caller supplied an invalid configuration.

    Malformed exclusion globs, a negative max depth, a non-positive concurrency
    limit and unsafe configured regex patterns all end up here.
    """


class SkillLoadError(SkillSentinelError):
    """Raised when a skill document cannot be read or decoded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load skill document {path}: {reason}")
