"""Scan result types."""

from __future__ import annotations

from dataclasses import dataclass, field

from skillsentinel.models.finding import Finding


@dataclass
class ScanStats:
    total_files: int = 0
    scanned_files: int = 0  # cache misses that ran the rules
    cache_hits: int = 0
    unreadable_files: int = 0
    peak_concurrency: int = 0
    cancelled: bool = False
    duration: float = 0.0

    @property
    def cache_hit_rate(self) -> float:
        looked_up = self.cache_hits + self.scanned_files
        if looked_up == 0:
            return 0.0
        return self.cache_hits / looked_up


@dataclass
class ScanOutcome:
    findings: list[Finding] = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)

    @property
    def io_errors(self) -> list[Finding]:
        """Findings that mean "could not read", as opposed to content problems."""
        return [f for f in self.findings if f.is_io_error]
