"""Concurrent scan orchestration."""

from skillsentinel.engines.scan.models import ScanOutcome, ScanStats
from skillsentinel.engines.scan.orchestrator import SkillScanOrchestrator, scan_and_validate

__all__ = ["ScanOutcome", "ScanStats", "SkillScanOrchestrator", "scan_and_validate"]
