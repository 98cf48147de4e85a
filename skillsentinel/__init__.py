"""skillsentinel: discovery, validation, security scanning and sync checks for agent skills."""

__version__ = "0.1.0"

from skillsentinel.engines.discovery import find_skill_files, load_skill_document
from skillsentinel.engines.scan import ScanOutcome, ScanStats, SkillScanOrchestrator, scan_and_validate
from skillsentinel.engines.security import (
    IgnoredFindings,
    JsonFileIgnoreStore,
    MemoryIgnoreStore,
    SecurityScanner,
)
from skillsentinel.engines.sync import MultiSyncReport, SyncChecker, SyncReport
from skillsentinel.engines.validation_cache import CacheManager
from skillsentinel.engines.validator import SkillValidator, ValidationPolicy
from skillsentinel.exceptions import ScanConfigError, SkillLoadError, SkillSentinelError
from skillsentinel.models import AgentKind, Finding, ScanRoot, Severity, SkillDocument

__all__ = [
    "AgentKind",
    "CacheManager",
    "Finding",
    "IgnoredFindings",
    "JsonFileIgnoreStore",
    "MemoryIgnoreStore",
    "MultiSyncReport",
    "ScanConfigError",
    "ScanOutcome",
    "ScanRoot",
    "ScanStats",
    "SecurityScanner",
    "Severity",
    "SkillDocument",
    "SkillLoadError",
    "SkillScanOrchestrator",
    "SkillSentinelError",
    "SkillValidator",
    "SyncChecker",
    "SyncReport",
    "ValidationPolicy",
    "find_skill_files",
    "load_skill_document",
    "scan_and_validate",
]
