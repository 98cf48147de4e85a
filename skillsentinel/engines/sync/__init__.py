"""Cross-agent sync checking."""

from skillsentinel.engines.sync.checker import SyncChecker
from skillsentinel.engines.sync.models import (
    ContentDifference,
    MultiSyncReport,
    SkillFingerprint,
    SyncReport,
)

__all__ = [
    "ContentDifference",
    "MultiSyncReport",
    "SkillFingerprint",
    "SyncChecker",
    "SyncReport",
]
