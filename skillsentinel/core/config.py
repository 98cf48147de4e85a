"""Runtime defaults and environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from skillsentinel.exceptions import ScanConfigError

if TYPE_CHECKING:
    from skillsentinel.engines.security.ignored import IgnoredFindings
    from skillsentinel.engines.validation_cache.manager import CacheManager

SKILL_FILE_NAME = "SKILL.md"

DEFAULT_EXCLUDE_DIRS: frozenset[str] = frozenset({".git", ".system", "__pycache__", ".DS_Store"})

# Extensions treated as scripts when scanning beneath a skill directory.
DEFAULT_SCRIPT_EXTENSIONS: frozenset[str] = frozenset(
    {".py", ".sh", ".bash", ".zsh", ".js", ".mjs", ".cjs", ".ts", ".rb", ".swift"}
)


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ScanConfigError(f"{key} must be an integer, got {raw!r}") from None


def _env_path(key: str) -> Path | None:
    value = os.environ.get(key)
    if not value:
        return None
    return Path(value).expanduser()


def default_max_concurrency() -> int:
    """Concurrency limit used when the caller does not pass one."""
    return _env_int("SKILLSENTINEL_MAX_CONCURRENCY", os.cpu_count() or 1)


@dataclass(frozen=True)
class ScanSettings:
    """Settings a caller would otherwise have to assemble by hand."""

    max_concurrency: int
    cache_path: Path | None = None
    ignore_path: Path | None = None
    exclude_dir_names: frozenset[str] = DEFAULT_EXCLUDE_DIRS

    @classmethod
    def from_env(cls) -> ScanSettings:
        """Read from environment variables:

        SKILLSENTINEL_MAX_CONCURRENCY — worker limit (default: CPU count)
        SKILLSENTINEL_CACHE_PATH      — validation cache file (default: disabled)
        SKILLSENTINEL_IGNORE_PATH     — ignore-list file (default: in-memory)
        """
        return cls(
            max_concurrency=default_max_concurrency(),
            cache_path=_env_path("SKILLSENTINEL_CACHE_PATH"),
            ignore_path=_env_path("SKILLSENTINEL_IGNORE_PATH"),
        )

    def cache_manager(self, config_hash: str | None) -> CacheManager | None:
        """Cache bound to ``cache_path``, or ``None`` when caching is disabled."""
        from skillsentinel.engines.validation_cache.manager import CacheManager

        if self.cache_path is None:
            return None
        return CacheManager(self.cache_path, config_hash=config_hash)

    def ignored_findings(self) -> IgnoredFindings:
        """Ignore-list on ``ignore_path``, in memory when it is unset."""
        from skillsentinel.engines.security.ignored import (
            IgnoredFindings,
            JsonFileIgnoreStore,
            MemoryIgnoreStore,
        )

        if self.ignore_path is None:
            return IgnoredFindings(MemoryIgnoreStore())
        return IgnoredFindings(JsonFileIgnoreStore(self.ignore_path))
