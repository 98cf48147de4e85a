"""Security sub-engine: rules, scanner and the ignore-list."""

from skillsentinel.engines.security.ignored import (
    IgnoredFindings,
    IgnoredRecord,
    IgnoreStore,
    JsonFileIgnoreStore,
    MemoryIgnoreStore,
)
from skillsentinel.engines.security.patterns import (
    CommandPatternConfig,
    SecretPatternConfig,
    validate_pattern,
)
from skillsentinel.engines.security.rules import (
    CommandInjectionRule,
    HardcodedSecretRule,
    SecurityRule,
)
from skillsentinel.engines.security.scanner import SecurityScanner, default_rules, find_script_files

__all__ = [
    "CommandInjectionRule",
    "CommandPatternConfig",
    "HardcodedSecretRule",
    "IgnoreStore",
    "IgnoredFindings",
    "IgnoredRecord",
    "JsonFileIgnoreStore",
    "MemoryIgnoreStore",
    "SecretPatternConfig",
    "SecurityRule",
    "SecurityScanner",
    "default_rules",
    "find_script_files",
    "validate_pattern",
]
