"""Built-in security rules."""

from skillsentinel.engines.security.rules.base import SecurityRule
from skillsentinel.engines.security.rules.command_injection import CommandInjectionRule
from skillsentinel.engines.security.rules.hardcoded_secret import HardcodedSecretRule

__all__ = ["CommandInjectionRule", "HardcodedSecretRule", "SecurityRule"]
