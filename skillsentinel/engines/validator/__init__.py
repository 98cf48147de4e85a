"""General validators for skill structure and metadata."""

from skillsentinel.engines.validator.policy import ValidationPolicy
from skillsentinel.engines.validator.rules import DEFAULT_CHECKS, SkillValidator

__all__ = ["DEFAULT_CHECKS", "SkillValidator", "ValidationPolicy"]
