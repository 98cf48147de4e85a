"""Skill discovery — find SKILL.md files under scan roots and load them."""

from skillsentinel.engines.discovery.finder import (
    find_skill_files,
    matches_any_glob,
    validate_exclusions,
    validate_roots,
)
from skillsentinel.engines.discovery.loader import load_skill_document, parse_frontmatter

__all__ = [
    "find_skill_files",
    "load_skill_document",
    "matches_any_glob",
    "parse_frontmatter",
    "validate_exclusions",
    "validate_roots",
]
