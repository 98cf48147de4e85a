"""Security scanner — rule registry plus skill-file and script scanning."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable
from pathlib import Path

import structlog

from skillsentinel.core.config import DEFAULT_SCRIPT_EXTENSIONS, SKILL_FILE_NAME
from skillsentinel.core.hashing import combined_digest, sha256_file
from skillsentinel.engines.security.ignored import IgnoredFindings, IgnoredRecord
from skillsentinel.engines.security.rules import (
    CommandInjectionRule,
    HardcodedSecretRule,
    SecurityRule,
)
from skillsentinel.models.finding import Finding, Severity
from skillsentinel.models.skill import SkillDocument

log = structlog.get_logger("skillsentinel.security")


def default_rules() -> list[SecurityRule]:
    return [HardcodedSecretRule(), CommandInjectionRule()]


def find_script_files(skill_dir: Path, extensions: frozenset[str] = DEFAULT_SCRIPT_EXTENSIONS) -> list[Path]:
    """Script files beneath *skill_dir*, hidden entries and the skill file excluded.

    Subdirectories holding their own skill file belong to that nested skill
    and are not descended into.
    """
    scripts: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(skill_dir):
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not d.startswith(".") and not os.path.isfile(os.path.join(dirpath, d, SKILL_FILE_NAME))
        )
        for name in sorted(filenames):
            if name.startswith(".") or name == SKILL_FILE_NAME:
                continue
            if Path(name).suffix.lower() in extensions:
                scripts.append(Path(dirpath) / name)
    return scripts


def _read_text(path: Path) -> str | None:
    """Decoded text, or ``None`` for binary content."""
    data = path.read_bytes()
    if b"\0" in data:
        return None
    return data.decode("utf-8", errors="replace")


class SecurityScanner:
    """Runs registered security rules and owns the suppression API."""

    def __init__(
        self,
        rules: Iterable[SecurityRule] | None = None,
        ignored: IgnoredFindings | None = None,
        script_extensions: frozenset[str] = DEFAULT_SCRIPT_EXTENSIONS,
    ) -> None:
        self._rules: dict[str, SecurityRule] = {}
        for rule in default_rules() if rules is None else rules:
            self.register_rule(rule)
        self.ignored = ignored or IgnoredFindings()
        self.script_extensions = frozenset(e.lower() for e in script_extensions)

    # -- registry -----------------------------------------------------------

    def register_rule(self, rule: SecurityRule) -> None:
        """Add or replace a rule. Re-registering an ID overwrites it."""
        if rule.rule_id in self._rules:
            log.info("security.rule_replaced", rule_id=rule.rule_id)
        self._rules[rule.rule_id] = rule

    def unregister_rule(self, rule_id: str) -> bool:
        return self._rules.pop(rule_id, None) is not None

    def registered_rule_ids(self) -> list[str]:
        return sorted(self._rules)

    @property
    def rules(self) -> list[SecurityRule]:
        return list(self._rules.values())

    # -- scanning -----------------------------------------------------------

    def _run_rules(self, content: str, file: Path, doc: SkillDocument) -> list[Finding]:
        findings: list[Finding] = []
        for rule in list(self._rules.values()):
            findings.extend(rule.scan(content, file, doc))
        return findings

    def _scan_file_sync(self, path: Path, doc: SkillDocument) -> list[Finding]:
        try:
            content = _read_text(path)
        except OSError as exc:
            log.warning("security.script_unreadable", path=str(path), error=str(exc))
            return [
                Finding(
                    rule_id="script.unreadable",
                    severity=Severity.WARNING,
                    agent=doc.agent,
                    file_path=path,
                    message=f"Script could not be read: {exc.strerror or exc}",
                )
            ]
        if content is None:
            return []
        return self._run_rules(content, path, doc)

    async def scan_script(self, path: Path, doc: SkillDocument) -> list[Finding]:
        return await asyncio.to_thread(self._scan_file_sync, path, doc)

    async def _collect_skill_file(self, doc: SkillDocument) -> list[Finding]:
        return await asyncio.to_thread(self._scan_file_sync, doc.skill_file, doc)

    async def _collect_scripts(self, doc: SkillDocument) -> list[Finding]:
        scripts = await asyncio.to_thread(find_script_files, doc.skill_dir, self.script_extensions)
        findings: list[Finding] = []
        for path in scripts:
            findings.extend(await self.scan_script(path, doc))
        return findings

    async def scan(self, doc: SkillDocument) -> list[Finding]:
        """All rules over the skill file, with suppression applied."""
        kept, _ = await self.ignored.partition(await self._collect_skill_file(doc))
        return kept

    async def scan_all_scripts(self, doc: SkillDocument) -> list[Finding]:
        """All rules over every script beneath the skill directory, suppression applied."""
        kept, _ = await self.ignored.partition(await self._collect_scripts(doc))
        return kept

    async def collect(self, doc: SkillDocument) -> list[Finding]:
        """Unfiltered skill-file and script findings; callers apply suppression."""
        return await self._collect_skill_file(doc) + await self._collect_scripts(doc)

    def dependency_hash(self, skill_dir: Path) -> str | None:
        """Combined digest of the scripts under *skill_dir*; ``None`` when there are none.

        Blocking; run it in a worker thread.
        """
        scripts = find_script_files(skill_dir, self.script_extensions)
        if not scripts:
            return None
        entries = []
        for path in scripts:
            try:
                digest = sha256_file(path)
            except OSError:
                digest = "unreadable"
            entries.append((path.relative_to(skill_dir).as_posix(), digest))
        return combined_digest(entries)

    # -- suppression --------------------------------------------------------

    async def ignore_finding(self, finding: Finding) -> IgnoredRecord:
        return await self.ignored.ignore(finding.rule_id, finding.file_path, finding.line)

    async def unignore_finding(self, finding: Finding) -> int:
        return await self.ignored.unignore(finding.rule_id, finding.file_path, finding.line)

    async def is_ignored(self, finding: Finding) -> bool:
        return await self.ignored.is_ignored(finding)

    async def all_ignored(self) -> list[IgnoredRecord]:
        return await self.ignored.list_all()

    async def ignored_count(self) -> int:
        return await self.ignored.count()

    async def clear_all_ignored(self) -> None:
        await self.ignored.clear_all()
