"""Tests for SecurityScanner: registry, script scanning and suppression."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillsentinel.engines.security import (
    HardcodedSecretRule,
    IgnoredFindings,
    SecurityScanner,
    find_script_files,
)
from skillsentinel.models import Finding, Severity

SECRET_LINE = 'let apiKey = "sk-1234567890abcdefghijklmnopqrstuvwxyz123456"\n'


class _AlwaysRule:
    rule_id = "test.always"
    description = "flags every file"
    severity = Severity.INFO

    def scan(self, content, file, doc):
        return [
            Finding(
                rule_id=self.rule_id,
                severity=self.severity,
                agent=doc.agent,
                file_path=file,
                message="seen",
            )
        ]


class TestRegistry:
    def test_default_rules(self):
        assert SecurityScanner().registered_rule_ids() == [
            "security.command_injection",
            "security.hardcoded_secret",
        ]

    def test_register_and_unregister(self):
        scanner = SecurityScanner(rules=[])
        scanner.register_rule(_AlwaysRule())
        assert scanner.registered_rule_ids() == ["test.always"]
        assert scanner.unregister_rule("test.always")
        assert not scanner.unregister_rule("test.always")
        assert scanner.registered_rule_ids() == []

    def test_register_replaces_same_id(self):
        scanner = SecurityScanner(rules=[HardcodedSecretRule()])
        scanner.register_rule(HardcodedSecretRule())
        assert len(scanner.rules) == 1


class TestScanning:
    @pytest.mark.asyncio
    async def test_scan_skill_file(self, skill_root, make_skill, load_doc):
        doc = load_doc(make_skill(skill_root, "leaky", body=SECRET_LINE))
        findings = await SecurityScanner().scan(doc)
        assert [(f.rule_id, f.line) for f in findings] == [("security.hardcoded_secret", 5)]

    @pytest.mark.asyncio
    async def test_scan_all_scripts_tags_origin(self, skill_root, make_skill, load_doc):
        path = make_skill(
            skill_root,
            "tooling",
            scripts={
                "scripts/setup.sh": SECRET_LINE,
                "scripts/run.py": 'import os\nos.system("ls; rm x")\n',
                "scripts/notes.txt": SECRET_LINE,
                "scripts/.hidden.py": SECRET_LINE,
            },
        )
        doc = load_doc(path)
        findings = await SecurityScanner().scan_all_scripts(doc)

        by_file = sorted((Path(f.file_path).name, f.rule_id, f.line) for f in findings)
        assert by_file == [
            ("run.py", "security.command_injection", 2),
            ("setup.sh", "security.hardcoded_secret", 1),
        ]

    @pytest.mark.asyncio
    async def test_binary_script_skipped(self, skill_root, make_skill, load_doc):
        path = make_skill(skill_root, "bin")
        (path.parent / "tool.py").write_bytes(b"\x00\x01" + SECRET_LINE.encode())
        assert await SecurityScanner().scan_all_scripts(load_doc(path)) == []

    @pytest.mark.asyncio
    async def test_unreadable_script_reported(self, skill_root, make_skill, load_doc, monkeypatch):
        path = make_skill(skill_root, "locked", scripts={"run.sh": "echo hi\n"})
        original = Path.read_bytes

        def _deny(self):
            if self.name == "run.sh":
                raise PermissionError(13, "Permission denied", str(self))
            return original(self)

        monkeypatch.setattr(Path, "read_bytes", _deny)
        findings = await SecurityScanner().scan_all_scripts(load_doc(path))
        assert [f.rule_id for f in findings] == ["script.unreadable"]
        assert findings[0].is_io_error

    def test_find_script_files_extensions(self, skill_root, make_skill):
        path = make_skill(skill_root, "s", scripts={"a.py": "", "b.md": "", "sub/c.SH": ""})
        names = [p.name for p in find_script_files(path.parent)]
        assert names == ["a.py", "c.SH"]

    def test_find_script_files_skips_nested_skills(self, skill_root, make_skill):
        outer = make_skill(skill_root, "outer", scripts={"scripts/a.sh": ""})
        make_skill(outer.parent, "inner", scripts={"b.sh": ""})
        names = [p.name for p in find_script_files(outer.parent)]
        assert names == ["a.sh"]

    def test_dependency_hash_tracks_scripts(self, skill_root, make_skill):
        path = make_skill(skill_root, "s", scripts={"a.py": "x = 1\n"})
        scanner = SecurityScanner()
        before = scanner.dependency_hash(path.parent)
        (path.parent / "a.py").write_text("x = 2\n")
        assert scanner.dependency_hash(path.parent) != before

        bare = make_skill(skill_root, "bare")
        assert scanner.dependency_hash(bare.parent) is None


class TestSuppression:
    @pytest.mark.asyncio
    async def test_round_trip(self, skill_root, make_skill, load_doc):
        doc = load_doc(make_skill(skill_root, "leaky", body=SECRET_LINE))
        scanner = SecurityScanner(ignored=IgnoredFindings())

        [finding] = await scanner.scan(doc)
        await scanner.ignore_finding(finding)
        assert await scanner.is_ignored(finding)
        assert await scanner.scan(doc) == []
        assert await scanner.ignored_count() == 1

        await scanner.unignore_finding(finding)
        assert await scanner.scan(doc) == [finding]

        await scanner.ignore_finding(finding)
        await scanner.clear_all_ignored()
        assert await scanner.scan(doc) == [finding]
        assert await scanner.all_ignored() == []

    @pytest.mark.asyncio
    async def test_collect_is_unfiltered(self, skill_root, make_skill, load_doc):
        doc = load_doc(make_skill(skill_root, "leaky", body=SECRET_LINE))
        scanner = SecurityScanner()
        [finding] = await scanner.scan(doc)
        await scanner.ignore_finding(finding)
        assert await scanner.collect(doc) == [finding]
