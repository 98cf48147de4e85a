"""Tests for SkillScanOrchestrator.

End-to-end scans over temporary skill trees: discovery -> cache -> rules ->
sorted findings and stats.
"""

from __future__ import annotations

import asyncio

import pytest

from skillsentinel.engines.scan import SkillScanOrchestrator, scan_and_validate
from skillsentinel.engines.security import IgnoredFindings, SecurityScanner
from skillsentinel.engines.validation_cache import CacheManager
from skillsentinel.engines.validator import ValidationPolicy
from skillsentinel.exceptions import ScanConfigError
from skillsentinel.models import AgentKind, ScanRoot, Severity
from skillsentinel.models.finding import sort_key
from skillsentinel.progress import ProgressTracker

SECRET_LINE = 'let apiKey = "sk-1234567890abcdefghijklmnopqrstuvwxyz123456"\n'


def _root(path, agent=AgentKind.CLAUDE, recursive=False):
    return ScanRoot(agent=agent, root_path=path, recursive=recursive)


def _orchestrator(**kwargs):
    return SkillScanOrchestrator(security_scanner=SecurityScanner(ignored=IgnoredFindings()), **kwargs)


def _cache(tmp_path, orchestrator, policy=None):
    return CacheManager(tmp_path / "cache.json", config_hash=orchestrator.config_hash(policy))


# ── Basic scanning ───────────────────────────────────────────────────────────


class TestScan:
    @pytest.mark.asyncio
    async def test_findings_and_stats(self, skill_root, make_skill):
        make_skill(skill_root, "clean")
        make_skill(skill_root, "bare", frontmatter="")
        make_skill(skill_root, "leaky", scripts={"scripts/run.swift": SECRET_LINE})

        outcome = await _orchestrator().scan_and_validate([_root(skill_root)], max_concurrency=2)

        assert sorted((f.rule_id, f.file_path.name) for f in outcome.findings) == [
            ("frontmatter.missing", "SKILL.md"),
            ("security.hardcoded_secret", "run.swift"),
        ]
        secret = next(f for f in outcome.findings if f.rule_id == "security.hardcoded_secret")
        assert secret.line == 1
        assert secret.severity is Severity.ERROR
        assert outcome.stats.total_files == 3
        assert outcome.stats.scanned_files == 3
        assert outcome.stats.cache_hits == 0
        assert outcome.stats.cache_hit_rate == 0.0
        assert not outcome.stats.cancelled

    @pytest.mark.asyncio
    async def test_findings_sorted(self, skill_root, make_skill):
        make_skill(skill_root, "b-long", body="line\n" * 600)
        make_skill(skill_root, "a-bare", frontmatter="")
        make_skill(skill_root, "c-refs", body="[x](missing.md)\n")

        outcome = await _orchestrator().scan_and_validate([_root(skill_root)])
        assert outcome.findings == sorted(outcome.findings, key=sort_key)
        assert outcome.findings[0].severity is Severity.ERROR

    @pytest.mark.asyncio
    async def test_agent_propagates_to_findings(self, tmp_path, make_skill):
        make_skill(tmp_path / "codex", "bare", frontmatter="")
        make_skill(tmp_path / "claude", "bare", frontmatter="")

        outcome = await _orchestrator().scan_and_validate(
            [_root(tmp_path / "codex", AgentKind.CODEX), _root(tmp_path / "claude")]
        )
        assert sorted(f.agent.value for f in outcome.findings) == ["claude", "codex"]

    @pytest.mark.asyncio
    async def test_unreadable_file_becomes_finding(self, skill_root, make_skill, tmp_path):
        make_skill(skill_root, "good")
        bad = skill_root / "bad"
        bad.mkdir()
        (bad / "SKILL.md").write_bytes(b"\xff\xfe\xfa")

        orchestrator = _orchestrator()
        cache = _cache(tmp_path, orchestrator)
        outcome = await orchestrator.scan_and_validate([_root(skill_root)], cache_manager=cache)

        assert [f.rule_id for f in outcome.findings] == ["document.unreadable"]
        assert outcome.io_errors == outcome.findings
        assert outcome.stats.unreadable_files == 1

        again = await orchestrator.scan_and_validate([_root(skill_root)], cache_manager=cache)
        assert again.stats.cache_hits == 1
        assert again.stats.scanned_files == 1

    @pytest.mark.asyncio
    async def test_module_level_entry_point(self, skill_root, make_skill):
        make_skill(skill_root, "bare", frontmatter="")
        outcome = await scan_and_validate([_root(skill_root)], max_concurrency=1)
        assert [f.rule_id for f in outcome.findings] == ["frontmatter.missing"]

    @pytest.mark.asyncio
    async def test_nested_skill_scripts_reported_once(self, skill_root, make_skill):
        make_skill(skill_root, "outer")
        make_skill(skill_root / "outer", "inner", scripts={"run.sh": SECRET_LINE})

        outcome = await _orchestrator().scan_and_validate([_root(skill_root, recursive=True)])

        secrets = [
            (f.file_path.parent.name, f.file_path.name, f.line)
            for f in outcome.findings
            if f.rule_id == "security.hardcoded_secret"
        ]
        assert secrets == [("inner", "run.sh", 1)]
        assert outcome.stats.total_files == 2

    @pytest.mark.asyncio
    async def test_policy_is_applied(self, skill_root, make_skill):
        make_skill(skill_root, "long", body="line\n" * 50)
        outcome = await _orchestrator().scan_and_validate(
            [_root(skill_root)], policy=ValidationPolicy(max_lines=10)
        )
        assert [f.rule_id for f in outcome.findings] == ["skill.length.warning"]


class TestConfigErrors:
    @pytest.mark.asyncio
    async def test_bad_glob(self, skill_root):
        with pytest.raises(ScanConfigError):
            await _orchestrator().scan_and_validate([_root(skill_root)], exclude_globs=["[oops"])

    @pytest.mark.asyncio
    async def test_negative_depth(self, skill_root):
        root = ScanRoot(agent=AgentKind.CLAUDE, root_path=skill_root, recursive=True, max_depth=-2)
        with pytest.raises(ScanConfigError):
            await _orchestrator().scan_and_validate([root])

    @pytest.mark.asyncio
    async def test_zero_concurrency(self, skill_root):
        with pytest.raises(ScanConfigError):
            await _orchestrator().scan_and_validate([_root(skill_root)], max_concurrency=0)


# ── Cache integration ────────────────────────────────────────────────────────


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_scan_is_all_hits_and_identical(self, tmp_path, skill_root, make_skill):
        for i in range(5):
            make_skill(skill_root, f"skill-{i}", scripts={"run.sh": SECRET_LINE})
        make_skill(skill_root, "bare", frontmatter="")

        orchestrator = _orchestrator()
        first = await orchestrator.scan_and_validate(
            [_root(skill_root)], cache_manager=_cache(tmp_path, orchestrator)
        )
        second = await orchestrator.scan_and_validate(
            [_root(skill_root)], cache_manager=_cache(tmp_path, orchestrator)
        )

        assert second.findings == first.findings
        assert second.stats.cache_hits == 6
        assert second.stats.scanned_files == 0
        assert second.stats.cache_hit_rate == 1.0

    @pytest.mark.asyncio
    async def test_script_change_invalidates_skill(self, tmp_path, skill_root, make_skill):
        path = make_skill(skill_root, "tool", scripts={"run.sh": "echo ok\n"})
        make_skill(skill_root, "other")

        orchestrator = _orchestrator()
        await orchestrator.scan_and_validate(
            [_root(skill_root)], cache_manager=_cache(tmp_path, orchestrator)
        )
        (path.parent / "run.sh").write_text(SECRET_LINE)

        outcome = await orchestrator.scan_and_validate(
            [_root(skill_root)], cache_manager=_cache(tmp_path, orchestrator)
        )
        assert outcome.stats.cache_hits == 1
        assert outcome.stats.scanned_files == 1
        assert [f.rule_id for f in outcome.findings] == ["security.hardcoded_secret"]

    @pytest.mark.asyncio
    async def test_nested_script_change_only_invalidates_inner_skill(
        self, tmp_path, skill_root, make_skill
    ):
        make_skill(skill_root, "outer")
        inner = make_skill(skill_root / "outer", "inner", scripts={"run.sh": "echo ok\n"})

        orchestrator = _orchestrator()
        await orchestrator.scan_and_validate(
            [_root(skill_root, recursive=True)], cache_manager=_cache(tmp_path, orchestrator)
        )
        (inner.parent / "run.sh").write_text(SECRET_LINE)

        outcome = await orchestrator.scan_and_validate(
            [_root(skill_root, recursive=True)], cache_manager=_cache(tmp_path, orchestrator)
        )
        assert outcome.stats.total_files == 2
        assert outcome.stats.cache_hits == 1

    @pytest.mark.asyncio
    async def test_policy_change_invalidates_cache(self, tmp_path, skill_root, make_skill):
        make_skill(skill_root, "a")
        orchestrator = _orchestrator()
        await orchestrator.scan_and_validate(
            [_root(skill_root)], cache_manager=_cache(tmp_path, orchestrator)
        )

        policy = ValidationPolicy(max_lines=1)
        outcome = await orchestrator.scan_and_validate(
            [_root(skill_root)], policy=policy, cache_manager=_cache(tmp_path, orchestrator, policy)
        )
        assert outcome.stats.cache_hits == 0
        assert [f.rule_id for f in outcome.findings] == ["skill.length.warning"]


# ── Suppression ──────────────────────────────────────────────────────────────


class TestSuppression:
    @pytest.mark.asyncio
    async def test_ignore_unignore_round_trip_with_cache(self, tmp_path, skill_root, make_skill):
        make_skill(skill_root, "leaky", body=SECRET_LINE)
        orchestrator = _orchestrator()
        roots = [_root(skill_root)]

        first = await orchestrator.scan_and_validate(roots, cache_manager=_cache(tmp_path, orchestrator))
        [finding] = first.findings

        await orchestrator.security.ignore_finding(finding)
        hidden = await orchestrator.scan_and_validate(roots, cache_manager=_cache(tmp_path, orchestrator))
        assert hidden.findings == []
        assert hidden.stats.cache_hits == 1

        await orchestrator.security.unignore_finding(finding)
        restored = await orchestrator.scan_and_validate(roots, cache_manager=_cache(tmp_path, orchestrator))
        assert restored.findings == [finding]

    @pytest.mark.asyncio
    async def test_unignore_after_cached_suppression_resurfaces(self, tmp_path, skill_root, make_skill):
        path = make_skill(skill_root, "leaky", body=SECRET_LINE)
        orchestrator = _orchestrator()
        roots = [_root(skill_root)]

        await orchestrator.security.ignored.ignore("security.hardcoded_secret", path, 5)
        suppressed = await orchestrator.scan_and_validate(roots, cache_manager=_cache(tmp_path, orchestrator))
        assert suppressed.findings == []

        await orchestrator.security.clear_all_ignored()
        outcome = await orchestrator.scan_and_validate(roots, cache_manager=_cache(tmp_path, orchestrator))
        assert [(f.rule_id, f.line) for f in outcome.findings] == [("security.hardcoded_secret", 5)]
        assert outcome.stats.cache_hits == 0


# ── Concurrency and cancellation ─────────────────────────────────────────────


class TestConcurrency:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 3])
    async def test_never_exceeds_limit(self, skill_root, make_skill, limit):
        for i in range(10 * limit + 5):
            make_skill(skill_root, f"skill-{i:03d}", scripts={"run.py": "print('hi')\n"})

        orchestrator = _orchestrator()
        outcome = await orchestrator.scan_and_validate([_root(skill_root)], max_concurrency=limit)

        assert outcome.stats.total_files == 10 * limit + 5
        assert 1 <= outcome.stats.peak_concurrency <= limit

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, skill_root, make_skill):
        make_skill(skill_root, "bare", frontmatter="")
        event = asyncio.Event()
        event.set()

        outcome = await _orchestrator().scan_and_validate([_root(skill_root)], cancel_event=event)
        assert outcome.findings == []
        assert outcome.stats.cancelled
        assert outcome.stats.total_files == 1

    @pytest.mark.asyncio
    async def test_cancel_mid_scan_returns_subset(self, skill_root, make_skill):
        for i in range(20):
            make_skill(skill_root, f"bare-{i:02d}", frontmatter="")
        roots = [_root(skill_root)]

        full = await _orchestrator().scan_and_validate(roots, max_concurrency=1)

        event = asyncio.Event()
        progress = ProgressTracker()
        progress.callbacks.append(
            lambda p: event.set() if p.phase == "validate" and p.files_done >= 1 else None
        )
        partial = await _orchestrator(progress=progress).scan_and_validate(
            roots, max_concurrency=1, cancel_event=event
        )

        assert partial.stats.cancelled
        assert 0 < len(partial.findings) < len(full.findings)
        assert set(partial.findings) < set(full.findings)


class TestProgress:
    @pytest.mark.asyncio
    async def test_phases_reported(self, tmp_path, skill_root, make_skill):
        make_skill(skill_root, "a")
        make_skill(skill_root, "b")
        progress = ProgressTracker()
        events = []
        progress.callbacks.append(lambda p: events.append((p.phase, p.status)))

        orchestrator = _orchestrator(progress=progress)
        await orchestrator.scan_and_validate(
            [_root(skill_root)], cache_manager=_cache(tmp_path, orchestrator)
        )

        summary = progress.get_summary()
        assert [p["phase"] for p in summary["phases"]] == ["discover", "validate", "save_cache"]
        assert all(p["status"] == "completed" for p in summary["phases"])
        assert summary["phases"][1]["files_done"] == 2
        assert ("validate", "running") in events

    @pytest.mark.asyncio
    async def test_save_cache_skipped_without_cache(self, skill_root, make_skill):
        make_skill(skill_root, "a")
        progress = ProgressTracker()
        await _orchestrator(progress=progress).scan_and_validate([_root(skill_root)])
        assert progress.get_summary()["phases"][-1]["status"] == "skipped"
