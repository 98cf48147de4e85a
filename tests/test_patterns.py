"""Tests for configured-pattern validation and comment helpers."""

from __future__ import annotations

import pytest

from skillsentinel.engines.security import SecretPatternConfig, validate_pattern
from skillsentinel.engines.security.patterns import (
    complexity_score,
    is_comment_line,
    strip_inline_comment,
)
from skillsentinel.exceptions import ScanConfigError


class TestValidatePattern:
    def test_simple_pattern_compiles(self):
        assert validate_pattern(r"sk-[a-z0-9]{8}").match("sk-abcd1234")

    @pytest.mark.parametrize("pattern", [r"(a+)+", r"(?:a*)*", r"(\w+)*x", r"(x+){2,}"])
    def test_nested_quantifiers_rejected(self, pattern):
        with pytest.raises(ScanConfigError, match="nested quantifiers"):
            validate_pattern(pattern)

    def test_deep_nesting_rejected(self):
        with pytest.raises(ScanConfigError, match="nests groups"):
            validate_pattern(r"((((a))))")

    def test_complexity_rejected(self):
        pattern = "a|b|c|d|e|f|g"
        assert complexity_score(pattern) > 50
        with pytest.raises(ScanConfigError, match="complexity"):
            validate_pattern(pattern)

    def test_invalid_syntax_rejected(self):
        with pytest.raises(ScanConfigError, match="Invalid regex"):
            validate_pattern(r"[a-")

    def test_secret_config_validates_its_patterns(self):
        with pytest.raises(ScanConfigError):
            SecretPatternConfig(credential_prefixes=(r"(a+)+",))


class TestCommentHelpers:
    @pytest.mark.parametrize("line", ["# x", "  // x", "// also"])
    def test_comment_lines(self, line):
        assert is_comment_line(line)

    def test_code_line(self):
        assert not is_comment_line("x = 1")

    @pytest.mark.parametrize("line", ["* item", "- item", "-- sql", "/* block"])
    def test_markdown_and_other_markers_are_not_comments(self, line):
        assert not is_comment_line(line)

    def test_strip_inline_comment_respects_quotes(self):
        assert strip_inline_comment('run("a # b")  # note') == 'run("a # b")  '
        assert strip_inline_comment("x = 1 // c") == "x = 1 "
        assert strip_inline_comment('url = "http://x"') == 'url = "http://x"'
