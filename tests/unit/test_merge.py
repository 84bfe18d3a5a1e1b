"""
Tests for merge strategies and rules output.
"""

import json
import tempfile
from pathlib import Path

from agentinit.core.merge import (
    DEFAULT_SEPARATOR,
    append_merge,
    deep_merge,
    merge_gitignore,
    merge_json,
    merge_markdown,
    prepend_merge,
)
from agentinit.core.rules import (
    RulesPriority,
    RulesWriter,
    format_priority,
    generate_rules_filename,
)


class TestMergeStrategies:
    """Test built-in append and prepend."""

    def test_append(self):
        """Should put ours first, separated from theirs."""
        assert append_merge("# Ours\n", "# Theirs") == "# Ours" + DEFAULT_SEPARATOR + "# Theirs"

    def test_append_anti_duplication(self):
        """Should keep theirs exactly when it already contains ours."""
        theirs = "header\n# Ours\nfooter\n"
        assert append_merge("# Ours", theirs) == theirs

    def test_prepend(self):
        """Should put theirs first."""
        assert prepend_merge("# Ours", "# Theirs\n") == "# Theirs" + DEFAULT_SEPARATOR + "# Ours"


class TestMergeHelpers:
    """Test helpers for custom merge functions."""

    def test_markdown_with_header(self):
        """Should add theirs under a header."""
        merged = merge_markdown("# Ours", "tool notes", their_header="## Tool")
        assert merged == "# Ours" + DEFAULT_SEPARATOR + "## Tool\n\ntool notes\n"

    def test_markdown_contained(self):
        """Should not duplicate content either side already has."""
        assert merge_markdown("# Ours\nextra", "extra") == "# Ours\nextra"
        assert merge_markdown("", "theirs") == "theirs"

    def test_deep_merge(self):
        """Should recurse into objects and union arrays."""
        base = {"a": {"x": 1, "list": [1, 2]}, "keep": True}
        incoming = {"a": {"y": 2, "list": [2, 3]}, "keep": False}

        assert deep_merge(base, incoming) == {
            "a": {"x": 1, "y": 2, "list": [1, 2, 3]},
            "keep": False,
        }

    def test_merge_json(self):
        """Should merge JSON documents and fall back on invalid input."""
        merged = json.loads(merge_json('{"servers": {"a": 1}}', '{"servers": {"b": 2}}'))
        assert merged == {"servers": {"a": 1, "b": 2}}

        assert merge_json("not json", '{"b": 2}') == '{"b": 2}'
        assert merge_json('{"a": 1}', "not json") == '{"a": 1}'

    def test_merge_gitignore(self):
        """Should append only new entries."""
        merged = merge_gitignore("node_modules/\n.env\n", ".env\n# comment\n.cache/\n", "tool")
        assert merged == "node_modules/\n.env\n\n# tool\n.cache/\n"

        assert merge_gitignore(".env\n", ".env\n") == ".env\n"


class TestRulesWriter:
    """Test numbered rules output."""

    def test_format_priority(self):
        """Should pad and clamp."""
        assert format_priority(5) == "05"
        assert format_priority(120) == "99"
        assert format_priority(-1) == "00"

    def test_generate_filename(self):
        """Should slugify the base name."""
        assert generate_rules_filename(RulesPriority.GIT, "git") == "30-git.md"
        assert generate_rules_filename(80, "My Tool!") == "80-my-tool.md"

    def test_write_project_rules(self):
        """Should write 00-project.md."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            path = RulesWriter(root).write_project_rules("demo", "0.1.0")

            assert path == root / ".claude" / "rules" / "00-project.md"
            assert "# demo" in path.read_text()

    def test_write_migrated(self):
        """Should write migrated content with a source marker."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            path = RulesWriter(root).write_migrated_claude_md("serena", "\nUse tools.\n")

            assert path.name == "80-serena.md"
            content = path.read_text()
            assert "plugin 'serena'" in content
            assert content.endswith("Use tools.\n")
