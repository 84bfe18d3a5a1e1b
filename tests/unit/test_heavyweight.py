"""
Tests for Heavyweight Plugin Manager.

This test suite covers:
1. Config resolution failures
2. Backup before the command runs
3. Merge strategies and file edge cases on success
4. Restore on command failure, spawn error and timeout
5. CLAUDE.md migration into rules files
6. Batch isolation
"""

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from agentinit.core.context import PluginContext
from agentinit.core.fileops import FileOperations
from agentinit.core.heavyweight import (
    ExecutionStage,
    HeavyweightPluginManager,
    introduced_content,
)
from agentinit.core.merge import DEFAULT_SEPARATOR
from agentinit.plugin.errors import CommandExecutionError, CommandTimeoutError
from agentinit.plugin.types import (
    HeavyweightConfig,
    MergeStrategy,
    Plugin,
    PluginMeta,
    ProtectedFile,
)

RUN_COMMAND = "agentinit.core.heavyweight.run_shell_command"


@pytest.fixture
def project():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def heavy_plugin(config, name="tool", merge_file=None, rules_priority=None):
    return Plugin(
        meta=PluginMeta(
            name=name,
            command_name=name,
            heavyweight=True,
            rules_priority=rules_priority,
        ),
        get_heavyweight_config=lambda context: config,
        merge_file=merge_file,
    )


class FailingFirstWrite(FileOperations):
    """Fails the first write to one file name, then behaves normally."""

    def __init__(self, name):
        self.name = name
        self.failed = False

    def write_file(self, path, content):
        if path.name == self.name and not self.failed:
            self.failed = True
            raise PermissionError(f"read-only: {path}")
        super().write_file(path, content)


def protected(path, strategy=MergeStrategy.APPEND):
    return ProtectedFile(path=path, merge_strategy=strategy)


async def run(project, plugin, **manager_kwargs):
    manager = HeavyweightPluginManager(project, **manager_kwargs)
    return await manager.execute(plugin, PluginContext(project_root=project))


class TestConfigResolution:
    """Test config resolution failures."""

    @pytest.mark.asyncio
    async def test_missing_capability(self, project):
        """Should fail without side effects when get_heavyweight_config is absent."""
        plugin = Plugin(meta=PluginMeta(name="tool", command_name="tool", heavyweight=True))

        result = await run(project, plugin)

        assert result.success is False
        assert "does not implement get_heavyweight_config" in result.error
        assert result.stage is ExecutionStage.NOT_STARTED
        assert list(project.iterdir()) == []

    @pytest.mark.asyncio
    async def test_capability_raises(self, project):
        """Should report the raised error as a config failure."""

        def broken(context):
            raise RuntimeError("no binary")

        plugin = Plugin(
            meta=PluginMeta(name="tool", command_name="tool", heavyweight=True),
            get_heavyweight_config=broken,
        )

        with patch(RUN_COMMAND, AsyncMock()) as run_command:
            result = await run(project, plugin)

        assert result.success is False
        assert "no binary" in result.error
        run_command.assert_not_called()

    @pytest.mark.asyncio
    async def test_async_capability(self, project):
        """Should await coroutine config functions."""

        async def config(context):
            return HeavyweightConfig(init_command=None)

        plugin = Plugin(
            meta=PluginMeta(name="tool", command_name="tool", heavyweight=True),
            get_heavyweight_config=config,
        )

        result = await run(project, plugin)

        assert result.success is True

    @pytest.mark.asyncio
    async def test_path_outside_project(self, project):
        """Should reject protected files escaping the project root."""
        config = HeavyweightConfig(protected_files=[protected("../outside.md")])

        result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert "outside the project root" in result.error

    @pytest.mark.asyncio
    async def test_unknown_strategy(self, project):
        """Should reject unknown merge strategies."""
        config = HeavyweightConfig(protected_files=[ProtectedFile("a.md", "overwrite")])

        result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert "unknown merge strategy 'overwrite'" in result.error


    @pytest.mark.asyncio
    async def test_directory_rejected(self, project):
        """Should reject protected paths naming a directory before running anything."""
        (project / "docs").mkdir()
        (project / "docs" / "user.md").write_text("mine")
        config = HeavyweightConfig(
            protected_files=[protected("docs")], init_command="exit 3"
        )

        with patch(RUN_COMMAND, AsyncMock()) as run_command:
            result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert "'docs' is not a regular file" in result.error
        run_command.assert_not_called()
        assert (project / "docs" / "user.md").read_text() == "mine"

    @pytest.mark.asyncio
    async def test_project_root_rejected(self, project):
        """Should reject the project root itself as a protected path."""
        (project / "README.md").write_text("readme")
        config = HeavyweightConfig(protected_files=[protected(".")], init_command="exit 1")

        result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert "is not a regular file" in result.error
        assert (project / "README.md").read_text() == "readme"


class TestMergeOnSuccess:
    """Test the success path."""

    @pytest.mark.asyncio
    async def test_append_claude_md(self, project):
        """Should keep both ours and theirs for an append-protected CLAUDE.md."""
        (project / "CLAUDE.md").write_text("# Ours")
        config = HeavyweightConfig(
            protected_files=[protected("CLAUDE.md")],
            init_command="printf '# Theirs' > CLAUDE.md",
        )

        result = await run(project, heavy_plugin(config))

        content = (project / "CLAUDE.md").read_text()
        assert result.success is True
        assert result.stage is ExecutionStage.COMMITTED
        assert "# Ours" in content
        assert "# Theirs" in content
        assert content == "# Ours" + DEFAULT_SEPARATOR + "# Theirs"
        assert result.merge_results[0].success is True
        assert result.rules_artifact is None

    @pytest.mark.asyncio
    async def test_append_anti_duplication(self, project):
        """Should keep theirs as-is when the command kept our content."""
        (project / "AGENTS.md").write_text("# Ours\n")
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md")],
            init_command="printf 'more\\n' >> AGENTS.md",
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert (project / "AGENTS.md").read_text() == "# Ours\nmore\n"

    @pytest.mark.asyncio
    async def test_prepend(self, project):
        """Should put theirs before ours."""
        (project / "AGENTS.md").write_text("# Ours")
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md", MergeStrategy.PREPEND)],
            init_command="printf '# Theirs' > AGENTS.md",
        )

        await run(project, heavy_plugin(config))

        assert (project / "AGENTS.md").read_text() == "# Theirs" + DEFAULT_SEPARATOR + "# Ours"

    @pytest.mark.asyncio
    async def test_custom_merge(self, project):
        """Should delegate to an async merge_file."""
        (project / "settings.json").write_text("ours")
        calls = []

        async def merge_file(path, ours, theirs, context):
            calls.append((path, ours, theirs))
            return f"{ours}+{theirs}"

        config = HeavyweightConfig(
            protected_files=[protected("settings.json", MergeStrategy.CUSTOM)],
            init_command="printf 'theirs' > settings.json",
        )

        result = await run(project, heavy_plugin(config, merge_file=merge_file))

        assert result.success is True
        assert calls == [("settings.json", "ours", "theirs")]
        assert (project / "settings.json").read_text() == "ours+theirs"

    @pytest.mark.asyncio
    async def test_new_file_kept(self, project):
        """Should keep a file the command created when there was no original."""
        config = HeavyweightConfig(
            protected_files=[protected("new.md")],
            init_command="printf 'fresh' > new.md",
        )

        result = await run(project, heavy_plugin(config))

        assert result.merge_results[0].content == "fresh"
        assert (project / "new.md").read_text() == "fresh"

    @pytest.mark.asyncio
    async def test_deleted_file_restored(self, project):
        """Should not honor the command deleting a protected file."""
        (project / "AGENTS.md").write_text("# Ours")
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md")],
            init_command="rm AGENTS.md",
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert (project / "AGENTS.md").read_text() == "# Ours"

    @pytest.mark.asyncio
    async def test_neither_exists(self, project):
        """Should report empty content and write nothing."""
        config = HeavyweightConfig(protected_files=[protected("ghost.md")], init_command="true")

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert result.merge_results[0].content == ""
        assert not (project / "ghost.md").exists()

    @pytest.mark.asyncio
    async def test_no_command(self, project):
        """Should skip straight to merge without spawning a process."""
        (project / "AGENTS.md").write_text("# Ours")
        config = HeavyweightConfig(protected_files=[protected("AGENTS.md")], init_command=None)

        with patch(RUN_COMMAND, AsyncMock()) as run_command:
            result = await run(project, heavy_plugin(config))

        run_command.assert_not_called()
        assert result.success is True
        assert (project / "AGENTS.md").read_text() == "# Ours"

    @pytest.mark.asyncio
    async def test_backup_copy_exists_during_run(self, project):
        """Should copy originals to the backup directory before the command and remove them after."""
        (project / "AGENTS.md").write_text("original")
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md")],
            init_command="cat .agent/tmp/heavyweight-backup/tool/AGENTS.md > seen.txt",
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert (project / "seen.txt").read_text() == "original"
        assert not (project / ".agent" / "tmp" / "heavyweight-backup").exists()

    @pytest.mark.asyncio
    async def test_env_and_working_directory(self, project):
        """Should run in the working directory with extra environment variables."""
        (project / "sub").mkdir()
        config = HeavyweightConfig(
            init_command='printf "$TOOL_MODE:$AGENTINIT_PLUGIN" > out.txt',
            working_directory="sub",
            env={"TOOL_MODE": "fast"},
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert (project / "sub" / "out.txt").read_text() == "fast:tool"


class TestRestoreOnFailure:
    """Test the failure path."""

    @pytest.mark.asyncio
    async def test_spawn_error_restores(self, project):
        """Should restore CLAUDE.md after a process error."""
        (project / "CLAUDE.md").write_text("# Ours")
        config = HeavyweightConfig(
            protected_files=[protected("CLAUDE.md")], init_command="missing-tool init"
        )

        async def fail(command, cwd, env=None, timeout=None):
            (project / "CLAUDE.md").write_text("# Theirs")
            raise CommandExecutionError(command, reason="failed to start: not found")

        with patch(RUN_COMMAND, side_effect=fail):
            result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert "failed to start" in result.error
        assert result.stage is ExecutionStage.RESTORED
        assert (project / "CLAUDE.md").read_text() == "# Ours"

    @pytest.mark.asyncio
    async def test_non_zero_exit_restores_everything(self, project):
        """Should restore modified files and delete files that did not exist."""
        (project / "AGENTS.md").write_text("keep me\n")
        (project / "untouched.md").write_text("same")
        config = HeavyweightConfig(
            protected_files=[
                protected("AGENTS.md"),
                protected("created.md"),
                protected("untouched.md"),
            ],
            init_command="printf 'x' > AGENTS.md; printf 'y' > created.md; exit 2",
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert result.exit_code == 2
        assert "exited with code 2" in result.error
        assert (project / "AGENTS.md").read_text() == "keep me\n"
        assert (project / "untouched.md").read_text() == "same"
        assert not (project / "created.md").exists()
        assert result.merge_results == []

    @pytest.mark.asyncio
    async def test_restore_is_byte_identical(self, project):
        """Should restore files byte for byte, line endings included."""
        original = b"line one\r\nline two\r\n"
        (project / "AGENTS.md").write_bytes(original)
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md")],
            init_command="printf 'x' > AGENTS.md; exit 1",
        )

        await run(project, heavy_plugin(config))

        assert (project / "AGENTS.md").read_bytes() == original

    @pytest.mark.asyncio
    async def test_timeout_restores(self, project):
        """Should report a timeout distinctly and restore."""
        (project / "AGENTS.md").write_text("# Ours")
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md")],
            init_command="sleep 100",
            timeout=0.5,
        )

        async def hang(command, cwd, env=None, timeout=None):
            (project / "AGENTS.md").write_text("partial")
            raise CommandTimeoutError(command, timeout)

        with patch(RUN_COMMAND, side_effect=hang) as run_command:
            result = await run(project, heavy_plugin(config))

        assert run_command.call_args.kwargs["timeout"] == 0.5
        assert "timed out" in result.error
        assert result.exit_code is None
        assert (project / "AGENTS.md").read_text() == "# Ours"

    @pytest.mark.asyncio
    async def test_default_timeout_used(self, project):
        """Should fall back to the manager's default timeout."""
        config = HeavyweightConfig(init_command="true")

        with patch(RUN_COMMAND, AsyncMock()) as run_command:
            await run(project, heavy_plugin(config), default_timeout=42.0)

        assert run_command.call_args.kwargs["timeout"] == 42.0

    @pytest.mark.asyncio
    async def test_custom_without_merge_file(self, project):
        """Should fail the merge and restore every file."""
        (project / "a.md").write_text("ours a")
        (project / "b.json").write_text("ours b")
        config = HeavyweightConfig(
            protected_files=[protected("a.md"), protected("b.json", MergeStrategy.CUSTOM)],
            init_command="printf 'theirs a' > a.md; printf 'theirs b' > b.json",
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert "'b.json' (custom)" in result.error
        failed = [m for m in result.merge_results if not m.success]
        assert len(failed) == 1
        assert "does not implement merge_file" in failed[0].error
        # Merges are all-or-nothing
        assert (project / "a.md").read_text() == "ours a"
        assert (project / "b.json").read_text() == "ours b"

    @pytest.mark.asyncio
    async def test_merge_file_raises(self, project):
        """Should wrap merge_file errors with the path and strategy."""
        (project / "b.json").write_text("ours")

        def merge_file(path, ours, theirs, context):
            raise ValueError("bad json")

        config = HeavyweightConfig(
            protected_files=[protected("b.json", MergeStrategy.CUSTOM)],
            init_command="printf 'theirs' > b.json",
        )

        result = await run(project, heavy_plugin(config, merge_file=merge_file))

        assert result.success is False
        assert "bad json" in result.merge_results[0].error
        assert (project / "b.json").read_text() == "ours"


    @pytest.mark.asyncio
    async def test_directory_created_at_absent_path_kept(self, project):
        """Should report, not delete, a directory created where a file was absent."""
        config = HeavyweightConfig(
            protected_files=[protected("out")],
            init_command="mkdir out; printf 'data' > out/keep.md; exit 1",
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert (project / "out" / "keep.md").read_text() == "data"
        assert len(result.restore_errors) == 1
        assert "Failed to restore 'out'" in result.restore_errors[0]

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_earlier_rules_file(self, project):
        """Should put back a rules file from an earlier run when the commit fails."""
        rules = project / ".claude" / "rules" / "80-tool.md"
        rules.parent.mkdir(parents=True)
        rules.write_text("earlier rules\n")
        (project / "CLAUDE.md").write_text("# User rules\n")
        (project / "AGENTS.md").write_text("ours")
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md")],
            init_command="printf 'new' >> CLAUDE.md; printf 'theirs' > AGENTS.md",
        )

        result = await run(project, heavy_plugin(config), fileops=FailingFirstWrite("AGENTS.md"))

        assert result.success is False
        assert "Failed to write merged files" in result.error
        assert result.rules_artifact is None
        assert rules.read_text() == "earlier rules\n"
        assert (project / "AGENTS.md").read_text() == "ours"
        assert (project / "CLAUDE.md").read_text() == "# User rules\n"

    @pytest.mark.asyncio
    async def test_failed_commit_removes_new_rules_file(self, project):
        """Should remove a rules file this run created when the commit fails."""
        (project / "AGENTS.md").write_text("ours")
        config = HeavyweightConfig(
            protected_files=[protected("AGENTS.md")],
            init_command="printf 'new' > CLAUDE.md; printf 'theirs' > AGENTS.md",
        )

        result = await run(project, heavy_plugin(config), fileops=FailingFirstWrite("AGENTS.md"))

        assert result.success is False
        assert not (project / ".claude" / "rules" / "80-tool.md").exists()
        assert not (project / "CLAUDE.md").exists()


class TestClaudeMdMigration:
    """Test CLAUDE.md redirection into rules files."""

    @pytest.mark.asyncio
    async def test_appended_content_migrated(self, project):
        """Should move added content into a rules file and restore CLAUDE.md."""
        (project / "CLAUDE.md").write_text("# User rules\n")
        config = HeavyweightConfig(
            init_command="printf '\\n## Tool\\nUse the tool.\\n' >> CLAUDE.md"
        )

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert (project / "CLAUDE.md").read_text() == "# User rules\n"
        assert result.rules_artifact == project / ".claude" / "rules" / "80-tool.md"
        rules = result.rules_artifact.read_text()
        assert "## Tool\nUse the tool." in rules
        assert "# User rules" not in rules

    @pytest.mark.asyncio
    async def test_priority_and_file_name(self, project):
        """Should use the plugin priority and configured rules file name."""
        config = HeavyweightConfig(
            init_command="printf 'generated' > CLAUDE.md", rules_file_name="tool-rules"
        )

        result = await run(project, heavy_plugin(config, rules_priority=85))

        assert result.rules_artifact.name == "85-tool-rules.md"
        assert not (project / "CLAUDE.md").exists()

    @pytest.mark.asyncio
    async def test_unchanged_claude_md(self, project):
        """Should not write a rules file when CLAUDE.md did not change."""
        (project / "CLAUDE.md").write_text("# User rules\n")
        config = HeavyweightConfig(init_command="true")

        result = await run(project, heavy_plugin(config))

        assert result.rules_artifact is None
        assert not (project / ".claude").exists()

    @pytest.mark.asyncio
    async def test_migration_disabled(self, project):
        """Should leave CLAUDE.md changes alone when migration is off."""
        (project / "CLAUDE.md").write_text("# User rules\n")
        config = HeavyweightConfig(
            init_command="printf 'replaced' > CLAUDE.md", migrate_claude_md=False
        )

        result = await run(project, heavy_plugin(config))

        assert result.rules_artifact is None
        assert (project / "CLAUDE.md").read_text() == "replaced"

    @pytest.mark.asyncio
    async def test_failure_restores_claude_md(self, project):
        """Should restore CLAUDE.md and write no rules file on failure."""
        (project / "CLAUDE.md").write_text("# User rules\n")
        config = HeavyweightConfig(init_command="printf 'junk' > CLAUDE.md; exit 1")

        result = await run(project, heavy_plugin(config))

        assert result.success is False
        assert (project / "CLAUDE.md").read_text() == "# User rules\n"
        assert not (project / ".claude").exists()

    @pytest.mark.asyncio
    async def test_lowercase_claude_md_migrated(self, project):
        """Should migrate a lowercase claude.md written by the command."""
        config = HeavyweightConfig(init_command="printf 'lower rules' > claude.md")

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert "lower rules" in result.rules_artifact.read_text()
        assert not (project / "claude.md").exists()

    @pytest.mark.asyncio
    async def test_lowercase_claude_md_restored(self, project):
        """Should restore an existing lowercase claude.md after migration."""
        (project / "claude.md").write_text("# Lower\n")
        config = HeavyweightConfig(init_command="printf '\\nextra\\n' >> claude.md")

        result = await run(project, heavy_plugin(config))

        assert result.success is True
        assert (project / "claude.md").read_text() == "# Lower\n"
        rules = result.rules_artifact.read_text()
        assert "extra" in rules
        assert "# Lower" not in rules
        assert rules.count("extra") == 1

    def test_introduced_content(self):
        """Should strip the original text when it survives verbatim."""
        assert introduced_content("# A", "# A\n\nnew") == "new"
        assert introduced_content(None, "all new\n") == "all new"
        assert introduced_content("# A", "rewritten") == "rewritten"


class TestBatchExecution:
    """Test sequential batch execution."""

    @pytest.mark.asyncio
    async def test_failure_isolated(self, project):
        """Should continue with the next plugin after a failure."""
        (project / "shared.md").write_text("base")
        failing = heavy_plugin(
            HeavyweightConfig(
                protected_files=[protected("shared.md")],
                init_command="printf 'bad' > shared.md; exit 1",
            ),
            name="first",
        )
        working = heavy_plugin(
            HeavyweightConfig(
                protected_files=[protected("shared.md")],
                init_command="printf 'good' > shared.md",
            ),
            name="second",
        )

        manager = HeavyweightPluginManager(project)
        results = await manager.execute_all(
            [failing, working], PluginContext(project_root=project)
        )

        assert [r.plugin_name for r in results] == ["first", "second"]
        assert [r.success for r in results] == [False, True]
        assert (project / "shared.md").read_text() == "base" + DEFAULT_SEPARATOR + "good"


class TestFileOperations:
    """Test the removal primitives used by restore and cleanup."""

    def test_remove_file_refuses_directory(self, project):
        """Should never remove a directory through remove_file."""
        (project / "docs").mkdir()
        (project / "docs" / "user.md").write_text("mine")

        with pytest.raises(IsADirectoryError):
            FileOperations().remove_file(project / "docs")

        assert (project / "docs" / "user.md").exists()

    def test_remove_file_missing_is_noop(self, project):
        """Should ignore files that do not exist."""
        FileOperations().remove_file(project / "absent.md")

    def test_remove_tree(self, project):
        """Should remove a backup tree recursively."""
        (project / "backup" / "nested").mkdir(parents=True)
        (project / "backup" / "nested" / "a.md").write_text("a")

        FileOperations().remove_tree(project / "backup")

        assert not (project / "backup").exists()
