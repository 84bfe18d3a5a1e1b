"""
Heavyweight Plugin Manager.

This module runs plugins whose initialization is delegated to an external
command, without losing files the scaffolder also manages.

Key features:
- Protected file backup (in memory and on disk) before the command runs
- Shell command execution with timeout and environment injection
- Per-file merge (append, prepend, custom) committed only if every file merges
- Unconditional restore on command failure, timeout or merge failure
- CLAUDE.md changes redirected into a numbered rules file
- Sequential batch execution with per-plugin failure isolation
"""

import hashlib
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from agentinit.core.fileops import FileOperations
from agentinit.core.merge import DEFAULT_SEPARATOR, append_merge, prepend_merge
from agentinit.core.process import run_shell_command
from agentinit.core.rules import DEFAULT_RULES_DIR, RulesPriority, RulesWriter
from agentinit.plugin.errors import (
    CommandExecutionError,
    CommandTimeoutError,
    HeavyweightConfigError,
    MergeStrategyError,
)
from agentinit.plugin.types import HeavyweightConfig, MergeStrategy, Plugin, ProtectedFile

logger = logging.getLogger(__name__)

CLAUDE_MD = "CLAUDE.md"
# Both spellings are captured; on case-insensitive file systems they alias
CLAUDE_MD_FILES = (CLAUDE_MD, "claude.md")
DEFAULT_BACKUP_DIR = ".agent/tmp/heavyweight-backup"
DEFAULT_TIMEOUT = 120.0


class ExecutionStage(Enum):
    """Per-plugin execution stage."""

    NOT_STARTED = "not_started"
    CONFIG_RESOLVED = "config_resolved"
    BACKED_UP = "backed_up"
    RUNNING = "running"
    MERGING = "merging"
    COMMITTED = "committed"
    FAILED = "failed"
    RESTORED = "restored"


@dataclass
class BackupEntry:
    """
    Pre-command state of one file.

    Attributes:
        path: Path relative to the project root
        existed_before: Whether the file existed before the command
        original_content: Content before the command (None if absent)
        backup_path: On-disk copy of the original (None if absent)
    """

    path: str
    existed_before: bool
    original_content: str | None = None
    backup_path: Path | None = None

    @property
    def content_hash(self) -> str | None:
        if self.original_content is None:
            return None
        return content_hash(self.original_content)


@dataclass
class FileMergeResult:
    """Outcome of merging one protected file."""

    path: str
    success: bool
    content: str = ""
    strategy: str | None = None
    error: str | None = None


@dataclass
class HeavyweightExecutionResult:
    """Outcome of one heavyweight plugin execution."""

    plugin_name: str
    success: bool = False
    stage: ExecutionStage = ExecutionStage.NOT_STARTED
    error: str | None = None
    exit_code: int | None = None
    command_output: str = ""
    merge_results: list[FileMergeResult] = field(default_factory=list)
    rules_artifact: Path | None = None
    restore_errors: list[str] = field(default_factory=list)


@dataclass
class _PlannedWrite:
    path: str
    content: str | None = None  # None leaves the file as the command left it
    remove: bool = False


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def introduced_content(before: str | None, after: str) -> str:
    """
    Return the part of ``after`` a command added to a file.

    If the original text survives verbatim it is cut out; otherwise the whole
    new text is treated as introduced.
    """
    original = (before or "").strip()
    if original and original in after:
        return after.replace(original, "", 1).strip()
    return after.strip()


class HeavyweightPluginManager:
    """
    Runs heavyweight plugins one at a time.

    Each execution walks NOT_STARTED -> CONFIG_RESOLVED -> BACKED_UP ->
    RUNNING -> MERGING -> COMMITTED, or ends in FAILED -> RESTORED. Backups
    never outlive a single execution.
    """

    def __init__(
        self,
        project_root: Path,
        fileops: FileOperations | None = None,
        backup_dir: str = DEFAULT_BACKUP_DIR,
        rules_dir: str = DEFAULT_RULES_DIR,
        default_timeout: float | None = DEFAULT_TIMEOUT,
        migrate_claude_md: bool = True,
        separator: str = DEFAULT_SEPARATOR,
    ):
        self.project_root = project_root
        self.fileops = fileops or FileOperations()
        self.backup_root = project_root / backup_dir
        self.rules = RulesWriter(project_root, rules_dir, self.fileops)
        self.default_timeout = default_timeout
        self.migrate_claude_md = migrate_claude_md
        self.separator = separator

    async def execute_all(
        self, plugins: list[Plugin], context
    ) -> list[HeavyweightExecutionResult]:
        """
        Execute heavyweight plugins sequentially.

        A failing plugin is reported and the batch continues with the next.
        """
        results = []
        for plugin in plugins:
            result = await self.execute(plugin, context)
            if result.success:
                logger.info("Heavyweight plugin %s completed", plugin.name)
            else:
                logger.error("Heavyweight plugin %s failed: %s", plugin.name, result.error)
                for merge in result.merge_results:
                    if not merge.success:
                        logger.error("  %s: %s", merge.path, merge.error)
            results.append(result)
        return results

    async def execute(self, plugin: Plugin, context) -> HeavyweightExecutionResult:
        """
        Execute one heavyweight plugin.

        Args:
            plugin: Heavyweight plugin
            context: Shared plugin context

        Returns:
            Structured result; heavyweight errors are reported, not raised
        """
        result = HeavyweightExecutionResult(plugin_name=plugin.name)

        try:
            config = await self._resolve_config(plugin, context)
        except HeavyweightConfigError as e:
            result.error = str(e)
            return result
        result.stage = ExecutionStage.CONFIG_RESOLVED

        plugin_backup_dir = self.backup_root / plugin.name
        entries: list[BackupEntry] = []
        committed = False
        try:
            try:
                entries = self._backup(config, plugin_backup_dir)
            except (OSError, UnicodeDecodeError) as e:
                result.error = f"Failed to back up protected files: {e}"
                return result
            result.stage = ExecutionStage.BACKED_UP

            committed = await self._run_and_merge(plugin, config, entries, context, result)
            if not committed:
                self._fail(result, entries)
            return result
        except BaseException:
            # Unexpected errors still leave the project as it was
            if not committed and entries:
                self._fail(result, entries)
            raise
        finally:
            self._discard_backups(plugin_backup_dir)

    async def _resolve_config(self, plugin: Plugin, context) -> HeavyweightConfig:
        if plugin.get_heavyweight_config is None:
            raise HeavyweightConfigError(
                plugin.name, "plugin does not implement get_heavyweight_config()"
            )

        try:
            config = plugin.get_heavyweight_config(context)
            if inspect.isawaitable(config):
                config = await config
        except Exception as e:
            raise HeavyweightConfigError(
                plugin.name, f"get_heavyweight_config() raised: {e}"
            ) from e

        if not isinstance(config, HeavyweightConfig):
            raise HeavyweightConfigError(
                plugin.name,
                f"get_heavyweight_config() returned {type(config).__name__}, "
                f"expected HeavyweightConfig",
            )

        if config.timeout is not None and config.timeout <= 0:
            raise HeavyweightConfigError(plugin.name, f"invalid timeout {config.timeout}")

        seen = set()
        normalized = []
        for protected in config.protected_files:
            protected = self._validate_protected_file(plugin, protected)
            if protected.path in seen:
                raise HeavyweightConfigError(
                    plugin.name, f"protected file '{protected.path}' declared twice"
                )
            seen.add(protected.path)
            normalized.append(protected)
        config.protected_files = normalized

        return config

    def _validate_protected_file(self, plugin: Plugin, protected) -> ProtectedFile:
        if not isinstance(protected, ProtectedFile):
            raise HeavyweightConfigError(
                plugin.name, f"invalid protected file declaration {protected!r}"
            )

        strategy = protected.merge_strategy
        if not isinstance(strategy, MergeStrategy):
            try:
                strategy = MergeStrategy(strategy)
            except ValueError:
                raise HeavyweightConfigError(
                    plugin.name,
                    f"unknown merge strategy '{strategy}' for '{protected.path}'",
                ) from None

        path = Path(protected.path)
        root = self.project_root.resolve()
        resolved = (root / path).resolve()
        if path.is_absolute() or not resolved.is_relative_to(root):
            raise HeavyweightConfigError(
                plugin.name,
                f"protected file '{protected.path}' is outside the project root",
            )
        if resolved == root or (resolved.exists() and not resolved.is_file()):
            raise HeavyweightConfigError(
                plugin.name,
                f"protected file '{protected.path}' is not a regular file",
            )

        return ProtectedFile(path=path.as_posix(), merge_strategy=strategy)

    def _claude_md_paths(self, config: HeavyweightConfig) -> list[str]:
        """CLAUDE.md spellings captured for migration."""
        if not (self.migrate_claude_md and config.migrate_claude_md):
            return []
        # A declared strategy for a spelling takes precedence over migration
        declared = {p.path for p in config.protected_files}
        return [name for name in CLAUDE_MD_FILES if name not in declared]

    def _backup(self, config: HeavyweightConfig, backup_dir: Path) -> list[BackupEntry]:
        paths = [p.path for p in config.protected_files]
        migrated = self._claude_md_paths(config)

        entries = []
        for rel_path in paths + migrated:
            source = self.project_root / rel_path
            if source.exists() and not source.is_file():
                if rel_path in migrated:
                    logger.debug("Skipping %s, it is not a regular file", rel_path)
                    continue
                raise IsADirectoryError(f"'{rel_path}' is not a regular file")
            if not self.fileops.file_exists(source):
                entries.append(BackupEntry(path=rel_path, existed_before=False))
                continue
            if rel_path in migrated and any(
                e.existed_before and source.samefile(self.project_root / e.path)
                for e in entries
            ):
                logger.debug("Skipping %s, it names an already captured file", rel_path)
                continue

            backup_path = backup_dir / rel_path
            self.fileops.copy_file(source, backup_path)
            entries.append(
                BackupEntry(
                    path=rel_path,
                    existed_before=True,
                    original_content=self.fileops.read_file(source),
                    backup_path=backup_path,
                )
            )
            logger.debug("Backed up %s to %s", rel_path, backup_path)

        return entries

    async def _run_and_merge(
        self,
        plugin: Plugin,
        config: HeavyweightConfig,
        entries: list[BackupEntry],
        context,
        result: HeavyweightExecutionResult,
    ) -> bool:
        """Run the command and commit merges. Returns False if a restore is needed."""
        result.stage = ExecutionStage.RUNNING

        if config.init_command is None:
            logger.info("Plugin %s has no init command, skipping execution", plugin.name)
        else:
            cwd = self.project_root
            if config.working_directory:
                cwd = self.project_root / config.working_directory

            env = {
                "AGENTINIT_PROJECT_ROOT": str(self.project_root),
                "AGENTINIT_PLUGIN": plugin.name,
            }
            env.update(config.env)
            timeout = config.timeout if config.timeout is not None else self.default_timeout

            logger.info("Running %s init command: %s", plugin.name, config.init_command)
            try:
                command = await run_shell_command(
                    config.init_command, cwd=cwd, env=env, timeout=timeout
                )
            except CommandExecutionError as e:
                result.exit_code = e.exit_code
                result.error = str(e)
                return False
            except CommandTimeoutError as e:
                result.error = str(e)
                return False

            result.exit_code = command.exit_code
            result.command_output = command.output

        result.stage = ExecutionStage.MERGING
        try:
            writes, migrated = await self._plan_merges(plugin, config, entries, context, result)
        except (OSError, UnicodeDecodeError) as e:
            result.error = f"Failed to read files after command: {e}"
            return False

        failed = [m for m in result.merge_results if not m.success]
        if failed:
            result.error = "Merge failed for " + ", ".join(
                f"'{m.path}' ({m.strategy})" for m in failed
            )
            return False

        try:
            self._commit(plugin, config, writes, migrated, result)
        except (OSError, UnicodeDecodeError) as e:
            result.error = f"Failed to write merged files: {e}"
            return False

        result.stage = ExecutionStage.COMMITTED
        result.success = True
        return True

    async def _plan_merges(
        self,
        plugin: Plugin,
        config: HeavyweightConfig,
        entries: list[BackupEntry],
        context,
        result: HeavyweightExecutionResult,
    ) -> tuple[list[_PlannedWrite], str | None]:
        """Compute merged content for every entry without writing anything."""
        strategies = {p.path: p.merge_strategy for p in config.protected_files}
        writes = []
        migrated = []

        for entry in entries:
            target = self.project_root / entry.path
            theirs = None
            if self.fileops.file_exists(target):
                theirs = self.fileops.read_file(target)

            if entry.path not in strategies:
                # Implicit CLAUDE.md entry: always back to its original state
                if theirs is not None and content_hash(theirs) != entry.content_hash:
                    introduced = introduced_content(entry.original_content, theirs)
                    if introduced and introduced not in migrated:
                        migrated.append(introduced)
                if entry.existed_before:
                    writes.append(_PlannedWrite(entry.path, entry.original_content))
                elif theirs is not None:
                    writes.append(_PlannedWrite(entry.path, remove=True))
                continue

            strategy = strategies[entry.path]
            merge = await self._merge_file(plugin, entry, theirs, strategy, context)
            result.merge_results.append(merge)
            if merge.success and entry.existed_before:
                writes.append(_PlannedWrite(entry.path, merge.content))

        return writes, "\n\n".join(migrated) or None

    async def _merge_file(
        self,
        plugin: Plugin,
        entry: BackupEntry,
        theirs: str | None,
        strategy: MergeStrategy,
        context,
    ) -> FileMergeResult:
        ours = entry.original_content
        merge = FileMergeResult(path=entry.path, success=True, strategy=strategy.value)

        if ours is None and theirs is None:
            return merge
        if ours is None:
            merge.content = theirs
            return merge
        if theirs is None:
            merge.content = ours
            return merge

        try:
            if strategy is MergeStrategy.APPEND:
                merge.content = append_merge(ours, theirs, self.separator)
            elif strategy is MergeStrategy.PREPEND:
                merge.content = prepend_merge(ours, theirs, self.separator)
            else:
                merge.content = await self._custom_merge(plugin, entry.path, ours, theirs, context)
        except MergeStrategyError as e:
            merge.success = False
            merge.error = str(e)

        return merge

    async def _custom_merge(
        self, plugin: Plugin, path: str, ours: str, theirs: str, context
    ) -> str:
        if plugin.merge_file is None:
            raise MergeStrategyError(
                path,
                MergeStrategy.CUSTOM.value,
                f"plugin '{plugin.name}' does not implement merge_file()",
            )

        try:
            merged = plugin.merge_file(path, ours, theirs, context)
            if inspect.isawaitable(merged):
                merged = await merged
        except Exception as e:
            raise MergeStrategyError(
                path, MergeStrategy.CUSTOM.value, f"merge_file() raised: {e}"
            ) from e

        if not isinstance(merged, str):
            raise MergeStrategyError(
                path,
                MergeStrategy.CUSTOM.value,
                f"merge_file() returned {type(merged).__name__}, expected str",
            )
        return merged

    def _commit(
        self,
        plugin: Plugin,
        config: HeavyweightConfig,
        writes: list[_PlannedWrite],
        migrated: str | None,
        result: HeavyweightExecutionResult,
    ) -> None:
        previous = None
        if migrated:
            priority = plugin.meta.rules_priority
            if priority is None:
                priority = RulesPriority.HEAVYWEIGHT_BASE
            base_name = config.rules_file_name or plugin.name
            artifact = self.rules.path_for(priority, base_name)
            # A rules file left by an earlier run is put back if the commit fails
            if self.fileops.file_exists(artifact):
                previous = self.fileops.read_file(artifact)
            result.rules_artifact = self.rules.write_migrated_claude_md(
                base_name, migrated, priority
            )
            logger.info(
                "Moved %s changes from %s into %s",
                CLAUDE_MD,
                plugin.name,
                result.rules_artifact.relative_to(self.project_root),
            )

        try:
            for write in writes:
                target = self.project_root / write.path
                if write.remove:
                    self.fileops.remove_file(target)
                elif write.content is not None:
                    self.fileops.write_file(target, write.content)
        except OSError:
            if result.rules_artifact is not None:
                if previous is None:
                    self.fileops.remove_file(result.rules_artifact)
                else:
                    self.fileops.write_file(result.rules_artifact, previous)
                result.rules_artifact = None
            raise

    def _fail(self, result: HeavyweightExecutionResult, entries: list[BackupEntry]) -> None:
        result.success = False
        result.stage = ExecutionStage.FAILED
        result.restore_errors = self.restore(entries)
        result.stage = ExecutionStage.RESTORED
        logger.warning(
            "Restored %d protected file(s) for %s", len(entries), result.plugin_name
        )

    def restore(self, entries: list[BackupEntry]) -> list[str]:
        """
        Return every entry's file to its pre-command state.

        Files that existed are rewritten and files that did not are removed.
        Keeps going past individual failures and returns their messages.
        """
        errors = []
        for entry in entries:
            target = self.project_root / entry.path
            try:
                if entry.existed_before:
                    self.fileops.write_file(target, entry.original_content)
                else:
                    self.fileops.remove_file(target)
            except OSError as e:
                message = f"Failed to restore '{entry.path}': {e}"
                logger.error(message)
                errors.append(message)
        return errors

    def _discard_backups(self, plugin_backup_dir: Path) -> None:
        try:
            self.fileops.remove_tree(plugin_backup_dir)
            # Drop empty directories up to the project root
            directory = self.backup_root
            while directory != self.project_root and directory.is_dir():
                if any(directory.iterdir()):
                    break
                directory.rmdir()
                directory = directory.parent
        except OSError as e:
            logger.warning("Could not remove backup directory %s: %s", plugin_backup_dir, e)
