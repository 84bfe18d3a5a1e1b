"""
agentinit Core - execution of a plugin selection against a project.

This module handles:
- File and process primitives
- Protected file merging
- Heavyweight plugin execution with backup and restore
- Rules file output
- The end-to-end initializer
"""

from agentinit.core.context import PluginContext
from agentinit.core.fileops import FileOperations
from agentinit.core.heavyweight import (
    BackupEntry,
    ExecutionStage,
    FileMergeResult,
    HeavyweightExecutionResult,
    HeavyweightPluginManager,
)
from agentinit.core.initializer import InitReport, InitSession, Initializer, resolve_conflicts
from agentinit.core.process import CommandResult, run_shell_command
from agentinit.core.rules import RulesPriority, RulesWriter

__all__ = [
    "BackupEntry",
    "CommandResult",
    "ExecutionStage",
    "FileMergeResult",
    "FileOperations",
    "HeavyweightExecutionResult",
    "HeavyweightPluginManager",
    "InitReport",
    "InitSession",
    "Initializer",
    "PluginContext",
    "RulesPriority",
    "RulesWriter",
    "resolve_conflicts",
    "run_shell_command",
]
