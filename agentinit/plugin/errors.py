"""
Plugin Error Taxonomy.

This module defines every exception raised by the plugin orchestration core.

Key features:
- Single PluginError base for callers that want one except clause
- Structured attributes (plugin names, hook names, paths) on each error
- Fatal errors (registration, sorting, hooks) vs. heavyweight errors that
  are recovered per plugin
"""


class PluginError(Exception):
    """Base exception for plugin-related errors."""

    pass


class PluginValidationError(PluginError):
    """Raised when a plugin descriptor or manifest is malformed."""

    pass


class DuplicateRegistrationError(PluginError):
    """Raised when a plugin name or command name is already registered."""

    def __init__(self, key: str, value: str, owner: str):
        self.key = key
        self.value = value
        self.owner = owner
        super().__init__(
            f"Plugin {key} '{value}' is already registered by plugin '{owner}'"
        )


class PluginNotFoundError(PluginError):
    """Raised when a plugin name does not resolve in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Plugin '{name}' is not registered")


class SelectionError(PluginError):
    """Raised when the user selection names hidden or unknown plugins."""

    pass


class CycleError(PluginError):
    """Raised when the selected plugins form a dependency cycle."""

    def __init__(self, participants: list[str]):
        self.participants = list(participants)
        chain = " -> ".join(self.participants + self.participants[:1])
        super().__init__(
            f"Circular dependency between plugins {', '.join(self.participants)} ({chain})"
        )


class MissingDependencyError(PluginError):
    """Raised when a dependency is not part of the selected, enabled set."""

    def __init__(self, dependent: str, missing: str):
        self.dependent = dependent
        self.missing = missing
        super().__init__(
            f"Plugin '{dependent}' depends on '{missing}', "
            f"but '{missing}' is not selected or not enabled"
        )


class HookExecutionError(PluginError):
    """Wraps an exception raised from a plugin lifecycle hook."""

    def __init__(self, plugin_name: str, hook_name: str, original: BaseException):
        self.plugin_name = plugin_name
        self.hook_name = hook_name
        self.original = original
        super().__init__(
            f"Plugin '{plugin_name}' failed during '{hook_name}' hook: {original}"
        )


class LifecycleError(PluginError):
    """Raised when the lifecycle runner is driven out of order."""

    pass


class HeavyweightError(PluginError):
    """Base exception for heavyweight plugin execution errors."""

    pass


class HeavyweightConfigError(HeavyweightError):
    """Raised when a heavyweight plugin lacks or fails its config capability."""

    def __init__(self, plugin_name: str, reason: str):
        self.plugin_name = plugin_name
        self.reason = reason
        super().__init__(
            f"Heavyweight plugin '{plugin_name}' has no usable configuration: {reason}"
        )


class CommandExecutionError(HeavyweightError):
    """Raised when an external command fails to spawn or exits non-zero."""

    def __init__(
        self,
        command: str,
        exit_code: int | None = None,
        stderr: str = "",
        reason: str | None = None,
    ):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        if reason is None:
            reason = f"exited with code {exit_code}"
        message = f"Command '{command}' {reason}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class CommandTimeoutError(HeavyweightError):
    """Raised when an external command exceeds its timeout."""

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"Command '{command}' timed out after {timeout:g} seconds")


class MergeStrategyError(HeavyweightError):
    """Raised when a protected file cannot be merged with its declared strategy."""

    def __init__(self, path: str, strategy: str, reason: str):
        self.path = path
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"Cannot merge '{path}' with '{strategy}' strategy: {reason}")
