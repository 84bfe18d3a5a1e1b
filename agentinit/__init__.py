"""
agentinit - plugin-driven scaffolding for AI assistant project configuration.

This is the main package. Submodules:
- agentinit.plugin: descriptors, registry, dependency ordering, lifecycle
- agentinit.core: file I/O, processes, merging, heavyweight execution
- agentinit.config: TOML project configuration
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
