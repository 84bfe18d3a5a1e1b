"""
Rules Writer.

Writes numbered rules files into the assistant's rules directory. The two
digit prefix orders the files: project rules first, migrated heavyweight
content near the end.
"""

import logging
import re
from enum import IntEnum
from pathlib import Path

from agentinit.core.fileops import FileOperations

logger = logging.getLogger(__name__)

CLAUDE_DIR = ".claude"
DEFAULT_RULES_DIR = f"{CLAUDE_DIR}/rules"


class RulesPriority(IntEnum):
    """Start of each priority range."""

    PROJECT = 0
    CORE_INFRA = 10
    LANGUAGE = 20
    GIT = 30
    STYLE = 40
    TESTING = 50
    DOCS = 60
    TOOLS = 70
    HEAVYWEIGHT_BASE = 80
    CUSTOM = 90


def format_priority(priority: int) -> str:
    """Clamp to 0-99 and zero-pad to two digits."""
    return f"{max(0, min(99, int(priority))):02d}"


def generate_rules_filename(priority: int, base_name: str) -> str:
    """Build ``NN-name.md`` with the name normalised to a file-safe slug."""
    slug = re.sub(r"[^a-z0-9-]+", "-", base_name.lower()).strip("-") or "rules"
    return f"{format_priority(priority)}-{slug}.md"


class RulesWriter:
    """Writes rules files below ``<project>/<rules_dir>``."""

    def __init__(
        self,
        project_root: Path,
        rules_dir: str = DEFAULT_RULES_DIR,
        fileops: FileOperations | None = None,
    ):
        self.project_root = project_root
        self.rules_dir = project_root / rules_dir
        self.fileops = fileops or FileOperations()

    def path_for(self, priority: int, base_name: str) -> Path:
        return self.rules_dir / generate_rules_filename(priority, base_name)

    def write_rules(self, priority: int, base_name: str, content: str) -> Path:
        path = self.path_for(priority, base_name)
        if not content.endswith("\n"):
            content += "\n"
        self.fileops.write_file(path, content)
        logger.debug("Wrote rules file %s", path)
        return path

    def write_project_rules(self, project_name: str, version: str) -> Path:
        content = (
            f"# {project_name}\n"
            "\n"
            "Project rules generated by agentinit.\n"
            "\n"
            f"- agentinit version: {version}\n"
            f"- Rules directory: `{self.rules_dir.relative_to(self.project_root).as_posix()}`\n"
            "- Files are loaded in numeric order; lower numbers take precedence.\n"
        )
        return self.write_rules(RulesPriority.PROJECT, "project", content)

    def write_migrated_claude_md(
        self,
        base_name: str,
        content: str,
        priority: int = RulesPriority.HEAVYWEIGHT_BASE,
    ) -> Path:
        """Write CLAUDE.md content introduced by a heavyweight command."""
        header = f"<!-- Migrated from CLAUDE.md by plugin '{base_name}' -->\n\n"
        return self.write_rules(priority, base_name, header + content.strip())
