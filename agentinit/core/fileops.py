"""
File Operations.

Thin UTF-8 file primitives used for backup, restore and merge I/O.
"""

import shutil
from pathlib import Path


class FileOperations:
    """Side-effecting file primitives. No orchestration logic lives here."""

    def ensure_dir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def file_exists(self, path: Path) -> bool:
        return path.is_file()

    # newline="" keeps line endings byte-for-byte in both directions
    def read_file(self, path: Path) -> str:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    def write_file(self, path: Path, content: str) -> None:
        """Write text, creating parent directories as needed."""
        self.ensure_dir(path.parent)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def copy_file(self, src: Path, dest: Path) -> None:
        self.ensure_dir(dest.parent)
        shutil.copyfile(src, dest)

    def remove_file(self, path: Path) -> None:
        """
        Remove a single file if it exists.

        Raises:
            IsADirectoryError: If the path is a directory; directories are
                never removed through this call
        """
        if path.is_dir() and not path.is_symlink():
            raise IsADirectoryError(f"refusing to remove directory {path}")
        if path.exists() or path.is_symlink():
            path.unlink()

    def remove_tree(self, path: Path) -> None:
        if path.is_dir():
            shutil.rmtree(path)
