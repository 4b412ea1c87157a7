"""Filter: the set of source files coverage is restricted to."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

# Pseudo-files the PHP engine reports for code that has no file on disk.
_PSEUDO_FILES = frozenset({
    "eval()'d code",
    "runtime-created function",
    "runtime-generated function",
    "assert code",
    "regexp code",
    "Standard input code",
})
_PSEUDO_MARKERS = ("eval()'d code", "runtime-created function", "runtime-generated function")


class Filter:
    """Ordered, de-duplicated set of absolute file paths to instrument."""

    def __init__(self) -> None:
        self._files: dict[str, None] = {}
        self._is_file_cache: dict[str, bool] = {}

    # ── include ─────────────────────────────────────────────────

    def include_directory(self, directory: str | Path, suffix: str = ".php", prefix: str = "") -> None:
        for path in _iter_directory(directory, suffix, prefix):
            self.include_file(path)

    def include_files(self, filenames: Iterable[str | Path]) -> None:
        for filename in filenames:
            self.include_file(filename)

    def include_file(self, filename: str | Path) -> None:
        """Add *filename*; paths that do not exist are ignored."""
        try:
            resolved = Path(filename).resolve(strict=True)
        except (OSError, RuntimeError):
            return
        self._files[str(resolved)] = None

    # ── exclude ─────────────────────────────────────────────────

    def exclude_directory(self, directory: str | Path, suffix: str = ".php", prefix: str = "") -> None:
        for path in _iter_directory(directory, suffix, prefix):
            self.exclude_file(path)

    def exclude_file(self, filename: str | Path) -> None:
        try:
            resolved = Path(filename).resolve(strict=True)
        except (OSError, RuntimeError):
            return
        self._files.pop(str(resolved), None)

    # ── queries ─────────────────────────────────────────────────

    def is_file(self, filename: str) -> bool:
        """Return True if *filename* names a real file, not an engine pseudo-file."""
        if filename in self._is_file_cache:
            return self._is_file_cache[filename]

        if (
            filename == "-"
            or filename.startswith("xdebug://debug-eval")
            or filename in _PSEUDO_FILES
            or any(f": {marker}" in filename for marker in _PSEUDO_MARKERS)
        ):
            is_file = False
        else:
            is_file = os.path.isfile(filename)

        self._is_file_cache[filename] = is_file
        return is_file

    def is_excluded(self, filename: str) -> bool:
        return filename not in self._files or not self.is_file(filename)

    def files(self) -> list[str]:
        return list(self._files)

    def is_empty(self) -> bool:
        return not self._files


def _iter_directory(directory: str | Path, suffix: str, prefix: str) -> list[Path]:
    """Return files under *directory* matching *prefix*/*suffix*, sorted."""
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and p.name.startswith(prefix) and p.name.endswith(suffix)
    )
