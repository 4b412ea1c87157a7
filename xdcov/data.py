"""Raw coverage data: the normalized output of one collection cycle.

Xdebug hands back one of three shapes, depending on the flags coverage was
started with and on the extension version:

* line coverage only::

    {"/src/a.php": {3: 1, 4: -1, 7: -2}}

* branch and path coverage::

    {"/src/a.php": {"lines": {3: 1, ...},
                    "functions": {"f": {"branches": {...}, "paths": {...}}}}}

* the "mixed" shape of Xdebug < 2.9.6, where a file without functions is
  reported as a bare line map even though path coverage was requested.

The named constructors below turn each shape into the same pair of maps.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from xdcov.driver.base import Driver

LineCoverage = dict[str, dict[int, int]]
FunctionCoverage = dict[str, dict[str, dict[str, Any]]]

_EMPTY_LINE_CACHE: dict[str, list[int]] = {}


class RawCoverageData:
    """Per-file line statuses plus, with path coverage, per-function branch/path data."""

    def __init__(self, line_coverage: LineCoverage, function_coverage: FunctionCoverage) -> None:
        self._line_coverage = line_coverage
        self._function_coverage = function_coverage
        self._skip_empty_lines()

    # ── named constructors ──────────────────────────────────────

    @classmethod
    def from_xdebug_without_path_coverage(cls, raw: Mapping[str, Any]) -> RawCoverageData:
        return cls({f: dict(lines) for f, lines in raw.items()}, {})

    @classmethod
    def from_xdebug_with_path_coverage(cls, raw: Mapping[str, Any]) -> RawCoverageData:
        line_coverage: LineCoverage = {}
        function_coverage: FunctionCoverage = {}
        for filename, file_data in raw.items():
            line_coverage[filename] = dict(file_data["lines"])
            function_coverage[filename] = _function_map(file_data["functions"])
        return cls(line_coverage, function_coverage)

    @classmethod
    def from_xdebug_with_mixed_coverage(cls, raw: Mapping[str, Any]) -> RawCoverageData:
        line_coverage: LineCoverage = {}
        function_coverage: FunctionCoverage = {}
        for filename, file_data in raw.items():
            if "functions" not in file_data:
                # no functions in this file: the line map sits at the top level
                line_coverage[filename] = dict(file_data)
                continue
            line_coverage[filename] = dict(file_data["lines"])
            function_coverage[filename] = _function_map(file_data["functions"])
        return cls(line_coverage, function_coverage)

    @classmethod
    def from_uncovered_file(cls, filename: str, executable_lines: Iterable[int]) -> RawCoverageData:
        """Build data for a file that was never loaded: every executable line is unexecuted."""
        lines = {int(line): Driver.LINE_NOT_EXECUTED for line in executable_lines}
        return cls({filename: lines}, {})

    # ── accessors ───────────────────────────────────────────────

    @property
    def line_coverage(self) -> LineCoverage:
        return self._line_coverage

    @property
    def function_coverage(self) -> FunctionCoverage:
        return self._function_coverage

    def clear(self) -> None:
        self._line_coverage = {}
        self._function_coverage = {}

    # ── edits ───────────────────────────────────────────────────

    def remove_coverage_data_for_file(self, filename: str) -> None:
        self._line_coverage.pop(filename, None)
        self._function_coverage.pop(filename, None)

    def keep_line_coverage_data_only_for_lines(self, filename: str, lines: Iterable[int]) -> None:
        if filename not in self._line_coverage:
            return
        keep = set(lines)
        self._line_coverage[filename] = {
            line: status
            for line, status in self._line_coverage[filename].items()
            if line in keep
        }

    def keep_function_coverage_data_only_for_lines(self, filename: str, lines: Iterable[int]) -> None:
        """Drop branches reaching outside *lines*, and every path through them."""
        if filename not in self._function_coverage:
            return
        keep = set(lines)
        for function in self._function_coverage[filename].values():
            for branch_id, branch in list(function.get("branches", {}).items()):
                if not _branch_lines(branch) <= keep:
                    _remove_branch(function, branch_id)

    def remove_coverage_data_for_lines(self, filename: str, lines: Iterable[int]) -> None:
        remove = set(lines)
        if not remove or filename not in self._line_coverage:
            return

        self._line_coverage[filename] = {
            line: status
            for line, status in self._line_coverage[filename].items()
            if line not in remove
        }

        for function in self._function_coverage.get(filename, {}).values():
            for branch_id, branch in list(function.get("branches", {}).items()):
                if _branch_lines(branch) <= remove:
                    _remove_branch(function, branch_id)

    # ── helpers ─────────────────────────────────────────────────

    def _skip_empty_lines(self) -> None:
        for filename, lines in self._line_coverage.items():
            for empty_line in _empty_lines_for_file(filename):
                lines.pop(empty_line, None)


def _function_map(functions: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Copy per-function data, keying positional branch and path lists by index."""
    out: dict[str, dict[str, Any]] = {}
    for name, data in functions.items():
        function = copy.deepcopy(dict(data))
        for key in ("branches", "paths"):
            value = function.get(key, {})
            if isinstance(value, list):
                function[key] = dict(enumerate(value))
        out[name] = function
    return out


def _branch_lines(branch: Mapping[str, Any]) -> set[int]:
    return set(range(int(branch["line_start"]), int(branch["line_end"]) + 1))


def _remove_branch(function: dict[str, Any], branch_id: int) -> None:
    del function["branches"][branch_id]
    paths = function.get("paths", {})
    for path_id, path in list(paths.items()):
        if branch_id in path["path"]:
            del paths[path_id]


def _empty_lines_for_file(filename: str) -> list[int]:
    """Return 1-based numbers of blank source lines; unreadable files have none."""
    if filename not in _EMPTY_LINE_CACHE:
        empty: list[int] = []
        try:
            with open(filename, encoding="utf-8", errors="replace") as f:
                source = f.read()
        except OSError:
            source = None
        if source is not None:
            empty = [
                number
                for number, text in enumerate(source.split("\n"), start=1)
                if not text.strip()
            ]
        _EMPTY_LINE_CACHE[filename] = empty
    return _EMPTY_LINE_CACHE[filename]
