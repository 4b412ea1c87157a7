"""Data models used by the CLI and the report renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from xdcov.data import RawCoverageData
from xdcov.driver.base import Driver

# ---------------------------------------------------------------------------
# Driver info (included in reports)
# ---------------------------------------------------------------------------


@dataclass
class DriverInfo:
    name: str
    name_and_version: str
    detects_dead_code: bool = False
    collects_branch_and_path_coverage: bool = False

    @classmethod
    def from_driver(cls, driver: Driver) -> DriverInfo:
        return cls(
            name=type(driver).__name__,
            name_and_version=driver.name_and_version(),
            detects_dead_code=driver.detects_dead_code(),
            collects_branch_and_path_coverage=driver.collects_branch_and_path_coverage(),
        )


# ---------------------------------------------------------------------------
# Per-file summary
# ---------------------------------------------------------------------------


@dataclass
class FileSummary:
    """Counts derived from one file's raw coverage."""

    file_path: str
    executed_lines: int = 0
    executable_lines: int = 0
    dead_lines: int = 0
    executed_branches: int = 0
    branches: int = 0
    executed_paths: int = 0
    paths: int = 0
    loaded: bool = True

    @property
    def line_percent(self) -> float:
        if not self.loaded:
            return 0.0
        if not self.executable_lines:
            return 100.0
        return round(100.0 * self.executed_lines / self.executable_lines, 2)

    @classmethod
    def from_raw(
        cls,
        file_path: str,
        lines: dict[int, int],
        functions: dict[str, dict[str, Any]] | None = None,
    ) -> FileSummary:
        summary = cls(file_path=file_path)
        for status in lines.values():
            if status == Driver.LINE_NOT_EXECUTABLE:
                summary.dead_lines += 1
                continue
            summary.executable_lines += 1
            if status == Driver.LINE_EXECUTED:
                summary.executed_lines += 1

        for function in (functions or {}).values():
            for branch in function.get("branches", {}).values():
                summary.branches += 1
                if branch.get("hit") == Driver.BRANCH_HIT:
                    summary.executed_branches += 1
            for path in function.get("paths", {}).values():
                summary.paths += 1
                if path.get("hit") == Driver.BRANCH_HIT:
                    summary.executed_paths += 1
        return summary


# ---------------------------------------------------------------------------
# Coverage run (aggregate)
# ---------------------------------------------------------------------------


@dataclass
class CoverageRun:
    """Complete output of one ``xdcov run``."""

    script: str
    driver: DriverInfo
    data: RawCoverageData
    exit_code: int = 0
    included_files: list[str] = field(default_factory=list)
    unloaded_files: list[str] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        # Xdebug only reports files the script compiled; included files it
        # never loaded are added with no executable lines.
        covered = self.data.line_coverage
        self.unloaded_files = sorted(f for f in set(self.included_files) if f not in covered)
        for path in self.unloaded_files:
            uncovered = RawCoverageData.from_uncovered_file(path, [])
            self.data.line_coverage.update(uncovered.line_coverage)

    # ---- helpers ----
    @property
    def files(self) -> list[FileSummary]:
        functions = self.data.function_coverage
        unloaded = set(self.unloaded_files)
        summaries = []
        for path, lines in sorted(self.data.line_coverage.items()):
            summary = FileSummary.from_raw(path, lines, functions.get(path))
            summary.loaded = path not in unloaded
            summaries.append(summary)
        return summaries
