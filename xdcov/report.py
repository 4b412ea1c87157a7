"""Report rendering: text and JSON outputs."""

from __future__ import annotations

import json
from typing import Any

import xdcov
from xdcov.models import CoverageRun, FileSummary

# ---------------------------------------------------------------------------
# Text output
# ---------------------------------------------------------------------------

_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_RED = "\033[91m"
_RESET = "\033[0m"


def _percent_label(percent: float, color: bool = True) -> str:
    label = f"{percent:6.2f}%"
    if not color:
        return label
    if percent >= 90.0:
        tint = _GREEN
    elif percent >= 50.0:
        tint = _YELLOW
    else:
        tint = _RED
    return f"{tint}{label}{_RESET}"


def render_text(run: CoverageRun, color: bool = True) -> str:
    """Produce human-friendly text output."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append(f"xdcov {xdcov.__version__} Coverage Report")
    lines.append("=" * 60)
    lines.append(f"Script:   {run.script}")
    lines.append(f"Driver:   {run.driver.name_and_version}")
    lines.append(f"Paths:    {'yes' if run.driver.collects_branch_and_path_coverage else 'no'}")
    lines.append(f"Exit:     {run.exit_code}")
    lines.append("")

    files = run.files
    if not files:
        lines.append("No coverage data collected.")
    else:
        for s in files:
            if not s.loaded:
                lines.append(f"  {'not loaded':<20} {s.file_path}")
                continue
            lines.append(
                f"  {_percent_label(s.line_percent, color)}  "
                f"{s.executed_lines:>5}/{s.executable_lines:<5} {s.file_path}"
            )
            if s.branches or s.paths:
                lines.append(
                    f"           branches {s.executed_branches}/{s.branches}, "
                    f"paths {s.executed_paths}/{s.paths}"
                )
        lines.append("")

    lines.append("-" * 60)
    total = _totals(files)
    lines.append(
        f"Lines: {total['executed_lines']}/{total['executable_lines']} executed "
        f"in {len(files)} files"
    )
    if run.unloaded_files:
        lines.append(f"Not loaded: {len(run.unloaded_files)} included files")
    if run.driver.collects_branch_and_path_coverage:
        lines.append(
            f"Branches: {total['executed_branches']}/{total['branches']}, "
            f"paths: {total['executed_paths']}/{total['paths']}"
        )
    lines.append("=" * 60)

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON output
# ---------------------------------------------------------------------------


def _totals(files: list[FileSummary]) -> dict[str, int]:
    keys = (
        "executed_lines", "executable_lines", "dead_lines",
        "executed_branches", "branches", "executed_paths", "paths",
    )
    return {k: sum(getattr(s, k) for s in files) for k in keys}


def _line_map(lines: dict[int, int]) -> dict[str, int]:
    return {str(line): status for line, status in sorted(lines.items())}


def render_json(run: CoverageRun) -> str:
    """Produce stable JSON output (files and lines sorted)."""
    data = run.data
    doc: dict[str, Any] = {
        "tool": "xdcov",
        "version": xdcov.__version__,
        "driver": {
            "name": run.driver.name,
            "name_and_version": run.driver.name_and_version,
            "detects_dead_code": run.driver.detects_dead_code,
            "collects_branch_and_path_coverage": run.driver.collects_branch_and_path_coverage,
        },
        "script": run.script,
        "exit_code": run.exit_code,
        "summary": {
            "files": len(data.line_coverage),
            "not_loaded": run.unloaded_files,
            **_totals(run.files),
        },
        "line_coverage": {
            path: _line_map(lines)
            for path, lines in sorted(data.line_coverage.items())
        },
        "function_coverage": {
            path: data.function_coverage[path]
            for path in sorted(data.function_coverage)
        },
    }
    return json.dumps(doc, indent=2, ensure_ascii=False, default=str)
