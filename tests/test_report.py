"""Tests for report rendering."""

import json

import xdcov
from xdcov.data import RawCoverageData
from xdcov.models import CoverageRun, DriverInfo
from xdcov.report import render_json, render_text


def _make_run(paths: bool = False, included_files: list[str] | None = None) -> CoverageRun:
    if paths:
        data = RawCoverageData.from_xdebug_with_path_coverage({
            "/src/b.php": {
                "lines": {3: 1, 4: -1},
                "functions": {"f": {
                    "branches": {0: {"line_start": 3, "line_end": 3, "hit": 1},
                                 1: {"line_start": 4, "line_end": 4, "hit": 0}},
                    "paths": {0: {"path": [0, 1], "hit": 0}},
                }},
            },
        })
    else:
        data = RawCoverageData.from_xdebug_without_path_coverage({
            "/src/b.php": {3: 1, 4: -1, 9: -2},
            "/src/a.php": {1: 1},
        })
    return CoverageRun(
        script="/project/tests/run.php",
        driver=DriverInfo(
            name="Xdebug3Driver",
            name_and_version="Xdebug 3.2.0",
            detects_dead_code=True,
            collects_branch_and_path_coverage=paths,
        ),
        data=data,
        included_files=included_files or [],
    )


class TestTextOutput:
    def test_contains_driver(self):
        output = render_text(_make_run(), color=False)
        assert "Xdebug 3.2.0" in output
        assert xdcov.__version__ in output

    def test_contains_files(self):
        output = render_text(_make_run(), color=False)
        assert "/src/a.php" in output
        assert "/src/b.php" in output
        assert "100.00%" in output

    def test_contains_summary(self):
        output = render_text(_make_run(), color=False)
        assert "Lines: 2/3 executed in 2 files" in output

    def test_branch_summary_with_paths(self):
        output = render_text(_make_run(paths=True), color=False)
        assert "branches 1/2, paths 0/1" in output
        assert "Branches: 1/2, paths: 0/1" in output

    def test_empty(self):
        run = _make_run()
        run.data.clear()
        assert "No coverage data collected." in render_text(run, color=False)


class TestJsonOutput:
    def test_valid_json(self):
        doc = json.loads(render_json(_make_run()))
        assert doc["tool"] == "xdcov"
        assert doc["version"] == xdcov.__version__

    def test_driver_attribution(self):
        doc = json.loads(render_json(_make_run()))
        assert doc["driver"]["name_and_version"] == "Xdebug 3.2.0"
        assert doc["driver"]["detects_dead_code"] is True

    def test_deterministic_order(self):
        doc = json.loads(render_json(_make_run()))
        assert list(doc["line_coverage"]) == ["/src/a.php", "/src/b.php"]
        assert doc["line_coverage"]["/src/b.php"] == {"3": 1, "4": -1, "9": -2}

    def test_summary_counts(self):
        doc = json.loads(render_json(_make_run()))
        assert doc["summary"]["files"] == 2
        assert doc["summary"]["executed_lines"] == 2
        assert doc["summary"]["executable_lines"] == 3
        assert doc["summary"]["dead_lines"] == 1

    def test_function_coverage(self):
        doc = json.loads(render_json(_make_run(paths=True)))
        branches = doc["function_coverage"]["/src/b.php"]["f"]["branches"]
        assert set(branches) == {"0", "1"}

    def test_lists_files_never_loaded(self):
        run = _make_run(included_files=["/src/a.php", "/src/never_loaded.php"])
        doc = json.loads(render_json(run))
        assert doc["summary"]["not_loaded"] == ["/src/never_loaded.php"]
        assert doc["line_coverage"]["/src/never_loaded.php"] == {}
        assert doc["summary"]["files"] == 3

    def test_text_marks_files_never_loaded(self):
        run = _make_run(included_files=["/src/never_loaded.php"])
        text = render_text(run, color=False)
        assert "not loaded" in text
        assert "/src/never_loaded.php" in text
        assert "Not loaded: 1 included files" in text
