"""CLI integration tests (php is faked)."""

from __future__ import annotations

import json

from click.testing import CliRunner
from conftest import SNAPSHOT

from xdcov.cli import main


class TestProbe:
    def test_probe_xdebug3(self, fake_php):
        result = CliRunner().invoke(main, ["probe"])
        assert result.exit_code == 0
        assert "Xdebug3Driver" in result.output
        assert "Xdebug 3.2.2" in result.output
        assert "PHP:            8.2.12" in result.output

    def test_probe_path_coverage(self, fake_php):
        result = CliRunner().invoke(main, ["probe", "--path-coverage"])
        assert result.exit_code == 0
        assert "Branches/paths: yes" in result.output

    def test_probe_without_extension(self, fake_php):
        fake_php.snapshot = {**SNAPSHOT, "extensions": {"core": "8.2.12"}}
        result = CliRunner().invoke(main, ["probe"])
        assert result.exit_code == 1
        assert "No code coverage driver available" in result.output

    def test_probe_mode_disabled(self, fake_php):
        fake_php.snapshot = {**SNAPSHOT, "modes": ["develop"]}
        result = CliRunner().invoke(main, ["probe"])
        assert result.exit_code == 1
        assert "XDEBUG_MODE=coverage" in result.output

    def test_probe_passes_ini(self, fake_php):
        CliRunner().invoke(main, ["probe", "--php", "php8.1", "-d", "xdebug.mode=coverage"])
        assert fake_php.commands[0][:3] == ["php8.1", "-d", "xdebug.mode=coverage"]

    def test_probe_bad_ini(self, fake_php):
        result = CliRunner().invoke(main, ["probe", "-d", "novalue"])
        assert result.exit_code == 2


class TestRun:
    def test_run_text(self, fake_php, tmp_path):
        script = tmp_path / "run.php"
        script.write_text("<?php\n")
        fake_php.dumps = [{"/src/a.php": {"3": 1, "4": -1}}]
        result = CliRunner().invoke(main, ["run", str(script)])
        assert result.exit_code == 0
        assert "/src/a.php" in result.output
        assert "Lines: 1/2 executed in 1 files" in result.output

    def test_run_json_with_include(self, fake_php, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "a.php").write_text("<?php\n")
        script = tmp_path / "run.php"
        script.write_text("<?php\n")
        fake_php.dumps = [{"/src/a.php": {"lines": {"3": 1}, "functions": {}}}]
        out = tmp_path / "report.json"

        result = CliRunner().invoke(main, [
            "run", str(script), "--include", str(src), "--path-coverage",
            "--format", "json", "--json-out", str(out),
        ])
        assert result.exit_code == 0, result.output
        doc = json.loads(out.read_text())
        assert doc["driver"]["collects_branch_and_path_coverage"] is True
        prepend = fake_php.prepends[0]
        assert "base64_decode" in prepend
        assert doc["summary"]["not_loaded"] == [str((src / "a.php").resolve())]

    def test_run_script_failure_exits_1(self, fake_php, tmp_path):
        script = tmp_path / "run.php"
        script.write_text("<?php exit(3);\n")
        fake_php.returncode = 3
        result = CliRunner().invoke(main, ["run", str(script)])
        assert result.exit_code == 1

    def test_run_uses_project_config(self, fake_php, tmp_path, monkeypatch):
        (tmp_path / ".xdcov.yml").write_text("php:\n  binary: php-from-config\n")
        script = tmp_path / "run.php"
        script.write_text("<?php\n")
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(main, ["run", str(script)])
        assert result.exit_code == 0
        assert fake_php.commands[0][0] == "php-from-config"


class TestDrivers:
    def test_list(self):
        result = CliRunner().invoke(main, ["drivers"])
        assert result.exit_code == 0
        assert "xdebug2" in result.output
        assert "xdcov.driver.xdebug3.Xdebug3Driver" in result.output
