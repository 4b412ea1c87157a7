"""Shared fixtures: a recording stand-in for the PHP runtime."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any

import pytest


class FakeRuntime:
    """In-memory ExtensionRuntime that records every call made into it."""

    def __init__(
        self,
        version: str | None = "3.2.0",
        *,
        loaded: bool = True,
        ini: dict[str, str] | None = None,
        env: dict[str, str] | None = None,
        constants: set[str] | None = None,
        modes: list[str] | None = None,
        coverage: dict[str, Any] | None = None,
    ) -> None:
        self.version = version
        self.loaded = loaded
        self.ini = dict(ini or {})
        self.env = dict(env or {})
        self.constants = set(constants or {"XDEBUG_PATH_INCLUDE", "XDEBUG_FILTER_CODE_COVERAGE"})
        self.modes = list(modes if modes is not None else ["coverage"])
        self.coverage = coverage if coverage is not None else {}
        self.calls: list[tuple] = []

    def extension_loaded(self, name: str) -> bool:
        return self.loaded and name == "xdebug"

    def extension_version(self, name: str) -> str | None:
        return self.version if self.extension_loaded(name) else None

    def ini_get(self, key: str) -> str | None:
        return self.ini.get(key)

    def getenv(self, key: str) -> str | None:
        return self.env.get(key)

    def is_defined(self, constant: str) -> bool:
        return constant in self.constants

    def active_modes(self) -> list[str]:
        self.calls.append(("active_modes",))
        return list(self.modes)

    def set_filter(self, group: str, list_type: str, files) -> None:
        self.calls.append(("set_filter", group, list_type, list(files)))

    def start_code_coverage(self, flags: int) -> None:
        self.calls.append(("start_code_coverage", flags))

    def get_code_coverage(self) -> dict[str, Any]:
        self.calls.append(("get_code_coverage",))
        return self.coverage

    def stop_code_coverage(self) -> None:
        self.calls.append(("stop_code_coverage",))

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def xdebug2():
    """Xdebug 2.9.8 with coverage enabled."""
    return FakeRuntime(
        "2.9.8",
        ini={"xdebug.coverage_enable": "1"},
        constants={"XDEBUG_PATH_INCLUDE", "XDEBUG_FILTER_CODE_COVERAGE"},
    )


@pytest.fixture
def xdebug3():
    """Xdebug 3.2.0 in coverage mode."""
    return FakeRuntime("3.2.0", modes=["develop", "coverage"])


@pytest.fixture(autouse=True)
def _isolate_user_config(tmp_path_factory, monkeypatch):
    """Keep a developer's ~/.xdcov/config.yml out of the tests."""
    import xdcov.config as config_mod

    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(config_mod, "USER_CONFIG_PATH", home / ".xdcov" / "config.yml")


# ---------------------------------------------------------------------------
# A stand-in for the php binary, for PhpCliRuntime
# ---------------------------------------------------------------------------

SNAPSHOT = {
    "php": "8.2.12",
    "extensions": {"core": "8.2.12", "xdebug": "3.2.2"},
    "ini": {"xdebug.mode": "coverage", "xdebug.coverage_enable": None},
    "constants": ["XDEBUG_PATH_INCLUDE", "XDEBUG_FILTER_CODE_COVERAGE"],
    "modes": ["coverage"],
}


class FakePhp:
    """Replaces subprocess.run: answers the probe and writes coverage dumps."""

    def __init__(self, snapshot=None, dumps=None, returncode=0):
        self.snapshot = snapshot if snapshot is not None else SNAPSHOT
        self.dumps = list(dumps or [])
        self.returncode = returncode
        self.commands: list[list[str]] = []
        self.prepends: list[str] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if "-r" in cmd:
            return subprocess.CompletedProcess(cmd, 0, json.dumps(self.snapshot), "")

        prepend = next(a.split("=", 1)[1] for a in cmd if a.startswith("auto_prepend_file="))
        self.prepends.append(Path(prepend).read_text())
        if self.dumps:
            dump = self.dumps.pop(0)
            dump[prepend] = {"1": 1}
            (Path(prepend).parent / "coverage.json").write_text(json.dumps(dump))
        return subprocess.CompletedProcess(cmd, self.returncode, "script output\n", "")


@pytest.fixture
def fake_php(monkeypatch):
    from xdcov.runtime import php as php_mod

    fake = FakePhp()
    monkeypatch.setattr(php_mod.subprocess, "run", fake)
    return fake
