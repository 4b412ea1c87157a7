"""PHP CLI runtime: drives Xdebug through a ``php`` binary.

Introspection runs one ``php -r`` probe and caches its JSON snapshot.

Collection works by script execution: ``set_filter`` and
``start_code_coverage`` only record what was asked for, and every
``execute()`` inside the start/stop window runs the script with an
auto-prepended bootstrap that installs the filter, starts coverage with the
recorded flags and dumps ``xdebug_get_code_coverage()`` at shutdown::

    runtime = PhpCliRuntime(ini={"xdebug.mode": "coverage"})
    driver = for_line_coverage(Filter(), runtime)
    driver.start()
    runtime.execute("tests/bootstrap.php")
    data = driver.stop()
"""

from __future__ import annotations

import base64
import json
import logging
import os
import subprocess
import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from xdcov.errors import RuntimeProbeError

log = logging.getLogger(__name__)

_PROBE_SCRIPT = r"""
$extensions = [];
foreach (get_loaded_extensions() as $name) {
    $extensions[strtolower($name)] = phpversion($name);
}
$constants = get_defined_constants(true);
echo json_encode([
    'php' => PHP_VERSION,
    'extensions' => (object) $extensions,
    'ini' => (object) ini_get_all(null, false),
    'constants' => array_keys($constants['xdebug'] ?? []),
    'modes' => function_exists('xdebug_info') ? xdebug_info('mode') : null,
]);
"""

_PREPEND_TEMPLATE = r"""<?php
(static function (array $config) {
    if ($config['filter'] !== null) {
        xdebug_set_filter(
            constant($config['filter']['group']),
            constant($config['filter']['list_type']),
            $config['filter']['files']
        );
    }
    xdebug_start_code_coverage($config['flags']);
    register_shutdown_function(static function () use ($config) {
        $data = xdebug_get_code_coverage();
        xdebug_stop_code_coverage();
        file_put_contents(
            $config['output'],
            json_encode($data, JSON_FORCE_OBJECT | JSON_PARTIAL_OUTPUT_ON_ERROR)
        );
    });
})(json_decode(base64_decode('%s'), true));
"""

# Fields Xdebug reports as positional lists; JSON_FORCE_OBJECT turns them
# into objects, so they are turned back into lists on decode.
_POSITIONAL_FIELDS = frozenset({"path", "out", "out_hit"})


class PhpCliRuntime:
    """:class:`~xdcov.runtime.base.ExtensionRuntime` backed by a ``php`` binary."""

    def __init__(
        self,
        binary: str = "php",
        ini: Mapping[str, str] | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.binary = binary
        self.ini = dict(ini or {})
        self.env = dict(env) if env is not None else None
        self.timeout = timeout
        self._snapshot: dict[str, Any] | None = None
        self._filter: dict[str, Any] | None = None
        self._flags: int | None = None
        self._collected: dict[str, Any] = {}

    # ── introspection ───────────────────────────────────────────

    def extension_loaded(self, name: str) -> bool:
        return name.lower() in self._probe()["extensions"]

    def extension_version(self, name: str) -> str | None:
        version = self._probe()["extensions"].get(name.lower())
        return version if isinstance(version, str) else None

    def ini_get(self, key: str) -> str | None:
        ini = self._probe()["ini"]
        if key not in ini:
            return None
        value = ini[key]
        return "" if value is None else str(value)

    def getenv(self, key: str) -> str | None:
        return self._environ().get(key)

    def is_defined(self, constant: str) -> bool:
        return constant in self._probe()["constants"]

    def active_modes(self) -> list[str]:
        return list(self._probe()["modes"] or [])

    @property
    def php_version(self) -> str:
        return str(self._probe().get("php", ""))

    # ── collection ──────────────────────────────────────────────

    def set_filter(self, group: str, list_type: str, files: Sequence[str]) -> None:
        self._filter = {"group": group, "list_type": list_type, "files": list(files)}

    def start_code_coverage(self, flags: int) -> None:
        self._flags = int(flags)
        self._collected = {}

    def get_code_coverage(self) -> dict[str, Any]:
        return self._collected

    def stop_code_coverage(self) -> None:
        self._flags = None
        self._collected = {}

    def execute(
        self,
        script: str | Path,
        args: Sequence[str] = (),
        cwd: str | Path | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run *script* under coverage and merge its data into the open window."""
        if self._flags is None:
            raise RuntimeProbeError("Code coverage has not been started")

        with tempfile.TemporaryDirectory(prefix="xdcov-") as tmp:
            dump = Path(tmp) / "coverage.json"
            prepend = Path(tmp) / "prepend.php"
            prepend.write_text(_render_prepend(self._filter, self._flags, dump), encoding="utf-8")

            cmd = [
                self.binary, *self._ini_args(),
                "-d", f"auto_prepend_file={prepend}",
                str(script), *args,
            ]
            proc = self._run(cmd, cwd=cwd)

            if dump.is_file():
                data = decode_coverage(json.loads(dump.read_text(encoding="utf-8") or "{}"))
                data.pop(str(prepend), None)
                merge_coverage(self._collected, data)
            else:
                log.warning("%s produced no coverage data (exit code %d)", script, proc.returncode)

        return proc

    # ── helpers ─────────────────────────────────────────────────

    def _probe(self) -> dict[str, Any]:
        if self._snapshot is None:
            proc = self._run([self.binary, *self._ini_args(), "-r", _PROBE_SCRIPT])
            if proc.returncode != 0:
                raise RuntimeProbeError(
                    f"{self.binary} exited with code {proc.returncode}: {proc.stderr.strip()}"
                )
            try:
                snapshot = json.loads(proc.stdout)
            except json.JSONDecodeError as exc:
                raise RuntimeProbeError(f"Unexpected output from {self.binary}: {exc}") from exc
            if not isinstance(snapshot, dict):
                raise RuntimeProbeError(f"Unexpected output from {self.binary}")
            snapshot.setdefault("extensions", {})
            snapshot.setdefault("ini", {})
            snapshot["constants"] = set(snapshot.get("constants") or [])
            log.debug("Probed PHP %s with extensions %s", snapshot.get("php"), sorted(snapshot["extensions"]))
            self._snapshot = snapshot
        return self._snapshot

    def _run(self, cmd: list[str], cwd: str | Path | None = None) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                env=self._environ(),
                cwd=cwd,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise RuntimeProbeError(f"PHP binary not found: {self.binary}") from exc
        except subprocess.TimeoutExpired as exc:
            raise RuntimeProbeError(f"{self.binary} timed out after {exc.timeout}s") from exc

    def _ini_args(self) -> list[str]:
        args: list[str] = []
        for key, value in self.ini.items():
            args += ["-d", f"{key}={value}"]
        return args

    def _environ(self) -> dict[str, str]:
        return dict(os.environ) if self.env is None else self.env


# ---------------------------------------------------------------------------
# Raw data helpers
# ---------------------------------------------------------------------------


def _render_prepend(filter: dict[str, Any] | None, flags: int, output: Path) -> str:
    config = {"filter": filter, "flags": flags, "output": str(output)}
    encoded = base64.b64encode(json.dumps(config).encode("utf-8")).decode("ascii")
    return _PREPEND_TEMPLATE % encoded


def _int_key(key: str) -> int | str:
    return int(key) if key.lstrip("-").isdigit() else key


def decode_coverage(value: Any, field: str | None = None) -> Any:
    """Undo PHP's JSON encoding: integer keys back to ints, positional fields to lists."""
    if isinstance(value, dict):
        decoded = {_int_key(k): decode_coverage(v, k) for k, v in value.items()}
        if field in _POSITIONAL_FIELDS:
            return [decoded[k] for k in sorted(decoded, key=lambda k: (isinstance(k, str), k))]
        return decoded
    if isinstance(value, list):
        return [decode_coverage(v) for v in value]
    return value


def _is_path_shape(file_data: Any) -> bool:
    return isinstance(file_data, dict) and "lines" in file_data and "functions" in file_data


def merge_coverage(into: dict[str, Any], data: Mapping[str, Any]) -> None:
    """Merge one execution's raw coverage into *into*, in place."""
    for filename, file_data in data.items():
        existing = into.get(filename)
        if existing is None:
            into[filename] = file_data
            continue

        if _is_path_shape(existing) and _is_path_shape(file_data):
            _merge_lines(existing["lines"], file_data["lines"])
            _merge_functions(existing["functions"], file_data["functions"])
        elif _is_path_shape(existing):
            _merge_lines(existing["lines"], file_data)
        elif _is_path_shape(file_data):
            _merge_lines(file_data["lines"], existing)
            into[filename] = file_data
        else:
            _merge_lines(existing, file_data)


def _merge_lines(into: dict[int, int], lines: Mapping[int, int]) -> None:
    for line, status in lines.items():
        into[line] = max(into.get(line, status), status)


def _merge_functions(into: dict[str, Any], functions: Mapping[str, Any]) -> None:
    for name, function in functions.items():
        if name not in into:
            into[name] = function
            continue
        target = into[name]
        for branch_id, branch in function.get("branches", {}).items():
            existing = target.setdefault("branches", {}).setdefault(branch_id, branch)
            if existing is branch:
                continue
            existing["hit"] = max(existing.get("hit", 0), branch.get("hit", 0))
            existing["out_hit"] = [
                max(a, b) for a, b in zip(existing.get("out_hit", []), branch.get("out_hit", []))
            ]
        for path_id, path in function.get("paths", {}).items():
            existing = target.setdefault("paths", {}).setdefault(path_id, path)
            if existing is not path:
                existing["hit"] = max(existing.get("hit", 0), path.get("hit", 0))
