"""Unified configuration loader for xdcov.

Configuration is resolved in priority order: **project > user > defaults**.

1. **Project-level**: ``.xdcov.yml`` in (or above) the working directory.
   Checked into version control, shared by the team.
2. **User-level**: ``~/.xdcov/config.yml``.
   Personal defaults across all projects.
3. **Built-in defaults**: ``php`` on PATH, line coverage, automatic driver.

Both files share the same format::

    # .xdcov.yml  or  ~/.xdcov/config.yml
    php:
      binary: php
      ini:
        xdebug.mode: coverage
    coverage:
      driver: auto
      path_coverage: false
      include:
        - src
      exclude:
        - src/Generated
      suffix: .php

Project-level values override user-level values.  CLI flags override both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from xdcov.filter import Filter

CONFIG_FILENAME = ".xdcov.yml"
USER_CONFIG_DIR = Path.home() / ".xdcov"
USER_CONFIG_PATH = USER_CONFIG_DIR / "config.yml"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class PhpConfig:
    """How to reach the PHP runtime."""

    binary: str = "php"
    ini: dict[str, str] = field(default_factory=dict)


@dataclass
class CoverageConfig:
    """Coverage sub-configuration."""

    driver: str = "auto"
    path_coverage: bool = False
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    suffix: str = ".php"

    def build_filter(self, base: str | Path | None = None) -> Filter:
        """Build a :class:`Filter` from the include/exclude lists.

        Relative entries are resolved against *base*.  Directories are
        walked for files ending in :attr:`suffix`.
        """
        root = Path(base) if base is not None else Path.cwd()
        flt = Filter()
        for entry in self.include:
            path = root / Path(entry).expanduser()
            if path.is_dir():
                flt.include_directory(path, self.suffix)
            else:
                flt.include_file(path)
        for entry in self.exclude:
            path = root / Path(entry).expanduser()
            if path.is_dir():
                flt.exclude_directory(path, self.suffix)
            else:
                flt.exclude_file(path)
        return flt


@dataclass
class XdcovConfig:
    """Top-level configuration container (php + coverage)."""

    php: PhpConfig = field(default_factory=PhpConfig)
    coverage: CoverageConfig = field(default_factory=CoverageConfig)

    # Where the effective config was loaded from (None = defaults only).
    project_config_path: str | None = None
    user_config_path: str | None = None

    @property
    def base_dir(self) -> Path | None:
        """Directory relative include/exclude entries are resolved against."""
        source = self.project_config_path or self.user_config_path
        return Path(source).parent if source else None


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    search_path: str | None = None,
    config_path: str | Path | None = None,
) -> XdcovConfig:
    """Load merged configuration (project > user > defaults).

    Parameters
    ----------
    search_path:
        Directory to search for ``.xdcov.yml``.  When *None*, only
        the user-level file (and defaults) are considered.
    config_path:
        Explicit config file path.  When given, *only* this file is
        loaded (no project/user search).
    """
    if config_path is not None:
        raw = _load_yaml(Path(config_path).expanduser())
        return _raw_to_config(raw, config_source=str(config_path))

    user_raw = _load_yaml(USER_CONFIG_PATH)
    user_source = str(USER_CONFIG_PATH) if user_raw else None

    project_raw: dict | None = None
    project_source: str | None = None
    if search_path is not None:
        project_path = _find_project_config(search_path)
        if project_path is not None:
            project_raw = _load_yaml(project_path)
            project_source = str(project_path)

    merged = _merge_raw(project_raw, user_raw)
    cfg = _raw_to_config(merged)
    cfg.project_config_path = project_source
    cfg.user_config_path = user_source
    return cfg


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find_project_config(search_path: str) -> Path | None:
    """Search for ``.xdcov.yml`` in *search_path* and ancestors."""
    p = Path(search_path)
    candidates = [p / CONFIG_FILENAME]
    for parent in p.parents:
        candidates.append(parent / CONFIG_FILENAME)
        if (parent / ".git").exists():
            break
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict | None:
    """Load a YAML file, returning *None* on missing/invalid files."""
    path = path.expanduser()
    if not path.is_file():
        return None
    try:
        raw = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError):
        return None
    return raw if isinstance(raw, dict) else None


def _merge_raw(
    project: dict | None,
    user: dict | None,
) -> dict:
    """Merge project and user raw dicts (project wins, section by section)."""
    base: dict = {}

    if user:
        base = _deep_copy_dict(user)

    if project:
        for key in ("php", "coverage"):
            section = project.get(key)
            if isinstance(section, dict):
                if not isinstance(base.get(key), dict):
                    base[key] = {}
                base[key].update(section)

    return base


def _deep_copy_dict(d: dict) -> dict:
    """Copy top-level dict and nested dicts/lists (enough for YAML config)."""
    out: dict = {}
    for k, v in d.items():
        if isinstance(v, dict):
            out[k] = _deep_copy_dict(v)
        elif isinstance(v, list):
            out[k] = list(v)
        else:
            out[k] = v
    return out


def _raw_to_config(
    raw: dict | None,
    config_source: str | None = None,
) -> XdcovConfig:
    """Convert a raw YAML dict to an ``XdcovConfig``."""
    if not raw:
        return XdcovConfig(project_config_path=config_source)

    php_raw = raw.get("php", {})
    if not isinstance(php_raw, dict):
        php_raw = {}

    coverage_raw = raw.get("coverage", {})
    if not isinstance(coverage_raw, dict):
        coverage_raw = {}

    ini_raw = php_raw.get("ini", {})
    ini = {str(k): _ini_value(v) for k, v in ini_raw.items()} if isinstance(ini_raw, dict) else {}

    php_cfg = PhpConfig(
        binary=str(php_raw.get("binary", "php")),
        ini=ini,
    )

    coverage_cfg = CoverageConfig(
        driver=str(coverage_raw.get("driver", "auto")),
        path_coverage=bool(coverage_raw.get("path_coverage", False)),
        include=_as_list(coverage_raw.get("include", [])),
        exclude=_as_list(coverage_raw.get("exclude", [])),
        suffix=str(coverage_raw.get("suffix", ".php")),
    )

    return XdcovConfig(
        php=php_cfg,
        coverage=coverage_cfg,
        project_config_path=config_source,
    )


def _ini_value(val: object) -> str:
    """Render a YAML scalar the way PHP's ``-d`` option expects it."""
    if isinstance(val, bool):
        return "1" if val else "0"
    return str(val)


def _as_list(val: object) -> list[str]:
    """Coerce a value to a list of strings."""
    if isinstance(val, list):
        return [str(v) for v in val]
    if isinstance(val, str):
        return [val]
    return []
