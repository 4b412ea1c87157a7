"""CLI: click-based command-line interface."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from xdcov.config import CoverageConfig, XdcovConfig, load_config
from xdcov.driver.base import Driver
from xdcov.driver.selector import DRIVERS, for_line_and_path_coverage, for_line_coverage
from xdcov.errors import DriverError, RuntimeProbeError
from xdcov.filter import Filter
from xdcov.models import CoverageRun, DriverInfo
from xdcov.report import render_json, render_text
from xdcov.runtime.php import PhpCliRuntime


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Log driver selection and collection details to stderr.")
def main(verbose: bool) -> None:
    """xdcov: collect PHP code coverage through Xdebug."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


# ───────────────────────────────────────────────────────────────────
# helpers
# ───────────────────────────────────────────────────────────────────

def _parse_ini(pairs: tuple[str, ...]) -> dict[str, str]:
    ini: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint="--ini")
        ini[key.strip()] = value.strip()
    return ini


def _make_runtime(cfg: XdcovConfig, php_binary: str | None, ini_pairs: tuple[str, ...]) -> PhpCliRuntime:
    ini = {**cfg.php.ini, **_parse_ini(ini_pairs)}
    return PhpCliRuntime(binary=php_binary or cfg.php.binary, ini=ini)


def _build_filter(cfg: XdcovConfig, includes: tuple[str, ...], excludes: tuple[str, ...]) -> Filter:
    """Combine config entries (relative to the config file) with CLI entries (relative to cwd)."""
    base = cfg.base_dir or Path.cwd()

    def _from_config(entries: list[str]) -> list[str]:
        return [str(base / Path(e).expanduser()) for e in entries]

    def _from_cli(entries: tuple[str, ...]) -> list[str]:
        return [str(Path(e).expanduser().resolve()) for e in entries]

    merged = CoverageConfig(
        include=_from_config(cfg.coverage.include) + _from_cli(includes),
        exclude=_from_config(cfg.coverage.exclude) + _from_cli(excludes),
        suffix=cfg.coverage.suffix,
    )
    return merged.build_filter()


def _select(flt: Filter, runtime: PhpCliRuntime, path_coverage: bool, driver_spec: str) -> Driver:
    try:
        if path_coverage:
            return for_line_and_path_coverage(flt, runtime, driver=driver_spec)
        return for_line_coverage(flt, runtime, driver=driver_spec)
    except (DriverError, RuntimeProbeError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ───────────────────────────────────────────────────────────────────
# probe
# ───────────────────────────────────────────────────────────────────

@main.command()
@click.option("--path-coverage/--line-coverage", "path_coverage", default=None,
              help="Require branch and path coverage support.")
@click.option("--driver", "driver_spec", default=None,
              help="auto | xdebug2 | xdebug3 | import:pkg.module:Class")
@click.option("--php", "php_binary", default=None, help="PHP binary to use.")
@click.option("-d", "--ini", "ini_pairs", multiple=True,
              help="Extra php ini setting key=value (repeatable).")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True),
              help="Explicit config file (skips .xdcov.yml search).")
def probe(
    path_coverage: bool | None,
    driver_spec: str | None,
    php_binary: str | None,
    ini_pairs: tuple[str, ...],
    config_path: str | None,
) -> None:
    """Check which coverage driver the PHP runtime supports."""
    cfg = load_config(search_path=str(Path.cwd()), config_path=config_path)
    runtime = _make_runtime(cfg, php_binary, ini_pairs)
    effective_path_coverage = path_coverage if path_coverage is not None else cfg.coverage.path_coverage

    driver = _select(Filter(), runtime, effective_path_coverage, driver_spec or cfg.coverage.driver)
    info = DriverInfo.from_driver(driver)

    click.echo(f"Driver:         {info.name}")
    click.echo(f"Extension:      {info.name_and_version}")
    click.echo(f"PHP:            {runtime.php_version}")
    click.echo(f"Dead code:      {'yes' if info.detects_dead_code else 'no'}")
    click.echo(f"Branches/paths: {'yes' if info.collects_branch_and_path_coverage else 'no'}")


# ───────────────────────────────────────────────────────────────────
# run
# ───────────────────────────────────────────────────────────────────

@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.argument("script_args", nargs=-1, type=click.UNPROCESSED)
@click.option("--include", "includes", multiple=True,
              help="File or directory to restrict coverage to (repeatable).")
@click.option("--exclude", "excludes", multiple=True,
              help="File or directory to drop from the include list (repeatable).")
@click.option("--path-coverage/--line-coverage", "path_coverage", default=None,
              help="Collect branch and path coverage (default: line coverage).")
@click.option("--driver", "driver_spec", default=None,
              help="auto | xdebug2 | xdebug3 | import:pkg.module:Class")
@click.option("--php", "php_binary", default=None, help="PHP binary to use.")
@click.option("-d", "--ini", "ini_pairs", multiple=True,
              help="Extra php ini setting key=value (repeatable).")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True),
              help="Explicit config file (skips .xdcov.yml search).")
@click.option("--format", "fmt", default="text",
              type=click.Choice(["text", "json"], case_sensitive=False),
              help="Output format.")
@click.option("--json-out", "json_out", default=None,
              type=click.Path(), help="Write JSON report to file.")
def run(
    script: str,
    script_args: tuple[str, ...],
    includes: tuple[str, ...],
    excludes: tuple[str, ...],
    path_coverage: bool | None,
    driver_spec: str | None,
    php_binary: str | None,
    ini_pairs: tuple[str, ...],
    config_path: str | None,
    fmt: str,
    json_out: str | None,
) -> None:
    """Run a PHP script under coverage and report the result."""
    cfg = load_config(search_path=str(Path.cwd()), config_path=config_path)

    # CLI flags override config values
    effective_path_coverage = path_coverage if path_coverage is not None else cfg.coverage.path_coverage
    effective_driver = driver_spec or cfg.coverage.driver

    runtime = _make_runtime(cfg, php_binary, ini_pairs)
    flt = _build_filter(cfg, includes, excludes)
    driver = _select(flt, runtime, effective_path_coverage, effective_driver)

    # --- collect ---
    driver.start()
    try:
        proc = runtime.execute(script, script_args)
    except RuntimeProbeError as exc:
        driver.stop()
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    data = driver.stop()

    if proc.stdout:
        click.echo(proc.stdout, err=True, nl=False)
    if proc.stderr:
        click.echo(proc.stderr, err=True, nl=False)

    result = CoverageRun(
        script=str(Path(script).resolve()),
        driver=DriverInfo.from_driver(driver),
        data=data,
        exit_code=proc.returncode,
        included_files=flt.files(),
    )

    # --- output ---
    if fmt == "json":
        output = render_json(result)
    else:
        output = render_text(result)

    click.echo(output)

    if json_out:
        Path(json_out).write_text(render_json(result))
        click.echo(f"JSON report written to {json_out}", err=True)

    sys.exit(1 if proc.returncode else 0)


# ───────────────────────────────────────────────────────────────────
# drivers
# ───────────────────────────────────────────────────────────────────

@main.command("drivers")
def drivers_list() -> None:
    """List registered drivers."""
    click.echo(f"{'Name':<12} {'Class'}")
    click.echo("-" * 48)
    for name, cls in sorted(DRIVERS.items()):
        click.echo(f"{name:<12} {cls.__module__}.{cls.__qualname__}")
