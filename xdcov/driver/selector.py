"""Driver selection: loading, registration, and version-based choice."""

from __future__ import annotations

import importlib
import logging

from xdcov.driver.base import Driver
from xdcov.driver.xdebug import EXTENSION, XdebugDriver
from xdcov.driver.xdebug2 import Xdebug2Driver
from xdcov.driver.xdebug3 import Xdebug3Driver
from xdcov.errors import (
    DriverError,
    ExtensionNotAvailable,
    NoDriverAvailable,
    NoPathCoverageDriverAvailable,
    WrongExtensionVersion,
)
from xdcov.filter import Filter
from xdcov.runtime.base import ExtensionRuntime
from xdcov.version import release_at_least

log = logging.getLogger(__name__)

DRIVERS: dict[str, type[XdebugDriver]] = {
    "xdebug2": Xdebug2Driver,
    "xdebug3": Xdebug3Driver,
}


def load_import_driver(import_string: str) -> type[Driver]:
    """Load a driver class from ``pkg.module:ClassName``."""
    module_path, class_name = import_string.rsplit(":", 1)
    mod = importlib.import_module(module_path)
    return getattr(mod, class_name)


def load_driver_class(driver_spec: str, runtime: ExtensionRuntime) -> type[Driver]:
    """Resolve *driver_spec* to a driver class.

    ``auto``       - pick by the loaded extension version
    ``<name>``     - a registered driver (see :data:`DRIVERS`)
    ``import:...`` - a class from an import string
    """
    if driver_spec.startswith("import:"):
        return load_import_driver(driver_spec[len("import:"):])
    if driver_spec == "auto":
        return driver_class_for(runtime)
    try:
        return DRIVERS[driver_spec]
    except KeyError:
        raise ValueError(f"No registered driver named '{driver_spec}'") from None


def driver_class_for(runtime: ExtensionRuntime) -> type[XdebugDriver]:
    """Return the driver class matching the loaded extension's major version."""
    version = runtime.extension_version(EXTENSION) or ""
    if version and release_at_least(version, 3):
        return Xdebug3Driver
    return Xdebug2Driver


def for_line_coverage(
    filter: Filter,
    runtime: ExtensionRuntime | None = None,
    driver: str = "auto",
) -> Driver:
    """Return a driver collecting line coverage with dead-code detection."""
    runtime = _default_runtime(runtime)
    if not runtime.extension_loaded(EXTENSION):
        raise NoDriverAvailable()

    selected = _construct(filter, runtime, driver, NoDriverAvailable)
    selected.enable_dead_code_detection()
    return selected


def for_line_and_path_coverage(
    filter: Filter,
    runtime: ExtensionRuntime | None = None,
    driver: str = "auto",
) -> Driver:
    """Return a driver collecting line, branch and path coverage."""
    runtime = _default_runtime(runtime)
    if not runtime.extension_loaded(EXTENSION):
        raise NoPathCoverageDriverAvailable()

    selected = _construct(filter, runtime, driver, NoPathCoverageDriverAvailable)
    selected.enable_dead_code_detection()
    selected.enable_branch_and_path_coverage()
    return selected


def _construct(
    filter: Filter,
    runtime: ExtensionRuntime,
    driver_spec: str,
    unavailable: type[DriverError],
) -> Driver:
    """Try the preferred driver first, then the other registered ones.

    Only a version refusal moves on to the next candidate; any other
    construction error propagates.  When no candidate can be built,
    *unavailable* is raised.
    """
    preferred = load_driver_class(driver_spec, runtime)
    candidates = [preferred]
    if driver_spec == "auto":
        candidates += [cls for cls in DRIVERS.values() if cls is not preferred]

    last_error: WrongExtensionVersion | None = None
    for cls in candidates:
        try:
            selected = cls(filter, runtime)
        except ExtensionNotAvailable as exc:
            raise unavailable() from exc
        except WrongExtensionVersion as exc:
            log.debug("%s refused: %s", cls.__name__, exc)
            last_error = exc
            continue
        log.debug("Selected %s (%s)", cls.__name__, selected.name_and_version())
        return selected

    raise unavailable() from last_error


def _default_runtime(runtime: ExtensionRuntime | None) -> ExtensionRuntime:
    if runtime is not None:
        return runtime
    from xdcov.runtime.php import PhpCliRuntime

    return PhpCliRuntime()
