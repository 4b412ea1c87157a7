"""Shared machinery for the Xdebug drivers.

Both drivers run the same construction sequence (availability, version,
coverage enabled, filter) and the same start/stop cycle.  Subclasses supply
the version gate, the enabled check, the filter list constant and the
normalizer choice.
"""

from __future__ import annotations

import abc
import enum
import logging
from typing import Any

from xdcov.data import RawCoverageData
from xdcov.driver.base import Driver
from xdcov.errors import ExtensionNotAvailable
from xdcov.filter import Filter
from xdcov.runtime.base import ExtensionRuntime

log = logging.getLogger(__name__)

EXTENSION = "xdebug"
FILTER_CODE_COVERAGE = "XDEBUG_FILTER_CODE_COVERAGE"
PATH_INCLUDE = "XDEBUG_PATH_INCLUDE"


class CoverageFlag(enum.IntFlag):
    """Bits accepted by ``xdebug_start_code_coverage()``."""

    UNUSED = 1
    DEAD_CODE = 2
    BRANCH_CHECK = 4


def coverage_flags(detect_dead_code: bool, collect_branch_and_path: bool) -> CoverageFlag:
    """Compose the start bitmask.

    Branch and path coverage cannot be computed without dead-code data, so it
    switches ``DEAD_CODE`` on as well.
    """
    flags = CoverageFlag.UNUSED
    if detect_dead_code or collect_branch_and_path:
        flags |= CoverageFlag.DEAD_CODE
    if collect_branch_and_path:
        flags |= CoverageFlag.BRANCH_CHECK
    return flags


class XdebugDriver(Driver):
    """Base for :class:`Xdebug2Driver` and :class:`Xdebug3Driver`."""

    major_version: int = 0

    def __init__(
        self,
        filter: Filter,
        runtime: ExtensionRuntime | None = None,
        **capabilities: bool,
    ) -> None:
        if runtime is None:
            from xdcov.runtime.php import PhpCliRuntime

            runtime = PhpCliRuntime()
        self._runtime = runtime

        self._ensure_extension_is_available()
        self._version = self._runtime.extension_version(EXTENSION) or ""
        self._ensure_correct_version()
        self._ensure_code_coverage_is_enabled()

        if not filter.is_empty():
            list_type = self._filter_list_type()
            files = filter.files()
            log.debug("Installing %s filter with %d files", list_type, len(files))
            self._runtime.set_filter(FILTER_CODE_COVERAGE, list_type, files)

        super().__init__(**capabilities)

    @property
    def version(self) -> str:
        return self._version

    def can_collect_branch_and_path_coverage(self) -> bool:
        return True

    def can_detect_dead_code(self) -> bool:
        return True

    def name_and_version(self) -> str:
        return f"Xdebug {self._version}"

    def start(self) -> None:
        flags = coverage_flags(self.detects_dead_code(), self.collects_branch_and_path_coverage())
        log.debug("Starting code coverage with flags %r", flags)
        self._runtime.start_code_coverage(int(flags))

    def stop(self) -> RawCoverageData:
        try:
            data = self._runtime.get_code_coverage()
        finally:
            self._runtime.stop_code_coverage()
        return self._normalize(data)

    # ── hooks ───────────────────────────────────────────────────

    def _ensure_extension_is_available(self) -> None:
        if not self._runtime.extension_loaded(EXTENSION):
            raise ExtensionNotAvailable()

    @abc.abstractmethod
    def _ensure_correct_version(self) -> None:
        """Raise WrongExtensionVersion unless the loaded major version is supported."""

    @abc.abstractmethod
    def _ensure_code_coverage_is_enabled(self) -> None:
        """Raise a FeatureNotEnabled subclass unless coverage collection is on."""

    def _filter_list_type(self) -> str:
        return PATH_INCLUDE

    def _normalize(self, data: dict[str, Any]) -> RawCoverageData:
        if self.collects_branch_and_path_coverage():
            log.debug("Normalizing raw data with path coverage")
            return RawCoverageData.from_xdebug_with_path_coverage(data)
        return RawCoverageData.from_xdebug_without_path_coverage(data)
