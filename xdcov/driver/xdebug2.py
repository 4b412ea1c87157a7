"""Driver for Xdebug 2."""

from __future__ import annotations

import logging
from typing import Any

from xdcov.data import RawCoverageData
from xdcov.driver.xdebug import PATH_INCLUDE, XdebugDriver
from xdcov.errors import LegacyFeatureNotEnabled, WrongExtensionVersion
from xdcov.filter import Filter
from xdcov.runtime.base import ExtensionRuntime
from xdcov.version import older_than, release_at_least

log = logging.getLogger(__name__)

# Older name of XDEBUG_PATH_INCLUDE; wins when the runtime still defines it.
PATH_WHITELIST = "XDEBUG_PATH_WHITELIST"

# Before this release, path coverage reports files without functions as a
# bare line map.
MIXED_COVERAGE_FIXED_IN = "2.9.6"

_FALSE_INI_VALUES = frozenset({"", "0", "off", "false", "no", "none"})


class Xdebug2Driver(XdebugDriver):
    major_version = 2

    def __init__(
        self,
        filter: Filter,
        runtime: ExtensionRuntime | None = None,
        **capabilities: bool,
    ) -> None:
        super().__init__(filter, runtime, **capabilities)
        self._path_coverage_is_mixed_coverage = older_than(self._version, MIXED_COVERAGE_FIXED_IN)

    def _ensure_correct_version(self) -> None:
        if release_at_least(self._version, 3):
            raise WrongExtensionVersion(self.major_version, self._version)

    def _ensure_code_coverage_is_enabled(self) -> None:
        value = self._runtime.ini_get("xdebug.coverage_enable")
        if value is None or value.strip().lower() in _FALSE_INI_VALUES:
            raise LegacyFeatureNotEnabled()

    def _filter_list_type(self) -> str:
        if self._runtime.is_defined(PATH_WHITELIST):
            return PATH_WHITELIST
        return PATH_INCLUDE

    @property
    def path_coverage_is_mixed_coverage(self) -> bool:
        return self._path_coverage_is_mixed_coverage

    def _normalize(self, data: dict[str, Any]) -> RawCoverageData:
        if self.collects_branch_and_path_coverage() and self._path_coverage_is_mixed_coverage:
            log.debug("%s reports mixed path coverage", self.name_and_version())
            return RawCoverageData.from_xdebug_with_mixed_coverage(data)
        return super()._normalize(data)
