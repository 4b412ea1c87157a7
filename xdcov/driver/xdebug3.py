"""Driver for Xdebug 3."""

from __future__ import annotations

from xdcov.driver.xdebug import XdebugDriver
from xdcov.errors import ModeNotEnabled, WrongExtensionVersion
from xdcov.version import release_at_least

COVERAGE_MODE = "coverage"


class Xdebug3Driver(XdebugDriver):
    major_version = 3

    def _ensure_correct_version(self) -> None:
        if not release_at_least(self._version, 3):
            raise WrongExtensionVersion(self.major_version, self._version)

    def _ensure_code_coverage_is_enabled(self) -> None:
        # xdebug_info('mode') exists from 3.1 on
        if release_at_least(self._version, 3, 1):
            if COVERAGE_MODE not in self._runtime.active_modes():
                raise ModeNotEnabled()
            return

        mode = self._runtime.getenv("XDEBUG_MODE")
        if mode is None:
            mode = self._runtime.ini_get("xdebug.mode")

        if mode is None or COVERAGE_MODE not in [m.strip() for m in mode.split(",")]:
            raise ModeNotEnabled()
