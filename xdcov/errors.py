"""Exception hierarchy for driver construction and runtime access."""

from __future__ import annotations


class XdcovError(Exception):
    """Base class for every error raised by xdcov."""


class DriverError(XdcovError):
    """A coverage driver could not be constructed or configured."""


class ExtensionNotAvailable(DriverError):
    def __init__(self, message: str = "The Xdebug extension is not available") -> None:
        super().__init__(message)


class WrongExtensionVersion(DriverError):
    """The loaded extension's major version is not the one the driver targets."""

    def __init__(self, required: int, version: str) -> None:
        super().__init__(
            f"This driver requires Xdebug {required} but version {version} is loaded"
        )
        self.required = required
        self.version = version


class FeatureNotEnabled(DriverError):
    """The extension is loaded but coverage collection is switched off."""


class LegacyFeatureNotEnabled(FeatureNotEnabled):
    def __init__(self, message: str = "xdebug.coverage_enable=On has to be set") -> None:
        super().__init__(message)


class ModeNotEnabled(FeatureNotEnabled):
    def __init__(
        self,
        message: str = "XDEBUG_MODE=coverage or xdebug.mode=coverage has to be set",
    ) -> None:
        super().__init__(message)


class BranchAndPathCoverageNotSupported(DriverError):
    def __init__(self, name_and_version: str) -> None:
        super().__init__(f"{name_and_version} does not support branch and path coverage")


class DeadCodeDetectionNotSupported(DriverError):
    def __init__(self, name_and_version: str) -> None:
        super().__init__(f"{name_and_version} does not support dead code detection")


class NoDriverAvailable(DriverError):
    def __init__(self, message: str = "No code coverage driver available") -> None:
        super().__init__(message)


class NoPathCoverageDriverAvailable(DriverError):
    def __init__(
        self,
        message: str = "No code coverage driver with path coverage support available",
    ) -> None:
        super().__init__(message)


class RuntimeProbeError(XdcovError):
    """The PHP runtime could not be queried or did not produce usable output."""
