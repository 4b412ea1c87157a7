"""Driver: the interface every coverage driver implements."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from xdcov.errors import BranchAndPathCoverageNotSupported, DeadCodeDetectionNotSupported

if TYPE_CHECKING:
    from xdcov.data import RawCoverageData


class Driver(abc.ABC):
    """Coverage driver contract.

    A driver is constructed (all capability checks happen there), then
    ``start()`` opens the measurement window and ``stop()`` closes it and
    returns the normalized data.
    """

    LINE_NOT_EXECUTABLE = -2
    LINE_NOT_EXECUTED = -1
    LINE_EXECUTED = 1
    BRANCH_NOT_HIT = 0
    BRANCH_HIT = 1

    def __init__(
        self,
        *,
        detect_dead_code: bool = False,
        collect_branch_and_path_coverage: bool = False,
    ) -> None:
        self._detect_dead_code = False
        self._collect_branch_and_path_coverage = False
        if detect_dead_code:
            self.enable_dead_code_detection()
        if collect_branch_and_path_coverage:
            self.enable_branch_and_path_coverage()

    # ── branch and path coverage ────────────────────────────────

    def can_collect_branch_and_path_coverage(self) -> bool:
        return False

    def collects_branch_and_path_coverage(self) -> bool:
        return self._collect_branch_and_path_coverage

    def enable_branch_and_path_coverage(self) -> None:
        if not self.can_collect_branch_and_path_coverage():
            raise BranchAndPathCoverageNotSupported(self.name_and_version())
        self._collect_branch_and_path_coverage = True

    def disable_branch_and_path_coverage(self) -> None:
        self._collect_branch_and_path_coverage = False

    # ── dead code ───────────────────────────────────────────────

    def can_detect_dead_code(self) -> bool:
        return False

    def detects_dead_code(self) -> bool:
        return self._detect_dead_code

    def enable_dead_code_detection(self) -> None:
        if not self.can_detect_dead_code():
            raise DeadCodeDetectionNotSupported(self.name_and_version())
        self._detect_dead_code = True

    def disable_dead_code_detection(self) -> None:
        self._detect_dead_code = False

    # ── collection ──────────────────────────────────────────────

    @abc.abstractmethod
    def name_and_version(self) -> str:
        """Return ``"<product> <version>"`` for display."""

    @abc.abstractmethod
    def start(self) -> None:
        """Begin collecting coverage."""

    @abc.abstractmethod
    def stop(self) -> RawCoverageData:
        """Stop collecting and return the normalized data."""
