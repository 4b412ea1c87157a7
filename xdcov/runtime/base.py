"""Runtime protocol: everything a driver asks of the PHP process and its extension."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ExtensionRuntime(Protocol):
    """Injectable view of the PHP runtime hosting the debugger extension.

    Introspection methods must be side-effect free.  ``set_filter``,
    ``start_code_coverage``, ``get_code_coverage`` and ``stop_code_coverage``
    mirror the extension functions of the same name.
    """

    def extension_loaded(self, name: str) -> bool:
        ...

    def extension_version(self, name: str) -> str | None:
        """Return the extension's version string, or None if not loaded."""
        ...

    def ini_get(self, key: str) -> str | None:
        """Return the ini value as a string, or None for an unknown setting."""
        ...

    def getenv(self, key: str) -> str | None:
        """Return the environment variable, or None if it is unset."""
        ...

    def is_defined(self, constant: str) -> bool:
        ...

    def active_modes(self) -> list[str]:
        """Return the extension's active modes (``xdebug_info('mode')``)."""
        ...

    def set_filter(self, group: str, list_type: str, files: Sequence[str]) -> None:
        """Install a filter; *group* and *list_type* are constant names."""
        ...

    def start_code_coverage(self, flags: int) -> None:
        ...

    def get_code_coverage(self) -> dict[str, Any]:
        ...

    def stop_code_coverage(self) -> None:
        ...
