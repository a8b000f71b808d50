"""Protocol for the persisted key-value configuration."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a value and persist it immediately."""
        ...
