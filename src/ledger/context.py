"""Per-scenario state threaded through step functions.

A ScenarioContext is deliberately dumb storage: named slots, no
validation. A step that needs a value an earlier step should have left
asks for it with require(), which fails with a PreconditionError naming
every missing slot at once.
"""

from __future__ import annotations

from typing import Any, Iterator

from .errors import PreconditionError

_MISSING = object()


class ScenarioContext:
    """Mutable key-value store scoped to one scenario execution."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self._slots: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        self._slots[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._slots.get(key, default)

    def require(self, *keys: str, step: str | None = None) -> Any:
        """Return the value (one key) or a tuple of values (several keys).

        Raises:
            PreconditionError: If any key is unset or None.
        """
        missing = [key for key in keys if self._slots.get(key) is None]
        if missing:
            raise PreconditionError(missing, step=step)
        values = tuple(self._slots[key] for key in keys)
        return values[0] if len(values) == 1 else values

    def take(self, key: str, step: str | None = None) -> Any:
        """Remove and return a slot; the slot is gone even if a later step fails."""
        value = self._slots.pop(key, _MISSING)
        if value is _MISSING or value is None:
            raise PreconditionError([key], step=step)
        return value

    def pop(self, key: str, default: Any = None) -> Any:
        return self._slots.pop(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._slots and self._slots[key] is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __repr__(self) -> str:
        return f"ScenarioContext(name={self.name!r}, slots={sorted(self._slots)})"
