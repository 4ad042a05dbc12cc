"""Change notification for the stores.

Stores assign state through ``_set(...)``, which notifies listeners of each
field whose value actually changed. The presentation layer subscribes with
``on_change(listener)`` and re-reads whatever it renders. Listeners run
synchronously on the caller's thread (the event loop thread).
"""

from __future__ import annotations

from typing import Any, Callable

ChangeListener = Callable[[str], None]


class Observable:
    """Mixin providing ``on_change`` subscriptions."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, field: str) -> None:
        for listener in list(self._listeners):
            listener(field)

    def _set(self, **changes: Any) -> None:
        for name, value in changes.items():
            if getattr(self, name) != value:
                setattr(self, name, value)
                self._notify(name)
