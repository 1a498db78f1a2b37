"""Typed change notifications emitted by the row list.

Events are delivered synchronously, in registration order, once the
mutation that produced them has finished updating span metadata.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger


class EventType(str, Enum):
    CHANGE = "change"
    RESTORE = "restore"
    SORT_CHANGED = "sortChanged"
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class RowValueChanged:
    row_key: Any
    column_name: str
    value: Any
    previous: Any


@dataclass(frozen=True)
class RowValueRestored:
    """A before-change hook vetoed an edit; ``value`` is the restored value."""

    row_key: Any
    column_name: str
    value: Any
    rejected: Any


@dataclass(frozen=True)
class SortChanged:
    column_name: str
    ascending: bool
    requires_fetch: bool


@dataclass(frozen=True)
class RowsAdded:
    row_keys: tuple[Any, ...]
    at: int


@dataclass(frozen=True)
class RowsRemoved:
    row_keys: tuple[Any, ...]


Listener = Callable[[Any], Any]


class EventBus:
    """Per-collection listener registry."""

    def __init__(self) -> None:
        self._listeners: dict[EventType, list[Listener]] = defaultdict(list)

    def on(self, event_type: EventType | str, callback: Listener) -> None:
        self._listeners[EventType(event_type)].append(callback)

    def off(self, event_type: EventType | str, callback: Listener | None = None) -> None:
        """Remove one listener, or every listener of ``event_type``."""
        listeners = self._listeners[EventType(event_type)]
        if callback is None:
            listeners.clear()
        elif callback in listeners:
            listeners.remove(callback)

    def emit(self, event_type: EventType, event: Any) -> None:
        listeners = list(self._listeners[event_type])
        if listeners:
            logger.trace("emit {} to {} listener(s)", event_type.value, len(listeners))
        for callback in listeners:
            callback(event)
