"""Column schema consumed by the row list.

The row list does not own column definitions. It asks this collaborator,
by column name and at call time, whether a column is editable, whether it
is ignored when diffing, and which change hooks to run.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class ChangeEvent:
    """Payload handed to a column's change hooks."""

    row_key: Any
    column_name: str
    value: Any
    previous: Any


# A before-change hook vetoes the change by returning False (exactly False;
# None means "no opinion").
ChangeHook = Callable[[ChangeEvent], Any]


@dataclass
class ColumnModel:
    """Definition of a single data column."""

    column_name: str
    editable: bool = True
    is_ignore: bool = False  # excluded from diffs and from auto-checking
    on_before_change: ChangeHook | None = None
    on_after_change: ChangeHook | None = None


class ColumnSchema(Protocol):
    """What the row list needs from a column schema."""

    @property
    def key_column_name(self) -> str | None: ...

    def get_column_model(self, column_name: str) -> ColumnModel | None: ...

    def ignored_column_names(self) -> list[str]: ...

    def data_column_names(self) -> list[str]: ...


@dataclass
class ColumnModelSet:
    """Ordered set of column models plus the optional key column."""

    columns: list[ColumnModel] = field(default_factory=list)
    key_column_name: str | None = None

    def __post_init__(self) -> None:
        self._by_name: dict[str, ColumnModel] = {c.column_name: c for c in self.columns}

    @classmethod
    def from_names(cls, names: Iterable[str], key_column_name: str | None = None) -> ColumnModelSet:
        """Build a schema of plain editable columns."""
        return cls([ColumnModel(name) for name in names], key_column_name=key_column_name)

    def get_column_model(self, column_name: str) -> ColumnModel | None:
        return self._by_name.get(column_name)

    def ignored_column_names(self) -> list[str]:
        return [c.column_name for c in self.columns if c.is_ignore]

    def data_column_names(self) -> list[str]:
        return [c.column_name for c in self.columns]

    def create_dummy_row(self) -> dict[str, Any]:
        """Return an empty row with '' for every data column."""
        return {name: "" for name in self.data_column_names()}
