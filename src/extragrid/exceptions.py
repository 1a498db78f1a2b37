"""Custom exceptions for extragrid row-list operations."""

from __future__ import annotations

from typing import Any


class GridError(Exception):
    """Base exception for grid data errors."""

    pass


class InvalidRowDataError(GridError):
    """Raised when row data has a structurally invalid shape.

    A batch must be a list of mappings (or a single mapping, or a
    ``{"contents": [...]}`` wrapper). Anything else is a usage error.
    """

    def __init__(self, data: Any, reason: str) -> None:
        self.data = data
        self.reason = reason
        super().__init__(f"Invalid row data ({type(data).__name__}): {reason}")


class DuplicateRowKeyError(GridError):
    """Raised when a formatted row's key is already present in the row list."""

    def __init__(self, row_key: Any) -> None:
        self.row_key = row_key
        super().__init__(f"Row key {row_key!r} already exists in the row list.")


class RowSpanOverflowError(GridError):
    """Raised when a rowSpan declaration runs past the last row.

    Only raised when the ``span_overflow`` setting is ``"reject"``; the
    default ``"clamp"`` policy shortens the span instead.
    """

    def __init__(self, row_key: Any, column_name: str, count: int, available: int) -> None:
        self.row_key = row_key
        self.column_name = column_name
        self.count = count
        self.available = available
        super().__init__(
            f"rowSpan of {count} on column '{column_name}' at row {row_key!r} "
            f"exceeds the {available} remaining row(s)."
        )


class ReentrantMutationError(GridError):
    """Raised when a structural mutation starts while another is propagating.

    Column change hooks run in the middle of span synchronization. They may
    not insert, remove, reload or sort rows on the same row list.
    """

    def __init__(self, operation: str, active: str) -> None:
        self.operation = operation
        self.active = active
        super().__init__(
            f"Cannot run '{operation}' while '{active}' is still updating the row list."
        )
