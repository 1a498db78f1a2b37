"""Row entity: one record with a stable key, field values and span metadata."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Properties used internally; stripped from rows handed back to callers.
PRIVATE_PROPERTIES = ("_button", "_number", "_extraData")


class RowState(str, Enum):
    CHECKED = "CHECKED"
    DISABLED = "DISABLED"
    DISABLED_CHECK = "DISABLED_CHECK"

    @property
    def is_disabled(self) -> bool:
        return self is RowState.DISABLED

    @property
    def is_disabled_check(self) -> bool:
        return self in (RowState.DISABLED, RowState.DISABLED_CHECK)

    @classmethod
    def parse(cls, value: Any) -> RowState | None:
        """Best-effort conversion; unknown states are ignored."""
        if value is None or isinstance(value, RowState):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return None


@dataclass
class SpanData:
    """Row-span metadata of one row for one column.

    ``count`` is the block size on the main row, and minus the distance to
    the main row on a covered row. 0 means "not spanned".
    """

    count: int
    is_main: bool
    main_key: Any

    @property
    def distance(self) -> int:
        """Rows between this row and its main row (0 on the main row)."""
        return 0 if self.is_main else -self.count

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "isMainRow": self.is_main, "mainRowKey": self.main_key}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpanData:
        return cls(
            count=int(data.get("count", 0) or 0),
            is_main=bool(data.get("isMainRow", False)),
            main_key=data.get("mainRowKey"),
        )


@dataclass(eq=False)
class Row:
    """A single record of the row list.

    Rows compare by identity; two rows with equal fields are still
    different rows.
    """

    key: Any
    fields: dict[str, Any] = field(default_factory=dict)
    span_data: dict[str, SpanData] = field(default_factory=dict)
    row_span: dict[str, int] = field(default_factory=dict)
    row_state: RowState | None = None
    checked: bool = False

    def get(self, column_name: str, default: Any = None) -> Any:
        return self.fields.get(column_name, default)

    def set(self, column_name: str, value: Any) -> None:
        self.fields[column_name] = value

    def get_span_data(self, column_name: str) -> SpanData | None:
        return self.span_data.get(column_name)

    def set_span_data(self, column_name: str, data: SpanData | None) -> None:
        if data is None:
            self.span_data.pop(column_name, None)
        else:
            self.span_data[column_name] = data

    def is_covered(self, column_name: str) -> bool:
        """True when the row only displays another row's value for the column."""
        data = self.span_data.get(column_name)
        return data is not None and not data.is_main and data.count < 0

    @property
    def is_disabled(self) -> bool:
        return self.row_state is not None and self.row_state.is_disabled

    @property
    def is_disabled_check(self) -> bool:
        return self.row_state is not None and self.row_state.is_disabled_check

    def to_dict(self, raw: bool = False, key_name: str = "rowKey") -> dict[str, Any]:
        """Convert to the external row shape.

        Args:
            raw: Keep internal properties (``_button``, ``_extraData``) for
                internal-to-internal transfers.
            key_name: Name of the identity property.
        """
        data: dict[str, Any] = {key_name: self.key}
        data.update(copy.deepcopy(self.fields))
        if raw:
            data["_button"] = self.checked
            data["_extraData"] = {
                "rowSpan": dict(self.row_span) or None,
                "rowSpanData": {c: s.to_dict() for c, s in self.span_data.items()} or None,
                "rowState": self.row_state.value if self.row_state else None,
            }
        return data


def strip_private(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a raw row without internal properties."""
    return {k: v for k, v in data.items() if k not in PRIVATE_PROPERTIES}
