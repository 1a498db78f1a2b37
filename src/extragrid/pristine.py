"""Baseline ("pristine") copy of the row list.

The pristine copy is the last-known saved state of the table. It is
captured at load time and whenever the caller re-baselines (for example
after a successful save), and is never modified in between.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from loguru import logger

from extragrid.row import Row, strip_private


@dataclass(frozen=True)
class Pristine:
    """Immutable snapshot of formatted rows, indexed by row key."""

    rows: tuple[dict[str, Any], ...] = ()
    key_name: str = "rowKey"
    by_key: Mapping[Any, dict[str, Any]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "by_key",
            MappingProxyType({row.get(self.key_name): row for row in self.rows}),
        )

    @classmethod
    def capture(cls, rows: Iterable[Row], key_name: str = "rowKey") -> Pristine:
        """Snapshot rows in their raw (internal) form."""
        snapshot = tuple(row.to_dict(raw=True, key_name=key_name) for row in rows)
        logger.debug("Captured pristine copy of {} row(s)", len(snapshot))
        return cls(snapshot, key_name)

    def __len__(self) -> int:
        return len(self.rows)

    def __contains__(self, row_key: object) -> bool:
        return row_key in self.by_key

    def get_rows(self, clone: bool = True, raw: bool = True) -> list[dict[str, Any]]:
        """Return the pristine rows in their captured order.

        Args:
            clone: Deep-copy the rows. Without it the snapshot's own dicts
                are returned and must not be modified.
            raw: Keep internal properties.
        """
        rows = [row if raw else strip_private(row) for row in self.rows]
        return copy.deepcopy(rows) if clone else rows

    def get_row(self, row_key: Any, raw: bool = True) -> dict[str, Any] | None:
        row = self.by_key.get(row_key)
        if row is None:
            return None
        return copy.deepcopy(row if raw else strip_private(row))

    def get_value(self, row_key: Any, column_name: str) -> Any:
        row = self.by_key.get(row_key)
        if row is None:
            return None
        return copy.deepcopy(row.get(column_name))
