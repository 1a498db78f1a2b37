"""Diff engine: compare the current rows against the pristine copy.

Rows are matched by key:

- in current only -> created
- in both, with any compared column different -> updated
- in pristine only -> deleted
"""

from __future__ import annotations

import copy
import json
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from extragrid.pristine import Pristine
from extragrid.row import Row, strip_private

_STRUCTURED = (dict, list, tuple)


@dataclass
class DiffResult:
    """Created, updated and deleted rows (or row keys)."""

    create_list: list[Any] = field(default_factory=list)
    update_list: list[Any] = field(default_factory=list)
    delete_list: list[Any] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.create_list or self.update_list or self.delete_list)

    def to_dict(self) -> dict[str, list[Any]]:
        return {
            "createList": self.create_list,
            "updateList": self.update_list,
            "deleteList": self.delete_list,
        }


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str, ensure_ascii=False)


def values_equal(a: Any, b: Any) -> bool:
    """Compare cell values; structured values compare by content."""
    if isinstance(a, _STRUCTURED) or isinstance(b, _STRUCTURED):
        try:
            return _canonical(a) == _canonical(b)
        except TypeError:
            # Keys json cannot sort or encode (mixed or tuple keys)
            return a == b
    if a == b:
        return True
    # NaN never equals itself
    return a != a and b != b


def is_modified_row(
    row: Mapping[str, Any],
    original_row: Mapping[str, Any],
    ignore_columns: Collection[str] = (),
) -> bool:
    """Return True if any non-ignored column differs between the two rows."""
    columns = (set(row) | set(original_row)) - set(ignore_columns)
    return any(
        not values_equal(row.get(column_name), original_row.get(column_name))
        for column_name in columns
    )


def diff_rows(
    pristine: Pristine,
    current: Sequence[Row],
    *,
    only_checked: bool = False,
    only_row_keys: bool = False,
    raw: bool = False,
    ignore_columns: Iterable[str] = (),
    covered_cells: Mapping[Any, Collection[str]] | None = None,
) -> DiffResult:
    """Classify current rows against the pristine copy.

    Args:
        pristine: Baseline to compare against.
        current: Current rows, in display order.
        only_checked: Only report created/updated rows that are checked.
            Deleted rows are always reported.
        only_row_keys: Report bare row keys instead of row dicts.
        raw: Keep internal properties in reported row dicts.
        ignore_columns: Columns that never count as a change.
        covered_cells: Per row key, columns the row only displays as a
            covered member of a span block. They are left to the block's
            main row, so one edit of a merged cell is reported once.

    Returns:
        DiffResult with items in current order (created/updated) and
        pristine order (deleted).
    """
    key_name = pristine.key_name
    ignored = set(ignore_columns)
    covered_cells = covered_cells or {}
    result = DiffResult()
    current_keys = set()

    for row in current:
        current_keys.add(row.key)
        if only_checked and not row.checked:
            continue

        item = row.key if only_row_keys else row.to_dict(raw=raw, key_name=key_name)
        original_row = pristine.by_key.get(row.key)

        if original_row is None:
            result.create_list.append(item)
            continue

        skip = ignored | set(covered_cells.get(row.key, ()))
        if is_modified_row(row.to_dict(key_name=key_name), strip_private(original_row), skip):
            result.update_list.append(item)

    for original_row in pristine.rows:
        row_key = original_row.get(key_name)
        if row_key in current_keys:
            continue
        if only_row_keys:
            result.delete_list.append(row_key)
        else:
            result.delete_list.append(copy.deepcopy(original_row if raw else strip_private(original_row)))

    return result
