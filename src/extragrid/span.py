"""Row-span propagation.

Functions here keep ``SpanData`` consistent across one merged block when a
span is declared, a spanned value is edited, or rows are inserted or
removed. They operate on a list of rows in natural order and only touch
the block they are pointed at; callers supply the starting index instead of
having the whole table rescanned.

Within a block for column ``c``:

- the main row has ``SpanData(count=N, is_main=True, main_key=<own key>)``
- the row ``d`` below it has ``SpanData(count=-d, is_main=False, main_key=<main key>)``
- every covered row displays the main row's value for ``c``
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Literal

from loguru import logger

from extragrid.exceptions import RowSpanOverflowError
from extragrid.row import Row, SpanData


def restamp(
    rows: Sequence[Row],
    main_index: int,
    column_name: str,
    start_offset: int,
    span_count: int,
) -> None:
    """Rewrite the span metadata of one block.

    The main row at ``main_index`` gets ``count=span_count``; rows at
    offsets ``start_offset .. span_count - 1`` below it become covered rows
    and take the main row's value. Offsets past the last row are skipped.
    """
    main_row = rows[main_index]
    main_row.set_span_data(column_name, SpanData(span_count, True, main_row.key))
    value = main_row.get(column_name)

    for offset in range(max(start_offset, 1), span_count):
        pos = main_index + offset
        if pos >= len(rows):
            break
        row = rows[pos]
        row.set(column_name, copy.deepcopy(value))
        row.set_span_data(column_name, SpanData(-offset, False, main_row.key))


def seed_row_span(
    rows: Sequence[Row],
    index: int,
    overflow: Literal["clamp", "reject"] = "clamp",
) -> list[str]:
    """Materialize the rowSpan declarations of ``rows[index]``.

    Declarations on a column the row already has span data for are skipped:
    the row is either covered by an earlier block or was loaded with
    explicit ``rowSpanData``.

    Returns:
        Columns a block was seeded for.

    Raises:
        RowSpanOverflowError: If a declaration runs past the last row and
            ``overflow`` is ``"reject"``.
    """
    row = rows[index]
    seeded: list[str] = []

    for column_name, declared in row.row_span.items():
        if row.get_span_data(column_name) is not None:
            if row.is_covered(column_name):
                logger.warning(
                    "Ignoring rowSpan on '{}' at row {!r}: row is already covered",
                    column_name,
                    row.key,
                )
            continue

        count = declared
        if count <= 0:
            continue

        available = len(rows) - index
        if count > available:
            if overflow == "reject":
                raise RowSpanOverflowError(row.key, column_name, count, available)
            logger.warning(
                "Clamping rowSpan on '{}' at row {!r} from {} to {}",
                column_name,
                row.key,
                count,
                available,
            )
            count = available

        restamp(rows, index, column_name, 1, count)
        seeded.append(column_name)

    return seeded


def resolve_main_row(by_key: Mapping[Any, Row], row: Row, column_name: str) -> Row:
    """Return the row holding the authoritative value of ``row``'s cell."""
    data = row.get_span_data(column_name)
    if data is None or data.is_main:
        return row
    return by_key.get(data.main_key, row)


def sync_value(
    rows: Sequence[Row], main_index: int, column_name: str
) -> list[tuple[Row, Any]]:
    """Copy the main row's value down its block.

    Returns:
        ``(row, previous_value)`` for every covered row whose value changed.
    """
    main_row = rows[main_index]
    data = main_row.get_span_data(column_name)
    if data is None or not data.is_main or data.count <= 1:
        return []

    value = main_row.get(column_name)
    written: list[tuple[Row, Any]] = []
    for offset in range(1, data.count):
        pos = main_index + offset
        if pos >= len(rows):
            break
        row = rows[pos]
        previous = row.get(column_name)
        if previous != value:
            row.set(column_name, copy.deepcopy(value))
            written.append((row, previous))
    return written


def extend_for_insert(
    rows: Sequence[Row],
    index: int,
    length: int,
    extend_prev_row_span: bool = False,
) -> list[str]:
    """Grow the blocks around ``length`` rows just inserted at ``index``.

    A block of the row right above the insertion point grows when it
    already reaches past that row, or when ``extend_prev_row_span`` asks for
    it. Otherwise the inserted rows stay unspanned.

    Returns:
        Columns whose block was extended.
    """
    if index <= 0 or index > len(rows):
        return []

    prev_row = rows[index - 1]
    extended: list[str] = []

    for column_name, data in list(prev_row.span_data.items()):
        if data.count == 0:
            continue

        if data.is_main:
            main_index = index - 1
            start_offset = 1
        else:
            found = _find_main_index(rows, index - 1 + data.count, data.main_key)
            if found is None:
                continue
            main_index = found
            # Offset of the first row past prev_row, counted from the main row
            start_offset = -data.count + 1

        main_data = rows[main_index].get_span_data(column_name)
        if main_data is None:
            continue

        if main_data.count > start_offset or extend_prev_row_span:
            restamp(rows, main_index, column_name, start_offset, main_data.count + length)
            extended.append(column_name)

    if extended:
        logger.debug("Extended row spans {} over {} inserted row(s)", extended, length)
    return extended


def shrink_for_remove(
    rows: Sequence[Row],
    index: int,
    removed_span: Mapping[str, SpanData],
    kept_values: Mapping[str, Any] | None = None,
) -> list[str]:
    """Shrink the blocks a removed row belonged to.

    Args:
        rows: Rows after the removal.
        index: Former index of the removed row; ``rows[index]`` is the row
            that moved up into its place.
        removed_span: Span data of the removed row, captured before removal.
        kept_values: Field values of the removed row. When given, a new main
            row takes the removed main row's value instead of ''.

    Returns:
        Columns whose block changed.
    """
    changed: list[str] = []

    for column_name, data in removed_span.items():
        if data.count == 0:
            continue

        if data.is_main:
            if data.count <= 1:
                # A block of one is not really spanned
                continue
            if index >= len(rows):
                continue
            main_index = index
            main_row = rows[main_index]
            span_count = data.count - 1
            start_offset = 1
            kept = kept_values.get(column_name, "") if kept_values is not None else ""
            main_row.set(column_name, copy.deepcopy(kept))
        else:
            found = _find_main_index(rows, index + data.count, data.main_key)
            if found is None:
                continue
            main_index = found
            main_row = rows[main_index]
            main_data = main_row.get_span_data(column_name)
            if main_data is None:
                continue
            span_count = main_data.count - 1
            start_offset = -data.count

        if span_count > 1:
            restamp(rows, main_index, column_name, start_offset, span_count)
        else:
            main_row.set_span_data(column_name, None)
        changed.append(column_name)

    if changed:
        logger.debug("Shrunk row spans {} after removal at index {}", changed, index)
    return changed


def iter_block(rows: Sequence[Row], main_index: int, column_name: str) -> Iterator[Row]:
    """Yield the main row at ``main_index`` and the rows it covers."""
    data = rows[main_index].get_span_data(column_name)
    count = data.count if data is not None and data.is_main else 1
    yield from rows[main_index : main_index + max(count, 1)]


def validate_spans(rows: Sequence[Row]) -> list[str]:
    """Check every block for consistency.

    Returns:
        Human-readable descriptions of each violation (empty when consistent).
    """
    problems: list[str] = []
    for i, row in enumerate(rows):
        for column_name, data in row.span_data.items():
            if data.is_main:
                if data.main_key != row.key:
                    problems.append(f"row {row.key!r}/{column_name}: main row points at {data.main_key!r}")
                if i + data.count > len(rows):
                    problems.append(f"row {row.key!r}/{column_name}: block of {data.count} runs past the end")
                for offset in range(1, min(data.count, len(rows) - i)):
                    covered = rows[i + offset].get_span_data(column_name)
                    if covered is None or covered.is_main or covered.count != -offset or covered.main_key != row.key:
                        problems.append(
                            f"row {rows[i + offset].key!r}/{column_name}: expected count {-offset} under {row.key!r}"
                        )
            elif data.count < 0:
                main_pos = i + data.count
                main_row = rows[main_pos] if 0 <= main_pos < len(rows) else None
                if main_row is None or main_row.key != data.main_key:
                    problems.append(f"row {row.key!r}/{column_name}: main row {data.main_key!r} not {-data.count} above")
                    continue
                main_data = main_row.get_span_data(column_name)
                if main_data is None or not main_data.is_main or main_data.count <= -data.count:
                    problems.append(f"row {row.key!r}/{column_name}: main row {data.main_key!r} does not cover it")

    return problems


def _find_main_index(rows: Sequence[Row], guess: int, main_key: Any) -> int | None:
    """Locate the main row, trusting ``guess`` when it is right."""
    if 0 <= guess < len(rows) and rows[guess].key == main_key:
        return guess
    for i, row in enumerate(rows):
        if row.key == main_key:
            return i
    return None
