"""Row list: the ordered data source of a grid.

Owns row keys, formatting of raw input, sort state and the pristine copy,
and keeps row-span metadata consistent on every edit, insert, removal and
sort.

Two orders are tracked. The natural order is the load/insert order. The
display order is what callers see, and it only differs from the natural
order while rows are sorted client-side. Span metadata always describes
the natural order. It is consulted only while the rows are displayed in
natural order (sorted by the row key, ascending) and lies dormant
otherwise.
"""

from __future__ import annotations

import contextlib
import copy
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any

from loguru import logger

from extragrid.columns import ChangeEvent, ColumnModelSet, ColumnSchema
from extragrid.config import GridSettings, get_settings
from extragrid.diff import DiffResult, diff_rows, values_equal
from extragrid.events import (
    EventBus,
    EventType,
    Listener,
    RowsAdded,
    RowsRemoved,
    RowValueChanged,
    RowValueRestored,
    SortChanged,
)
from extragrid.exceptions import (
    DuplicateRowKeyError,
    InvalidRowDataError,
    ReentrantMutationError,
)
from extragrid.pristine import Pristine
from extragrid.row import PRIVATE_PROPERTIES, Row, RowState, SpanData
from extragrid.span import (
    extend_for_insert,
    resolve_main_row,
    seed_row_span,
    shrink_for_remove,
    sync_value,
)


@dataclass
class SortOptions:
    column_name: str
    ascending: bool = True
    use_client: bool = True


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison used for client-side sorting.

    Values that Python cannot order against each other (None, mixed types)
    fall back to ordering by type name and then by string form. None sorts
    first.
    """
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        if a is None or b is None:
            return (a is not None) - (b is not None)
        key_a = (type(a).__name__, str(a))
        key_b = (type(b).__name__, str(b))
        return (key_a > key_b) - (key_a < key_b)


class RowList:
    """Ordered collection of rows with row-span bookkeeping and diffing."""

    def __init__(
        self,
        data: Any = None,
        *,
        columns: ColumnSchema | None = None,
        settings: GridSettings | None = None,
        use_client_sort: bool | None = None,
    ) -> None:
        """Create a row list.

        Args:
            data: Optional initial rows (list, or ``{"contents": [...]}``).
            columns: Column schema collaborator.
            settings: Overrides the environment-derived settings.
            use_client_sort: Overrides ``settings.use_client_sort``.
        """
        self.settings = settings or get_settings()
        self.columns: ColumnSchema = columns if columns is not None else ColumnModelSet()
        self.key_name = self.settings.row_key_name
        self.sort_options = SortOptions(
            column_name=self.key_name,
            ascending=True,
            use_client=self.settings.use_client_sort if use_client_sort is None else use_client_sort,
        )

        self.last_row_key = -1
        self._natural: list[Row] = []
        self._display: list[Row] | None = None
        self._by_key: dict[Any, Row] = {}
        self._pristine = Pristine(key_name=self.key_name)
        self._events = EventBus()
        self._active: str | None = None

        if data is not None:
            self.set_row_list(data)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def rows(self) -> list[Row]:
        """Rows in display order (do not modify the returned list)."""
        return self._display if self._display is not None else self._natural

    @property
    def natural_rows(self) -> list[Row]:
        """Rows in natural order, the order span metadata describes."""
        return self._natural

    @property
    def pristine(self) -> Pristine:
        return self._pristine

    def __len__(self) -> int:
        return len(self._natural)

    def __iter__(self) -> Iterator[Row]:
        return iter(list(self.rows))

    def __contains__(self, row_key: object) -> bool:
        return row_key in self._by_key

    def get(self, row_key: Any) -> Row | None:
        return self._by_key.get(row_key)

    def at(self, index: int) -> Row | None:
        rows = self.rows
        return rows[index] if 0 <= index < len(rows) else None

    def index_of_row_key(self, row_key: Any) -> int | None:
        """Display index of a row, or None for an unknown key."""
        row = self._by_key.get(row_key)
        if row is None:
            return None
        return self.rows.index(row)

    def get_value(self, row_key: Any, column_name: str) -> Any:
        """Value of a cell; a covered cell reads its main row's value."""
        row = self._by_key.get(row_key)
        if row is None:
            return None
        if self.is_row_span_enable():
            row = resolve_main_row(self._by_key, row, column_name)
        return row.get(column_name)

    def get_main_row_key(self, row_key: Any, column_name: str) -> Any:
        """Key of the row holding the authoritative value of a cell."""
        row = self._by_key.get(row_key)
        if row is None:
            return None
        if self.is_row_span_enable():
            data = row.get_span_data(column_name)
            if data is not None and not data.is_main:
                return data.main_key
        return row_key

    def get_row_span_data(
        self, row_key: Any, column_name: str | None = None
    ) -> SpanData | dict[str, SpanData] | None:
        """Span data of a row, or None while spans are not in effect."""
        row = self._by_key.get(row_key)
        if row is None or not self.is_row_span_enable():
            return None
        if column_name is None:
            return copy.deepcopy(row.span_data)
        data = row.get_span_data(column_name)
        return copy.deepcopy(data) if data is not None else None

    def get_row_list(self, only_checked: bool = False, raw: bool = False) -> list[dict[str, Any]]:
        """Rows in display order.

        Args:
            only_checked: Only rows whose checkbox is set.
            raw: Keep internal properties (``_button``, ``_extraData``).
        """
        return [
            row.to_dict(raw=raw, key_name=self.key_name)
            for row in self.rows
            if not only_checked or row.checked
        ]

    # ------------------------------------------------------------------
    # Sort state
    # ------------------------------------------------------------------

    def is_sorted_by_field(self) -> bool:
        """True when sorted by any column other than the row key."""
        return self.sort_options.column_name != self.key_name

    def is_row_span_enable(self) -> bool:
        """True when rows are in natural order, the only order spans hold in."""
        return not self.is_sorted_by_field() and self.sort_options.ascending

    def set_sort_option_values(
        self,
        column_name: str | None = None,
        ascending: bool | None = None,
        requires_fetch: bool = False,
    ) -> bool:
        """Update the sort options without reordering rows.

        Emits ``sortChanged`` when the column or direction changed.

        Returns:
            True if the options changed.
        """
        event = self._update_sort_options(column_name, ascending, requires_fetch)
        if event is not None:
            self._events.emit(EventType.SORT_CHANGED, event)
        return event is not None

    def sort_by_field(self, column_name: str, ascending: bool | None = None) -> None:
        """Sort rows by a column.

        Without ``ascending``, sorting by the current column flips the
        direction and sorting by a new column starts ascending. Without
        client-side sorting only the options change, and the emitted event
        asks the caller to refetch.
        """
        options = self.sort_options
        if ascending is None:
            ascending = not options.ascending if options.column_name == column_name else True

        with self._structural("sort_by_field"):
            event = self._update_sort_options(column_name, ascending, not options.use_client)
            if options.use_client:
                self._apply_sort()

        if event is not None:
            self._events.emit(EventType.SORT_CHANGED, event)

    def unsort(self) -> None:
        """Return to natural order."""
        self.sort_by_field(self.key_name, True)

    def _update_sort_options(
        self, column_name: str | None, ascending: bool | None, requires_fetch: bool
    ) -> SortChanged | None:
        options = self.sort_options
        if column_name is None:
            column_name = self.key_name
        if ascending is None:
            ascending = True

        changed = options.column_name != column_name or options.ascending != ascending
        options.column_name = column_name
        options.ascending = ascending

        if not changed:
            return None
        logger.debug("Sort changed to {} ({})", column_name, "asc" if ascending else "desc")
        return SortChanged(column_name, ascending, requires_fetch)

    def _sort_value(self, row: Row) -> Any:
        column_name = self.sort_options.column_name
        return row.key if column_name == self.key_name else row.get(column_name)

    def _comparator(self, a: Row, b: Row) -> int:
        result = compare_values(self._sort_value(a), self._sort_value(b))
        return result if self.sort_options.ascending else -result

    def _apply_sort(self) -> None:
        if not self.is_sorted_by_field():
            # Sorting by the row key shows the natural order (reversed when
            # descending) without touching span metadata.
            self._display = None if self.sort_options.ascending else list(reversed(self._natural))
        else:
            self._display = sorted(self._natural, key=cmp_to_key(self._comparator))

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def parse(self, data: Any) -> list[Mapping[str, Any]]:
        """Unwrap ``{"contents": [...]}`` and check the batch shape.

        Raises:
            InvalidRowDataError: If the batch is not a list of mappings.
        """
        if isinstance(data, Mapping) and "contents" in data:
            data = data["contents"]
        if data is None:
            return []
        if not isinstance(data, (list, tuple)):
            raise InvalidRowDataError(data, "expected a list of rows")
        for raw_row in data:
            if not isinstance(raw_row, Mapping):
                raise InvalidRowDataError(raw_row, "each row must be a mapping")
        return list(data)

    def format_rows(self, raw_rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        """Format raw rows into Row entities.

        Assigns keys and seeds span metadata within the batch (only while
        row spans are in effect). The input is not modified.
        """
        rows = [self._base_format(raw_row) for raw_row in raw_rows]
        self._check_unique(rows)

        if self.is_row_span_enable():
            for index in range(len(rows)):
                seed_row_span(rows, index, self.settings.span_overflow)

        logger.debug("Formatted {} row(s)", len(rows))
        return rows

    def _base_format(self, raw_row: Mapping[str, Any]) -> Row:
        data = copy.deepcopy(dict(raw_row))
        extra = data.pop("_extraData", None)
        if not isinstance(extra, Mapping):
            extra = {}
        for name in PRIVATE_PROPERTIES:
            data.pop(name, None)

        key_column_name = self.columns.key_column_name
        row_key = data.get(key_column_name) if key_column_name else None
        if row_key is None:
            row_key = self._create_row_key()
        if key_column_name != self.key_name:
            data.pop(self.key_name, None)

        row_state = RowState.parse(extra.get("rowState"))
        return Row(
            key=row_key,
            fields=data,
            span_data=_parse_span_data(extra.get("rowSpanData")),
            row_span=_parse_row_span(extra.get("rowSpan")),
            row_state=row_state,
            checked=row_state is RowState.CHECKED,
        )

    def _create_row_key(self) -> int:
        self.last_row_key += 1
        return self.last_row_key

    def _check_unique(self, rows: Iterable[Row], existing: Mapping[Any, Row] | None = None) -> None:
        seen = set(existing or ())
        for row in rows:
            if row.key in seen:
                raise DuplicateRowKeyError(row.key)
            seen.add(row.key)

    # ------------------------------------------------------------------
    # Loading and the pristine copy
    # ------------------------------------------------------------------

    def set_row_list(self, data: Any) -> list[Row]:
        """Replace all rows and capture them as the pristine copy."""
        with self._structural("set_row_list"):
            rows = self.format_rows(self.parse(data))
            self._natural = rows
            self._by_key = {row.key: row for row in rows}
            self._display = None
            if self.sort_options.use_client and not self.is_row_span_enable():
                self._apply_sort()
            self.set_original_row_list()
        logger.debug("Loaded {} row(s)", len(rows))
        return rows

    def set_original_row_list(self, data: Any = None) -> list[dict[str, Any]]:
        """Re-baseline.

        Args:
            data: Rows to use as the new baseline. They are formatted like
                loaded rows, which consumes generated keys. Without it the
                current rows become the baseline.
        """
        rows = self.format_rows(self.parse(data)) if data is not None else self.rows
        self._pristine = Pristine.capture(rows, self.key_name)
        return self._pristine.get_rows()

    def get_original_row_list(self, clone: bool = True) -> list[dict[str, Any]]:
        return self._pristine.get_rows(clone=clone)

    def get_original_row(self, row_key: Any) -> dict[str, Any] | None:
        return self._pristine.get_row(row_key)

    def get_original(self, row_key: Any, column_name: str) -> Any:
        return self._pristine.get_value(row_key, column_name)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_value(self, row_key: Any, column_name: str, value: Any) -> bool | None:
        """Edit a cell.

        While row spans are in effect the edit is written to the block's
        main row and copied down the block. The column's before-change hook
        may veto the edit, in which case the previous value is restored and
        a ``restore`` event fires instead of ``change``.

        Returns:
            True if applied, False if vetoed or unchanged, None for an
            unknown row key.
        """
        row = self._by_key.get(row_key)
        if row is None:
            return None

        column_model = self.columns.get_column_model(column_name)
        span_enabled = self.is_row_span_enable()
        target = row
        if column_model is not None and span_enabled:
            target = resolve_main_row(self._by_key, row, column_name)

        previous = target.get(column_name)
        if values_equal(previous, value):
            return False
        target.set(column_name, value)

        if column_model is None:
            self._events.emit(
                EventType.CHANGE, RowValueChanged(target.key, column_name, value, previous)
            )
            return True

        change = ChangeEvent(target.key, column_name, value, previous)
        written: list[tuple[Row, Any]] = [(target, previous)]

        with self._mutating("set_value"):
            before = column_model.on_before_change
            if before is not None and before(change) is False:
                target.set(column_name, previous)
                logger.debug("Change of {!r}/{} vetoed", target.key, column_name)
                vetoed = True
            else:
                vetoed = False
                if span_enabled:
                    main_index = self._natural.index(target)
                    written.extend(sync_value(self._natural, main_index, column_name))
                if column_model.on_after_change is not None:
                    column_model.on_after_change(change)
                if column_model.editable and not column_model.is_ignore:
                    for written_row, _ in written:
                        if not written_row.is_disabled_check:
                            written_row.checked = True

        if vetoed:
            self._events.emit(
                EventType.RESTORE, RowValueRestored(target.key, column_name, previous, value)
            )
            return False

        for written_row, old_value in written:
            self._events.emit(
                EventType.CHANGE,
                RowValueChanged(written_row.key, column_name, written_row.get(column_name), old_value),
            )
        return True

    def insert(
        self,
        row_data: Any = None,
        *,
        at: int | None = None,
        extend_prev_row_span: bool = False,
    ) -> list[Row]:
        """Insert one row (a mapping) or several (a list) at display index ``at``.

        Args:
            row_data: Row(s) to insert; None inserts one empty row.
            at: Display index to insert at (default: the end).
            extend_prev_row_span: Grow the row span of the row above the
                insertion point even when it ends right there.

        Returns:
            The inserted rows. They start out checked.
        """
        with self._structural("insert"):
            if row_data is None:
                row_data = [self.columns.create_dummy_row()]
            elif isinstance(row_data, Mapping) and "contents" not in row_data:
                row_data = [row_data]
            new_rows = self.format_rows(self.parse(row_data))
            self._check_unique(new_rows, self._by_key)
            for row in new_rows:
                row.checked = True

            display = self.rows
            at = len(display) if at is None else max(0, min(at, len(display)))
            reversed_view = self._display is not None and not self.is_sorted_by_field()
            if self._display is None:
                natural_at = at
                natural_rows = new_rows
            elif reversed_view:
                # Shown above display[at] means stored after it
                natural_at = self._natural.index(display[at]) + 1 if at < len(display) else 0
                natural_rows = list(reversed(new_rows))
            else:
                natural_at = self._natural.index(display[at]) if at < len(display) else len(self._natural)
                natural_rows = new_rows
                self._display[at:at] = new_rows

            self._natural[natural_at:natural_at] = natural_rows
            self._by_key.update((row.key, row) for row in new_rows)
            extend_for_insert(self._natural, natural_at, len(new_rows), extend_prev_row_span)
            if reversed_view:
                self._apply_sort()

        logger.debug("Inserted {} row(s) at {}", len(new_rows), at)
        self._events.emit(EventType.ADD, RowsAdded(tuple(row.key for row in new_rows), at))
        return new_rows

    def append(
        self,
        row_data: Any = None,
        *,
        at: int | None = None,
        extend_prev_row_span: bool = False,
    ) -> list[Row]:
        return self.insert(row_data, at=at, extend_prev_row_span=extend_prev_row_span)

    def prepend(self, row_data: Any = None) -> list[Row]:
        return self.insert(row_data, at=0)

    def remove_row(
        self,
        row_key: Any,
        *,
        remove_original_data: bool = False,
        keep_row_span_data: bool = False,
    ) -> Row | None:
        """Remove a row and shrink the row spans it belonged to.

        Args:
            row_key: Key of the row to remove.
            remove_original_data: Re-baseline afterwards, so the removal is
                not reported as a deletion.
            keep_row_span_data: When removing a block's main row, the next
                row keeps the removed value instead of being cleared.

        Returns:
            The removed row, or None for an unknown key.
        """
        row = self._by_key.get(row_key)
        if row is None:
            return None

        with self._structural("remove_row"):
            kept_values = copy.deepcopy(row.fields) if keep_row_span_data else None
            removed_span = copy.deepcopy(row.span_data)
            index = self._natural.index(row)

            del self._natural[index]
            if self._display is not None:
                self._display.remove(row)
            del self._by_key[row_key]

            shrink_for_remove(self._natural, index, removed_span, kept_values)

            if remove_original_data:
                self.set_original_row_list()

        logger.debug("Removed row {!r}", row_key)
        self._events.emit(EventType.REMOVE, RowsRemoved((row_key,)))
        return row

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    def get_modified_row_list(
        self,
        *,
        only_checked: bool = False,
        raw: bool = False,
        only_row_keys: bool = False,
        ignore_columns: Iterable[str] = (),
    ) -> DiffResult:
        """Rows created, updated and deleted since the pristine copy.

        Columns the schema marks as ignored never count as changes. A merged
        cell is compared on its main row only, whatever the display order.
        A covered cell edited while spans were dormant no longer matches its
        main row and is compared as the row's own.
        """
        ignored = set(ignore_columns) | set(self.columns.ignored_column_names())
        covered: dict[Any, list[str]] = {}
        for row in self._natural:
            columns = [c for c in row.span_data if self._displays_main_value(row, c)]
            if columns:
                covered[row.key] = columns

        return diff_rows(
            self._pristine,
            self.rows,
            only_checked=only_checked,
            only_row_keys=only_row_keys,
            raw=raw,
            ignore_columns=ignored,
            covered_cells=covered,
        )

    def _displays_main_value(self, row: Row, column_name: str) -> bool:
        if not row.is_covered(column_name):
            return False
        main_row = resolve_main_row(self._by_key, row, column_name)
        return main_row is not row and values_equal(row.get(column_name), main_row.get(column_name))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_type: EventType | str, callback: Listener) -> None:
        self._events.on(event_type, callback)

    def off(self, event_type: EventType | str, callback: Listener | None = None) -> None:
        self._events.off(event_type, callback)

    # ------------------------------------------------------------------
    # Mutation guards
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _mutating(self, operation: str) -> Iterator[None]:
        outer = self._active
        self._active = outer or operation
        try:
            with logger.contextualize(operation=self._active):
                yield
        finally:
            self._active = outer

    @contextlib.contextmanager
    def _structural(self, operation: str) -> Iterator[None]:
        if self._active is not None:
            raise ReentrantMutationError(operation, self._active)
        with self._mutating(operation):
            yield


def _parse_row_span(value: Any) -> dict[str, int]:
    if not isinstance(value, Mapping):
        return {}
    row_span: dict[str, int] = {}
    for column_name, count in value.items():
        try:
            row_span[column_name] = int(count)
        except (TypeError, ValueError):
            logger.warning("Ignoring rowSpan {!r} on column '{}'", count, column_name)
    return row_span


def _parse_span_data(value: Any) -> dict[str, SpanData]:
    if not isinstance(value, Mapping):
        return {}
    return {
        column_name: SpanData.from_dict(data)
        for column_name, data in value.items()
        if isinstance(data, Mapping)
    }
