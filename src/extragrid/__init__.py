"""extragrid - In-memory grid data source with row-span bookkeeping.

This library keeps the rows behind a tabular UI: stable row keys, merged
("row-spanned") cells that stay consistent under edits, inserts, removals
and sorting, and a created/updated/deleted diff against a pristine copy.
"""

__version__ = "0.1.0"

from extragrid.columns import ChangeEvent, ColumnModel, ColumnModelSet, ColumnSchema
from extragrid.config import GridSettings, get_settings
from extragrid.diff import DiffResult, diff_rows
from extragrid.events import (
    EventType,
    RowsAdded,
    RowsRemoved,
    RowValueChanged,
    RowValueRestored,
    SortChanged,
)
from extragrid.exceptions import (
    DuplicateRowKeyError,
    GridError,
    InvalidRowDataError,
    ReentrantMutationError,
    RowSpanOverflowError,
)
from extragrid.pristine import Pristine
from extragrid.row import Row, RowState, SpanData
from extragrid.row_list import RowList

__all__ = [
    "ChangeEvent",
    "ColumnModel",
    "ColumnModelSet",
    "ColumnSchema",
    "DiffResult",
    "DuplicateRowKeyError",
    "EventType",
    "GridError",
    "GridSettings",
    "InvalidRowDataError",
    "Pristine",
    "ReentrantMutationError",
    "Row",
    "RowList",
    "RowSpanOverflowError",
    "RowState",
    "RowValueChanged",
    "RowValueRestored",
    "RowsAdded",
    "RowsRemoved",
    "SortChanged",
    "SpanData",
    "__version__",
    "diff_rows",
    "get_settings",
]
