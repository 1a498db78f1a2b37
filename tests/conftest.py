"""Shared test fixtures for extragrid."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from extragrid.columns import ColumnModelSet
from extragrid.config import GridSettings
from extragrid.row_list import RowList


@pytest.fixture
def settings() -> GridSettings:
    """Settings that ignore the environment and any .env file."""
    return GridSettings(_env_file=None)


@pytest.fixture
def make_row_list(settings: GridSettings) -> Callable[..., RowList]:
    """Factory for row lists over plain columns a, b, c."""

    def factory(data: Any = None, **kwargs: Any) -> RowList:
        kwargs.setdefault("columns", ColumnModelSet.from_names(["a", "b", "c"]))
        kwargs.setdefault("settings", settings)
        return RowList(data, **kwargs)

    return factory

