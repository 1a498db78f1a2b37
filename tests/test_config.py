"""Tests for settings."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from extragrid.config import GridSettings, get_settings
from extragrid.row_list import RowList


@pytest.fixture
def clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestGridSettings:
    """Tests for GridSettings."""

    def test_defaults(self, settings: GridSettings) -> None:
        """Test default settings."""
        assert settings.use_client_sort is True
        assert settings.row_key_name == "rowKey"
        assert settings.span_overflow == "clamp"
        assert settings.log_level == "INFO"
        assert settings.json_logs is False

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test EXTRAGRID_ variables override defaults."""
        monkeypatch.setenv("EXTRAGRID_USE_CLIENT_SORT", "false")
        monkeypatch.setenv("EXTRAGRID_SPAN_OVERFLOW", "reject")

        settings = GridSettings(_env_file=None)

        assert settings.use_client_sort is False
        assert settings.span_overflow == "reject"

    def test_get_settings_is_cached(self, clear_settings_cache: None) -> None:
        """Test get_settings returns one instance."""
        assert get_settings() is get_settings()

    def test_row_list_uses_cached_settings(
        self, monkeypatch: pytest.MonkeyPatch, clear_settings_cache: None
    ) -> None:
        """Test a row list without settings reads the cached environment settings."""
        monkeypatch.setenv("EXTRAGRID_ROW_KEY_NAME", "id")

        row_list = RowList([{"a": "x"}])

        assert row_list.get_row_list() == [{"id": 0, "a": "x"}]
        assert row_list.is_row_span_enable()

    def test_explicit_use_client_sort_wins(self, settings: GridSettings) -> None:
        """Test an explicit use_client_sort beats settings."""
        row_list = RowList(settings=settings, use_client_sort=False)

        assert row_list.sort_options.use_client is False
