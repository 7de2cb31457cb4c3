"""
Configuration and Error Hierarchy Tests
=======================================
"""

import logging

import pytest

from mathpad_tools.config import SEPARATOR_LINE, ToolConfig
from mathpad_tools.errors import (
    CategoryTableFull,
    DatabaseError,
    DatabaseFormatError,
    DatabaseIOError,
    MathPadError,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("MATHPAD_TEXT_ENCODING", "MATHPAD_DEFAULT_PLACES", "MATHPAD_DEFAULT_STRIP_ZEROS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestToolConfig:
    """Tests for defaults and environment overrides."""

    def test_defaults(self):
        config = ToolConfig()
        assert config.text_encoding == "latin-1"
        assert config.default_places == 14
        assert config.default_strip_zeros is True
        assert config.separator == SEPARATOR_LINE
        assert SEPARATOR_LINE == "~" * 27

    def test_from_env_without_variables(self, clean_env):
        assert ToolConfig.from_env() == ToolConfig()

    def test_from_env(self, clean_env):
        clean_env.setenv("MATHPAD_TEXT_ENCODING", "CP1252")
        clean_env.setenv("MATHPAD_DEFAULT_PLACES", "4")
        clean_env.setenv("MATHPAD_DEFAULT_STRIP_ZEROS", "no")
        config = ToolConfig.from_env()
        assert config.text_encoding == "cp1252"
        assert config.default_places == 4
        assert config.default_strip_zeros is False

    @pytest.mark.parametrize("name, value", [
        ("MATHPAD_TEXT_ENCODING", "klingon"),
        ("MATHPAD_DEFAULT_PLACES", "many"),
        ("MATHPAD_DEFAULT_PLACES", "256"),
    ])
    def test_invalid_values_ignored(self, clean_env, caplog, name, value):
        clean_env.setenv(name, value)
        with caplog.at_level(logging.WARNING):
            assert ToolConfig.from_env() == ToolConfig()
        assert name in caplog.text


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(DatabaseFormatError, DatabaseError)
        assert issubclass(DatabaseIOError, DatabaseError)
        assert issubclass(DatabaseIOError, OSError)
        assert issubclass(DatabaseError, MathPadError)
        assert issubclass(CategoryTableFull, MathPadError)
        assert not issubclass(CategoryTableFull, DatabaseError)

    def test_io_error_message(self):
        error = DatabaseIOError("Error reading database header", 0, 72, 10)
        assert str(error) == "Error reading database header at offset 0 (expected 72 bytes, got 10)"
        assert error.offset == 0

    def test_io_error_without_detail(self):
        assert str(DatabaseIOError("Unterminated record text")) == "Unterminated record text"

    def test_category_table_full(self):
        error = CategoryTableFull("Overflow")
        assert error.name == "Overflow"
        assert "Overflow" in str(error)
