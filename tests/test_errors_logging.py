"""Tests for error handling and logging modules."""

import json
import logging

import pytest

from gifclip.errors import (
    ConfigurationError,
    DialogueNotFoundError,
    ErrorCategory,
    FetchError,
    GifclipError,
    RangeError,
    RangeErrorKind,
    ResourceError,
    SubtitleError,
    TimestampErrorKind,
    TimestampParseError,
    ToolError,
    ToolNotFoundError,
    ValidationError,
    format_error_for_display,
)
from gifclip.logging import (
    ROOT_LOGGER,
    LogConfig,
    LogLevel,
    StructuredFormatter,
    configure_logging,
    get_logger,
    set_verbosity,
    verbosity_from_flags,
)


class TestGifclipError:
    """Tests for the error hierarchy."""

    def test_basic_error(self):
        """Test basic error creation."""
        error = GifclipError("Test error")

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.context == {}
        assert error.category == ErrorCategory.INTERNAL

    def test_error_with_context(self):
        """Test context is shown in str()."""
        error = GifclipError("Test error", context={"key": "value"})
        assert "context: {'key': 'value'}" in str(error)

    @pytest.mark.parametrize(
        "error,category",
        [
            (ValidationError("x"), ErrorCategory.VALIDATION),
            (TimestampParseError("x", TimestampErrorKind.INVALID_FORMAT), ErrorCategory.VALIDATION),
            (RangeError("x", RangeErrorKind.OUT_OF_BOUNDS), ErrorCategory.VALIDATION),
            (ConfigurationError("x"), ErrorCategory.CONFIGURATION),
            (ToolNotFoundError("x"), ErrorCategory.CONFIGURATION),
            (ResourceError("x"), ErrorCategory.RESOURCE),
            (SubtitleError("x"), ErrorCategory.RESOURCE),
            (DialogueNotFoundError("x"), ErrorCategory.RESOURCE),
            (FetchError("x"), ErrorCategory.EXTERNAL),
            (ToolError("x"), ErrorCategory.EXTERNAL),
        ],
    )
    def test_categories(self, error, category):
        """Test every domain error maps to a category."""
        assert error.category == category
        assert isinstance(error, GifclipError)

    def test_timestamp_messages(self):
        """Test format and value errors read differently."""
        fmt = TimestampParseError("abc", TimestampErrorKind.INVALID_FORMAT)
        value = TimestampParseError("1:60", TimestampErrorKind.INVALID_VALUE, "seconds must be below 60")

        assert "Invalid timestamp format: 'abc'" in str(fmt)
        assert str(value) == "Invalid timestamp value: '1:60' (seconds must be below 60)"


class TestFormatErrorForDisplay:
    """Tests for terminal error formatting."""

    def test_category_and_context(self):
        """Test category prefix and context suffix."""
        error = FetchError("HTTP 404 fetching x", {"url": "x"})
        assert format_error_for_display(error) == "[external] HTTP 404 fetching x (url=x)"

    def test_cause_chain(self):
        """Test the __cause__ chain is listed."""
        try:
            try:
                raise OSError("connection reset")
            except OSError as e:
                raise FetchError("Failed to fetch x") from e
        except FetchError as error:
            text = format_error_for_display(error)

        assert text.splitlines() == [
            "[external] Failed to fetch x",
            "  caused by: OSError: connection reset",
        ]

    def test_foreign_exception(self):
        """Test non-gifclip errors still render."""
        assert format_error_for_display(KeyError("k")) == "[error] KeyError: 'k'"


class TestStructuredFormatter:
    """Tests for the log formatter."""

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="gifclip.test",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Skipping block %d",
            args=(3,),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_text_format(self):
        """Test plain text output with context."""
        formatter = StructuredFormatter(include_timestamp=False, color=False)
        output = formatter.format(self.make_record(block=3))

        assert "WARNI" in output
        assert "gifclip.test" in output
        assert "Skipping block 3" in output
        assert output.endswith("[block=3]")

    def test_json_format(self):
        """Test JSON output with context."""
        formatter = StructuredFormatter(json_format=True, include_timestamp=False)
        data = json.loads(formatter.format(self.make_record(block=3, path=object())))

        assert data["level"] == "warning"
        assert data["message"] == "Skipping block 3"
        assert data["context"]["block"] == 3
        assert isinstance(data["context"]["path"], str)
        assert "timestamp" not in data


class TestConfigureLogging:
    """Tests for logger configuration."""

    def test_get_logger_prefix(self):
        """Test loggers live under the gifclip hierarchy."""
        assert get_logger("parser").name == "gifclip.parser"
        assert get_logger("gifclip.clip").name == "gifclip.clip"

    @pytest.mark.parametrize(
        "verbose,quiet,expected",
        [
            (0, False, LogLevel.NORMAL),
            (1, False, LogLevel.VERBOSE),
            (2, False, LogLevel.DEBUG),
            (5, False, LogLevel.DEBUG),
            (2, True, LogLevel.QUIET),
        ],
    )
    def test_verbosity_from_flags(self, verbose, quiet, expected):
        """Test CLI flags map to levels."""
        assert verbosity_from_flags(verbose, quiet) == expected

    def test_levels(self):
        """Test handler levels follow the verbosity."""
        configure_logging(LogConfig(level=LogLevel.VERBOSE))
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

        set_verbosity(LogLevel.QUIET)
        assert root.level == logging.ERROR

    def test_file_logging(self, tmp_path):
        """Test the log file receives debug records."""
        log_file = tmp_path / "logs" / "gifclip.log"
        configure_logging(LogConfig(level=LogLevel.QUIET, log_file=log_file))

        get_logger("test").debug("detail", extra={"step": "probe"})
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "detail" in content
        assert "[step=probe]" in content
