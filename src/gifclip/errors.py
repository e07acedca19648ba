"""Error taxonomy for gifclip.

Every failure that reaches the command line is a ``GifclipError``. The
core never retries: errors bubble up to the invocation boundary, where
``format_error_for_display`` turns them (and their ``__cause__`` chain)
into a single human-readable message.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Categories of errors for display and exit handling."""

    VALIDATION = "validation"  # Bad user input
    CONFIGURATION = "configuration"  # Bad settings or missing tools
    RESOURCE = "resource"  # Missing file, subtitles, dialogue
    EXTERNAL = "external"  # Network or external tool failure
    INTERNAL = "internal"  # Bug in code


class GifclipError(Exception):
    """Base exception for gifclip errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class ValidationError(GifclipError):
    """Invalid user input."""

    category = ErrorCategory.VALIDATION


class ConfigurationError(GifclipError):
    """Invalid settings file or unusable configuration."""

    category = ErrorCategory.CONFIGURATION


class ResourceError(GifclipError):
    """A required resource (file, subtitles) is unavailable."""

    category = ErrorCategory.RESOURCE


class ExternalServiceError(GifclipError):
    """An external service or tool failed."""

    category = ErrorCategory.EXTERNAL


class TimestampErrorKind(str, Enum):
    INVALID_FORMAT = "invalid_format"
    INVALID_VALUE = "invalid_value"


class TimestampParseError(ValidationError):
    """A time literal could not be parsed.

    Attributes:
        literal: The offending input
        kind: Whether the shape or a numeric component was wrong
    """

    def __init__(self, literal: str, kind: TimestampErrorKind, reason: str = ""):
        if kind == TimestampErrorKind.INVALID_FORMAT:
            message = (
                f"Invalid timestamp format: {literal!r}. "
                "Use SS, MM:SS or HH:MM:SS (fractional seconds allowed)"
            )
        else:
            message = f"Invalid timestamp value: {literal!r}"
            if reason:
                message += f" ({reason})"
        super().__init__(message)
        self.literal = literal
        self.kind = kind


class SubtitleErrorKind(str, Enum):
    EMPTY = "empty"


class SubtitleError(ResourceError):
    """A subtitle track is empty or cannot be parsed."""

    def __init__(
        self,
        message: str,
        kind: SubtitleErrorKind = SubtitleErrorKind.EMPTY,
        source: str | None = None,
    ):
        super().__init__(message, {"source": source} if source else None)
        self.kind = kind
        self.source = source


class FetchError(ExternalServiceError):
    """Fetching or reading a remote/local resource failed.

    Distinct from "absent": a network failure is never treated as
    "no subtitles".
    """


class DialogueNotFoundError(ResourceError):
    """A quoted line of dialogue matched no subtitle cue.

    Attributes:
        phrase: The exact phrase that failed to match
    """

    def __init__(self, phrase: str):
        super().__init__(f'Could not find dialogue: "{phrase}"')
        self.phrase = phrase


class RangeErrorKind(str, Enum):
    EMPTY_OR_NEGATIVE = "empty_or_negative"
    OUT_OF_BOUNDS = "out_of_bounds"


class RangeError(ValidationError):
    """The resolved clip range is unusable."""

    def __init__(self, message: str, kind: RangeErrorKind, context: dict | None = None):
        super().__init__(message, context)
        self.kind = kind


class ToolNotFoundError(ConfigurationError):
    """A required external executable (ffmpeg, ffprobe) is missing."""


class ToolError(ExternalServiceError):
    """An external tool ran but failed."""


def format_error_for_display(error: BaseException) -> str:
    """Format an error and its cause chain for the terminal.

    Args:
        error: Error to format

    Returns:
        Human-readable, possibly multi-line message
    """
    if isinstance(error, GifclipError):
        text = f"[{error.category.value}] {error.message}"
        if error.context:
            context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
            text += f" ({context_str})"
    else:
        text = f"[error] {type(error).__name__}: {error}"

    cause = error.__cause__
    seen = {id(error)}
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        text += f"\n  caused by: {type(cause).__name__}: {cause}"
        cause = cause.__cause__

    return text
