"""Tests for error handling module."""

import pytest

from cora.errors import (
    CommandTimeoutError,
    ConcurrencyError,
    ConfigurationError,
    CoraError,
    ErrorBoundary,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    FileOperationError,
    ModelError,
    ProcessStartError,
    ShellIOError,
    format_error_for_log,
    format_error_for_user,
)


class TestErrorHierarchy:
    """Test the CoraError subclasses."""

    @pytest.mark.parametrize("error_cls,category,recoverable", [
        (ConfigurationError, ErrorCategory.CONFIGURATION, False),
        (ProcessStartError, ErrorCategory.PROCESS, False),
        (ShellIOError, ErrorCategory.PROCESS, True),
        (CommandTimeoutError, ErrorCategory.PROTOCOL, True),
        (ModelError, ErrorCategory.MODEL, True),
        (FileOperationError, ErrorCategory.FILE_SYSTEM, True),
    ])
    def test_categories(self, error_cls, category, recoverable):
        error = error_cls("boom")
        assert isinstance(error, CoraError)
        assert error.category == category
        assert error.recoverable is recoverable
        assert error.user_message == "boom"

    def test_concurrency_error_default_message(self):
        error = ConcurrencyError()
        assert str(error) == "Cannot execute a command while another command is executing"
        assert error.category == ErrorCategory.INTERNAL

    def test_shell_errors_suggest_recovery(self):
        assert "/reset" in ShellIOError("gone").suggested_action
        assert "restarted" in CommandTimeoutError("slow").suggested_action

    def test_overrides(self):
        """Keyword arguments override the subclass defaults."""
        error = ModelError("raw", user_message="Friendly", severity=ErrorSeverity.HIGH)
        assert str(error) == "raw"
        assert error.user_message == "Friendly"
        assert error.severity == ErrorSeverity.HIGH


class TestErrorBoundary:
    """Test ErrorBoundary."""

    def test_no_error(self):
        with ErrorBoundary("noop") as boundary:
            pass
        assert boundary.has_error is False

    def test_catches_cora_error(self):
        """CoraError details are carried into the context."""
        with ErrorBoundary("run") as boundary:
            raise ShellIOError("broken pipe", user_message="Shell died")

        ctx = boundary.error_context
        assert ctx.operation == "run"
        assert ctx.user_message == "Shell died"
        assert ctx.technical_message == "ShellIOError: broken pipe"
        assert ctx.category == ErrorCategory.PROCESS
        assert isinstance(ctx.original_exception, ShellIOError)

    def test_default_category(self):
        with ErrorBoundary("x", default_category=ErrorCategory.INTERNAL) as boundary:
            raise TypeError("bad action")
        assert boundary.error_context.category == ErrorCategory.INTERNAL
        assert boundary.error_context.user_message == "bad action"

    def test_keyboard_interrupt_is_user_input(self):
        with ErrorBoundary("x") as boundary:
            raise KeyboardInterrupt
        assert boundary.error_context.category == ErrorCategory.USER_INPUT
        assert boundary.error_context.original_exception is None

    def test_system_exit_propagates(self):
        with pytest.raises(SystemExit):
            with ErrorBoundary("x"):
                raise SystemExit(1)

    def test_file_not_found_names_the_file(self):
        with ErrorBoundary("x") as boundary:
            raise FileNotFoundError(2, "missing", "a.txt")
        assert boundary.error_context.user_message == "File not found: a.txt"
        assert boundary.error_context.category == ErrorCategory.FILE_SYSTEM

    def test_technical_details(self):
        with ErrorBoundary("x", show_technical_details=True) as boundary:
            raise ValueError("oops")
        assert "Traceback" in boundary.error_context.traceback_str


class TestFormatting:
    """Test error formatting helpers."""

    def make_context(self, **kwargs):
        values = dict(
            category=ErrorCategory.PROCESS,
            severity=ErrorSeverity.HIGH,
            operation="execute",
            user_message="The shell stopped.",
            technical_message="BrokenPipeError: [Errno 32]",
        )
        values.update(kwargs)
        return ErrorContext(**values)

    def test_format_for_user(self):
        text = format_error_for_user(self.make_context(suggested_action="Use /reset."))
        assert text == "The shell stopped.\nSuggestion: Use /reset."

    def test_format_for_log(self):
        text = format_error_for_log(self.make_context())
        assert text.startswith("[HIGH] process: execute")
        assert "BrokenPipeError" in text
