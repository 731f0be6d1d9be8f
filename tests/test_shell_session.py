"""Tests for the persistent shell session (real shells)."""

import shutil
import sys
import threading
import time
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import pytest

from cora.errors import ConcurrencyError, ConfigurationError, ProcessStartError, ShellIOError
from cora.shell import SENTINEL, Dialect, ShellSession
from cora.shell import session as session_module


requires_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash is not installed")


class TestSessionConfiguration:
    """Test session construction without starting a shell."""

    def test_dialect_inferred_from_process(self):
        session = ShellSession(process_name="/bin/bash")
        assert session.dialect is Dialect.BASH
        assert session.running is False

    def test_default_executable_for_dialect(self):
        session = ShellSession(dialect="powershell")
        assert session.process_name == "powershell.exe"

    def test_unknown_dialect(self):
        with pytest.raises(ConfigurationError):
            ShellSession(dialect="fish")

    def test_missing_dialect_and_process(self):
        """Nothing to launch is a configuration problem, not a spawn failure."""
        with pytest.raises(ConfigurationError):
            ShellSession()

    def test_missing_executable(self):
        """Spawn failures surface as ProcessStartError."""
        with pytest.raises(ProcessStartError):
            ShellSession.create(dialect="bash", process_name="/nonexistent/bash")

    def test_execute_before_start(self):
        session = ShellSession(dialect="bash")
        with pytest.raises(ShellIOError):
            session.execute("echo X")
        assert session.in_flight is False


class TestPipeEncoding:
    """Test the encoding chosen for a shell's pipes."""

    def test_utf8_off_windows(self):
        with patch.object(session_module.sys, "platform", "linux"):
            assert session_module._pipe_encoding(Dialect.CMD) == "utf-8"
            assert session_module._pipe_encoding(Dialect.BASH) == "utf-8"

    def test_cmd_uses_oem_code_page_on_windows(self):
        """cmd.exe writes to pipes in the OEM code page, not the ANSI one."""
        with patch.object(session_module.sys, "platform", "win32"), \
                patch.object(session_module, "_oem_code_page", return_value=850), \
                patch.object(session_module.locale, "getpreferredencoding", return_value="cp1252"):
            assert session_module._pipe_encoding(Dialect.CMD) == "cp850"
            assert session_module._pipe_encoding(Dialect.POWERSHELL) == "cp1252"


@requires_bash
@pytest.mark.integration
class TestBashSession:
    """Test the framing protocol against a real bash."""

    def test_echo(self, bash_session):
        """The first command returns its output and no error."""
        result = bash_session.execute("echo X")
        assert result.output == "X"
        assert result.error == ""
        assert result.has_error is False

    def test_output_never_contains_sentinel(self, bash_session):
        result = bash_session.execute("printf 'a\\nb\\n'; echo c")
        assert SENTINEL not in result.output
        assert result.output == "a\nb\nc"

    def test_output_without_trailing_newline(self, bash_session):
        result = bash_session.execute("printf abc")
        assert result.output == "abc"

    def test_trailing_comment(self, bash_session):
        """A comment at the end of the command does not hide the marker."""
        assert bash_session.execute("echo hi # say hi").output == "hi"
        assert bash_session.execute("echo X").output == "X"

    def test_background_command(self, bash_session):
        """A command ending in & still returns and leaves the stream aligned."""
        bash_session.execute("sleep 0.1 &")
        assert bash_session.execute("echo X").output == "X"

    @pytest.mark.slow
    def test_large_output(self, bash_session):
        """Multi-megabyte output is collected completely."""
        started = time.monotonic()
        result = bash_session.execute("head -c 4000000 /dev/zero | tr '\\0' a | fold -w 99")
        assert len(result.output) == 4000000 + 4000000 // 99
        assert SENTINEL not in result.output
        assert time.monotonic() - started < 30

    def test_stderr_only_command(self, bash_session):
        """A command that only writes to stderr reports has_error."""
        result = bash_session.execute("ls /definitely/not/here")
        assert result.output.strip() == ""
        assert result.error != ""
        assert result.has_error is True

    def test_state_persists_between_commands(self, bash_session, temp_dir):
        """cd and variables survive between commands in the same shell."""
        bash_session.execute("mkdir -p sub && cd sub")
        bash_session.execute("GREETING=hello")
        assert bash_session.execute("pwd").output.endswith("sub")
        assert bash_session.execute("echo $GREETING").output == "hello"

    def test_starts_in_given_directory(self, bash_session, temp_dir):
        assert Path(bash_session.execute("pwd").output).resolve() == Path(temp_dir).resolve()

    def test_reset_loses_shell_state(self, bash_session):
        """After reset the shell works again but earlier state is gone."""
        bash_session.execute("export MARKER_VAR=set")
        bash_session.reset()

        assert bash_session.execute("echo X").output == "X"
        assert bash_session.execute("echo ${MARKER_VAR:-unset}").output == "unset"

    @pytest.mark.slow
    def test_concurrent_execute_rejected(self, bash_session):
        """A second execute while one is in flight fails and does not corrupt the stream."""
        results = {}

        def run_slow():
            results["slow"] = bash_session.execute("sleep 1; echo A")

        worker = threading.Thread(target=run_slow)
        worker.start()

        deadline = time.monotonic() + 5
        while not bash_session.in_flight and time.monotonic() < deadline:
            time.sleep(0.01)

        with pytest.raises(ConcurrencyError):
            bash_session.execute("echo B")
        with pytest.raises(ConcurrencyError):
            bash_session.reset()

        worker.join(timeout=10)
        assert results["slow"].output == "A"
        assert bash_session.execute("echo C").output == "C"

    def test_exit_marks_session_for_reset(self, bash_session):
        """A command that kills the shell raises ShellIOError until reset."""
        with pytest.raises(ShellIOError):
            bash_session.execute("exit 3")
        with pytest.raises(ShellIOError):
            bash_session.execute("echo X")

        bash_session.reset()
        assert bash_session.execute("echo X").output == "X"

    def test_command_timeout_then_reset(self, temp_dir):
        from cora.errors import CommandTimeoutError

        with ShellSession.create(process_name="bash", cwd=temp_dir, command_timeout=0.5) as session:
            with pytest.raises(CommandTimeoutError):
                session.execute("sleep 5")
            session.reset()
            assert session.execute("echo X").output == "X"

    def test_terminate_is_idempotent(self, bash_session):
        bash_session.terminate()
        bash_session.terminate()
        assert bash_session.running is False


@requires_bash
@pytest.mark.integration
class TestPromptSetup:
    """Test the prompt configuration step run when a shell starts."""

    def make_session(self, temp_dir, prompt_setup):
        session = ShellSession(process_name="bash", cwd=temp_dir, stderr_idle_timeout=0.3)
        session.profile = replace(session.profile, prompt_setup=prompt_setup)
        session.executor.profile = session.profile
        return session

    def test_banner_is_discarded(self, temp_dir):
        """Output of the setup step never reaches the first command."""
        session = self.make_session(temp_dir, "echo banner")
        session.start()
        try:
            result = session.execute("echo X")
            assert result.output == "X"
            assert result.error == ""
        finally:
            session.terminate()

    def test_shell_exiting_during_setup(self, temp_dir):
        session = self.make_session(temp_dir, "exit 1")
        with pytest.raises(ProcessStartError):
            session.start()
        assert session.running is False


@pytest.mark.skipif(sys.platform != "win32", reason="cmd.exe and PowerShell need Windows")
@pytest.mark.integration
class TestWindowsShells:
    """Test prompt-based framing on Windows shells."""

    @pytest.mark.parametrize("dialect", ["cmd", "powershell"])
    def test_echo(self, dialect, temp_dir):
        with ShellSession.create(dialect=dialect, cwd=temp_dir) as session:
            result = session.execute("echo X")
            assert "X" in result.output
            assert SENTINEL not in result.output
            assert result.error == ""
