"""
Persistent shell session for CORA.

One long-lived child shell is kept open for the whole assistant session, so
working directory changes and variables survive between commands. Output
is read by daemon threads that feed queues; the executor consumes those
queues to find command boundaries.
"""

import codecs
import locale
import logging
import os
import queue
import signal
import subprocess
import sys
import threading
from typing import Optional, Union

from ..errors import ConcurrencyError, ConfigurationError, ProcessStartError, ShellIOError
from .executor import CommandExecutor, CommandResult, DEFAULT_STDERR_IDLE_TIMEOUT
from .profiles import SENTINEL, Dialect, ShellProfile, dialect_for_process, get_profile

logger = logging.getLogger(__name__)


def _oem_code_page() -> int:
    import ctypes
    return ctypes.windll.kernel32.GetOEMCP()


def _pipe_encoding(dialect: Optional[Dialect] = None) -> str:
    """Encoding of a shell's pipes: cmd.exe writes in the console OEM code page."""
    if sys.platform == "win32":
        if dialect is Dialect.CMD:
            return f"cp{_oem_code_page()}"
        return locale.getpreferredencoding(False)
    return "utf-8"


class PipeReader:
    """
    Pumps one output pipe into a queue from a daemon thread.

    Chunks are decoded text; None is queued once the pipe reaches EOF.
    """

    CHUNK_SIZE = 4096

    def __init__(self, stream, name: str, encoding: Optional[str] = None):
        self.name = name
        self._stream = stream
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._decoder = codecs.getincrementaldecoder(encoding or _pipe_encoding())(errors="replace")
        self._eof = False
        self._thread = threading.Thread(
            target=self._pump, name=f"cora-{name}-reader", daemon=True
        )
        self._thread.start()

    def _pump(self) -> None:
        try:
            while True:
                data = self._stream.read(self.CHUNK_SIZE)
                if not data:
                    break
                text = self._decoder.decode(data)
                if text:
                    self._queue.put(text)
        except (ValueError, OSError):
            # Pipe closed or process killed
            pass
        finally:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self._queue.put(tail)
            self._queue.put(None)

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Get the next chunk of text.

        Returns None at EOF (and on every call after it).

        Raises:
            queue.Empty: If nothing arrives within timeout
        """
        if self._eof:
            return None
        chunk = self._queue.get(timeout=timeout)
        if chunk is None:
            self._eof = True
        return chunk

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout=timeout)


class ShellProcess:
    """A running shell child process and its pipe readers."""

    def __init__(self, popen: subprocess.Popen, encoding: Optional[str] = None):
        self.popen = popen
        self.encoding = encoding or _pipe_encoding()
        self.stdout_reader = PipeReader(popen.stdout, "stdout", self.encoding)
        self.stderr_reader = PipeReader(popen.stderr, "stderr", self.encoding)

    @classmethod
    def spawn(
        cls,
        process_name: str,
        arguments=(),
        cwd: Optional[str] = None,
        encoding: Optional[str] = None,
    ) -> "ShellProcess":
        """
        Start a shell with all three standard streams redirected.

        Raises:
            ProcessStartError: If the operating system cannot start it
        """
        kwargs = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
        else:
            # Own process group, so children of a hung command die with the shell
            kwargs["start_new_session"] = True

        try:
            popen = subprocess.Popen(
                [process_name, *arguments],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd or os.getcwd(),
                bufsize=0,
                **kwargs
            )
        except OSError as e:
            raise ProcessStartError(
                f"Failed to start {process_name}: {e}",
                user_message=f"Could not start the shell '{process_name}'.",
                suggested_action="Check shell.process_name in your configuration.",
            ) from e

        logger.info("Started shell %s (pid %s)", process_name, popen.pid)
        return cls(popen, encoding)

    @property
    def pid(self) -> int:
        return self.popen.pid

    @property
    def alive(self) -> bool:
        return self.popen.poll() is None

    def write(self, text: str) -> None:
        """
        Write text to the shell's stdin and flush it.

        Raises:
            ShellIOError: If stdin is closed or the shell has exited
        """
        try:
            self.popen.stdin.write(text.encode(self.encoding))
            self.popen.stdin.flush()
        except (BrokenPipeError, OSError, ValueError) as e:
            raise ShellIOError(
                f"Failed to write to shell stdin: {e}",
                user_message="The shell is no longer accepting commands.",
            ) from e

    def _kill(self) -> None:
        if sys.platform != "win32":
            try:
                os.killpg(os.getpgid(self.popen.pid), signal.SIGKILL)
                return
            except (ProcessLookupError, PermissionError, OSError):
                pass
        self.popen.kill()

    def close(self) -> None:
        """Kill the shell and release its pipes. Failures are ignored."""
        try:
            if self.alive:
                self._kill()
            self.popen.wait(timeout=5)
        except (ProcessLookupError, OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Error stopping shell %s: %s", self.pid, e)

        try:
            self.popen.stdin.close()
        except OSError:
            pass

        # Readers stop at EOF once every writer of the pipes is gone
        self.stdout_reader.join(timeout=1)
        self.stderr_reader.join(timeout=1)

        for stream in (self.popen.stdout, self.popen.stderr):
            try:
                stream.close()
            except OSError:
                pass

        logger.info("Shell %s stopped", self.pid)

    def __enter__(self) -> "ShellProcess":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ShellSession:
    """
    A persistent shell that executes commands one at a time.

    Usage:
        with ShellSession.create(process_name="bash") as shell:
            result = shell.execute("cd /tmp && pwd")
    """

    def __init__(
        self,
        dialect: Union[Dialect, str, None] = None,
        process_name: Optional[str] = None,
        sentinel: str = SENTINEL,
        stderr_idle_timeout: float = DEFAULT_STDERR_IDLE_TIMEOUT,
        command_timeout: Optional[float] = None,
        cwd: Optional[str] = None,
    ):
        """
        Configure a session. The shell is not started until start().

        Args:
            dialect: Shell dialect; inferred from process_name when omitted
            process_name: Executable to launch; the dialect's default when omitted
            sentinel: Token marking the end of a command's stdout
            stderr_idle_timeout: Seconds of stderr silence ending a command
            command_timeout: Seconds to wait for a command; None waits forever
            cwd: Starting directory (the current directory by default)

        Raises:
            ConfigurationError: If neither dialect nor process_name is given,
                or the dialect is unknown
        """
        if dialect is None:
            if not process_name:
                raise ConfigurationError("Either a dialect or a process name is required")
            dialect = dialect_for_process(process_name)

        self.profile: ShellProfile = get_profile(dialect, sentinel)
        self.process_name = process_name or self.profile.executable
        self.sentinel = sentinel
        self.cwd = cwd
        self.executor = CommandExecutor(
            self.profile,
            sentinel,
            stderr_idle_timeout=stderr_idle_timeout,
            command_timeout=command_timeout,
        )

        self._process: Optional[ShellProcess] = None
        self._guard = threading.Lock()
        self._out_of_sync = False

    @classmethod
    def create(cls, dialect=None, process_name: Optional[str] = None, **kwargs) -> "ShellSession":
        """Create a session and start its shell."""
        session = cls(dialect=dialect, process_name=process_name, **kwargs)
        session.start()
        return session

    @property
    def dialect(self) -> Dialect:
        return self.profile.dialect

    @property
    def in_flight(self) -> bool:
        """Whether a command is executing right now."""
        return self._guard.locked()

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.alive

    def start(self) -> None:
        """
        Spawn the shell and install the prompt marker.

        Raises:
            ProcessStartError: If the shell cannot be started or configured
        """
        process = ShellProcess.spawn(
            self.process_name,
            self.profile.arguments,
            cwd=self.cwd,
            encoding=_pipe_encoding(self.dialect),
        )

        if self.profile.prompt_setup:
            try:
                setup = self.executor.run(process, self.profile.prompt_setup)
            except ShellIOError as e:
                process.close()
                raise ProcessStartError(
                    f"Shell exited while configuring its prompt: {e}",
                    user_message=f"The shell '{self.process_name}' could not be configured.",
                ) from e
            logger.debug("Prompt configured; discarded %d chars of banner", len(setup.output))

        self._process = process
        self._out_of_sync = False

    def execute(self, command: str) -> CommandResult:
        """
        Run one command in the persistent shell.

        Raises:
            ConcurrencyError: If another command is already executing
            ShellIOError: If the shell is gone or needs a reset
            CommandTimeoutError: If the command does not finish in time
        """
        if not self._guard.acquire(blocking=False):
            raise ConcurrencyError()

        try:
            if self._process is None:
                raise ShellIOError("Shell is not running", user_message="The shell is not running.")
            if self._out_of_sync:
                raise ShellIOError(
                    "Shell output is out of sync after an interrupted command",
                    user_message="The shell must be reset before running more commands.",
                )

            try:
                return self.executor.run(self._process, command)
            except BaseException:
                # Unread output may belong to this command; later reads would be misaligned
                self._out_of_sync = True
                raise
        finally:
            self._guard.release()

    def reset(self) -> None:
        """
        Replace the shell with a freshly started one.

        Working directory and environment changes are lost.

        Raises:
            ConcurrencyError: If a command is currently executing
            ProcessStartError: If the new shell cannot be started
        """
        if not self._guard.acquire(blocking=False):
            raise ConcurrencyError("Cannot reset the shell while a command is executing")

        try:
            logger.info("Resetting shell %s", self.process_name)
            self._discard_process()
            self.start()
        finally:
            self._guard.release()

    def terminate(self) -> None:
        """Stop the shell. Safe to call more than once."""
        self._discard_process()

    def _discard_process(self) -> None:
        process, self._process = self._process, None
        if process is not None:
            process.close()

    def __enter__(self) -> "ShellSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.terminate()
