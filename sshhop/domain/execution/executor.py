"""
Remote command execution over an exec channel
"""
import codecs
import socket
import threading
import time
from typing import Callable, Optional

import paramiko

from ...core.constants import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_CHUNK_SIZE,
    EXIT_STATUS_UNSET,
    PARAMIKO_NO_EXIT_STATUS,
)
from ...core.exceptions import ExecutionError, ExecutionInterruptedError
from ...core.logging import get_logger
from ...core.session import SessionHandle
from .models import ExecutionResult

logger = get_logger(__name__)

OutputSink = Callable[[str], None]


def _log_stdout(text: str) -> None:
    logger.info(f"\n{text}")


def _log_stderr(text: str) -> None:
    logger.warning(f"\n{text}")


class _StreamDrain:
    """Reads whatever one channel stream has buffered and forwards it"""

    def __init__(
        self,
        ready: Callable[[], bool],
        recv: Callable[[int], bytes],
        sink: OutputSink,
        chunk_size: int,
    ):
        self.ready = ready
        self.recv = recv
        self.sink = sink
        self.chunk_size = chunk_size
        # chunks may split multi-byte characters
        self.decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def drain(self) -> int:
        """Forward buffered bytes without blocking. Returns bytes read."""
        total = 0
        while self.ready():
            data = self.recv(self.chunk_size)
            if not data:
                break
            total += len(data)
            text = self.decoder.decode(data)
            if text:
                self.sink(text)
        return total

    def flush(self) -> None:
        text = self.decoder.decode(b"", final=True)
        if text:
            self.sink(text)


class CommandExecutor:
    """
    Runs one command per exec channel and polls it to completion.

    The loop drains buffered stdout/stderr, checks whether the remote side
    has finished, and otherwise sleeps `poll_interval` seconds. There is no
    deadline unless `timeout` is given; a hung remote command blocks the
    caller. `cancel_event` aborts the sleep between polls.
    """

    def __init__(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        stdout_sink: Optional[OutputSink] = None,
        stderr_sink: Optional[OutputSink] = None,
    ):
        self.poll_interval = poll_interval
        self.chunk_size = chunk_size
        self.stdout_sink = stdout_sink or _log_stdout
        self.stderr_sink = stderr_sink or _log_stderr

    def execute(
        self,
        session: SessionHandle,
        command: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        stdout_sink: Optional[OutputSink] = None,
        stderr_sink: Optional[OutputSink] = None,
    ) -> ExecutionResult:
        """
        Execute `command` on `session` and wait for it to finish.

        Args:
            session: Active session handle
            command: Command line passed verbatim to the remote shell
            timeout: Seconds to wait before giving up (None waits forever)
            cancel_event: Set from another thread to abort waiting
            stdout_sink: Overrides the executor's stdout sink for this call
            stderr_sink: Overrides the executor's stderr sink for this call

        Returns:
            ExecutionResult with the remote exit status

        Raises:
            NotConnectedError: If the session is gone
            ExecutionError: If the exec channel fails before an exit status
                is observed
            ExecutionInterruptedError: On timeout or cancellation
        """
        exit_status = EXIT_STATUS_UNSET
        channel = None
        deadline = None if timeout is None else time.monotonic() + timeout
        wait = cancel_event.wait if cancel_event is not None else time.sleep

        logger.debug(f"Executing on {session.address}: {command}")
        try:
            channel = session.open_exec_channel()
            channel.exec_command(command)
            # no stdin for the remote command
            channel.shutdown_write()

            stdout = _StreamDrain(
                channel.recv_ready,
                channel.recv,
                stdout_sink or self.stdout_sink,
                self.chunk_size,
            )
            stderr = _StreamDrain(
                channel.recv_stderr_ready,
                channel.recv_stderr,
                stderr_sink or self.stderr_sink,
                self.chunk_size,
            )

            while True:
                stdout.drain()
                stderr.drain()

                if channel.exit_status_ready():
                    # output buffered after the close notice
                    while stdout.drain() or stderr.drain():
                        pass
                    stdout.flush()
                    stderr.flush()
                    status = channel.recv_exit_status()
                    if status != PARAMIKO_NO_EXIT_STATUS:
                        exit_status = status
                    break

                if cancel_event is not None and cancel_event.is_set():
                    raise ExecutionInterruptedError(
                        f"Command cancelled: {command}", exit_status
                    )
                if deadline is not None and time.monotonic() >= deadline:
                    raise ExecutionInterruptedError(
                        f"Command timed out after {timeout}s: {command}", exit_status
                    )

                delay = self.poll_interval
                if deadline is not None:
                    delay = max(0.0, min(delay, deadline - time.monotonic()))
                wait(delay)

        except (paramiko.SSHException, socket.error, EOFError) as e:
            raise ExecutionError(
                f"Failed to execute command on {session.address}: {e}", exit_status
            ) from e
        finally:
            if channel is not None:
                channel.close()

        logger.info(f"Exit status: {exit_status}")
        return ExecutionResult(command=command, exit_status=exit_status)
