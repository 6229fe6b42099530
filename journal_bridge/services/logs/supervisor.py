"""
Stream process supervisor.

Launches the log-tailing subprocess, exposes its stdout as an async line
sequence and guarantees the process is terminated and reaped.
"""

import asyncio
from collections import deque
from typing import AsyncIterator, Optional, Sequence

from journal_bridge.core.exceptions import (
    LaunchError,
    ProcessExitError,
    ProcessTimeoutError,
    StreamIOError,
)
from journal_bridge.core.logging import logger


DEFAULT_TERMINATE_TIMEOUT = 5.0
DEFAULT_MAX_LINE_BYTES = 1024 * 1024
STDERR_TAIL_LINES = 20


class ProcessStream:
    """
    A running log process and its cancel signal.

    ``lines()`` ends quietly once ``cancel()`` is called or stdout reaches
    EOF. ``terminate()`` asks the process to stop, escalates to SIGKILL after
    ``terminate_timeout`` and always waits for the exit status.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        name: str,
        terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT
    ):
        self.process = process
        self.name = name
        self.terminate_timeout = terminate_timeout
        self._cancelled = asyncio.Event()
        self._terminate_lock = asyncio.Lock()
        self._stderr_tail: deque = deque(maxlen=STDERR_TAIL_LINES)
        self._stderr_task: Optional[asyncio.Task] = None
        if process.stderr is not None:
            self._stderr_task = asyncio.create_task(self._drain_stderr())

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def cancel_signal(self) -> asyncio.Event:
        return self._cancelled

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def stderr_tail(self) -> str:
        return "\n".join(self._stderr_tail)

    def cancel(self) -> None:
        """Signal cancellation; the line sequence stops at the next step."""
        self._cancelled.set()

    async def lines(self) -> AsyncIterator[str]:
        """
        Yield stdout lines without their trailing newline.

        Raises:
            StreamIOError: If a line exceeds the reader limit
            ProcessExitError: If the process exited non-zero on its own
        """
        stdout = self.process.stdout
        cancel_wait = asyncio.ensure_future(self._cancelled.wait())
        read = None
        try:
            while not self._cancelled.is_set():
                read = asyncio.ensure_future(stdout.readline())
                done, _ = await asyncio.wait(
                    {read, cancel_wait},
                    return_when=asyncio.FIRST_COMPLETED
                )
                if read not in done:
                    return

                try:
                    raw = read.result()
                except ValueError as e:
                    raise StreamIOError(f"Unreadable output from {self.name}: {e}")
                finally:
                    read = None

                if not raw:
                    break

                yield raw.decode("utf-8", errors="replace").rstrip("\r\n")
        finally:
            if read is not None:
                read.cancel()
            cancel_wait.cancel()

        if self._cancelled.is_set():
            return

        # EOF without cancellation: the process finished on its own
        returncode = await self.process.wait()
        await self._finish_stderr()
        logger.info(f"{self.name} (pid {self.pid}) exited with status {returncode}")
        if returncode != 0:
            raise ProcessExitError(returncode, self.stderr_tail)

    async def terminate(self) -> None:
        """Cancel, stop the process and reap it. Safe to call repeatedly."""
        self.cancel()
        async with self._terminate_lock:
            if self.process.returncode is None:
                try:
                    self.process.terminate()
                except ProcessLookupError:
                    pass

                try:
                    await asyncio.wait_for(self.process.wait(), timeout=self.terminate_timeout)
                except asyncio.TimeoutError:
                    error = ProcessTimeoutError(self.pid, self.terminate_timeout)
                    logger.warning(f"{error.message}, sending SIGKILL")
                    try:
                        self.process.kill()
                    except ProcessLookupError:
                        pass
                    await self.process.wait()

                logger.info(f"{self.name} (pid {self.pid}) stopped with status {self.process.returncode}")

            await self._finish_stdout()
            await self._finish_stderr()

    async def _drain_stderr(self) -> None:
        stderr = self.process.stderr
        while True:
            try:
                raw = await stderr.readline()
            except ValueError:
                # Over-long stderr line; the reader has discarded it
                continue
            if not raw:
                return
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                self._stderr_tail.append(line)
                logger.debug(f"{self.name} stderr: {line}")

    async def _finish_stdout(self) -> None:
        """Discard unread output so the pipe reaches EOF and its transport closes."""
        stdout = self.process.stdout
        if stdout is None or stdout.at_eof():
            return
        try:
            discarded = await asyncio.wait_for(stdout.read(), timeout=1.0)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name} (pid {self.pid}) stdout still open after exit")
            return
        except RuntimeError:
            # A line reader is still waiting on the pipe and will reach EOF itself
            return
        if discarded:
            logger.debug(f"Discarded {len(discarded)} unread bytes from {self.name}")

    async def _finish_stderr(self) -> None:
        if self._stderr_task is None or self._stderr_task.done():
            return
        try:
            # A lingering grandchild may hold stderr open; do not wait on it forever
            await asyncio.wait_for(asyncio.shield(self._stderr_task), timeout=1.0)
        except asyncio.TimeoutError:
            self._stderr_task.cancel()

    async def __aenter__(self) -> "ProcessStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.terminate()


class JournalSupervisor:
    """
    Starts log-tailing processes.

    Holds no per-session state; every ``start()`` returns an independent
    ``ProcessStream`` owned by the caller.
    """

    def __init__(
        self,
        command: Sequence[str] = ("journalctl",),
        terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
    ):
        """
        Args:
            command: Executable (and any fixed leading arguments)
            terminate_timeout: Seconds between SIGTERM and SIGKILL
            max_line_bytes: Longest stdout line accepted from the process
        """
        self.command = list(command)
        self.terminate_timeout = terminate_timeout
        self.max_line_bytes = max_line_bytes

    @property
    def name(self) -> str:
        return self.command[0]

    async def start(self, args: Sequence[str]) -> ProcessStream:
        """
        Launch the process with the given arguments.

        Raises:
            LaunchError: If the process could not be started
        """
        argv = [*self.command, *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self.max_line_bytes
            )
        except (OSError, ValueError) as e:
            raise LaunchError(self.name, str(e))

        logger.info(f"Started {self.name} (pid {process.pid}) with args: {' '.join(args)}")
        return ProcessStream(process, self.name, self.terminate_timeout)
