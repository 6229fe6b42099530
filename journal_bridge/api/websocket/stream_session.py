"""
Journal stream session.

Binds one WebSocket connection to one journalctl process: every output
line becomes one text message, and whichever side stops first (client,
process or a failed send) tears the other down.
"""

import asyncio
import uuid
from enum import Enum
from typing import Optional, Tuple

from fastapi import WebSocket

from journal_bridge.core.exceptions import LaunchError, ProcessExitError, StreamIOError
from journal_bridge.core.logging import logger
from journal_bridge.core.logging_config import current_session_id
from journal_bridge.services.logs import (
    JournalSupervisor,
    ProcessStream,
    StreamRequest,
    build_filter_args,
)


# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_INTERNAL_ERROR = 1011
CLOSE_TRY_AGAIN_LATER = 1013

# Close reasons are limited to 123 bytes on the wire
MAX_REASON_LENGTH = 120


class SessionState(Enum):
    """Stream session states"""
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSING = "closing"
    CLOSED = "closed"


VALID_TRANSITIONS = {
    SessionState.CONNECTING: [
        SessionState.STREAMING,
        SessionState.CLOSING,
        SessionState.CLOSED
    ],
    SessionState.STREAMING: [
        SessionState.CLOSING,
        SessionState.CLOSED
    ],
    SessionState.CLOSING: [SessionState.CLOSED],
    SessionState.CLOSED: []  # Terminal state
}


class StreamSession:
    """
    One client connection streaming one journalctl process.

    The process's cancel signal is shared by the two activities of a
    session: the pump reading process output, and the watcher reading
    client frames. Either one sets it when it stops, which ends the other.
    """

    def __init__(
        self,
        websocket: WebSocket,
        supervisor: JournalSupervisor,
        request: StreamRequest,
        backlog_lines: int = 100,
        write_timeout: float = 10.0,
        session_id: Optional[str] = None
    ):
        self.websocket = websocket
        self.supervisor = supervisor
        self.request = request
        self.backlog_lines = backlog_lines
        self.write_timeout = write_timeout
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.stream: Optional[ProcessStream] = None
        self.close_code: Optional[int] = None
        self.close_reason = ""
        self.lines_sent = 0
        self._state = SessionState.CONNECTING
        self._client_closed = False

    @property
    def state(self) -> SessionState:
        """Get current session state"""
        return self._state

    @property
    def cancel_signal(self) -> Optional[asyncio.Event]:
        return self.stream.cancel_signal if self.stream else None

    def set_state(self, new_state: SessionState) -> None:
        """
        Set session state with validation

        Args:
            new_state: New state to transition to

        Raises:
            ValueError: If the transition is not allowed
        """
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise ValueError(
                f"Invalid state transition from {self._state.value} to {new_state.value}"
            )
        old_state = self._state
        self._state = new_state
        logger.debug(f"Session state transition: {old_state.value} -> {new_state.value}")

    async def run(self) -> None:
        """Accept the connection and stream until either side stops."""
        current_session_id.set(self.session_id)
        await self.websocket.accept()
        logger.info(
            f"Stream session opened for {len(self.request.selected_services)} service(s) "
            f"({self.request.scope_mode.value} scope)"
        )

        args = build_filter_args(self.request, self.backlog_lines)
        try:
            self.stream = await self.supervisor.start(args)
        except LaunchError as e:
            logger.error(f"Could not open journal stream: {e.message}")
            self.set_state(SessionState.CLOSING)
            await self._close_websocket(CLOSE_INTERNAL_ERROR, "failed to start journal stream")
            self.set_state(SessionState.CLOSED)
            return

        self.set_state(SessionState.STREAMING)
        close_code, close_reason = CLOSE_NORMAL, "journal stream ended"
        pump = asyncio.create_task(self._pump())
        watcher = asyncio.create_task(self._watch_client())
        try:
            done, _ = await asyncio.wait({pump, watcher}, return_when=asyncio.FIRST_COMPLETED)
            if pump in done:
                close_code, close_reason = pump.result()
        finally:
            # The process is reaped even when this handler is cancelled
            await asyncio.shield(self._teardown((pump, watcher), close_code, close_reason))

    async def _teardown(self, tasks, close_code: int, close_reason: str) -> None:
        self.set_state(SessionState.CLOSING)
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        await self.stream.terminate()
        await self._close_websocket(close_code, close_reason)
        self.set_state(SessionState.CLOSED)
        logger.info(f"Stream session closed after {self.lines_sent} line(s)")

    async def _pump(self) -> Tuple[int, str]:
        """
        Forward process output to the client, one message per line.

        Returns:
            The close code and reason to report to the client
        """
        try:
            async for line in self.stream.lines():
                await asyncio.wait_for(
                    self.websocket.send_text(line),
                    timeout=self.write_timeout
                )
                self.lines_sent += 1
            return CLOSE_NORMAL, "journal stream ended"
        except asyncio.TimeoutError:
            logger.warning(f"Client did not accept a message within {self.write_timeout}s")
            return CLOSE_TRY_AGAIN_LATER, "client too slow"
        except ProcessExitError as e:
            logger.warning(f"{e.message}: {e.stderr or 'no stderr output'}")
            return CLOSE_INTERNAL_ERROR, f"journal process exited with status {e.returncode}"
        except StreamIOError as e:
            logger.warning(e.message)
            return CLOSE_INTERNAL_ERROR, "journal stream read error"
        except Exception as e:
            # A failed send means the client is gone; stop the process with it
            logger.info(f"Forwarding to client failed: {e!r}")
            return CLOSE_NORMAL, "client unavailable"
        finally:
            self.stream.cancel()

    async def _watch_client(self) -> None:
        """Wait for the client to close the connection."""
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    self._client_closed = True
                    logger.info(f"Client closed connection (code {message.get('code')})")
                    return
                # Inbound frames carry no commands
        except Exception as e:
            self._client_closed = True
            logger.info(f"Client connection failed: {e!r}")
        finally:
            self.stream.cancel()

    async def _close_websocket(self, code: int, reason: str) -> None:
        self.close_code = code
        self.close_reason = reason[:MAX_REASON_LENGTH]
        if self._client_closed:
            return
        try:
            await self.websocket.close(code=code, reason=self.close_reason)
        except Exception as e:
            logger.debug(f"Closing WebSocket failed: {e!r}")
