from typing import Dict, Optional
import asyncio
import logging

from journal_bridge.api.websocket.stream_session import StreamSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Tracks live stream sessions and enforces the session limit."""

    def __init__(self, max_sessions: Optional[int] = None):
        self.max_sessions = max_sessions
        # Live sessions by id, with the task serving each one
        self.active_sessions: Dict[str, StreamSession] = {}
        self.session_tasks: Dict[str, asyncio.Task] = {}

    def register(self, session: StreamSession) -> bool:
        """Register a session for the current task; False if the limit is reached."""
        if self.max_sessions is not None and len(self.active_sessions) >= self.max_sessions:
            return False

        self.active_sessions[session.session_id] = session
        task = asyncio.current_task()
        if task is not None:
            self.session_tasks[session.session_id] = task
        logger.debug(f"Registered session {session.session_id} ({len(self.active_sessions)} active)")
        return True

    def unregister(self, session: StreamSession) -> None:
        self.active_sessions.pop(session.session_id, None)
        self.session_tasks.pop(session.session_id, None)
        logger.debug(f"Unregistered session {session.session_id} ({len(self.active_sessions)} active)")

    def get_session_count(self) -> int:
        return len(self.active_sessions)

    async def shutdown(self) -> None:
        """Cancel every live session and wait for their processes to be reaped."""
        tasks = [task for task in self.session_tasks.values() if not task.done()]
        if not tasks:
            return

        logger.info(f"Stopping {len(tasks)} active stream session(s)")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
