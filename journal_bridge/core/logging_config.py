import logging
import sys
from contextvars import ContextVar

# Set by the WebSocket handler for the lifetime of one stream session
current_session_id: ContextVar[str] = ContextVar("current_session_id", default="-")


class SessionContextFilter(logging.Filter):
    """Stamp every record with the id of the stream session that emitted it."""

    def filter(self, record):
        if not hasattr(record, "session_id"):
            record.session_id = current_session_id.get()
        return True


def setup_logging(level: str = "INFO"):
    """Configure console logging with the session context filter."""
    # Root logger configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Create console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(session_id)s] %(message)s'
    )
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SessionContextFilter())

    # Clear existing handlers and add our configured handler
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # Uvicorn loggers propagate here when it runs with log_config=None
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    return root_logger
