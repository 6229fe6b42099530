"""
Journal streaming services.

Enumerates streamable services, translates client selections into
journalctl arguments and supervises the journalctl processes that feed
WebSocket sessions.
"""

from .base import (
    CONTAINER_MARKER,
    ScopeMode,
    ServiceDescriptor,
    ServiceOrigin,
    StreamRequest
)
from .enumerator import ServiceEnumerator
from .query import build_filter_args
from .supervisor import JournalSupervisor, ProcessStream

__all__ = [
    'CONTAINER_MARKER',
    'ScopeMode',
    'ServiceDescriptor',
    'ServiceOrigin',
    'StreamRequest',
    'ServiceEnumerator',
    'build_filter_args',
    'JournalSupervisor',
    'ProcessStream'
]
