"""
Translate a stream request into journalctl arguments.
"""

from typing import List

from .base import ScopeMode, StreamRequest, is_container_identifier, strip_container_marker


# journalctl treats a lone "+" between matches as logical OR
OR_SEPARATOR = "+"

DEFAULT_BACKLOG_LINES = 100

CONTAINER_FIELD = "CONTAINER_ID_FULL"
SYSTEM_UNIT_FIELD = "_SYSTEMD_UNIT"
USER_UNIT_FIELD = "_SYSTEMD_USER_UNIT"


def build_service_filter(identifier: str, request: StreamRequest) -> str:
    """Build the journal match for a single selected service."""
    if request.container_mode and is_container_identifier(identifier):
        return f"{CONTAINER_FIELD}={strip_container_marker(identifier)}"
    if request.scope_mode == ScopeMode.USER:
        return f"{USER_UNIT_FIELD}={identifier}"
    return f"{SYSTEM_UNIT_FIELD}={identifier}"


def build_service_filters(request: StreamRequest) -> List[str]:
    """
    Build the OR-joined journal matches for the selection.

    Returns an empty list for an empty selection so the stream covers
    every service.
    """
    if not request.selected_services:
        return []

    filters: List[str] = []
    for identifier in request.selected_services:
        if filters:
            filters.append(OR_SEPARATOR)
        filters.append(build_service_filter(identifier, request))
    return filters


def build_filter_args(request: StreamRequest, backlog_lines: int = DEFAULT_BACKLOG_LINES) -> List[str]:
    """
    Build the full journalctl argument list for a stream request.

    Args:
        request: The parsed client selection
        backlog_lines: Number of historical lines to replay before following

    Returns:
        Arguments to pass after the journalctl executable
    """
    args = ["-b"]
    if request.scope_mode == ScopeMode.USER:
        args.append("--user")

    args.extend(build_service_filters(request))

    args.extend(["--all", "-f", "-n", str(backlog_lines), "-o", "json"])
    return args
