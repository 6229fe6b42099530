"""
Core types for journal streaming.

Defines the service descriptors returned by the enumerator and the stream
request that the query translator turns into journalctl arguments.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from journal_bridge.core.logging import logger


# Suffix that marks a container id in the combined service listing
CONTAINER_MARKER = ".docker"


class ServiceOrigin(str, Enum):
    """Where a listed service comes from"""
    NATIVE = "native"
    CONTAINER = "container"


class ScopeMode(str, Enum):
    """Which journal a stream reads from"""
    SYSTEM = "system"
    USER = "user"


@dataclass(frozen=True)
class ServiceDescriptor:
    """A unit or container that can be selected for streaming."""
    identifier: str
    display_name: str
    origin: ServiceOrigin = ServiceOrigin.NATIVE

    def to_line(self) -> str:
        """Render as one ``<identifier> <displayName>`` listing line."""
        return f"{self.identifier} {self.display_name}"


def is_container_identifier(identifier: str) -> bool:
    return identifier.endswith(CONTAINER_MARKER) and len(identifier) > len(CONTAINER_MARKER)


def strip_container_marker(identifier: str) -> str:
    if is_container_identifier(identifier):
        return identifier[:-len(CONTAINER_MARKER)]
    return identifier


@dataclass(frozen=True)
class StreamRequest:
    """
    What a client asked to stream.

    ``selected_services`` keeps the client's order with duplicates removed.
    An empty selection means the stream is not filtered per unit.
    """
    selected_services: Tuple[str, ...] = ()
    scope_mode: ScopeMode = ScopeMode.SYSTEM
    container_mode: bool = False

    @classmethod
    def from_selection(
        cls,
        selection: Iterable[Any],
        scope_mode: ScopeMode = ScopeMode.SYSTEM,
        container_mode: bool = False
    ) -> "StreamRequest":
        """Build a request, dropping entries that are not non-blank strings."""
        seen = []
        for item in selection:
            if not isinstance(item, str):
                continue
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        return cls(tuple(seen), scope_mode, container_mode)

    @classmethod
    def from_query(
        cls,
        raw: Optional[str],
        scope_mode: ScopeMode = ScopeMode.SYSTEM,
        container_mode: bool = False
    ) -> "StreamRequest":
        """
        Parse the JSON-encoded ``services`` query parameter.

        Anything other than a JSON array falls back to an empty selection,
        which streams every service.
        """
        selection = []
        if raw:
            try:
                decoded = json.loads(raw)
            except ValueError:
                logger.debug(f"Ignoring malformed services parameter: {raw[:200]!r}")
                decoded = []
            if isinstance(decoded, list):
                selection = decoded
            else:
                logger.debug(f"Ignoring non-array services parameter: {type(decoded).__name__}")
        return cls.from_selection(selection, scope_mode, container_mode)
