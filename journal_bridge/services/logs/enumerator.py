"""
Service enumeration.

Lists systemd service units and, optionally, containers from the container
runtime so clients can pick what to stream. Enumeration never fails the
caller: a source that errors is logged and left out of the result.
"""

import asyncio
import json
from typing import Awaitable, List, Sequence

from journal_bridge.core.exceptions import EnumerationError
from journal_bridge.core.logging import logger

from .base import CONTAINER_MARKER, ServiceDescriptor, ServiceOrigin


UNIT_SUFFIX = ".service"

# One JSON object per container; names may contain any character
CONTAINER_FORMAT = "{{json .}}"


def parse_units(output: str) -> List[ServiceDescriptor]:
    """Parse ``systemctl list-units --plain`` output into descriptors."""
    services = []
    for line in output.splitlines():
        # UNIT LOAD ACTIVE SUB DESCRIPTION
        parts = line.split(None, 4)
        if not parts or not parts[0].endswith(UNIT_SUFFIX):
            continue
        unit = parts[0]
        description = parts[4].strip() if len(parts) > 4 else ""
        services.append(ServiceDescriptor(unit, description or unit, ServiceOrigin.NATIVE))
    return services


def parse_containers(output: str) -> List[ServiceDescriptor]:
    """Parse ``docker ps --format '{{json .}}'`` output into descriptors."""
    services = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except ValueError:
            logger.debug(f"Skipping unparseable container record: {line[:200]!r}")
            continue
        if not isinstance(record, dict):
            continue

        container_id = str(record.get("ID") or "").strip()
        if not container_id:
            continue
        name = str(record.get("Names") or "").strip() or container_id[:12]
        services.append(ServiceDescriptor(
            f"{container_id}{CONTAINER_MARKER}",
            name,
            ServiceOrigin.CONTAINER
        ))
    return services


class ServiceEnumerator:
    """
    Lists the services a client may stream.

    Containers, when merged, are listed ahead of native units.
    """

    def __init__(
        self,
        systemctl_bin: str = "systemctl",
        docker_bin: str = "docker",
        timeout: float = 10.0
    ):
        self.systemctl_bin = systemctl_bin
        self.docker_bin = docker_bin
        self.timeout = timeout

    async def list_services(
        self,
        user_scope: bool = False,
        merge_containers: bool = False
    ) -> List[ServiceDescriptor]:
        """
        List native units and optionally containers.

        Args:
            user_scope: List the user's units instead of system units
            merge_containers: Prepend containers from the container runtime

        Returns:
            Container descriptors followed by unit descriptors; a source that
            failed contributes nothing
        """
        sources = [self._fail_soft(self.list_units(user_scope))]
        if merge_containers:
            sources.append(self._fail_soft(self.list_containers()))

        results = await asyncio.gather(*sources)
        native = results[0]
        containers = results[1] if merge_containers else []
        return containers + native

    async def list_units(self, user_scope: bool = False) -> List[ServiceDescriptor]:
        args = [self.systemctl_bin, "list-units", "--type=service", "--plain", "--no-pager"]
        if user_scope:
            args.append("--user")
        return parse_units(await self._run_command(args))

    async def list_containers(self) -> List[ServiceDescriptor]:
        args = [self.docker_bin, "ps", "-a", "--no-trunc", "--format", CONTAINER_FORMAT]
        return parse_containers(await self._run_command(args))

    async def _fail_soft(self, listing: Awaitable[List[ServiceDescriptor]]) -> List[ServiceDescriptor]:
        try:
            return await listing
        except EnumerationError as e:
            logger.warning(f"Service enumeration degraded: {e.message}")
            return []

    async def _run_command(self, argv: Sequence[str]) -> str:
        """
        Run a listing command and return its stdout.

        Raises:
            EnumerationError: If the command is missing, times out or fails
        """
        name = argv[0]
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise EnumerationError(name, str(e))

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise EnumerationError(name, f"timed out after {self.timeout}s")
        finally:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise EnumerationError(name, message or f"exited with status {process.returncode}")

        return stdout.decode("utf-8", errors="replace")
