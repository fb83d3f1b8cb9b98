"""TCP port range parsing and free-port discovery."""

import logging
import re
import socket
from collections.abc import Iterable
from dataclasses import dataclass

from .exceptions import ConfigurationError, PortAllocationError

logger = logging.getLogger(__name__)

_RANGE_PATTERN = re.compile(r"^(\d+)-(\d+)$")
MIN_PORT = 1
MAX_PORT = 65535


@dataclass(frozen=True)
class PortRange:
    """Inclusive port range."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


class PortAllocator:
    """
    Finds ports that can currently be bound on this host.

    Probing binds and immediately releases each candidate. Nothing is
    reserved: a port reported free may be taken by another process before
    the command that receives it binds it.
    """

    def __init__(self, host: str = ""):
        """
        Initialize the allocator.

        Args:
            host: Address to test binds on ("" means all interfaces)
        """
        self.host = host

    @staticmethod
    def parse_range(value: str) -> PortRange:
        """
        Parse a ``<start>-<end>`` port range.

        Args:
            value: Range string such as "9000-9099"

        Returns:
            PortRange: Parsed inclusive range

        Raises:
            ConfigurationError: If the string is malformed or out of bounds
        """
        match = _RANGE_PATTERN.match(value.strip()) if isinstance(value, str) else None
        if not match:
            raise ConfigurationError(
                f"Invalid port range format: {value}",
                hint='Use "<start>-<end>", for example "9000-9099"',
                field="availablePorts",
            )

        start, end = int(match.group(1)), int(match.group(2))
        if start < MIN_PORT or end > MAX_PORT:
            raise ConfigurationError(
                f"Port range out of bounds: {value}",
                hint=f"Ports must be between {MIN_PORT} and {MAX_PORT}",
                field="availablePorts",
            )
        if start > end:
            raise ConfigurationError(
                f"Invalid port range: start {start} is greater than end {end}",
                hint="The first port must not exceed the last port",
                field="availablePorts",
            )

        return PortRange(start=start, end=end)

    def is_port_available(self, port: int) -> bool:
        """
        Check whether ``port`` can be bound right now.

        Args:
            port: Port number to check

        Returns:
            bool: True if a bind succeeded (the socket is released immediately)
        """
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((self.host, port))
            except OSError:
                return False
        return True

    def find_available_ports(
        self,
        start: int,
        end: int,
        count: int,
        exclude: Iterable[int] = (),
    ) -> list[int]:
        """
        Find ``count`` bindable ports in ``[start, end]``.

        Args:
            start: First port of the range
            end: Last port of the range (inclusive)
            count: Number of ports required
            exclude: Ports already handed out that must not be returned again

        Returns:
            List[int]: The first ``count`` available ports, ascending

        Raises:
            PortAllocationError: If fewer than ``count`` ports are available
        """
        skip = set(exclude)
        available: list[int] = []

        port = start
        while port <= end and len(available) < count:
            if port not in skip and self.is_port_available(port):
                available.append(port)
            port += 1

        if len(available) < count:
            raise PortAllocationError(
                f"Could not find {count} available ports in range {start}-{end}",
                count=count,
                start=start,
                end=end,
                hint="Widen availablePorts in the config or free some ports",
            )

        logger.debug(f"Allocated ports {available} from range {start}-{end}")
        return available

    def allocate(self, range_spec: str, count: int, exclude: Iterable[int] = ()) -> list[int]:
        """Parse ``range_spec`` and find ``count`` ports in it."""
        port_range = self.parse_range(range_spec)
        return self.find_available_ports(
            port_range.start, port_range.end, count, exclude=exclude
        )
