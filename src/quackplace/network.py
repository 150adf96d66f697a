"""Network addresses for execution hosts and data locations."""

import ipaddress
import logging
import socket
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class ExecutionHost:
    """A backend that can execute a unit of query work."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class DataLocation:
    """Where a unit of input data resides. Only the host takes part in locality matching."""

    host: str
    port: int = 0


def is_ip_literal(address: str) -> bool:
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


def resolve_address(host: str) -> str | None:
    """Resolve a host name to a literal IP address.

    IP literals are returned unchanged. Returns None if the name does not resolve.
    """
    if is_ip_literal(host):
        return host
    try:
        infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        logger.warning("Failed to resolve %s: %s", host, e)
        return None
    for _family, _type, _proto, _canonname, sockaddr in infos:
        return str(sockaddr[0])
    return None
