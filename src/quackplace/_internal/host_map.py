"""Host locality map - which backends are local to which data address."""

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping

from quackplace.membership import Member
from quackplace.network import ExecutionHost

logger = logging.getLogger(__name__)


class HostLocalityMap:
    """Immutable mapping from an IP address to the backends local to it.

    Keys must be IP literals, never host names, because they are matched
    against the addresses reported with data locations. Key order is the
    order in which addresses were first seen and drives round robin.
    """

    def __init__(self, entries: Mapping[str, Iterable[ExecutionHost]] | None = None, version: int = 0):
        self._entries: dict[str, tuple[ExecutionHost, ...]] = {
            address: tuple(hosts) for address, hosts in (entries or {}).items()
        }
        self._keys = tuple(self._entries)
        self.version = version

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def keys(self) -> tuple[str, ...]:
        return self._keys

    def get(self, address: str) -> tuple[ExecutionHost, ...] | None:
        return self._entries.get(address)

    def key_at(self, index: int) -> str:
        return self._keys[index]

    def has_backends(self) -> bool:
        return any(self._entries.values())

    def all_hosts(self) -> list[ExecutionHost]:
        return [host for hosts in self._entries.values() for host in hosts]

    def __repr__(self) -> str:
        return f"HostLocalityMap(version={self.version}, entries={self._entries!r})"


def build_host_map(members: Iterable[Member], version: int = 0) -> HostLocalityMap:
    """Build a fresh map from membership entries, skipping members with no usable address."""
    entries: dict[str, list[ExecutionHost]] = {}
    for member in members:
        keys = member.locality_keys()
        if not keys:
            logger.warning(
                "Skipping member %s (%s): no usable IP address",
                member.instance_id,
                member.backend,
            )
            continue
        for address in keys:
            entries.setdefault(address, []).append(member.backend)
    return HostLocalityMap(entries, version=version)


def build_static_map(
    backends: Iterable[ExecutionHost],
    resolver: Callable[[str], str | None],
) -> HostLocalityMap:
    """Build a map from a fixed backend list, keyed by each backend's resolved IP."""
    entries: dict[str, list[ExecutionHost]] = {}
    for backend in backends:
        address = resolver(backend.host)
        if not address:
            logger.warning("Skipping backend %s: could not resolve host to an IP address", backend)
            continue
        entries.setdefault(address, []).append(backend)
    return HostLocalityMap(entries)


class RoundRobinCursor:
    """Round-robin state over one map version.

    Tracks the next key for non-local assignment plus a position per key
    for spreading local assignments over co-located backends. A new cursor
    is created whenever the map is replaced.
    """

    def __init__(self, host_map: HostLocalityMap):
        self._host_map = host_map
        self._next_key = 0
        self._local_positions: dict[str, int] = {}

    @property
    def host_map(self) -> HostLocalityMap:
        return self._host_map

    def next_local(self, address: str) -> ExecutionHost | None:
        candidates = self._host_map.get(address)
        if not candidates:
            return None
        position = self._local_positions.get(address, 0)
        self._local_positions[address] = (position + 1) % len(candidates)
        return candidates[position]

    def next_nonlocal(self) -> ExecutionHost | None:
        """First backend of the next key in map order, wrapping around.

        Keys whose sequence is empty are passed over.
        """
        num_keys = len(self._host_map)
        for _ in range(num_keys):
            key = self._host_map.key_at(self._next_key)
            self._next_key = (self._next_key + 1) % num_keys
            candidates = self._host_map.get(key)
            if candidates:
                return candidates[0]
        return None
