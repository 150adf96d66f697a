"""Locality-aware scheduler - assigns data locations to execution hosts."""

import itertools
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from quackplace._internal.host_map import HostLocalityMap, RoundRobinCursor, build_host_map, build_static_map
from quackplace.config import DynamicMembership, MembershipConfig, StaticMembership
from quackplace.errors import NoBackendsAvailableError, RegistrationError
from quackplace.membership import MembershipChannel, MembershipView
from quackplace.metrics import INITIALIZED, TOTAL_ASSIGNMENTS, TOTAL_LOCAL_ASSIGNMENTS, Metrics
from quackplace.network import DataLocation, ExecutionHost

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    """The backend chosen for one data location."""

    location: DataLocation
    backend: ExecutionHost
    is_local: bool


@dataclass(frozen=True)
class LocalityCounters:
    total_assignments: int = 0
    local_assignments: int = 0

    @property
    def locality_ratio(self) -> float:
        if self.total_assignments == 0:
            return 0.0
        return self.local_assignments / self.total_assignments


def _as_location(location: DataLocation | str) -> DataLocation:
    if isinstance(location, DataLocation):
        return location
    return DataLocation(host=location)


class LocalityScheduler:
    """Matches data locations to backends, preferring a backend on the same host.

    Backends come either from a membership feed (dynamic mode) or from a
    fixed list (static mode). Data locations without a local backend are
    spread round robin over every address in the map. Replacing the map
    resets all round-robin state.

    One lock guards the map, the cursor and the locality counters. A
    membership update builds the new map outside that lock and swaps it in,
    so an assignment call sees either the old map or the new one in full.
    Updates are serialized among themselves by a second lock.
    """

    def __init__(self, membership: MembershipConfig, metrics: Metrics | None = None):
        self._membership = membership
        self._metrics = metrics if metrics is not None else Metrics()
        self._lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._update_lock = threading.Lock()
        self._map_versions = itertools.count(1)
        self._total_assignments = 0
        self._local_assignments = 0
        self._subscription_id = None
        self._channel: MembershipChannel | None = None

        self._total_metric = self._metrics.int_counter(TOTAL_ASSIGNMENTS)
        self._local_metric = self._metrics.int_counter(TOTAL_LOCAL_ASSIGNMENTS)
        self._initialized_metric = self._metrics.boolean_flag(INITIALIZED)

        if isinstance(membership, StaticMembership):
            host_map = build_static_map(membership.backends, membership.resolver)
            logger.info(
                "Static scheduler with %d backends on %d addresses",
                len(host_map.all_hosts()),
                len(host_map),
            )
        elif isinstance(membership, DynamicMembership):
            host_map = HostLocalityMap()
            self._channel = MembershipChannel(
                self.update_membership,
                name=f"membership-updater[{membership.service_id}]",
            )
        else:
            raise TypeError(f"Unsupported membership config: {type(membership).__name__}")

        self._cursor = RoundRobinCursor(host_map)

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @property
    def is_dynamic(self) -> bool:
        return isinstance(self._membership, DynamicMembership)

    @property
    def is_registered(self) -> bool:
        return self._subscription_id is not None

    @property
    def map_version(self) -> int:
        with self._lock:
            return self._cursor.host_map.version

    @property
    def counters(self) -> LocalityCounters:
        with self._lock:
            return LocalityCounters(self._total_assignments, self._local_assignments)

    # -- Assignment --

    def assign(self, data_locations: Iterable[DataLocation | str]) -> list[Assignment]:
        """Choose a backend for each data location, in input order.

        Raises NoBackendsAvailableError, without touching any round-robin
        state or counter, if no backends are known.
        """
        locations = [_as_location(location) for location in data_locations]
        with self._lock:
            cursor = self._cursor
            if not cursor.host_map.has_backends():
                raise NoBackendsAvailableError("No backends available for scheduling")

            assignments: list[Assignment] = []
            for location in locations:
                backend = cursor.next_local(location.host)
                is_local = backend is not None
                if backend is None:
                    backend = cursor.next_nonlocal()
                assignments.append(Assignment(location, backend, is_local))  # type: ignore[arg-type]

            num_local = sum(1 for a in assignments if a.is_local)
            self._total_assignments += len(assignments)
            self._local_assignments += num_local
            self._total_metric.increment(len(assignments))
            self._local_metric.increment(num_local)
            version = cursor.host_map.version

        logger.debug(
            "Assigned %d data locations (%d local) with map version %d",
            len(assignments),
            num_local,
            version,
        )
        return assignments

    def get_hosts(self, data_locations: Iterable[DataLocation | str]) -> list[ExecutionHost]:
        """Return the backend that should read each data location, in input order."""
        return [assignment.backend for assignment in self.assign(data_locations)]

    def get_host(self, data_location: DataLocation | str) -> ExecutionHost:
        return self.get_hosts([data_location])[0]

    def has_local_host(self, data_location: DataLocation | str) -> bool:
        """True if the location's address is a key in the map, even one with no backends."""
        address = _as_location(data_location).host
        with self._lock:
            return address in self._cursor.host_map

    def get_all_known_hosts(self) -> list[ExecutionHost]:
        with self._lock:
            return self._cursor.host_map.all_hosts()

    # -- Membership --

    def update_membership(self, view: MembershipView) -> None:
        """Replace the host map with one built from a complete membership view.

        Called from the membership delivery thread. Resets round robin.
        """
        if not isinstance(self._membership, DynamicMembership):
            raise RuntimeError("Static scheduler membership cannot be updated")

        service_id = self._membership.service_id
        # Held across build and swap so overlapping updates land in version order
        with self._update_lock:
            host_map = build_host_map(view.members(service_id), version=next(self._map_versions))
            with self._lock:
                self._cursor = RoundRobinCursor(host_map)

        logger.debug(
            "Membership update for %s: %d backends on %d addresses (version %d)",
            service_id,
            len(host_map.all_hosts()),
            len(host_map),
            host_map.version,
        )

    def flush_membership(self, timeout: float | None = None) -> bool:
        """Wait until published membership views have been applied."""
        if self._channel is None:
            return True
        return self._channel.flush(timeout)

    # -- Lifecycle --

    def init(self) -> None:
        """Register with the membership feed. A no-op for static membership."""
        if isinstance(self._membership, DynamicMembership):
            self._register(self._membership)
        self._initialized_metric.set(True)

    def _register(self, membership: DynamicMembership) -> None:
        channel = self._channel
        if channel is None:
            raise RegistrationError(f"No membership channel for {membership.service_id!r}")
        with self._lifecycle_lock:
            if self._subscription_id is not None:
                raise RegistrationError(f"Already registered for membership of {membership.service_id!r}")

            channel.start()
            try:
                self._subscription_id = membership.feed.register(membership.service_id, channel.publish)
            except Exception as e:
                channel.close()
                raise RegistrationError(f"Failed to register for membership of {membership.service_id!r}") from e

        logger.info("Registered for membership of %s", membership.service_id)

    def close(self) -> None:
        """Unregister from the membership feed. Safe to call more than once.

        The delivery thread is stopped even if the feed fails to unregister;
        that failure is re-raised.
        """
        if isinstance(self._membership, DynamicMembership):
            with self._lifecycle_lock:
                subscription_id = self._subscription_id
                self._subscription_id = None
                try:
                    if subscription_id is not None:
                        self._membership.feed.unregister(subscription_id)
                        logger.info("Unregistered from membership of %s", self._membership.service_id)
                finally:
                    if self._channel is not None:
                        self._channel.close()
                    self._initialized_metric.set(False)
        else:
            self._initialized_metric.set(False)

    def __enter__(self) -> "LocalityScheduler":
        self.init()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
