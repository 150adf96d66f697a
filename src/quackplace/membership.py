"""Cluster membership snapshots and their delivery to the scheduler."""

import logging
import threading
import typing
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from quackplace.network import ExecutionHost, is_ip_literal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Member:
    """One execution host in a membership view."""

    instance_id: str
    backend: ExecutionHost
    local_addresses: tuple[str, ...] = ()  # defaults to the backend's own host

    def locality_keys(self) -> list[str]:
        """Addresses this member is local for. Only IP literals are usable as keys."""
        candidates = self.local_addresses or (self.backend.host,)
        return [address for address in candidates if address and is_ip_literal(address)]


@dataclass(frozen=True)
class MembershipView:
    """Point-in-time snapshot of all known members, keyed by service id."""

    services: Mapping[str, Sequence[Member]] = field(default_factory=dict)

    def members(self, service_id: str) -> Sequence[Member]:
        return self.services.get(service_id, ())


UpdateCallback = Callable[[MembershipView], None]


@typing.runtime_checkable
class SubscriptionManager(typing.Protocol):
    """Publish/subscribe feed that delivers complete membership views."""

    def register(self, service_id: str, callback: UpdateCallback) -> typing.Hashable: ...

    def unregister(self, subscription_id: typing.Hashable) -> None: ...


class MembershipChannel:
    """Delivers membership views to a single handler on a dedicated thread.

    Views are complete snapshots, so a newer view replaces one that has
    not been delivered yet. The handler never runs concurrently with itself.
    """

    def __init__(self, handler: UpdateCallback, name: str = "membership-updater"):
        self._handler = handler
        self._name = name
        self._cond = threading.Condition()
        self._pending: MembershipView | None = None
        self._busy = False
        self._closed = False
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._cond:
            if self._thread is not None:
                return
            self._closed = False
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def publish(self, view: MembershipView) -> None:
        """Queue a view for delivery. Called from the feed's thread."""
        with self._cond:
            if self._closed:
                logger.debug("%s: dropping view published after close", self._name)
                return
            if self._pending is not None:
                logger.debug("%s: superseding undelivered view", self._name)
            self._pending = view
            self._cond.notify_all()

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until no view is pending or being applied. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending is None and not self._busy, timeout)

    def close(self, timeout: float | None = None) -> None:
        with self._cond:
            self._closed = True
            self._pending = None
            self._cond.notify_all()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending is not None or self._closed)
                if self._closed:
                    self._cond.notify_all()
                    return
                view = self._pending
                self._pending = None
                self._busy = True
            try:
                self._handler(view)  # type: ignore[arg-type]
            except Exception:
                logger.exception("%s: membership update failed, keeping previous map", self._name)
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()
