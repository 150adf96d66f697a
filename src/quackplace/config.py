"""Configuration dataclasses for the locality scheduler."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from quackplace.membership import SubscriptionManager
from quackplace.network import ExecutionHost, resolve_address


@dataclass
class DynamicMembership:
    """Backends arrive from a membership feed.

    The feed is borrowed: the scheduler registers and unregisters with it
    but never closes it.
    """

    service_id: str
    feed: SubscriptionManager


@dataclass
class StaticMembership:
    """A fixed list of backends, mapped once at construction."""

    backends: Sequence[ExecutionHost] = field(default_factory=list)
    resolver: Callable[[str], str | None] = resolve_address


MembershipConfig = DynamicMembership | StaticMembership
