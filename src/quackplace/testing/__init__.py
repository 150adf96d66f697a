"""Testing utilities for quackplace."""

from quackplace.testing.fake_feed import FakeMembershipFeed

__all__ = [
    "FakeMembershipFeed",
]
