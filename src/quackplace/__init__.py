"""Quackplace - locality-aware scan-range scheduling."""

# Core API
from quackplace.scheduler import Assignment, LocalityCounters, LocalityScheduler

# Configuration
from quackplace.config import DynamicMembership, MembershipConfig, StaticMembership

# Addresses and membership
from quackplace.membership import Member, MembershipChannel, MembershipView, SubscriptionManager
from quackplace.network import DataLocation, ExecutionHost

# Errors
from quackplace.errors import NoBackendsAvailableError, RegistrationError, SchedulerError

# Observability
from quackplace.metrics import Metrics
from quackplace.planner import assign_scan_ranges
from quackplace.report import LocalityReport

__all__ = [
    # Core
    "LocalityScheduler",
    "Assignment",
    "LocalityCounters",
    # Config
    "DynamicMembership",
    "StaticMembership",
    "MembershipConfig",
    # Membership
    "Member",
    "MembershipView",
    "MembershipChannel",
    "SubscriptionManager",
    "DataLocation",
    "ExecutionHost",
    # Errors
    "SchedulerError",
    "NoBackendsAvailableError",
    "RegistrationError",
    # Observability
    "Metrics",
    "assign_scan_ranges",
    "LocalityReport",
]
