import pytest

from quackplace.config import DynamicMembership, StaticMembership
from quackplace.membership import Member, MembershipView
from quackplace.network import ExecutionHost
from quackplace.scheduler import LocalityScheduler
from quackplace.testing import FakeMembershipFeed

SERVICE_ID = "impalad-backends"

A = ExecutionHost("10.0.0.1", 22000)
B = ExecutionHost("10.0.0.2", 22000)
C = ExecutionHost("10.0.0.2", 22001)


def view_of(*backends: ExecutionHost, service_id: str = SERVICE_ID) -> MembershipView:
    """Build a view with one member per backend, local to the backend's own host."""
    members = [Member(instance_id=f"backend-{i}", backend=backend) for i, backend in enumerate(backends)]
    return MembershipView({service_id: members})


def static_scheduler(*backends: ExecutionHost) -> LocalityScheduler:
    return LocalityScheduler(StaticMembership(backends=list(backends)))


@pytest.fixture
def feed():
    return FakeMembershipFeed()


@pytest.fixture
def dynamic_scheduler(feed):
    scheduler = LocalityScheduler(DynamicMembership(service_id=SERVICE_ID, feed=feed))
    scheduler.init()
    yield scheduler
    scheduler.close()
