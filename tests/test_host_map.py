import logging

from quackplace._internal.host_map import HostLocalityMap, RoundRobinCursor, build_host_map, build_static_map
from quackplace.membership import Member
from quackplace.network import ExecutionHost

from .conftest import A, B, C


class TestBuildHostMap:
    def test_keys_are_backend_hosts_by_default(self):
        host_map = build_host_map([Member("a", A), Member("b", B), Member("c", C)])

        assert host_map.keys() == ("10.0.0.1", "10.0.0.2")
        assert host_map.get("10.0.0.2") == (B, C)

    def test_explicit_local_addresses_become_keys(self):
        member = Member("a", A, local_addresses=("10.0.0.1", "10.0.1.1"))

        host_map = build_host_map([member])

        assert host_map.get("10.0.0.1") == (A,)
        assert host_map.get("10.0.1.1") == (A,)

    def test_hostname_addresses_are_not_keys(self):
        member = Member("a", A, local_addresses=("datanode-1", "10.0.1.1"))

        host_map = build_host_map([member])

        assert "datanode-1" not in host_map
        assert host_map.keys() == ("10.0.1.1",)

    def test_member_without_usable_address_is_skipped(self, caplog):
        bad = Member("bad", ExecutionHost("backend.example.com", 22000))

        with caplog.at_level(logging.WARNING):
            host_map = build_host_map([bad, Member("a", A)])

        assert host_map.all_hosts() == [A]
        assert "bad" in caplog.text

    def test_version_is_carried(self):
        assert build_host_map([], version=7).version == 7


class TestBuildStaticMap:
    def test_keys_are_resolved_addresses(self):
        backend = ExecutionHost("worker-1", 22000)
        host_map = build_static_map([backend], resolver={"worker-1": "10.9.9.9"}.get)

        assert host_map.get("10.9.9.9") == (backend,)
        assert "worker-1" not in host_map

    def test_unresolvable_backend_is_skipped(self):
        backends = [ExecutionHost("worker-1", 22000), ExecutionHost("gone", 22000)]

        host_map = build_static_map(backends, resolver={"worker-1": "10.9.9.9"}.get)

        assert host_map.all_hosts() == [ExecutionHost("worker-1", 22000)]


class TestHostLocalityMap:
    def test_empty_sequence_key_is_present_but_has_no_backends(self):
        host_map = HostLocalityMap({"10.0.0.1": []})

        assert "10.0.0.1" in host_map
        assert not host_map.has_backends()

    def test_all_hosts_flattens_in_key_order(self):
        host_map = HostLocalityMap({"10.0.0.1": [A], "10.0.0.2": [B, C]})

        assert host_map.all_hosts() == [A, B, C]


class TestRoundRobinCursor:
    def test_local_cycles_within_key(self):
        cursor = RoundRobinCursor(HostLocalityMap({"10.0.0.2": [B, C]}))

        assert [cursor.next_local("10.0.0.2") for _ in range(3)] == [B, C, B]

    def test_local_miss_returns_none(self):
        cursor = RoundRobinCursor(HostLocalityMap({"10.0.0.1": [A]}))

        assert cursor.next_local("10.0.0.9") is None

    def test_nonlocal_cycles_across_keys_using_first_host(self):
        cursor = RoundRobinCursor(HostLocalityMap({"10.0.0.1": [A], "10.0.0.2": [B, C]}))

        assert [cursor.next_nonlocal() for _ in range(4)] == [A, B, A, B]

    def test_nonlocal_passes_over_empty_keys(self):
        cursor = RoundRobinCursor(HostLocalityMap({"10.0.0.1": [], "10.0.0.2": [B]}))

        assert [cursor.next_nonlocal() for _ in range(2)] == [B, B]

    def test_nonlocal_on_empty_map_returns_none(self):
        assert RoundRobinCursor(HostLocalityMap()).next_nonlocal() is None

    def test_local_and_nonlocal_positions_are_independent(self):
        cursor = RoundRobinCursor(HostLocalityMap({"10.0.0.1": [A], "10.0.0.2": [B, C]}))

        assert cursor.next_local("10.0.0.2") == B
        assert cursor.next_nonlocal() == A
        assert cursor.next_local("10.0.0.2") == C
        assert cursor.next_nonlocal() == B
