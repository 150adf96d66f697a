"""Demo: schedule scan ranges while cluster membership changes."""

import argparse
import logging
import random

import pyarrow as pa

from quackplace import (
    DynamicMembership,
    ExecutionHost,
    LocalityReport,
    LocalityScheduler,
    Member,
    MembershipView,
    assign_scan_ranges,
)
from quackplace.testing import FakeMembershipFeed

SERVICE_ID = "query-backends"


def make_view(num_backends: int) -> MembershipView:
    members = [
        Member(instance_id=f"backend-{i}", backend=ExecutionHost(f"10.0.0.{i + 1}", 22000))
        for i in range(num_backends)
    ]
    return MembershipView({SERVICE_ID: members})


def make_scan_ranges(num_ranges: int, num_datanodes: int) -> pa.RecordBatch:
    return pa.RecordBatch.from_pydict(
        {
            "path": [f"/warehouse/events/part-{i:05d}.parquet" for i in range(num_ranges)],
            "host": [f"10.0.0.{random.randint(1, num_datanodes)}" for _ in range(num_ranges)],
        }
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Locality-aware scheduling demo")
    parser.add_argument("--backends", type=int, default=4, help="Backends in the first view")
    parser.add_argument("--datanodes", type=int, default=6, help="Hosts that store data")
    parser.add_argument("--ranges", type=int, default=1000, help="Scan ranges per round")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s - %(message)s",
    )

    feed = FakeMembershipFeed()
    report = LocalityReport()

    with LocalityScheduler(DynamicMembership(service_id=SERVICE_ID, feed=feed)) as scheduler:
        for num_backends in (args.backends, max(1, args.backends // 2)):
            feed.publish(make_view(num_backends))
            scheduler.flush_membership(timeout=5)

            batch = assign_scan_ranges(scheduler, make_scan_ranges(args.ranges, args.datanodes))
            report.add(batch)
            print(f"\n{num_backends} backends:")
            print(batch.slice(0, 5).to_pylist())

        print("\nPer backend:")
        print(report.per_backend().to_pylist())
        print(f"Locality ratio: {report.locality_ratio():.2%}")
        print(f"Counters: {scheduler.counters}")
        print(scheduler.metrics.to_batch().to_pylist())


if __name__ == "__main__":
    main()
