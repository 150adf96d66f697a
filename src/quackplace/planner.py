"""Assign columnar batches of scan ranges to backends."""

import pyarrow as pa

from quackplace.scheduler import LocalityScheduler

ASSIGNMENT_FIELDS = [
    pa.field("backend_host", pa.string()),
    pa.field("backend_port", pa.int32()),
    pa.field("is_local", pa.bool_()),
]


def assign_scan_ranges(
    scheduler: LocalityScheduler,
    batch: pa.RecordBatch,
    location_column: str = "host",
) -> pa.RecordBatch:
    """
    Choose a backend for every scan range in a batch.

    Args:
        scheduler: Scheduler to assign with
        batch: Scan ranges, one per row
        location_column: String column holding the address each range is stored at

    Returns:
        The input batch with backend_host, backend_port and is_local columns appended
    """
    if location_column not in batch.schema.names:
        raise KeyError(f"Column {location_column!r} not found in batch")

    locations = batch.column(location_column).to_pylist()
    if batch.num_rows == 0:
        assignments = []
    else:
        if any(location is None for location in locations):
            raise ValueError(f"Column {location_column!r} contains null locations")
        # One call so the whole batch is placed against a single map version
        assignments = scheduler.assign(locations)

    columns = list(batch.columns) + [
        pa.array([a.backend.host for a in assignments], type=pa.string()),
        pa.array([a.backend.port for a in assignments], type=pa.int32()),
        pa.array([a.is_local for a in assignments], type=pa.bool_()),
    ]
    schema = pa.schema(list(batch.schema) + ASSIGNMENT_FIELDS)
    return pa.RecordBatch.from_arrays(columns, schema=schema)
