"""DuckDB-backed summaries of scan-range assignments."""

import logging
import threading

import duckdb
import pyarrow as pa

logger = logging.getLogger(__name__)

ASSIGNMENTS_DDL = """
CREATE TABLE assignments (
    location VARCHAR NOT NULL,
    backend_host VARCHAR NOT NULL,
    backend_port INTEGER NOT NULL,
    is_local BOOLEAN NOT NULL
)
"""


class LocalityReport:
    """Accumulates assigned scan ranges and summarizes locality with SQL.

    Only the location and the assignment columns of each batch are kept.
    A lock serializes access to the DuckDB connection.
    """

    def __init__(self, database: str = ":memory:"):
        self._conn = duckdb.connect(database)
        self._lock = threading.Lock()
        self._conn.execute(ASSIGNMENTS_DDL)

    def add(self, batch: pa.RecordBatch, location_column: str = "host") -> int:
        """Record a batch produced by assign_scan_ranges. Returns the number of ranges added."""
        missing = {location_column, "backend_host", "backend_port", "is_local"} - set(batch.schema.names)
        if missing:
            raise KeyError(f"Assignment batch is missing columns: {sorted(missing)}")

        ranges = pa.RecordBatch.from_arrays(
            [
                batch.column(location_column).cast(pa.string()),
                batch.column("backend_host"),
                batch.column("backend_port").cast(pa.int32()),
                batch.column("is_local"),
            ],
            names=["location", "backend_host", "backend_port", "is_local"],
        )
        with self._lock:
            self._conn.execute("INSERT INTO assignments SELECT * FROM ranges")
        return ranges.num_rows

    def query(self, sql: str) -> pa.RecordBatch:
        with self._lock:
            try:
                table = self._conn.execute(sql).fetch_arrow_table()
            except duckdb.Error as e:
                logger.error("Locality report query failed: %s\nSQL: %s", e, sql[:500])
                raise
        return pa.RecordBatch.from_pydict(
            {col: table.column(col).combine_chunks() for col in table.column_names},
            schema=table.schema,
        )

    def per_backend(self) -> pa.RecordBatch:
        """Number of ranges and local ranges assigned to each backend."""
        return self.query(
            """
            SELECT
                backend_host,
                backend_port,
                COUNT(*)::BIGINT AS ranges,
                COUNT(*) FILTER (WHERE is_local)::BIGINT AS local_ranges
            FROM assignments
            GROUP BY backend_host, backend_port
            ORDER BY backend_host, backend_port
            """
        )

    def per_location(self) -> pa.RecordBatch:
        """How many distinct backends read the ranges stored at each location."""
        return self.query(
            """
            SELECT
                location,
                COUNT(*)::BIGINT AS ranges,
                COUNT(DISTINCT backend_host || ':' || backend_port::VARCHAR)::BIGINT AS backends
            FROM assignments
            GROUP BY location
            ORDER BY location
            """
        )

    def locality_ratio(self) -> float:
        """Share of assigned ranges that were read by a local backend."""
        result = self.query("SELECT COUNT(*) AS total, COUNT(*) FILTER (WHERE is_local) AS local FROM assignments")
        total = result.column("total")[0].as_py()
        if not total:
            return 0.0
        return result.column("local")[0].as_py() / total

    def close(self) -> None:
        with self._lock:
            self._conn.close()
