"""In-process metrics registry."""

import threading

import pyarrow as pa

TOTAL_ASSIGNMENTS = "scheduler.assignments.total"
TOTAL_LOCAL_ASSIGNMENTS = "scheduler.local-assignments.total"
INITIALIZED = "scheduler.initialized"


class IntCounter:
    """Monotonically increasing integer metric."""

    kind = "counter"

    def __init__(self, name: str, value: int = 0):
        self.name = name
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def increment(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount


class BooleanFlag:
    kind = "flag"

    def __init__(self, name: str, value: bool = False):
        self.name = name
        self._value = value

    @property
    def value(self) -> bool:
        return self._value

    def set(self, value: bool) -> None:
        self._value = value


class Metrics:
    """Thread-safe registry of named metrics.

    Accessors are get-or-create, so several components can share a metric by name.
    """

    def __init__(self):
        self._metrics: dict[str, IntCounter | BooleanFlag] = {}
        self._lock = threading.Lock()

    def int_counter(self, name: str) -> IntCounter:
        return self._get_or_create(name, IntCounter)  # type: ignore[return-value]

    def boolean_flag(self, name: str) -> BooleanFlag:
        return self._get_or_create(name, BooleanFlag)  # type: ignore[return-value]

    def _get_or_create(self, name: str, metric_type: type) -> IntCounter | BooleanFlag:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = metric_type(name)
                self._metrics[name] = metric
            elif not isinstance(metric, metric_type):
                raise ValueError(f"Metric {name!r} is already registered as a {metric.kind}")
            return metric

    def snapshot(self) -> dict[str, int | bool]:
        with self._lock:
            return {name: metric.value for name, metric in self._metrics.items()}

    def to_batch(self) -> pa.RecordBatch:
        """Export all metrics as a record batch sorted by name."""
        with self._lock:
            metrics = sorted(self._metrics.values(), key=lambda m: m.name)
        schema = pa.schema([("name", pa.string()), ("kind", pa.string()), ("value", pa.int64())])
        return pa.RecordBatch.from_pydict(
            {
                "name": [m.name for m in metrics],
                "kind": [m.kind for m in metrics],
                "value": [int(m.value) for m in metrics],
            },
            schema=schema,
        )
