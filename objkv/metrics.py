"""
Backend Operation Metrics

Collects per-operation call counts and latencies for the key/value adapter.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass
class OperationStats:
    calls: int = 0
    errors: int = 0
    time_total: float = 0.0
    time_last: float = 0.0

    @property
    def time_average(self) -> float:
        return self.time_total / self.calls if self.calls else 0.0


@dataclass
class BackendMetrics:
    """
    Metrics collected while serving key/value operations.
    
    ``operations`` is keyed by operation name (``"put"``); ``to_dict`` prefixes
    each key with ``namespace`` (``"objkv.put"``).
    """
    
    namespace: str = "objkv"
    operations: dict[str, OperationStats] = field(default_factory=dict)
    
    def measure_since(self, operation: str, start: float, *, failed: bool = False) -> float:
        """Record one call of ``operation`` that began at ``start`` (perf_counter)."""
        elapsed = time.perf_counter() - start
        stats = self.operations.setdefault(operation, OperationStats())
        stats.calls += 1
        stats.time_total += elapsed
        stats.time_last = elapsed
        if failed:
            stats.errors += 1
        return elapsed
    
    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.measure_since(operation, start, failed=True)
            raise
        self.measure_since(operation, start)
    
    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary for serialization."""
        return {
            f"{self.namespace}.{name}": {
                "calls": stats.calls,
                "errors": stats.errors,
                "time_total": stats.time_total,
                "time_last": stats.time_last,
                "time_average": stats.time_average,
            }
            for name, stats in sorted(self.operations.items())
        }
    
    def get_summary(self) -> dict[str, Any]:
        """Get a summary of key metrics."""
        calls = sum(stats.calls for stats in self.operations.values())
        errors = sum(stats.errors for stats in self.operations.values())
        return {
            "total_calls": calls,
            "total_errors": errors,
            "error_rate": errors / calls if calls > 0 else 0.0,
            "total_time_seconds": sum(stats.time_total for stats in self.operations.values()),
        }


__all__ = ["BackendMetrics", "OperationStats"]
