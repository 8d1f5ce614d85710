"""In-process counters and latency aggregates for persistence calls.

Complements the Prometheus counters in platform_monitoring: these are cheap,
always on, and exposed by the /healthz endpoints as a snapshot.
"""
from __future__ import annotations

import threading
from typing import Dict, Tuple

_lock = threading.Lock()
_counter: Dict[Tuple[str, str], int] = {}
_errors: Dict[Tuple[str, str], int] = {}
_latency: Dict[Tuple[str, str], Dict[str, float]] = {}


def inc(op: str, table: str, failed: bool = False):
    key = (op, table)
    with _lock:
        _counter[key] = _counter.get(key, 0) + 1
        if failed:
            _errors[key] = _errors.get(key, 0) + 1


def observe(op: str, table: str, ms: float):  # min/max/count/total
    key = (op, table)
    with _lock:
        bucket = _latency.setdefault(key, {"count": 0, "total": 0.0, "min": ms, "max": ms})
        bucket["count"] += 1
        bucket["total"] += ms
        bucket["min"] = min(bucket["min"], ms)
        bucket["max"] = max(bucket["max"], ms)


def snapshot():
    out = []
    with _lock:
        for (op, table), c in _counter.items():
            row = {"op": op, "table": table, "count": c, "errors": _errors.get((op, table), 0)}
            lat = _latency.get((op, table))
            if lat and lat["count"]:
                row.update(
                    lat_min_ms=round(lat["min"], 2),
                    lat_max_ms=round(lat["max"], 2),
                    lat_avg_ms=round(lat["total"] / lat["count"], 2),
                )
            out.append(row)
    return sorted(out, key=lambda r: (r["op"], r["table"]))


def reset():
    """Test helper."""
    with _lock:
        _counter.clear()
        _errors.clear()
        _latency.clear()


__all__ = ["inc", "observe", "snapshot", "reset"]
