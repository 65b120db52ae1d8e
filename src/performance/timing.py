"""Wall-clock accounting for detection and measurement phases.

``time_block`` / ``time_function`` feed the process-wide ``TIMINGS``
collector under dotted bucket names (``detect.hydrogen-bond``,
``measurement.angle`` ...). ``TIMINGS.totals_ms(prefix)`` gives the per-bucket
cost for one family of phases. ``collect_into(collector)`` additionally
routes the timings taken inside a block to a private collector. Recording is switched off with
``LABVIZ_ENABLE_TIMING=0``.
"""
from __future__ import annotations
import functools
import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Dict, Any, Optional, Tuple

from loguru import logger

from utils.settings import get_settings


def timing_enabled() -> bool:
    return get_settings().enable_timing


@dataclass
class TimingRecord:
    total: float = 0.0
    calls: int = 0
    longest: float = 0.0
    items: int = 0

    def add(self, seconds: float, items: Optional[int]) -> None:
        self.total += seconds
        self.calls += 1
        self.longest = max(self.longest, seconds)
        if items:
            self.items += int(items)

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "total_time": round(self.total, 6),
            "calls": self.calls,
            "avg_time": round(self.total / self.calls, 6) if self.calls else 0.0,
            "max_time": round(self.longest, 6),
        }
        if self.items:
            out["total_items"] = self.items
            if self.total:
                out["items_per_sec"] = round(self.items / self.total, 3)
        return out


class TimingCollector:
    """Thread-safe map of bucket name -> TimingRecord."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, TimingRecord] = {}

    def add(self, key: str, duration: float, items: Optional[int] = None) -> None:
        if not timing_enabled():
            return
        with self._lock:
            self._records.setdefault(key, TimingRecord()).add(float(duration), items)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {k: rec.as_dict() for k, rec in self._records.items()}

    def totals_ms(self, prefix: str = "") -> Dict[str, float]:
        with self._lock:
            return {k: round(rec.total * 1000.0, 3)
                    for k, rec in self._records.items() if k.startswith(prefix)}

    def log_report(self, prefix: str = "") -> None:
        for key, ms in sorted(self.totals_ms(prefix).items(), key=lambda kv: -kv[1]):
            logger.debug(f"timing {key}: {ms:.3f} ms")

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


TIMINGS = TimingCollector()

# Extra collectors (e.g. one per analysis session) that also receive records
_ACTIVE: ContextVar[Tuple[TimingCollector, ...]] = ContextVar("active_timing_collectors", default=())


@contextmanager
def collect_into(collector: TimingCollector):
    """Also record every timing taken inside the block into ``collector``."""
    token = _ACTIVE.set(_ACTIVE.get() + (collector,))
    try:
        yield collector
    finally:
        _ACTIVE.reset(token)


def _record(name: str, seconds: float, items: Optional[int]) -> None:
    TIMINGS.add(name, seconds, items=items)
    for collector in _ACTIVE.get():
        collector.add(name, seconds, items=items)


@contextmanager
def time_block(name: str, items: Optional[int] = None):
    if not timing_enabled():
        yield
        return
    start = time.perf_counter()
    try:
        yield
    finally:
        _record(name, time.perf_counter() - start, items)


def time_function(name: Optional[str] = None, items_attr: Optional[str] = None):
    """Time every call of the decorated function under ``name`` (default: its __name__).

    A list / tuple result counts its length as items; otherwise ``items_attr``
    names the attribute (or dict key) holding the item count.
    """
    def deco(fn: Callable):
        bucket = name or fn.__name__

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            result = fn(*args, **kwargs)
            _record(bucket, time.perf_counter() - start, _item_count(result, items_attr))
            return result
        return wrapper
    return deco


def _item_count(result: Any, items_attr: Optional[str]) -> Optional[int]:
    if items_attr is None:
        return len(result) if isinstance(result, (list, tuple)) else None
    value = result.get(items_attr) if isinstance(result, dict) else getattr(result, items_attr, None)
    return int(value) if isinstance(value, (int, float)) else None


__all__ = [
    "time_block", "time_function", "timing_enabled", "collect_into",
    "TIMINGS", "TimingCollector", "TimingRecord",
]
