"""Opt-in timing spans for load, index and sync phases.

``span()`` is a no-op unless a :class:`Profiler` has been activated with
``enable_profiler``; the CLI does that for ``--profile``.
"""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from time import perf_counter
from typing import Any, Dict, Iterator, List

_CURRENT: ContextVar["Profiler | None"] = ContextVar("_CURRENT_PROFILER", default=None)


@dataclass(frozen=True)
class SpanRecord:
    name: str
    duration_ms: float
    depth: int
    meta: Dict[str, Any] = field(default_factory=dict)


class Profiler:
    """Records nested spans in completion order."""

    def __init__(self) -> None:
        self._records: List[SpanRecord] = []
        self._depth = 0

    @property
    def records(self) -> List[SpanRecord]:
        return list(self._records)

    @contextmanager
    def span(self, name: str, **meta: Any) -> Iterator[None]:
        depth = self._depth
        self._depth += 1
        started = perf_counter()
        try:
            yield
        finally:
            self._depth -= 1
            elapsed = (perf_counter() - started) * 1000.0
            self._records.append(SpanRecord(name, elapsed, depth, dict(meta)))

    def totals_ms(self) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for record in self._records:
            totals[record.name] = totals.get(record.name, 0.0) + record.duration_ms
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {"spans": [asdict(r) for r in self._records], "totals_ms": self.totals_ms()}

    def render(self) -> str:
        """Human-readable timing table, slowest phase first."""
        rows = sorted(self.totals_ms().items(), key=lambda kv: kv[1], reverse=True)
        return "\n".join(f"{ms:10.2f} ms  {name}" for name, ms in rows)


@contextmanager
def enable_profiler(profiler: Profiler) -> Iterator[Profiler]:
    token = _CURRENT.set(profiler)
    try:
        yield profiler
    finally:
        _CURRENT.reset(token)


@contextmanager
def span(name: str, **meta: Any) -> Iterator[None]:
    profiler = _CURRENT.get()
    if profiler is None:
        yield
        return
    with profiler.span(name, **meta):
        yield


__all__ = ["Profiler", "SpanRecord", "enable_profiler", "span"]
