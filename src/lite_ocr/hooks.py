"""Injectable diagnostics for the OCR pipeline.

Stages report what they saw (tensor shapes, score ranges, mask statistics,
box counts) as named events with keyword fields. Where those events end up
is the caller's choice: the default forwards them to :mod:`logging`.
"""

import logging
import threading
from collections import Counter
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)


class PipelineHooks:
    """No-op sink. Subclass and override :meth:`emit` to observe a run."""

    def emit(self, event: str, **fields: Any) -> None:
        pass


class LoggingHooks(PipelineHooks):
    """Forward events to a logger at a fixed level."""

    def __init__(self, log: logging.Logger = logger, level: int = logging.DEBUG):
        self.log = log
        self.level = level

    def emit(self, event: str, **fields: Any) -> None:
        if not self.log.isEnabledFor(self.level):
            return
        detail = " ".join(f"{k}={v}" for k, v in fields.items())
        self.log.log(self.level, "%s %s", event, detail)


class RecordingHooks(PipelineHooks):
    """Keep every event in memory; handy in tests and notebooks."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.counters: Counter = Counter()

    def emit(self, event: str, **fields: Any) -> None:
        # Per-box events may arrive from worker threads
        with self._lock:
            self.events.append((event, fields))
            self.counters[event] += 1

    def find(self, event: str) -> List[Dict[str, Any]]:
        return [fields for name, fields in self.events if name == event]


def array_stats(values) -> Dict[str, Any]:
    """Summary fields for a numeric array: range and a few leading values."""
    flat = values.reshape(-1)
    if flat.size == 0:
        return {"size": 0}
    return {
        "size": int(flat.size),
        "min": round(float(flat.min()), 4),
        "max": round(float(flat.max()), 4),
        "head": [round(float(v), 4) for v in flat[:5]],
    }
