"""Timing context helper for performance logging."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class Stopwatch:
    started: float
    elapsed_ms: float = 0.0


@contextmanager
def log_timing(
    label: str,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
) -> Iterator[Stopwatch]:
    """Measures elapsed time for a block, logs it, and exposes it on the yielded stopwatch.

    The block may contain ``await`` expressions; the measurement covers the
    wall-clock time until the block exits, including failures.
    """
    watch = Stopwatch(started=time.perf_counter())
    try:
        yield watch
    finally:
        watch.elapsed_ms = (time.perf_counter() - watch.started) * 1000
        (logger or logging.getLogger(__name__)).log(
            level, "[Timing] %s: %.1f ms", label, watch.elapsed_ms
        )
