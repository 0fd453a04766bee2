"""Lightweight wall-clock profiling for pipeline stages.

timer() measures one block and hands the elapsed seconds to a sink;
the per-frame pipeline passes ``FrameStats.record_timing`` so stage
timings (scan, trace, optimize, encode) travel with the frame result.
TimerAccumulator collects the same measurements across a batch run.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Sink = Callable[[str, float], None]


@contextmanager
def timer(name: str, sink: Optional[Sink] = None):
    """Time the enclosed block, also when it raises.

    Parameters
    ----------
    name : str
        Stage name passed to the sink
    sink : Optional[Callable[[str, float], None]]
        Receives ``(name, elapsed_seconds)``. Without one the time is
        logged at DEBUG as ``"<name>: <seconds> s"``.

    Examples
    --------
    >>> stats = FrameStats()
    >>> with timer("trace", sink=stats.record_timing):
    ...     segments = extract_segments(cluster, config, stats)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is None:
            logger.debug("%s: %.3f s", name, elapsed)
        else:
            sink(name, elapsed)


class TimerAccumulator:
    """Running total of repeated timer() measurements.

    Attributes
    ----------
    name : str
        Label used in repr()
    total_time : float
        Sum of measured seconds
    count : int
        Number of measurements
    slowest : float
        Longest single measurement in seconds
    """

    def __init__(self, name: str):
        self.name = name
        self.reset()

    def _add(self, _name: str, elapsed: float) -> None:
        self.total_time += elapsed
        self.count += 1
        self.slowest = max(self.slowest, elapsed)

    def measure(self):
        """Context manager adding the enclosed block's time."""
        return timer(self.name, sink=self._add)

    def mean(self) -> float:
        return self.total_time / self.count if self.count else 0.0

    def reset(self) -> None:
        self.total_time = 0.0
        self.count = 0
        self.slowest = 0.0

    def __repr__(self) -> str:
        return (
            f"TimerAccumulator({self.name}, mean={self.mean():.4f}s, "
            f"slowest={self.slowest:.4f}s, count={self.count})"
        )
