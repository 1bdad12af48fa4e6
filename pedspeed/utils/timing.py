from __future__ import annotations

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Iterator


@dataclass
class StageTimer:
    """Wall-clock milliseconds per named stage of one frame cycle."""

    clock: Callable[[], float] = time.perf_counter
    stages_ms: Dict[str, float] = field(default_factory=dict)
    start_ts: float = field(init=False)

    def __post_init__(self) -> None:
        self.start_ts = self.clock()

    @contextmanager
    def stage(self, stage_name: str) -> Iterator[None]:
        t0 = self.clock()
        try:
            yield
        finally:
            # A stage entered twice in one cycle accumulates.
            self.stages_ms[stage_name] = self.stages_ms.get(stage_name, 0.0) + (self.clock() - t0) * 1000.0

    def total_ms(self) -> float:
        return (self.clock() - self.start_ts) * 1000.0


class FPSMeter:
    """Frames per second over a sliding window of recent ticks."""

    def __init__(self, window: int = 30, clock: Callable[[], float] = time.perf_counter):
        if window < 2:
            raise ValueError(f"window must be >= 2, got {window}")
        self.clock = clock
        self._ticks: Deque[float] = deque(maxlen=window)
        self.fps = 0.0

    def tick(self) -> float:
        self._ticks.append(self.clock())
        if len(self._ticks) >= 2:
            span = self._ticks[-1] - self._ticks[0]
            if span > 0:
                self.fps = (len(self._ticks) - 1) / span
        return self.fps
