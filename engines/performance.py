"""Reduce a recent window of attempts to a performance band."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from schemas import Attempt


class PerformanceBand(str, Enum):
    EXCELLING = "excelling"
    ON_TRACK = "on-track"
    STRUGGLING = "struggling"


@dataclass(frozen=True)
class WindowStats:
    correct_rate: float
    mean_hints: float
    mean_time_ms: float
    size: int


class PerformanceAssessor:
    """Classify the last ``window_size`` attempts.

    Windows shorter than ``window_size`` are reported as on-track.
    """

    def __init__(
        self,
        *,
        window_size: int = 3,
        fast_response_ms: float = 10_000.0,
        struggle_hint_limit: float = 2.0,
        struggle_rate: float = 0.5,
    ) -> None:
        if window_size <= 0:
            raise ValueError("window_size must be positive")
        if not 0.0 < struggle_rate <= 1.0:
            raise ValueError("struggle_rate must be in (0, 1]")
        self.window_size = int(window_size)
        self.fast_response_ms = float(fast_response_ms)
        self.struggle_hint_limit = float(struggle_hint_limit)
        self.struggle_rate = float(struggle_rate)

    def window_stats(self, attempts: Sequence[Attempt]) -> WindowStats | None:
        if len(attempts) < self.window_size:
            return None
        window = list(attempts)[-self.window_size :]
        size = len(window)
        return WindowStats(
            correct_rate=sum(1 for a in window if a.is_correct) / size,
            mean_hints=sum(a.hints_used for a in window) / size,
            mean_time_ms=sum(a.time_spent_ms for a in window) / size,
            size=size,
        )

    def assess(self, attempts: Sequence[Attempt]) -> PerformanceBand:
        stats = self.window_stats(attempts)
        if stats is None:
            return PerformanceBand.ON_TRACK

        if stats.correct_rate == 1.0 and stats.mean_hints == 0 and stats.mean_time_ms < self.fast_response_ms:
            return PerformanceBand.EXCELLING
        if stats.correct_rate < self.struggle_rate or stats.mean_hints > self.struggle_hint_limit:
            return PerformanceBand.STRUGGLING
        return PerformanceBand.ON_TRACK
