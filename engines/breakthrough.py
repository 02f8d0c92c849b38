"""Detect a sustained jump to a higher structural level."""

from __future__ import annotations

import logging
from typing import Sequence

from schemas import Attempt, BreakthroughResult
from taxonomy import STRUCTURAL_LEVELS

logger = logging.getLogger(__name__)


class BreakthroughDetector:
    """Compare the ends of the last ``window_size`` attempts.

    A breakthrough needs the newest attempt to sit above the oldest one in
    the window, and the final ``confirm_size`` attempts to be correct and
    all at that new level.
    """

    def __init__(self, *, window_size: int = 5, confirm_size: int = 3) -> None:
        if confirm_size <= 0 or window_size < confirm_size:
            raise ValueError("window_size must be >= confirm_size > 0")
        self.window_size = int(window_size)
        self.confirm_size = int(confirm_size)

    def detect(self, attempts: Sequence[Attempt]) -> BreakthroughResult:
        if len(attempts) < self.window_size:
            return BreakthroughResult()

        window = list(attempts)[-self.window_size :]
        old_level = window[0].structural_level
        new_level = window[-1].structural_level
        if not STRUCTURAL_LEVELS.is_higher(new_level, old_level):
            return BreakthroughResult()

        tail = window[-self.confirm_size :]
        if all(a.is_correct and a.structural_level == new_level for a in tail):
            logger.info(
                "Breakthrough for learner %s: %s -> %s",
                tail[-1].learner_id,
                old_level.value,
                new_level.value,
            )
            return BreakthroughResult(has_breakthrough=True, from_level=old_level, to_level=new_level)
        return BreakthroughResult()
