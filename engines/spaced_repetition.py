"""Spaced repetition scheduling for recall cards and recorded mistakes."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, TypeVar, Union

from schemas import (
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
    Attempt,
    Flashcard,
    MistakeRecord,
    QualityModel,
    ReviewSchedule,
    utcnow,
)

logger = logging.getLogger(__name__)

Reviewable = Union[ReviewSchedule, Flashcard, MistakeRecord]
_R = TypeVar("_R", ReviewSchedule, Flashcard, MistakeRecord)


def _schedule_of(item: Reviewable) -> ReviewSchedule:
    return item if isinstance(item, ReviewSchedule) else item.schedule


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class SpacedRepetitionScheduler:
    """SM-2 family scheduler shared by flashcards and mistakes.

    Both item classes share the interval ladder (1 day, 6 days, then
    ``interval * ease``) and the reset on failure. They differ only in how
    the ease factor moves: flashcards use the SM-2 quality formula, mistakes
    take flat steps of ``+mistake_ease_bonus`` / ``-mistake_ease_penalty``.
    """

    def __init__(
        self,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        first_interval: int = 1,
        second_interval: int = 6,
        pass_quality: int = 3,
        mistake_ease_bonus: float = 0.1,
        mistake_ease_penalty: float = 0.2,
    ) -> None:
        if first_interval < 1 or second_interval < first_interval:
            raise ValueError("intervals must satisfy 1 <= first_interval <= second_interval")
        if not 0 <= pass_quality <= 5:
            raise ValueError("pass_quality must be within 0-5")
        self._clock = clock or utcnow
        self.first_interval = int(first_interval)
        self.second_interval = int(second_interval)
        self.pass_quality = int(pass_quality)
        self.mistake_ease_bonus = float(mistake_ease_bonus)
        self.mistake_ease_penalty = float(mistake_ease_penalty)

    # ----- core transition ---------------------------------------------
    @staticmethod
    def sm2_ease(ease: float, quality: int) -> float:
        """SM-2 ease update, kept inside the allowed ease range."""

        miss = 5 - quality
        updated = ease + (0.1 - miss * (0.08 + miss * 0.02))
        return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, updated))

    def _next_ease(self, schedule: ReviewSchedule, passed: bool, quality: Optional[int]) -> float:
        if schedule.quality_model is QualityModel.FLASHCARD:
            return self.sm2_ease(schedule.ease_factor, quality)
        if passed:
            return min(MAX_EASE_FACTOR, schedule.ease_factor + self.mistake_ease_bonus)
        return max(MIN_EASE_FACTOR, schedule.ease_factor - self.mistake_ease_penalty)

    def _next_interval(self, schedule: ReviewSchedule) -> int:
        if schedule.repetitions == 0:
            return self.first_interval
        if schedule.repetitions == 1:
            return self.second_interval
        return max(1, _round_half_up(schedule.interval_days * schedule.ease_factor))

    def review_outcome(
        self,
        schedule: Optional[ReviewSchedule],
        passed: bool,
        quality: Optional[int] = None,
        *,
        item_id: Optional[str] = None,
        quality_model: Optional[QualityModel] = None,
        now: Optional[datetime] = None,
    ) -> ReviewSchedule:
        """Return the schedule that follows one review.

        ``schedule`` may be ``None`` for an item reviewed for the first time;
        ``item_id`` is then required. For flashcards the 0-5 ``quality``
        decides the outcome; without one, ``passed`` maps to 4 or 1.
        """

        now = now or self._clock()
        if schedule is None:
            if not item_id:
                raise ValueError("item_id is required when no schedule exists yet")
            model = quality_model or (QualityModel.FLASHCARD if quality is not None else QualityModel.MISTAKE)
            schedule = ReviewSchedule(item_id=item_id, quality_model=model)

        if schedule.quality_model is QualityModel.FLASHCARD:
            if quality is None:
                quality = 4 if passed else 1
            if not 0 <= quality <= 5:
                raise ValueError(f"quality must be within 0-5, got {quality}")
            passed = quality >= self.pass_quality

        ease = self._next_ease(schedule, passed, quality)
        if passed:
            interval = self._next_interval(schedule)
            repetitions = schedule.repetitions + 1
        else:
            interval = 1
            repetitions = 0

        updated = schedule.model_copy(
            update={
                "interval_days": interval,
                "ease_factor": ease,
                "repetitions": repetitions,
                "last_reviewed": now,
                "next_due": now + timedelta(days=interval),
                "needs_review": not passed,
            }
        )
        logger.debug(
            "Review %s (%s): %s -> interval=%d ease=%.2f reps=%d",
            schedule.item_id,
            schedule.quality_model.value,
            "pass" if passed else "fail",
            interval,
            ease,
            repetitions,
        )
        return updated

    # ----- item classes ------------------------------------------------
    def review_flashcard(self, card: Flashcard, quality: int, *, now: Optional[datetime] = None) -> Flashcard:
        schedule = self.review_outcome(card.schedule, quality >= self.pass_quality, quality, now=now)
        passed = not schedule.needs_review
        return card.model_copy(
            update={
                "schedule": schedule,
                "correct_count": card.correct_count + (1 if passed else 0),
                "incorrect_count": card.incorrect_count + (0 if passed else 1),
            }
        )

    def review_mistake(
        self, record: MistakeRecord, passed: bool, *, now: Optional[datetime] = None
    ) -> MistakeRecord:
        now = now or self._clock()
        schedule = self.review_outcome(record.schedule, passed, now=now)
        if passed:
            return record.model_copy(update={"schedule": schedule})
        return record.model_copy(
            update={
                "schedule": schedule,
                "mistake_count": record.mistake_count + 1,
                "last_mistake_at": now,
            }
        )

    def schedule_mistake(
        self,
        existing: Optional[MistakeRecord],
        attempt: Attempt,
        *,
        prompt: str = "",
        now: Optional[datetime] = None,
    ) -> MistakeRecord:
        """Record a missed attempt for later review.

        A first miss is due immediately. Missing the same item again resets
        its schedule as a failed review and remembers the newest wrong answer.
        """

        now = now or self._clock()
        if existing is None:
            return MistakeRecord(
                id=f"mistake-{attempt.learner_id}-{attempt.item_id}",
                learner_id=attempt.learner_id,
                item_id=attempt.item_id,
                concept_area=attempt.concept_area,
                prompt=prompt,
                last_wrong_answer=attempt.answer,
                correct_answer=attempt.correct_answer,
                mistake_count=1,
                last_mistake_at=now,
                structural_level=attempt.structural_level,
                cognitive_level=attempt.cognitive_level,
                schedule=ReviewSchedule(
                    item_id=attempt.item_id,
                    quality_model=QualityModel.MISTAKE,
                    needs_review=True,
                ),
            )

        updated = self.review_mistake(existing, False, now=now)
        return updated.model_copy(
            update={
                "last_wrong_answer": attempt.answer,
                "correct_answer": attempt.correct_answer
                if attempt.correct_answer is not None
                else existing.correct_answer,
                "prompt": prompt or existing.prompt,
            }
        )

    # ----- queries -----------------------------------------------------
    def get_due(
        self,
        items: Iterable[_R],
        now: Optional[datetime] = None,
        *,
        concept_area: Optional[str] = None,
    ) -> List[_R]:
        """Items whose next review is unset or has passed, never-scheduled first."""

        now = now or self._clock()
        due = [
            item
            for item in items
            if _schedule_of(item).is_due(now)
            and (concept_area is None or getattr(item, "concept_area", None) == concept_area)
        ]
        due.sort(key=lambda item: (_schedule_of(item).next_due is not None, _schedule_of(item).next_due or now))
        return due

    def review_load(
        self,
        items: Iterable[Reviewable],
        now: Optional[datetime] = None,
        days: int = 7,
    ) -> Dict[str, int]:
        """Count reviews per day for the next ``days`` days; overdue items land on today."""

        if days <= 0:
            raise ValueError("days must be positive")
        now = now or self._clock()
        today = now.date()
        load = {(today + timedelta(days=offset)).isoformat(): 0 for offset in range(days)}
        for item in items:
            next_due = _schedule_of(item).next_due
            due_date = today if next_due is None or next_due.date() < today else next_due.date()
            key = due_date.isoformat()
            if key in load:
                load[key] += 1
        return load
