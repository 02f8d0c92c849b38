"""Pick the target competence levels and the next item for a learner.

Selection runs in three steps. The learner's current structural level is
read from the profile (or inferred from the last attempts), shifted by the
performance band, and paired with a weighted random cognitive level. The
candidate pool is then filtered with a four stage relaxation so that an
item is always returned when the pool is non-empty, while exact matches
are preferred whenever they exist.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from engines.performance import PerformanceAssessor, PerformanceBand
from schemas import Attempt, CognitiveProfile, Item
from taxonomy import (
    DEFAULT_STRUCTURAL_LEVEL,
    STRUCTURAL_LEVELS,
    CognitiveLevel,
    StructuralLevel,
)

_LOGGER = logging.getLogger(__name__)

# Upper bounds of the cumulative draw; the remainder is the stretch band.
COGNITIVE_WEIGHTS: Tuple[Tuple[float, CognitiveLevel], ...] = (
    (0.4, CognitiveLevel.REMEMBER),
    (0.7, CognitiveLevel.UNDERSTAND),
    (0.9, CognitiveLevel.APPLY),
)
STRETCH_LEVELS = (CognitiveLevel.ANALYZE, CognitiveLevel.EVALUATE)


class RelaxationStage(str, Enum):
    EXACT = "exact"  # structural + cognitive + concept area
    CONCEPT = "concept"  # structural + concept area
    STRUCTURAL = "structural"  # structural only
    ANY = "any"  # whole pool


@dataclass(frozen=True)
class SelectionPlan:
    """Everything the selector decided for one request."""

    band: PerformanceBand
    current_level: StructuralLevel
    target_structural: StructuralLevel
    target_cognitive: CognitiveLevel
    stage: Optional[RelaxationStage]
    candidates: Tuple[Item, ...]
    item: Optional[Item]

    @property
    def has_candidate(self) -> bool:
        return self.item is not None


def demonstrated_level(
    attempts: Sequence[Attempt],
    *,
    window_size: int = 3,
    mastery_rate: float = 2 / 3,
) -> Optional[StructuralLevel]:
    """Infer a structural level from the last ``window_size`` attempts.

    Returns ``None`` when there are too few attempts to judge. A window at
    or above ``mastery_rate`` yields the highest level attempted in it;
    otherwise the default starting level.
    """

    if len(attempts) < window_size:
        return None
    window = list(attempts)[-window_size:]
    correct_rate = sum(1 for a in window if a.is_correct) / len(window)
    if correct_rate >= mastery_rate:
        return STRUCTURAL_LEVELS.highest(a.structural_level for a in window)
    return DEFAULT_STRUCTURAL_LEVEL


class LevelSelector:
    """Choose the next item for a concept area.

    Parameters
    ----------
    assessor:
        Performance assessor used to band the recent attempts.
    rng:
        Random source for the cognitive level draw and the final pick.
        Inject a seeded or scripted ``random.Random`` for reproducibility.
    log_stages:
        Log each relaxation step at INFO instead of DEBUG.
    """

    def __init__(
        self,
        assessor: Optional[PerformanceAssessor] = None,
        *,
        rng: Optional[random.Random] = None,
        window_size: int = 3,
        mastery_rate: float = 2 / 3,
        log_stages: bool = False,
    ) -> None:
        if not 0.0 < mastery_rate <= 1.0:
            raise ValueError("mastery_rate must be in (0, 1]")
        self.assessor = assessor or PerformanceAssessor()
        self.rng = rng or random.Random()
        self.window_size = int(window_size)
        self.mastery_rate = float(mastery_rate)
        self._stage_log_level = logging.INFO if log_stages else logging.DEBUG

    # ----- level decisions ---------------------------------------------
    def current_structural_level(
        self,
        profile: Optional[CognitiveProfile],
        recent_attempts: Sequence[Attempt],
        concept_area: str,
    ) -> StructuralLevel:
        if profile is not None and concept_area in profile.concept_levels:
            return profile.concept_levels[concept_area].structural_level

        level = demonstrated_level(
            recent_attempts, window_size=self.window_size, mastery_rate=self.mastery_rate
        )
        return level if level is not None else DEFAULT_STRUCTURAL_LEVEL

    @staticmethod
    def target_structural_level(current: StructuralLevel, band: PerformanceBand) -> StructuralLevel:
        if band is PerformanceBand.EXCELLING:
            return STRUCTURAL_LEVELS.next_level(current)
        if band is PerformanceBand.STRUGGLING:
            return STRUCTURAL_LEVELS.previous_level(current)
        return current

    def draw_cognitive_level(self, band: PerformanceBand) -> CognitiveLevel:
        """Weighted draw: 40% remember, 30% understand, 20% apply, 10% stretch.

        The stretch band only reaches analyze/evaluate for excelling
        learners and falls back to apply otherwise.
        """

        roll = self.rng.random()
        for upper, level in COGNITIVE_WEIGHTS:
            if roll < upper:
                return level
        if band is PerformanceBand.EXCELLING:
            return STRETCH_LEVELS[0] if self.rng.random() < 0.5 else STRETCH_LEVELS[1]
        return CognitiveLevel.APPLY

    # ----- candidate filtering -----------------------------------------
    def filter_candidates(
        self,
        pool: Sequence[Item],
        target_structural: StructuralLevel,
        target_cognitive: CognitiveLevel,
        concept_area: str,
    ) -> Tuple[Optional[RelaxationStage], List[Item]]:
        if not pool:
            return None, []

        stages = (
            (
                RelaxationStage.EXACT,
                lambda q: q.structural_level == target_structural
                and q.cognitive_level == target_cognitive
                and q.concept_area == concept_area,
            ),
            (
                RelaxationStage.CONCEPT,
                lambda q: q.structural_level == target_structural and q.concept_area == concept_area,
            ),
            (RelaxationStage.STRUCTURAL, lambda q: q.structural_level == target_structural),
        )
        for stage, predicate in stages:
            candidates = [item for item in pool if predicate(item)]
            if candidates:
                return stage, candidates
            _LOGGER.log(
                self._stage_log_level,
                "No %s match for %s/%s in %r; relaxing",
                stage.value,
                target_structural.value,
                target_cognitive.value,
                concept_area,
            )
        return RelaxationStage.ANY, list(pool)

    # ----- public API --------------------------------------------------
    def plan(
        self,
        pool: Sequence[Item],
        profile: Optional[CognitiveProfile],
        recent_attempts: Sequence[Attempt],
        concept_area: str,
    ) -> SelectionPlan:
        band = self.assessor.assess(recent_attempts)
        current = self.current_structural_level(profile, recent_attempts, concept_area)
        target_structural = self.target_structural_level(current, band)
        target_cognitive = self.draw_cognitive_level(band)

        stage, candidates = self.filter_candidates(pool, target_structural, target_cognitive, concept_area)
        item = self.rng.choice(candidates) if candidates else None
        if item is None:
            _LOGGER.info("No candidate items for concept area %r", concept_area)
        else:
            _LOGGER.log(
                self._stage_log_level,
                "Selected %s (%s stage, band=%s, target=%s/%s)",
                item.id,
                stage.value if stage else None,
                band.value,
                target_structural.value,
                target_cognitive.value,
            )

        return SelectionPlan(
            band=band,
            current_level=current,
            target_structural=target_structural,
            target_cognitive=target_cognitive,
            stage=stage,
            candidates=tuple(candidates),
            item=item,
        )

    def select(
        self,
        pool: Sequence[Item],
        profile: Optional[CognitiveProfile],
        recent_attempts: Sequence[Attempt],
        concept_area: str,
    ) -> Optional[Item]:
        """Return the next item, or ``None`` when the pool is empty."""

        return self.plan(pool, profile, recent_attempts, concept_area).item
