"""Adaptive mastery engine facade.

The engine keeps no learner state of its own. Every call receives the
profile, attempts or schedule it needs and returns new records, so one
instance can serve any number of learners. The only instance state is
configuration and the random source used by the level selector.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from engines.breakthrough import BreakthroughDetector
from engines.level_selector import LevelSelector, RelaxationStage, SelectionPlan
from engines.performance import PerformanceAssessor, PerformanceBand
from engines.profile_updater import ProfileUpdater
from engines.scaffolding import ScaffoldingAdvisor
from engines.spaced_repetition import SpacedRepetitionScheduler
from schemas import (
    Attempt,
    BreakthroughResult,
    CognitiveProfile,
    Item,
    QualityModel,
    ReviewSchedule,
    ScaffoldingFlags,
)
from settings import EngineSettings, load_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recommendation:
    """Next item for the learner together with the aids to show with it."""

    item: Optional[Item]
    scaffolding: ScaffoldingFlags
    band: PerformanceBand
    plan: SelectionPlan

    @property
    def stage(self) -> Optional[RelaxationStage]:
        return self.plan.stage


@dataclass(frozen=True)
class SessionOutcome:
    profile: CognitiveProfile
    breakthrough: BreakthroughResult


class AdaptiveMasteryEngine:
    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        rng: Optional[random.Random] = None,
        profile_updater: Optional[ProfileUpdater] = None,
        scheduler: Optional[SpacedRepetitionScheduler] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.rng = rng or random.Random(self.settings.random_seed)
        self.assessor = PerformanceAssessor(
            fast_response_ms=self.settings.fast_response_ms,
            struggle_hint_limit=self.settings.struggle_hint_limit,
        )
        self.selector = LevelSelector(
            self.assessor, rng=self.rng, log_stages=self.settings.debug_selection
        )
        self.advisor = ScaffoldingAdvisor(
            self.assessor,
            visual_threshold=self.settings.visual_preference_threshold,
            concrete_threshold=self.settings.concrete_preference_threshold,
        )
        self.detector = BreakthroughDetector()
        self.profile_updater = profile_updater or ProfileUpdater()
        self.scheduler = scheduler or SpacedRepetitionScheduler()

    # ----- inbound operations ------------------------------------------
    def assess(self, recent_attempts: Sequence[Attempt]) -> PerformanceBand:
        return self.assessor.assess(recent_attempts)

    def select_next(
        self,
        pool: Sequence[Item],
        profile: Optional[CognitiveProfile],
        recent_attempts: Sequence[Attempt],
        concept_area: str,
    ) -> Optional[Item]:
        """Next item for ``concept_area``; ``None`` means no candidate exists."""

        return self.selector.select(pool, profile, recent_attempts, concept_area)

    def scaffold(
        self,
        profile: Optional[CognitiveProfile],
        recent_attempts: Sequence[Attempt],
    ) -> ScaffoldingFlags:
        return self.advisor.advise(profile, recent_attempts)

    def detect_breakthrough(self, attempts: Sequence[Attempt]) -> BreakthroughResult:
        return self.detector.detect(attempts)

    def update_profile(
        self,
        profile: Optional[CognitiveProfile],
        learner_id: str,
        domain: str,
        attempts: Sequence[Attempt],
        context_tag: Optional[str] = None,
    ) -> CognitiveProfile:
        return self.profile_updater.update(profile, learner_id, domain, attempts, context_tag)

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
        """Next schedule after one review; ``item_id`` is needed when ``schedule`` is ``None``."""

        return self.scheduler.review_outcome(
            schedule, passed, quality, item_id=item_id, quality_model=quality_model, now=now
        )

    # ----- session flow ------------------------------------------------
    def recommend_next(
        self,
        pool: Sequence[Item],
        profile: Optional[CognitiveProfile],
        recent_attempts: Sequence[Attempt],
        concept_area: str,
    ) -> Recommendation:
        """Pick the next item and annotate it with scaffolding."""

        plan = self.selector.plan(pool, profile, recent_attempts, concept_area)
        flags = self.advisor.advise(profile, recent_attempts)
        return Recommendation(item=plan.item, scaffolding=flags, band=plan.band, plan=plan)

    def close_session(
        self,
        profile: Optional[CognitiveProfile],
        learner_id: str,
        domain: str,
        attempts: Sequence[Attempt],
        context_tag: Optional[str] = None,
    ) -> SessionOutcome:
        """Fold the session into the profile and check for a breakthrough."""

        updated = self.update_profile(profile, learner_id, domain, attempts, context_tag)
        breakthrough = self.detect_breakthrough(attempts)
        if breakthrough.has_breakthrough:
            logger.info(
                "Session for %s/%s ended with a breakthrough to %s",
                learner_id,
                domain,
                breakthrough.to_level.value,
            )
        return SessionOutcome(profile=updated, breakthrough=breakthrough)
