"""Fold a batch of attempts into the learner's cognitive profile.

The updater never mutates the profile it receives. It returns a new
``CognitiveProfile`` and leaves persistence to the caller, which makes a
whole-record read/compute/write cycle safe without engine-side locking.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from engines.level_selector import demonstrated_level
from schemas import (
    CONCRETE_OBJECTS,
    VISUAL_SUPPORT,
    Attempt,
    CognitiveProfile,
    ConceptMastery,
    ScaffoldingPreferences,
    ZoneOfProximalDevelopment,
    utcnow,
)
from taxonomy import COGNITIVE_LEVELS, DEFAULT_STRUCTURAL_LEVEL

_LOGGER = logging.getLogger(__name__)


def group_by_concept(attempts: Sequence[Attempt]) -> Dict[str, List[Attempt]]:
    """Group attempts by concept area, keeping first-seen and chronological order."""

    groups: Dict[str, List[Attempt]] = OrderedDict()
    for attempt in attempts:
        groups.setdefault(attempt.concept_area, []).append(attempt)
    return groups


class ProfileUpdater:
    """Rule-based profile update applied at the end of a session.

    Parameters
    ----------
    window_size:
        Number of trailing attempts used to infer the structural level of a
        concept seen for the first time. Concepts already in the profile keep
        their stored level.
    mastery_rate:
        Success rate within that window needed to credit the highest level
        attempted.
    preference_step:
        Amount a scaffolding preference weight grows when the matching aid
        was used during the batch.
    clock:
        Callable returning the current time; injectable for tests.
    """

    def __init__(
        self,
        *,
        window_size: int = 3,
        mastery_rate: float = 2 / 3,
        preference_step: float = 0.1,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if window_size <= 0:
            raise ValueError("window_size must be positive")
        if not 0.0 <= preference_step <= 1.0:
            raise ValueError("preference_step must be within [0, 1]")
        self.window_size = int(window_size)
        self.mastery_rate = float(mastery_rate)
        self.preference_step = float(preference_step)
        self._clock = clock or utcnow

    # ------------------------------------------------------------------
    @staticmethod
    def new_profile(learner_id: str, domain: str, *, now: Optional[datetime] = None) -> CognitiveProfile:
        """Default profile for a first encounter: every weight at 0.5."""

        return CognitiveProfile(learner_id=learner_id, domain=domain, last_updated=now or utcnow())

    def update(
        self,
        profile: Optional[CognitiveProfile],
        learner_id: str,
        domain: str,
        attempts: Sequence[Attempt],
        context_tag: Optional[str] = None,
    ) -> CognitiveProfile:
        now = self._clock()
        if profile is None:
            _LOGGER.info("Creating cognitive profile for learner %s in %s", learner_id, domain)
            base = self.new_profile(learner_id, domain, now=now)
        else:
            if profile.key != (learner_id, domain):
                _LOGGER.warning(
                    "Profile %s/%s updated with attempts for %s/%s; keeping the profile identity",
                    profile.learner_id,
                    profile.domain,
                    learner_id,
                    domain,
                )
            base = profile.model_copy(deep=True)

        concept_levels = dict(base.concept_levels)
        for concept_area, concept_attempts in group_by_concept(attempts).items():
            concept_levels[concept_area] = self._fold_concept(
                concept_levels.get(concept_area), concept_attempts, now
            )

        preferences = self._nudge_preferences(base.preferred_scaffolding, attempts)

        zpd = base.zpd
        if concept_levels:
            zpd = ZoneOfProximalDevelopment.from_levels(
                mastery.structural_level for mastery in concept_levels.values()
            )

        updated = base.model_copy(
            update={
                "concept_levels": concept_levels,
                "preferred_scaffolding": preferences,
                "zpd": zpd,
                "last_updated": now,
                "context_tag": context_tag if context_tag is not None else base.context_tag,
            }
        )
        _LOGGER.info(
            "Updated profile %s/%s from %d attempts; zpd %s..%s -> %s",
            updated.learner_id,
            updated.domain,
            len(attempts),
            zpd.independent_level.value,
            zpd.assisted_level.value,
            zpd.target_level.value,
        )
        return updated

    # ------------------------------------------------------------------
    def _fold_concept(
        self,
        previous: Optional[ConceptMastery],
        attempts: List[Attempt],
        now: datetime,
    ) -> ConceptMastery:
        correct_rate = sum(1 for a in attempts if a.is_correct) / len(attempts)

        if previous is not None:
            level = previous.structural_level
        else:
            level = demonstrated_level(
                attempts, window_size=self.window_size, mastery_rate=self.mastery_rate
            ) or DEFAULT_STRUCTURAL_LEVEL

        observed = [a.cognitive_level for a in attempts]
        if previous is not None:
            observed.append(previous.cognitive_level)

        return ConceptMastery(
            structural_level=level,
            cognitive_level=COGNITIVE_LEVELS.highest(observed),
            confidence=correct_rate,
            last_assessment=now,
            total_attempts=(previous.total_attempts if previous else 0) + len(attempts),
            success_rate=correct_rate,
        )

    def _nudge_preferences(
        self,
        preferences: ScaffoldingPreferences,
        attempts: Sequence[Attempt],
    ) -> ScaffoldingPreferences:
        used_visual = any(VISUAL_SUPPORT in a.scaffolding_used for a in attempts)
        used_concrete = any(CONCRETE_OBJECTS in a.scaffolding_used for a in attempts)

        values = preferences.model_dump()
        if used_visual:
            values["visual_learner"] = min(1.0, values["visual_learner"] + self.preference_step)
        if used_concrete:
            values["needs_concrete_materials"] = min(
                1.0, values["needs_concrete_materials"] + self.preference_step
            )
        return ScaffoldingPreferences.model_validate(values)
