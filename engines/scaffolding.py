"""Decide which instructional aids accompany the next item."""

from __future__ import annotations

from typing import Optional, Sequence

from engines.performance import PerformanceAssessor, PerformanceBand
from schemas import Attempt, CognitiveProfile, ScaffoldingFlags


class ScaffoldingAdvisor:
    def __init__(
        self,
        assessor: Optional[PerformanceAssessor] = None,
        *,
        visual_threshold: float = 0.6,
        concrete_threshold: float = 0.5,
    ) -> None:
        self.assessor = assessor or PerformanceAssessor()
        self.visual_threshold = float(visual_threshold)
        self.concrete_threshold = float(concrete_threshold)

    def advise(
        self,
        profile: Optional[CognitiveProfile],
        recent_attempts: Sequence[Attempt],
    ) -> ScaffoldingFlags:
        """Struggling learners get every aid; concrete objects also need the preference."""

        struggling = self.assessor.assess(recent_attempts) is PerformanceBand.STRUGGLING
        visual_weight = profile.preferred_scaffolding.visual_learner if profile else 0.0
        concrete_weight = profile.preferred_scaffolding.needs_concrete_materials if profile else 0.0

        return ScaffoldingFlags(
            visual_support=struggling or visual_weight > self.visual_threshold,
            show_number_line=struggling,
            show_concrete_objects=struggling and concrete_weight > self.concrete_threshold,
            show_worked_example=struggling,
        )
