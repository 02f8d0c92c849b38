"""Pydantic schemas for the records exchanged with the mastery engine."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Literal, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from taxonomy import (
    DEFAULT_STRUCTURAL_LEVEL,
    STRUCTURAL_LEVELS,
    CognitiveLevel,
    StructuralLevel,
)

__all__ = [
    "SCAFFOLDING_AIDS",
    "Item",
    "Attempt",
    "ConceptMastery",
    "ScaffoldingPreferences",
    "MetacognitionLevels",
    "ZoneOfProximalDevelopment",
    "CognitiveProfile",
    "ScaffoldingFlags",
    "BreakthroughResult",
    "QualityModel",
    "ReviewSchedule",
    "Flashcard",
    "MistakeRecord",
    "parse_json_safe",
]

logger = logging.getLogger(__name__)

MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
DEFAULT_EASE_FACTOR = 2.5

VISUAL_SUPPORT = "visual_support"
NUMBER_LINE = "number_line"
CONCRETE_OBJECTS = "concrete_objects"
WORKED_EXAMPLE = "worked_example"
SCAFFOLDING_AIDS = (VISUAL_SUPPORT, NUMBER_LINE, CONCRETE_OBJECTS, WORKED_EXAMPLE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp(value: float, lower: float, upper: float, *, name: str) -> float:
    clamped = max(lower, min(upper, float(value)))
    if clamped != value:
        logger.warning("%s=%s outside [%s, %s]; clamped to %s", name, value, lower, upper, clamped)
    return clamped


# ---------------------------------------------------------------------------
# Content and attempts
# ---------------------------------------------------------------------------


class Item(BaseModel):
    """Practice item supplied by a content collaborator."""

    model_config = ConfigDict(frozen=True)

    id: str
    concept_area: str = Field(description="Concept-area tag owning the item, e.g. 'fractions'.")
    structural_level: StructuralLevel
    cognitive_level: CognitiveLevel
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Attempt(BaseModel):
    """One submitted answer. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    learner_id: str
    session_id: str
    item_id: str
    concept_area: str
    answer: str | int | float | List[str]
    correct_answer: str | int | float | List[str] | None = None
    is_correct: bool
    time_spent_ms: float = Field(default=0.0, ge=0.0, description="Elapsed answer time in milliseconds.")
    hints_used: int = Field(default=0, ge=0)
    scaffolding_used: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Names of the scaffolding aids shown with the item (see SCAFFOLDING_AIDS).",
    )
    structural_level: StructuralLevel
    cognitive_level: CognitiveLevel
    timestamp: datetime = Field(default_factory=utcnow)

    @classmethod
    def for_item(cls, item: Item, **fields: Any) -> "Attempt":
        """Build an attempt that copies the tag and levels from ``item``."""

        fields.setdefault("item_id", item.id)
        fields.setdefault("concept_area", item.concept_area)
        fields.setdefault("structural_level", item.structural_level)
        fields.setdefault("cognitive_level", item.cognitive_level)
        return cls(**fields)


# ---------------------------------------------------------------------------
# Learner profile
# ---------------------------------------------------------------------------


class ConceptMastery(BaseModel):
    structural_level: StructuralLevel = DEFAULT_STRUCTURAL_LEVEL
    cognitive_level: CognitiveLevel = CognitiveLevel.REMEMBER
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    last_assessment: datetime = Field(default_factory=utcnow)
    total_attempts: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class _UnitWeights(BaseModel):
    """Weights that always stay inside [0, 1]."""

    @field_validator("*", mode="after")
    @classmethod
    def _clamp_unit(cls, value: float, info: ValidationInfo) -> float:
        return _clamp(value, 0.0, 1.0, name=info.field_name)


class ScaffoldingPreferences(_UnitWeights):
    visual_learner: float = 0.5
    needs_concrete_materials: float = 0.5
    needs_worked_examples: float = 0.5
    prefers_fast_pace: float = 0.5
    struggles_with_abstraction: float = 0.5


class MetacognitionLevels(_UnitWeights):
    self_reflection: float = 0.5
    strategy_awareness: float = 0.5
    error_detection: float = 0.5


class ZoneOfProximalDevelopment(BaseModel):
    """Band between independent and assisted performance.

    ``target_level`` is always one step above ``assisted_level``, clamped at
    the top of the scale. A stored zone that disagrees is corrected on load.
    """

    independent_level: StructuralLevel = DEFAULT_STRUCTURAL_LEVEL
    assisted_level: StructuralLevel = DEFAULT_STRUCTURAL_LEVEL
    target_level: StructuralLevel = StructuralLevel.MULTISTRUCTURAL

    @model_validator(mode="after")
    def _target_above_assisted(self) -> "ZoneOfProximalDevelopment":
        expected = STRUCTURAL_LEVELS.next_level(self.assisted_level)
        if self.target_level != expected:
            if "target_level" in self.model_fields_set:
                logger.warning(
                    "zpd target_level=%s does not follow assisted_level=%s; using %s",
                    self.target_level.value,
                    self.assisted_level.value,
                    expected.value,
                )
            self.target_level = expected
        return self

    @classmethod
    def from_levels(cls, levels: Iterable[StructuralLevel]) -> "ZoneOfProximalDevelopment":
        values = list(levels)
        highest = STRUCTURAL_LEVELS.highest(values)
        return cls(
            independent_level=STRUCTURAL_LEVELS.lowest(values),
            assisted_level=highest,
            target_level=STRUCTURAL_LEVELS.next_level(highest),
        )


class CognitiveProfile(BaseModel):
    """Per learner, per domain state folded from attempt batches."""

    learner_id: str
    domain: str
    last_updated: datetime = Field(default_factory=utcnow)
    concept_levels: Dict[str, ConceptMastery] = Field(default_factory=dict)
    preferred_scaffolding: ScaffoldingPreferences = Field(default_factory=ScaffoldingPreferences)
    metacognition: MetacognitionLevels = Field(default_factory=MetacognitionLevels)
    zpd: ZoneOfProximalDevelopment = Field(default_factory=ZoneOfProximalDevelopment)
    context_tag: str | None = Field(
        default=None,
        description="Age group or context the profile was last updated with. Informational only.",
    )

    @property
    def key(self) -> tuple[str, str]:
        return (self.learner_id, self.domain)


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------


class ScaffoldingFlags(BaseModel):
    model_config = ConfigDict(frozen=True)

    visual_support: bool = False
    show_number_line: bool = False
    show_concrete_objects: bool = False
    show_worked_example: bool = False

    def active_aids(self) -> FrozenSet[str]:
        """Names of the aids that are switched on, for ``Attempt.scaffolding_used``."""

        pairs = (
            (self.visual_support, VISUAL_SUPPORT),
            (self.show_number_line, NUMBER_LINE),
            (self.show_concrete_objects, CONCRETE_OBJECTS),
            (self.show_worked_example, WORKED_EXAMPLE),
        )
        return frozenset(name for enabled, name in pairs if enabled)


class BreakthroughResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_breakthrough: bool = False
    from_level: StructuralLevel | None = None
    to_level: StructuralLevel | None = None


# ---------------------------------------------------------------------------
# Spaced repetition
# ---------------------------------------------------------------------------


class QualityModel(str, Enum):
    """How a review outcome is scored."""

    FLASHCARD = "flashcard"  # quality 0-5, SM-2 ease formula
    MISTAKE = "mistake"  # boolean pass/fail, flat ease steps


class ReviewSchedule(BaseModel):
    item_id: str
    quality_model: QualityModel = QualityModel.FLASHCARD
    interval_days: int = Field(default=1, ge=1)
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = Field(default=0, ge=0)
    last_reviewed: datetime | None = None
    next_due: datetime | None = None
    needs_review: bool = False

    @field_validator("ease_factor", mode="after")
    @classmethod
    def _clamp_ease(cls, value: float) -> float:
        return _clamp(value, MIN_EASE_FACTOR, MAX_EASE_FACTOR, name="ease_factor")

    def is_due(self, now: datetime | None = None) -> bool:
        if self.next_due is None:
            return True
        return self.next_due <= (now or utcnow())


class Flashcard(BaseModel):
    """Recall card scored on the 0-5 quality scale."""

    id: str
    front: str
    back: str
    material_id: str | None = None
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    schedule: ReviewSchedule

    @model_validator(mode="before")
    @classmethod
    def _default_schedule(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("schedule") is None and "id" in data:
            data = dict(data)
            data["schedule"] = ReviewSchedule(item_id=str(data["id"]), quality_model=QualityModel.FLASHCARD)
        return data


class MistakeRecord(BaseModel):
    """Missed item tracked for re-review with boolean outcomes."""

    id: str
    learner_id: str
    item_id: str
    concept_area: str
    prompt: str = ""
    last_wrong_answer: str | int | float | List[str] | None = None
    correct_answer: str | int | float | List[str] | None = None
    mistake_count: int = Field(default=1, ge=0)
    last_mistake_at: datetime = Field(default_factory=utcnow)
    structural_level: StructuralLevel | None = None
    cognitive_level: CognitiveLevel | None = None
    schedule: ReviewSchedule


# ---------------------------------------------------------------------------
# Persisted JSON helpers
# ---------------------------------------------------------------------------

_T = TypeVar("_T", bound=BaseModel)


def _find_first_json_object(text: str) -> tuple[str, int]:
    start = text.find("{")
    while start != -1:
        depth = 0
        for idx in range(start, len(text)):
            char = text[idx]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start : idx + 1]
                    try:
                        json.loads(candidate)
                    except ValueError:
                        break
                    return candidate, idx + 1
        start = text.find("{", start + 1)
    raise ValueError("No JSON object found in provided text")


def parse_json_safe(text: str, model: Type[_T]) -> _T:
    """Parse a persisted record, tolerating surrounding whitespace or framing.

    Trailing content after the first JSON object is rejected with the
    original validation error.
    """

    try:
        return model.model_validate_json(text)
    except ValidationError as exc:
        first_error = exc

    try:
        snippet, end = _find_first_json_object(text)
    except ValueError:
        raise first_error

    if text[end:].strip():
        raise first_error
    return model.model_validate_json(snippet)
