import random
import sys
from datetime import datetime, timezone
from itertools import count
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas import Attempt, CognitiveProfile, ConceptMastery, Item  # noqa: E402
from taxonomy import CognitiveLevel, StructuralLevel  # noqa: E402

NOW = datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc)


class ScriptedRandom(random.Random):
    """Random source that replays ``values`` from ``random()`` before falling back to the seed.

    ``getrandbits`` is defined here so that ``choice`` keeps drawing from the
    seeded generator instead of consuming scripted values.
    """

    def __init__(self, values=(), seed=0):
        super().__init__(seed)
        self._values = list(values)

    def random(self):
        if self._values:
            return self._values.pop(0)
        return super().random()

    def getrandbits(self, k):
        return super().getrandbits(k)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def scripted_rng():
    return ScriptedRandom


@pytest.fixture
def make_item():
    ids = count(1)

    def _make(
        structural=StructuralLevel.UNISTRUCTURAL,
        cognitive=CognitiveLevel.REMEMBER,
        concept_area="addition",
        **overrides,
    ):
        fields = {
            "id": f"item-{next(ids)}",
            "concept_area": concept_area,
            "structural_level": structural,
            "cognitive_level": cognitive,
            "difficulty": "easy",
        }
        fields.update(overrides)
        return Item(**fields)

    return _make


@pytest.fixture
def make_attempt():
    ids = count(1)

    def _make(
        correct=True,
        structural=StructuralLevel.UNISTRUCTURAL,
        cognitive=CognitiveLevel.REMEMBER,
        concept_area="addition",
        **overrides,
    ):
        fields = {
            "id": f"attempt-{next(ids)}",
            "learner_id": "test-user",
            "session_id": "test-session",
            "item_id": "test-question",
            "concept_area": concept_area,
            "answer": "4",
            "correct_answer": "4",
            "is_correct": correct,
            "time_spent_ms": 5000,
            "hints_used": 0,
            "scaffolding_used": frozenset(),
            "structural_level": structural,
            "cognitive_level": cognitive,
            "timestamp": NOW,
        }
        fields.update(overrides)
        return Attempt(**fields)

    return _make


@pytest.fixture
def make_profile():
    def _make(concept_levels=None, **overrides):
        fields = {
            "learner_id": "test-user",
            "domain": "mathematics",
            "last_updated": NOW,
            "concept_levels": {
                area: ConceptMastery(structural_level=level, last_assessment=NOW)
                for area, level in (concept_levels or {}).items()
            },
        }
        fields.update(overrides)
        return CognitiveProfile(**fields)

    return _make
