from datetime import timedelta

import pytest

from engines.level_selector import RelaxationStage
from engines.mastery_engine import AdaptiveMasteryEngine
from engines.performance import PerformanceBand
from review_store import InMemoryStore
from schemas import QualityModel
from settings import EngineSettings
from taxonomy import CognitiveLevel, StructuralLevel


@pytest.fixture
def engine():
    return AdaptiveMasteryEngine(EngineSettings(random_seed=1234))


def test_seeded_engines_make_the_same_choices(make_item):
    pool = [
        make_item(level, cognitive, "fractions")
        for level in StructuralLevel
        for cognitive in (CognitiveLevel.REMEMBER, CognitiveLevel.APPLY)
    ]
    first = AdaptiveMasteryEngine(EngineSettings(random_seed=99))
    second = AdaptiveMasteryEngine(EngineSettings(random_seed=99))

    picks_a = [first.select_next(pool, None, [], "fractions").id for _ in range(20)]
    picks_b = [second.select_next(pool, None, [], "fractions").id for _ in range(20)]

    assert picks_a == picks_b


def test_select_next_signals_no_candidate(engine):
    assert engine.select_next([], None, [], "fractions") is None


def test_recommend_next_annotates_selection(scripted_rng, make_item, make_attempt):
    engine = AdaptiveMasteryEngine(EngineSettings(), rng=scripted_rng([0.1]))
    easy = make_item(StructuralLevel.PRESTRUCTURAL, CognitiveLevel.REMEMBER, "fractions")
    attempts = [make_attempt(correct=False, concept_area="fractions") for _ in range(3)]

    recommendation = engine.recommend_next([easy], None, attempts, "fractions")

    assert recommendation.item is easy
    assert recommendation.band is PerformanceBand.STRUGGLING
    assert recommendation.stage is RelaxationStage.EXACT
    assert recommendation.scaffolding.show_worked_example
    assert "number_line" in recommendation.scaffolding.active_aids()


def test_settings_thresholds_reach_the_advisor(make_attempt, make_profile):
    engine = AdaptiveMasteryEngine(EngineSettings(visual_preference_threshold=0.4))
    flags = engine.scaffold(make_profile(), [make_attempt()] * 3)
    assert flags.visual_support


def test_session_round_trip_through_store(engine, make_item, make_attempt):
    store = InMemoryStore()
    levels = [StructuralLevel.UNISTRUCTURAL] * 2 + [StructuralLevel.MULTISTRUCTURAL] * 3
    attempts = [
        make_attempt(structural=level, concept_area="fractions", learner_id="alice")
        for level in levels
    ]

    outcome = engine.close_session(
        store.load_profile("alice", "mathematics"), "alice", "mathematics", attempts, "10-12"
    )
    store.save_profile(outcome.profile)

    assert outcome.breakthrough.has_breakthrough
    assert outcome.breakthrough.to_level == StructuralLevel.MULTISTRUCTURAL
    stored = store.load_profile("alice", "mathematics")
    assert stored.concept_levels["fractions"].structural_level == StructuralLevel.MULTISTRUCTURAL
    assert stored.concept_levels["fractions"].total_attempts == 5
    assert stored.zpd.target_level == StructuralLevel.RELATIONAL

    pool = [
        make_item(StructuralLevel.MULTISTRUCTURAL, CognitiveLevel.REMEMBER, "fractions"),
        make_item(StructuralLevel.RELATIONAL, CognitiveLevel.REMEMBER, "fractions"),
    ]
    fast = [make_attempt(concept_area="fractions", time_spent_ms=2000) for _ in range(3)]
    assert engine.select_next(pool, stored, fast, "fractions") is pool[1]


def test_mistake_review_flow(engine, make_attempt, now):
    store = InMemoryStore()
    miss = make_attempt(correct=False, concept_area="fractions", item_id="q-3", answer="1/3")

    existing = store.find_mistake(miss.learner_id, "fractions", "q-3")
    store.save_mistake(engine.scheduler.schedule_mistake(existing, miss, now=now))
    assert [m.item_id for m in store.due_mistakes(miss.learner_id, now=now)] == ["q-3"]

    record = store.find_mistake(miss.learner_id, "fractions", "q-3")
    reviewed = record.model_copy(
        update={"schedule": engine.review_outcome(record.schedule, True, now=now)}
    )
    store.save_mistake(reviewed)

    assert store.due_mistakes(miss.learner_id, "fractions", now=now) == []
    assert store.load_mistake(record.id).schedule.repetitions == 1


def test_first_review_needs_an_item_id(engine, now):
    with pytest.raises(ValueError):
        engine.review_outcome(None, True, now=now)

    schedule = engine.review_outcome(
        None, True, item_id="card-1", quality_model=QualityModel.MISTAKE, now=now
    )

    assert schedule.item_id == "card-1"
    assert schedule.quality_model is QualityModel.MISTAKE
    assert schedule.interval_days == 1
    assert schedule.repetitions == 1
    assert schedule.next_due == now + timedelta(days=1)
