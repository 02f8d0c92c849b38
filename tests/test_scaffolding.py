from engines.scaffolding import ScaffoldingAdvisor
from schemas import ScaffoldingPreferences


def _struggling(make_attempt):
    return [make_attempt(correct=False) for _ in range(3)]


def test_no_profile_and_on_track_gets_no_aids(make_attempt):
    flags = ScaffoldingAdvisor().advise(None, [make_attempt()])
    assert flags.active_aids() == frozenset()


def test_struggling_learner_gets_every_aid_but_concrete(make_attempt, make_profile):
    flags = ScaffoldingAdvisor().advise(make_profile(), _struggling(make_attempt))
    assert flags.visual_support
    assert flags.show_number_line
    assert flags.show_worked_example
    # default concrete-materials weight of 0.5 is not above the threshold
    assert not flags.show_concrete_objects


def test_concrete_objects_need_preference(make_attempt, make_profile):
    profile = make_profile(preferred_scaffolding=ScaffoldingPreferences(needs_concrete_materials=0.6))
    assert ScaffoldingAdvisor().advise(profile, _struggling(make_attempt)).show_concrete_objects
    assert not ScaffoldingAdvisor().advise(profile, [make_attempt()] * 3).show_concrete_objects


def test_visual_learner_gets_visual_support_without_struggling(make_attempt, make_profile):
    profile = make_profile(preferred_scaffolding=ScaffoldingPreferences(visual_learner=0.7))
    flags = ScaffoldingAdvisor().advise(profile, [make_attempt()] * 3)
    assert flags.visual_support
    assert not flags.show_number_line

    borderline = make_profile(preferred_scaffolding=ScaffoldingPreferences(visual_learner=0.6))
    assert not ScaffoldingAdvisor().advise(borderline, []).visual_support
