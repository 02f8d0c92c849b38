import pytest

from settings import EngineSettings, SettingsError, get_env_bool, load_settings


def test_defaults_without_environment():
    assert load_settings({}) == EngineSettings()


def test_reads_overrides():
    settings = load_settings(
        {
            "MASTERY_RANDOM_SEED": "17",
            "MASTERY_FAST_RESPONSE_MS": "8000",
            "MASTERY_STRUGGLE_HINTS": "1.5",
            "MASTERY_VISUAL_PREFERENCE": "0.7",
            "MASTERY_DEBUG_SELECTION": "yes",
        }
    )
    assert settings.random_seed == 17
    assert settings.fast_response_ms == 8000.0
    assert settings.struggle_hint_limit == 1.5
    assert settings.visual_preference_threshold == 0.7
    assert settings.concrete_preference_threshold == 0.5
    assert settings.debug_selection


@pytest.mark.parametrize(
    "env",
    [
        {"MASTERY_RANDOM_SEED": "abc"},
        {"MASTERY_FAST_RESPONSE_MS": "fast"},
        {"MASTERY_VISUAL_PREFERENCE": "1.5"},
        {"MASTERY_STRUGGLE_HINTS": "-1"},
    ],
)
def test_invalid_values_raise(env):
    with pytest.raises(SettingsError):
        load_settings(env)


def test_get_env_bool(monkeypatch):
    monkeypatch.setenv("MASTERY_DEBUG_SELECTION", "off")
    assert get_env_bool("MASTERY_DEBUG_SELECTION", default=True) is False
    monkeypatch.delenv("MASTERY_DEBUG_SELECTION")
    assert get_env_bool("MASTERY_DEBUG_SELECTION", default=True) is True
