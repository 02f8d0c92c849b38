"""Environment-driven configuration for the mastery engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class SettingsError(ValueError):
    """Raised when an environment variable holds an invalid value."""


@dataclass(frozen=True)
class EngineSettings:
    random_seed: Optional[int] = None
    fast_response_ms: float = 10_000.0
    struggle_hint_limit: float = 2.0
    visual_preference_threshold: float = 0.6
    concrete_preference_threshold: float = 0.5
    debug_selection: bool = False


_DESCRIPTIONS = {
    "MASTERY_RANDOM_SEED": "Seed for the level selector's random source",
    "MASTERY_FAST_RESPONSE_MS": "Mean answer time below which a perfect window counts as excelling",
    "MASTERY_STRUGGLE_HINTS": "Mean hints per attempt above which the learner is struggling",
    "MASTERY_VISUAL_PREFERENCE": "Visual-learner weight that switches on visual support",
    "MASTERY_CONCRETE_PREFERENCE": "Concrete-materials weight that allows concrete objects",
    "MASTERY_DEBUG_SELECTION": "Log every candidate relaxation step at INFO",
}


def get_env_bool(name: str, default: bool = False, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Get boolean value from environment variable."""
    env = os.environ if environ is None else environ
    value = env.get(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on", "enabled"}


def get_env_float(
    name: str,
    default: float,
    *,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> float:
    env = os.environ if environ is None else environ
    raw = env.get(name)
    if raw is None or not raw.strip():
        logger.debug("Environment variable %s not set; using default %s", name, default)
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise SettingsError(f"{name} must be numeric, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise SettingsError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise SettingsError(f"{name} must be <= {maximum}, got {value}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> EngineSettings:
    """Read engine settings from the environment.

    Every variable is optional. Invalid values raise :class:`SettingsError`
    instead of silently falling back.
    """
    env = os.environ if environ is None else environ

    seed_raw = env.get("MASTERY_RANDOM_SEED")
    seed: Optional[int] = None
    if seed_raw is not None and seed_raw.strip():
        try:
            seed = int(seed_raw)
        except ValueError as exc:
            raise SettingsError(f"MASTERY_RANDOM_SEED must be an integer, got {seed_raw!r}") from exc

    settings = EngineSettings(
        random_seed=seed,
        fast_response_ms=get_env_float("MASTERY_FAST_RESPONSE_MS", 10_000.0, minimum=0.0, environ=env),
        struggle_hint_limit=get_env_float("MASTERY_STRUGGLE_HINTS", 2.0, minimum=0.0, environ=env),
        visual_preference_threshold=get_env_float(
            "MASTERY_VISUAL_PREFERENCE", 0.6, minimum=0.0, maximum=1.0, environ=env
        ),
        concrete_preference_threshold=get_env_float(
            "MASTERY_CONCRETE_PREFERENCE", 0.5, minimum=0.0, maximum=1.0, environ=env
        ),
        debug_selection=get_env_bool("MASTERY_DEBUG_SELECTION", environ=env),
    )

    for var, description in _DESCRIPTIONS.items():
        if var not in env:
            logger.debug("Optional environment variable not set: %s (%s)", var, description)
    return settings
