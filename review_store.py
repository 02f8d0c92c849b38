"""Persistence interfaces used around the mastery engine.

The engine itself never stores anything. Callers load a whole record,
hand it to the engine and save the record it returns. ``InMemoryStore``
is the reference implementation: records are kept as JSON strings so every
load returns an independent copy. The lock makes each single load or save
atomic; it does not serialise a load, compute, save cycle. Callers running
concurrent sessions for one learner must order those cycles themselves.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from schemas import CognitiveProfile, Flashcard, MistakeRecord, parse_json_safe, utcnow


class ProfileStore(Protocol):
    def load_profile(self, learner_id: str, domain: str) -> Optional[CognitiveProfile]: ...

    def save_profile(self, profile: CognitiveProfile) -> None: ...


class ScheduleStore(Protocol):
    def load_flashcard(self, card_id: str) -> Optional[Flashcard]: ...

    def save_flashcard(self, card: Flashcard) -> None: ...

    def load_mistake(self, mistake_id: str) -> Optional[MistakeRecord]: ...

    def save_mistake(self, record: MistakeRecord) -> None: ...

    def due_flashcards(self, now: Optional[datetime] = None) -> List[Flashcard]: ...

    def due_mistakes(
        self, learner_id: str, concept_area: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[MistakeRecord]: ...


class InMemoryStore:
    """Thread-safe dictionary-backed profile and schedule store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._profiles: Dict[Tuple[str, str], str] = {}
        self._flashcards: Dict[str, str] = {}
        self._mistakes: Dict[str, str] = {}

    # ----- profiles ----------------------------------------------------
    def load_profile(self, learner_id: str, domain: str) -> Optional[CognitiveProfile]:
        with self._lock:
            raw = self._profiles.get((learner_id, domain))
        return parse_json_safe(raw, CognitiveProfile) if raw is not None else None

    def save_profile(self, profile: CognitiveProfile) -> None:
        payload = profile.model_dump_json()
        with self._lock:
            self._profiles[profile.key] = payload

    # ----- flashcards --------------------------------------------------
    def load_flashcard(self, card_id: str) -> Optional[Flashcard]:
        with self._lock:
            raw = self._flashcards.get(card_id)
        return parse_json_safe(raw, Flashcard) if raw is not None else None

    def save_flashcard(self, card: Flashcard) -> None:
        payload = card.model_dump_json()
        with self._lock:
            self._flashcards[card.id] = payload

    def due_flashcards(self, now: Optional[datetime] = None) -> List[Flashcard]:
        now = now or utcnow()
        with self._lock:
            rows = list(self._flashcards.values())
        cards = [parse_json_safe(raw, Flashcard) for raw in rows]
        return [card for card in cards if card.schedule.is_due(now)]

    # ----- mistakes ----------------------------------------------------
    def load_mistake(self, mistake_id: str) -> Optional[MistakeRecord]:
        with self._lock:
            raw = self._mistakes.get(mistake_id)
        return parse_json_safe(raw, MistakeRecord) if raw is not None else None

    def find_mistake(self, learner_id: str, concept_area: str, item_id: str) -> Optional[MistakeRecord]:
        for record in self._all_mistakes():
            if (record.learner_id, record.concept_area, record.item_id) == (learner_id, concept_area, item_id):
                return record
        return None

    def save_mistake(self, record: MistakeRecord) -> None:
        payload = record.model_dump_json()
        with self._lock:
            self._mistakes[record.id] = payload

    def due_mistakes(
        self,
        learner_id: str,
        concept_area: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[MistakeRecord]:
        now = now or utcnow()
        return [
            record
            for record in self._all_mistakes()
            if record.learner_id == learner_id
            and (concept_area is None or record.concept_area == concept_area)
            and record.schedule.is_due(now)
        ]

    def _all_mistakes(self) -> List[MistakeRecord]:
        with self._lock:
            rows = list(self._mistakes.values())
        return [parse_json_safe(raw, MistakeRecord) for raw in rows]
