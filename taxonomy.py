"""Ordered competence scales used to rank items and learner state."""

from __future__ import annotations

from enum import Enum
from typing import Generic, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar


class StructuralLevel(str, Enum):
    """Structural complexity of a response (SOLO taxonomy)."""

    PRESTRUCTURAL = "prestructural"
    UNISTRUCTURAL = "unistructural"
    MULTISTRUCTURAL = "multistructural"
    RELATIONAL = "relational"
    EXTENDED_ABSTRACT = "extended_abstract"


class CognitiveLevel(str, Enum):
    """Cognitive demand of a task (revised Bloom taxonomy)."""

    REMEMBER = "remember"
    UNDERSTAND = "understand"
    APPLY = "apply"
    ANALYZE = "analyze"
    EVALUATE = "evaluate"
    CREATE = "create"


_L = TypeVar("_L", StructuralLevel, CognitiveLevel)


class LevelScale(Generic[_L]):
    """Totally ordered view over one of the level enumerations.

    ``next_level`` and ``previous_level`` step by one index and clamp at
    the ends of the scale instead of raising.
    """

    def __init__(self, enum_cls: Type[_L], descriptions: Optional[dict[str, str]] = None) -> None:
        self._enum_cls = enum_cls
        self._levels: List[_L] = list(enum_cls)
        self._descriptions = dict(descriptions or {})

    # ------------------------------------------------------------------
    def sequence(self) -> Sequence[_L]:
        """Return the levels in ascending order."""

        return tuple(self._levels)

    def lowest_level(self) -> _L:
        return self._levels[0]

    def highest_level(self) -> _L:
        return self._levels[-1]

    def get(self, level_id: str | _L) -> _L:
        """Coerce ``level_id`` to a member of the scale."""

        try:
            return self._enum_cls(level_id)
        except ValueError as exc:
            raise ValueError(f"Unknown {self._enum_cls.__name__}: {level_id}") from exc

    def index(self, level: str | _L) -> int:
        """Return the position of ``level`` in the ordered sequence."""

        return self._levels.index(self.get(level))

    def next_level(self, level: str | _L) -> _L:
        idx = self.index(level)
        return self._levels[min(idx + 1, len(self._levels) - 1)]

    def previous_level(self, level: str | _L) -> _L:
        idx = self.index(level)
        return self._levels[max(idx - 1, 0)]

    def is_higher(self, level: str | _L, than: str | _L) -> bool:
        return self.index(level) > self.index(than)

    def highest(self, levels: Iterable[str | _L]) -> _L:
        """Return the highest level in ``levels``; the first one wins ties."""

        values = [self.get(level) for level in levels]
        if not values:
            raise ValueError("highest() requires at least one level")
        return max(values, key=self._levels.index)

    def lowest(self, levels: Iterable[str | _L]) -> _L:
        values = [self.get(level) for level in levels]
        if not values:
            raise ValueError("lowest() requires at least one level")
        return min(values, key=self._levels.index)

    def formatted_overview(self) -> str:
        """Return a bullet list describing each level."""

        lines = []
        for level in self._levels:
            summary = f"- {level.value}"
            description = self._descriptions.get(level.value)
            if description:
                summary += f": {description}"
            lines.append(summary)
        return "\n".join(lines)

    def __iter__(self) -> Iterator[_L]:
        return iter(self._levels)

    def __len__(self) -> int:
        return len(self._levels)


STRUCTURAL_LEVELS: LevelScale[StructuralLevel] = LevelScale(
    StructuralLevel,
    {
        "prestructural": "no relevant aspect grasped, answers are guesses",
        "unistructural": "one relevant aspect at a time",
        "multistructural": "several aspects, not yet linked",
        "relational": "aspects linked into a whole",
        "extended_abstract": "generalises the whole to new situations",
    },
)
"""Singleton scale for structural complexity."""

COGNITIVE_LEVELS: LevelScale[CognitiveLevel] = LevelScale(
    CognitiveLevel,
    {
        "remember": "recall facts",
        "understand": "explain concepts",
        "apply": "use knowledge in a new situation",
        "analyze": "break a problem into parts",
        "evaluate": "judge strategies",
        "create": "produce new problems or solutions",
    },
)
"""Singleton scale for cognitive demand."""

DEFAULT_STRUCTURAL_LEVEL = StructuralLevel.UNISTRUCTURAL
