from __future__ import annotations

import enum
import logging
from typing import AbstractSet, Dict, Optional, Set

from .facts import FactSnapshot

logger = logging.getLogger(__name__)


class Condition(enum.Enum):
    NVIDIA = "nvidia"
    AMD = "amd"
    INTEL = "intel"
    GAMING = "gaming"
    LAPTOP = "laptop"
    VM = "vm"
    ASUS = "asus"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, name: str) -> "Condition":
        key = (name or "").strip().lower()
        if key == cls.UNKNOWN.value:
            return cls.UNKNOWN
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


# Hardware conditions are auto-detected only; user preferences never enable them.
_FACT_CHECKS = {
    Condition.NVIDIA: lambda f: f.has_gpu("nvidia"),
    Condition.AMD: lambda f: f.has_gpu("amd"),
    Condition.INTEL: lambda f: f.has_gpu("intel"),
    Condition.LAPTOP: lambda f: f.is_laptop,
    Condition.VM: lambda f: f.is_virtual_machine,
    Condition.ASUS: lambda f: f.is_asus_hardware,
}

# Opt-in conditions: never detected, only enabled by the matching preference token.
_PREFERENCE_CHECKS = {
    Condition.GAMING: "gaming",
}


def evaluate(
    condition: str,
    facts: FactSnapshot,
    preferences: AbstractSet[str],
    *,
    reported: Optional[Set[str]] = None,
) -> bool:
    """Decide whether a package-list condition holds.

    Unknown names are false. They are logged once per name when a
    ``reported`` set is shared across calls, otherwise on every call.
    """

    kind = Condition.parse(condition)
    check = _FACT_CHECKS.get(kind)
    if check is not None:
        return bool(check(facts))

    token = _PREFERENCE_CHECKS.get(kind)
    if token is not None:
        return token in preferences

    name = (condition or "").strip().lower()
    if reported is None or name not in reported:
        logger.warning("Unrecognized condition %r, treating as false", condition)
        if reported is not None:
            reported.add(name)
    return False


class ConditionEvaluator:
    """Evaluator bound to one fact snapshot and preference set.

    Results are cached per condition name; unknown names are reported once.
    """

    def __init__(self, facts: FactSnapshot, preferences: AbstractSet[str]) -> None:
        self.facts = facts
        self.preferences = frozenset(p.strip().lower() for p in preferences)
        self._cache: Dict[str, bool] = {}
        self._reported: Set[str] = set()

    def __call__(self, condition: Optional[str]) -> bool:
        if condition is None:
            return True
        key = condition.strip().lower()
        if key not in self._cache:
            self._cache[key] = evaluate(key, self.facts, self.preferences, reported=self._reported)
        return self._cache[key]

    @property
    def unknown_conditions(self) -> Set[str]:
        return set(self._reported)
