# liftlog/config.py
# -----------------------------------------------------------------------------
# Settings read once from the environment, plus the domain defaults that are
# injected into the rule functions at the API boundary.
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

# -----------------------------------------------------------------------------
# Progressive overload
# -----------------------------------------------------------------------------
SUPPRESSION_WINDOW_DAYS = int(os.getenv("SUPPRESSION_WINDOW_DAYS", "7"))
HISTORY_WINDOW_DAYS = int(os.getenv("HISTORY_WINDOW_DAYS", "30"))
DECISION_HISTORY_DAYS = int(os.getenv("DECISION_HISTORY_DAYS", "30"))
DEFAULT_WEIGHT_INCREMENT = float(os.getenv("DEFAULT_WEIGHT_INCREMENT", "5"))

# -----------------------------------------------------------------------------
# Rate limiting
# -----------------------------------------------------------------------------
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "300"))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "60"))  # seconds


@dataclass(frozen=True)
class OverloadRules:
    """Thresholds a run of sessions must meet before a weight increase is offered."""
    required_sessions: int = 3
    min_sets: int = 3
    min_reps: int = 12
    history_window_days: int = HISTORY_WINDOW_DAYS
    suppression_window_days: int = SUPPRESSION_WINDOW_DAYS
    default_increment: float = DEFAULT_WEIGHT_INCREMENT


@dataclass(frozen=True)
class NutritionGoals:
    protein: float = 190
    carbs: float = 280
    fat: float = 80
    water: float = 3000  # ml
    calories: float = 2600

    @classmethod
    def from_macros(cls, protein: float, carbs: float, fat: float, water: float) -> "NutritionGoals":
        """Build goals with calories derived from macros (4/4/9 kcal per gram)."""
        return cls(
            protein=protein,
            carbs=carbs,
            fat=fat,
            water=water,
            calories=protein * 4 + carbs * 4 + fat * 9,
        )


# Weekday numbers follow date.weekday(): Monday == 0 ... Sunday == 6.
_DEFAULT_SPLIT: Dict[int, Tuple[str, ...]] = {
    0: ("Chest", "Arms", "Shoulders"),
    1: ("Back", "Arms"),
    2: (),
    3: ("Legs",),
    4: (),
    5: ("Shoulders", "Arms"),
    6: (),
}


@dataclass(frozen=True)
class WeeklySchedule:
    """Exercise categories expected on each weekday. An empty tuple is a rest day.

    `exercises` is filled only for a user's custom split: the exercise names
    planned per weekday. When a day lists exercises, completion is measured
    against that list instead of every configured exercise in its categories.
    """
    days: Dict[int, Tuple[str, ...]] = field(default_factory=lambda: dict(_DEFAULT_SPLIT))
    max_expected_exercises: int = 8
    exercises: Dict[int, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_split(cls, split: Dict[int, List[Tuple[str, str]]]) -> "WeeklySchedule":
        """Build from {weekday: [(exercise name, category), ...]}."""
        days: Dict[int, Tuple[str, ...]] = {}
        exercises: Dict[int, Tuple[str, ...]] = {}
        for weekday in range(7):
            planned = split.get(weekday, [])
            days[weekday] = tuple(dict.fromkeys(cat for _, cat in planned))
            exercises[weekday] = tuple(name for name, _ in planned)
        return cls(days=days, exercises=exercises)

    def categories_for(self, weekday: int) -> Tuple[str, ...]:
        return tuple(self.days.get(weekday, ()))

    def exercises_for(self, weekday: int) -> Tuple[str, ...]:
        return tuple(self.exercises.get(weekday, ()))

    def is_workout_day(self, weekday: int) -> bool:
        return bool(self.categories_for(weekday))


DEFAULT_OVERLOAD_RULES = OverloadRules()
DEFAULT_NUTRITION_GOALS = NutritionGoals()
DEFAULT_SCHEDULE = WeeklySchedule()
