# liftlog/schemas.py
# -----------------------------------------------------------------------------
# Pydantic schemas. Python attributes are snake_case; JSON is camelCase.
# -----------------------------------------------------------------------------

from __future__ import annotations

import re
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from liftlog.parsing import parse_count, parse_weight

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MEAL_CATEGORIES = ("breakfast", "lunch", "dinner", "snack")


def validate_date_str(v: str) -> str:
    if not _DATE_RE.match(v):
        raise ValueError("date must be YYYY-MM-DD format")
    try:
        datetime.strptime(v, "%Y-%m-%d")
    except ValueError:
        raise ValueError("date is not a valid calendar date")
    return v


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("name cannot be empty")
    return v


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthOut(ApiModel):
    ok: bool = True
    db_connected: bool = True
    db_type: str
    timestamp: str


class GenericResponse(ApiModel):
    message: str


class ActionResult(ApiModel):
    success: bool
    message: str


# -----------------------------------------------------------------------------
# Exercises
# -----------------------------------------------------------------------------
class ExerciseIn(ApiModel):
    name: str
    category: str
    weight_increment: Optional[float] = Field(None, ge=0)

    @field_validator("name", "category")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)


class ExerciseOut(ApiModel):
    id: int
    name: str
    category: str
    weight_increment: float
    model_config = ConfigDict(from_attributes=True)


class IncrementIn(ApiModel):
    weight_increment: float = Field(..., ge=0)


# -----------------------------------------------------------------------------
# Workouts
# -----------------------------------------------------------------------------
class WorkoutExerciseIn(ApiModel):
    """One exercise entry. weight/sets/reps may be sent as loose strings."""
    name: str
    category: Optional[str] = None
    completed: bool = True
    weight: Optional[float] = None
    sets: Optional[int] = None
    reps: Optional[int] = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("weight", mode="before")
    @classmethod
    def coerce_weight(cls, v):
        return parse_weight(v)

    @field_validator("sets", "reps", mode="before")
    @classmethod
    def coerce_count(cls, v):
        return parse_count(v)


class WorkoutDayIn(ApiModel):
    exercises: List[WorkoutExerciseIn] = Field(default_factory=list)


class WorkoutExerciseOut(ApiModel):
    name: str
    category: Optional[str] = None
    completed: bool = True
    weight: Optional[float] = None
    sets: Optional[int] = None
    reps: Optional[int] = None


class WorkoutDayOut(ApiModel):
    user_id: int
    date: str
    exercises: List[WorkoutExerciseOut] = Field(default_factory=list)


class WorkoutSaveOut(ActionResult):
    saved: int = 0
    all_completed: bool = False


class WorkoutDayResult(ApiModel):
    success: bool
    data: Optional[WorkoutDayOut] = None
    message: Optional[str] = None


class ExerciseWeightPointOut(ApiModel):
    date: str
    exercise_name: str
    weight: float


# -----------------------------------------------------------------------------
# Progressive overload
# -----------------------------------------------------------------------------
class SessionOut(ApiModel):
    date: str
    weight: float
    sets: int
    reps: int


class SuggestionOut(ApiModel):
    exercise_name: str
    current_weight: float
    suggested_weight: float
    weight_increase: float
    reason: str
    consecutive_sessions: int
    custom_increment: float
    last_three_sessions: List[SessionOut] = Field(default_factory=list)


class OverloadAnalysisOut(ApiModel):
    suggestions: List[SuggestionOut] = Field(default_factory=list)
    total_exercises: int = 0
    exercises_ready_for_increase: int = 0
    exercises_with_no_progression: int = 0


class SuggestionsResult(ApiModel):
    success: bool
    data: Optional[OverloadAnalysisOut] = None
    message: Optional[str] = None


class AcceptIn(ApiModel):
    exercise_name: str
    current_weight: float
    suggested_weight: float

    @field_validator("exercise_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)


class DeclineIn(ApiModel):
    exercise_name: str
    current_weight: float

    @field_validator("exercise_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)


class DecisionOut(ApiModel):
    exercise_name: str
    current_weight: float
    suggested_weight: float
    status: Literal["accepted", "declined"]
    created_at: str


class DecisionsResult(ApiModel):
    success: bool
    data: Optional[List[DecisionOut]] = None
    message: Optional[str] = None


# -----------------------------------------------------------------------------
# Streaks
# -----------------------------------------------------------------------------
class StreakOut(ApiModel):
    current: int = 0
    best: int = 0
    last_updated: Optional[str] = None


class StreaksOut(ApiModel):
    nutrition: StreakOut = Field(default_factory=StreakOut)
    workout: StreakOut = Field(default_factory=StreakOut)


# -----------------------------------------------------------------------------
# Nutrition
# -----------------------------------------------------------------------------
class NutritionGoalsIn(ApiModel):
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)
    water: float = Field(..., ge=0)


class NutritionGoalsOut(ApiModel):
    protein: float
    carbs: float
    fat: float
    water: float
    calories: float


class GoalsResult(ApiModel):
    success: bool
    message: str
    goals: Optional[NutritionGoalsOut] = None


class IngredientIn(ApiModel):
    """Macros are per `per_amount` g/ml, or per `amount_per` items for quantity ingredients."""
    name: str
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    calories: float = 0
    measurement_type: Literal["weight", "quantity", "volume"] = "weight"
    per_amount: Optional[float] = Field(None, gt=0)
    amount_per: Optional[float] = Field(None, gt=0)
    amount: float = Field(..., ge=0)


class IngredientLibraryIn(ApiModel):
    name: str
    protein: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)
    calories: float = Field(0, ge=0)
    measurement_type: Literal["weight", "quantity", "volume"] = "weight"
    unit: str = "g"
    per_amount: float = Field(100, gt=0)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)


class IngredientLibraryOut(ApiModel):
    id: int
    name: str
    protein: float
    carbs: float
    fat: float
    calories: float
    measurement_type: str
    unit: str
    per_amount: float
    model_config = ConfigDict(from_attributes=True)


class MealIngredientRefIn(ApiModel):
    """An ingredient taken from the library by id."""
    ingredient_id: int
    amount: float = Field(..., ge=0)


class MealIn(ApiModel):
    name: str
    category: str
    protein: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)
    calories: float = Field(0, ge=0)
    description: Optional[str] = None
    recipe: Optional[str] = None
    ingredients: Optional[List[IngredientIn]] = None
    library_ingredients: Optional[List[MealIngredientRefIn]] = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in MEAL_CATEGORIES:
            raise ValueError(f"category must be one of {list(MEAL_CATEGORIES)}")
        return v


class MealOut(ApiModel):
    id: int
    name: str
    category: str
    protein: float
    carbs: float
    fat: float
    calories: float
    description: Optional[str] = None
    recipe: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class MealSelectionIn(ApiModel):
    meal_id: int
    category: str
    quantity: float = Field(1, gt=0)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in MEAL_CATEGORIES:
            raise ValueError(f"category must be one of {list(MEAL_CATEGORIES)}")
        return v


class NutritionLogIn(ApiModel):
    meals: List[MealSelectionIn] = Field(default_factory=list)
    water: float = Field(0, ge=0)       # ml
    creatine_taken: bool = False


class LoggedMealOut(ApiModel):
    meal_id: Optional[int] = None
    name: str
    category: str
    quantity: float
    protein: float
    carbs: float
    fat: float
    calories: float


class NutritionTotalsOut(ApiModel):
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    calories: float = 0


class NutritionDayOut(ApiModel):
    user_id: int
    date: str
    meals: Dict[str, List[LoggedMealOut]] = Field(default_factory=dict)
    totals: NutritionTotalsOut = Field(default_factory=NutritionTotalsOut)
    water: float = 0
    creatine_taken: bool = False


class NutritionSaveOut(ActionResult):
    targets_met: bool = False


class NutritionDayResult(ApiModel):
    success: bool
    data: Optional[NutritionDayOut] = None
    message: Optional[str] = None


# -----------------------------------------------------------------------------
# Body weight
# -----------------------------------------------------------------------------
class WeightRecordIn(ApiModel):
    date: str
    weight: float = Field(..., gt=0)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return validate_date_str(v)


class WeightRecordOut(ApiModel):
    date: str
    weight: float
    model_config = ConfigDict(from_attributes=True)


# -----------------------------------------------------------------------------
# Custom weekly split
# -----------------------------------------------------------------------------
class CustomSplitIn(ApiModel):
    """Exercise ids per weekday (0 = Monday). Missing or empty days are rest days."""
    days: Dict[int, List[int]] = Field(default_factory=dict)

    @field_validator("days")
    @classmethod
    def validate_weekdays(cls, v: Dict[int, List[int]]) -> Dict[int, List[int]]:
        bad = [d for d in v if d < 0 or d > 6]
        if bad:
            raise ValueError(f"weekday keys must be 0-6, got {bad}")
        return {d: list(dict.fromkeys(ids)) for d, ids in v.items()}


class CustomSplitOut(ApiModel):
    is_custom: bool = False
    days: Dict[int, List[ExerciseOut]] = Field(default_factory=dict)


class CustomSplitResult(ApiModel):
    success: bool
    data: Optional[CustomSplitOut] = None
    message: Optional[str] = None


# -----------------------------------------------------------------------------
# Statistics
# -----------------------------------------------------------------------------
class MonthlyCountOut(ApiModel):
    month: str          # "Jan 2026"
    count: int


class WorkoutStatsOut(ApiModel):
    total_workouts: int = 0
    recent_workouts: int = 0
    completion_rate: int = 0      # percent
    monthly_workouts: List[MonthlyCountOut] = Field(default_factory=list)


class MacroAveragesOut(ApiModel):
    protein: int = 0
    carbs: int = 0
    fat: int = 0
    calories: int = 0


class NutritionStatsOut(ApiModel):
    total_logs: int = 0
    recent_logs: int = 0
    avg_macros: MacroAveragesOut = Field(default_factory=MacroAveragesOut)
    most_common_meal: str = "N/A"
    avg_water: int = 0


class WeightStatsOut(ApiModel):
    weight_history: List[WeightRecordOut] = Field(default_factory=list)
    weight_change: float = 0
    weight_change_percent: float = 0
    current_weight: float = 0


class WorkoutStatsResult(ApiModel):
    success: bool
    data: Optional[WorkoutStatsOut] = None
    message: Optional[str] = None


class NutritionStatsResult(ApiModel):
    success: bool
    data: Optional[NutritionStatsOut] = None
    message: Optional[str] = None


class WeightStatsResult(ApiModel):
    success: bool
    data: Optional[WeightStatsOut] = None
    message: Optional[str] = None
