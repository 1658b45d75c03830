# liftlog/models.py
# -----------------------------------------------------------------------------
# SQLAlchemy models. Dates are YYYY-MM-DD strings, timestamps naive UTC.
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.db import Base, engine, log, utcnow


class Exercise(Base):
    """Static per-exercise configuration. weight_increment 0 marks a bodyweight movement."""
    __tablename__ = "exercise"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    category: Mapped[str] = mapped_column(String, nullable=False)      # muscle group
    weight_increment: Mapped[Optional[float]] = mapped_column(Float, nullable=True)


class Workout(Base):
    __tablename__ = "workout"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_workout_user_date"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[str] = mapped_column(String, nullable=False)           # YYYY-MM-DD
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class WorkoutExercise(Base):
    """One completed exercise entry on a workout day."""
    __tablename__ = "workout_exercise"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workout_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workout.id", ondelete="CASCADE"), nullable=False, index=True
    )
    exercise_name: Mapped[str] = mapped_column(String, nullable=False)
    exercise_category: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class SuggestionDecision(Base):
    """A user's accept/decline of an overload suggestion. One row per (user, exercise, weight)."""
    __tablename__ = "suggestion_decision"
    __table_args__ = (
        UniqueConstraint("user_id", "exercise_name", "current_weight", name="uq_decision_key"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    exercise_name: Mapped[str] = mapped_column(String, nullable=False)
    current_weight: Mapped[float] = mapped_column(Float, nullable=False)
    suggested_weight: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)         # accepted | declined
    decided_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class SuggestionDismissal(Base):
    """Legacy suppression record, still honoured alongside SuggestionDecision."""
    __tablename__ = "suggestion_dismissal"
    __table_args__ = (
        UniqueConstraint("user_id", "exercise_name", "weight", name="uq_dismissal_key"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    exercise_name: Mapped[str] = mapped_column(String, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    dismissed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class UserStreak(Base):
    __tablename__ = "user_streak"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    nutrition_current: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nutrition_best: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nutrition_last_updated: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    workout_current: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    workout_best: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    workout_last_updated: Mapped[Optional[str]] = mapped_column(String, nullable=True)


class UserNutritionGoals(Base):
    __tablename__ = "user_nutrition_goals"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    protein_goal: Mapped[float] = mapped_column(Float, nullable=False)
    carbs_goal: Mapped[float] = mapped_column(Float, nullable=False)
    fat_goal: Mapped[float] = mapped_column(Float, nullable=False)
    water_goal: Mapped[float] = mapped_column(Float, nullable=False)
    calories_goal: Mapped[float] = mapped_column(Float, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Meal(Base):
    __tablename__ = "meal"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)      # breakfast, lunch, dinner, snack
    protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    calories: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    recipe: Mapped[Optional[str]] = mapped_column(String, nullable=True)


class NutritionLog(Base):
    __tablename__ = "nutrition_log"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_nutrition_log_user_date"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[str] = mapped_column(String, nullable=False)
    total_protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_calories: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_water: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    creatine_taken: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class NutritionLogMeal(Base):
    """A meal eaten on a logged day. logged_* columns freeze the macros at save time."""
    __tablename__ = "nutrition_log_meal"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nutrition_log_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("nutrition_log.id", ondelete="CASCADE"), nullable=False, index=True
    )
    meal_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # meal may be deleted later
    meal_category: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    logged_meal_name: Mapped[str] = mapped_column(String, nullable=False)
    logged_protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    logged_carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    logged_fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    logged_calories: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class WeightRecord(Base):
    __tablename__ = "weight_record"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[str] = mapped_column(String, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)


class Ingredient(Base):
    """Ingredient library entry. Macros are per `per_amount` units (g, ml or items)."""
    __tablename__ = "ingredient"
    __table_args__ = {"extend_existing": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    calories: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    measurement_type: Mapped[str] = mapped_column(String, nullable=False, default="weight")
    unit: Mapped[str] = mapped_column(String, nullable=False, default="g")
    per_amount: Mapped[float] = mapped_column(Float, nullable=False, default=100)


class CustomWorkout(Base):
    """One exercise planned on a weekday of a user's custom split (Monday == 0)."""
    __tablename__ = "custom_workout"
    __table_args__ = (
        UniqueConstraint("user_id", "day_of_week", "exercise_id", name="uq_custom_workout_key"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    exercise_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exercise.id", ondelete="CASCADE"), nullable=False
    )


# -----------------------------------------------------------------------------
# Startup: create tables
# -----------------------------------------------------------------------------
async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database tables ready")
