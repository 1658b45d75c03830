# liftlog/workouts.py
# -----------------------------------------------------------------------------
# Exercise configuration and whole-day workout logs.
# A day is always saved as a unit: old entries are deleted and the completed
# ones re-inserted inside one transaction.
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import date, timedelta
from typing import List

from fastapi import HTTPException
from sqlalchemy import asc, delete, select
from sqlalchemy.exc import SQLAlchemyError

from liftlog.config import DEFAULT_OVERLOAD_RULES, DEFAULT_SCHEDULE, WeeklySchedule
from liftlog.db import async_session, log, utcnow
from liftlog.models import Exercise, Workout, WorkoutExercise
from liftlog.schemas import (
    ExerciseIn,
    ExerciseOut,
    ExerciseWeightPointOut,
    WorkoutDayIn,
    WorkoutDayOut,
    WorkoutDayResult,
    WorkoutExerciseOut,
    WorkoutSaveOut,
)
from liftlog.streaks import check_workout_completion, update_workout_streak


def exercise_to_out(e: Exercise) -> ExerciseOut:
    inc = e.weight_increment
    return ExerciseOut(
        id=e.id,
        name=e.name,
        category=e.category,
        weight_increment=DEFAULT_OVERLOAD_RULES.default_increment if inc is None else inc,
    )


# -----------------------------------------------------------------------------
# Exercise configuration
# -----------------------------------------------------------------------------
async def list_exercises() -> List[ExerciseOut]:
    async with async_session() as s:
        result = await s.execute(
            select(Exercise).order_by(asc(Exercise.category), asc(Exercise.name))
        )
        rows = result.scalars().all()
    return [exercise_to_out(e) for e in rows]


async def upsert_exercise(body: ExerciseIn) -> ExerciseOut:
    async with async_session() as s:
        e = await s.scalar(select(Exercise).where(Exercise.name == body.name))
        if e is None:
            e = Exercise(name=body.name)
            s.add(e)
        e.category = body.category
        e.weight_increment = body.weight_increment
        await s.commit()
        await s.refresh(e)
        return exercise_to_out(e)


async def update_increment(exercise_id: int, weight_increment: float) -> ExerciseOut:
    async with async_session() as s:
        e = await s.get(Exercise, exercise_id)
        if not e:
            raise HTTPException(404, "Exercise not found")
        e.weight_increment = weight_increment
        await s.commit()
        await s.refresh(e)
        return exercise_to_out(e)


# -----------------------------------------------------------------------------
# Workout days
# -----------------------------------------------------------------------------
async def save_workout(
    user_id: int,
    day: date,
    body: WorkoutDayIn,
    schedule: WeeklySchedule = DEFAULT_SCHEDULE,
) -> WorkoutSaveOut:
    completed = [ex for ex in body.exercises if ex.completed]
    try:
        async with async_session() as s:
            async with s.begin():
                w = await s.scalar(
                    select(Workout).where(Workout.user_id == user_id, Workout.date == day.isoformat())
                )
                if w is None:
                    w = Workout(user_id=user_id, date=day.isoformat())
                    s.add(w)
                w.updated_at = utcnow()
                await s.flush()
                await s.execute(delete(WorkoutExercise).where(WorkoutExercise.workout_id == w.id))
                for ex in completed:
                    s.add(
                        WorkoutExercise(
                            workout_id=w.id,
                            exercise_name=ex.name,
                            exercise_category=ex.category,
                            weight=ex.weight,
                            sets=ex.sets,
                            reps=ex.reps,
                        )
                    )
            all_completed = await check_workout_completion(s, user_id, day, schedule)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error saving workout for user {user_id} on {day}: {e}")
        return WorkoutSaveOut(success=False, message="Failed to save workout")

    log.info(f"Saved {len(completed)} exercises for user {user_id} on {day}")
    await update_workout_streak(user_id, day, all_completed, schedule)
    return WorkoutSaveOut(
        success=True,
        message="Workout saved successfully",
        saved=len(completed),
        all_completed=all_completed,
    )


async def get_workout(user_id: int, day: date) -> WorkoutDayResult:
    try:
        async with async_session() as s:
            workout_id = await s.scalar(
                select(Workout.id).where(Workout.user_id == user_id, Workout.date == day.isoformat())
            )
            rows = []
            if workout_id is not None:
                result = await s.execute(
                    select(WorkoutExercise)
                    .where(WorkoutExercise.workout_id == workout_id)
                    .order_by(asc(WorkoutExercise.id))
                )
                rows = result.scalars().all()
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching workout for user {user_id} on {day}: {e}")
        return WorkoutDayResult(success=False, message="Failed to fetch workout data")

    if workout_id is None:
        return WorkoutDayResult(success=True, data=None)
    return WorkoutDayResult(
        success=True,
        data=WorkoutDayOut(
            user_id=user_id,
            date=day.isoformat(),
            exercises=[
                WorkoutExerciseOut(
                    name=r.exercise_name,
                    category=r.exercise_category,
                    completed=True,
                    weight=r.weight,
                    sets=r.sets,
                    reps=r.reps,
                )
                for r in rows
            ],
        ),
    )


async def exercise_weight_history(
    user_id: int, today: date, days: int = 30
) -> List[ExerciseWeightPointOut]:
    since = (today - timedelta(days=days)).isoformat()
    stmt = (
        select(Workout.date, WorkoutExercise.exercise_name, WorkoutExercise.weight)
        .select_from(WorkoutExercise)
        .join(Workout, WorkoutExercise.workout_id == Workout.id)
        .where(
            Workout.user_id == user_id,
            Workout.date >= since,
            WorkoutExercise.weight.is_not(None),
        )
        .order_by(asc(WorkoutExercise.exercise_name), asc(Workout.date))
    )
    async with async_session() as s:
        result = await s.execute(stmt)
        rows = result.all()
    return [
        ExerciseWeightPointOut(date=d, exercise_name=name, weight=float(w))
        for d, name, w in rows
    ]
