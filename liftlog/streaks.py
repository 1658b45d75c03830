# liftlog/streaks.py
# -----------------------------------------------------------------------------
# Nutrition and workout streaks.
# Nutrition streaks count calendar days; workout streaks count scheduled
# workout days only, so rest days neither extend nor break them.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.config import DEFAULT_SCHEDULE, WeeklySchedule
from liftlog.db import async_session, log
from liftlog.models import Exercise, UserStreak, Workout, WorkoutExercise
from liftlog.schemas import StreakOut, StreaksOut


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    best: int = 0
    last_updated: Optional[date] = None


def _bump(state: StreakState, current: int, day: date) -> StreakState:
    return StreakState(current=current, best=max(state.best, current), last_updated=day)


# -----------------------------------------------------------------------------
# Schedule arithmetic
# -----------------------------------------------------------------------------
def is_next_scheduled_day(last: date, day: date, schedule: WeeklySchedule) -> bool:
    """True when `day` is the first scheduled workout day after `last`."""
    check = last + timedelta(days=1)
    while check <= day:
        if schedule.is_workout_day(check.weekday()):
            return check == day
        check += timedelta(days=1)
    return False


def missed_workout_days(last: date, day: date, schedule: WeeklySchedule) -> int:
    """Scheduled workout days strictly between `last` and `day`."""
    missed = 0
    check = last + timedelta(days=1)
    while check < day:
        if schedule.is_workout_day(check.weekday()):
            missed += 1
        check += timedelta(days=1)
    return missed


# -----------------------------------------------------------------------------
# Streak transitions (None = leave the stored streak alone)
# -----------------------------------------------------------------------------
def next_nutrition_streak(state: StreakState, day: date) -> Optional[StreakState]:
    if state.last_updated is None:
        return _bump(state, 1, day)
    gap = (day - state.last_updated).days
    if gap <= 0:
        return None
    if gap == 1:
        return _bump(state, state.current + 1, day)
    return _bump(state, 1, day)


def next_workout_streak(
    state: StreakState, day: date, schedule: WeeklySchedule = DEFAULT_SCHEDULE
) -> Optional[StreakState]:
    if not schedule.is_workout_day(day.weekday()):
        return None
    if state.last_updated is None:
        return _bump(state, 1, day)
    if day <= state.last_updated:
        return None
    if is_next_scheduled_day(state.last_updated, day, schedule):
        return _bump(state, state.current + 1, day)
    return _bump(state, 1, day)


def expire_streaks(
    nutrition: StreakState,
    workout: StreakState,
    today: date,
    schedule: WeeklySchedule = DEFAULT_SCHEDULE,
) -> tuple[StreakState, StreakState]:
    """Zero current streaks whose next qualifying day has already passed."""
    if nutrition.last_updated and nutrition.current > 0:
        if (today - nutrition.last_updated).days > 1:
            nutrition = replace(nutrition, current=0)
    if workout.last_updated and workout.current > 0:
        if missed_workout_days(workout.last_updated, today, schedule) > 0:
            workout = replace(workout, current=0)
    return nutrition, workout


# -----------------------------------------------------------------------------
# Persistence
# -----------------------------------------------------------------------------
def _to_date(v: Optional[str]) -> Optional[date]:
    return date.fromisoformat(v) if v else None


def _states(row: Optional[UserStreak]) -> tuple[StreakState, StreakState]:
    if row is None:
        return StreakState(), StreakState()
    return (
        StreakState(row.nutrition_current, row.nutrition_best, _to_date(row.nutrition_last_updated)),
        StreakState(row.workout_current, row.workout_best, _to_date(row.workout_last_updated)),
    )


async def _get_or_create(s: AsyncSession, user_id: int) -> UserStreak:
    row = await s.scalar(select(UserStreak).where(UserStreak.user_id == user_id))
    if row is None:
        row = UserStreak(
            user_id=user_id,
            nutrition_current=0, nutrition_best=0,
            workout_current=0, workout_best=0,
        )
        s.add(row)
    return row


async def get_streaks(user_id: int) -> StreaksOut:
    try:
        async with async_session() as s:
            row = await s.scalar(select(UserStreak).where(UserStreak.user_id == user_id))
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching streak data for user {user_id}: {e}")
        return StreaksOut()
    nutrition, workout = _states(row)
    return StreaksOut(
        nutrition=StreakOut(
            current=nutrition.current,
            best=nutrition.best,
            last_updated=nutrition.last_updated.isoformat() if nutrition.last_updated else None,
        ),
        workout=StreakOut(
            current=workout.current,
            best=workout.best,
            last_updated=workout.last_updated.isoformat() if workout.last_updated else None,
        ),
    )


async def update_workout_streak(
    user_id: int, day: date, all_completed: bool, schedule: WeeklySchedule = DEFAULT_SCHEDULE
) -> None:
    if not all_completed:
        log.info(f"Workout on {day} not complete, streak unchanged for user {user_id}")
        return
    try:
        async with async_session() as s, s.begin():
            row = await _get_or_create(s, user_id)
            _, workout = _states(row)
            nxt = next_workout_streak(workout, day, schedule)
            if nxt is None:
                log.info(f"Workout streak unchanged for user {user_id} on {day}")
                return
            row.workout_current = nxt.current
            row.workout_best = nxt.best
            row.workout_last_updated = day.isoformat()
        log.info(f"Workout streak for user {user_id} is now {nxt.current} (best {nxt.best})")
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error updating workout streak for user {user_id}: {e}")


async def update_nutrition_streak(user_id: int, day: date, all_targets_met: bool) -> None:
    if not all_targets_met:
        log.info(f"Nutrition targets not met on {day}, streak unchanged for user {user_id}")
        return
    try:
        async with async_session() as s, s.begin():
            row = await _get_or_create(s, user_id)
            nutrition, _ = _states(row)
            nxt = next_nutrition_streak(nutrition, day)
            if nxt is None:
                log.info(f"Nutrition streak unchanged for user {user_id} on {day}")
                return
            row.nutrition_current = nxt.current
            row.nutrition_best = nxt.best
            row.nutrition_last_updated = day.isoformat()
        log.info(f"Nutrition streak for user {user_id} is now {nxt.current} (best {nxt.best})")
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error updating nutrition streak for user {user_id}: {e}")


async def reset_missed_streaks(
    user_id: int, today: date, schedule: WeeklySchedule = DEFAULT_SCHEDULE
) -> StreaksOut:
    try:
        async with async_session() as s, s.begin():
            row = await s.scalar(select(UserStreak).where(UserStreak.user_id == user_id))
            if row is not None:
                nutrition, workout = _states(row)
                new_nutrition, new_workout = expire_streaks(nutrition, workout, today, schedule)
                if (new_nutrition, new_workout) != (nutrition, workout):
                    log.info(f"Streaks reset for missed scheduled days (user {user_id})")
                    row.nutrition_current = new_nutrition.current
                    row.workout_current = new_workout.current
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error resetting streaks for user {user_id}: {e}")
    return await get_streaks(user_id)


# -----------------------------------------------------------------------------
# Workout completion
# -----------------------------------------------------------------------------
def expected_exercise_count(
    schedule: WeeklySchedule, weekday: int, configured_by_category: Dict[str, int]
) -> int:
    """Exercises a complete session needs on `weekday` (0 on rest days)."""
    planned = schedule.exercises_for(weekday)
    if planned:
        return min(schedule.max_expected_exercises, len(planned))
    configured = sum(configured_by_category.get(c, 0) for c in schedule.categories_for(weekday))
    return min(schedule.max_expected_exercises, configured)


async def configured_exercise_counts(s: AsyncSession) -> Dict[str, int]:
    result = await s.execute(
        select(Exercise.category, func.count()).group_by(Exercise.category)
    )
    return {category: int(n) for category, n in result.all()}


async def check_workout_completion(
    s: AsyncSession, user_id: int, day: date, schedule: WeeklySchedule = DEFAULT_SCHEDULE
) -> bool:
    """Rest days count as complete; otherwise every expected exercise must be logged."""
    workout_id = await s.scalar(
        select(Workout.id).where(Workout.user_id == user_id, Workout.date == day.isoformat())
    )
    if workout_id is None:
        return False
    if not schedule.is_workout_day(day.weekday()):
        return True
    expected = expected_exercise_count(
        schedule, day.weekday(), await configured_exercise_counts(s)
    )
    completed = await s.scalar(
        select(func.count()).select_from(WorkoutExercise).where(
            WorkoutExercise.workout_id == workout_id
        )
    )
    completed = int(completed or 0)
    log.info(f"Workout completion for {day}: {completed}/{expected}")
    return expected > 0 and completed >= expected
