# liftlog/statistics.py
# -----------------------------------------------------------------------------
# Dashboard aggregates: workout volume and completion, 30-day nutrition
# averages, and body-weight change. Read-only; every call returns a
# {success, data, message} envelope.
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import SQLAlchemyError

from liftlog.config import DEFAULT_SCHEDULE, WeeklySchedule
from liftlog.db import async_session, log
from liftlog.models import NutritionLog, NutritionLogMeal, WeightRecord, Workout, WorkoutExercise
from liftlog.schemas import (
    MacroAveragesOut,
    MonthlyCountOut,
    NutritionStatsOut,
    NutritionStatsResult,
    WeightRecordOut,
    WeightStatsOut,
    WeightStatsResult,
    WorkoutStatsOut,
    WorkoutStatsResult,
)
from liftlog.streaks import configured_exercise_counts, expected_exercise_count

RECENT_DAYS = 30
MONTHS_SHOWN = 6


def completion_rate(
    workouts: List[tuple], schedule: WeeklySchedule, configured_by_category: Dict[str, int]
) -> int:
    """Percent of expected exercises logged across (date, logged count) pairs.

    Days that expect nothing (rest days) are left out; a day counts at most
    its expected number of exercises.
    """
    completed = expected = 0
    for day, logged in workouts:
        want = expected_exercise_count(
            schedule, date.fromisoformat(day).weekday(), configured_by_category
        )
        if want == 0:
            continue
        completed += min(logged, want)
        expected += want
    return round(completed / expected * 100) if expected else 0


def monthly_counts(dates: List[str], months: int = MONTHS_SHOWN) -> List[MonthlyCountOut]:
    """Workouts per month for the latest `months` months that have any, oldest first."""
    per_month = Counter(d[:7] for d in dates)
    latest = sorted(per_month, reverse=True)[:months]
    return [
        MonthlyCountOut(month=date.fromisoformat(f"{m}-01").strftime("%b %Y"), count=per_month[m])
        for m in reversed(latest)
    ]


async def workout_statistics(
    user_id: int, today: Optional[date] = None, schedule: WeeklySchedule = DEFAULT_SCHEDULE
) -> WorkoutStatsResult:
    today = today or date.today()
    since = (today - timedelta(days=RECENT_DAYS)).isoformat()
    try:
        async with async_session() as s:
            result = await s.execute(
                select(Workout.date, func.count(WorkoutExercise.id))
                .select_from(Workout)
                .outerjoin(WorkoutExercise, WorkoutExercise.workout_id == Workout.id)
                .where(Workout.user_id == user_id)
                .group_by(Workout.id, Workout.date)
                .order_by(asc(Workout.date))
            )
            rows = [(d, int(n)) for d, n in result.all()]
            configured = await configured_exercise_counts(s)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching workout statistics for user {user_id}: {e}")
        return WorkoutStatsResult(success=False, message="Failed to fetch workout statistics")

    dates = [d for d, _ in rows]
    return WorkoutStatsResult(
        success=True,
        data=WorkoutStatsOut(
            total_workouts=len(rows),
            recent_workouts=sum(1 for d in dates if since <= d <= today.isoformat()),
            completion_rate=completion_rate(rows, schedule, configured),
            monthly_workouts=monthly_counts(dates),
        ),
    )


async def nutrition_statistics(user_id: int, today: Optional[date] = None) -> NutritionStatsResult:
    today = today or date.today()
    since = (today - timedelta(days=RECENT_DAYS)).isoformat()
    try:
        async with async_session() as s:
            total = await s.scalar(
                select(func.count()).select_from(NutritionLog).where(NutritionLog.user_id == user_id)
            )
            result = await s.execute(
                select(NutritionLog, func.count(NutritionLogMeal.id))
                .outerjoin(NutritionLogMeal, NutritionLogMeal.nutrition_log_id == NutritionLog.id)
                .where(
                    NutritionLog.user_id == user_id,
                    NutritionLog.date >= since,
                    NutritionLog.date <= today.isoformat(),
                )
                .group_by(NutritionLog.id)
            )
            recent = result.all()
            common = (
                await s.execute(
                    select(NutritionLogMeal.logged_meal_name, func.count().label("cnt"))
                    .join(NutritionLog, NutritionLogMeal.nutrition_log_id == NutritionLog.id)
                    .where(NutritionLog.user_id == user_id)
                    .group_by(NutritionLogMeal.logged_meal_name)
                    .order_by(desc("cnt"), asc(NutritionLogMeal.logged_meal_name))
                    .limit(1)
                )
            ).first()
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching nutrition statistics for user {user_id}: {e}")
        return NutritionStatsResult(success=False, message="Failed to fetch nutrition statistics")

    # macro averages only over days with at least one meal logged
    eaten = [entry for entry, meals in recent if meals > 0]
    avg = MacroAveragesOut()
    if eaten:
        n = len(eaten)
        avg = MacroAveragesOut(
            protein=round(sum(e.total_protein for e in eaten) / n),
            carbs=round(sum(e.total_carbs for e in eaten) / n),
            fat=round(sum(e.total_fat for e in eaten) / n),
            calories=round(sum(e.total_calories for e in eaten) / n),
        )
    avg_water = round(sum(e.total_water for e, _ in recent) / len(recent)) if recent else 0
    return NutritionStatsResult(
        success=True,
        data=NutritionStatsOut(
            total_logs=int(total or 0),
            recent_logs=len(recent),
            avg_macros=avg,
            most_common_meal=common[0] if common else "N/A",
            avg_water=avg_water,
        ),
    )


async def weight_statistics(user_id: int) -> WeightStatsResult:
    try:
        async with async_session() as s:
            result = await s.execute(
                select(WeightRecord)
                .where(WeightRecord.user_id == user_id)
                .order_by(asc(WeightRecord.date), asc(WeightRecord.id))
            )
            records = result.scalars().all()
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching weight statistics for user {user_id}: {e}")
        return WeightStatsResult(success=False, message="Failed to fetch weight statistics")

    history = [WeightRecordOut(date=r.date, weight=r.weight) for r in records]
    change = change_percent = 0.0
    if len(history) >= 2:
        first, last = history[0].weight, history[-1].weight
        change = round(last - first, 1)
        change_percent = round(change / first * 100, 1)
    return WeightStatsResult(
        success=True,
        data=WeightStatsOut(
            weight_history=history,
            weight_change=change,
            weight_change_percent=change_percent,
            current_weight=history[-1].weight if history else 0,
        ),
    )
