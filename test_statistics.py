"""
Dashboard statistics: pure completion/monthly helpers plus service-level
aggregates against a fixed "today".
"""
from datetime import date

import pytest

from liftlog import nutrition, statistics, workouts
from liftlog.config import DEFAULT_NUTRITION_GOALS, DEFAULT_SCHEDULE
from liftlog.db import async_session
from liftlog.models import WeightRecord
from liftlog.schemas import ExerciseIn, MealIn, NutritionLogIn, WorkoutDayIn
from liftlog.statistics import completion_rate, monthly_counts

TODAY = date(2026, 3, 20)
ONE_EACH = {"Chest": 1, "Arms": 1, "Shoulders": 1, "Back": 1, "Legs": 1}


# ─── Pure helpers ────────────────────────────────────────────────────────────

def test_completion_rate_skips_rest_days_and_caps_extra_work():
    rows = [
        ("2026-01-05", 2),   # Monday expects 3
        ("2026-01-07", 5),   # Wednesday rest
        ("2026-01-08", 4),   # Thursday expects 1
    ]
    assert completion_rate(rows, DEFAULT_SCHEDULE, ONE_EACH) == 75


def test_completion_rate_without_workouts():
    assert completion_rate([], DEFAULT_SCHEDULE, ONE_EACH) == 0
    # nothing configured means nothing was expected
    assert completion_rate([("2026-01-05", 3)], DEFAULT_SCHEDULE, {}) == 0


def test_monthly_counts_latest_six_oldest_first():
    dates = [
        "2025-05-01", "2025-06-10", "2025-08-01", "2025-08-20",
        "2025-09-03", "2025-10-10", "2025-11-11", "2026-01-02",
    ]
    assert [(m.month, m.count) for m in monthly_counts(dates)] == [
        ("Jun 2025", 1),
        ("Aug 2025", 2),
        ("Sep 2025", 1),
        ("Oct 2025", 1),
        ("Nov 2025", 1),
        ("Jan 2026", 1),
    ]


def test_monthly_counts_empty():
    assert monthly_counts([]) == []


# ─── Service ─────────────────────────────────────────────────────────────────

def _day(exercises):
    return WorkoutDayIn(exercises=[{"name": n, "weight": 100, "sets": 3, "reps": 10} for n in exercises])


@pytest.mark.asyncio
async def test_workout_statistics():
    await workouts.upsert_exercise(ExerciseIn(name="Bench Press", category="Chest"))
    await workouts.upsert_exercise(ExerciseIn(name="Squat", category="Legs"))
    await workouts.save_workout(1, date(2026, 1, 5), _day(["Bench Press"]))
    await workouts.save_workout(1, date(2026, 3, 16), _day(["Bench Press"]))
    await workouts.save_workout(1, date(2026, 3, 19), _day([]))
    await workouts.save_workout(2, date(2026, 3, 16), _day(["Bench Press"]))

    res = await statistics.workout_statistics(1, today=TODAY)
    assert res.success
    data = res.data
    assert data.total_workouts == 3
    assert data.recent_workouts == 2
    assert data.completion_rate == 67
    assert [(m.month, m.count) for m in data.monthly_workouts] == [("Jan 2026", 1), ("Mar 2026", 2)]


@pytest.mark.asyncio
async def test_nutrition_statistics():
    bowl = await nutrition.add_meal(MealIn(
        name="Bulk Bowl", category="lunch", protein=200, carbs=300, fat=90, calories=3000
    ))
    oats = await nutrition.add_meal(MealIn(
        name="Oats", category="breakfast", protein=10, carbs=60, fat=6, calories=350
    ))

    async def log_day(day, meals, water):
        body = NutritionLogIn(meals=meals, water=water)
        res = await nutrition.save_nutrition_log(1, day, body, DEFAULT_NUTRITION_GOALS)
        assert res.success

    await log_day(date(2026, 1, 5), [{"mealId": bowl.id, "category": "lunch"}], 0)
    await log_day(date(2026, 3, 17), [], 2000)
    await log_day(date(2026, 3, 18), [{"mealId": bowl.id, "category": "lunch"}], 3000)
    await log_day(date(2026, 3, 19), [
        {"mealId": bowl.id, "category": "lunch", "quantity": 0.5},
        {"mealId": oats.id, "category": "breakfast"},
    ], 1000)

    res = await statistics.nutrition_statistics(1, today=TODAY)
    assert res.success
    data = res.data
    assert data.total_logs == 4
    assert data.recent_logs == 3
    # the meal-less day is left out of macro averages but counts for water
    assert data.avg_macros.protein == round((200 + 110) / 2)
    assert data.avg_macros.calories == round((3000 + 1850) / 2)
    assert data.avg_water == 2000
    assert data.most_common_meal == "Bulk Bowl"


@pytest.mark.asyncio
async def test_nutrition_statistics_without_logs():
    res = await statistics.nutrition_statistics(1, today=TODAY)
    assert res.data.total_logs == 0
    assert res.data.avg_macros.calories == 0
    assert res.data.most_common_meal == "N/A"


@pytest.mark.asyncio
async def test_weight_statistics():
    async with async_session() as s:
        for d, w in [("2026-02-01", 176.4), ("2026-01-01", 180.0), ("2026-01-15", 178.2)]:
            s.add(WeightRecord(user_id=1, date=d, weight=w))
        s.add(WeightRecord(user_id=2, date="2026-03-01", weight=150.0))
        await s.commit()

    res = await statistics.weight_statistics(1)
    data = res.data
    assert [r.date for r in data.weight_history] == ["2026-01-01", "2026-01-15", "2026-02-01"]
    assert data.weight_change == -3.6
    assert data.weight_change_percent == -2.0
    assert data.current_weight == 176.4


@pytest.mark.asyncio
async def test_weight_statistics_single_record():
    async with async_session() as s:
        s.add(WeightRecord(user_id=1, date="2026-01-01", weight=180.0))
        await s.commit()
    data = (await statistics.weight_statistics(1)).data
    assert (data.weight_change, data.weight_change_percent, data.current_weight) == (0, 0, 180.0)
