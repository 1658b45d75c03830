"""Streak arithmetic against the default weekly schedule.

Week of 2026-01-05: Mon chest/arms/shoulders, Tue back/arms, Wed rest,
Thu legs, Fri rest, Sat shoulders/arms, Sun rest.
"""
from datetime import date

import pytest

from liftlog.config import DEFAULT_SCHEDULE, WeeklySchedule
from liftlog.streaks import (
    StreakState,
    expected_exercise_count,
    expire_streaks,
    is_next_scheduled_day,
    missed_workout_days,
    next_nutrition_streak,
    next_workout_streak,
)

MON = date(2026, 1, 5)
TUE = date(2026, 1, 6)
WED = date(2026, 1, 7)
THU = date(2026, 1, 8)
SAT = date(2026, 1, 10)
NEXT_MON = date(2026, 1, 12)


def test_default_schedule_rest_days():
    assert [DEFAULT_SCHEDULE.is_workout_day(d) for d in range(7)] == [
        True, True, False, True, False, True, False,
    ]
    assert DEFAULT_SCHEDULE.categories_for(3) == ("Legs",)


def test_is_next_scheduled_day_skips_rest():
    assert is_next_scheduled_day(TUE, THU, DEFAULT_SCHEDULE)
    assert is_next_scheduled_day(SAT, NEXT_MON, DEFAULT_SCHEDULE)
    assert not is_next_scheduled_day(MON, THU, DEFAULT_SCHEDULE)


def test_missed_workout_days():
    assert missed_workout_days(TUE, THU, DEFAULT_SCHEDULE) == 0
    assert missed_workout_days(MON, THU, DEFAULT_SCHEDULE) == 1
    assert missed_workout_days(MON, NEXT_MON, DEFAULT_SCHEDULE) == 3


# ─── Workout ─────────────────────────────────────────────────────────────────

def test_first_workout_starts_streak():
    assert next_workout_streak(StreakState(), MON) == StreakState(1, 1, MON)


def test_consecutive_scheduled_day_extends():
    state = StreakState(current=2, best=2, last_updated=TUE)
    assert next_workout_streak(state, THU) == StreakState(3, 3, THU)


def test_skipped_scheduled_day_resets():
    state = StreakState(current=4, best=6, last_updated=MON)
    assert next_workout_streak(state, THU) == StreakState(1, 6, THU)


@pytest.mark.parametrize("day", [MON, date(2026, 1, 1)])
def test_same_or_earlier_day_unchanged(day):
    state = StreakState(current=2, best=2, last_updated=MON)
    assert next_workout_streak(state, day) is None


def test_rest_day_unchanged():
    state = StreakState(current=2, best=2, last_updated=TUE)
    assert next_workout_streak(state, WED) is None


def test_custom_schedule():
    every_day = WeeklySchedule(days={d: ("Full Body",) for d in range(7)})
    state = StreakState(current=1, best=1, last_updated=TUE)
    assert next_workout_streak(state, WED, every_day) == StreakState(2, 2, WED)


def test_split_schedule_from_saved_exercises():
    plan = WeeklySchedule.from_split({
        2: [("Squat", "Legs"), ("Lunge", "Legs"), ("Plank", "Core")],
        4: [("Bench Press", "Chest")],
    })
    assert plan.categories_for(2) == ("Legs", "Core")
    assert plan.exercises_for(2) == ("Squat", "Lunge", "Plank")
    assert [plan.is_workout_day(d) for d in range(7)] == [
        False, False, True, False, True, False, False,
    ]


def test_expected_count_uses_planned_exercises():
    plan = WeeklySchedule.from_split({0: [("Bench Press", "Chest"), ("Curl", "Arms")]})
    configured = {"Chest": 4, "Arms": 3}
    assert expected_exercise_count(plan, 0, configured) == 2
    assert expected_exercise_count(plan, 1, configured) == 0


def test_expected_count_from_categories_is_capped():
    configured = {"Chest": 4, "Arms": 3, "Shoulders": 5}
    assert expected_exercise_count(DEFAULT_SCHEDULE, MON.weekday(), configured) == 8
    assert expected_exercise_count(DEFAULT_SCHEDULE, TUE.weekday(), configured) == 3
    assert expected_exercise_count(DEFAULT_SCHEDULE, WED.weekday(), configured) == 0


# ─── Nutrition ───────────────────────────────────────────────────────────────

def test_nutrition_streak_transitions():
    state = next_nutrition_streak(StreakState(), MON)
    assert state == StreakState(1, 1, MON)
    state = next_nutrition_streak(state, TUE)
    assert state == StreakState(2, 2, TUE)
    assert next_nutrition_streak(state, TUE) is None
    assert next_nutrition_streak(state, THU) == StreakState(1, 2, THU)


# ─── Expiry ──────────────────────────────────────────────────────────────────

def test_expire_streaks():
    nutrition = StreakState(current=3, best=5, last_updated=MON)
    workout = StreakState(current=2, best=2, last_updated=TUE)

    n, w = expire_streaks(nutrition, workout, TUE)
    assert (n.current, w.current) == (3, 2)

    n, w = expire_streaks(nutrition, workout, WED)
    assert n == StreakState(0, 5, MON)
    assert w.current == 2

    _, w = expire_streaks(nutrition, workout, SAT)
    assert w == StreakState(0, 2, TUE)


def test_expire_streaks_empty_state():
    assert expire_streaks(StreakState(), StreakState(), SAT) == (StreakState(), StreakState())
