"""
Progressive-overload rules: pure grouping/analysis tests plus service-level
tests for the decision window, using explicit clocks.
"""
import asyncio
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from liftlog import overload, workouts
from liftlog.config import OverloadRules
from liftlog.db import async_session
from liftlog.models import SuggestionDecision, SuggestionDismissal
from liftlog.overload import SessionRecord, analyze, group_sessions
from liftlog.schemas import WorkoutDayIn

TODAY = date(2026, 3, 20)
NOW = datetime(2026, 3, 20, 18, 0, 0)


def _rec(name, day, weight=135.0, sets=3, reps=12, inc=5.0):
    return SessionRecord(
        exercise_name=name, date=day, weight=weight, sets=sets, reps=reps, weight_increment=inc
    )


def _bench(weights=(135.0, 135.0, 135.0), **kw):
    days = ["2026-03-19", "2026-03-17", "2026-03-15", "2026-03-13"]
    return [_rec("Bench Press", d, w, **kw) for d, w in zip(days, weights)]


# ─── Grouping ────────────────────────────────────────────────────────────────

def test_group_sessions_keeps_order():
    rows = [_rec("Bench", "2026-03-19"), _rec("Bench", "2026-03-17"), _rec("Squat", "2026-03-18")]
    groups = group_sessions(rows)
    assert list(groups) == ["Bench", "Squat"]
    assert [r.date for r in groups["Bench"]] == ["2026-03-19", "2026-03-17"]


def test_group_sessions_empty():
    assert group_sessions([]) == {}


# ─── Analysis ────────────────────────────────────────────────────────────────

def test_three_matching_sessions_suggest_increase():
    result = analyze(group_sessions(_bench()), set())
    assert result.exercises_ready_for_increase == 1
    sg = result.suggestions[0]
    assert sg.current_weight == 135
    assert sg.suggested_weight == 140
    assert sg.reason == "Completed 3+ sets of 12+ reps at 135 lbs for 3 consecutive sessions"
    assert [s.date for s in sg.last_three_sessions] == ["2026-03-15", "2026-03-17", "2026-03-19"]


def test_only_most_recent_three_sessions_count():
    # an older session at a different weight does not matter
    result = analyze(group_sessions(_bench((135.0, 135.0, 135.0, 125.0))), set())
    assert len(result.suggestions) == 1


def test_newest_session_at_new_weight_blocks():
    result = analyze(group_sessions(_bench((140.0, 135.0, 135.0, 135.0))), set())
    assert result.suggestions == []


def test_set_threshold():
    rows = _bench()
    rows[1] = _rec("Bench Press", rows[1].date, sets=2)
    assert analyze(group_sessions(rows), set()).suggestions == []


def test_fractional_weight_reason():
    rows = [_rec("Curl", d, 27.5, inc=2.5) for d in ("2026-03-19", "2026-03-17", "2026-03-15")]
    sg = analyze(group_sessions(rows), set()).suggestions[0]
    assert sg.suggested_weight == 30
    assert "at 27.5 lbs" in sg.reason


def test_zero_increment_is_no_progression():
    rows = _bench(inc=0.0)
    result = analyze(group_sessions(rows), set())
    assert result.suggestions == []
    assert result.exercises_with_no_progression == 1
    assert result.total_exercises == 1


def test_suppressed_pair_is_skipped():
    result = analyze(group_sessions(_bench()), {("Bench Press", 135.0)})
    assert result.suggestions == []
    assert result.total_exercises == 1


def test_suppression_at_other_weight_does_not_apply():
    result = analyze(group_sessions(_bench()), {("Bench Press", 130.0)})
    assert len(result.suggestions) == 1


def test_ties_keep_discovery_order():
    rows = []
    for name in ("Bench", "Deadlift", "Squat"):
        rows += [_rec(name, d) for d in ("2026-03-19", "2026-03-17", "2026-03-15")]
    result = analyze(group_sessions(rows), set())
    assert [s.exercise_name for s in result.suggestions] == ["Bench", "Deadlift", "Squat"]


def test_custom_rules():
    rules = OverloadRules(required_sessions=2, min_sets=4, min_reps=8)
    rows = _bench(sets=4, reps=8)[:2]
    result = analyze(group_sessions(rows), set(), rules)
    assert result.suggestions[0].consecutive_sessions == 2
    assert result.suggestions[0].reason.startswith("Completed 4+ sets of 8+ reps")


def test_no_history():
    result = analyze({}, set())
    assert result.total_exercises == 0
    assert result.suggestions == []


# ─── Service: history window and decisions ───────────────────────────────────

async def _log_bench(days, weight=135):
    for d in days:
        body = WorkoutDayIn(exercises=[{"name": "Bench Press", "weight": weight, "sets": 3, "reps": 12}])
        res = await workouts.save_workout(1, d, body)
        assert res.success


@pytest.mark.asyncio
async def test_history_window_excludes_old_sessions():
    await _log_bench([TODAY - timedelta(days=40), TODAY - timedelta(days=3), TODAY - timedelta(days=1)])
    res = await overload.get_suggestions(1, today=TODAY, now=NOW)
    assert res.success
    assert res.data.suggestions == []
    assert res.data.total_exercises == 1


@pytest.mark.asyncio
async def test_future_sessions_ignored():
    await _log_bench([TODAY - timedelta(days=3), TODAY - timedelta(days=1), TODAY + timedelta(days=2)])
    res = await overload.get_suggestions(1, today=TODAY, now=NOW)
    assert res.data.suggestions == []


@pytest.mark.asyncio
async def test_decline_suppresses_for_seven_days():
    await _log_bench([TODAY - timedelta(days=n) for n in (5, 3, 1)])
    res = await overload.decline_suggestion(1, "Bench Press", 135, now=NOW)
    assert res.success

    inside = await overload.get_suggestions(1, today=TODAY, now=NOW + timedelta(days=6))
    assert inside.data.suggestions == []

    after = await overload.get_suggestions(1, today=TODAY, now=NOW + timedelta(days=7, seconds=1))
    assert len(after.data.suggestions) == 1


@pytest.mark.asyncio
async def test_accept_suppresses_then_expires():
    await _log_bench([TODAY - timedelta(days=n) for n in (5, 3, 1)])
    res = await overload.accept_suggestion(1, "Bench Press", 135, 140, now=NOW)
    assert res.message == "Accepted suggestion to raise Bench Press to 140 lbs"

    inside = await overload.get_suggestions(1, today=TODAY, now=NOW + timedelta(days=1))
    assert inside.data.suggestions == []
    after = await overload.get_suggestions(1, today=TODAY, now=NOW + timedelta(days=8))
    assert after.data.suggestions[0].suggested_weight == 140


@pytest.mark.asyncio
async def test_redecision_refreshes_window():
    await _log_bench([TODAY - timedelta(days=n) for n in (5, 3, 1)])
    await overload.decline_suggestion(1, "Bench Press", 135, now=NOW)
    await overload.decline_suggestion(1, "Bench Press", 135, now=NOW + timedelta(days=5))
    res = await overload.get_suggestions(1, today=TODAY, now=NOW + timedelta(days=10))
    assert res.data.suggestions == []


@pytest.mark.asyncio
async def test_recent_decisions_newest_first():
    await overload.accept_suggestion(1, "Squat", 225, 235, now=NOW - timedelta(days=3))
    await overload.decline_suggestion(1, "Bench Press", 135, now=NOW - timedelta(days=1))
    await overload.decline_suggestion(1, "Curl", 30, now=NOW - timedelta(days=45))
    res = await overload.get_recent_decisions(1, now=NOW)
    assert [d.exercise_name for d in res.data] == ["Bench Press", "Squat"]
    assert res.data[0].status == "declined"
    assert res.data[0].suggested_weight == 135
    assert res.data[1].created_at == "2026-03-17"


@pytest.mark.asyncio
async def test_concurrent_decisions_on_one_key_all_succeed():
    results = await asyncio.gather(
        overload.accept_suggestion(1, "Squat", 200, 205, now=NOW),
        overload.decline_suggestion(1, "Squat", 200, now=NOW),
        overload.accept_suggestion(1, "Squat", 200, 205, now=NOW),
    )
    assert [r.success for r in results] == [True, True, True]

    async with async_session() as s:
        rows = (await s.execute(select(SuggestionDecision))).scalars().all()
    assert len(rows) == 1
    assert rows[0].status in ("accepted", "declined")


@pytest.mark.asyncio
async def test_decline_after_accept_keeps_suggested_weight():
    await overload.accept_suggestion(1, "Squat", 200, 205, now=NOW)
    await overload.decline_suggestion(1, "Squat", 200, now=NOW + timedelta(hours=1))

    res = await overload.get_recent_decisions(1, now=NOW + timedelta(days=1))
    assert len(res.data) == 1
    assert res.data[0].status == "declined"
    assert res.data[0].suggested_weight == 205


@pytest.mark.asyncio
async def test_accept_after_decline_takes_new_suggested_weight():
    await overload.decline_suggestion(1, "Squat", 200, now=NOW)
    await overload.accept_suggestion(1, "Squat", 200, 210, now=NOW + timedelta(hours=1))
    res = await overload.get_recent_decisions(1, now=NOW + timedelta(days=1))
    assert (res.data[0].status, res.data[0].suggested_weight) == ("accepted", 210)


@pytest.mark.asyncio
async def test_legacy_dismissal_alone_suppresses_until_expiry():
    await _log_bench([TODAY - timedelta(days=n) for n in (5, 3, 1)])
    async with async_session() as s:
        s.add(SuggestionDismissal(
            user_id=1, exercise_name="Bench Press", weight=135, dismissed_at=NOW
        ))
        await s.commit()

    inside = await overload.get_suggestions(1, today=TODAY, now=NOW + timedelta(days=6))
    assert inside.data.suggestions == []

    after = await overload.get_suggestions(1, today=TODAY, now=NOW + timedelta(days=7, minutes=1))
    assert [sg.exercise_name for sg in after.data.suggestions] == ["Bench Press"]

    # a dismissal never shows up as a decision
    res = await overload.get_recent_decisions(1, now=NOW)
    assert res.data == []


@pytest.mark.asyncio
async def test_decline_writes_decision_and_dismissal():
    await overload.decline_suggestion(1, "Bench Press", 135, now=NOW)
    await overload.decline_suggestion(1, "Bench Press", 135, now=NOW + timedelta(days=2))
    async with async_session() as s:
        dismissals = (await s.execute(select(SuggestionDismissal))).scalars().all()
    assert len(dismissals) == 1
    assert dismissals[0].dismissed_at == NOW + timedelta(days=2)


class _BrokenSession:
    async def __aenter__(self):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    async def __aexit__(self, *exc):
        return False


@pytest.mark.asyncio
async def test_storage_failure_returns_unsuccessful_result(monkeypatch):
    monkeypatch.setattr(overload, "async_session", lambda: _BrokenSession())

    res = await overload.get_suggestions(1, today=TODAY, now=NOW)
    assert res.success is False
    assert res.message == "Failed to analyze progressive overload opportunities"

    res = await overload.accept_suggestion(1, "Bench Press", 135, 140, now=NOW)
    assert (res.success, res.message) == (False, "Failed to accept suggestion")

    res = await overload.decline_suggestion(1, "Bench Press", 135, now=NOW)
    assert (res.success, res.message) == (False, "Failed to dismiss suggestion")

    res = await overload.get_recent_decisions(1, now=NOW)
    assert res.success is False
