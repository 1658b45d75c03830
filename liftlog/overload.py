# liftlog/overload.py
# -----------------------------------------------------------------------------
# Progressive-overload suggestions.
#
#   load_history -> group_sessions -> analyze (minus load_suppressed keys)
#
# A suggestion is offered when the three most recent sessions of an exercise
# share one weight and each reached the set/rep threshold. Accept and decline
# both write a decision row that hides that (exercise, weight) pair for the
# suppression window; after it expires the suggestion comes back if the
# pattern still holds.
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import asc, desc, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.config import DECISION_HISTORY_DAYS, DEFAULT_OVERLOAD_RULES, OverloadRules
from liftlog.db import async_session, log, utcnow
from liftlog.models import (
    Exercise,
    SuggestionDecision,
    SuggestionDismissal,
    Workout,
    WorkoutExercise,
)
from liftlog.parsing import format_weight
from liftlog.schemas import (
    ActionResult,
    DecisionOut,
    DecisionsResult,
    OverloadAnalysisOut,
    SessionOut,
    SuggestionOut,
    SuggestionsResult,
)

SuppressionKey = Tuple[str, float]

STATUS_ACCEPTED = "accepted"
STATUS_DECLINED = "declined"


@dataclass(frozen=True)
class SessionRecord:
    exercise_name: str
    date: str
    weight: float
    sets: int
    reps: int
    weight_increment: float


# -----------------------------------------------------------------------------
# History loader
# -----------------------------------------------------------------------------
async def load_history(
    s: AsyncSession,
    user_id: int,
    today: date,
    window_days: int = DEFAULT_OVERLOAD_RULES.history_window_days,
    default_increment: float = DEFAULT_OVERLOAD_RULES.default_increment,
) -> List[SessionRecord]:
    """Logged sets in [today - window_days, today], newest first per exercise."""
    since = (today - timedelta(days=window_days)).isoformat()
    stmt = (
        select(
            WorkoutExercise.exercise_name,
            Workout.date,
            WorkoutExercise.weight,
            WorkoutExercise.sets,
            WorkoutExercise.reps,
            Exercise.weight_increment,
        )
        .select_from(WorkoutExercise)
        .join(Workout, WorkoutExercise.workout_id == Workout.id)
        .outerjoin(Exercise, Exercise.name == WorkoutExercise.exercise_name)
        .where(
            Workout.user_id == user_id,
            Workout.date >= since,
            Workout.date <= today.isoformat(),
            WorkoutExercise.weight.is_not(None),
            WorkoutExercise.sets.is_not(None),
            WorkoutExercise.reps.is_not(None),
        )
        .order_by(asc(WorkoutExercise.exercise_name), desc(Workout.date), asc(WorkoutExercise.id))
    )
    result = await s.execute(stmt)
    return [
        SessionRecord(
            exercise_name=name,
            date=d,
            weight=float(weight),
            sets=int(sets),
            reps=int(reps),
            weight_increment=default_increment if inc is None else float(inc),
        )
        for name, d, weight, sets, reps, inc in result.all()
    ]


# -----------------------------------------------------------------------------
# Session grouper
# -----------------------------------------------------------------------------
def group_sessions(rows: Iterable[SessionRecord]) -> Dict[str, List[SessionRecord]]:
    groups: Dict[str, List[SessionRecord]] = OrderedDict()
    for row in rows:
        groups.setdefault(row.exercise_name, []).append(row)
    return groups


# -----------------------------------------------------------------------------
# Analyzer
# -----------------------------------------------------------------------------
def analyze(
    groups: Dict[str, List[SessionRecord]],
    suppressed: Set[SuppressionKey],
    rules: OverloadRules = DEFAULT_OVERLOAD_RULES,
) -> OverloadAnalysisOut:
    """Turn grouped history into suggestions. Pure; session lists must be newest first."""
    suggestions: List[SuggestionOut] = []
    no_progression = 0

    for exercise_name, sessions in groups.items():
        if len(sessions) < rules.required_sessions:
            continue

        increment = sessions[0].weight_increment
        if increment == 0:
            no_progression += 1
            continue

        recent = sessions[: rules.required_sessions]
        current_weight = recent[0].weight
        if any(sess.weight != current_weight for sess in recent):
            continue

        if (exercise_name, current_weight) in suppressed:
            continue

        if not all(sess.sets >= rules.min_sets and sess.reps >= rules.min_reps for sess in recent):
            continue

        suggestions.append(
            SuggestionOut(
                exercise_name=exercise_name,
                current_weight=current_weight,
                suggested_weight=current_weight + increment,
                weight_increase=increment,
                custom_increment=increment,
                reason=(
                    f"Completed {rules.min_sets}+ sets of {rules.min_reps}+ reps at "
                    f"{format_weight(current_weight)} lbs for {rules.required_sessions} "
                    f"consecutive sessions"
                ),
                consecutive_sessions=rules.required_sessions,
                last_three_sessions=[
                    SessionOut(date=sess.date, weight=sess.weight, sets=sess.sets, reps=sess.reps)
                    for sess in reversed(recent)
                ],
            )
        )

    # sorted() is stable, so ties keep discovery order
    suggestions = sorted(suggestions, key=lambda sg: sg.weight_increase, reverse=True)
    return OverloadAnalysisOut(
        suggestions=suggestions,
        total_exercises=len(groups),
        exercises_ready_for_increase=len(suggestions),
        exercises_with_no_progression=no_progression,
    )


# -----------------------------------------------------------------------------
# Decision filter
# -----------------------------------------------------------------------------
async def load_suppressed(
    s: AsyncSession,
    user_id: int,
    now: datetime,
    window_days: int = DEFAULT_OVERLOAD_RULES.suppression_window_days,
) -> Set[SuppressionKey]:
    """(exercise, weight) pairs with a decision or legacy dismissal inside the window."""
    cutoff = now - timedelta(days=window_days)
    decisions = await s.execute(
        select(SuggestionDecision.exercise_name, SuggestionDecision.current_weight).where(
            SuggestionDecision.user_id == user_id,
            SuggestionDecision.decided_at > cutoff,
        )
    )
    dismissals = await s.execute(
        select(SuggestionDismissal.exercise_name, SuggestionDismissal.weight).where(
            SuggestionDismissal.user_id == user_id,
            SuggestionDismissal.dismissed_at > cutoff,
        )
    )
    keys = {(name, float(w)) for name, w in decisions.all()}
    keys.update((name, float(w)) for name, w in dismissals.all())
    return keys


async def get_suggestions(
    user_id: int,
    rules: OverloadRules = DEFAULT_OVERLOAD_RULES,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> SuggestionsResult:
    now = now or utcnow()
    today = today or now.date()
    try:
        async with async_session() as s:
            rows = await load_history(
                s, user_id, today, rules.history_window_days, rules.default_increment
            )
            suppressed = await load_suppressed(s, user_id, now, rules.suppression_window_days)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error analyzing progressive overload for user {user_id}: {e}")
        return SuggestionsResult(
            success=False, message="Failed to analyze progressive overload opportunities"
        )
    analysis = analyze(group_sessions(rows), suppressed, rules)
    return SuggestionsResult(success=True, data=analysis)


# -----------------------------------------------------------------------------
# Decision recorder
# -----------------------------------------------------------------------------
def _insert(s: AsyncSession, model):
    """INSERT that supports ON CONFLICT for the session's dialect."""
    if s.bind.dialect.name == "postgresql":
        return pg_insert(model)
    return sqlite_insert(model)


async def _upsert_decision(
    s: AsyncSession,
    user_id: int,
    exercise_name: str,
    current_weight: float,
    suggested_weight: float,
    status: str,
    now: datetime,
) -> None:
    stmt = _insert(s, SuggestionDecision).values(
        user_id=user_id,
        exercise_name=exercise_name,
        current_weight=current_weight,
        suggested_weight=suggested_weight,
        status=status,
        decided_at=now,
    )
    set_ = {"status": stmt.excluded.status, "decided_at": stmt.excluded.decided_at}
    # a decline keeps the weight an earlier accept proposed
    if status == STATUS_ACCEPTED:
        set_["suggested_weight"] = stmt.excluded.suggested_weight
    await s.execute(
        stmt.on_conflict_do_update(
            index_elements=["user_id", "exercise_name", "current_weight"], set_=set_
        )
    )


async def _upsert_dismissal(
    s: AsyncSession, user_id: int, exercise_name: str, weight: float, now: datetime
) -> None:
    stmt = _insert(s, SuggestionDismissal).values(
        user_id=user_id, exercise_name=exercise_name, weight=weight, dismissed_at=now
    )
    await s.execute(
        stmt.on_conflict_do_update(
            index_elements=["user_id", "exercise_name", "weight"],
            set_={"dismissed_at": stmt.excluded.dismissed_at},
        )
    )


async def accept_suggestion(
    user_id: int,
    exercise_name: str,
    current_weight: float,
    suggested_weight: float,
    now: Optional[datetime] = None,
) -> ActionResult:
    now = now or utcnow()
    try:
        async with async_session() as s, s.begin():
            await _upsert_decision(
                s, user_id, exercise_name, current_weight, suggested_weight, STATUS_ACCEPTED, now
            )
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error accepting suggestion for {exercise_name} (user {user_id}): {e}")
        return ActionResult(success=False, message="Failed to accept suggestion")
    log.info(f"User {user_id} accepted {exercise_name} {current_weight} -> {suggested_weight}")
    return ActionResult(
        success=True,
        message=f"Accepted suggestion to raise {exercise_name} to {format_weight(suggested_weight)} lbs",
    )


async def decline_suggestion(
    user_id: int,
    exercise_name: str,
    current_weight: float,
    now: Optional[datetime] = None,
) -> ActionResult:
    now = now or utcnow()
    try:
        async with async_session() as s, s.begin():
            await _upsert_decision(
                s, user_id, exercise_name, current_weight, current_weight, STATUS_DECLINED, now
            )
            await _upsert_dismissal(s, user_id, exercise_name, current_weight, now)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error declining suggestion for {exercise_name} (user {user_id}): {e}")
        return ActionResult(success=False, message="Failed to dismiss suggestion")
    log.info(f"User {user_id} declined {exercise_name} at {current_weight}")
    return ActionResult(
        success=True,
        message=f"Declined suggestion for {exercise_name} - will stay on current weight",
    )


async def get_recent_decisions(
    user_id: int,
    now: Optional[datetime] = None,
    window_days: int = DECISION_HISTORY_DAYS,
) -> DecisionsResult:
    now = now or utcnow()
    cutoff = now - timedelta(days=window_days)
    try:
        async with async_session() as s:
            result = await s.execute(
                select(SuggestionDecision)
                .where(SuggestionDecision.user_id == user_id, SuggestionDecision.decided_at > cutoff)
                .order_by(desc(SuggestionDecision.decided_at), desc(SuggestionDecision.id))
            )
            rows = result.scalars().all()
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching suggestion decisions for user {user_id}: {e}")
        return DecisionsResult(success=False, message="Failed to fetch suggestion decisions")
    return DecisionsResult(
        success=True,
        data=[
            DecisionOut(
                exercise_name=d.exercise_name,
                current_weight=d.current_weight,
                suggested_weight=d.suggested_weight,
                status=d.status,
                created_at=d.decided_at.strftime("%Y-%m-%d"),
            )
            for d in rows
        ],
    )
