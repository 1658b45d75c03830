# liftlog/schedule.py
# -----------------------------------------------------------------------------
# Per-user custom weekly split. A user without one trains on the default
# schedule; once a split is saved, its weekdays without exercises are rest days.
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Dict, List, Tuple

from fastapi import HTTPException
from sqlalchemy import asc, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.config import DEFAULT_SCHEDULE, WeeklySchedule
from liftlog.db import async_session, log
from liftlog.models import CustomWorkout, Exercise
from liftlog.schemas import CustomSplitIn, CustomSplitOut, CustomSplitResult, ExerciseOut
from liftlog.workouts import exercise_to_out


async def _split_rows(s: AsyncSession, user_id: int) -> List[Tuple[int, Exercise]]:
    result = await s.execute(
        select(CustomWorkout.day_of_week, Exercise)
        .select_from(CustomWorkout)
        .join(Exercise, CustomWorkout.exercise_id == Exercise.id)
        .where(CustomWorkout.user_id == user_id)
        .order_by(asc(CustomWorkout.day_of_week), asc(CustomWorkout.id))
    )
    return [(day, ex) for day, ex in result.all()]


async def load_schedule(
    s: AsyncSession, user_id: int, default: WeeklySchedule = DEFAULT_SCHEDULE
) -> WeeklySchedule:
    rows = await _split_rows(s, user_id)
    if not rows:
        return default
    split: Dict[int, List[Tuple[str, str]]] = {}
    for day, ex in rows:
        split.setdefault(day, []).append((ex.name, ex.category))
    return WeeklySchedule.from_split(split)


async def get_user_schedule(
    user_id: int, default: WeeklySchedule = DEFAULT_SCHEDULE
) -> WeeklySchedule:
    try:
        async with async_session() as s:
            return await load_schedule(s, user_id, default)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error loading custom split for user {user_id}, using default: {e}")
        return default


async def save_custom_split(user_id: int, body: CustomSplitIn) -> CustomSplitResult:
    wanted = {ex_id for ids in body.days.values() for ex_id in ids}
    try:
        async with async_session() as s:
            async with s.begin():
                if wanted:
                    found = set(
                        (await s.execute(select(Exercise.id).where(Exercise.id.in_(wanted))))
                        .scalars()
                        .all()
                    )
                    missing = sorted(wanted - found)
                    if missing:
                        raise HTTPException(422, f"Unknown exercise ids: {missing}")
                await s.execute(delete(CustomWorkout).where(CustomWorkout.user_id == user_id))
                for day, ids in sorted(body.days.items()):
                    for ex_id in ids:
                        s.add(CustomWorkout(user_id=user_id, day_of_week=day, exercise_id=ex_id))
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error saving custom split for user {user_id}: {e}")
        return CustomSplitResult(success=False, message="Failed to save custom workout")
    log.info(f"Saved custom split for user {user_id} ({len(wanted)} exercises)")
    return await get_custom_split(user_id)


async def get_custom_split(user_id: int) -> CustomSplitResult:
    try:
        async with async_session() as s:
            rows = await _split_rows(s, user_id)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching custom split for user {user_id}: {e}")
        return CustomSplitResult(success=False, message="Failed to fetch custom workout")
    days: Dict[int, List[ExerciseOut]] = {d: [] for d in range(7)}
    for day, ex in rows:
        days[day].append(exercise_to_out(ex))
    return CustomSplitResult(success=True, data=CustomSplitOut(is_custom=bool(rows), days=days))
