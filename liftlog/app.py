# liftlog/app.py
# =============================================================================
# LiftLog API: Workouts, Nutrition & Progressive Overload
# (FastAPI + SQLAlchemy 2.x async, Pydantic v2)
# Suggests weight increases after three strong sessions at the same weight and
# remembers accept/decline decisions so a suggestion is not re-offered for a
# week.
# =============================================================================

from __future__ import annotations

import logging
import time
import traceback
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy import desc, select, text

from liftlog import nutrition, overload, schedule, statistics, streaks, workouts
from liftlog.config import (
    DEFAULT_NUTRITION_GOALS,
    DEFAULT_OVERLOAD_RULES,
    DEFAULT_SCHEDULE,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    NutritionGoals,
)
from liftlog.db import async_session, db_type, engine, log
from liftlog.models import WeightRecord, init_db
from liftlog.schemas import (
    AcceptIn,
    ActionResult,
    CustomSplitIn,
    CustomSplitResult,
    DecisionsResult,
    DeclineIn,
    ExerciseIn,
    ExerciseOut,
    ExerciseWeightPointOut,
    GenericResponse,
    GoalsResult,
    HealthOut,
    IncrementIn,
    IngredientLibraryIn,
    IngredientLibraryOut,
    MealIn,
    MealOut,
    NutritionDayResult,
    NutritionGoalsIn,
    NutritionGoalsOut,
    NutritionLogIn,
    NutritionSaveOut,
    NutritionStatsResult,
    StreaksOut,
    SuggestionsResult,
    WeightRecordIn,
    WeightRecordOut,
    WeightStatsResult,
    WorkoutDayIn,
    WorkoutDayResult,
    WorkoutSaveOut,
    WorkoutStatsResult,
    validate_date_str,
)

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    await init_db()
    yield
    await engine.dispose()


app = FastAPI(
    title="LiftLog API",
    description="Workout & nutrition log with progressive-overload suggestions.",
    version="1.0.0",
    lifespan=lifespan,
)


# -----------------------------------------------------------------------------
# Global exception handler (full traceback goes to the log)
# -----------------------------------------------------------------------------
@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exc()
    log.error(f"Unhandled error on {request.method} {request.url.path}: {exc}\n{tb}")
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {type(exc).__name__}"},
    )


# -----------------------------------------------------------------------------
# Rate limiting middleware
# -----------------------------------------------------------------------------
_rate_limit_store: Dict[str, List[float]] = defaultdict(list)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()
    window_start = now - RATE_LIMIT_WINDOW
    _rate_limit_store[client_ip] = [
        t for t in _rate_limit_store[client_ip] if t > window_start
    ]
    if len(_rate_limit_store[client_ip]) >= RATE_LIMIT_REQUESTS:
        return Response(
            content='{"detail":"Rate limit exceeded. Try again later."}',
            status_code=429,
            media_type="application/json",
        )
    _rate_limit_store[client_ip].append(now)
    # Prune stale IPs to prevent memory leak
    if len(_rate_limit_store) > 1000:
        stale = [ip for ip, ts in _rate_limit_store.items()
                 if not ts or ts[-1] < window_start]
        for ip in stale:
            del _rate_limit_store[ip]
    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(RATE_LIMIT_REQUESTS)
    response.headers["X-RateLimit-Remaining"] = str(
        RATE_LIMIT_REQUESTS - len(_rate_limit_store[client_ip])
    )
    return response


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(validate_date_str(value))
    except ValueError as e:
        raise HTTPException(422, str(e))


# =============================================================================
# ENDPOINTS: Health / Root
# =============================================================================
@app.get("/health", response_model=HealthOut)
async def health() -> HealthOut:
    db_connected = False
    try:
        async with async_session() as s:
            await s.execute(text("SELECT 1"))
            db_connected = True
    except Exception as e:
        log.error(f"Health check DB query failed: {e}")
    return HealthOut(
        ok=db_connected, db_connected=db_connected,
        db_type=db_type(), timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/", response_model=GenericResponse)
async def root() -> GenericResponse:
    return GenericResponse(message="LiftLog API v1.0 is running")


# =============================================================================
# ENDPOINTS: Progressive overload
# =============================================================================
@app.get("/users/{user_id}/overload/suggestions", response_model=SuggestionsResult)
async def overload_suggestions(user_id: int) -> SuggestionsResult:
    return await overload.get_suggestions(user_id, DEFAULT_OVERLOAD_RULES)


@app.post("/users/{user_id}/overload/accept", response_model=ActionResult)
async def overload_accept(user_id: int, body: AcceptIn) -> ActionResult:
    return await overload.accept_suggestion(
        user_id, body.exercise_name, body.current_weight, body.suggested_weight
    )


@app.post("/users/{user_id}/overload/decline", response_model=ActionResult)
async def overload_decline(user_id: int, body: DeclineIn) -> ActionResult:
    return await overload.decline_suggestion(user_id, body.exercise_name, body.current_weight)


@app.get("/users/{user_id}/overload/decisions", response_model=DecisionsResult)
async def overload_decisions(user_id: int) -> DecisionsResult:
    return await overload.get_recent_decisions(user_id)


# =============================================================================
# ENDPOINTS: Exercises
# =============================================================================
@app.get("/exercises", response_model=List[ExerciseOut])
async def list_exercises() -> List[ExerciseOut]:
    return await workouts.list_exercises()


@app.post("/exercises", response_model=ExerciseOut)
async def upsert_exercise(body: ExerciseIn) -> ExerciseOut:
    return await workouts.upsert_exercise(body)


@app.put("/exercises/{exercise_id}/increment", response_model=ExerciseOut)
async def update_increment(exercise_id: int, body: IncrementIn) -> ExerciseOut:
    return await workouts.update_increment(exercise_id, body.weight_increment)


# =============================================================================
# ENDPOINTS: Custom weekly split
# =============================================================================
@app.get("/users/{user_id}/schedule", response_model=CustomSplitResult)
async def get_custom_split(user_id: int) -> CustomSplitResult:
    return await schedule.get_custom_split(user_id)


@app.put("/users/{user_id}/schedule", response_model=CustomSplitResult)
async def save_custom_split(user_id: int, body: CustomSplitIn) -> CustomSplitResult:
    return await schedule.save_custom_split(user_id, body)


# =============================================================================
# ENDPOINTS: Workout days
# =============================================================================
@app.put("/users/{user_id}/workouts/{day}", response_model=WorkoutSaveOut)
async def save_workout(user_id: int, body: WorkoutDayIn, day: str) -> WorkoutSaveOut:
    plan = await schedule.get_user_schedule(user_id, DEFAULT_SCHEDULE)
    return await workouts.save_workout(user_id, _parse_day(day), body, plan)


@app.get("/users/{user_id}/workouts/{day}", response_model=WorkoutDayResult)
async def get_workout(user_id: int, day: str) -> WorkoutDayResult:
    return await workouts.get_workout(user_id, _parse_day(day))


@app.get("/users/{user_id}/exercise_history", response_model=List[ExerciseWeightPointOut])
async def exercise_history(
    user_id: int, days: int = Query(30, ge=1, le=365),
) -> List[ExerciseWeightPointOut]:
    return await workouts.exercise_weight_history(user_id, date.today(), days)


# =============================================================================
# ENDPOINTS: Streaks
# =============================================================================
@app.get("/users/{user_id}/streaks", response_model=StreaksOut)
async def get_streaks(user_id: int) -> StreaksOut:
    return await streaks.get_streaks(user_id)


@app.post("/users/{user_id}/streaks/refresh", response_model=StreaksOut)
async def refresh_streaks(
    user_id: int, day: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD"),
) -> StreaksOut:
    today = _parse_day(day) if day else date.today()
    plan = await schedule.get_user_schedule(user_id, DEFAULT_SCHEDULE)
    return await streaks.reset_missed_streaks(user_id, today, plan)


# =============================================================================
# ENDPOINTS: Nutrition
# =============================================================================
@app.get("/users/{user_id}/nutrition/goals", response_model=NutritionGoalsOut)
async def get_nutrition_goals(user_id: int) -> NutritionGoalsOut:
    return await nutrition.get_goals(user_id, DEFAULT_NUTRITION_GOALS)


@app.put("/users/{user_id}/nutrition/goals", response_model=GoalsResult)
async def save_nutrition_goals(user_id: int, body: NutritionGoalsIn) -> GoalsResult:
    goals = NutritionGoals.from_macros(body.protein, body.carbs, body.fat, body.water)
    return await nutrition.save_goals(user_id, goals)


@app.put("/users/{user_id}/nutrition/{day}", response_model=NutritionSaveOut)
async def save_nutrition_log(
    user_id: int, body: NutritionLogIn, day: str,
) -> NutritionSaveOut:
    return await nutrition.save_nutrition_log(
        user_id, _parse_day(day), body, DEFAULT_NUTRITION_GOALS
    )


@app.get("/users/{user_id}/nutrition/{day}", response_model=NutritionDayResult)
async def get_nutrition_log(user_id: int, day: str) -> NutritionDayResult:
    return await nutrition.get_nutrition_log(user_id, _parse_day(day))


@app.post("/meals", response_model=MealOut)
async def add_meal(body: MealIn) -> MealOut:
    return await nutrition.add_meal(body)


@app.get("/meals", response_model=List[MealOut])
async def list_meals(category: Optional[str] = Query(None)) -> List[MealOut]:
    return await nutrition.list_meals(category)


@app.delete("/meals/{meal_id}", response_model=GenericResponse)
async def delete_meal(meal_id: int) -> GenericResponse:
    await nutrition.delete_meal(meal_id)
    return GenericResponse(message="Meal deleted")


@app.get("/ingredients", response_model=List[IngredientLibraryOut])
async def list_ingredients(
    q: Optional[str] = Query(None, description="Search by name"),
) -> List[IngredientLibraryOut]:
    return await nutrition.list_ingredients(q)


@app.post("/ingredients", response_model=IngredientLibraryOut)
async def add_ingredient(body: IngredientLibraryIn) -> IngredientLibraryOut:
    return await nutrition.add_ingredient(body)


@app.put("/ingredients/{ingredient_id}", response_model=IngredientLibraryOut)
async def update_ingredient(ingredient_id: int, body: IngredientLibraryIn) -> IngredientLibraryOut:
    return await nutrition.update_ingredient(ingredient_id, body)


@app.delete("/ingredients/{ingredient_id}", response_model=GenericResponse)
async def delete_ingredient(ingredient_id: int) -> GenericResponse:
    await nutrition.delete_ingredient(ingredient_id)
    return GenericResponse(message="Ingredient deleted")


# =============================================================================
# ENDPOINTS: Body weight
# =============================================================================
@app.post("/users/{user_id}/body_weight", response_model=WeightRecordOut)
async def add_body_weight(user_id: int, body: WeightRecordIn) -> WeightRecordOut:
    async with async_session() as s:
        obj = WeightRecord(user_id=user_id, date=body.date, weight=body.weight)
        s.add(obj)
        await s.commit()
    log.info(f"Recorded body weight {body.weight} for user {user_id} on {body.date}")
    return WeightRecordOut(date=body.date, weight=body.weight)


@app.get("/users/{user_id}/body_weight", response_model=List[WeightRecordOut])
async def list_body_weight(
    user_id: int, limit: int = Query(10, ge=1, le=365),
) -> List[WeightRecordOut]:
    async with async_session() as s:
        result = await s.execute(
            select(WeightRecord)
            .where(WeightRecord.user_id == user_id)
            .order_by(desc(WeightRecord.date), desc(WeightRecord.id))
            .limit(limit)
        )
        rows = result.scalars().all()
    return [WeightRecordOut.model_validate(r) for r in rows]


# =============================================================================
# ENDPOINTS: Statistics
# =============================================================================
@app.get("/users/{user_id}/statistics/workouts", response_model=WorkoutStatsResult)
async def workout_statistics(user_id: int) -> WorkoutStatsResult:
    plan = await schedule.get_user_schedule(user_id, DEFAULT_SCHEDULE)
    return await statistics.workout_statistics(user_id, date.today(), plan)


@app.get("/users/{user_id}/statistics/nutrition", response_model=NutritionStatsResult)
async def nutrition_statistics(user_id: int) -> NutritionStatsResult:
    return await statistics.nutrition_statistics(user_id, date.today())


@app.get("/users/{user_id}/statistics/weight", response_model=WeightStatsResult)
async def weight_statistics(user_id: int) -> WeightStatsResult:
    return await statistics.weight_statistics(user_id)
