# liftlog/nutrition.py
# -----------------------------------------------------------------------------
# Nutrition goals, meal macros and daily logs.
# A saved log freezes each meal's macros (logged_* columns) so editing or
# deleting a meal later never rewrites history.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import asc, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.config import DEFAULT_NUTRITION_GOALS, NutritionGoals
from liftlog.db import async_session, log, utcnow
from liftlog.models import Ingredient, Meal, NutritionLog, NutritionLogMeal, UserNutritionGoals
from liftlog.schemas import (
    MEAL_CATEGORIES,
    GoalsResult,
    IngredientIn,
    IngredientLibraryIn,
    IngredientLibraryOut,
    LoggedMealOut,
    MealIn,
    MealOut,
    NutritionDayOut,
    NutritionDayResult,
    NutritionGoalsOut,
    NutritionLogIn,
    NutritionSaveOut,
    NutritionTotalsOut,
)
from liftlog.streaks import update_nutrition_streak


@dataclass(frozen=True)
class Macros:
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    calories: float = 0

    def __add__(self, other: "Macros") -> "Macros":
        return Macros(
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
            calories=self.calories + other.calories,
        )

    def scaled(self, factor: float) -> "Macros":
        return Macros(
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fat=self.fat * factor,
            calories=self.calories * factor,
        )


# -----------------------------------------------------------------------------
# Calculations
# -----------------------------------------------------------------------------
def calculate_nutrition(ingredient: IngredientIn) -> Macros:
    """Macros for `ingredient.amount` of an ingredient.

    Quantity ingredients (eggs, apples) carry macros per `amount_per` items;
    weight/volume ingredients per `per_amount` grams or ml (default 100).
    """
    if ingredient.measurement_type == "quantity":
        ratio = ingredient.amount / (ingredient.amount_per or 1)
    else:
        ratio = ingredient.amount / (ingredient.per_amount or 100)
    return Macros(
        protein=round(ingredient.protein * ratio, 1),
        carbs=round(ingredient.carbs * ratio, 1),
        fat=round(ingredient.fat * ratio, 1),
        calories=round(ingredient.calories * ratio),
    )


def calculate_total_nutrition(ingredients: Iterable[IngredientIn]) -> Macros:
    total = Macros()
    for ingredient in ingredients:
        total = total + calculate_nutrition(ingredient)
    return total


def targets_met(totals: Macros, water: float, goals: NutritionGoals) -> bool:
    checks = {
        "protein": (totals.protein, goals.protein),
        "carbs": (totals.carbs, goals.carbs),
        "fat": (totals.fat, goals.fat),
        "calories": (totals.calories, goals.calories),
        "water": (water, goals.water),
    }
    missed = [k for k, (have, want) in checks.items() if have < want]
    if missed:
        log.info(f"Nutrition targets not met: {', '.join(missed)}")
    return not missed


# -----------------------------------------------------------------------------
# Goals
# -----------------------------------------------------------------------------
def _goals_out(g: NutritionGoals) -> NutritionGoalsOut:
    return NutritionGoalsOut(
        protein=g.protein, carbs=g.carbs, fat=g.fat, water=g.water, calories=g.calories
    )


async def load_goals(
    s: AsyncSession, user_id: int, defaults: NutritionGoals = DEFAULT_NUTRITION_GOALS
) -> NutritionGoals:
    row = await s.scalar(select(UserNutritionGoals).where(UserNutritionGoals.user_id == user_id))
    if row is None:
        return defaults
    return NutritionGoals(
        protein=row.protein_goal,
        carbs=row.carbs_goal,
        fat=row.fat_goal,
        water=row.water_goal,
        calories=row.calories_goal,
    )


async def get_goals(
    user_id: int, defaults: NutritionGoals = DEFAULT_NUTRITION_GOALS
) -> NutritionGoalsOut:
    try:
        async with async_session() as s:
            goals = await load_goals(s, user_id, defaults)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching nutrition goals for user {user_id}: {e}")
        goals = defaults
    return _goals_out(goals)


async def save_goals(user_id: int, goals: NutritionGoals) -> GoalsResult:
    try:
        async with async_session() as s, s.begin():
            row = await s.scalar(
                select(UserNutritionGoals).where(UserNutritionGoals.user_id == user_id)
            )
            if row is None:
                row = UserNutritionGoals(user_id=user_id)
                s.add(row)
            row.protein_goal = goals.protein
            row.carbs_goal = goals.carbs
            row.fat_goal = goals.fat
            row.water_goal = goals.water
            row.calories_goal = goals.calories
            row.updated_at = utcnow()
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error saving nutrition goals for user {user_id}: {e}")
        return GoalsResult(success=False, message="Failed to save nutrition goals")
    return GoalsResult(
        success=True, message="Nutrition goals saved successfully", goals=_goals_out(goals)
    )


# -----------------------------------------------------------------------------
# Ingredient library
# -----------------------------------------------------------------------------
_LIKE_ESCAPE_CHAR = "!"  # Use ! instead of \ to avoid PG backslash issues
INGREDIENT_SEARCH_LIMIT = 20


def _escape_like(s: str) -> str:
    return s.replace("!", "!!").replace("%", "!%").replace("_", "!_")


def _safe_like(column, term: str):
    escaped = _escape_like(term.strip().lower())
    pattern = f"%{escaped}%"
    return func.lower(column).like(pattern, escape=_LIKE_ESCAPE_CHAR)


def library_ingredient(ing: Ingredient, amount: float) -> IngredientIn:
    """`amount` of a library ingredient, in the form calculate_nutrition takes."""
    per = {"amount_per": ing.per_amount} if ing.measurement_type == "quantity" else {
        "per_amount": ing.per_amount
    }
    return IngredientIn(
        name=ing.name,
        protein=ing.protein,
        carbs=ing.carbs,
        fat=ing.fat,
        calories=ing.calories,
        measurement_type=ing.measurement_type,
        amount=amount,
        **per,
    )


async def list_ingredients(q: Optional[str] = None) -> List[IngredientLibraryOut]:
    stmt = select(Ingredient)
    if q and q.strip():
        stmt = stmt.where(_safe_like(Ingredient.name, q)).limit(INGREDIENT_SEARCH_LIMIT)
    stmt = stmt.order_by(asc(Ingredient.name))
    async with async_session() as s:
        result = await s.execute(stmt)
        rows = result.scalars().all()
    return [IngredientLibraryOut.model_validate(i) for i in rows]


async def add_ingredient(body: IngredientLibraryIn) -> IngredientLibraryOut:
    async with async_session() as s:
        ing = Ingredient(**body.model_dump())
        s.add(ing)
        await s.commit()
        return IngredientLibraryOut.model_validate(ing)


async def update_ingredient(ingredient_id: int, body: IngredientLibraryIn) -> IngredientLibraryOut:
    async with async_session() as s:
        ing = await s.get(Ingredient, ingredient_id)
        if not ing:
            raise HTTPException(404, "Ingredient not found")
        for k, v in body.model_dump().items():
            setattr(ing, k, v)
        await s.commit()
        return IngredientLibraryOut.model_validate(ing)


async def delete_ingredient(ingredient_id: int) -> None:
    async with async_session() as s:
        ing = await s.get(Ingredient, ingredient_id)
        if not ing:
            raise HTTPException(404, "Ingredient not found")
        await s.delete(ing)
        await s.commit()


# -----------------------------------------------------------------------------
# Meals
# -----------------------------------------------------------------------------
async def _meal_ingredients(s: AsyncSession, body: MealIn) -> List[IngredientIn]:
    items = list(body.ingredients or [])
    refs = body.library_ingredients or []
    if refs:
        ids = {r.ingredient_id for r in refs}
        result = await s.execute(select(Ingredient).where(Ingredient.id.in_(ids)))
        library = {i.id: i for i in result.scalars().all()}
        missing = sorted(ids - set(library))
        if missing:
            raise HTTPException(422, f"Unknown ingredient ids: {missing}")
        items += [library_ingredient(library[r.ingredient_id], r.amount) for r in refs]
    return items


async def add_meal(body: MealIn) -> MealOut:
    async with async_session() as s:
        macros = Macros(body.protein, body.carbs, body.fat, body.calories)
        ingredients = await _meal_ingredients(s, body)
        if ingredients:
            macros = calculate_total_nutrition(ingredients)
        meal = Meal(
            name=body.name,
            category=body.category,
            protein=macros.protein,
            carbs=macros.carbs,
            fat=macros.fat,
            calories=macros.calories,
            description=body.description,
            recipe=body.recipe,
        )
        s.add(meal)
        await s.commit()
        return MealOut.model_validate(meal)


async def list_meals(category: Optional[str] = None) -> List[MealOut]:
    stmt = select(Meal)
    if category:
        stmt = stmt.where(Meal.category == category.lower())
    stmt = stmt.order_by(asc(Meal.category), asc(Meal.name))
    async with async_session() as s:
        result = await s.execute(stmt)
        rows = result.scalars().all()
    return [MealOut.model_validate(m) for m in rows]


async def delete_meal(meal_id: int) -> None:
    async with async_session() as s:
        meal = await s.get(Meal, meal_id)
        if not meal:
            raise HTTPException(404, "Meal not found")
        await s.delete(meal)
        await s.commit()


# -----------------------------------------------------------------------------
# Daily log
# -----------------------------------------------------------------------------
async def _write_log(
    s: AsyncSession, user_id: int, day: date, body: NutritionLogIn
) -> Tuple[Macros, float]:
    meal_ids = {m.meal_id for m in body.meals}
    meals: Dict[int, Meal] = {}
    if meal_ids:
        result = await s.execute(select(Meal).where(Meal.id.in_(meal_ids)))
        meals = {m.id: m for m in result.scalars().all()}

    totals = Macros()
    entries: List[NutritionLogMeal] = []
    for sel in body.meals:
        meal = meals.get(sel.meal_id)
        if meal is None:
            log.warning(f"Meal {sel.meal_id} not found, skipped in log for {day}")
            continue
        logged = Macros(meal.protein, meal.carbs, meal.fat, meal.calories).scaled(sel.quantity)
        totals = totals + logged
        entries.append(
            NutritionLogMeal(
                meal_id=meal.id,
                meal_category=sel.category,
                quantity=sel.quantity,
                logged_meal_name=meal.name,
                logged_protein=logged.protein,
                logged_carbs=logged.carbs,
                logged_fat=logged.fat,
                logged_calories=logged.calories,
            )
        )

    entry = await s.scalar(
        select(NutritionLog).where(NutritionLog.user_id == user_id, NutritionLog.date == day.isoformat())
    )
    if entry is None:
        entry = NutritionLog(user_id=user_id, date=day.isoformat())
        s.add(entry)
    entry.total_protein = totals.protein
    entry.total_carbs = totals.carbs
    entry.total_fat = totals.fat
    entry.total_calories = totals.calories
    entry.total_water = body.water
    entry.creatine_taken = body.creatine_taken
    entry.updated_at = utcnow()
    await s.flush()

    await s.execute(delete(NutritionLogMeal).where(NutritionLogMeal.nutrition_log_id == entry.id))
    for e in entries:
        e.nutrition_log_id = entry.id
        s.add(e)
    return totals, body.water


async def save_nutrition_log(
    user_id: int,
    day: date,
    body: NutritionLogIn,
    defaults: NutritionGoals = DEFAULT_NUTRITION_GOALS,
) -> NutritionSaveOut:
    try:
        async with async_session() as s:
            async with s.begin():
                totals, water = await _write_log(s, user_id, day, body)
            goals = await load_goals(s, user_id, defaults)
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error saving nutrition log for user {user_id} on {day}: {e}")
        return NutritionSaveOut(success=False, message="Failed to save nutrition log")

    met = targets_met(totals, water, goals)
    await update_nutrition_streak(user_id, day, met)
    return NutritionSaveOut(success=True, message="Nutrition log saved successfully", targets_met=met)


async def get_nutrition_log(user_id: int, day: date) -> NutritionDayResult:
    try:
        async with async_session() as s:
            entry = await s.scalar(
                select(NutritionLog).where(
                    NutritionLog.user_id == user_id, NutritionLog.date == day.isoformat()
                )
            )
            rows = []
            if entry is not None:
                result = await s.execute(
                    select(NutritionLogMeal)
                    .where(NutritionLogMeal.nutrition_log_id == entry.id)
                    .order_by(asc(NutritionLogMeal.id))
                )
                rows = result.scalars().all()
    except (SQLAlchemyError, OSError) as e:
        log.error(f"Error fetching nutrition log for user {user_id} on {day}: {e}")
        return NutritionDayResult(success=False, message="Failed to fetch nutrition data")

    if entry is None:
        return NutritionDayResult(success=True, data=None)

    by_category: Dict[str, List[LoggedMealOut]] = {c: [] for c in MEAL_CATEGORIES}
    for r in rows:
        by_category.setdefault(r.meal_category, []).append(
            LoggedMealOut(
                meal_id=r.meal_id,
                name=r.logged_meal_name,
                category=r.meal_category,
                quantity=r.quantity,
                protein=r.logged_protein,
                carbs=r.logged_carbs,
                fat=r.logged_fat,
                calories=r.logged_calories,
            )
        )
    return NutritionDayResult(
        success=True,
        data=NutritionDayOut(
            user_id=user_id,
            date=day.isoformat(),
            meals=by_category,
            totals=NutritionTotalsOut(
                protein=entry.total_protein,
                carbs=entry.total_carbs,
                fat=entry.total_fat,
                calories=entry.total_calories,
            ),
            water=entry.total_water,
            creatine_taken=entry.creatine_taken,
        ),
    )
