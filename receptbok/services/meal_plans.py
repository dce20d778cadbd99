from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import HomeMember, MealPlan, MealPlanEntry, MealPlanStatus, Recipe
from .candidates import CompactRecipe, parse_home_id
from .meal_plan_resolution import enrich_entries
from .meal_plan_validation import PlanEntry, SuggestedRecipe

logger = logging.getLogger(__name__)


def _scope_clause(*, user_id: str, home_id: Optional[str]):
    home_uuid = parse_home_id(home_id)
    if home_uuid is not None:
        return MealPlan.home_id == home_uuid
    return and_(MealPlan.user_id == user_id, MealPlan.home_id.is_(None))


def _visible_clause(user_id: str):
    """Plans owned by the user, or belonging to any home the user is a member of."""
    member_homes = select(HomeMember.home_id).where(HomeMember.user_id == user_id)
    return or_(
        and_(MealPlan.user_id == user_id, MealPlan.home_id.is_(None)),
        MealPlan.home_id.in_(member_homes),
    )


def _recipe_visible_clause(user_id: str):
    """Recipes the user owns outside a home, or that belong to one of the user's homes."""
    member_homes = select(HomeMember.home_id).where(HomeMember.user_id == user_id)
    return or_(
        and_(Recipe.owner_id == user_id, Recipe.home_id.is_(None)),
        Recipe.home_id.in_(member_homes),
    )


def _parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _suggested_recipe_json(entry: PlanEntry) -> Optional[dict]:
    if entry.suggested_recipe is None:
        return None
    return entry.suggested_recipe.model_dump(mode="json")


async def save_meal_plan(
    session: AsyncSession,
    *,
    user_id: str,
    week_start: date,
    preferences: Dict[str, Any],
    entries: Sequence[PlanEntry],
    servings: int,
    home_id: Optional[str] = None,
) -> Optional[str]:
    """Store a plan as the scope's only active plan. Returns None when the write fails."""
    try:
        await session.execute(
            update(MealPlan)
            .where(_scope_clause(user_id=user_id, home_id=home_id), MealPlan.status == MealPlanStatus.ACTIVE)
            .values(status=MealPlanStatus.ARCHIVED)
            .execution_options(synchronize_session=False)
        )
        plan = MealPlan(
            user_id=user_id,
            home_id=parse_home_id(home_id),
            week_start=week_start,
            preferences=preferences,
            status=MealPlanStatus.ACTIVE,
        )
        plan.entries = [
            MealPlanEntry(
                day_of_week=entry.day_of_week,
                meal_type=entry.meal_type,
                recipe_id=_parse_uuid(entry.recipe_id),
                suggested_name=entry.suggested_name,
                suggested_description=entry.suggested_description,
                suggested_recipe=_suggested_recipe_json(entry),
                reason=entry.reason,
                servings=servings,
                sort_order=position,
            )
            for position, entry in enumerate(entries)
        ]
        session.add(plan)
        await session.flush()
        plan_id = str(plan.id)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to save meal plan user=%s week=%s", user_id, week_start)
        return None
    logger.info("Saved meal plan %s user=%s entries=%s", plan_id, user_id, len(entries))
    return plan_id


async def list_meal_plans(
    session: AsyncSession,
    *,
    user_id: str,
    home_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    entry_count = (
        select(func.count(MealPlanEntry.id))
        .where(MealPlanEntry.meal_plan_id == MealPlan.id)
        .scalar_subquery()
    )
    result = await session.execute(
        select(MealPlan.id, MealPlan.week_start, MealPlan.status, MealPlan.created_at, entry_count)
        .where(_scope_clause(user_id=user_id, home_id=home_id))
        .order_by(MealPlan.week_start.desc(), MealPlan.created_at.desc())
    )
    return [
        {
            "id": str(plan_id),
            "weekStart": week_start.isoformat(),
            "status": status,
            "createdAt": created_at.isoformat() if created_at else None,
            "entryCount": int(count or 0),
        }
        for plan_id, week_start, status, created_at, count in result.all()
    ]


async def _recipes_for(
    session: AsyncSession, *, user_id: str, recipe_ids: Sequence[uuid.UUID]
) -> List[CompactRecipe]:
    if not recipe_ids:
        return []
    result = await session.execute(
        select(Recipe).where(Recipe.id.in_(list(recipe_ids)), _recipe_visible_clause(user_id))
    )
    return [
        CompactRecipe(
            id=str(recipe.id),
            name=recipe.name,
            image=recipe.image,
            thumbnail=recipe.thumbnail,
            categories=list(recipe.categories or []),
            prep_time=recipe.prep_time,
            cook_time=recipe.cook_time,
            recipe_yield=recipe.recipe_yield,
        )
        for recipe in result.scalars().all()
    ]


def serialize_entry(entry, *, entry_id: Optional[str] = None, servings: Optional[int] = None) -> Dict[str, Any]:
    """camelCase view of an (enriched) plan entry."""
    suggested = entry.suggested_recipe
    return {
        "id": entry_id,
        "dayOfWeek": entry.day_of_week,
        "mealType": entry.meal_type,
        "recipeId": entry.recipe_id,
        "suggestedName": entry.suggested_name,
        "suggestedDescription": entry.suggested_description,
        "suggestedRecipe": suggested.model_dump(mode="json") if suggested is not None else None,
        "reason": entry.reason,
        "servings": servings,
        "recipeName": getattr(entry, "recipe_name", None),
        "recipeImage": getattr(entry, "recipe_image", None),
        "recipeThumbnail": getattr(entry, "recipe_thumbnail", None),
        "recipePrepTime": getattr(entry, "recipe_prep_time", None),
        "recipeCookTime": getattr(entry, "recipe_cook_time", None),
        "recipeYield": getattr(entry, "recipe_yield", None),
        "recipeCategories": getattr(entry, "recipe_categories", None),
    }


def _row_to_plan_entry(row: MealPlanEntry) -> PlanEntry:
    return PlanEntry.model_validate(
        {
            "day_of_week": row.day_of_week,
            "meal_type": row.meal_type,
            "recipe_id": str(row.recipe_id) if row.recipe_id else None,
            "suggested_name": row.suggested_name,
            "suggested_description": row.suggested_description,
            "suggested_recipe": row.suggested_recipe,
            "reason": row.reason or "",
        }
    )


async def get_meal_plan(
    session: AsyncSession,
    *,
    user_id: str,
    plan_id: Optional[str] = None,
    home_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """A visible plan by id, or the scope's active plan when no id is given."""
    stmt = select(MealPlan)
    if plan_id:
        plan_uuid = _parse_uuid(plan_id)
        if plan_uuid is None:
            return None
        stmt = stmt.where(MealPlan.id == plan_uuid, _visible_clause(user_id))
    else:
        stmt = stmt.where(
            _scope_clause(user_id=user_id, home_id=home_id),
            MealPlan.status == MealPlanStatus.ACTIVE,
        ).order_by(MealPlan.created_at.desc())
    result = await session.execute(stmt.limit(1).execution_options(populate_existing=True))
    plan = result.scalars().first()
    if plan is None:
        return None

    rows = list(plan.entries)
    recipes = await _recipes_for(
        session, user_id=user_id, recipe_ids=[row.recipe_id for row in rows if row.recipe_id]
    )
    enriched = enrich_entries([_row_to_plan_entry(row) for row in rows], recipes)
    return {
        "id": str(plan.id),
        "weekStart": plan.week_start.isoformat(),
        "homeId": str(plan.home_id) if plan.home_id else None,
        "status": plan.status,
        "preferences": plan.preferences or {},
        "createdAt": plan.created_at.isoformat() if plan.created_at else None,
        "entries": [
            serialize_entry(entry, entry_id=str(row.id), servings=row.servings)
            for row, entry in zip(rows, enriched)
        ],
    }


async def swap_meal_plan_entry(
    session: AsyncSession,
    *,
    user_id: str,
    entry_id: str,
    recipe_id: Optional[str] = None,
    suggested_name: Optional[str] = None,
    suggested_description: Optional[str] = None,
    suggested_recipe: Optional[dict] = None,
) -> Dict[str, Any]:
    """Replace one entry's dish with a recipe or a new suggestion."""
    recipe_uuid = _parse_uuid(recipe_id)
    if recipe_id and recipe_uuid is None:
        raise ValueError("recipeId must be a UUID")
    suggested_name = (suggested_name or "").strip() or None
    if recipe_uuid is None and suggested_name is None:
        raise ValueError("Either recipeId or suggestedName is required")
    if suggested_recipe is not None:
        try:
            suggested_recipe = SuggestedRecipe.model_validate(suggested_recipe).model_dump(mode="json")
        except ValidationError:
            raise ValueError("suggestedRecipe is malformed") from None

    entry_uuid = _parse_uuid(entry_id)
    if entry_uuid is None:
        raise LookupError("Meal plan entry not found")
    result = await session.execute(
        select(MealPlanEntry)
        .join(MealPlan, MealPlan.id == MealPlanEntry.meal_plan_id)
        .where(MealPlanEntry.id == entry_uuid, _visible_clause(user_id))
    )
    entry = result.scalars().first()
    if entry is None:
        raise LookupError("Meal plan entry not found")
    if recipe_uuid is not None:
        visible = await session.execute(
            select(Recipe.id).where(Recipe.id == recipe_uuid, _recipe_visible_clause(user_id))
        )
        if visible.first() is None:
            raise LookupError("Recipe not found")

    if recipe_uuid is not None:
        entry.recipe_id = recipe_uuid
        entry.suggested_name = None
        entry.suggested_description = None
        entry.suggested_recipe = None
    else:
        entry.recipe_id = None
        entry.suggested_name = suggested_name
        entry.suggested_description = suggested_description
        entry.suggested_recipe = suggested_recipe
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    await session.refresh(entry)
    logger.info("Swapped meal plan entry %s user=%s", entry_id, user_id)
    return {
        "id": str(entry.id),
        "dayOfWeek": entry.day_of_week,
        "mealType": entry.meal_type,
        "recipeId": str(entry.recipe_id) if entry.recipe_id else None,
        "suggestedName": entry.suggested_name,
        "suggestedDescription": entry.suggested_description,
        "suggestedRecipe": entry.suggested_recipe,
        "reason": entry.reason,
        "servings": entry.servings,
    }
