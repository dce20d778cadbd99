from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import SessionFactory
from ..models import BaseRecipe, HomeMember, PantryItem, Recipe

logger = logging.getLogger(__name__)

BASE_RECIPE_PAGE_SIZE = 500


@dataclass(frozen=True)
class CompactRecipe:
    """Read projection of a user's own recipe."""

    id: str
    name: str
    image: Optional[str] = None
    thumbnail: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    recipe_yield: Optional[int] = None


@dataclass(frozen=True)
class BaseRecipeRecord:
    """Shared pool recipe, with the full structure needed to copy it into a plan."""

    id: str
    name: str
    description: str = ""
    source_url: Optional[str] = None
    source_site: Optional[str] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    recipe_yield: Optional[int] = None
    recipe_yield_name: Optional[str] = None
    diet_type: str = "omnivore"
    categories: List[str] = field(default_factory=list)
    ingredients: List[Dict[str, Any]] = field(default_factory=list)
    instructions: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationCandidates:
    recipes: List[CompactRecipe]
    pantry_items: List[str]
    base_recipes: List[BaseRecipeRecord]


def parse_home_id(home_id: Optional[str]) -> Optional[uuid.UUID]:
    if not home_id:
        return None
    try:
        return uuid.UUID(str(home_id))
    except ValueError:
        raise ValueError("homeId must be a UUID") from None


def _scope_clause(model, *, user_id: str, home_id: Optional[str]):
    home_uuid = parse_home_id(home_id)
    if home_uuid is not None:
        return model.home_id == home_uuid
    return and_(model.owner_id == user_id, model.home_id.is_(None))


def _to_compact(recipe: Recipe) -> CompactRecipe:
    return CompactRecipe(
        id=str(recipe.id),
        name=recipe.name,
        image=recipe.image,
        thumbnail=recipe.thumbnail,
        categories=list(recipe.categories or []),
        prep_time=recipe.prep_time,
        cook_time=recipe.cook_time,
        recipe_yield=recipe.recipe_yield,
    )


def _to_base_record(recipe: BaseRecipe) -> BaseRecipeRecord:
    return BaseRecipeRecord(
        id=str(recipe.id),
        name=recipe.name,
        description=recipe.description or "",
        source_url=recipe.source_url,
        source_site=recipe.source_site,
        prep_time=recipe.prep_time,
        cook_time=recipe.cook_time,
        recipe_yield=recipe.recipe_yield,
        recipe_yield_name=recipe.recipe_yield_name,
        diet_type=recipe.diet_type,
        categories=list(recipe.categories or []),
        ingredients=list(recipe.ingredients or []),
        instructions=list(recipe.instructions or []),
    )


async def is_home_member(session: AsyncSession, *, user_id: str, home_id: str) -> bool:
    home_uuid = parse_home_id(home_id)
    result = await session.execute(
        select(HomeMember.id).where(
            HomeMember.home_id == home_uuid,
            HomeMember.user_id == user_id,
        )
    )
    return result.first() is not None


async def fetch_user_recipes(
    session: AsyncSession,
    *,
    user_id: str,
    home_id: Optional[str] = None,
    limit: int = 300,
) -> List[CompactRecipe]:
    result = await session.execute(
        select(Recipe)
        .where(_scope_clause(Recipe, user_id=user_id, home_id=home_id))
        .order_by(Recipe.updated_at.desc())
        .limit(limit)
    )
    return [_to_compact(recipe) for recipe in result.scalars().all()]


async def fetch_pantry_items(
    session: AsyncSession,
    *,
    user_id: str,
    home_id: Optional[str] = None,
) -> List[str]:
    result = await session.execute(
        select(PantryItem.food_name)
        .where(_scope_clause(PantryItem, user_id=user_id, home_id=home_id))
        .order_by(PantryItem.food_name)
    )
    return [name for name in result.scalars().all() if name]


def _matches_any(values: Sequence[str], wanted: set[str]) -> bool:
    return any((value or "").lower() in wanted for value in values)


async def fetch_base_recipes(
    session: AsyncSession,
    *,
    diet_types: Optional[Sequence[str]] = None,
    categories: Optional[Sequence[str]] = None,
    limit: int = 50,
) -> List[BaseRecipeRecord]:
    if limit <= 0:
        return []
    stmt = select(BaseRecipe).order_by(BaseRecipe.name, BaseRecipe.id)
    if diet_types:
        stmt = stmt.where(BaseRecipe.diet_type.in_(list(diet_types)))
    wanted = {c.lower() for c in categories or [] if c}

    records: List[BaseRecipeRecord] = []
    offset = 0
    while True:
        result = await session.execute(stmt.offset(offset).limit(BASE_RECIPE_PAGE_SIZE))
        page = result.scalars().all()
        for recipe in page:
            # Category columns are JSON arrays; overlap is checked here to stay dialect neutral.
            if wanted and not _matches_any(recipe.categories or [], wanted):
                continue
            records.append(_to_base_record(recipe))
            if len(records) >= limit:
                return records
        if len(page) < BASE_RECIPE_PAGE_SIZE:
            return records
        offset += BASE_RECIPE_PAGE_SIZE


async def load_generation_candidates(
    session_factory: SessionFactory,
    *,
    user_id: str,
    home_id: Optional[str],
    categories: Sequence[str],
    recipe_limit: int = 300,
    base_recipe_limit: int = 50,
) -> GenerationCandidates:
    """Run the three independent reads concurrently, one session each."""

    async def _recipes() -> List[CompactRecipe]:
        async with session_factory() as session:
            return await fetch_user_recipes(session, user_id=user_id, home_id=home_id, limit=recipe_limit)

    async def _pantry() -> List[str]:
        async with session_factory() as session:
            return await fetch_pantry_items(session, user_id=user_id, home_id=home_id)

    async def _base() -> List[BaseRecipeRecord]:
        async with session_factory() as session:
            return await fetch_base_recipes(session, categories=categories, limit=base_recipe_limit)

    results: Tuple[List[CompactRecipe], List[str], List[BaseRecipeRecord]] = await asyncio.gather(
        _recipes(), _pantry(), _base()
    )
    recipes, pantry_items, base_recipes = results
    logger.debug(
        "Loaded candidates user=%s recipes=%s pantry=%s base=%s",
        user_id,
        len(recipes),
        len(pantry_items),
        len(base_recipes),
    )
    return GenerationCandidates(recipes=recipes, pantry_items=pantry_items, base_recipes=base_recipes)
