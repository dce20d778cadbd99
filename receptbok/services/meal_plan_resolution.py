from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from pydantic import BaseModel, ValidationError

from .candidates import BaseRecipeRecord, CompactRecipe
from .meal_plan_validation import PlanEntry, RawPlanEntry, SuggestedRecipe

logger = logging.getLogger(__name__)

BASE_REFERENCE_PREFIX = "BASE:"
UNKNOWN_RECIPE_NAME = "Okänt recept"
UNKNOWN_BASE_RECIPE_NAME = "Okänt basrecept"
UNNAMED_SUGGESTION_NAME = "Okänt förslag"


@dataclass(frozen=True)
class NoReference:
    pass


@dataclass(frozen=True)
class ConfirmedRecipe:
    recipe_id: str


@dataclass(frozen=True)
class BaseReference:
    base_id: str


@dataclass(frozen=True)
class UnknownRecipe:
    recipe_id: str


RecipeReference = Union[NoReference, ConfirmedRecipe, BaseReference, UnknownRecipe]


class EnrichedEntry(PlanEntry):
    recipe_name: Optional[str] = None
    recipe_image: Optional[str] = None
    recipe_thumbnail: Optional[str] = None
    recipe_prep_time: Optional[int] = None
    recipe_cook_time: Optional[int] = None
    recipe_yield: Optional[int] = None
    recipe_categories: Optional[List[str]] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def decode_reference(recipe_id: Optional[str], known_recipe_ids: Set[str]) -> RecipeReference:
    recipe_id = _clean(recipe_id)
    if recipe_id is None:
        return NoReference()
    if recipe_id.startswith(BASE_REFERENCE_PREFIX):
        return BaseReference(recipe_id[len(BASE_REFERENCE_PREFIX):].strip())
    if recipe_id in known_recipe_ids:
        return ConfirmedRecipe(recipe_id)
    return UnknownRecipe(recipe_id)


def suggested_recipe_from_base(base: BaseRecipeRecord) -> SuggestedRecipe:
    return SuggestedRecipe.model_validate(
        {
            "recipe_name": base.name,
            "description": base.description or "",
            "recipe_yield": base.recipe_yield,
            "prep_time": base.prep_time,
            "cook_time": base.cook_time,
            "categories": list(base.categories),
            "ingredient_groups": base.ingredients,
            "instruction_groups": base.instructions,
            "source_url": base.source_url,
            "source_site": base.source_site,
        }
    )


def _as_suggestion(entry: RawPlanEntry, placeholder: str) -> PlanEntry:
    name = _clean(entry.suggested_name)
    if name is None and entry.suggested_recipe is not None:
        name = _clean(entry.suggested_recipe.recipe_name)
    return PlanEntry(
        day_of_week=entry.day_of_week,
        meal_type=entry.meal_type,
        recipe_id=None,
        suggested_name=name or placeholder,
        suggested_description=_clean(entry.suggested_description),
        suggested_recipe=entry.suggested_recipe,
        reason=entry.reason,
    )


def resolve_entry(
    entry: RawPlanEntry,
    known_recipe_ids: Set[str],
    base_recipes: Dict[str, BaseRecipeRecord],
) -> PlanEntry:
    reference = decode_reference(entry.recipe_id, known_recipe_ids)

    if isinstance(reference, NoReference):
        return _as_suggestion(entry, UNNAMED_SUGGESTION_NAME)

    if isinstance(reference, BaseReference):
        base = base_recipes.get(reference.base_id)
        if base is None:
            logger.warning("Model referenced unknown base recipe %s", reference.base_id)
            return _as_suggestion(entry, UNKNOWN_BASE_RECIPE_NAME)
        # Suggestions copied from the pool keep the pool's attribution.
        try:
            suggestion: Optional[SuggestedRecipe] = suggested_recipe_from_base(base)
        except ValidationError:
            logger.warning("Base recipe %s has malformed ingredient/instruction data", base.id)
            suggestion = None
        return PlanEntry(
            day_of_week=entry.day_of_week,
            meal_type=entry.meal_type,
            recipe_id=None,
            suggested_name=base.name,
            suggested_description=_clean(base.description),
            suggested_recipe=suggestion,
            reason=entry.reason,
        )

    if isinstance(reference, UnknownRecipe):
        logger.warning("Model referenced unknown recipe %s", reference.recipe_id)
        return _as_suggestion(entry, UNKNOWN_RECIPE_NAME)

    return PlanEntry(
        day_of_week=entry.day_of_week,
        meal_type=entry.meal_type,
        recipe_id=reference.recipe_id,
        reason=entry.reason,
    )


def resolve_entries(
    entries: Iterable[RawPlanEntry],
    user_recipes: Sequence[CompactRecipe],
    base_recipes: Sequence[BaseRecipeRecord],
) -> List[PlanEntry]:
    known_ids = {recipe.id for recipe in user_recipes}
    base_map = {base.id: base for base in base_recipes}
    return [resolve_entry(entry, known_ids, base_map) for entry in entries]


def deduplicate_entries(entries: Iterable[PlanEntry]) -> List[PlanEntry]:
    """Keep the first entry per (day, meal type) in the model's original order."""
    seen: Set[str] = set()
    unique: List[PlanEntry] = []
    for entry in entries:
        key = f"{entry.day_of_week}-{entry.meal_type}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique


def resolve_and_deduplicate(
    entries: Iterable[RawPlanEntry],
    user_recipes: Sequence[CompactRecipe],
    base_recipes: Sequence[BaseRecipeRecord],
) -> List[PlanEntry]:
    resolved = resolve_entries(entries, user_recipes, base_recipes)
    unique = deduplicate_entries(resolved)
    if len(unique) != len(resolved):
        logger.info("Dropped %s duplicate plan slots", len(resolved) - len(unique))
    return unique


def enrich_entries(
    entries: Iterable[PlanEntry],
    user_recipes: Sequence[CompactRecipe],
) -> List[EnrichedEntry]:
    recipe_map = {recipe.id: recipe for recipe in user_recipes}
    enriched: List[EnrichedEntry] = []
    for entry in entries:
        payload = _entry_fields(entry)
        recipe = recipe_map.get(entry.recipe_id) if entry.recipe_id else None
        if recipe is not None:
            payload.update(
                recipe_name=recipe.name,
                recipe_image=recipe.image,
                recipe_thumbnail=recipe.thumbnail,
                recipe_prep_time=recipe.prep_time,
                recipe_cook_time=recipe.cook_time,
                recipe_yield=recipe.recipe_yield,
                recipe_categories=list(recipe.categories),
            )
        enriched.append(EnrichedEntry(**payload))
    return enriched


def _entry_fields(entry: BaseModel) -> dict:
    # Shallow copy keeps nested models as models rather than dicts.
    return {name: getattr(entry, name) for name in PlanEntry.model_fields}
