from __future__ import annotations

from dataclasses import dataclass
from textwrap import dedent
from typing import List, Optional, Sequence, Tuple

from .candidates import BaseRecipeRecord, CompactRecipe
from .meal_plan_resolution import BASE_REFERENCE_PREFIX
from .meal_plan_validation import ALL_DAYS

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@dataclass(frozen=True)
class SuggestionBudget:
    total_slots: int
    from_existing: int
    available_recipes: int
    max_suggestions: int


def resolve_selected_days(days: Optional[Sequence[int]]) -> List[int]:
    """The caller's days, or the whole week when the list is empty or covers all seven."""
    unique = sorted({day for day in days or [] if day in ALL_DAYS})
    if unique and len(unique) < len(ALL_DAYS):
        return unique
    return list(ALL_DAYS)


def compute_suggestion_budget(
    *,
    selected_days: Sequence[int],
    meal_types: Sequence[str],
    requested_max_suggestions: int,
    available_recipes: int,
) -> SuggestionBudget:
    """How many novel dishes to ask for, never asking to reuse more recipes than exist."""
    total_slots = len(selected_days) * len(meal_types)
    from_existing = total_slots - requested_max_suggestions
    if from_existing > available_recipes:
        max_suggestions = total_slots - available_recipes
    else:
        max_suggestions = requested_max_suggestions
    return SuggestionBudget(
        total_slots=total_slots,
        from_existing=from_existing,
        available_recipes=available_recipes,
        max_suggestions=max_suggestions,
    )


def _format_meta(categories: Sequence[str], prep_time, cook_time, recipe_yield) -> str:
    total_time = (prep_time or 0) + (cook_time or 0)
    parts = [
        ", ".join(categories) if categories else "",
        f"{total_time}min" if total_time > 0 else "",
        f"{recipe_yield}p" if recipe_yield else "",
    ]
    meta = " ".join(part for part in parts if part)
    return f" ({meta})" if meta else ""


def format_recipe_line(recipe: CompactRecipe) -> str:
    meta = _format_meta(recipe.categories, recipe.prep_time, recipe.cook_time, recipe.recipe_yield)
    return f"[{recipe.id}] {recipe.name}{meta}"


def format_base_recipe_line(recipe: BaseRecipeRecord) -> str:
    meta = _format_meta(recipe.categories, recipe.prep_time, recipe.cook_time, recipe.recipe_yield)
    return f"[{BASE_REFERENCE_PREFIX}{recipe.id}] {recipe.name}{meta}"


def _recipe_source_rule(max_suggestions: int, total_slots: int) -> str:
    full_recipe_rule = (
        "- Every new suggestion (recipe_id = null) must include suggested_recipe with complete "
        "ingredient_groups, instruction_groups, prep_time, cook_time, recipe_yield and categories."
    )
    if max_suggestions <= 0:
        return (
            "- Only pick recipes from the lists below (recipe_id is required on every entry). "
            "No new suggestions: suggested_name, suggested_description and suggested_recipe are always null."
        )
    if max_suggestions >= total_slots:
        return (
            f"- All {total_slots} entries must be new suggestions (recipe_id = null with suggested_name "
            f"and suggested_description filled in). Do not use recipes from the lists.\n{full_recipe_rule}"
        )
    return (
        f"- Create exactly {total_slots} entries: exactly {max_suggestions} new suggestions "
        f"(recipe_id = null) and exactly {total_slots - max_suggestions} recipes from the lists "
        f"(with recipe_id).\n{full_recipe_rule}"
    )


def build_meal_plan_prompts(
    *,
    recipes: Sequence[CompactRecipe],
    base_recipes: Sequence[BaseRecipeRecord],
    pantry_items: Sequence[str],
    categories: Sequence[str],
    meal_types: Sequence[str],
    servings: int,
    selected_days: Sequence[int],
    budget: SuggestionBudget,
) -> Tuple[str, str]:
    all_days = len(selected_days) == len(ALL_DAYS)
    day_names = ", ".join(DAY_NAMES[day - 1] for day in selected_days)
    day_scope = "Monday to Sunday" if all_days else day_names
    day_rule = "" if all_days else f"\n- Only create entries for these days: {day_names}. No other days."
    category_rule = (
        f"Category preferences: {', '.join(categories)}. Prefer recipes and suggestions in these categories."
        if categories
        else "No particular category preferences."
    )
    pantry_rule = (
        f"\n- Prefer dishes that use what is already in the pantry: {', '.join(pantry_items)}."
        if pantry_items
        else ""
    )
    meal_type_list = ", ".join(f'"{meal_type}"' for meal_type in meal_types)

    rules = (
        _recipe_source_rule(budget.max_suggestions, budget.total_slots)
        + day_rule
        + f"\n- {category_rule}"
        + f"\n- Meal types to plan: {meal_type_list}. Exactly one entry per day and meal type."
        + f"\n- Servings per meal: {servings}."
        + "\n- Vary cuisines and main ingredients through the week; avoid repetition."
        + "\n- Simpler dishes on weekdays, more ambitious ones at the weekend."
        + pantry_rule
    )
    fields = dedent(
        f"""
        ENTRY FIELDS:
        - day_of_week: 1=Monday .. 7=Sunday
        - meal_type: one of {meal_type_list}
        - recipe_id: an id from the user's recipes, BASE:<id> for a base recipe, or null for a new suggestion
        - suggested_name / suggested_description: only for new suggestions, otherwise null
        - reason: one short sentence

        Also return a "summary" of one or two sentences describing the week's theme.
        Respond with JSON only.
        """
    ).strip()
    system_prompt = "\n\n".join(
        [
            f"You are an experienced chef planning a household's week of meals ({day_scope}) "
            "from their recipe collection.",
            f"RULES:\n{rules}",
            fields,
        ]
    )

    recipe_lines = "\n".join(format_recipe_line(recipe) for recipe in recipes) or "(none)"
    sections = [f"USER'S RECIPES:\n{recipe_lines}"]
    if base_recipes:
        base_lines = "\n".join(format_base_recipe_line(recipe) for recipe in base_recipes)
        sections.append(
            "BASE RECIPES (reference them as BASE:<id>; they count as existing recipes):\n" + base_lines
        )
    if pantry_items:
        sections.append("PANTRY:\n" + "\n".join(f"- {item}" for item in pantry_items))
    user_prompt = "\n\n".join(sections)
    return system_prompt, user_prompt
