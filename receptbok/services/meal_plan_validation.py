"""Structural validation of raw meal plan model output.

Everything here is pure: raw text in, typed entries out, or `InvalidResponseError`.
"""
from __future__ import annotations

import json
import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InvalidResponseError

logger = logging.getLogger(__name__)

MealType = Literal["frukost", "lunch", "middag", "mellanmal"]
ALL_DAYS: tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7)


class SuggestedIngredient(BaseModel):
    name: str
    measurement: str
    quantity: str


class SuggestedIngredientGroup(BaseModel):
    group_name: str
    ingredients: List[SuggestedIngredient]


class SuggestedInstruction(BaseModel):
    step: str


class SuggestedInstructionGroup(BaseModel):
    group_name: str
    instructions: List[SuggestedInstruction]


class SuggestedRecipe(BaseModel):
    recipe_name: str
    description: str
    recipe_yield: Optional[float] = None
    prep_time: Optional[float] = None
    cook_time: Optional[float] = None
    categories: List[str] = Field(default_factory=list)
    ingredient_groups: List[SuggestedIngredientGroup]
    instruction_groups: List[SuggestedInstructionGroup]
    # Attribution, only present when copied from the base recipe pool.
    source_url: Optional[str] = None
    source_site: Optional[str] = None


class RawPlanEntry(BaseModel):
    day_of_week: int = Field(strict=True, ge=1, le=7, description="1=Monday .. 7=Sunday")
    meal_type: MealType
    recipe_id: Optional[str] = Field(
        description="Id of an existing recipe, BASE:<id> for a base recipe, or null for a new suggestion"
    )
    suggested_name: Optional[str] = Field(description="Name of the suggested dish when recipe_id is null")
    suggested_description: Optional[str] = Field(description="Short description of the suggested dish")
    suggested_recipe: Optional[SuggestedRecipe] = None
    reason: str = Field(description="One sentence on why the dish was chosen")


class MealPlanResponse(BaseModel):
    entries: List[RawPlanEntry]
    summary: str = Field(description="One or two sentences on the week's theme")


class PlanEntry(BaseModel):
    """A plan slot after reference resolution; exactly one of recipe_id/suggested_name is set."""

    model_config = ConfigDict(frozen=True)

    day_of_week: int
    meal_type: str
    recipe_id: Optional[str] = None
    suggested_name: Optional[str] = None
    suggested_description: Optional[str] = None
    suggested_recipe: Optional[SuggestedRecipe] = None
    reason: str = ""


def _strict_schema(schema: dict) -> dict:
    """Shape a pydantic JSON schema for strict structured output.

    Strict mode requires every property to be listed as required and forbids
    additional properties; optional fields stay nullable instead.
    """
    if isinstance(schema, dict):
        if schema.get("type") == "object" and "properties" in schema:
            schema["required"] = list(schema["properties"].keys())
            schema["additionalProperties"] = False
        schema.pop("default", None)
        schema.pop("title", None)
        for value in schema.values():
            if isinstance(value, dict):
                _strict_schema(value)
            elif isinstance(value, list):
                for item in value:
                    _strict_schema(item)
    return schema


def build_meal_plan_json_schema() -> dict:
    return _strict_schema(MealPlanResponse.model_json_schema())


MEAL_PLAN_JSON_SCHEMA = build_meal_plan_json_schema()


def parse_meal_plan_response(raw_text: str) -> MealPlanResponse:
    try:
        payload = json.loads(raw_text)
    except (TypeError, json.JSONDecodeError) as exc:
        logger.error("Meal plan model returned invalid JSON: %s", exc)
        raise InvalidResponseError() from exc

    try:
        return MealPlanResponse.model_validate(payload)
    except ValidationError as exc:
        logger.error(
            "Meal plan model output failed schema validation (%s errors): %s",
            exc.error_count(),
            exc.errors(include_url=False)[:5],
        )
        raise InvalidResponseError() from exc
