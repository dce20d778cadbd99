"""Credit-gated weekly meal plan generation.

One credit is reserved up front; the plan is generated, checked, resolved
against the user's recipes and stored; the credit is refunded exactly once if
any stage after the reservation fails.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import structlog

from ..config import get_settings
from ..db import SessionFactory, get_session
from ..errors import (
    MealPlanGenerationError,
    NoResponseError,
    PersistenceFailure,
    UnexpectedGenerationError,
)
from ..schemas import MealPlanGenerateRequest
from .candidates import load_generation_candidates
from .credit_reservation import CreditReservation
from .filtering import filter_recipes_by_categories
from .meal_plan_prompt import build_meal_plan_prompts, compute_suggestion_budget, resolve_selected_days
from .meal_plan_resolution import enrich_entries, resolve_and_deduplicate
from .meal_plan_validation import MEAL_PLAN_JSON_SCHEMA, parse_meal_plan_response
from .meal_plans import save_meal_plan, serialize_entry
from .openai_responses import call_openai_responses, json_schema_format

logger = structlog.get_logger(__name__)

ModelCaller = Callable[..., str]


@dataclass
class MealPlanGenerationResult:
    plan_id: str
    entries: List[Dict[str, Any]]
    summary: str
    remaining_credits: int

    def to_response(self) -> Dict[str, Any]:
        return {
            "planId": self.plan_id,
            "entries": self.entries,
            "summary": self.summary,
            "remainingCredits": self.remaining_credits,
        }


async def _invoke_model(model_caller: ModelCaller, **kwargs: Any) -> str:
    settings = get_settings()
    timeout = settings.meal_plan_generation_timeout_seconds
    try:
        return await asyncio.wait_for(asyncio.to_thread(model_caller, **kwargs), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise NoResponseError("Timed out while waiting for the meal plan model") from exc


async def generate_meal_plan(
    *,
    user_id: str,
    user_email: Optional[str],
    request: MealPlanGenerateRequest,
    session_factory: SessionFactory = get_session,
    model_caller: ModelCaller = call_openai_responses,
) -> MealPlanGenerationResult:
    settings = get_settings()
    week_start = request.parsed_week_start()
    prefs = request.preferences
    log = logger.bind(user_id=user_id, week_start=week_start.isoformat(), home_id=request.homeId)

    reservation = await CreditReservation.acquire(
        user_id=user_id,
        user_email=user_email,
        description=f"Meal plan: week of {week_start.isoformat()}",
        session_factory=session_factory,
    )
    log.info("meal_plan.credit_reserved", remaining=reservation.remaining_balance)

    try:
        candidates = await load_generation_candidates(
            session_factory,
            user_id=user_id,
            home_id=request.homeId,
            categories=prefs.categories,
            recipe_limit=settings.meal_plan_user_recipe_limit,
            base_recipe_limit=settings.meal_plan_base_recipe_limit,
        )
        filtered = filter_recipes_by_categories(
            candidates.recipes,
            prefs.categories,
            min_results=settings.meal_plan_category_min_results,
        )
        selected_days = resolve_selected_days(prefs.days)
        meal_types = list(dict.fromkeys(prefs.mealTypes))
        budget = compute_suggestion_budget(
            selected_days=selected_days,
            meal_types=meal_types,
            requested_max_suggestions=prefs.maxSuggestions,
            available_recipes=len(filtered) + len(candidates.base_recipes),
        )
        log.info(
            "meal_plan.candidates_loaded",
            recipes=len(candidates.recipes),
            filtered=len(filtered),
            base_recipes=len(candidates.base_recipes),
            pantry=len(candidates.pantry_items),
            slots=budget.total_slots,
            max_suggestions=budget.max_suggestions,
        )
        system_prompt, user_prompt = build_meal_plan_prompts(
            recipes=filtered,
            base_recipes=candidates.base_recipes,
            pantry_items=candidates.pantry_items,
            categories=prefs.categories,
            meal_types=meal_types,
            servings=prefs.servings,
            selected_days=selected_days,
            budget=budget,
        )

        raw_text = await _invoke_model(
            model_caller,
            model=settings.openai_meal_plan_model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            max_output_tokens=settings.openai_meal_plan_max_output_tokens,
            top_p=settings.openai_meal_plan_top_p,
            reasoning_effort=settings.openai_meal_plan_reasoning_effort,
            text_format=json_schema_format("meal_plan", MEAL_PLAN_JSON_SCHEMA),
        )
        if not raw_text or not raw_text.strip():
            raise NoResponseError()

        parsed = parse_meal_plan_response(raw_text)
        # Resolution checks ids against every recipe the user has, not only the filtered subset.
        entries = resolve_and_deduplicate(parsed.entries, candidates.recipes, candidates.base_recipes)
        enriched = enrich_entries(entries, candidates.recipes)
        log.info("meal_plan.resolved", model_entries=len(parsed.entries), entries=len(entries))

        async with session_factory() as session:
            plan_id = await save_meal_plan(
                session,
                user_id=user_id,
                week_start=week_start,
                preferences=prefs.model_dump(mode="json"),
                entries=entries,
                servings=prefs.servings,
                home_id=request.homeId,
            )
        if plan_id is None:
            raise PersistenceFailure()
    except MealPlanGenerationError as exc:
        log.warning("meal_plan.failed", code=exc.code, error=exc.message)
        await reservation.refund(exc.code)
        raise
    except asyncio.CancelledError:
        log.warning("meal_plan.cancelled")
        await reservation.refund("cancelled")
        raise
    except Exception as exc:
        log.exception("meal_plan.unexpected_error")
        await reservation.refund(UnexpectedGenerationError.code)
        raise UnexpectedGenerationError() from exc

    reservation.settle()
    log.info("meal_plan.saved", plan_id=plan_id, entries=len(enriched))
    return MealPlanGenerationResult(
        plan_id=plan_id,
        entries=[serialize_entry(entry, servings=prefs.servings) for entry in enriched],
        summary=parsed.summary,
        remaining_credits=reservation.remaining_balance,
    )
