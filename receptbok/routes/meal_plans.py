from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..auth import get_current_principal
from ..config import get_settings
from ..db import get_session
from ..ratelimit import limiter, meal_plan_limit
from ..schemas import (
    MealPlanDetail,
    MealPlanEntrySwapRequest,
    MealPlanGenerateRequest,
    MealPlanGenerateResponse,
    MealPlanListResponse,
)
from ..services.candidates import is_home_member, parse_home_id
from ..services.credits import ensure_credit_account
from ..services.meal_plan_generation import generate_meal_plan
from ..services.meal_plans import get_meal_plan, list_meal_plans, swap_meal_plan_entry

router = APIRouter(tags=["meal-plans"])


async def _check_home_access(user_id: str, home_id: Optional[str]) -> None:
    if not home_id:
        return
    try:
        parse_home_id(home_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    async with get_session() as session:
        member = await is_home_member(session, user_id=user_id, home_id=home_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this home")


@router.post("/ai/meal-plan", response_model=MealPlanGenerateResponse)
@limiter.limit(meal_plan_limit)
async def create_meal_plan(
    request: Request,
    payload: MealPlanGenerateRequest,
    principal=Depends(get_current_principal),
):
    try:
        payload.parsed_week_start()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    settings = get_settings()
    if not settings.openai_api_key:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OpenAI not configured")
    user_id = principal.get("sub")
    await _check_home_access(user_id, payload.homeId)
    async with get_session() as session:
        await ensure_credit_account(
            session,
            user_id=user_id,
            user_email=principal.get("email"),
            signup_bonus=settings.signup_bonus_credits,
        )

    # MealPlanGenerationError is rendered by the app-level handler as {detail, code}.
    result = await generate_meal_plan(
        user_id=user_id,
        user_email=principal.get("email"),
        request=payload,
        session_factory=get_session,
    )
    return result.to_response()


@router.get("/meal-plans", response_model=MealPlanListResponse)
async def meal_plans_index(
    homeId: Optional[str] = Query(default=None),
    principal=Depends(get_current_principal),
):
    user_id = principal.get("sub")
    await _check_home_access(user_id, homeId)
    async with get_session() as session:
        plans = await list_meal_plans(session, user_id=user_id, home_id=homeId)
    return {"plans": plans}


@router.get("/meal-plans/current", response_model=MealPlanDetail)
async def current_meal_plan(
    homeId: Optional[str] = Query(default=None),
    principal=Depends(get_current_principal),
):
    user_id = principal.get("sub")
    await _check_home_access(user_id, homeId)
    async with get_session() as session:
        plan = await get_meal_plan(session, user_id=user_id, home_id=homeId)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active meal plan")
    return plan


@router.get("/meal-plans/{plan_id}", response_model=MealPlanDetail)
async def meal_plan_detail(plan_id: str, principal=Depends(get_current_principal)):
    async with get_session() as session:
        plan = await get_meal_plan(session, user_id=principal.get("sub"), plan_id=plan_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meal plan not found")
    return plan


@router.patch("/meal-plans/entries/{entry_id}")
async def swap_entry(
    entry_id: str,
    payload: MealPlanEntrySwapRequest,
    principal=Depends(get_current_principal),
):
    async with get_session() as session:
        try:
            entry = await swap_meal_plan_entry(
                session,
                user_id=principal.get("sub"),
                entry_id=entry_id,
                recipe_id=payload.recipeId,
                suggested_name=payload.suggestedName,
                suggested_description=payload.suggestedDescription,
                suggested_recipe=payload.suggestedRecipe,
            )
        except LookupError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return entry
