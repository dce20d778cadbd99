from __future__ import annotations

from datetime import date
from typing import Annotated, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .services.meal_plan_validation import MealType, SuggestedRecipe

DEFAULT_MEAL_TYPES: List[str] = ["middag"]
DEFAULT_DAYS: List[int] = [1, 2, 3, 4, 5, 6, 7]
DEFAULT_SERVINGS = 4
DEFAULT_MAX_SUGGESTIONS = 3

DayOfWeek = Annotated[int, Field(ge=1, le=7)]


class MealPlanPreferencesIn(BaseModel):
    categories: List[str] = Field(default_factory=list)
    mealTypes: List[MealType] = Field(
        default_factory=lambda: list(DEFAULT_MEAL_TYPES),
        min_length=1,
        validation_alias=AliasChoices("mealTypes", "meal_types"),
    )
    days: List[DayOfWeek] = Field(default_factory=lambda: list(DEFAULT_DAYS))
    servings: int = Field(default=DEFAULT_SERVINGS, ge=1, le=50)
    maxSuggestions: int = Field(
        default=DEFAULT_MAX_SUGGESTIONS,
        ge=0,
        validation_alias=AliasChoices("maxSuggestions", "max_suggestions"),
    )

    model_config = ConfigDict(populate_by_name=True)


class MealPlanGenerateRequest(BaseModel):
    weekStart: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("weekStart", "week_start"),
    )
    preferences: MealPlanPreferencesIn = Field(default_factory=MealPlanPreferencesIn)
    homeId: Optional[str] = Field(default=None, validation_alias=AliasChoices("homeId", "home_id"))

    model_config = ConfigDict(populate_by_name=True)

    def parsed_week_start(self) -> date:
        if not self.weekStart:
            raise ValueError("weekStart is required")
        try:
            return date.fromisoformat(self.weekStart)
        except ValueError:
            raise ValueError("weekStart must be an ISO date (YYYY-MM-DD)") from None


class MealPlanEntryOut(BaseModel):
    id: Optional[str] = None
    dayOfWeek: int
    mealType: str
    recipeId: Optional[str] = None
    suggestedName: Optional[str] = None
    suggestedDescription: Optional[str] = None
    suggestedRecipe: Optional[SuggestedRecipe] = None
    reason: Optional[str] = None
    servings: Optional[int] = None
    recipeName: Optional[str] = None
    recipeImage: Optional[str] = None
    recipeThumbnail: Optional[str] = None
    recipePrepTime: Optional[int] = None
    recipeCookTime: Optional[int] = None
    recipeYield: Optional[int] = None
    recipeCategories: Optional[List[str]] = None


class MealPlanGenerateResponse(BaseModel):
    planId: str
    entries: List[MealPlanEntryOut]
    summary: str
    remainingCredits: int


class MealPlanSummary(BaseModel):
    id: str
    weekStart: str
    status: str
    createdAt: Optional[str] = None
    entryCount: int = 0


class MealPlanListResponse(BaseModel):
    plans: List[MealPlanSummary]


class MealPlanDetail(BaseModel):
    id: str
    weekStart: str
    homeId: Optional[str] = None
    status: str
    preferences: dict = Field(default_factory=dict)
    createdAt: Optional[str] = None
    entries: List[MealPlanEntryOut]


class MealPlanEntrySwapRequest(BaseModel):
    recipeId: Optional[str] = Field(default=None, validation_alias=AliasChoices("recipeId", "recipe_id"))
    suggestedName: Optional[str] = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("suggestedName", "suggested_name"),
    )
    suggestedDescription: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("suggestedDescription", "suggested_description"),
    )
    suggestedRecipe: Optional[dict] = Field(
        default=None,
        validation_alias=AliasChoices("suggestedRecipe", "suggested_recipe"),
    )

    model_config = ConfigDict(populate_by_name=True)


class CreditBalanceResponse(BaseModel):
    balance: int


class CreditTransactionSchema(BaseModel):
    id: str
    amount: int
    balanceAfter: int
    transactionType: str
    description: Optional[str] = None
    initiatedBy: Optional[str] = None
    createdAt: str


class CreditHistoryResponse(BaseModel):
    balance: int
    transactions: List[CreditTransactionSchema]


class AdminCreditGrantRequest(BaseModel):
    userId: str = Field(min_length=1, max_length=128)
    amount: int = Field(gt=0, le=1000)
    description: Optional[str] = Field(default=None, max_length=255)
    userEmail: Optional[str] = Field(default=None, max_length=320)


class AdminCreditGrantResponse(BaseModel):
    userId: str
    balance: int
