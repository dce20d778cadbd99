from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    # Core
    app_name: str = Field(default="receptbok-server")
    environment: str = Field(default="dev")  # dev|staging|prod
    log_json: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    # Auth (Clerk)
    clerk_issuer: str | None = Field(default=None)
    clerk_jwks_url: str | None = Field(default=None)
    clerk_audience: str | None = Field(default=None)
    auth_disable_verification: bool = Field(default=False)

    # Data
    database_url: str | None = Field(default=None)

    # API
    cors_allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    admin_emails: List[str] = Field(default_factory=list)
    meal_plan_rate_limit: str = Field(default="10/minute")

    # Credits
    signup_bonus_credits: int = Field(default=3, ge=0)

    # OpenAI
    openai_api_key: str | None = Field(default=None)
    openai_allowed_models: List[str] = Field(
        default_factory=lambda: ["gpt-4o-mini", "gpt-4o", "o4-mini", "gpt-5", "gpt-5-mini"]
    )
    openai_meal_plan_model: str = Field(default="gpt-5-mini")
    openai_meal_plan_top_p: float | None = Field(default=None)
    openai_meal_plan_reasoning_effort: str = Field(default="low")
    openai_meal_plan_max_output_tokens: int = Field(default=16000)
    openai_request_timeout_seconds: int = Field(default=90, ge=30, le=300)

    # Meal plan generation
    meal_plan_generation_timeout_seconds: int = Field(default=120, ge=10, le=600)
    meal_plan_user_recipe_limit: int = Field(default=300, ge=1)
    meal_plan_base_recipe_limit: int = Field(default=50, ge=0)
    meal_plan_category_min_results: int = Field(default=5, ge=0)

    # Observability
    sentry_dsn: str | None = Field(default=None)
    sentry_traces_sample_rate: float = Field(default=0.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("cors_allowed_origins", "admin_emails", "openai_allowed_models", mode="before")
    @classmethod
    def _csv_to_list(cls, v):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
