from __future__ import annotations

from typing import Iterable, Tuple

import structlog

from .config import Settings

logger = structlog.get_logger(__name__)


def _collect_missing(settings: Settings, pairs: Iterable[Tuple[str, str]]) -> list[str]:
    missing: list[str] = []
    for attr, label in pairs:
        value = getattr(settings, attr, None)
        if value in (None, "", [], {}):
            missing.append(label)
    return missing


def validate_settings(settings: Settings) -> None:
    """Fail fast when mandatory secrets/config values are missing for non-dev envs."""
    environment = (settings.environment or "dev").lower()

    if settings.openai_meal_plan_model not in settings.openai_allowed_models:
        raise RuntimeError(
            f"OPENAI_MEAL_PLAN_MODEL '{settings.openai_meal_plan_model}' is not in OPENAI_ALLOWED_MODELS"
        )

    recommended = [
        ("database_url", "DATABASE_URL"),
        ("openai_api_key", "OPENAI_API_KEY"),
    ]
    if environment == "dev":
        dev_missing = _collect_missing(settings, recommended)
        if dev_missing:
            logger.warning(
                "Running in dev without recommended secrets; some features may be disabled",
                missing=dev_missing,
            )
        return

    if settings.auth_disable_verification:
        raise RuntimeError(f"AUTH_DISABLE_VERIFICATION is not allowed in environment '{environment}'")

    required_pairs: list[Tuple[str, str]] = recommended + [
        ("clerk_issuer", "CLERK_ISSUER"),
        ("clerk_audience", "CLERK_AUDIENCE"),
    ]
    missing = _collect_missing(settings, required_pairs)
    if missing:
        raise RuntimeError(
            f"Missing required configuration for environment '{environment}': {', '.join(sorted(missing))}"
        )
