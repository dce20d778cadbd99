from __future__ import annotations

import os
from fastapi import APIRouter
from ..config import get_settings


router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    s = get_settings()
    return {
        "status": "ok",
        "service": s.app_name,
        "env": s.environment,
        "model": s.openai_meal_plan_model,
        "aiConfigured": bool(s.openai_api_key),
        "pid": os.getpid(),
    }
