from __future__ import annotations

from typing import Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings


def _principal_or_address(request: Request) -> str:
    """Bucket by bearer token when present so users behind one NAT don't share a limit."""
    auth: Optional[str] = request.headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        return f"token:{auth[7:][-32:]}"
    return get_remote_address(request)


def meal_plan_limit() -> str:
    return get_settings().meal_plan_rate_limit


limiter = Limiter(key_func=_principal_or_address)
