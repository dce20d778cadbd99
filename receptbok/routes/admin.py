from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..auth import get_current_principal, is_admin
from ..db import get_session
from ..models import CreditTransactionType
from ..schemas import AdminCreditGrantRequest, AdminCreditGrantResponse
from ..services.credits import add_credits

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _require_admin(principal: Dict[str, Any]) -> None:
    if not is_admin(principal):
        raise HTTPException(status_code=403, detail="Admin only")


@router.post("/credits/grant", response_model=AdminCreditGrantResponse)
async def admin_grant_credits(
    payload: AdminCreditGrantRequest,
    principal=Depends(get_current_principal),
):
    _require_admin(principal)
    actor = principal.get("email") or principal.get("sub")
    async with get_session() as session:
        try:
            balance = await add_credits(
                session,
                user_id=payload.userId,
                amount=payload.amount,
                transaction_type=CreditTransactionType.ADMIN_GRANT,
                description=payload.description or "Admin grant",
                user_email=payload.userEmail,
                initiated_by=actor,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    logger.info("Admin %s granted %s credits to %s", actor, payload.amount, payload.userId)
    return AdminCreditGrantResponse(userId=payload.userId, balance=balance)
