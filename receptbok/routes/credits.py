from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..auth import get_current_principal
from ..config import get_settings
from ..db import get_session
from ..schemas import CreditBalanceResponse, CreditHistoryResponse
from ..services.credits import HISTORY_MAX_LIMIT, ensure_credit_account, get_credit_history

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/balance", response_model=CreditBalanceResponse)
async def credit_balance(principal=Depends(get_current_principal)):
    async with get_session() as session:
        account = await ensure_credit_account(
            session,
            user_id=principal.get("sub"),
            user_email=principal.get("email"),
            signup_bonus=get_settings().signup_bonus_credits,
        )
    return {"balance": account.balance}


@router.get("/history", response_model=CreditHistoryResponse)
async def credit_history(
    limit: int = Query(default=50, ge=1, le=HISTORY_MAX_LIMIT),
    offset: int = Query(default=0, ge=0),
    principal=Depends(get_current_principal),
):
    user_id = principal.get("sub")
    async with get_session() as session:
        account = await ensure_credit_account(
            session,
            user_id=user_id,
            user_email=principal.get("email"),
            signup_bonus=get_settings().signup_bonus_credits,
        )
        transactions = await get_credit_history(session, user_id, limit=limit, offset=offset)
    return {"balance": account.balance, "transactions": transactions}
