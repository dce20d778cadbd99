from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import CreditAccount, CreditTransaction, CreditTransactionType

logger = logging.getLogger(__name__)

GENERATION_COST = 1
HISTORY_MAX_LIMIT = 200


@dataclass(frozen=True)
class DeductResult:
    success: bool
    remaining_balance: Optional[int] = None


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise


async def get_credit_balance(session: AsyncSession, user_id: Optional[str]) -> int:
    if not user_id:
        return 0
    result = await session.execute(
        select(CreditAccount.balance).where(CreditAccount.user_id == user_id)
    )
    return int(result.scalar_one_or_none() or 0)


async def ensure_credit_account(
    session: AsyncSession,
    *,
    user_id: str,
    user_email: Optional[str],
    signup_bonus: int = 0,
) -> CreditAccount:
    """Create the account on first contact, granting the signup bonus exactly once."""
    account = await session.get(CreditAccount, user_id)
    if account is not None:
        if user_email and account.user_email != user_email:
            account.user_email = user_email
            await _commit(session)
        return account

    account = CreditAccount(user_id=user_id, user_email=user_email, balance=signup_bonus)
    session.add(account)
    if signup_bonus > 0:
        session.add(
            CreditTransaction(
                user_id=user_id,
                amount=signup_bonus,
                balance_after=signup_bonus,
                transaction_type=CreditTransactionType.SIGNUP_BONUS,
                description="Signup bonus",
            )
        )
    await _commit(session)
    await session.refresh(account)
    logger.info("Created credit account user=%s bonus=%s", user_id, signup_bonus)
    return account


async def deduct_credit(
    session: AsyncSession,
    *,
    user_id: str,
    description: Optional[str],
) -> DeductResult:
    """Spend one credit, or fail closed when the balance cannot cover it.

    The guard lives in the UPDATE's WHERE clause so two concurrent jobs can never
    both spend the last credit.
    """
    result = await session.execute(
        update(CreditAccount)
        .where(
            CreditAccount.user_id == user_id,
            CreditAccount.balance >= GENERATION_COST,
        )
        .values(balance=CreditAccount.balance - GENERATION_COST)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        return DeductResult(success=False)

    balance = await session.scalar(
        select(CreditAccount.balance).where(CreditAccount.user_id == user_id)
    )
    session.add(
        CreditTransaction(
            user_id=user_id,
            amount=-GENERATION_COST,
            balance_after=balance,
            transaction_type=CreditTransactionType.AI_GENERATION,
            description=description,
        )
    )
    await _commit(session)
    return DeductResult(success=True, remaining_balance=int(balance))


async def add_credits(
    session: AsyncSession,
    *,
    user_id: str,
    amount: int,
    transaction_type: str,
    description: Optional[str] = None,
    user_email: Optional[str] = None,
    initiated_by: Optional[str] = None,
) -> int:
    """Credit the account (creating it if needed) and return the new balance."""
    if amount <= 0:
        raise ValueError("Amount must be positive")

    account = await session.get(CreditAccount, user_id)
    if account is None:
        account = CreditAccount(user_id=user_id, user_email=user_email, balance=0)
        session.add(account)
        await session.flush()

    await session.execute(
        update(CreditAccount)
        .where(CreditAccount.user_id == user_id)
        .values(balance=CreditAccount.balance + amount)
        .execution_options(synchronize_session=False)
    )
    balance = await session.scalar(
        select(CreditAccount.balance).where(CreditAccount.user_id == user_id)
    )
    session.add(
        CreditTransaction(
            user_id=user_id,
            amount=amount,
            balance_after=balance,
            transaction_type=transaction_type,
            description=description,
            initiated_by=initiated_by,
        )
    )
    await _commit(session)
    await session.refresh(account)
    return int(balance)


async def get_credit_history(
    session: AsyncSession,
    user_id: Optional[str],
    *,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    if not user_id:
        return []
    limit = max(1, min(limit, HISTORY_MAX_LIMIT))
    result = await session.execute(
        select(CreditTransaction)
        .where(CreditTransaction.user_id == user_id)
        .order_by(CreditTransaction.created_at.desc())
        .limit(limit)
        .offset(max(offset, 0))
        .execution_options(populate_existing=True)
    )
    return [
        {
            "id": str(txn.id),
            "amount": txn.amount,
            "balanceAfter": txn.balance_after,
            "transactionType": txn.transaction_type,
            "description": txn.description,
            "initiatedBy": txn.initiated_by,
            "createdAt": txn.created_at.isoformat(),
        }
        for txn in result.scalars().all()
    ]
