from __future__ import annotations

from unittest import IsolatedAsyncioTestCase

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from receptbok.models import Base, CreditTransaction, CreditTransactionType
from receptbok.services.credits import (
    add_credits,
    deduct_credit,
    ensure_credit_account,
    get_credit_balance,
    get_credit_history,
)


class CreditLedgerTest(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.Session = async_sessionmaker(self.engine, expire_on_commit=False)

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def _transactions(self, session, user_id: str = "user-1"):
        result = await session.execute(
            select(CreditTransaction).where(CreditTransaction.user_id == user_id)
        )
        return list(result.scalars().all())

    async def test_signup_bonus_granted_once(self):
        async with self.Session() as session:
            account = await ensure_credit_account(
                session, user_id="user-1", user_email="a@example.com", signup_bonus=3
            )
            self.assertEqual(account.balance, 3)
            again = await ensure_credit_account(
                session, user_id="user-1", user_email="a@example.com", signup_bonus=3
            )
            self.assertEqual(again.balance, 3)
            txns = await self._transactions(session)

        self.assertEqual(len(txns), 1)
        self.assertEqual(txns[0].transaction_type, CreditTransactionType.SIGNUP_BONUS)
        self.assertEqual(txns[0].balance_after, 3)

    async def test_deduct_spends_one_credit_and_records_it(self):
        async with self.Session() as session:
            await ensure_credit_account(session, user_id="user-1", user_email=None, signup_bonus=2)
            result = await deduct_credit(session, user_id="user-1", description="Meal plan: week of 2026-01-05")
            balance = await get_credit_balance(session, "user-1")
            txns = await self._transactions(session)

        self.assertTrue(result.success)
        self.assertEqual(result.remaining_balance, 1)
        self.assertEqual(balance, 1)
        spend = [t for t in txns if t.transaction_type == CreditTransactionType.AI_GENERATION]
        self.assertEqual(len(spend), 1)
        self.assertEqual(spend[0].amount, -1)
        self.assertEqual(spend[0].balance_after, 1)

    async def test_deduct_fails_closed_without_credit(self):
        async with self.Session() as session:
            await ensure_credit_account(session, user_id="user-1", user_email=None, signup_bonus=0)
            result = await deduct_credit(session, user_id="user-1", description="x")
            balance = await get_credit_balance(session, "user-1")
            txns = await self._transactions(session)

        self.assertFalse(result.success)
        self.assertIsNone(result.remaining_balance)
        self.assertEqual(balance, 0)
        self.assertEqual(txns, [])

    async def test_deduct_for_unknown_account_fails(self):
        async with self.Session() as session:
            result = await deduct_credit(session, user_id="ghost", description="x")
            self.assertEqual(await get_credit_balance(session, "ghost"), 0)
        self.assertFalse(result.success)

    async def test_add_credits_creates_account_and_returns_balance(self):
        async with self.Session() as session:
            balance = await add_credits(
                session,
                user_id="user-2",
                amount=5,
                transaction_type=CreditTransactionType.ADMIN_GRANT,
                description="Admin grant",
                initiated_by="ops@example.com",
            )
            txns = await self._transactions(session, "user-2")

        self.assertEqual(balance, 5)
        self.assertEqual(len(txns), 1)
        self.assertEqual(txns[0].initiated_by, "ops@example.com")

    async def test_add_credits_rejects_non_positive_amounts(self):
        async with self.Session() as session:
            with self.assertRaises(ValueError):
                await add_credits(
                    session,
                    user_id="user-1",
                    amount=0,
                    transaction_type=CreditTransactionType.REFUND,
                )

    async def test_history_serializes_camel_case_and_respects_limit(self):
        async with self.Session() as session:
            await ensure_credit_account(session, user_id="user-1", user_email=None, signup_bonus=3)
            await deduct_credit(session, user_id="user-1", description="spend")
            await add_credits(
                session,
                user_id="user-1",
                amount=1,
                transaction_type=CreditTransactionType.REFUND,
                description="Refund: no AI response",
            )
            history = await get_credit_history(session, "user-1")
            limited = await get_credit_history(session, "user-1", limit=2)

        self.assertEqual(len(history), 3)
        self.assertEqual(
            {item["transactionType"] for item in history},
            {"signup_bonus", "ai_generation", "refund"},
        )
        self.assertIn("balanceAfter", history[0])
        self.assertEqual(len(limited), 2)
        self.assertEqual(await self._balance(), 3)

    async def _balance(self) -> int:
        async with self.Session() as session:
            return await get_credit_balance(session, "user-1")
