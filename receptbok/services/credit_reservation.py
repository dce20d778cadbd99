from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..db import SessionFactory
from ..errors import AdmissionDenied
from ..models import CreditTransactionType
from ..observability import report_compensation_failure
from .credits import GENERATION_COST, DeductResult, add_credits, deduct_credit

logger = logging.getLogger(__name__)

REFUND_DESCRIPTIONS = {
    "no_response": "Refund: no AI response",
    "invalid_response": "Refund: invalid AI response",
    "persistence_failure": "Refund: plan could not be saved",
    "unexpected_error": "Refund: server error",
    "cancelled": "Refund: request cancelled",
}


class ReservationState:
    RESERVED = "reserved"
    RELEASED = "released"
    SETTLED = "settled"


class CreditReservation:
    """One spent credit held on behalf of a generation job.

    The reservation leaves RESERVED exactly once: `settle()` when the job's result
    is stored, or `refund()` when any later stage fails. The state flips before the
    refund is attempted, so a failing or repeated refund can never credit twice.
    """

    def __init__(
        self,
        *,
        user_id: str,
        user_email: Optional[str],
        description: str,
        remaining_balance: int,
        session_factory: SessionFactory,
    ) -> None:
        self.user_id = user_id
        self.user_email = user_email
        self.description = description
        self.remaining_balance = remaining_balance
        self.state = ReservationState.RESERVED
        self.refund_reason: Optional[str] = None
        self._session_factory = session_factory

    @classmethod
    async def acquire(
        cls,
        *,
        user_id: str,
        user_email: Optional[str],
        description: str,
        session_factory: SessionFactory,
    ) -> "CreditReservation":
        """Deduct one credit and hold it for the job.

        The deduct and its session teardown run shielded. A caller cancelled after
        the deduct committed still gets its credit back through a `cancelled` refund.
        """
        deduct = asyncio.ensure_future(_deduct(session_factory, user_id=user_id, description=description))
        try:
            result = await asyncio.shield(deduct)
        except asyncio.CancelledError:
            await asyncio.shield(
                _refund_cancelled_admission(
                    deduct,
                    user_id=user_id,
                    user_email=user_email,
                    description=description,
                    session_factory=session_factory,
                )
            )
            raise
        if not result.success:
            logger.info("Admission denied for user=%s (%s)", user_id, description)
            raise AdmissionDenied()
        return cls(
            user_id=user_id,
            user_email=user_email,
            description=description,
            remaining_balance=result.remaining_balance or 0,
            session_factory=session_factory,
        )

    @property
    def reserved(self) -> bool:
        return self.state == ReservationState.RESERVED

    def settle(self) -> None:
        if not self.reserved:
            logger.warning("Settle on %s reservation for user=%s ignored", self.state, self.user_id)
            return
        self.state = ReservationState.SETTLED

    async def refund(self, reason: str) -> bool:
        """Return the credit. Returns False when nothing was (or could be) refunded.

        Never raises for ledger failures; those are logged and alerted instead.
        The ledger write is shielded so cancelling the caller cannot abandon it.
        """
        if not self.reserved:
            logger.warning(
                "Refund (%s) on %s reservation for user=%s ignored",
                reason,
                self.state,
                self.user_id,
            )
            return False
        self.state = ReservationState.RELEASED
        self.refund_reason = reason
        return await asyncio.shield(self._issue_refund(reason))

    async def _issue_refund(self, reason: str) -> bool:
        description = REFUND_DESCRIPTIONS.get(reason, f"Refund: {reason}")
        try:
            async with self._session_factory() as session:
                balance = await add_credits(
                    session,
                    user_id=self.user_id,
                    amount=GENERATION_COST,
                    transaction_type=CreditTransactionType.REFUND,
                    description=description,
                    user_email=self.user_email,
                )
        except Exception as exc:
            logger.error(
                "Credit refund failed user=%s reason=%s job=%s",
                self.user_id,
                reason,
                self.description,
                exc_info=True,
            )
            report_compensation_failure(
                exc,
                user_id=self.user_id,
                reason=reason,
                description=self.description,
            )
            return False
        self.remaining_balance = balance
        logger.info("Refunded credit user=%s reason=%s balance=%s", self.user_id, reason, balance)
        return True


async def _deduct(session_factory: SessionFactory, *, user_id: str, description: str) -> DeductResult:
    async with session_factory() as session:
        return await deduct_credit(session, user_id=user_id, description=description)


async def _refund_cancelled_admission(
    deduct: "asyncio.Future[DeductResult]",
    *,
    user_id: str,
    user_email: Optional[str],
    description: str,
    session_factory: SessionFactory,
) -> None:
    try:
        result = await deduct
    except Exception:
        logger.exception("Credit deduct failed after cancellation user=%s (%s)", user_id, description)
        return
    if not result.success:
        return
    reservation = CreditReservation(
        user_id=user_id,
        user_email=user_email,
        description=description,
        remaining_balance=result.remaining_balance or 0,
        session_factory=session_factory,
    )
    await reservation.refund("cancelled")
