"""Settlement ledger: the single write path for professional balances."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.database import apply_lock_timeout, is_lock_failure
from src.core.exceptions import ConcurrencyTimeout, NotFoundError, ValidationError
from src.modules.appointments.lifecycle import BillableSnapshot
from src.modules.ledger.models import SettlementPayment
from src.modules.users.models import User
from src.shared.enums import UserRole
from src.shared.money import ZERO, clamp_percent, round2, to_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceDelta:
    professional_id: str
    amount: Decimal


@dataclass(frozen=True)
class SettlementResult:
    owed_amount: Decimal
    paid_in_full: bool


def owed_for(accrued_revenue: Decimal, commission_rate: Any) -> Decimal:
    """Commission payable on an accrued total, clamping a malformed rate."""
    return round2(Decimal(accrued_revenue) * clamp_percent(commission_rate) / Decimal(100))


def billable_deltas(before: BillableSnapshot, after: BillableSnapshot) -> list[BalanceDelta]:
    """Balance adjustments implied by an appointment moving from ``before`` to ``after``.

    When the professional is unchanged the contribution is netted into a single
    delta. A reassignment produces independent deltas for the old and new
    professional.
    """
    if before.professional_id == after.professional_id:
        if after.professional_id is None:
            return []
        delta = round2((after.cost if after.billable else ZERO) - (before.cost if before.billable else ZERO))
        if delta == ZERO:
            return []
        return [BalanceDelta(after.professional_id, delta)]

    deltas: list[BalanceDelta] = []
    if before.billable and before.cost and before.professional_id is not None:
        deltas.append(BalanceDelta(before.professional_id, -before.cost))
    if after.billable and after.cost and after.professional_id is not None:
        deltas.append(BalanceDelta(after.professional_id, after.cost))
    return deltas


class SettlementLedger:
    """Owns ``accrued_revenue`` and ``owed_amount`` for every professional.

    Every mutation re-reads the balance row under ``SELECT ... FOR UPDATE`` so
    concurrent writers against one professional serialise instead of losing
    updates. Delta application joins the caller's transaction; ``settle`` and
    ``update_commission`` are their own unit of work and commit.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _now(self) -> datetime:
        return datetime.now(tz=timezone.utc)

    async def lock_professionals(self, professional_ids: Iterable[str]) -> dict[str, User]:
        """Lock balance rows in ascending id order and return them freshly loaded."""
        ordered = sorted({pid for pid in professional_ids if pid})
        if not ordered:
            return {}
        stmt = (
            select(User)
            .where(User.user_id.in_(ordered))
            .order_by(User.user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        try:
            await apply_lock_timeout(self.db, settings.lock_timeout_ms)
            result = await self.db.execute(stmt)
        except DBAPIError as exc:
            if is_lock_failure(exc):
                logger.warning("Timed out locking balances for %s", ", ".join(ordered))
                raise ConcurrencyTimeout("Professional balance is busy, please retry") from exc
            raise
        return {user.user_id: user for user in result.scalars().all()}

    async def apply_billable_delta(self, professional_id: str, amount: Decimal) -> User | None:
        locked = await self.lock_professionals([professional_id])
        professional = locked.get(professional_id)
        if professional is None:
            # The professional was removed; its appointments keep only the name snapshot.
            logger.warning("Skipping balance delta %s for missing professional %s", amount, professional_id)
            return None

        accrued = round2((professional.accrued_revenue or ZERO) + Decimal(amount))
        professional.accrued_revenue = accrued
        professional.owed_amount = owed_for(accrued, professional.commission_rate)
        await self.db.flush()
        logger.info(
            "Applied %s to professional %s: accrued=%s owed=%s",
            amount,
            professional_id,
            professional.accrued_revenue,
            professional.owed_amount,
        )
        return professional

    async def settle(self, professional_id: str, amount: Any) -> SettlementResult:
        value = to_amount(amount)
        if value is None or value <= ZERO:
            raise ValidationError("Settlement amount must be a positive number")

        try:
            professional = await self._lock_professional(professional_id)
            previous = Decimal(professional.owed_amount or ZERO)
            remaining = round2(max(previous - value, ZERO))
            paid_in_full = remaining == ZERO and previous > ZERO

            professional.owed_amount = remaining
            if paid_in_full:
                # A full payout closes the accrual period.
                professional.accrued_revenue = ZERO
            self.db.add(
                SettlementPayment(
                    professional_id=professional.user_id,
                    professional_name=professional.name,
                    amount=value,
                    paid_at=self._now(),
                )
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Settled %s for professional %s: owed %s -> %s%s",
            value,
            professional_id,
            previous,
            remaining,
            " (paid in full)" if paid_in_full else "",
        )
        return SettlementResult(owed_amount=remaining, paid_in_full=paid_in_full)

    async def update_commission(self, professional_id: str, commission_rate: Any) -> User:
        try:
            professional = await self._lock_professional(professional_id)
            professional.commission_rate = clamp_percent(commission_rate)
            professional.owed_amount = owed_for(professional.accrued_revenue or ZERO, professional.commission_rate)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(professional)
        logger.info(
            "Commission for professional %s set to %s%%, owed recomputed to %s",
            professional_id,
            professional.commission_rate,
            professional.owed_amount,
        )
        return professional

    async def list_payments(self, professional_id: str | None = None) -> list[SettlementPayment]:
        stmt = select(SettlementPayment).order_by(
            SettlementPayment.paid_at.desc(),
            SettlementPayment.created_at.desc(),
        )
        if professional_id:
            stmt = stmt.where(SettlementPayment.professional_id == professional_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _lock_professional(self, professional_id: str) -> User:
        locked = await self.lock_professionals([professional_id])
        professional = locked.get(professional_id)
        if professional is None or professional.role != UserRole.PROFESSIONAL or not professional.is_active:
            raise NotFoundError("Professional not found")
        return professional
