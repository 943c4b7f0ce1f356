"""Settlement ledger ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database import Base
from src.shared.models import TimestampMixin, generate_ulid

if TYPE_CHECKING:  # pragma: no cover
    from src.modules.users.models import User


class SettlementPayment(Base, TimestampMixin):
    """A commission payout to a professional. Rows are append-only."""

    __tablename__ = "settlement_payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlement_payments_amount_positive"),
        Index("ix_settlement_payments_professional_paid_at", "professional_id", "paid_at"),
    )

    payment_id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    professional_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.user_id", ondelete="SET NULL"),
    )
    professional_name: Mapped[str] = mapped_column(String(150), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    professional: Mapped[User | None] = relationship(back_populates="settlements")
