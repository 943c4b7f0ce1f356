"""ORM models for staff users and patients."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from src.core.database import Base
from src.shared.enums import UserRole, enum_values
from src.shared.models import SoftDeleteMixin, TimestampMixin, generate_ulid
from src.shared.money import clamp_percent

if TYPE_CHECKING:  # pragma: no cover - typing only
    from src.modules.appointments.models import Appointment
    from src.modules.ledger.models import SettlementPayment


class User(Base, TimestampMixin):
    """A staff account. Professionals additionally carry their commission balance."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(
        String(26),
        primary_key=True,
        default=generate_ulid,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, index=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            values_callable=enum_values,
            validate_strings=True,
            name="userrole",
        ),
        nullable=False,
        default=UserRole.PROFESSIONAL,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Balance projection; written only through the settlement ledger.
    commission_rate: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accrued_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    owed_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    appointments: Mapped[list[Appointment]] = relationship(back_populates="professional")
    settlements: Mapped[list[SettlementPayment]] = relationship(back_populates="professional")

    @validates("commission_rate")
    def _clamp_commission(self, _key: str, value: int | None) -> int:
        return clamp_percent(value)


class Patient(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "patients"

    patient_id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str | None] = mapped_column(String(150))
    phone: Mapped[str | None] = mapped_column(String(32))

    appointments: Mapped[list[Appointment]] = relationship(back_populates="patient")
