"""Appointment ORM model."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database import Base
from src.shared.enums import AppointmentStatus, AppointmentType, enum_values
from src.shared.models import SoftDeleteMixin, TimestampMixin, generate_ulid

if TYPE_CHECKING:  # pragma: no cover
    from src.modules.users.models import Patient, User


class Appointment(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_professional_date", "professional_id", "active", "date"),
        Index("ix_appointments_active_status_date", "active", "status", "date", "start_time"),
        Index("ix_appointments_patient", "patient_id", "active"),
    )

    appointment_id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Name snapshots taken when the reference is set.
    patient_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("patients.patient_id", ondelete="RESTRICT"),
    )
    patient_name: Mapped[str | None] = mapped_column(String(150))
    professional_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.user_id", ondelete="SET NULL"),
    )
    professional_name: Mapped[str | None] = mapped_column(String(150))

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    type: Mapped[AppointmentType] = mapped_column(
        Enum(
            AppointmentType,
            values_callable=enum_values,
            validate_strings=True,
            name="appointmenttype",
        ),
        default=AppointmentType.REGULAR,
        nullable=False,
    )
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(
            AppointmentStatus,
            values_callable=enum_values,
            validate_strings=True,
            name="appointmentstatus",
        ),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(Text)
    audio_note: Mapped[str | None] = mapped_column(String(255))

    attended: Mapped[bool | None] = mapped_column(Boolean)
    session_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    payment_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    no_show_payment_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    remaining_balance: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))

    patient: Mapped[Patient | None] = relationship(back_populates="appointments")
    professional: Mapped[User | None] = relationship(back_populates="appointments")
