"""Appointments schemas."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.shared.enums import AppointmentStatus, AppointmentType
from src.shared.timeutils import HHMM_PATTERN


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment_id: str = Field(serialization_alias="id")
    patient_id: str | None
    patient_name: str | None
    professional_id: str | None
    professional_name: str | None
    date: dt.date
    start_time: str
    end_time: str
    type: AppointmentType
    status: AppointmentStatus
    notes: str | None = None
    audio_note: str | None = None
    attended: bool | None = None
    session_cost: Decimal | None = None
    payment_amount: Decimal | None = None
    no_show_payment_amount: Decimal | None = None
    remaining_balance: Decimal | None = None
    completed_at: dt.datetime | None = None
    active: bool


class AppointmentCreate(BaseModel):
    patient_id: str
    professional_id: str
    date: dt.date
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)
    type: AppointmentType = AppointmentType.REGULAR
    session_cost: Decimal | None = None
    notes: str | None = None
    audio_note: str | None = None


class AppointmentUpdate(BaseModel):
    patient_id: str | None = None
    professional_id: str | None = None
    date: dt.date | None = None
    start_time: str | None = Field(None, pattern=HHMM_PATTERN)
    end_time: str | None = Field(None, pattern=HHMM_PATTERN)
    type: AppointmentType | None = None
    status: AppointmentStatus | None = None
    notes: str | None = None
    audio_note: str | None = None
    attended: bool | None = None
    session_cost: Decimal | None = None
    payment_amount: Decimal | None = None
    no_show_payment_amount: Decimal | None = None
