"""Scheduling guard: overlap detection and the daily free/busy grid."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import ConflictError
from src.modules.appointments.models import Appointment
from src.shared.enums import AppointmentStatus
from src.shared.timeutils import format_hhmm, intervals_overlap, to_minutes

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE_MESSAGE = "The selected time slot is not available"


@dataclass(frozen=True)
class BusyInterval:
    appointment_id: str
    start: int
    end: int


def build_slot_grid(start: str | None = None, count: int | None = None, minutes: int | None = None) -> list[str]:
    first = to_minutes(start or settings.slot_grid_start)
    step = minutes or settings.slot_minutes
    total = settings.slot_grid_count if count is None else count
    return [format_hhmm(first + index * step) for index in range(total)]


class SchedulingGuard:
    """Decides whether an appointment may occupy a professional's time slot.

    Booking only collides with other *scheduled* appointments; the free/busy
    grid is stricter and also treats completed appointments as busy.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def check_availability(
        self,
        professional_id: str,
        target_date: date,
        start_time: str,
        end_time: str,
        exclude_appointment_id: str | None = None,
    ) -> bool:
        busy = await self._busy_intervals(
            professional_id,
            target_date,
            Appointment.status == AppointmentStatus.SCHEDULED,
            exclude_appointment_id,
        )
        start, end = to_minutes(start_time), to_minutes(end_time)
        for interval in busy:
            if intervals_overlap(start, end, interval.start, interval.end):
                logger.info(
                    "Slot %s-%s on %s for professional %s collides with appointment %s",
                    start_time,
                    end_time,
                    target_date,
                    professional_id,
                    interval.appointment_id,
                )
                return False
        return True

    async def ensure_available(
        self,
        professional_id: str,
        target_date: date,
        start_time: str,
        end_time: str,
        exclude_appointment_id: str | None = None,
    ) -> None:
        available = await self.check_availability(
            professional_id, target_date, start_time, end_time, exclude_appointment_id
        )
        if not available:
            raise ConflictError(SLOT_UNAVAILABLE_MESSAGE)

    async def available_slots(self, professional_id: str, target_date: date) -> list[str]:
        busy = await self._busy_intervals(
            professional_id,
            target_date,
            Appointment.status != AppointmentStatus.CANCELLED,
        )
        free: list[str] = []
        for slot in build_slot_grid():
            slot_start = to_minutes(slot)
            slot_end = slot_start + settings.slot_minutes
            if not any(intervals_overlap(slot_start, slot_end, b.start, b.end) for b in busy):
                free.append(slot)
        return free

    async def _busy_intervals(
        self,
        professional_id: str,
        target_date: date,
        status_clause,
        exclude_appointment_id: str | None = None,
    ) -> list[BusyInterval]:
        stmt = (
            select(Appointment.appointment_id, Appointment.start_time, Appointment.end_time)
            .where(
                Appointment.active.is_(True),
                Appointment.professional_id == professional_id,
                Appointment.date == target_date,
                status_clause,
            )
            .order_by(Appointment.start_time)
        )
        if exclude_appointment_id:
            stmt = stmt.where(Appointment.appointment_id != exclude_appointment_id)
        result = await self.db.execute(stmt)
        return [
            BusyInterval(appointment_id=row.appointment_id, start=to_minutes(row.start_time), end=to_minutes(row.end_time))
            for row in result.all()
        ]
