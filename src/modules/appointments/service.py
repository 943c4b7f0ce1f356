"""Appointment service layer."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.database import apply_lock_timeout, is_lock_failure
from src.core.exceptions import ConcurrencyTimeout, NotFoundError, PermissionDeniedError
from src.modules.appointments.lifecycle import (
    TransitionPlan,
    plan_creation,
    plan_soft_delete,
    plan_transition,
    snapshot_state,
)
from src.modules.appointments.models import Appointment
from src.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate
from src.modules.ledger.reassignment import ReassignmentCoordinator
from src.modules.ledger.service import SettlementLedger
from src.modules.schedule.service import SchedulingGuard
from src.modules.users.models import Patient, User
from src.shared.enums import AppointmentStatus, UserRole

logger = logging.getLogger(__name__)

# Explicit nulls for these are ignored on update rather than blanking the field.
REQUIRED_ON_UPDATE = ("patient_id", "professional_id", "date", "start_time", "end_time", "type", "status")


class AppointmentService:
    """Create, update and retire appointments.

    Each write is one unit of work: validation and the slot check run first,
    then balance deltas are applied under row locks, then the appointment is
    written and everything commits together. Any error rolls the whole unit
    back.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tz = ZoneInfo(settings.default_timezone)
        self.guard = SchedulingGuard(db)
        self.ledger = SettlementLedger(db)
        self.coordinator = ReassignmentCoordinator(self.ledger)

    def _now(self) -> datetime:
        return datetime.now(tz=self.tz)

    def _today(self) -> date:
        return self._now().date()

    async def create_appointment(self, payload: AppointmentCreate) -> Appointment:
        plan = plan_creation(payload.model_dump(), self._now())
        await self._resolve_references(plan)
        await self.guard.ensure_available(
            plan.state["professional_id"],
            plan.state["date"],
            plan.state["start_time"],
            plan.state["end_time"],
        )

        appointment = Appointment(**plan.changes)
        try:
            await self.coordinator.apply(plan.before, plan.after)
            self.db.add(appointment)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(appointment)
        logger.info(
            "Created appointment %s for professional %s on %s %s-%s",
            appointment.appointment_id,
            appointment.professional_id,
            appointment.date,
            appointment.start_time,
            appointment.end_time,
        )
        return appointment

    async def update_appointment(
        self,
        appointment_id: str,
        payload: AppointmentUpdate | Mapping[str, Any],
        actor: User | None = None,
    ) -> Appointment:
        appointment = await self._lock_active(appointment_id)
        self._ensure_can_write(appointment, actor)

        if isinstance(payload, AppointmentUpdate):
            requested = payload.model_dump(exclude_unset=True)
        else:
            requested = dict(payload)
        for name in REQUIRED_ON_UPDATE:
            if name in requested and requested[name] is None:
                requested.pop(name)

        plan = plan_transition(snapshot_state(appointment), requested, self._now())
        if plan.is_noop:
            # Ends the transaction so the row lock is released.
            await self.db.commit()
            return appointment

        await self._resolve_references(plan)
        if plan.needs_slot_check:
            await self.guard.ensure_available(
                plan.state["professional_id"],
                plan.state["date"],
                plan.state["start_time"],
                plan.state["end_time"],
                exclude_appointment_id=appointment.appointment_id,
            )

        await self._commit_transition(appointment, plan)
        logger.info("Updated appointment %s: %s", appointment.appointment_id, ", ".join(sorted(plan.changes)))
        return appointment

    async def soft_delete_appointment(self, appointment_id: str, actor: User | None = None) -> Appointment:
        appointment = await self._lock_active(appointment_id)
        self._ensure_can_write(appointment, actor)
        plan = plan_soft_delete(snapshot_state(appointment))
        await self._commit_transition(appointment, plan)
        logger.info("Soft-deleted appointment %s", appointment.appointment_id)
        return appointment

    async def list_active(self) -> list[Appointment]:
        return await self._list(Appointment.active.is_(True))

    async def list_for_professional(self, professional_id: str) -> list[Appointment]:
        return await self._list(Appointment.active.is_(True), Appointment.professional_id == professional_id)

    async def list_today_for_professional(self, professional_id: str) -> list[Appointment]:
        return await self._list(
            Appointment.active.is_(True),
            Appointment.professional_id == professional_id,
            Appointment.date == self._today(),
        )

    async def list_for_patient(self, patient_id: str) -> list[Appointment]:
        return await self._list(Appointment.active.is_(True), Appointment.patient_id == patient_id)

    async def list_upcoming(self) -> list[Appointment]:
        stmt = (
            select(Appointment)
            .where(
                Appointment.active.is_(True),
                Appointment.status == AppointmentStatus.SCHEDULED,
                Appointment.date >= self._today(),
            )
            .order_by(Appointment.date, Appointment.start_time, Appointment.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _list(self, *criteria) -> list[Appointment]:
        stmt = (
            select(Appointment)
            .where(*criteria)
            .order_by(Appointment.date.desc(), Appointment.start_time, Appointment.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _commit_transition(self, appointment: Appointment, plan: TransitionPlan) -> None:
        try:
            await self.coordinator.apply(plan.before, plan.after)
            for name, value in plan.changes.items():
                setattr(appointment, name, value)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(appointment)

    async def _resolve_references(self, plan: TransitionPlan) -> None:
        if plan.patient_changed:
            patient = await self._get_patient(plan.state["patient_id"])
            plan.state["patient_name"] = plan.changes["patient_name"] = patient.name
        if plan.professional_changed:
            professional = await self._get_professional(plan.state["professional_id"])
            plan.state["professional_name"] = plan.changes["professional_name"] = professional.name

    def _ensure_can_write(self, appointment: Appointment, actor: User | None) -> None:
        if actor is None or actor.role == UserRole.ADMIN:
            return
        if appointment.professional_id != actor.user_id:
            raise PermissionDeniedError("Access denied")

    async def _lock_active(self, appointment_id: str) -> Appointment:
        """Load the appointment for writing under a row lock, refreshed from the database.

        The appointment lock is always taken before any balance lock.
        """
        stmt = (
            select(Appointment)
            .where(
                Appointment.appointment_id == appointment_id,
                Appointment.active.is_(True),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        try:
            await apply_lock_timeout(self.db, settings.lock_timeout_ms)
            result = await self.db.execute(stmt)
        except DBAPIError as exc:
            if is_lock_failure(exc):
                logger.warning("Timed out locking appointment %s", appointment_id)
                raise ConcurrencyTimeout("Appointment is being updated, please retry") from exc
            raise
        appointment = result.scalar_one_or_none()
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    async def _get_patient(self, patient_id: str | None) -> Patient:
        patient = await self.db.get(Patient, patient_id) if patient_id else None
        if patient is None or not patient.active:
            raise NotFoundError("Patient not found")
        return patient

    async def _get_professional(self, professional_id: str | None) -> User:
        professional = await self.db.get(User, professional_id) if professional_id else None
        if professional is None or professional.role != UserRole.PROFESSIONAL or not professional.is_active:
            raise NotFoundError("Professional not found")
        return professional
