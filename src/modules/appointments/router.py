"""Appointments API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import get_current_user, require_staff
from src.modules.appointments.schemas import AppointmentCreate, AppointmentPublic, AppointmentUpdate
from src.modules.appointments.service import AppointmentService
from src.modules.users.models import User

router = APIRouter(prefix="/api/v1/appointments", tags=["appointments"])


def get_service(db: AsyncSession = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


@router.get("", response_model=list[AppointmentPublic])
async def list_appointments(
    _: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> list[AppointmentPublic]:
    return await service.list_active()


@router.get("/upcoming", response_model=list[AppointmentPublic])
async def list_upcoming(
    _: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> list[AppointmentPublic]:
    return await service.list_upcoming()


@router.get("/professional/{professional_id}", response_model=list[AppointmentPublic])
async def list_for_professional(
    professional_id: str,
    _: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> list[AppointmentPublic]:
    return await service.list_for_professional(professional_id)


@router.get("/professional/{professional_id}/today", response_model=list[AppointmentPublic])
async def list_today_for_professional(
    professional_id: str,
    _: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> list[AppointmentPublic]:
    return await service.list_today_for_professional(professional_id)


@router.get("/patient/{patient_id}", response_model=list[AppointmentPublic])
async def list_for_patient(
    patient_id: str,
    _: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> list[AppointmentPublic]:
    return await service.list_for_patient(patient_id)


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    _: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
) -> AppointmentPublic:
    return await service.create_appointment(payload)


@router.put("/{appointment_id}", response_model=AppointmentPublic)
async def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
) -> AppointmentPublic:
    return await service.update_appointment(appointment_id, payload, actor=current_user)


@router.delete("/{appointment_id}", response_model=AppointmentPublic)
async def delete_appointment(
    appointment_id: str,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
) -> AppointmentPublic:
    return await service.soft_delete_appointment(appointment_id, actor=current_user)
