"""Schedule routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import get_current_user
from src.modules.schedule.schemas import AvailableSlots
from src.modules.schedule.service import SchedulingGuard
from src.modules.users.models import User

router = APIRouter(prefix="/api/v1/schedule", tags=["schedule"])


@router.get("/professionals/{professional_id}/slots", response_model=AvailableSlots)
async def available_slots(
    professional_id: str,
    date_value: date = Query(..., alias="date"),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AvailableSlots:
    slots = await SchedulingGuard(db).available_slots(professional_id, date_value)
    return AvailableSlots(professional_id=professional_id, date=date_value, slots=slots)
