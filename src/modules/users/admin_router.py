"""Admin-facing routes for professionals and their commission settings."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import require_admin, require_finance
from src.modules.ledger.service import SettlementLedger
from src.modules.users.models import User
from src.modules.users.schemas import CommissionUpdate, ProfessionalBalance
from src.shared.enums import UserRole

router = APIRouter(prefix="/api/v1/admin", tags=["admin-users"])


@router.get("/professionals", response_model=list[ProfessionalBalance])
async def list_professionals(
    _: User = Depends(require_finance),
    db: AsyncSession = Depends(get_db),
) -> list[User]:
    result = await db.execute(
        select(User).where(User.role == UserRole.PROFESSIONAL).order_by(User.name)
    )
    return list(result.scalars().all())


@router.patch("/professionals/{professional_id}/commission", response_model=ProfessionalBalance)
async def update_commission(
    professional_id: str,
    payload: CommissionUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await SettlementLedger(db).update_commission(professional_id, payload.commission_rate)
