"""Settlement ledger routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import require_finance
from src.modules.ledger.schemas import SettlementCreate, SettlementOutcome, SettlementPaymentPublic
from src.modules.ledger.service import SettlementLedger
from src.modules.users.models import User
from src.shared.schemas import ResponseEnvelope

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])


def get_ledger(db: AsyncSession = Depends(get_db)) -> SettlementLedger:
    return SettlementLedger(db)


@router.post(
    "/professionals/{professional_id}/settlements",
    response_model=ResponseEnvelope[SettlementOutcome],
)
async def settle_professional_balance(
    professional_id: str,
    payload: SettlementCreate,
    _: User = Depends(require_finance),
    ledger: SettlementLedger = Depends(get_ledger),
) -> ResponseEnvelope[SettlementOutcome]:
    result = await ledger.settle(professional_id, payload.amount)
    return ResponseEnvelope(
        data=SettlementOutcome(owed_amount=result.owed_amount, paid_in_full=result.paid_in_full),
        message="Commission settled",
    )


@router.get("/settlements", response_model=list[SettlementPaymentPublic])
async def list_settlements(
    professional_id: str | None = Query(None),
    _: User = Depends(require_finance),
    ledger: SettlementLedger = Depends(get_ledger),
) -> list[SettlementPaymentPublic]:
    return await ledger.list_payments(professional_id)
