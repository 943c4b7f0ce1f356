"""Settlement ledger schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class SettlementCreate(BaseModel):
    # Positivity is checked by the ledger.
    amount: Decimal


class SettlementOutcome(BaseModel):
    owed_amount: Decimal
    paid_in_full: bool


class SettlementPaymentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: str = Field(serialization_alias="id")
    professional_id: str | None
    professional_name: str
    amount: Decimal
    paid_at: datetime
