"""Pydantic schemas for staff users and professional balances."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.shared.enums import UserRole


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    user_id: str = Field(serialization_alias="id")
    name: str
    email: str
    role: UserRole
    is_active: bool


class ProfessionalBalance(UserPublic):
    commission_rate: int
    accrued_revenue: Decimal
    owed_amount: Decimal


class CommissionUpdate(BaseModel):
    # Out-of-range rates are clamped to [0, 100] by the ledger, not rejected.
    commission_rate: Decimal
