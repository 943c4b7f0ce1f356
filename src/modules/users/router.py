"""Routes for the signed-in staff user."""

from fastapi import APIRouter, Depends

from src.core.deps import get_current_user
from src.modules.users.models import User
from src.modules.users.schemas import ProfessionalBalance

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=ProfessionalBalance)
async def get_me(current_user: User = Depends(get_current_user)) -> User:
    # Non-professional staff simply report a zero balance.
    return current_user
