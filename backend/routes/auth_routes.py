from fastapi import APIRouter, Depends

from backend.auth.dependencies import get_current_user
from backend.models.user import User

router = APIRouter(tags=["auth"])


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    provider = current_user.provider
    return {
        "email": current_user.email,
        "role": current_user.role,
        "provider_id": provider.id if provider else None,
    }
