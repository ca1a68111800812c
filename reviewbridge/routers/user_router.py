# reviewbridge/routers/user_router.py
from fastapi import APIRouter, Depends
from reviewbridge.dependencies.auth import get_current_user
from reviewbridge.UAA.schemas import UserRead

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/me", response_model=UserRead)
async def me(current_user = Depends(get_current_user)):
    return {
        "id": current_user.id,
        "email": current_user.email,
        "username": current_user.username,
        "is_active": current_user.is_active,
        "created_at": current_user.created_at,
    }
