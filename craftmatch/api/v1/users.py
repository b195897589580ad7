from fastapi import APIRouter, Depends

from craftmatch.api.deps import get_current_user
from craftmatch.api.v1.auth import UserResponse
from craftmatch.db.models.user import User

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse(id=current_user.id, email=current_user.email, role=current_user.role)
