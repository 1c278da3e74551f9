from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.auth.dependencies import CurrentSession
from tripalbum.database import get_db
from tripalbum.schemas.user import UserResponse
from tripalbum.services.user_service import UserService

router = APIRouter(prefix="/users/me", tags=["Users"])


@router.get("", response_model=UserResponse)
async def get_profile(
    session: CurrentSession,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserResponse:
    user = await UserService(db).get_by_id(session.user_id)
    if not user:
        # Session outlived the local user row
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return UserResponse.model_validate(user)
