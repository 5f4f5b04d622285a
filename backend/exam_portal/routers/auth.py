#  custom login route for the app
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..schemas.user_schema import ChangePasswordRequest, LoginRequest, UserRead
from ..security import current_active_user, get_jwt_strategy
from ..services import user_service

router = APIRouter(tags=["auth"])


@router.post("/login")
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_async_session)):
    user = await user_service.authenticate(session, payload.email, payload.password)

    #  JWT token carrying id, role and first-login flag
    access_token = await get_jwt_strategy().write_token(user)

    # ORM user to schema for JSON
    return {
        "token": access_token,
        "first_login": user.first_login,
        "user": UserRead.model_validate(user),
    }


@router.post("/change-password")
async def change_password(payload: ChangePasswordRequest, user=Depends(current_active_user),
                          session: AsyncSession = Depends(get_async_session)):
    await user_service.change_password(session, user, payload.new_password)
    return {"message": "Password updated successfully"}
