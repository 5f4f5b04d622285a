from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..security import current_active_user
from ..services import exam_service

router = APIRouter(tags=["Exams"])


@router.get("/exams")
async def list_exams(user=Depends(current_active_user), session: AsyncSession = Depends(get_async_session)):
    # students only see exams of their grade, and never the exam password
    return await exam_service.list_exams(session, user)
