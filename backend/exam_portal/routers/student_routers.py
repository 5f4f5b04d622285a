from fastapi import APIRouter, Depends
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_student
from ..schemas.exam_schema import StudentExamDetail, VerifyExamRequest
from ..schemas.submission_schema import SubmissionDetail, SubmissionRead, SubmitPayload
from ..services import exam_service, submission_service

router = APIRouter(prefix="/student", tags=["Student"])


@router.post("/verify-exam")
async def verify_exam(payload: VerifyExamRequest, user=Depends(current_student),
                      session: AsyncSession = Depends(get_async_session)):
    return await submission_service.verify_exam(session, payload.exam_id, payload.password, user)


@router.get("/exam/{exam_id}", response_model=StudentExamDetail, dependencies=[Depends(current_student)])
async def get_exam(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    # questions are returned without the correct option
    return await exam_service.get_exam_detail(session, exam_id, for_student=True)


@router.post("/submit-exam", response_model=SubmissionRead)
async def submit_exam(payload: SubmitPayload, user=Depends(current_student),
                      session: AsyncSession = Depends(get_async_session)):
    return await submission_service.submit_exam(session, payload.exam_id, payload.answers, user)


@router.get("/submission/{exam_id}", response_model=SubmissionDetail)
async def get_submission(exam_id: UUID, user=Depends(current_student),
                         session: AsyncSession = Depends(get_async_session)):
    return await submission_service.get_released_submission(session, exam_id, user)
