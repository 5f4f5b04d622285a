from fastapi import APIRouter, Depends
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_staff
from ..schemas.submission_schema import ScoreUpdate, SubmissionRead
from ..services import cascade_service, submission_service

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.patch("/{submission_id}", response_model=SubmissionRead, dependencies=[Depends(current_staff)])
async def update_score(submission_id: UUID, payload: ScoreUpdate, session: AsyncSession = Depends(get_async_session)):
    # manual score override
    return await submission_service.update_score(session, submission_id, payload.total_score)


@router.delete("/{submission_id}", dependencies=[Depends(current_staff)])
async def delete_submission(submission_id: UUID, session: AsyncSession = Depends(get_async_session)):
    # reset for retake or permanent delete
    removed = await cascade_service.delete_submission(session, submission_id)
    return {"message": "Submission deleted successfully", "removed": removed}
