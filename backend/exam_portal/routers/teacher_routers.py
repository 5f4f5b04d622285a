from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_teacher
from ..schemas.exam_schema import ExamCreate, ExamDetail, ExamPassword, TeacherExamRead
from ..schemas.grade_schema import GradeRead
from ..schemas.question_schema import QuestionCreate, QuestionRead
from ..schemas.submission_schema import TeacherSubmissionRead
from ..services import cascade_service, exam_service, import_service, submission_service, user_service

router = APIRouter(prefix="/teacher", tags=["Teacher"])


@router.get("/my-grades", response_model=List[GradeRead])
async def my_grades(user=Depends(current_teacher), session: AsyncSession = Depends(get_async_session)):
    teacher = await user_service.get_teacher(session, user.id)
    return teacher.teaching_grades


@router.post("/create-exam", response_model=TeacherExamRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(current_teacher)])
async def create_exam(payload: ExamCreate, session: AsyncSession = Depends(get_async_session)):
    return await exam_service.create_exam(session, payload)


@router.post("/add-question", response_model=QuestionRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(current_teacher)])
async def add_question(payload: QuestionCreate, session: AsyncSession = Depends(get_async_session)):
    return await exam_service.add_question(session, payload)


@router.post("/bulk-upload-questions", dependencies=[Depends(current_teacher)])
async def bulk_upload_questions(exam_id: UUID = Form(...), file: UploadFile = File(...),
                                session: AsyncSession = Depends(get_async_session)):
    content = await file.read()
    return await import_service.import_questions(session, exam_id, content, file.filename)


@router.get("/exam/{exam_id}", response_model=ExamDetail, dependencies=[Depends(current_teacher)])
async def get_exam(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    return await exam_service.get_exam_detail(session, exam_id)


@router.delete("/exam/{exam_id}", dependencies=[Depends(current_teacher)])
async def delete_exam(exam_id: UUID, payload: ExamPassword, session: AsyncSession = Depends(get_async_session)):
    removed = await cascade_service.delete_exam(session, exam_id, payload.password)
    return {"message": "Exam deleted successfully", "removed": removed}


@router.patch("/exam/{exam_id}/toggle-release", response_model=TeacherExamRead,
              dependencies=[Depends(current_teacher)])
async def toggle_release(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    return await exam_service.toggle_release(session, exam_id)


@router.get("/exam/{exam_id}/submissions", response_model=List[TeacherSubmissionRead],
            dependencies=[Depends(current_teacher)])
async def exam_submissions(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    return await submission_service.list_exam_submissions(session, exam_id)


@router.delete("/question/{question_id}", dependencies=[Depends(current_teacher)])
async def delete_question(question_id: UUID, session: AsyncSession = Depends(get_async_session)):
    removed = await cascade_service.delete_question(session, question_id)
    return {"message": "Question deleted successfully", "removed": removed}
