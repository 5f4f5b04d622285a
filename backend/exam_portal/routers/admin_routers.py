from fastapi import APIRouter, Depends, File, UploadFile, status
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_admin
from ..models.user_model import UserRole
from ..schemas.grade_schema import CourseCreate, CourseRead, GradeCreate, GradeRead
from ..schemas.user_schema import AssignTeacherGrade, StudentCreate, StudentRead, TeacherCreate, TeacherRead
from ..security import current_active_user
from ..services import cascade_service, grade_service, import_service, user_service

router = APIRouter(prefix="/admin", tags=["Admin"])


# --- Grades & courses ---

@router.post("/grades", response_model=GradeRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(current_admin)])
async def create_grade(payload: GradeCreate, session: AsyncSession = Depends(get_async_session)):
    return await grade_service.create_grade(session, payload.name)


@router.get("/grades", response_model=List[GradeRead], dependencies=[Depends(current_active_user)])
async def list_grades(session: AsyncSession = Depends(get_async_session)):
    return await grade_service.list_grades(session)


@router.delete("/grades/{grade_id}", dependencies=[Depends(current_admin)])
async def delete_grade(grade_id: UUID, session: AsyncSession = Depends(get_async_session)):
    removed = await cascade_service.delete_grade(session, grade_id)
    return {"message": "Grade deleted successfully", "removed": removed}


@router.post("/courses", response_model=CourseRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(current_admin)])
async def create_course(payload: CourseCreate, session: AsyncSession = Depends(get_async_session)):
    return await grade_service.create_course(session, payload.name, payload.grade_id)


@router.get("/courses/{grade_id}", response_model=List[CourseRead], dependencies=[Depends(current_active_user)])
async def list_courses(grade_id: UUID, session: AsyncSession = Depends(get_async_session)):
    return await grade_service.list_courses(session, grade_id)


@router.delete("/courses/{course_id}", dependencies=[Depends(current_admin)])
async def delete_course(course_id: UUID, session: AsyncSession = Depends(get_async_session)):
    removed = await cascade_service.delete_course(session, course_id)
    return {"message": "Course deleted successfully", "removed": removed}


@router.get("/overview", dependencies=[Depends(current_admin)])
async def overview(session: AsyncSession = Depends(get_async_session)):
    return await grade_service.overview(session)


@router.get("/grades-exams", dependencies=[Depends(current_admin)])
async def grades_exams(session: AsyncSession = Depends(get_async_session)):
    return await grade_service.grades_with_exams(session)


@router.delete("/exam/{exam_id}", dependencies=[Depends(current_admin)])
async def purge_exam(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    removed = await cascade_service.purge_exam(session, exam_id)
    return {"message": "Exam deleted successfully", "removed": removed}


# --- Users ---

@router.post("/create-teacher", response_model=TeacherRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(current_admin)])
async def create_teacher(payload: TeacherCreate, session: AsyncSession = Depends(get_async_session)):
    teacher = await user_service.create_user(
        session, role=UserRole.TEACHER, name=payload.name, email=payload.email, password=payload.password,
    )
    return await user_service.get_teacher(session, teacher.id)


@router.post("/create-student", response_model=StudentRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(current_admin)])
async def create_student(payload: StudentCreate, session: AsyncSession = Depends(get_async_session)):
    fields = payload.model_dump(exclude={"name", "email", "password"})
    student = await user_service.create_user(
        session, role=UserRole.STUDENT, name=payload.name, email=payload.email, password=payload.password,
        **fields,
    )
    return await user_service.get_student(session, student.id)


@router.get("/teachers", response_model=List[TeacherRead], dependencies=[Depends(current_admin)])
async def list_teachers(session: AsyncSession = Depends(get_async_session)):
    return await user_service.list_teachers(session)


@router.get("/students", response_model=List[StudentRead], dependencies=[Depends(current_admin)])
async def list_students(session: AsyncSession = Depends(get_async_session)):
    return await user_service.list_students(session)


@router.post("/assign-teacher-grade", response_model=TeacherRead, dependencies=[Depends(current_admin)])
async def assign_teacher_grade(payload: AssignTeacherGrade, session: AsyncSession = Depends(get_async_session)):
    return await user_service.assign_teacher_grade(session, payload.teacher_id, payload.grade_id)


@router.delete("/teacher/{teacher_id}/grade/{grade_id}", response_model=TeacherRead,
               dependencies=[Depends(current_admin)])
async def remove_teacher_grade(teacher_id: UUID, grade_id: UUID, session: AsyncSession = Depends(get_async_session)):
    return await user_service.remove_teacher_grade(session, teacher_id, grade_id)


@router.delete("/user/{user_id}", dependencies=[Depends(current_admin)])
async def delete_user(user_id: UUID, session: AsyncSession = Depends(get_async_session)):
    removed = await cascade_service.delete_user(session, user_id)
    return {"message": "User deleted successfully", "removed": removed}


# --- Bulk import ---

@router.post("/bulk-upload-students", dependencies=[Depends(current_admin)])
async def bulk_upload_students(file: UploadFile = File(...), session: AsyncSession = Depends(get_async_session)):
    content = await file.read()
    return await import_service.import_students(session, content, file.filename)


@router.post("/bulk-upload-teachers", dependencies=[Depends(current_admin)])
async def bulk_upload_teachers(file: UploadFile = File(...), session: AsyncSession = Depends(get_async_session)):
    content = await file.read()
    return await import_service.import_teachers(session, content, file.filename)
