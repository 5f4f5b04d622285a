from typing import List
from uuid import UUID
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from exam_portal.db import atomic
from exam_portal.errors import ConflictError, NotFoundError
from exam_portal.models.exam_model import Exam
from exam_portal.models.grade_model import Course, Grade
from exam_portal.models.question_model import Question
from exam_portal.models.submission_model import Submission
from exam_portal.models.user_model import User, UserRole

logger = logging.getLogger(__name__)


async def create_grade(session: AsyncSession, name: str) -> Grade:
    res = await session.execute(select(Grade).where(func.lower(Grade.name) == name.lower()))
    if res.scalar_one_or_none():
        raise ConflictError(f"Grade '{name}' already exists")

    grade = Grade(name=name)
    try:
        async with atomic(session):
            session.add(grade)
    except IntegrityError:
        raise ConflictError(f"Grade '{name}' already exists")
    logger.info("Created grade %s (%s)", grade.name, grade.id)
    return await get_grade(session, grade.id)


async def get_grade(session: AsyncSession, grade_id: UUID) -> Grade:
    stmt = (
        select(Grade)
        .where(Grade.id == grade_id)
        .options(selectinload(Grade.courses))
        .execution_options(populate_existing=True)
    )
    res = await session.execute(stmt)
    grade = res.scalar_one_or_none()
    if not grade:
        raise NotFoundError("Grade not found")
    return grade


async def list_grades(session: AsyncSession) -> List[Grade]:
    stmt = select(Grade).options(selectinload(Grade.courses)).order_by(Grade.name)
    res = await session.execute(stmt)
    return res.scalars().all()


async def grades_by_name(session: AsyncSession) -> dict:
    res = await session.execute(select(Grade))
    return {g.name.strip().lower(): g for g in res.scalars().all()}


async def create_course(session: AsyncSession, name: str, grade_id: UUID) -> Course:
    await get_grade(session, grade_id)
    course = Course(name=name, grade_id=grade_id)
    async with atomic(session):
        session.add(course)
    return course


async def list_courses(session: AsyncSession, grade_id: UUID) -> List[Course]:
    res = await session.execute(select(Course).where(Course.grade_id == grade_id).order_by(Course.name))
    return res.scalars().all()


async def _count_by(session: AsyncSession, column, *where) -> dict:
    stmt = select(column, func.count()).where(*where).group_by(column)
    res = await session.execute(stmt)
    return {key: count for key, count in res.all()}


async def overview(session: AsyncSession) -> dict:
    role_counts = await _count_by(session, User.role)
    student_counts = await _count_by(session, User.grade_id, User.role == UserRole.STUDENT)
    exam_counts = await _count_by(session, Exam.grade_id)

    stmt = (
        select(Grade)
        .options(selectinload(Grade.courses), selectinload(Grade.teachers))
        .order_by(Grade.name)
    )
    res = await session.execute(stmt)
    grades = res.scalars().all()

    return {
        "total_teachers": role_counts.get(UserRole.TEACHER, 0),
        "total_students": role_counts.get(UserRole.STUDENT, 0),
        "total_grades": len(grades),
        "grades": [
            {
                "id": g.id,
                "name": g.name,
                "courses": [{"id": c.id, "name": c.name, "grade_id": c.grade_id} for c in g.courses],
                "teachers": [{"id": t.id, "name": t.name, "email": t.email} for t in g.teachers],
                "student_count": student_counts.get(g.id, 0),
                "exam_count": exam_counts.get(g.id, 0),
            }
            for g in grades
        ],
    }


async def grades_with_exams(session: AsyncSession) -> List[dict]:
    question_counts = await _count_by(session, Question.exam_id)
    submission_counts = await _count_by(session, Submission.exam_id)

    res = await session.execute(select(Grade).order_by(Grade.name))
    grades = res.scalars().all()
    res = await session.execute(
        select(Exam).options(selectinload(Exam.course)).order_by(Exam.created_at.desc())
    )
    exams_by_grade = {}
    for exam in res.scalars().all():
        exams_by_grade.setdefault(exam.grade_id, []).append(exam)

    return [
        {
            "id": g.id,
            "name": g.name,
            "exams": [
                {
                    "id": e.id,
                    "title": e.title,
                    "course_name": e.course.name if e.course else None,
                    "scheduled_date": e.scheduled_date,
                    "duration_minutes": e.duration_minutes,
                    "results_released": e.results_released,
                    "question_count": question_counts.get(e.id, 0),
                    "submission_count": submission_counts.get(e.id, 0),
                }
                for e in exams_by_grade.get(g.id, [])
            ],
        }
        for g in grades
    ]
