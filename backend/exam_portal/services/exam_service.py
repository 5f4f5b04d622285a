from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from datetime import datetime, timezone

from exam_portal.db import atomic
from exam_portal.errors import AuthorizationError, NotFoundError, ValidationError
from exam_portal.models.exam_model import Exam
from exam_portal.models.grade_model import Course, Grade
from exam_portal.models.question_model import Option, Question
from exam_portal.models.user_model import User, UserRole

logger = logging.getLogger(__name__)


def _to_naive_utc(dt: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC (remove tzinfo). If already naive, assume UTC and return as-is.
    Returns None if input is None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        # assume naive datetimes are already UTC
        return dt
    # convert to UTC and drop tzinfo
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _exam_to_read_dict(exam: Exam, question_count: int = 0, include_password: bool = False) -> dict:
    data = {
        "id": exam.id,
        "title": exam.title,
        "grade_id": exam.grade_id,
        "course_id": exam.course_id,
        "grade_name": exam.grade.name if exam.grade else None,
        "course_name": exam.course.name if exam.course else None,
        "scheduled_date": exam.scheduled_date,
        "duration_minutes": exam.duration_minutes,
        "results_released": exam.results_released,
        "created_at": exam.created_at,
        "question_count": question_count,
    }
    if include_password:
        data["password"] = exam.password
    return data


def _sanitize_question(q: Question) -> dict:
    # drop is_correct to prevent leaking answers to students
    return {
        "id": q.id,
        "exam_id": q.exam_id,
        "type": q.type,
        "text": q.text,
        "marks": q.marks,
        "options": [{"id": o.id, "text": o.text} for o in q.options],
    }


def _question_to_dict(q: Question) -> dict:
    data = _sanitize_question(q)
    data["options"] = [{"id": o.id, "text": o.text, "is_correct": o.is_correct} for o in q.options]
    return data


async def get_exam_or_404(session: AsyncSession, exam_id: UUID, with_questions: bool = False) -> Exam:
    stmt = (
        select(Exam)
        .where(Exam.id == exam_id)
        .options(selectinload(Exam.grade), selectinload(Exam.course))
        .execution_options(populate_existing=True)
    )
    if with_questions:
        stmt = stmt.options(selectinload(Exam.questions).selectinload(Question.options))
    res = await session.execute(stmt)
    exam = res.scalar_one_or_none()
    if not exam:
        raise NotFoundError("Exam not found")
    return exam


async def _question_counts(session: AsyncSession, exam_ids: List[UUID]) -> dict:
    if not exam_ids:
        return {}
    stmt = (
        select(Question.exam_id, func.count(Question.id))
        .where(Question.exam_id.in_(exam_ids))
        .group_by(Question.exam_id)
    )
    res = await session.execute(stmt)
    return {exam_id: count for exam_id, count in res.all()}


async def list_exams(session: AsyncSession, user: User) -> List[dict]:
    stmt = (
        select(Exam)
        .options(selectinload(Exam.grade), selectinload(Exam.course))
        .order_by(Exam.created_at.desc())
    )
    is_student = user.role == UserRole.STUDENT
    # students only see the exams of their own grade
    if is_student and user.grade_id:
        stmt = stmt.where(Exam.grade_id == user.grade_id)
    res = await session.execute(stmt)
    exams = res.scalars().all()
    counts = await _question_counts(session, [e.id for e in exams])
    return [_exam_to_read_dict(e, counts.get(e.id, 0), include_password=not is_student) for e in exams]


async def create_exam(session: AsyncSession, payload) -> dict:
    grade = await session.get(Grade, payload.grade_id)
    if not grade:
        raise NotFoundError("Grade not found")
    course = await session.get(Course, payload.course_id)
    if not course:
        raise NotFoundError("Course not found")
    if course.grade_id != grade.id:
        raise ValidationError("Course does not belong to the selected grade")

    exam = Exam(
        title=payload.title.strip(),
        grade_id=grade.id,
        course_id=course.id,
        scheduled_date=_to_naive_utc(payload.scheduled_date),
        duration_minutes=payload.duration_minutes,
        password=payload.password,
        results_released=False,
    )
    async with atomic(session):
        session.add(exam)
    logger.info("Created exam %s for grade %s / course %s", exam.id, grade.name, course.name)

    exam = await get_exam_or_404(session, exam.id)
    return _exam_to_read_dict(exam, 0, include_password=True)


async def add_question(session: AsyncSession, payload) -> dict:
    exam = await session.get(Exam, payload.exam_id)
    if not exam:
        raise NotFoundError("Exam not found")

    question = Question(exam_id=exam.id, type=payload.type, text=payload.question_text.strip(), marks=payload.marks)
    question.options = [
        Option(text=o.text.strip(), is_correct=o.is_correct, position=idx)
        for idx, o in enumerate(payload.options)
    ]
    async with atomic(session):
        session.add(question)

    return _question_to_dict(question)


async def get_exam_detail(session: AsyncSession, exam_id: UUID, for_student: bool = False) -> dict:
    exam = await get_exam_or_404(session, exam_id, with_questions=True)
    data = _exam_to_read_dict(exam, len(exam.questions), include_password=not for_student)
    if for_student:
        data["questions"] = [_sanitize_question(q) for q in exam.questions]
    else:
        data["questions"] = [_question_to_dict(q) for q in exam.questions]
    return data


async def toggle_release(session: AsyncSession, exam_id: UUID) -> dict:
    exam = await get_exam_or_404(session, exam_id)
    async with atomic(session):
        exam.results_released = not exam.results_released
    logger.info("Exam %s results_released=%s", exam.id, exam.results_released)
    counts = await _question_counts(session, [exam.id])
    return _exam_to_read_dict(exam, counts.get(exam.id, 0), include_password=True)


def check_exam_password(exam: Exam, password: Optional[str]):
    # plaintext classroom PIN, exact compare
    if exam.password != password:
        raise AuthorizationError("Incorrect password")
