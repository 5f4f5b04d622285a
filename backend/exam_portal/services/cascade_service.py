"""
Cascading deletes.

Foreign keys carry no ON DELETE action, so dependents are removed here, leaf-most
first. ``DELETION_ORDER`` is the single place that says which steps a plan runs
and in which order; ``STEP_BUILDERS`` turns a step name into the statement for a
resolved ``DeletionScope``. A plan runs inside one transaction together with its
guard query, so a rejected or failed delete leaves every row as it was.
"""
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from exam_portal.db import atomic
from exam_portal.errors import ConflictError, ForbiddenError, NotFoundError
from exam_portal.models.exam_model import Exam
from exam_portal.models.grade_model import Course, Grade
from exam_portal.models.question_model import Option, Question
from exam_portal.models.submission_model import Answer, Submission
from exam_portal.models.user_model import User, UserRole, teacher_grades
from .exam_service import check_exam_password

logger = logging.getLogger(__name__)


DELETION_ORDER = {
    "question": ("options", "question"),
    "exam": ("options", "questions", "exam"),
    "exam_purge": ("answers", "submissions", "options", "questions", "exam"),
    "course": ("options", "questions", "exams", "course"),
    "grade": ("options", "questions", "exams", "courses", "grade_teachers", "grade_students", "grade"),
    "submission": ("answers", "submission"),
    "student": ("answers", "submissions", "user"),
    "teacher": ("teacher_grades", "user"),
}


class DeletionScope:
    """Ids a plan touches, resolved before the first statement runs."""

    def __init__(self, target_id: UUID, exam_ids: Optional[List[UUID]] = None,
                 question_ids: Optional[List[UUID]] = None, submission_ids: Optional[List[UUID]] = None):
        self.target_id = target_id
        self.exam_ids = list(exam_ids or [])
        self.question_ids = list(question_ids or [])
        self.submission_ids = list(submission_ids or [])


STEP_BUILDERS = {
    "answers": lambda s: delete(Answer).where(Answer.submission_id.in_(s.submission_ids)),
    "submissions": lambda s: delete(Submission).where(Submission.id.in_(s.submission_ids)),
    "submission": lambda s: delete(Submission).where(Submission.id == s.target_id),
    "options": lambda s: delete(Option).where(Option.question_id.in_(s.question_ids)),
    "questions": lambda s: delete(Question).where(Question.id.in_(s.question_ids)),
    "question": lambda s: delete(Question).where(Question.id == s.target_id),
    "exams": lambda s: delete(Exam).where(Exam.id.in_(s.exam_ids)),
    "exam": lambda s: delete(Exam).where(Exam.id == s.target_id),
    "courses": lambda s: delete(Course).where(Course.grade_id == s.target_id),
    "course": lambda s: delete(Course).where(Course.id == s.target_id),
    "grade_teachers": lambda s: delete(teacher_grades).where(teacher_grades.c.grade_id == s.target_id),
    "grade_students": lambda s: (
        update(User).where(User.grade_id == s.target_id).values(grade_id=None)
    ),
    "grade": lambda s: delete(Grade).where(Grade.id == s.target_id),
    "teacher_grades": lambda s: delete(teacher_grades).where(teacher_grades.c.teacher_id == s.target_id),
    "user": lambda s: delete(User).where(User.id == s.target_id),
}


async def _ids(session: AsyncSession, column, *where) -> List[UUID]:
    res = await session.execute(select(column).where(*where))
    return list(res.scalars().all())


async def count_submissions(session: AsyncSession, exam_ids: List[UUID]) -> int:
    if not exam_ids:
        return 0
    res = await session.execute(select(func.count(Submission.id)).where(Submission.exam_id.in_(exam_ids)))
    return res.scalar_one()


async def _exam_scope(session: AsyncSession, target_id: UUID, exam_ids: List[UUID]) -> DeletionScope:
    question_ids = await _ids(session, Question.id, Question.exam_id.in_(exam_ids)) if exam_ids else []
    submission_ids = await _ids(session, Submission.id, Submission.exam_id.in_(exam_ids)) if exam_ids else []
    return DeletionScope(target_id, exam_ids, question_ids, submission_ids)


async def _run_plan(session: AsyncSession, plan: str, scope: DeletionScope) -> Dict[str, int]:
    removed = {}
    for step in DELETION_ORDER[plan]:
        result = await session.execute(
            STEP_BUILDERS[step](scope),
            execution_options={"synchronize_session": False},
        )
        removed[step] = result.rowcount
    return removed


async def _guard_no_submissions(session: AsyncSession, exam_ids: List[UUID], what: str):
    count = await count_submissions(session, exam_ids)
    if count > 0:
        logger.warning("Refusing to delete %s: %d submission(s) exist", what, count)
        raise ConflictError(
            f"Cannot delete {what}: it has exams with student submissions ({count}). "
            "Remove those submissions first."
        )


def _finish(session: AsyncSession, plan: str, target_id: UUID, removed: Dict[str, int]) -> Dict[str, int]:
    # bulk statements bypass the identity map
    session.expunge_all()
    logger.info("Deleted %s %s: %s", plan, target_id, removed)
    return removed


async def delete_question(session: AsyncSession, question_id: UUID) -> Dict[str, int]:
    async with atomic(session):
        if not await session.get(Question, question_id):
            raise NotFoundError("Question not found")
        removed = await _run_plan(session, "question", DeletionScope(question_id, question_ids=[question_id]))
    return _finish(session, "question", question_id, removed)


async def delete_exam(session: AsyncSession, exam_id: UUID, password: Optional[str]) -> Dict[str, int]:
    """Password-gated delete used by teachers. Refused while submissions exist."""
    async with atomic(session):
        exam = await session.get(Exam, exam_id)
        if not exam:
            raise NotFoundError("Exam not found")
        check_exam_password(exam, password)
        await _guard_no_submissions(session, [exam.id], "exam")
        scope = await _exam_scope(session, exam.id, [exam.id])
        removed = await _run_plan(session, "exam", scope)
    return _finish(session, "exam", exam_id, removed)


async def purge_exam(session: AsyncSession, exam_id: UUID) -> Dict[str, int]:
    """Administrator delete: removes the exam together with every submission on it."""
    async with atomic(session):
        if not await session.get(Exam, exam_id):
            raise NotFoundError("Exam not found")
        scope = await _exam_scope(session, exam_id, [exam_id])
        removed = await _run_plan(session, "exam_purge", scope)
    return _finish(session, "exam_purge", exam_id, removed)


async def delete_course(session: AsyncSession, course_id: UUID) -> Dict[str, int]:
    async with atomic(session):
        if not await session.get(Course, course_id):
            raise NotFoundError("Course not found")
        exam_ids = await _ids(session, Exam.id, Exam.course_id == course_id)
        await _guard_no_submissions(session, exam_ids, "course")
        scope = await _exam_scope(session, course_id, exam_ids)
        removed = await _run_plan(session, "course", scope)
    return _finish(session, "course", course_id, removed)


async def delete_grade(session: AsyncSession, grade_id: UUID) -> Dict[str, int]:
    async with atomic(session):
        if not await session.get(Grade, grade_id):
            raise NotFoundError("Grade not found")
        # exams of the grade, plus any exam filed under one of its courses
        course_ids = select(Course.id).where(Course.grade_id == grade_id)
        exam_ids = await _ids(session, Exam.id, or_(Exam.grade_id == grade_id, Exam.course_id.in_(course_ids)))
        await _guard_no_submissions(session, exam_ids, "grade")
        scope = await _exam_scope(session, grade_id, exam_ids)
        removed = await _run_plan(session, "grade", scope)
    return _finish(session, "grade", grade_id, removed)


async def delete_submission(session: AsyncSession, submission_id: UUID) -> Dict[str, int]:
    async with atomic(session):
        if not await session.get(Submission, submission_id):
            raise NotFoundError("Submission not found")
        scope = DeletionScope(submission_id, submission_ids=[submission_id])
        removed = await _run_plan(session, "submission", scope)
    return _finish(session, "submission", submission_id, removed)


async def delete_user(session: AsyncSession, user_id: UUID) -> Dict[str, int]:
    async with atomic(session):
        user = await session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == UserRole.ADMIN:
            raise ForbiddenError("Admin accounts cannot be deleted")

        if user.role == UserRole.STUDENT:
            plan = "student"
            submission_ids = await _ids(session, Submission.id, Submission.student_id == user_id)
            scope = DeletionScope(user_id, submission_ids=submission_ids)
        else:
            plan = "teacher"
            scope = DeletionScope(user_id)
        removed = await _run_plan(session, plan, scope)
    return _finish(session, plan, user_id, removed)
