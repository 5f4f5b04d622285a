from typing import List
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from exam_portal.db import atomic
from exam_portal.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from exam_portal.models.exam_model import Exam
from exam_portal.models.question_model import Question
from exam_portal.models.submission_model import Answer, Submission
from exam_portal.models.user_model import User
from .exam_service import check_exam_password, get_exam_or_404
from .grading_service import grade_submission, max_score

logger = logging.getLogger(__name__)

ALREADY_ATTEMPTED = "You have already attempted this exam"


async def _get_submission(session: AsyncSession, exam_id: UUID, student_id: UUID):
    res = await session.execute(
        select(Submission).where(Submission.exam_id == exam_id, Submission.student_id == student_id)
    )
    return res.scalar_one_or_none()


async def _get_questions_for_exam(session: AsyncSession, exam_id: UUID) -> List[Question]:
    stmt = (
        select(Question)
        .where(Question.exam_id == exam_id)
        .options(selectinload(Question.options))
        .order_by(Question.created_at)
    )
    res = await session.execute(stmt)
    return res.scalars().all()


async def verify_exam(session: AsyncSession, exam_id: UUID, password: str, student: User) -> dict:
    exam = await session.get(Exam, exam_id)
    if not exam:
        raise NotFoundError("Exam not found")
    check_exam_password(exam, password)
    if await _get_submission(session, exam.id, student.id):
        raise ConflictError(ALREADY_ATTEMPTED)
    return {"success": True}


async def submit_exam(session: AsyncSession, exam_id: UUID, answers: list, student: User) -> Submission:
    student_id = student.id
    exam = await session.get(Exam, exam_id)
    if not exam:
        raise NotFoundError("Exam not found")

    # application check; the unique constraint catches concurrent attempts
    if await _get_submission(session, exam.id, student_id):
        raise ConflictError(ALREADY_ATTEMPTED)

    questions = await _get_questions_for_exam(session, exam.id)
    qmap = {q.id: q for q in questions}

    selected = {}
    for ans in answers:
        question = qmap.get(ans.question_id)
        if question is None:
            raise ValidationError(f"Question {ans.question_id} does not belong to this exam")
        if ans.question_id in selected:
            raise ValidationError(f"Question {ans.question_id} was answered more than once")
        if ans.selected_option_id is not None and ans.selected_option_id not in {o.id for o in question.options}:
            raise ValidationError(f"Option {ans.selected_option_id} does not belong to question {ans.question_id}")
        selected[ans.question_id] = ans.selected_option_id

    # auto-grade objective questions
    _, total = grade_submission(selected, questions)

    submission = Submission(exam_id=exam_id, student_id=student_id, total_score=total)
    submission.answers = [
        Answer(question_id=qid, selected_option_id=oid) for qid, oid in selected.items()
    ]
    try:
        async with atomic(session):
            session.add(submission)
    except IntegrityError:
        logger.warning("Duplicate submission rejected for exam_id=%s student_id=%s", exam_id, student_id)
        raise ConflictError(ALREADY_ATTEMPTED)

    logger.info("Student %s submitted exam %s with score %d", student_id, exam_id, total)
    return submission


async def get_released_submission(session: AsyncSession, exam_id: UUID, student: User) -> Submission:
    exam = await session.get(Exam, exam_id)
    if not exam:
        raise NotFoundError("Exam not found")
    if not exam.results_released:
        raise AuthorizationError("Results not yet released")

    stmt = (
        select(Submission)
        .where(Submission.exam_id == exam_id, Submission.student_id == student.id)
        .options(
            selectinload(Submission.answers).selectinload(Answer.question).selectinload(Question.options),
            selectinload(Submission.answers).selectinload(Answer.selected_option),
        )
    )
    res = await session.execute(stmt)
    submission = res.scalar_one_or_none()
    if not submission:
        raise NotFoundError("Submission not found")
    return submission


async def list_exam_submissions(session: AsyncSession, exam_id: UUID) -> List[Submission]:
    await get_exam_or_404(session, exam_id)
    stmt = (
        select(Submission)
        .where(Submission.exam_id == exam_id)
        .options(selectinload(Submission.student))
        .order_by(Submission.submitted_at)
    )
    res = await session.execute(stmt)
    return res.scalars().all()


async def update_score(session: AsyncSession, submission_id: UUID, total_score: int) -> Submission:
    submission = await session.get(Submission, submission_id)
    if not submission:
        raise NotFoundError("Submission not found")

    # validate bounds against the exam's total marks
    questions = await _get_questions_for_exam(session, submission.exam_id)
    ceiling = max_score(questions)
    if total_score < 0 or total_score > ceiling:
        raise ValidationError(f"total_score must be between 0 and {ceiling}")

    async with atomic(session):
        submission.total_score = total_score
    logger.info("Submission %s score overridden to %d", submission.id, total_score)
    return submission
