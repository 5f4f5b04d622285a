from exam_portal.db import Base
from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from .grade_model import _utcnow


class Submission(Base):
    __tablename__ = "submissions"
    # at most one attempt per student per exam, enforced at write time
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_submission_exam_student"),)

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    exam_id = Column(GUID, ForeignKey("exams.id"), nullable=False)
    student_id = Column(GUID, ForeignKey("users.id"), nullable=False)
    total_score = Column(Integer, default=0, nullable=False)
    submitted_at = Column(DateTime, default=_utcnow, nullable=False)

    exam = relationship("Exam")
    student = relationship("User")
    answers = relationship("Answer", back_populates="submission")


class Answer(Base):
    __tablename__ = "answers"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    submission_id = Column(GUID, ForeignKey("submissions.id"), nullable=False)
    question_id = Column(GUID, ForeignKey("questions.id"), nullable=False)
    selected_option_id = Column(GUID, ForeignKey("options.id"), nullable=True)

    submission = relationship("Submission", back_populates="answers")
    question = relationship("Question")
    selected_option = relationship("Option")
