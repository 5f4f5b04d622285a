from exam_portal.db import Base
import uuid
import enum
from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, Boolean, Integer, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship

from .grade_model import _utcnow


class QuestionType(str, enum.Enum):
    MCQ = "MCQ"


class Question(Base):
    __tablename__ = "questions"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    exam_id = Column(GUID, ForeignKey("exams.id"), nullable=False)
    type = Column(SAEnum(QuestionType, name="question_type"), default=QuestionType.MCQ, nullable=False)
    text = Column(String, nullable=False)
    marks = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    exam = relationship("Exam", back_populates="questions")
    options = relationship("Option", back_populates="question", order_by="Option.position")


class Option(Base):
    __tablename__ = "options"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    question_id = Column(GUID, ForeignKey("questions.id"), nullable=False)
    text = Column(String, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    question = relationship("Question", back_populates="options")
