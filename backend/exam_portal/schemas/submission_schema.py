from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from .question_schema import QuestionRead, OptionRead


class AnswerIn(BaseModel):
    question_id: UUID
    selected_option_id: Optional[UUID] = None


class SubmitPayload(BaseModel):
    exam_id: UUID
    answers: List[AnswerIn] = []


class ScoreUpdate(BaseModel):
    total_score: int = Field(..., ge=0)


class SubmissionRead(BaseModel):
    id: UUID
    exam_id: UUID
    student_id: UUID
    total_score: int
    submitted_at: datetime

    class Config:
        from_attributes = True


class StudentSummary(BaseModel):
    name: str
    email: str

    class Config:
        from_attributes = True


class TeacherSubmissionRead(SubmissionRead):
    student: StudentSummary


class AnswerRead(BaseModel):
    id: UUID
    question_id: UUID
    selected_option_id: Optional[UUID] = None
    question: QuestionRead
    selected_option: Optional[OptionRead] = None

    class Config:
        from_attributes = True


class SubmissionDetail(SubmissionRead):
    answers: List[AnswerRead] = []
