from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from .question_schema import QuestionRead, StudentQuestionRead


class ExamCreate(BaseModel):
    title: str = Field(..., min_length=1)
    grade_id: UUID
    course_id: UUID
    scheduled_date: datetime
    duration_minutes: int
    password: str = Field(..., min_length=1)

    @field_validator("duration_minutes")
    @classmethod
    def duration_must_be_positive(cls, v):
        if v is None or v <= 0:
            raise ValueError("duration_minutes must be a positive integer (minutes)")
        return v


class ExamPassword(BaseModel):
    password: str


class VerifyExamRequest(ExamPassword):
    exam_id: UUID


class ExamRead(BaseModel):
    id: UUID
    title: str
    grade_id: UUID
    course_id: UUID
    grade_name: Optional[str] = None
    course_name: Optional[str] = None
    scheduled_date: datetime
    duration_minutes: int
    results_released: bool
    created_at: datetime
    question_count: int = 0


class TeacherExamRead(ExamRead):
    password: str


class ExamDetail(TeacherExamRead):
    questions: List[QuestionRead] = []


class StudentExamDetail(ExamRead):
    questions: List[StudentQuestionRead] = []
