from pydantic import BaseModel, Field, model_validator
from typing import List
from uuid import UUID

from exam_portal.models.question_model import QuestionType


class OptionCreate(BaseModel):
    text: str = Field(..., min_length=1)
    is_correct: bool = False


class QuestionCreate(BaseModel):
    """
    Schema for a new multiple choice question with its options.

    Exactly one option must be flagged as correct.
    """
    exam_id: UUID
    type: QuestionType = QuestionType.MCQ
    question_text: str = Field(..., min_length=1)
    marks: int = Field(..., gt=0, description="Marks awarded for the correct option.")
    options: List[OptionCreate] = Field(..., min_length=2)

    @model_validator(mode="after")
    def exactly_one_correct(self):
        correct = [o for o in self.options if o.is_correct]
        if len(correct) != 1:
            raise ValueError("Exactly one option must be marked correct.")
        return self


class StudentOptionRead(BaseModel):
    id: UUID
    text: str

    class Config:
        from_attributes = True


class OptionRead(StudentOptionRead):
    is_correct: bool


class StudentQuestionRead(BaseModel):
    id: UUID
    exam_id: UUID
    type: QuestionType
    text: str
    marks: int
    options: List[StudentOptionRead] = []

    class Config:
        from_attributes = True


class QuestionRead(StudentQuestionRead):
    options: List[OptionRead] = []
