from pydantic import BaseModel, Field, field_validator
from typing import List
from uuid import UUID


class GradeCreate(BaseModel):
    name: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class CourseCreate(GradeCreate):
    grade_id: UUID


class CourseRead(BaseModel):
    id: UUID
    name: str
    grade_id: UUID

    class Config:
        from_attributes = True


class GradeRead(BaseModel):
    id: UUID
    name: str
    courses: List[CourseRead] = []

    class Config:
        from_attributes = True
