from fastapi_users import schemas
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from uuid import UUID

from exam_portal.models.user_model import UserRole


class UserRead(schemas.BaseUser[UUID]):
    name: str
    role: UserRole
    first_login: bool = True
    student_id: Optional[str] = None
    roll_number: Optional[str] = None
    university_roll_number: Optional[str] = None
    semester: Optional[int] = None
    grade_id: Optional[UUID] = None


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = None
    student_id: Optional[str] = None
    roll_number: Optional[str] = None
    university_roll_number: Optional[str] = None
    semester: Optional[int] = Field(default=None, ge=1)


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=6)


class TeacherCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    # falls back to the configured default credential
    password: Optional[str] = Field(default=None, min_length=6)


class StudentCreate(TeacherCreate):
    student_id: Optional[str] = None
    roll_number: Optional[str] = None
    university_roll_number: Optional[str] = None
    semester: Optional[int] = Field(default=None, ge=1)
    grade_id: Optional[UUID] = None


class GradeSummary(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class TeacherRead(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    first_login: bool
    teaching_grades: List[GradeSummary] = []

    class Config:
        from_attributes = True


class StudentRead(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    first_login: bool
    student_id: Optional[str] = None
    roll_number: Optional[str] = None
    university_roll_number: Optional[str] = None
    semester: Optional[int] = None
    grade_id: Optional[UUID] = None
    grade: Optional[GradeSummary] = None

    class Config:
        from_attributes = True


class AssignTeacherGrade(BaseModel):
    teacher_id: UUID
    grade_id: UUID
