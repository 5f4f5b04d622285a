"""
Grades and Courses
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `name` | VARCHAR | unique, used as the human key in CSV imports |
| `created_at` | TIMESTAMP | UTC |

### Courses
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `name` | VARCHAR | |
| `grade_id` | UUID | FK -> Grades |
"""
from exam_portal.db import Base
from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Grade(Base):
    __tablename__ = "grades"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, default=_utcnow)

    courses = relationship("Course", back_populates="grade", order_by="Course.name")
    students = relationship("User", back_populates="grade")
    teachers = relationship("User", secondary="teacher_grades", back_populates="teaching_grades")


class Course(Base):
    __tablename__ = "courses"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    grade_id = Column(GUID, ForeignKey("grades.id"), nullable=False)

    grade = relationship("Grade", back_populates="courses")
