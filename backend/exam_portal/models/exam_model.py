from exam_portal.db import Base
from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, Boolean, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import uuid

from .grade_model import _utcnow


"""
Exams Model
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `title` | VARCHAR | |
| `grade_id` | UUID | FK -> Grades |
| `course_id` | UUID | FK -> Courses |
| `scheduled_date` | TIMESTAMP | naive UTC |
| `duration_minutes` | INTEGER | |
| `password` | VARCHAR | plaintext classroom PIN, compared exactly |
| `results_released` | BOOLEAN | Default `false` |
| `created_at` | TIMESTAMP | |
"""


class Exam(Base):
    __tablename__ = "exams"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    grade_id = Column(GUID, ForeignKey("grades.id"), nullable=False)
    course_id = Column(GUID, ForeignKey("courses.id"), nullable=False)
    scheduled_date = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    password = Column(String, nullable=False)
    results_released = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    grade = relationship("Grade")
    course = relationship("Course")
    questions = relationship("Question", back_populates="exam", order_by="Question.created_at")
