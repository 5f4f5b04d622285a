from ..db import Base
from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, Boolean, Integer, String, ForeignKey, Table, Enum as SQLAlchemyEnum
from sqlalchemy.orm import relationship
import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


# Teachers <-> grades they teach
teacher_grades = Table(
    "teacher_grades",
    Base.metadata,
    Column("teacher_id", GUID, ForeignKey("users.id"), primary_key=True),
    Column("grade_id", GUID, ForeignKey("grades.id"), primary_key=True),
)


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"
    name = Column(String, nullable=False)
    role = Column(SQLAlchemyEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    first_login = Column(Boolean, default=True, nullable=False)

    # student only
    student_id = Column(String, nullable=True)
    roll_number = Column(String, nullable=True)
    university_roll_number = Column(String, nullable=True)
    semester = Column(Integer, nullable=True)
    grade_id = Column(GUID, ForeignKey("grades.id"), nullable=True)

    grade = relationship("Grade", back_populates="students", foreign_keys=[grade_id])
    teaching_grades = relationship("Grade", secondary=teacher_grades, back_populates="teachers")
