from typing import List, Optional
from uuid import UUID
import logging

from fastapi_users.password import PasswordHelper
from sqlalchemy import select, insert, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from exam_portal.config import settings
from exam_portal.db import atomic
from exam_portal.errors import AuthenticationError, ConflictError, NotFoundError
from exam_portal.models.grade_model import Grade
from exam_portal.models.user_model import User, UserRole, teacher_grades

logger = logging.getLogger(__name__)

password_helper = PasswordHelper()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    res = await session.execute(select(User).where(func.lower(User.email) == normalize_email(email)))
    return res.scalar_one_or_none()


async def existing_emails(session: AsyncSession) -> set:
    res = await session.execute(select(User.email))
    return {normalize_email(e) for e in res.scalars().all()}


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(session, email)
    if not user or not user.is_active:
        raise AuthenticationError("Invalid credentials")

    valid, new_hash = password_helper.verify_and_update(password, user.hashed_password)
    if not valid:
        raise AuthenticationError("Invalid credentials")

    if new_hash:
        async with atomic(session):
            user.hashed_password = new_hash
    return user


async def change_password(session: AsyncSession, user: User, new_password: str):
    async with atomic(session):
        user.hashed_password = password_helper.hash(new_password)
        user.first_login = False
        session.add(user)
    logger.info("User %s changed password", user.id)


async def create_user(session: AsyncSession, *, role: UserRole, name: str, email: str,
                      password: Optional[str] = None, **fields) -> User:
    email = normalize_email(email)
    if await get_user_by_email(session, email):
        raise ConflictError(f"A user with email {email} already exists")

    grade_id = fields.get("grade_id")
    if grade_id is not None and not await session.get(Grade, grade_id):
        raise NotFoundError("Grade not found")

    user = User(
        name=name.strip(),
        email=email,
        hashed_password=password_helper.hash(password or settings.DEFAULT_USER_PASSWORD),
        role=role,
        first_login=True,
        is_active=True,
        is_superuser=role == UserRole.ADMIN,
        is_verified=False,
        **fields,
    )
    try:
        async with atomic(session):
            session.add(user)
    except IntegrityError:
        # concurrent insert with the same email
        raise ConflictError(f"A user with email {email} already exists")
    logger.info("Created %s account %s", role.value, user.id)
    return user


async def ensure_admin(session: AsyncSession, email: str, password: str, name: str = "Admin") -> User:
    existing = await get_user_by_email(session, email)
    if existing:
        return existing
    return await create_user(session, role=UserRole.ADMIN, name=name, email=email, password=password)


async def list_teachers(session: AsyncSession) -> List[User]:
    stmt = (
        select(User)
        .where(User.role == UserRole.TEACHER)
        .options(selectinload(User.teaching_grades))
        .order_by(User.name)
        .execution_options(populate_existing=True)
    )
    res = await session.execute(stmt)
    return res.scalars().all()


async def list_students(session: AsyncSession) -> List[User]:
    stmt = (
        select(User)
        .where(User.role == UserRole.STUDENT)
        .options(selectinload(User.grade))
        .order_by(User.name)
    )
    res = await session.execute(stmt)
    return res.scalars().all()


async def get_student(session: AsyncSession, student_id: UUID) -> User:
    stmt = (
        select(User)
        .where(User.id == student_id, User.role == UserRole.STUDENT)
        .options(selectinload(User.grade))
        .execution_options(populate_existing=True)
    )
    res = await session.execute(stmt)
    student = res.scalar_one_or_none()
    if not student:
        raise NotFoundError("Student not found")
    return student


async def get_teacher(session: AsyncSession, teacher_id: UUID) -> User:
    stmt = (
        select(User)
        .where(User.id == teacher_id)
        .options(selectinload(User.teaching_grades).selectinload(Grade.courses))
        .execution_options(populate_existing=True)
    )
    res = await session.execute(stmt)
    teacher = res.scalar_one_or_none()
    if not teacher or teacher.role != UserRole.TEACHER:
        raise NotFoundError("Teacher not found")
    return teacher


async def assign_teacher_grade(session: AsyncSession, teacher_id: UUID, grade_id: UUID) -> User:
    teacher = await get_teacher(session, teacher_id)
    if not await session.get(Grade, grade_id):
        raise NotFoundError("Grade not found")

    if any(g.id == grade_id for g in teacher.teaching_grades):
        raise ConflictError("Teacher is already assigned to this grade")

    async with atomic(session):
        await session.execute(insert(teacher_grades).values(teacher_id=teacher.id, grade_id=grade_id))
    return await get_teacher(session, teacher_id)


async def remove_teacher_grade(session: AsyncSession, teacher_id: UUID, grade_id: UUID) -> User:
    await get_teacher(session, teacher_id)
    async with atomic(session):
        res = await session.execute(
            delete(teacher_grades).where(
                teacher_grades.c.teacher_id == teacher_id,
                teacher_grades.c.grade_id == grade_id,
            )
        )
        if res.rowcount == 0:
            raise NotFoundError("Teacher is not assigned to this grade")
    return await get_teacher(session, teacher_id)
