"""
Bulk imports of students, teachers and MCQ questions from CSV (or .xlsx) files.

Every row is validated on its own and all problems are collected before anything
is written. A file with a single bad row imports nothing; a clean file is
committed in one transaction.
"""
import io
import logging
import os
import re
import zipfile
from typing import Dict, List, Tuple
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from exam_portal.config import settings
from exam_portal.db import atomic
from exam_portal.errors import BulkImportError, NotFoundError, ValidationError
from exam_portal.models.exam_model import Exam
from exam_portal.models.question_model import Option, Question, QuestionType
from exam_portal.models.user_model import User, UserRole, teacher_grades
from .grade_service import grades_by_name
from .user_service import existing_emails, normalize_email, password_helper

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".csv", ".xlsx"}

STUDENT_COLUMNS = ["name", "email", "studentId", "grade", "semester"]
STUDENT_OPTIONAL_COLUMNS = ("rollNumber", "universityRollNumber")
TEACHER_COLUMNS = ["name", "email"]
TEACHER_OPTIONAL_COLUMNS = ("grades",)
QUESTION_COLUMNS = ["question", "optionA", "optionB", "optionC", "optionD", "correctOption", "marks"]

OPTION_LETTERS = ["A", "B", "C", "D"]
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def read_table(content: bytes, filename: str, required_columns: List[str],
               optional_columns: Tuple[str, ...] = ()) -> pd.DataFrame:
    """
    Parse an uploaded file into a DataFrame of stripped strings.

    Raises ValidationError for an oversize or unsupported file, a parse failure,
    missing required headers, or a file with no data rows.
    """
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File is too large. Maximum size is {settings.MAX_UPLOAD_BYTES // 1024} KiB."
        )

    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"Invalid file extension. Only {sorted(ALLOWED_EXTENSIONS)} are allowed."
        )

    try:
        if extension == ".csv":
            df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, encoding="utf-8-sig")
        else:
            df = pd.read_excel(io.BytesIO(content), dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise ValidationError("File is empty")
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError, zipfile.BadZipFile) as e:
        logger.warning("Could not parse uploaded file %s: %s", filename, e)
        raise ValidationError("Failed to parse file. Please upload a valid CSV file.")

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise ValidationError(
            f"Missing required headers: {', '.join(missing)}",
            missing_headers=missing,
            expected_headers=required_columns + list(optional_columns),
        )

    if df.empty:
        raise ValidationError("File is empty. Add at least one data row below the header.")

    return df.apply(lambda col: col.map(lambda v: str(v).strip()))


def _rows(df: pd.DataFrame):
    # spreadsheet numbering: header is row 1
    for idx, record in enumerate(df.to_dict(orient="records")):
        yield idx + 2, record


def _require(record: dict, field: str, label: str, errors: List[str]) -> str:
    value = record.get(field, "")
    if not value:
        errors.append(f"{label} is required")
    return value


def _positive_int(value: str, label: str, errors: List[str]):
    if not value:
        errors.append(f"{label} is required")
        return None
    try:
        number = int(value)
    except ValueError:
        errors.append(f"{label} must be a whole number, got '{value}'")
        return None
    if number < 1:
        errors.append(f"{label} must be at least 1")
        return None
    return number


def _check_email(email: str, seen: Dict[str, int], taken: set, errors: List[str]) -> str:
    if not email:
        errors.append("Email is required")
        return email
    normalized = normalize_email(email)
    if not EMAIL_RE.match(normalized):
        errors.append(f"Invalid email format: '{email}'")
    elif normalized in seen:
        errors.append(f"Duplicate email '{email}' (first seen on row {seen[normalized]})")
    elif normalized in taken:
        errors.append(f"Email '{email}' already exists")
    return normalized


def _available(grades: dict) -> str:
    names = sorted(g.name for g in grades.values())
    return ", ".join(names) if names else "none"


# ---------------------------------------------------------------------------
# Row validation (no database access)
# ---------------------------------------------------------------------------

def validate_student_rows(df: pd.DataFrame, grades: dict, taken_emails: set) -> Tuple[list, list]:
    """
    grades: mapping of lower-cased grade name -> Grade
    taken_emails: lower-cased emails already stored
    Returns (valid_rows, row_errors).
    """
    valid, row_errors = [], []
    seen: Dict[str, int] = {}

    for row_number, record in _rows(df):
        errors: List[str] = []
        name = _require(record, "name", "Name", errors)
        email = _check_email(record.get("email", ""), seen, taken_emails, errors)
        student_id = _require(record, "studentId", "Student ID", errors)
        semester = _positive_int(record.get("semester", ""), "Semester", errors)

        grade_name = record.get("grade", "")
        grade = None
        if not grade_name:
            errors.append("Grade is required")
        else:
            grade = grades.get(grade_name.lower())
            if grade is None:
                errors.append(f"Grade '{grade_name}' not found. Available grades: {_available(grades)}")

        if email and email not in seen:
            seen[email] = row_number

        if errors:
            row_errors.append({"row": row_number, "errors": errors})
            continue

        valid.append({
            "name": name,
            "email": email,
            "student_id": student_id,
            "roll_number": record.get("rollNumber") or None,
            "university_roll_number": record.get("universityRollNumber") or None,
            "semester": semester,
            "grade_id": grade.id,
        })

    return valid, row_errors


def validate_teacher_rows(df: pd.DataFrame, grades: dict, taken_emails: set) -> Tuple[list, list]:
    valid, row_errors = [], []
    seen: Dict[str, int] = {}

    for row_number, record in _rows(df):
        errors: List[str] = []
        name = _require(record, "name", "Name", errors)
        email = _check_email(record.get("email", ""), seen, taken_emails, errors)

        grade_ids = []
        for grade_name in [g.strip() for g in record.get("grades", "").split(";") if g.strip()]:
            grade = grades.get(grade_name.lower())
            if grade is None:
                errors.append(f"Grade '{grade_name}' not found. Available grades: {_available(grades)}")
            elif grade.id not in grade_ids:
                grade_ids.append(grade.id)

        if email and email not in seen:
            seen[email] = row_number

        if errors:
            row_errors.append({"row": row_number, "errors": errors})
            continue

        valid.append({"name": name, "email": email, "grade_ids": grade_ids})

    return valid, row_errors


def validate_question_rows(df: pd.DataFrame) -> Tuple[list, list]:
    valid, row_errors = [], []
    seen: Dict[str, int] = {}

    for row_number, record in _rows(df):
        errors: List[str] = []
        text = _require(record, "question", "Question", errors)
        options = [_require(record, f"option{letter}", f"Option {letter}", errors) for letter in OPTION_LETTERS]

        correct = record.get("correctOption", "").upper()
        if not correct:
            errors.append("Correct option is required")
        elif correct not in OPTION_LETTERS:
            errors.append(f"Correct option must be one of {', '.join(OPTION_LETTERS)}, got '{record.get('correctOption')}'")

        marks = _positive_int(record.get("marks", ""), "Marks", errors)

        key = text.lower()
        if text and key in seen:
            errors.append(f"Duplicate question (first seen on row {seen[key]})")
        elif text:
            seen[key] = row_number

        if errors:
            row_errors.append({"row": row_number, "errors": errors})
            continue

        valid.append({"text": text, "options": options, "correct": correct, "marks": marks})

    return valid, row_errors


def _raise_if_failed(total_rows: int, row_errors: list, kind: str):
    if row_errors:
        logger.warning("Rejected %s import: %d of %d rows invalid", kind, len(row_errors), total_rows)
        raise BulkImportError(total_rows, row_errors)


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------

async def import_students(session: AsyncSession, content: bytes, filename: str) -> dict:
    df = read_table(content, filename, STUDENT_COLUMNS, STUDENT_OPTIONAL_COLUMNS)
    grades = await grades_by_name(session)
    taken = await existing_emails(session)

    rows, row_errors = validate_student_rows(df, grades, taken)
    _raise_if_failed(len(df), row_errors, "student")

    # one hash shared by every imported account
    hashed = password_helper.hash(settings.DEFAULT_USER_PASSWORD)
    async with atomic(session):
        session.add_all([
            User(hashed_password=hashed, role=UserRole.STUDENT, first_login=True,
                 is_active=True, is_superuser=False, is_verified=False, **row)
            for row in rows
        ])
    logger.info("Imported %d students from %s", len(rows), filename)
    return {"message": f"{len(rows)} students imported successfully", "count": len(rows)}


async def import_teachers(session: AsyncSession, content: bytes, filename: str) -> dict:
    df = read_table(content, filename, TEACHER_COLUMNS, TEACHER_OPTIONAL_COLUMNS)
    grades = await grades_by_name(session)
    taken = await existing_emails(session)

    rows, row_errors = validate_teacher_rows(df, grades, taken)
    _raise_if_failed(len(df), row_errors, "teacher")

    hashed = password_helper.hash(settings.DEFAULT_USER_PASSWORD)
    async with atomic(session):
        links = []
        for row in rows:
            teacher = User(name=row["name"], email=row["email"], hashed_password=hashed,
                           role=UserRole.TEACHER, first_login=True, is_active=True,
                           is_superuser=False, is_verified=False)
            session.add(teacher)
            await session.flush()
            links.extend({"teacher_id": teacher.id, "grade_id": gid} for gid in row["grade_ids"])
        if links:
            await session.execute(teacher_grades.insert(), links)
    logger.info("Imported %d teachers from %s", len(rows), filename)
    return {"message": f"{len(rows)} teachers imported successfully", "count": len(rows)}


async def import_questions(session: AsyncSession, exam_id: UUID, content: bytes, filename: str) -> dict:
    exam = await session.get(Exam, exam_id)
    if not exam:
        raise NotFoundError("Exam not found")

    df = read_table(content, filename, QUESTION_COLUMNS)
    rows, row_errors = validate_question_rows(df)
    _raise_if_failed(len(df), row_errors, "question")

    async with atomic(session):
        for row in rows:
            question = Question(exam_id=exam.id, type=QuestionType.MCQ, text=row["text"], marks=row["marks"])
            question.options = [
                Option(text=text, is_correct=(letter == row["correct"]), position=idx)
                for idx, (letter, text) in enumerate(zip(OPTION_LETTERS, row["options"]))
            ]
            session.add(question)
    logger.info("Imported %d questions into exam %s", len(rows), exam.id)
    return {"message": f"{len(rows)} questions imported successfully", "count": len(rows)}
