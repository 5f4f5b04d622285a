import asyncio
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="exam_portal_tests_")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_DB_DIR, "test.db")
os.environ["SECRET"] = "test-secret"
os.environ["ADMIN_EMAIL"] = "admin@exam.com"
os.environ["ADMIN_PASSWORD"] = "admin123"
os.environ["DEFAULT_USER_PASSWORD"] = "portal@123"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from exam_portal.app import app
from exam_portal.db import async_session_maker, drop_db_and_tables

ADMIN_EMAIL = "admin@exam.com"
ADMIN_PASSWORD = "admin123"
DEFAULT_PASSWORD = "portal@123"


def run(coro):
    return asyncio.run(coro)


def count_rows(table, *where) -> int:
    """Count rows of a model or table straight from the database."""
    async def _count():
        async with async_session_maker() as session:
            stmt = select(func.count()).select_from(table)
            if where:
                stmt = stmt.where(*where)
            res = await session.execute(stmt)
            return res.scalar_one()
    return run(_count())


def auth_headers(client, email, password):
    r = client.post("/api/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


class Portal:
    """Small API driver so tests read as scenarios."""

    def __init__(self, client):
        self.client = client
        self.admin = auth_headers(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    def login(self, email, password=DEFAULT_PASSWORD):
        return auth_headers(self.client, email, password)

    def create_grade(self, name="BTech"):
        r = self.client.post("/api/admin/grades", json={"name": name}, headers=self.admin)
        assert r.status_code == 201, r.text
        return r.json()

    def create_course(self, grade_id, name="Mathematics"):
        r = self.client.post("/api/admin/courses", json={"name": name, "grade_id": grade_id}, headers=self.admin)
        assert r.status_code == 201, r.text
        return r.json()

    def create_teacher(self, email="teacher@exam.com", name="Tina Teacher"):
        r = self.client.post("/api/admin/create-teacher", json={"name": name, "email": email}, headers=self.admin)
        assert r.status_code == 201, r.text
        return r.json()

    def create_student(self, grade_id, email="student@exam.com", name="Sam Student"):
        payload = {"name": name, "email": email, "student_id": "STU001", "semester": 1, "grade_id": grade_id}
        r = self.client.post("/api/admin/create-student", json=payload, headers=self.admin)
        assert r.status_code == 201, r.text
        return r.json()

    def create_exam(self, teacher, grade_id, course_id, title="Midterm", password="pin-1234"):
        payload = {
            "title": title,
            "grade_id": grade_id,
            "course_id": course_id,
            "scheduled_date": "2026-11-01T09:00:00Z",
            "duration_minutes": 60,
            "password": password,
        }
        r = self.client.post("/api/teacher/create-exam", json=payload, headers=teacher)
        assert r.status_code == 201, r.text
        return r.json()

    def add_question(self, teacher, exam_id, text="2 + 2 = ?", marks=1, correct=0):
        options = [{"text": t, "is_correct": i == correct} for i, t in enumerate(["4", "3", "5", "22"])]
        payload = {"exam_id": exam_id, "type": "MCQ", "question_text": text, "marks": marks, "options": options}
        r = self.client.post("/api/teacher/add-question", json=payload, headers=teacher)
        assert r.status_code == 201, r.text
        return r.json()

    def submit(self, student, exam_id, picks):
        """picks: list of (question, option index)"""
        answers = [
            {"question_id": q["id"], "selected_option_id": q["options"][idx]["id"]}
            for q, idx in picks
        ]
        return self.client.post(
            "/api/student/submit-exam", json={"exam_id": exam_id, "answers": answers}, headers=student
        )

    def school(self, questions=((5, 0), (3, 0))):
        """A grade, course, teacher, student and one exam with MCQ questions of the given (marks, correct)."""
        grade = self.create_grade()
        course = self.create_course(grade["id"])
        self.create_teacher()
        teacher = self.login("teacher@exam.com")
        student_row = self.create_student(grade["id"])
        student = self.login("student@exam.com")
        exam = self.create_exam(teacher, grade["id"], course["id"])
        qs = [
            self.add_question(teacher, exam["id"], text=f"Question {i}", marks=marks, correct=correct)
            for i, (marks, correct) in enumerate(questions)
        ]
        return {
            "grade": grade, "course": course, "teacher": teacher, "student": student,
            "student_row": student_row, "exam": exam, "questions": qs,
        }


@pytest.fixture
def client():
    # fresh schema per test; startup recreates the tables and the bootstrap admin
    run(drop_db_and_tables())
    with TestClient(app) as c:
        yield c


@pytest.fixture
def portal(client):
    return Portal(client)
