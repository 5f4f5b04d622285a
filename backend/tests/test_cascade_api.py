import pytest

from exam_portal.db import async_session_maker
from exam_portal.models.exam_model import Exam
from exam_portal.models.grade_model import Course, Grade
from exam_portal.models.question_model import Option, Question
from exam_portal.models.submission_model import Answer, Submission
from exam_portal.models.user_model import User, teacher_grades
from exam_portal.services import cascade_service

from conftest import count_rows, run


def _snapshot():
    return {
        model.__name__: count_rows(model)
        for model in (Grade, Course, Exam, Question, Option, Submission, Answer, User)
    }


def test_every_plan_step_has_a_statement():
    for plan, steps in cascade_service.DELETION_ORDER.items():
        assert steps, plan
        for step in steps:
            assert step in cascade_service.STEP_BUILDERS, (plan, step)


def test_children_are_removed_before_parents():
    order = cascade_service.DELETION_ORDER
    for plan in ("exam", "course", "grade"):
        steps = order[plan]
        assert steps.index("options") < steps.index("questions")
    assert order["exam_purge"].index("answers") < order["exam_purge"].index("submissions")
    assert order["exam_purge"].index("submissions") < order["exam_purge"].index("exam")
    assert order["grade"][-1] == "grade"
    assert order["student"] == ("answers", "submissions", "user")


def test_delete_grade_without_submissions(portal):
    s = portal.school()
    teacher_id = portal.client.get("/api/admin/teachers", headers=portal.admin).json()[0]["id"]
    portal.client.post("/api/admin/assign-teacher-grade",
                       json={"teacher_id": teacher_id, "grade_id": s["grade"]["id"]}, headers=portal.admin)

    r = portal.client.delete(f"/api/admin/grades/{s['grade']['id']}", headers=portal.admin)
    assert r.status_code == 200, r.text
    removed = r.json()["removed"]
    assert removed["options"] == 8
    assert removed["questions"] == 2
    assert removed["exams"] == 1
    assert removed["courses"] == 1
    assert removed["grade_teachers"] == 1
    assert removed["grade_students"] == 1
    assert removed["grade"] == 1

    assert count_rows(Grade) == 0
    assert count_rows(Course) == 0
    assert count_rows(Exam) == 0
    assert count_rows(Option) == 0
    assert count_rows(teacher_grades) == 0
    # students stay, detached from the grade
    students = portal.client.get("/api/admin/students", headers=portal.admin).json()
    assert students[0]["grade_id"] is None


def test_delete_grade_with_submissions_is_refused(portal):
    s = portal.school()
    portal.submit(s["student"], s["exam"]["id"], [(s["questions"][0], 0)])
    before = _snapshot()

    r = portal.client.delete(f"/api/admin/grades/{s['grade']['id']}", headers=portal.admin)
    assert r.status_code == 409
    assert "submissions (1)" in r.json()["error"]
    assert _snapshot() == before


def test_delete_course(portal):
    s = portal.school()
    other = portal.create_course(s["grade"]["id"], "Physics")

    r = portal.client.delete(f"/api/admin/courses/{s['course']['id']}", headers=portal.admin)
    assert r.status_code == 200
    assert r.json()["removed"] == {"options": 8, "questions": 2, "exams": 1, "course": 1}
    assert count_rows(Course) == 1
    assert count_rows(Course, Course.id == other["id"]) == 1
    assert count_rows(Grade) == 1


def test_delete_course_with_submissions_is_refused(portal):
    s = portal.school()
    portal.submit(s["student"], s["exam"]["id"], [(s["questions"][0], 0)])

    r = portal.client.delete(f"/api/admin/courses/{s['course']['id']}", headers=portal.admin)
    assert r.status_code == 409
    assert count_rows(Exam) == 1
    assert count_rows(Question) == 2


def test_delete_unknown_grade_is_404(portal):
    r = portal.client.delete("/api/admin/grades/00000000-0000-0000-0000-000000000000", headers=portal.admin)
    assert r.status_code == 404


def test_teacher_exam_delete_needs_the_exam_password(portal):
    s = portal.school()
    url = f"/api/teacher/exam/{s['exam']['id']}"

    r = portal.client.request("DELETE", url, json={"password": "wrong"}, headers=s["teacher"])
    assert r.status_code == 403
    assert r.json() == {"error": "Incorrect password"}
    assert count_rows(Exam) == 1

    r = portal.client.request("DELETE", url, json={"password": "pin-1234"}, headers=s["teacher"])
    assert r.status_code == 200
    assert r.json()["removed"] == {"options": 8, "questions": 2, "exam": 1}
    assert count_rows(Exam) == 0
    assert count_rows(Option) == 0


def test_teacher_exam_delete_is_refused_with_submissions(portal):
    s = portal.school()
    portal.submit(s["student"], s["exam"]["id"], [(s["questions"][0], 0)])

    r = portal.client.request("DELETE", f"/api/teacher/exam/{s['exam']['id']}",
                              json={"password": "pin-1234"}, headers=s["teacher"])
    assert r.status_code == 409
    assert count_rows(Exam) == 1
    assert count_rows(Submission) == 1


def test_admin_purge_removes_submissions_too(portal):
    s = portal.school()
    portal.submit(s["student"], s["exam"]["id"], [(s["questions"][0], 0), (s["questions"][1], 2)])

    r = portal.client.delete(f"/api/admin/exam/{s['exam']['id']}", headers=portal.admin)
    assert r.status_code == 200
    assert r.json()["removed"] == {"answers": 2, "submissions": 1, "options": 8, "questions": 2, "exam": 1}
    for model in (Exam, Question, Option, Submission, Answer):
        assert count_rows(model) == 0
    assert count_rows(Course) == 1


def test_delete_question(portal):
    s = portal.school()
    q = s["questions"][0]

    r = portal.client.delete(f"/api/teacher/question/{q['id']}", headers=s["teacher"])
    assert r.status_code == 200
    assert r.json()["removed"] == {"options": 4, "question": 1}
    assert count_rows(Question) == 1
    assert count_rows(Option) == 4

    r = portal.client.delete(f"/api/teacher/question/{q['id']}", headers=s["teacher"])
    assert r.status_code == 404


def test_failed_step_rolls_back_the_whole_plan(portal, monkeypatch):
    s = portal.school()
    before = _snapshot()

    def boom(scope):
        raise RuntimeError("disk on fire")

    monkeypatch.setitem(cascade_service.STEP_BUILDERS, "exams", boom)

    async def attempt():
        async with async_session_maker() as session:
            await cascade_service.delete_grade(session, s["grade"]["id"])

    with pytest.raises(RuntimeError):
        run(attempt())

    # options and questions ran before the failure and must be back
    assert _snapshot() == before
