from io import BytesIO
from types import SimpleNamespace
import uuid

from openpyxl import Workbook
import pytest

from exam_portal.config import settings
from exam_portal.errors import ValidationError
from exam_portal.services.import_service import (
    QUESTION_COLUMNS,
    STUDENT_COLUMNS,
    read_table,
    validate_question_rows,
    validate_student_rows,
    validate_teacher_rows,
)

STUDENT_HEADER = "name,email,studentId,rollNumber,universityRollNumber,grade,semester\n"
QUESTION_HEADER = "question,optionA,optionB,optionC,optionD,correctOption,marks\n"


def bytesio_from_workbook(wb: Workbook) -> bytes:
    f = BytesIO()
    wb.save(f)
    f.seek(0)
    return f.getvalue()


def _grades(*names):
    return {n.lower(): SimpleNamespace(id=uuid.uuid4(), name=n) for n in names}


def test_upload_wrong_file_format():
    with pytest.raises(ValidationError) as exc:
        read_table(b"hello", "data.txt", STUDENT_COLUMNS)
    assert "Invalid file extension" in exc.value.message


def test_oversize_file_is_rejected(monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    with pytest.raises(ValidationError) as exc:
        read_table(STUDENT_HEADER.encode(), "students.csv", STUDENT_COLUMNS)
    assert "too large" in exc.value.message


def test_missing_headers_are_listed():
    with pytest.raises(ValidationError) as exc:
        read_table(b"name,email\nA,a@x.com\n", "students.csv", STUDENT_COLUMNS)
    assert exc.value.extra["missing_headers"] == ["studentId", "grade", "semester"]
    assert "studentId" in exc.value.message


def test_header_only_file_is_empty():
    with pytest.raises(ValidationError) as exc:
        read_table(STUDENT_HEADER.encode(), "students.csv", STUDENT_COLUMNS)
    assert "empty" in exc.value.message


def test_blank_file_is_empty():
    with pytest.raises(ValidationError) as exc:
        read_table(b"", "students.csv", STUDENT_COLUMNS)
    assert "empty" in exc.value.message


def test_malformed_csv_is_a_parse_error():
    content = b'name,email\n"unterminated,a@x.com\nB,b@x.com,extra,fields,here\n'
    with pytest.raises(ValidationError) as exc:
        read_table(content, "students.csv", ["name", "email"])
    assert "parse" in exc.value.message.lower()


def test_cells_are_strings_and_trimmed():
    content = (STUDENT_HEADER + '"John Doe", john@exam.com ,STU001,101,UNI001, BTech ,1\n').encode()
    df = read_table(content, "students.csv", STUDENT_COLUMNS)
    record = df.to_dict(orient="records")[0]
    assert record["name"] == "John Doe"
    assert record["grade"] == "BTech"
    assert record["semester"] == "1"


def test_valid_excel_upload():
    wb = Workbook()
    ws = wb.active
    ws.append(QUESTION_COLUMNS)
    ws.append(["What is 2+2?", "1", "2", "3", "4", "D", 1])

    df = read_table(bytesio_from_workbook(wb), "questions.xlsx", QUESTION_COLUMNS)
    rows, errors = validate_question_rows(df)
    assert errors == []
    assert rows == [{"text": "What is 2+2?", "options": ["1", "2", "3", "4"], "correct": "D", "marks": 1}]


def test_student_rows_collect_every_problem_per_row():
    content = (
        STUDENT_HEADER
        + "John Doe,john@exam.com,STU001,101,UNI001,BTech,1\n"
        + ",not-an-email,,,,MTech,zero\n"
        + "Jane Roe,JOHN@exam.com,STU003,,,btech,0\n"
        + "Old Timer,taken@exam.com,STU004,,,BTech,2\n"
    ).encode()
    df = read_table(content, "students.csv", STUDENT_COLUMNS)
    rows, errors = validate_student_rows(df, _grades("BTech", "BSc"), {"taken@exam.com"})

    assert [r["email"] for r in rows] == ["john@exam.com"]
    by_row = {e["row"]: e["errors"] for e in errors}
    assert sorted(by_row) == [3, 4, 5]

    assert "Name is required" in by_row[3]
    assert any("Invalid email format" in m for m in by_row[3])
    assert "Student ID is required" in by_row[3]
    assert any("whole number" in m for m in by_row[3])
    assert any("Grade 'MTech' not found" in m and "BSc, BTech" in m for m in by_row[3])

    assert any("Duplicate email" in m and "row 2" in m for m in by_row[4])
    assert "Semester must be at least 1" in by_row[4]

    assert by_row[5] == ["Email 'taken@exam.com' already exists"]


def test_student_grade_lookup_is_case_insensitive():
    grades = _grades("BTech")
    content = (STUDENT_HEADER + "A,a@exam.com,S1,,,btech,3\n").encode()
    rows, errors = validate_student_rows(read_table(content, "s.csv", STUDENT_COLUMNS), grades, set())
    assert errors == []
    assert rows[0]["grade_id"] == grades["btech"].id
    assert rows[0]["semester"] == 3
    assert rows[0]["roll_number"] is None


def test_teacher_grades_are_semicolon_separated():
    grades = _grades("BTech", "BSc")
    content = b"name,email,grades\nT One,t1@exam.com,BTech; BSc\nT Two,t2@exam.com,\nT Three,t3@exam.com,BTech;PhD\n"
    df = read_table(content, "teachers.csv", ["name", "email"])
    rows, errors = validate_teacher_rows(df, grades, set())

    assert rows[0]["grade_ids"] == [grades["btech"].id, grades["bsc"].id]
    assert rows[1]["grade_ids"] == []
    assert errors == [{"row": 4, "errors": ["Grade 'PhD' not found. Available grades: BSc, BTech"]}]


def test_question_rows_validate_choice_marks_and_duplicates():
    content = (
        QUESTION_HEADER
        + "Capital of France?,Paris,Rome,Berlin,Madrid,a,2\n"
        + "capital of france?,Paris,Rome,Berlin,Madrid,A,2\n"
        + "Largest planet?,Jupiter,,Mars,Venus,E,-1\n"
    ).encode()
    rows, errors = validate_question_rows(read_table(content, "q.csv", QUESTION_COLUMNS))

    assert rows == [{"text": "Capital of France?", "options": ["Paris", "Rome", "Berlin", "Madrid"],
                     "correct": "A", "marks": 2}]
    by_row = {e["row"]: e["errors"] for e in errors}
    assert by_row[3] == ["Duplicate question (first seen on row 2)"]
    assert "Option B is required" in by_row[4]
    assert any("Correct option must be one of A, B, C, D" in m for m in by_row[4])
    assert "Marks must be at least 1" in by_row[4]
