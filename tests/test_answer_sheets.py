import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from conftest import make_pdf
from services import file_storage

BASE = "/admin/answer-sheets"


def upload(client, headers, exam, student_user_id, name="sheet.pdf"):
    return client.post(
        f"{BASE}/upload",
        data={"exam_id": str(exam["id"]), "student_id": str(student_user_id)},
        files={"file": (name, make_pdf(["1. Option A", "2. Option B", "3. term3"]), "application/pdf")},
        headers=headers,
    )


@pytest.fixture
def sheet(client, admin_headers, exam, student):
    response = upload(client, admin_headers, exam, student["user"]["id"])
    assert response.status_code == 201, response.text
    return response.json()["answer_sheet"]


# Mock paper: Q1, Q2 choose-best-answer (1 mark, "Option A"), Q3 fill-in-the-blank (2 marks, "term3")
ANSWERS = {"1": "Option A", "2": "Option B", "3": "term3"}


def test_upload_answer_sheet(sheet, exam, student):
    assert sheet["status"] == "UPLOADED"
    assert sheet["exam_id"] == exam["id"]
    assert sheet["student_id"] == student["user"]["id"]
    assert sheet["file_url"].startswith("/public/answer-sheets/")


def test_duplicate_upload_conflicts(client, admin_headers, exam, student, sheet):
    response = upload(client, admin_headers, exam, student["user"]["id"])
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Answer sheet already exists for this student and exam"


def test_upload_rejects_student_from_another_class(client, admin_headers, exam):
    other_class = client.post(
        "/admin/classes/",
        json={"name": "9A", "display_name": "Class 9 A", "level": 9, "section": "A"},
        headers=admin_headers,
    ).json()["class"]
    outsider = client.post(
        "/admin/students/",
        json={"email": "kiran.student@greenvalley.edu", "password": "Student123", "name": "Kiran Rao",
              "roll_number": "9A-01", "class_id": other_class["id"]},
        headers=admin_headers,
    ).json()["student"]

    response = upload(client, admin_headers, exam, outsider["user"]["id"])
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Student is not in the exam's class"


def test_unassigned_teacher_cannot_upload(client, admin_headers, exam, student, teacher):
    client.put(f"/admin/teachers/{teacher['id']}/classes", json={"ids": []}, headers=admin_headers)
    response = upload(client, teacher["headers"], exam, student["user"]["id"])
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "You are not assigned to this class"


def test_upload_rejects_unsupported_scan_type(client, admin_headers, exam, student):
    response = upload(client, admin_headers, exam, student["user"]["id"], name="sheet.gif")
    assert response.status_code == 400


def test_ai_check_requires_question_paper(client, admin_headers, sheet):
    response = client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "No question paper found for this exam"


def test_ai_check_grades_answers(client, admin_headers, generated_paper, sheet):
    response = client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    results = body["results"]
    assert results["status"] == "SUCCESS"
    assert (results["obtained_marks"], results["total_marks"], results["percentage"]) == (3, 4, 75.0)
    assert [r["marks_obtained"] for r in results["question_wise_results"]] == [1, 0, 2]
    assert body["answer_sheet"]["status"] == "AI_CORRECTED"

    again = client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Answer sheet has already been checked"

    stored = client.get(f"{BASE}/{sheet['id']}/ai-results", headers=admin_headers).json()
    assert stored["results"]["percentage"] == 75.0
    assert stored["status"] == "AI_CORRECTED"


def test_ai_results_missing_before_check(client, admin_headers, sheet):
    response = client.get(f"{BASE}/{sheet['id']}/ai-results", headers=admin_headers)
    assert response.status_code == 404


def test_manual_override_recomputes_totals(client, admin_headers, generated_paper, sheet):
    client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)

    too_high = client.post(
        f"{BASE}/{sheet['id']}/manual-override",
        json={"question_number": 2, "corrected_marks": 5, "reason": "Generous"},
        headers=admin_headers,
    )
    assert too_high.status_code == 400
    assert too_high.json()["error"]["message"] == "Marks cannot exceed 1.0 for question 2"

    unknown = client.post(
        f"{BASE}/{sheet['id']}/manual-override",
        json={"question_number": 9, "corrected_marks": 1, "reason": "Typo"},
        headers=admin_headers,
    )
    assert unknown.status_code == 404

    response = client.post(
        f"{BASE}/{sheet['id']}/manual-override",
        json={"question_number": 2, "corrected_marks": 1, "reason": "Equivalent answer"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    updated = response.json()["answer_sheet"]
    assert updated["status"] == "MANUALLY_REVIEWED"
    assert updated["ai_correction_results"]["obtained_marks"] == 4
    assert updated["ai_correction_results"]["percentage"] == 100.0
    assert len(updated["manual_overrides"]) == 1
    override = updated["manual_overrides"][0]
    assert (override["original_marks"], override["corrected_marks"]) == (0, 1)


def test_complete_after_check(client, admin_headers, generated_paper, sheet):
    early = client.post(f"{BASE}/{sheet['id']}/complete", headers=admin_headers)
    assert early.status_code == 400
    assert early.json()["error"]["message"] == "Answer sheet must be checked before completion"

    client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)
    completed = client.post(f"{BASE}/{sheet['id']}/complete", headers=admin_headers).json()["answer_sheet"]
    assert completed["status"] == "COMPLETED"
    assert completed["completed_at"] is not None

    results = client.get(f"/admin/exams/{sheet['exam_id']}/results", headers=admin_headers).json()
    assert results["summary"]["graded"] == 1
    assert results["summary"]["average_percentage"] == 75.0
    assert results["results"][0]["student_name"] == "Arjun Kumar"


def test_teacher_is_notified_after_ai_check(client, teacher, generated_paper, exam, student):
    sheet = upload(client, teacher["headers"], exam, student["user"]["id"]).json()["answer_sheet"]
    client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=teacher["headers"])

    inbox = client.get("/teacher/notifications/", headers=teacher["headers"]).json()
    assert [n["type"] for n in inbox["notifications"]] == ["AI_CORRECTION_COMPLETE"]
    assert inbox["notifications"][0]["related_entity_id"] == sheet["id"]


def test_mark_missing_notifies_admin_and_acknowledge(client, admin_headers, sheet):
    response = client.post(f"{BASE}/{sheet['id']}/missing", json={"reason": "Lost in transit"}, headers=admin_headers)
    assert response.status_code == 200
    missing = response.json()["answer_sheet"]
    assert (missing["status"], missing["is_missing"]) == ("MISSING", True)

    inbox = client.get("/teacher/notifications/", headers=admin_headers).json()
    assert inbox["notifications"][0]["type"] == "MISSING_ANSWER_SHEET"
    assert inbox["notifications"][0]["priority"] == "HIGH"

    blocked = client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": {}}, headers=admin_headers)
    assert blocked.status_code == 400
    assert blocked.json()["error"]["message"] == "Cannot check a missing or absent answer sheet"

    acknowledged = client.post(f"{BASE}/{sheet['id']}/acknowledge", headers=admin_headers).json()
    assert acknowledged["notifications_acknowledged"] == 1
    assert acknowledged["answer_sheet"]["acknowledged_at"] is not None


def test_mark_absent_creates_sheet(client, admin_headers, exam, student):
    response = client.post(
        f"{BASE}/absent",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"], "reason": "Fever"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    absent = response.json()["answer_sheet"]
    assert (absent["status"], absent["is_absent"], absent["absent_reason"]) == ("ABSENT", True, "Fever")

    listed = client.get(f"{BASE}/exam/{exam['id']}", params={"status": "ABSENT"}, headers=admin_headers).json()
    assert [s["id"] for s in listed["answer_sheets"]] == [absent["id"]]

    inbox = client.get("/teacher/notifications/", headers=admin_headers).json()
    assert inbox["notifications"][0]["type"] == "ABSENT_STUDENT"


def test_mark_absent_updates_existing_sheet(client, admin_headers, exam, student, sheet):
    response = client.post(
        f"{BASE}/absent",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"]},
        headers=admin_headers,
    )
    assert response.json()["answer_sheet"]["id"] == sheet["id"]
    assert response.json()["answer_sheet"]["status"] == "ABSENT"


def stored_sheet_files(exam):
    return sorted((file_storage.UPLOAD_ROOT / file_storage.ANSWER_SHEETS_DIR).glob(f"answer-sheet-{exam['id']}-*"))


def test_failed_commit_removes_uploaded_file(client, admin_headers, exam, student, monkeypatch):
    def failing_commit(self):
        raise IntegrityError("INSERT INTO answer_sheets", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(Session, "commit", failing_commit)
    response = upload(client, admin_headers, exam, student["user"]["id"])
    assert response.status_code == 409
    assert stored_sheet_files(exam) == []


def test_duplicate_upload_leaves_single_file(client, admin_headers, exam, student, sheet):
    upload(client, admin_headers, exam, student["user"]["id"])
    assert len(stored_sheet_files(exam)) == 1


def test_unassigned_teacher_cannot_grade(client, admin_headers, teacher, generated_paper, sheet):
    client.put(f"/admin/teachers/{teacher['id']}/classes", json={"ids": []}, headers=admin_headers)

    check = client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=teacher["headers"])
    assert check.status_code == 403
    assert check.json()["error"]["message"] == "You are not assigned to this class"

    client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)
    override = client.post(
        f"{BASE}/{sheet['id']}/manual-override",
        json={"question_number": 2, "corrected_marks": 1, "reason": "Equivalent answer"},
        headers=teacher["headers"],
    )
    assert override.status_code == 403
    assert client.post(f"{BASE}/{sheet['id']}/complete", headers=teacher["headers"]).status_code == 403
    assert client.post(
        f"{BASE}/{sheet['id']}/ai-recheck", json={"answers": ANSWERS}, headers=teacher["headers"]
    ).status_code == 403


def test_ai_recheck_regrades_and_drops_overrides(client, admin_headers, generated_paper, sheet):
    early = client.post(f"{BASE}/{sheet['id']}/ai-recheck", json={"answers": ANSWERS}, headers=admin_headers)
    assert early.status_code == 400
    assert early.json()["error"]["message"] == "Answer sheet has not been AI-checked yet"

    client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)
    client.post(
        f"{BASE}/{sheet['id']}/manual-override",
        json={"question_number": 2, "corrected_marks": 1, "reason": "Equivalent answer"},
        headers=admin_headers,
    )

    response = client.post(
        f"{BASE}/{sheet['id']}/ai-recheck",
        json={"answers": {"1": "Option A", "2": "Option A", "3": "term3"}},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["results"]["percentage"] == 100.0
    assert body["answer_sheet"]["status"] == "AI_CORRECTED"
    assert body["answer_sheet"]["manual_overrides"] == []


def test_ai_recheck_refused_once_completed(client, admin_headers, generated_paper, sheet):
    client.post(f"{BASE}/{sheet['id']}/ai-check", json={"answers": ANSWERS}, headers=admin_headers)
    client.post(f"{BASE}/{sheet['id']}/complete", headers=admin_headers)
    response = client.post(f"{BASE}/{sheet['id']}/ai-recheck", json={"answers": ANSWERS}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Answer sheet is already completed"


def test_batch_ai_check_reports_per_sheet(client, admin_headers, generated_paper, exam, student, sheet):
    second_student = client.post(
        "/admin/students/",
        json={"email": "meera.student@greenvalley.edu", "password": "Student123", "name": "Meera Nair",
              "roll_number": "10a-02", "class_id": exam["class_id"]},
        headers=admin_headers,
    ).json()["student"]
    absent = client.post(
        f"{BASE}/absent",
        json={"exam_id": exam["id"], "student_id": second_student["user"]["id"]},
        headers=admin_headers,
    ).json()["answer_sheet"]

    response = client.post(
        f"{BASE}/batch-ai-check",
        json={"sheets": [
            {"answer_sheet_id": sheet["id"], "answers": ANSWERS},
            {"answer_sheet_id": absent["id"], "answers": {}},
        ]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 1
    assert body["results"][0]["answer_sheet_id"] == sheet["id"]
    assert body["results"][0]["percentage"] == 75.0
    assert body["errors"] == [
        {"answer_sheet_id": absent["id"], "error": "Cannot check a missing or absent answer sheet"}
    ]
    assert client.get(f"{BASE}/{sheet['id']}", headers=admin_headers).json()["answer_sheet"]["status"] == "AI_CORRECTED"


def test_batch_ai_check_unknown_sheet(client, admin_headers, sheet):
    response = client.post(
        f"{BASE}/batch-ai-check",
        json={"sheets": [{"answer_sheet_id": sheet["id"]}, {"answer_sheet_id": 999}]},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Answer sheet 999 not found"
