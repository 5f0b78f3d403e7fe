from conftest import make_pdf


def other_class_exam(client, admin_headers, school):
    cls = client.post(
        "/admin/classes/",
        json={"name": "9A", "display_name": "Class 9 A", "level": 9, "section": "A"},
        headers=admin_headers,
    ).json()["class"]
    client.put(f"/admin/subjects/{school['subject']['id']}", json={"class_ids": [school["class"]["id"], cls["id"]]},
               headers=admin_headers)
    response = client.post(
        "/admin/exams/",
        json={"title": "Class 9 Quiz", "exam_type": "QUIZ", "class_id": cls["id"],
              "subject_ids": [school["subject"]["id"]], "duration": 30},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["exam"]


def test_teacher_sees_only_exams_of_own_classes(client, admin_headers, teacher, exam, school):
    other = other_class_exam(client, admin_headers, school)
    body = client.get("/teacher/exams", headers=teacher["headers"]).json()
    assert [e["id"] for e in body["exams"]] == [exam["id"]]
    assert other["id"] not in [e["id"] for e in body["exams"]]
    assert body["pagination"]["total"] == 1

    completed = client.get("/teacher/exams", params={"status": "COMPLETED"}, headers=teacher["headers"]).json()
    assert completed["exams"] == []


def test_admin_cannot_use_teacher_views(client, admin_headers):
    assert client.get("/teacher/exams", headers=admin_headers).status_code == 403
    assert client.get("/teacher/results", headers=admin_headers).status_code == 403


def test_teacher_results_summarise_sheets(client, admin_headers, teacher, exam, student, generated_paper):
    sheet = client.post(
        "/admin/answer-sheets/upload",
        data={"exam_id": str(exam["id"]), "student_id": str(student["user"]["id"])},
        files={"file": ("sheet.pdf", make_pdf(), "application/pdf")},
        headers=admin_headers,
    ).json()["answer_sheet"]
    client.post(
        f"/admin/answer-sheets/{sheet['id']}/ai-check",
        json={"answers": {"1": "Option A", "2": "Option B", "3": "term3"}},
        headers=teacher["headers"],
    )

    body = client.get("/teacher/results", params={"exam_id": exam["id"]}, headers=teacher["headers"]).json()
    [result] = body["results"]
    assert result["answer_sheet_id"] == sheet["id"]
    assert result["exam_title"] == exam["title"]
    assert result["student_name"] == "Arjun Kumar"
    assert result["status"] == "AI_CORRECTED"
    assert result["percentage"] == 75.0

    pending = client.get("/teacher/results", params={"status": "UPLOADED"}, headers=teacher["headers"]).json()
    assert pending["results"] == []


def test_teacher_results_for_foreign_exam(client, admin_headers, teacher, school):
    other = other_class_exam(client, admin_headers, school)
    response = client.get("/teacher/results", params={"exam_id": other["id"]}, headers=teacher["headers"])
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "You are not assigned to this class"

    missing = client.get("/teacher/results", params={"exam_id": 999}, headers=teacher["headers"])
    assert missing.status_code == 404
