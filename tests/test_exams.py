def test_create_exam(exam, school):
    assert exam["status"] == "SCHEDULED"
    assert exam["scheduled_date"] is not None
    assert exam["subject_ids"] == [school["subject"]["id"]]
    assert exam["question_paper_id"] is None


def test_exam_subject_must_be_taught_in_class(client, admin_headers, school):
    other = client.post(
        "/admin/subjects/", json={"code": "HIS", "name": "History"}, headers=admin_headers
    ).json()["subject"]
    response = client.post(
        "/admin/exams/",
        json={"title": "History Quiz", "exam_type": "QUIZ", "class_id": school["class"]["id"],
              "subject_ids": [other["id"]], "duration": 30},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Subject History is not available for this class"


def test_exam_duration_bounds(client, admin_headers, school):
    response = client.post(
        "/admin/exams/",
        json={"title": "Too Short", "exam_type": "QUIZ", "class_id": school["class"]["id"],
              "subject_ids": [school["subject"]["id"]], "duration": 5},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_start_and_end_exam(client, admin_headers, exam):
    started = client.post(f"/admin/exams/{exam['id']}/start", headers=admin_headers)
    assert started.status_code == 200
    assert started.json()["exam"]["status"] == "ONGOING"
    assert started.json()["exam"]["end_date"] is not None

    again = client.post(f"/admin/exams/{exam['id']}/start", headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Exam is not in scheduled status"

    ended = client.post(f"/admin/exams/{exam['id']}/end", headers=admin_headers)
    assert ended.json()["exam"]["status"] == "COMPLETED"

    locked = client.put(f"/admin/exams/{exam['id']}", json={"title": "Renamed"}, headers=admin_headers)
    assert locked.status_code == 400
    assert locked.json()["error"]["message"] == "Cannot update a completed exam"


def test_end_requires_ongoing(client, admin_headers, exam):
    response = client.post(f"/admin/exams/{exam['id']}/end", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Exam is not currently ongoing"


def test_list_filter_and_statistics(client, admin_headers, exam, school):
    client.post(
        "/admin/exams/",
        json={"title": "Science Final", "exam_type": "FINAL", "class_id": school["class"]["id"],
              "subject_ids": [school["subject"]["id"]], "duration": 180},
        headers=admin_headers,
    )
    client.put(f"/admin/exams/{exam['id']}", json={"status": "CANCELLED"}, headers=admin_headers)
    scheduled = client.get("/admin/exams/", params={"status": "SCHEDULED"}, headers=admin_headers).json()
    assert [e["title"] for e in scheduled["exams"]] == ["Science Final"]

    stats = client.get("/admin/exams/statistics", headers=admin_headers).json()["statistics"]
    assert stats["total"] == 2
    assert stats["by_status"] == {"SCHEDULED": 1, "CANCELLED": 1}
    assert stats["by_type"] == {"UNIT_TEST": 1, "FINAL": 1}


def test_delete_exam_hides_it(client, admin_headers, exam):
    assert client.delete(f"/admin/exams/{exam['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/admin/exams/{exam['id']}", headers=admin_headers).status_code == 404


def test_results_summary_without_sheets(client, admin_headers, exam):
    body = client.get(f"/admin/exams/{exam['id']}/results", headers=admin_headers).json()
    assert body["results"] == []
    assert body["summary"] == {
        "total_sheets": 0,
        "graded": 0,
        "average_percentage": None,
        "highest_percentage": None,
        "lowest_percentage": None,
    }


def test_teacher_cannot_create_exam(client, teacher, school):
    response = client.post(
        "/admin/exams/",
        json={"title": "Teacher Quiz", "exam_type": "QUIZ", "class_id": school["class"]["id"],
              "subject_ids": [school["subject"]["id"]], "duration": 30},
        headers=teacher["headers"],
    )
    assert response.status_code == 403


def test_new_exam_can_be_started_without_status(client, admin_headers, school):
    created = client.post(
        "/admin/exams/",
        json={"title": "Science Quiz", "exam_type": "QUIZ", "class_id": school["class"]["id"],
              "subject_ids": [school["subject"]["id"]], "duration": 30},
        headers=admin_headers,
    ).json()["exam"]
    assert created["status"] == "SCHEDULED"

    started = client.post(f"/admin/exams/{created['id']}/start", headers=admin_headers)
    assert started.status_code == 200
    assert started.json()["exam"]["status"] == "ONGOING"


def test_create_ignores_client_status(client, admin_headers, school):
    created = client.post(
        "/admin/exams/",
        json={"title": "Backdated Final", "exam_type": "FINAL", "class_id": school["class"]["id"],
              "subject_ids": [school["subject"]["id"]], "duration": 60, "status": "COMPLETED"},
        headers=admin_headers,
    ).json()["exam"]
    assert created["status"] == "SCHEDULED"
    assert created["end_date"] is None


def test_update_cannot_skip_start_and_end(client, admin_headers, exam):
    response = client.put(f"/admin/exams/{exam['id']}", json={"status": "COMPLETED"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Use the start and end endpoints to change exam progress"

    drafted = client.put(f"/admin/exams/{exam['id']}", json={"status": "DRAFT"}, headers=admin_headers)
    assert drafted.json()["exam"]["status"] == "DRAFT"


def test_exam_statistics_for_one_exam(client, admin_headers, exam, student):
    client.post(
        "/admin/answer-sheets/absent",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"], "reason": "Fever"},
        headers=admin_headers,
    )
    client.post(
        "/admin/absenteeism/",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"], "type": "ABSENT"},
        headers=admin_headers,
    )

    stats = client.get(f"/admin/exams/{exam['id']}/statistics", headers=admin_headers).json()["statistics"]
    assert stats["exam_id"] == exam["id"]
    assert stats["total_sheets"] == 1
    assert stats["by_status"] == {"ABSENT": 1}
    assert (stats["absent"], stats["missing"], stats["graded"]) == (1, 0, 0)
    assert stats["average_percentage"] is None
    assert stats["pass_percentage"] == 0.0
    assert stats["absenteeism_by_status"] == {"PENDING": 1}


def test_exam_statistics_unknown_exam(client, admin_headers):
    assert client.get("/admin/exams/999/statistics", headers=admin_headers).status_code == 404
