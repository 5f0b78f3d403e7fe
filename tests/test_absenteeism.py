import pytest

BASE = "/admin/absenteeism"


@pytest.fixture
def report(client, teacher, exam, student):
    response = client.post(
        f"{BASE}/",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"], "type": "ABSENT", "reason": "Sick leave"},
        headers=teacher["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()["absenteeism"]


def test_report_is_pending_and_notifies_admin(client, admin_headers, report, teacher):
    assert report["status"] == "PENDING"
    assert report["priority"] == "MEDIUM"
    assert report["reported_by"] == teacher["user"]["id"]

    inbox = client.get("/teacher/notifications/", headers=admin_headers).json()
    assert inbox["notifications"][0]["type"] == "ABSENT_STUDENT"
    assert inbox["notifications"][0]["related_entity_id"] == report["id"]


def test_duplicate_report_conflicts(client, teacher, exam, student, report):
    response = client.post(
        f"{BASE}/",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"], "type": "LATE_SUBMISSION"},
        headers=teacher["headers"],
    )
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Absenteeism already reported for this student and exam"


def test_report_unknown_student(client, admin_headers, exam):
    response = client.post(
        f"{BASE}/", json={"exam_id": exam["id"], "student_id": 999, "type": "ABSENT"}, headers=admin_headers
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Student not found"


def test_acknowledge_then_resolve(client, admin_headers, report):
    acknowledged = client.post(
        f"{BASE}/{report['id']}/acknowledge", json={"remarks": "Parent called"}, headers=admin_headers
    ).json()["absenteeism"]
    assert acknowledged["status"] == "ACKNOWLEDGED"
    assert acknowledged["remarks"] == "Parent called"

    twice = client.post(f"{BASE}/{report['id']}/acknowledge", json={}, headers=admin_headers)
    assert twice.status_code == 400
    assert twice.json()["error"]["message"] == "Absenteeism report is not in pending status"

    resolved = client.post(
        f"{BASE}/{report['id']}/resolve", json={"resolution": "Re-exam scheduled"}, headers=admin_headers
    ).json()["absenteeism"]
    assert resolved["status"] == "RESOLVED"
    assert resolved["resolution"] == "Re-exam scheduled"

    locked = client.put(f"{BASE}/{report['id']}", json={"reason": "Changed"}, headers=admin_headers)
    assert locked.status_code == 400

    escalate = client.post(f"{BASE}/{report['id']}/escalate", json={"escalation_reason": "Late"}, headers=admin_headers)
    assert escalate.status_code == 400
    assert escalate.json()["error"]["message"] == "Cannot escalate resolved absenteeism report"


def test_escalate_defaults_to_admin(client, admin_headers, report):
    response = client.post(
        f"{BASE}/{report['id']}/escalate",
        json={"escalation_reason": "Third absence this term"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    escalated = response.json()["absenteeism"]
    assert escalated["status"] == "ESCALATED"
    assert escalated["priority"] == "URGENT"
    admin_id = client.get("/auth/me", headers=admin_headers).json()["user"]["id"]
    assert escalated["escalated_to"] == admin_id

    alerts = client.get("/teacher/notifications/", params={"type": "SYSTEM_ALERT"}, headers=admin_headers).json()
    assert alerts["notifications"][0]["priority"] == "URGENT"


def test_escalate_to_outsider_is_refused(client, admin_headers, super_headers, report):
    outsider = client.post(
        "/super/admins/",
        json={"email": "head@riverside.org", "password": "Password123", "name": "Riverside School"},
        headers=super_headers,
    ).json()["admin"]
    response = client.post(
        f"{BASE}/{report['id']}/escalate",
        json={"escalation_reason": "Wrong school", "escalated_to": outsider["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Escalation recipient not found"


def test_list_filters_and_statistics(client, admin_headers, report):
    pending = client.get(f"{BASE}/", params={"status": "PENDING"}, headers=admin_headers).json()
    assert [r["id"] for r in pending["absenteeism"]] == [report["id"]]
    assert client.get(f"{BASE}/", params={"type": "MISSING_SHEET"}, headers=admin_headers).json()["absenteeism"] == []

    stats = client.get(f"{BASE}/statistics", headers=admin_headers).json()["statistics"]
    assert stats == {
        "total": 1,
        "by_status": {"PENDING": 1},
        "by_type": {"ABSENT": 1},
        "by_priority": {"MEDIUM": 1},
    }


def test_teacher_cannot_resolve(client, teacher, report):
    response = client.post(f"{BASE}/{report['id']}/resolve", json={"resolution": "Done"}, headers=teacher["headers"])
    assert response.status_code == 403


def test_delete_report(client, admin_headers, report):
    assert client.delete(f"{BASE}/{report['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"{BASE}/{report['id']}", headers=admin_headers).status_code == 404
