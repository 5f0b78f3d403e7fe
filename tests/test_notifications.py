import pytest

BASE = "/teacher/notifications"


@pytest.fixture
def inbox(client, admin_headers, teacher, exam, student):
    """Two ABSENT_STUDENT notifications in the admin's inbox."""
    client.post(
        "/admin/absenteeism/",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"], "type": "ABSENT"},
        headers=teacher["headers"],
    )
    client.post(
        "/admin/answer-sheets/absent",
        json={"exam_id": exam["id"], "student_id": student["user"]["id"], "reason": "Fever"},
        headers=admin_headers,
    )
    return client.get(f"{BASE}/", headers=admin_headers).json()


def test_list_with_unread_count(inbox):
    assert len(inbox["notifications"]) == 2
    assert inbox["unread_count"] == 2
    assert all(n["status"] == "UNREAD" for n in inbox["notifications"])
    assert inbox["pagination"]["total"] == 2


def test_inbox_is_private(client, teacher, inbox):
    assert client.get(f"{BASE}/", headers=teacher["headers"]).json()["notifications"] == []


def test_mark_read(client, admin_headers, inbox):
    first = inbox["notifications"][0]
    response = client.patch(f"{BASE}/{first['id']}/read", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["notification"]["status"] == "READ"
    assert response.json()["notification"]["read_at"] is not None
    assert client.get(f"{BASE}/", headers=admin_headers).json()["unread_count"] == 1


def test_mark_all_read(client, admin_headers, inbox):
    assert client.patch(f"{BASE}/read-all", headers=admin_headers).json()["updated"] == 2
    assert client.get(f"{BASE}/", headers=admin_headers).json()["unread_count"] == 0
    assert client.patch(f"{BASE}/read-all", headers=admin_headers).json()["updated"] == 0


def test_acknowledge(client, admin_headers, inbox):
    first = inbox["notifications"][0]
    acknowledged = client.patch(f"{BASE}/{first['id']}/acknowledge", headers=admin_headers).json()["notification"]
    assert acknowledged["status"] == "ACKNOWLEDGED"
    assert acknowledged["acknowledged_at"] is not None
    assert acknowledged["read_at"] is not None


def test_dismiss_hides_notification(client, admin_headers, inbox):
    first = inbox["notifications"][0]
    dismissed = client.patch(f"{BASE}/{first['id']}/dismiss", headers=admin_headers).json()["notification"]
    assert dismissed["status"] == "DISMISSED"

    remaining = client.get(f"{BASE}/", headers=admin_headers).json()["notifications"]
    assert first["id"] not in [n["id"] for n in remaining]
    hidden = client.get(f"{BASE}/", params={"status": "DISMISSED"}, headers=admin_headers).json()["notifications"]
    assert [n["id"] for n in hidden] == [first["id"]]

    response = client.patch(f"{BASE}/{first['id']}/acknowledge", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Notification has been dismissed"


def test_unknown_notification(client, admin_headers):
    response = client.patch(f"{BASE}/999/read", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Notification not found"


def test_requires_authentication(client):
    assert client.get(f"{BASE}/").status_code == 401
