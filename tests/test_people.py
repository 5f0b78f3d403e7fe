from conftest import TEACHER_EMAIL, login


# ─── Teachers ──────────────────────────────────────────────────────────────────

def test_create_teacher_with_assignments(client, admin_headers, school, teacher):
    assert teacher["user"]["role"] == "TEACHER"
    assert teacher["subject_ids"] == [school["subject"]["id"]]
    assert teacher["class_ids"] == [school["class"]["id"]]


def test_teacher_email_must_be_unique(client, admin_headers, teacher):
    response = client.post(
        "/admin/teachers/",
        json={"email": TEACHER_EMAIL, "password": "Teacher123", "name": "Someone Else"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Email already registered"


def test_teacher_rejects_unknown_subjects(client, admin_headers):
    response = client.post(
        "/admin/teachers/",
        json={"email": "new.teacher@greenvalley.edu", "password": "Teacher123", "name": "New Teacher",
              "subject_ids": [999]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Some subject IDs are invalid"


def test_list_and_filter_teachers(client, admin_headers, school, teacher):
    body = client.get("/admin/teachers/", params={"search": "priya"}, headers=admin_headers).json()
    assert [t["id"] for t in body["teachers"]] == [teacher["id"]]

    by_subject = client.get(
        "/admin/teachers/", params={"subject_id": school["subject"]["id"]}, headers=admin_headers
    ).json()
    assert by_subject["pagination"]["total"] == 1


def test_reassign_teacher_classes(client, admin_headers, teacher):
    response = client.put(f"/admin/teachers/{teacher['id']}/classes", json={"ids": []}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["teacher"]["class_ids"] == []


def test_update_teacher_profile(client, admin_headers, teacher):
    response = client.put(
        f"/admin/teachers/{teacher['id']}",
        json={"qualification": "M.Sc. Physics", "experience": 7},
        headers=admin_headers,
    )
    body = response.json()["teacher"]
    assert (body["qualification"], body["experience"]) == ("M.Sc. Physics", 7)


def test_deactivated_teacher_loses_access(client, admin_headers, teacher):
    assert client.delete(f"/admin/teachers/{teacher['id']}", headers=admin_headers).status_code == 200
    assert client.get("/admin/classes/", headers=teacher["headers"]).status_code == 401

    client.patch(f"/admin/teachers/{teacher['id']}/activate", headers=admin_headers)
    assert client.get("/admin/classes/", headers=teacher["headers"]).status_code == 200


def test_teacher_cannot_manage_teachers(client, teacher):
    assert client.get("/admin/teachers/", headers=teacher["headers"]).status_code == 403


# ─── Students ──────────────────────────────────────────────────────────────────

def test_create_student(client, school, student):
    assert student["roll_number"] == "10A-01"
    assert student["class_id"] == school["class"]["id"]
    assert student["user"]["role"] == "STUDENT"


def test_roll_number_unique_within_class(client, admin_headers, school, student):
    response = client.post(
        "/admin/students/",
        json={"email": "meera.student@greenvalley.edu", "password": "Student123", "name": "Meera Nair",
              "roll_number": "10A-01", "class_id": school["class"]["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Roll number 10A-01 already exists in this class"


def test_student_requires_active_class(client, admin_headers):
    response = client.post(
        "/admin/students/",
        json={"email": "lost.student@greenvalley.edu", "password": "Student123", "name": "Lost Student",
              "roll_number": "1", "class_id": 999},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Class not found or inactive"


def test_update_student_roll_number(client, admin_headers, student):
    response = client.put(
        f"/admin/students/{student['id']}",
        json={"roll_number": "10a-05", "father_name": "Ravi Kumar"},
        headers=admin_headers,
    )
    body = response.json()["student"]
    assert body["roll_number"] == "10A-05"
    assert body["father_name"] == "Ravi Kumar"


def test_students_by_class_and_search(client, admin_headers, school, student, teacher):
    by_class = client.get(f"/admin/students/class/{school['class']['id']}", headers=teacher["headers"]).json()
    assert [s["id"] for s in by_class["students"]] == [student["id"]]

    found = client.get("/admin/students/", params={"search": "arjun"}, headers=admin_headers).json()
    assert found["pagination"]["total"] == 1


def test_student_role_is_refused_on_admin_routes(client, student):
    headers = login(client, "arjun.student@greenvalley.edu", "Student123")
    response = client.get("/admin/classes/", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Insufficient role"


def test_deactivate_and_activate_student(client, admin_headers, student):
    assert client.delete(f"/admin/students/{student['id']}", headers=admin_headers).status_code == 200
    inactive = client.get("/admin/students/", params={"is_active": False}, headers=admin_headers).json()
    assert inactive["pagination"]["total"] == 1

    activated = client.patch(f"/admin/students/{student['id']}/activate", headers=admin_headers).json()
    assert activated["student"]["user"]["is_active"] is True
