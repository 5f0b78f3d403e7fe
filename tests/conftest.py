import os
import shutil
import tempfile

# Configure before any application module is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AI_PROVIDER"] = "MOCK"
os.environ["UPLOAD_ROOT"] = tempfile.mkdtemp(prefix="school-api-test-")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SEED_SUPER_ADMIN_EMAIL"] = "root@softworks.io"
os.environ["SEED_SUPER_ADMIN_PASSWORD"] = "RootPass123!"

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from reportlab.pdfgen import canvas

import school_api
from database.database import Base, engine

SUPER_EMAIL = "root@softworks.io"
SUPER_PASSWORD = "RootPass123!"
ADMIN_EMAIL = "admin@greenvalley.edu"
ADMIN_PASSWORD = "Password123"
TEACHER_EMAIL = "priya.teacher@greenvalley.edu"
TEACHER_PASSWORD = "Teacher123"


def login(client, email, password):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


def make_pdf(lines=("Sample paper",)) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer)
    y = 800
    for line in lines:
        pdf.drawString(50, y, line)
        y -= 20
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


@pytest.fixture
def client():
    Base.metadata.drop_all(bind=engine)
    for entry in os.scandir(os.environ["UPLOAD_ROOT"]):
        shutil.rmtree(entry.path, ignore_errors=True) if entry.is_dir() else os.remove(entry.path)
    with TestClient(school_api.app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def super_headers(client):
    return login(client, SUPER_EMAIL, SUPER_PASSWORD)


@pytest.fixture
def admin_headers(client, super_headers):
    response = client.post(
        "/super/admins/",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "name": "Green Valley School"},
        headers=super_headers,
    )
    assert response.status_code == 201, response.text
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def school(client, admin_headers):
    """Class 10A with Science taught in it."""
    cls = client.post(
        "/admin/classes/",
        json={"name": "10a", "display_name": "Class 10 A", "level": 10, "section": "a"},
        headers=admin_headers,
    ).json()["class"]
    subject = client.post(
        "/admin/subjects/",
        json={"code": "sci", "name": "Science", "category": "SCIENCE", "levels": [10], "class_ids": [cls["id"]]},
        headers=admin_headers,
    ).json()["subject"]
    return {"class": cls, "subject": subject}


@pytest.fixture
def exam(client, admin_headers, school):
    response = client.post(
        "/admin/exams/",
        json={
            "title": "Science Unit Test 1",
            "exam_type": "UNIT_TEST",
            "class_id": school["class"]["id"],
            "subject_ids": [school["subject"]["id"]],
            "duration": 90,
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["exam"]


@pytest.fixture
def student(client, admin_headers, school):
    response = client.post(
        "/admin/students/",
        json={
            "email": "arjun.student@greenvalley.edu",
            "password": "Student123",
            "name": "Arjun Kumar",
            "roll_number": "10a-01",
            "class_id": school["class"]["id"],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["student"]


@pytest.fixture
def teacher(client, admin_headers, school):
    response = client.post(
        "/admin/teachers/",
        json={
            "email": TEACHER_EMAIL,
            "password": TEACHER_PASSWORD,
            "name": "Priya Sharma",
            "subject_ids": [school["subject"]["id"]],
            "class_ids": [school["class"]["id"]],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return {**response.json()["teacher"], "headers": login(client, TEACHER_EMAIL, TEACHER_PASSWORD)}


def paper_payload(exam, school, **overrides):
    payload = {
        "title": "Science Unit Test 1 Paper",
        "exam_id": exam["id"],
        "subject_id": school["subject"]["id"],
        "class_id": school["class"]["id"],
        "mark_distribution": {"one_mark": 2, "two_mark": 1},
        "blooms_distribution": [{"level": "REMEMBER", "percentage": 100}],
        "question_type_distribution": {
            "one_mark": [{"type": "CHOOSE_BEST_ANSWER", "percentage": 100}],
            "two_mark": [{"type": "FILL_BLANKS", "percentage": 100}],
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def generated_paper(client, admin_headers, exam, school):
    response = client.post(
        "/admin/question-papers/generate-complete-ai",
        json=paper_payload(exam, school),
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["question_paper"]
