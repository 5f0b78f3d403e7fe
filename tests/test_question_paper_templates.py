import pytest

from conftest import make_pdf

BASE = "/admin/question-paper-templates"


@pytest.fixture
def template(client, admin_headers, school):
    response = client.post(
        f"{BASE}/",
        data={
            "title": "Science Unit Test Pattern",
            "subject_id": str(school["subject"]["id"]),
            "exam_type": "UNIT_TEST",
            "custom_instructions": "Use metric units.",
        },
        files={"file": ("unit-test.pdf", make_pdf([
            "SECTION A",
            "1. Define force. [2 marks]",
            "2. State Newton's first law. [3 marks]",
        ]), "application/pdf")},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["template"]


def test_upload_template(template, school):
    assert template["subject_id"] == school["subject"]["id"]
    assert template["exam_type"] == "UNIT_TEST"
    assert template["original_file_name"] == "unit-test.pdf"
    assert template["analysis"] is None
    assert template["ai_settings"] == {
        "follow_pattern": True, "maintain_structure": True, "custom_instructions": "Use metric units.",
    }


def test_upload_requires_pdf(client, admin_headers, school):
    response = client.post(
        f"{BASE}/",
        data={"title": "Pattern", "subject_id": str(school["subject"]["id"])},
        files={"file": ("pattern.docx", b"PK", "application/octet-stream")},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_list_get_and_update(client, admin_headers, teacher, template, school):
    listed = client.get(f"{BASE}/", params={"exam_type": "UNIT_TEST"}, headers=teacher["headers"]).json()
    assert [t["id"] for t in listed["templates"]] == [template["id"]]
    assert client.get(f"{BASE}/", params={"exam_type": "FINAL"}, headers=admin_headers).json()["templates"] == []

    response = client.put(
        f"{BASE}/{template['id']}",
        json={"title": "Unit Test Pattern v2", "ai_settings": {"follow_pattern": True, "maintain_structure": False}},
        headers=admin_headers,
    )
    updated = response.json()["template"]
    assert updated["title"] == "Unit Test Pattern v2"
    assert updated["ai_settings"]["maintain_structure"] is False
    assert client.get(f"{BASE}/{template['id']}", headers=admin_headers).json()["template"]["title"] == updated["title"]


def test_available_for_exam(client, admin_headers, template, exam):
    body = client.get(f"{BASE}/available", params={"exam_id": exam["id"]}, headers=admin_headers).json()
    assert body["has_templates"] is True
    assert body["template_count"] == 1
    assert client.get(f"{BASE}/available", params={"exam_id": 999}, headers=admin_headers).status_code == 404


def test_download_template(client, teacher, template):
    response = client.get(f"{BASE}/{template['id']}/download", headers=teacher["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_analyze_template(client, admin_headers, template):
    response = client.post(f"{BASE}/{template['id']}/analyze", headers=admin_headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["analysis"]["mark_breakdown"] == {"2": 1, "3": 1}
    assert body["template"]["analyzed_at"] is not None


def test_generate_needs_analysis(client, admin_headers, template, exam):
    response = client.post(f"{BASE}/{template['id']}/generate", json={"exam_id": exam["id"]}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Template has not been analysed yet"


def test_generate_follows_template_pattern(client, admin_headers, template, exam):
    client.post(f"{BASE}/{template['id']}/analyze", headers=admin_headers)
    response = client.post(f"{BASE}/{template['id']}/generate", json={"exam_id": exam["id"]}, headers=admin_headers)
    assert response.status_code == 201, response.text
    paper = response.json()["question_paper"]
    assert paper["status"] == "GENERATED"
    assert paper["exam_id"] == exam["id"]
    assert paper["mark_distribution"]["two_mark"] == 1
    assert paper["mark_distribution"]["three_mark"] == 1
    assert paper["mark_distribution"]["total_marks"] == 5
    assert sorted(q["marks"] for q in paper["questions"]) == [2, 3]
    assert "Use metric units." in paper["ai_settings"]["custom_instructions"]

    again = client.post(f"{BASE}/{template['id']}/generate", json={"exam_id": exam["id"]}, headers=admin_headers)
    assert again.status_code == 409


def test_generate_for_unknown_exam(client, admin_headers, template):
    client.post(f"{BASE}/{template['id']}/analyze", headers=admin_headers)
    response = client.post(f"{BASE}/{template['id']}/generate", json={"exam_id": 999}, headers=admin_headers)
    assert response.status_code == 404


def test_delete_template(client, admin_headers, teacher, template):
    assert client.delete(f"{BASE}/{template['id']}", headers=teacher["headers"]).status_code == 403
    response = client.delete(f"{BASE}/{template['id']}", headers=admin_headers)
    assert response.json()["message"] == "Template deleted successfully"
    assert client.get(f"{BASE}/{template['id']}", headers=admin_headers).status_code == 404
