import pytest

from conftest import make_pdf

BASE = "/admin/sample-papers"


@pytest.fixture
def sample(client, admin_headers, school):
    response = client.post(
        f"{BASE}/upload",
        data={"title": "Science Model Paper", "subject_id": str(school["subject"]["id"])},
        files={"file": ("model-paper.pdf", make_pdf([
            "SECTION A",
            "1. Define force. [2 marks]",
            "2. State Newton's first law. [3 marks]",
        ]), "application/pdf")},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["sample_paper"]


def test_upload_sample_paper(sample, school):
    assert sample["subject_id"] == school["subject"]["id"]
    assert sample["original_file_name"] == "model-paper.pdf"
    assert sample["file_size"] > 0
    assert sample["analysis"] is None
    assert sample["version"] == "1.0"


def test_upload_requires_known_subject(client, admin_headers):
    response = client.post(
        f"{BASE}/upload",
        data={"title": "Orphan", "subject_id": "999"},
        files={"file": ("paper.pdf", make_pdf(), "application/pdf")},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Subject not found or not accessible"


def test_list_filter_and_get(client, admin_headers, teacher, sample, school):
    listed = client.get(f"{BASE}/", params={"subject_id": school["subject"]["id"]}, headers=teacher["headers"]).json()
    assert [s["id"] for s in listed["sample_papers"]] == [sample["id"]]
    assert client.get(f"{BASE}/", params={"subject_id": 999}, headers=admin_headers).json()["sample_papers"] == []

    fetched = client.get(f"{BASE}/{sample['id']}", headers=admin_headers).json()["sample_paper"]
    assert fetched["title"] == "Science Model Paper"


def test_update_sample_paper(client, admin_headers, sample):
    response = client.put(
        f"{BASE}/{sample['id']}",
        json={"title": "Science Model Paper 2025", "template_settings": {"header": "Green Valley"}},
        headers=admin_headers,
    )
    updated = response.json()["sample_paper"]
    assert updated["title"] == "Science Model Paper 2025"
    assert updated["template_settings"] == {"header": "Green Valley"}


def test_download_sample_paper(client, teacher, sample):
    response = client.get(f"{BASE}/{sample['id']}/download", headers=teacher["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_analyze_sample_paper(client, admin_headers, sample):
    response = client.post(f"{BASE}/{sample['id']}/analyze", headers=admin_headers)
    assert response.status_code == 200
    analysis = response.json()["sample_paper"]["analysis"]
    assert analysis["page_count"] == 1
    assert analysis["summary"]
    assert "analyzed_at" in analysis


def test_teacher_cannot_upload_or_delete(client, teacher, sample, school):
    response = client.post(
        f"{BASE}/upload",
        data={"title": "Teacher Paper", "subject_id": str(school["subject"]["id"])},
        files={"file": ("paper.pdf", make_pdf(), "application/pdf")},
        headers=teacher["headers"],
    )
    assert response.status_code == 403
    assert client.delete(f"{BASE}/{sample['id']}", headers=teacher["headers"]).status_code == 403


def test_delete_sample_paper(client, admin_headers, sample):
    assert client.delete(f"{BASE}/{sample['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"{BASE}/{sample['id']}", headers=admin_headers).status_code == 404
    assert client.get(f"{BASE}/", headers=admin_headers).json()["sample_papers"] == []
