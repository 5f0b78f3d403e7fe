from conftest import ADMIN_EMAIL


def test_create_and_list_admins(client, super_headers):
    response = client.post(
        "/super/admins/",
        json={"email": "head@riverside.org", "password": "Password123", "name": "Riverside School"},
        headers=super_headers,
    )
    assert response.status_code == 201
    admin = response.json()["admin"]
    assert admin["role"] == "ADMIN"
    assert admin["is_active"] is True

    body = client.get("/super/admins/", headers=super_headers).json()
    assert body["pagination"]["total"] == 1
    assert body["admins"][0]["email"] == "head@riverside.org"


def test_duplicate_admin_email_conflicts(client, super_headers, admin_headers):
    response = client.post(
        "/super/admins/",
        json={"email": ADMIN_EMAIL, "password": "Password123", "name": "Duplicate"},
        headers=super_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Email already registered"


def test_admin_cannot_manage_admins(client, admin_headers):
    response = client.get("/super/admins/", headers=admin_headers)
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Insufficient role"


def test_update_deactivate_and_activate_admin(client, super_headers, admin_headers):
    admin_id = client.get("/auth/me", headers=admin_headers).json()["user"]["id"]

    updated = client.put(f"/super/admins/{admin_id}", json={"name": "Green Valley High"}, headers=super_headers)
    assert updated.json()["admin"]["name"] == "Green Valley High"

    assert client.delete(f"/super/admins/{admin_id}", headers=super_headers).status_code == 200
    inactive = client.get("/super/admins/", params={"is_active": False}, headers=super_headers).json()
    assert [a["id"] for a in inactive["admins"]] == [admin_id]

    activated = client.patch(f"/super/admins/{admin_id}/activate", headers=super_headers)
    assert activated.json()["admin"]["is_active"] is True


def test_search_admins(client, super_headers, admin_headers):
    body = client.get("/super/admins/", params={"search": "green"}, headers=super_headers).json()
    assert body["pagination"]["total"] == 1
    assert client.get("/super/admins/", params={"search": "nomatch"}, headers=super_headers).json()["admins"] == []


def test_unknown_admin_is_404(client, super_headers):
    response = client.get("/super/admins/9999", headers=super_headers)
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Admin not found"
