from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, SUPER_EMAIL, SUPER_PASSWORD, login


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "school-admin-api"}


def test_seeded_super_admin_can_login(client):
    response = client.post("/auth/login", json={"email": SUPER_EMAIL, "password": SUPER_PASSWORD})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["role"] == "SUPER_ADMIN"


def test_login_rejects_wrong_password(client):
    response = client.post("/auth/login", json={"email": SUPER_EMAIL, "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": {"message": "Invalid credentials"}}


def test_login_validation_error_uses_envelope(client):
    response = client.post("/auth/login", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "email" in body["error"]["message"]


def test_me_requires_token(client):
    response = client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Not authenticated"


def test_me_rejects_garbage_token(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"


def test_me_returns_tenant_for_admin(client, admin_headers):
    response = client.get("/auth/me", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == ADMIN_EMAIL
    assert body["admin_id"] == body["user"]["id"]
    assert body["teacher"] is None


def test_teacher_me_includes_profile(client, teacher):
    body = client.get("/auth/me", headers=teacher["headers"]).json()
    assert body["user"]["role"] == "TEACHER"
    assert body["teacher"]["id"] == teacher["id"]
    assert body["admin_id"] == teacher["admin_id"]


def test_deactivated_admin_cannot_login(client, super_headers, admin_headers):
    admin_id = client.get("/auth/me", headers=admin_headers).json()["user"]["id"]
    client.delete(f"/super/admins/{admin_id}", headers=super_headers)

    response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Your account is deactivated"

    # existing tokens stop working too
    assert client.get("/auth/me", headers=admin_headers).status_code == 401


def test_login_is_case_insensitive_on_email(client, admin_headers):
    headers = login(client, ADMIN_EMAIL.upper(), ADMIN_PASSWORD)
    assert client.get("/auth/me", headers=headers).status_code == 200
