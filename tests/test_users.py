from jose import jwt

import config
from conftest import register


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Marketplace API is running"


def test_database_check(client):
    response = client.get("/test")
    assert response.status_code == 200
    assert response.json()["db"] == "ok"


def test_register_returns_token_and_profile(client):
    response = client.post(
        "/api/users/register",
        json={"email": "Ana@Example.com", "password": "secret123", "first_name": "Ana"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["user"]["email"] == "ana@example.com"
    assert data["user"]["is_seller"] is False
    assert data["user"]["is_active"] is True
    assert data["user"]["locale"] == "en"
    assert "password_hash" not in data["user"]


def test_register_duplicate_email_conflicts(client):
    register(client, email="dup@example.com")
    response = client.post("/api/users/register", json={"email": "dup@example.com", "password": "secret123"})
    assert response.status_code == 409


def test_register_validates_body(client):
    response = client.post("/api/users/register", json={"email": "not-an-email", "password": "123"})
    assert response.status_code == 400
    assert isinstance(response.json()["detail"], list)


def test_login(client):
    register(client, email="log@example.com", password="hunter22")
    response = client.post("/api/users/login", json={"email": "log@example.com", "password": "hunter22"})
    assert response.status_code == 200
    assert response.json()["message"] == "Login successful"
    assert response.json()["token"]


def test_login_wrong_password(client):
    register(client, email="log2@example.com", password="hunter22")
    response = client.post("/api/users/login", json={"email": "log2@example.com", "password": "nope"})
    assert response.status_code == 401


def test_profile_requires_auth(client):
    assert client.get("/api/users/profile").status_code == 401


def test_profile_rejects_garbage_token(client):
    response = client.get("/api/users/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_profile_rejects_expired_token(client):
    _, user = register(client)
    token = jwt.encode(
        {"sub": str(user["id"]), "exp": 1}, config.SECRET_KEY, algorithm=config.ALGORITHM
    )
    response = client.get("/api/users/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


def test_get_profile(client):
    headers, user = register(client, first_name="Pat")
    response = client.get("/api/users/profile", headers=headers)
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user["id"]
    assert response.json()["user"]["first_name"] == "Pat"


def test_update_profile_partial(client):
    headers, _ = register(client, first_name="Old")
    response = client.put("/api/users/profile", json={"address": "1 Main St", "phone": "555"}, headers=headers)
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["address"] == "1 Main St"
    assert user["phone"] == "555"
    assert user["first_name"] == "Old"


def test_update_profile_empty_body(client):
    headers, _ = register(client)
    assert client.put("/api/users/profile", json={}, headers=headers).status_code == 400


def test_update_profile_rejects_unknown_fields(client):
    headers, _ = register(client)
    response = client.put("/api/users/profile", json={"email": "x@example.com"}, headers=headers)
    assert response.status_code == 400


def test_become_seller(client):
    headers, _ = register(client)
    response = client.put("/api/users/profile", json={"is_seller": True}, headers=headers)
    assert response.json()["user"]["is_seller"] is True


def test_soft_delete_invalidates_account(client):
    headers, user = register(client, email="gone@example.com")
    assert client.delete("/api/users/profile", headers=headers).status_code == 200
    assert client.get("/api/users/profile", headers=headers).status_code == 401
    assert client.get(f"/api/users/{user['id']}").status_code == 404
    login = client.post("/api/users/login", json={"email": "gone@example.com", "password": "secret123"})
    assert login.status_code == 401


def test_deleted_email_can_register_again(client):
    headers, _ = register(client, email="again@example.com")
    client.delete("/api/users/profile", headers=headers)
    response = client.post("/api/users/register", json={"email": "again@example.com", "password": "secret123"})
    assert response.status_code == 201


def test_public_user(client):
    _, user = register(client, first_name="Pub", is_seller=True)
    response = client.get(f"/api/users/{user['id']}")
    assert response.status_code == 200
    public = response.json()["user"]
    assert public["first_name"] == "Pub"
    assert "email" not in public


def test_public_user_invalid_id(client):
    assert client.get("/api/users/abc").status_code == 400
    assert client.get("/api/users/9999").status_code == 404


def test_unknown_route(client):
    assert client.get("/api/nothing-here").status_code == 404
