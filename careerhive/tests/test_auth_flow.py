import uuid

import pytest

from careerhive.token import create_access_token


def register_user(client, email="user@example.com", password="password123", full_name="Ada Lovelace"):
    return client.post(
        "/api/register", json={"email": email, "password": password, "fullName": full_name}
    )


def login_user(client, email="user@example.com", password="password123"):
    return client.post(
        "/api/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )


def test_register_then_login_and_me(client):
    r = register_user(client)
    assert r.status_code == 201, r.text
    user = r.json()
    assert user["email"] == "user@example.com"
    assert user["fullName"] == "Ada Lovelace"

    # Duplicate register should 409
    r2 = register_user(client)
    assert r2.status_code == 409
    assert r2.json()["success"] is False

    r3 = login_user(client)
    assert r3.status_code == 200, r3.text
    token = r3.json()["access_token"]

    r4 = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert r4.status_code == 200, r4.text
    assert r4.json()["id"] == user["id"]


def test_login_with_wrong_password(client):
    register_user(client)
    r = login_user(client, password="wrong-password")
    assert r.status_code == 401
    assert r.json()["statusCode"] == 401


def test_register_rejects_short_password(client):
    r = register_user(client, password="short")
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_missing_or_malformed_header_is_401(client):
    assert client.get("/api/jobs/all").status_code == 401
    r = client.get("/api/jobs/all", headers={"Authorization": "Token abc"})
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"
    r = client.get("/api/jobs/all", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "statusCode": 401, "message": "Invalid authentication token."}


def test_scheme_name_is_case_insensitive(client, make_user):
    headers, _ = make_user()
    token = headers["Authorization"].split(" ", 1)[1]
    r = client.get("/api/jobs/all", headers={"Authorization": f"bearer {token}"})
    assert r.status_code == 200, r.text


def test_token_without_usable_subject_is_401(client):
    headers = {"Authorization": f"Bearer {create_access_token('someone')}"}
    assert client.get("/api/jobs/all", headers=headers).status_code == 401


def test_logout_revokes_only_that_token(client, make_user):
    headers, _ = make_user()
    other = {"Authorization": f"Bearer {login_user(client).json()['access_token']}"}

    r = client.post("/api/logout", headers=headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Logged out successfully."

    r = client.get("/api/jobs/all", headers=headers)
    assert r.status_code == 401
    assert r.json()["message"] == "Authentication token has been revoked."
    assert client.get("/api/jobs/all", headers=other).status_code == 200

    # logging out twice is rejected by the gate itself
    assert client.post("/api/logout", headers=headers).status_code == 401


@pytest.fixture()
def revoked(client, make_user):
    headers, _ = make_user()
    job = client.post(
        "/api/jobs",
        json={"title": "Kept", "description": "Body", "externalLink": "https://example.com/a"},
        headers=headers,
    )
    job_id = job.headers["Location"].rsplit("/", 1)[-1]
    client.post("/api/logout", headers=headers)
    return headers, job_id


def test_revoked_token_rejected_everywhere(client, revoked):
    headers, job_id = revoked
    body = {"title": "T", "description": "D", "externalLink": "https://example.com/b"}
    calls = [
        ("GET", "/api/jobs/all?pageNumber=1&pageSize=10", None),
        ("GET", f"/api/jobs/{job_id}", None),
        ("GET", "/api/jobs/search?keyword=kept", None),
        ("POST", "/api/jobs", body),
        ("PUT", f"/api/jobs/{job_id}", body),
        ("DELETE", f"/api/jobs/{job_id}", None),
        ("GET", "/api/me", None),
        ("PUT", "/api/me/subscription", {"isActive": True}),
    ]
    for method, url, payload in calls:
        r = client.request(method, url, json=payload, headers=headers)
        assert r.status_code == 401, (method, url, r.text)
        assert r.json()["success"] is False


def test_subscription_toggle(client, make_user):
    headers, _ = make_user(email="sub@example.com", full_name="Sub Scriber")
    r = client.put("/api/me/subscription", json={"isActive": True}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"] == {"isActive": True, "email": "sub@example.com", "fullName": "Sub Scriber"}

    r = client.put("/api/me/subscription", json={"isActive": False}, headers=headers)
    assert r.json()["data"]["isActive"] is False


def test_me_for_deleted_account_is_401(client):
    headers = {"Authorization": f"Bearer {create_access_token(str(uuid.uuid4()))}"}
    assert client.get("/api/me", headers=headers).status_code == 401
