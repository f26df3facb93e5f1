from datetime import datetime, timedelta, timezone

import jwt
import pytest


def test_signup_and_login(client, signup_payload):
    resp = client.post("/signup", json=signup_payload)
    assert resp.status_code == 201
    data = resp.json()
    user_id = data["user"]["id"]
    assert data["token"]
    assert data["user"]["matricNumber"] == "M1"
    assert data["user"]["role"] == "student"
    assert data["user"]["department"] == "Computer Science"
    assert "passwordHash" not in data["user"] and "password_hash" not in data["user"]

    for identifier in ("a@x.edu", "M1"):
        resp = client.post("/login", json={"identifier": identifier, "password": "p1"})
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == user_id

    resp = client.post("/login", json={"identifier": "a@x.edu", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}


def test_auth_routes_are_also_served_under_api_prefix(client, signup_payload):
    assert client.post("/api/auth/signup", json=signup_payload).status_code == 201
    resp = client.post("/api/auth/login", json={"matricNumber": "M1", "password": "p1"})
    assert resp.status_code == 200


@pytest.mark.parametrize(
    "change",
    [{"matricNumber": "M2"}, {"email": "other@x.edu"}, {"email": " A@X.EDU ", "matricNumber": "M3"}],
)
def test_duplicate_signup_is_rejected(client, signup_payload, change):
    assert client.post("/signup", json=signup_payload).status_code == 201
    resp = client.post("/signup", json={**signup_payload, **change})
    assert resp.status_code == 400
    assert resp.json()["error"] == "User already exists with this email or matric number"


def test_signup_missing_field(client, signup_payload):
    resp = client.post("/signup", json={**signup_payload, "studentType": ""})
    assert resp.status_code == 400
    assert resp.json()["error"] == "All fields are required"


def test_signup_rejects_malformed_body(client):
    resp = client.post("/signup", content="not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"


def test_login_failures_share_one_shape(client, student_token):
    wrong_password = client.post("/login", json={"email": "a@x.edu", "password": "nope"})
    unknown_user = client.post("/login", json={"email": "ghost@x.edu", "password": "p1"})
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()


def test_login_requires_identifier_and_password(client):
    assert client.post("/login", json={"password": "p1"}).status_code == 400
    assert client.post("/login", json={"identifier": "a@x.edu"}).status_code == 400


def test_login_identifier_precedence(client, student_token):
    # ``identifier`` wins even when ``email`` is also present.
    resp = client.post("/login", json={"identifier": "M1", "email": "ghost@x.edu", "password": "p1"})
    assert resp.status_code == 200


def test_verify_token(client, student_token):
    resp = client.post("/verify", json={"token": student_token})
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is True
    assert set(data["user"]) == {"id", "name", "email", "role"}
    assert data["user"]["email"] == "a@x.edu"


def test_verify_rejects_bad_tokens(client):
    resp = client.post("/verify", json={"token": "garbage"})
    assert resp.status_code == 401
    assert resp.json() == {"valid": False, "error": "Invalid token"}
    assert client.post("/verify", json={}).status_code == 401


@pytest.mark.parametrize("path", ["/verify", "/api/auth/verify"])
@pytest.mark.parametrize(
    "body",
    [
        {"json": {"token": 123}},
        {"json": {"token": ["a", "b"]}},
        {"json": ["not", "an", "object"]},
        {"content": "not json", "headers": {"Content-Type": "application/json"}},
    ],
)
def test_verify_rejects_unusable_bodies(client, path, body):
    resp = client.post(path, **body)
    assert resp.status_code == 401
    assert resp.json() == {"valid": False, "error": "Invalid token"}


def test_verify_rejects_expired_token(client, student_token):
    from board.auth import token_service

    user_id = client.post("/verify", json={"token": student_token}).json()["user"]["id"]
    past = datetime.now(timezone.utc) - timedelta(days=10)
    expired = jwt.encode(
        {"userId": user_id, "iat": past, "exp": past + timedelta(days=7)},
        token_service._secret,
        algorithm="HS256",
    )
    resp = client.post("/verify", json={"token": expired})
    assert resp.status_code == 401
    assert resp.json()["valid"] is False


def test_verify_rejects_token_for_unknown_user(client):
    from board.auth import token_service

    resp = client.post("/verify", json={"token": token_service.issue("deleted-user")})
    assert resp.status_code == 401


def test_me(client, student_token):
    resp = client.get("/me", headers={"Authorization": f"Bearer {student_token}"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "a@x.edu"
    assert client.get("/me").status_code == 401


def test_health(client):
    for path in ("/health", "/api/health"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


def test_metrics(client, signup_payload):
    client.post("/signup", json=signup_payload)
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "api_requests_total" in resp.text
    assert "signups_total" in resp.text


def test_signup_rejects_non_positive_level(client, signup_payload):
    resp = client.post("/signup", json={**signup_payload, "level": 0})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Level must be a positive number"
