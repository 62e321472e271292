import pytest

from inbox_auth.dependencies import get_issuer
from inbox_auth.main import app


def test_root_and_health(client):
    assert client.get("/").json() == {"status": "Backend running"}
    assert client.get("/health").json() == {"status": "ok"}


@pytest.mark.parametrize("prefix", ["", "/api"])
def test_send_and_verify_code_flow(client, sender, prefix):
    response = client.post(f"{prefix}/auth/send-code", json={"identifier": "A@B.com"})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "message": "Code sent"}
    assert "123456" not in response.text
    assert sender.sent[0]["to"] == "a@b.com"

    response = client.post(
        f"{prefix}/auth/verify-code", json={"identifier": "a@b.com", "code": "000000"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid code"}

    response = client.post(
        f"{prefix}/auth/verify-code", json={"identifier": "a@b.com", "code": "123456"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["role"] == "user"
    assert body["email"] == "a@b.com"

    response = client.post(f"{prefix}/auth/verify-token", json={"token": body["token"]})
    assert response.status_code == 200
    assert response.json() == {"valid": True, "email": "a@b.com", "role": "user"}


def test_send_code_rejects_invalid_email(client):
    response = client.post("/auth/send-code", json={"identifier": "nope"})
    assert response.status_code == 400
    assert response.json() == {"error": "Valid email required"}


def test_send_code_missing_body_fields(client):
    response = client.post("/auth/send-code", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Valid email required"}


def test_send_code_throttled(client, clock):
    client.post("/auth/send-code", json={"identifier": "a@b.com"})
    clock.advance(seconds=15)
    response = client.post("/auth/send-code", json={"identifier": "a@b.com"})
    assert response.status_code == 429
    assert response.json() == {"error": "Please wait 45s before requesting again"}
    assert response.headers["retry-after"] == "45"


def test_send_code_delivery_failure(client, sender):
    sender.fail = True
    response = client.post("/auth/send-code", json={"identifier": "a@b.com"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to send code"}

    response = client.post(
        "/auth/verify-code", json={"identifier": "a@b.com", "code": "123456"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "No code requested for this email"}


def test_verify_code_expired(client, clock):
    client.post("/auth/send-code", json={"identifier": "a@b.com"})
    clock.advance(minutes=11)
    response = client.post(
        "/auth/verify-code", json={"identifier": "a@b.com", "code": "123456"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Code expired. Request a new one."}


def test_verify_code_too_many_attempts(client):
    client.post("/auth/send-code", json={"identifier": "a@b.com"})
    for _ in range(6):
        response = client.post(
            "/auth/verify-code", json={"identifier": "a@b.com", "code": "000000"}
        )
        assert response.status_code == 400

    response = client.post(
        "/auth/verify-code", json={"identifier": "a@b.com", "code": "123456"}
    )
    assert response.status_code == 429
    assert response.json() == {"error": "Too many attempts. Request a new code."}


def test_admin_send_code_allow_list(client, make_issuer):
    restricted = make_issuer(admin_emails=["x@y.com"])
    app.dependency_overrides[get_issuer] = lambda: restricted

    response = client.post("/auth/admin/send-code", json={"identifier": "z@y.com"})
    assert response.status_code == 403
    assert response.json() == {"error": "Email is not allowed to request admin access"}

    response = client.post("/auth/admin/send-code", json={"identifier": "x@y.com"})
    assert response.status_code == 200

    response = client.post(
        "/auth/verify-code", json={"identifier": "x@y.com", "code": "123456"}
    )
    assert response.json()["role"] == "admin"


def test_verify_token_missing(client):
    response = client.post("/auth/verify-token", json={})
    assert response.status_code == 401
    assert response.json() == {"valid": False, "error": "No token provided"}


def test_verify_token_invalid(client):
    response = client.post("/auth/verify-token", json={"token": "garbage"})
    assert response.status_code == 401
    assert response.json() == {"valid": False, "error": "Invalid or expired token"}


def test_verify_token_expired(client, token_service, clock):
    token = token_service.mint("a@b.com", "user")
    clock.advance(hours=24)
    response = client.post("/auth/verify-token", json={"token": token})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token"


def test_me_requires_bearer_token(client, token_service):
    assert client.get("/auth/me").status_code == 401
    response = client.get("/auth/me", headers={"Authorization": "Token abc"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid Authorization header"}

    token = token_service.mint("a@b.com", "admin")
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json() == {"email": "a@b.com", "role": "admin"}


def test_debug_smtp(client, sender):
    response = client.get("/auth/debug-smtp")
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    sender.verify_error = "Connection refused"
    response = client.get("/auth/debug-smtp")
    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "Connection refused"}


@pytest.mark.parametrize("path", ["/auth/send-code", "/auth/admin/send-code"])
def test_send_code_null_identifier(client, path):
    response = client.post(path, json={"identifier": None})
    assert response.status_code == 400
    assert response.json() == {"error": "Valid email required"}


def test_send_code_accepts_long_role(client, issuer):
    role = "Regional-Operations-Manager-" + "x" * 40
    response = client.post("/auth/send-code", json={"identifier": "a@b.com", "role": role})
    assert response.status_code == 200
    assert issuer.pending_challenge("a@b.com").role == role.lower()


def test_verify_code_null_code(client):
    client.post("/auth/send-code", json={"identifier": "a@b.com"})
    response = client.post("/auth/verify-code", json={"identifier": "a@b.com", "code": None})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid code"}


def test_verify_code_null_identifier(client):
    response = client.post("/auth/verify-code", json={"identifier": None, "code": "123456"})
    assert response.status_code == 400
    assert response.json() == {"error": "No code requested for this email"}
