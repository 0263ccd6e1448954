"""End-to-end tests for the HTTP surface under /api/auth, /api/v1/auth and /api/v2/auth."""

from __future__ import annotations

from datetime import timedelta

from fastapi.testclient import TestClient

from authflow.core.security import JWTService

from tests.conftest import NEW_PASSWORD, PASSWORD, TEST_SECRET, FakeClock, RecordingMailer

AUTH = "/api/auth"


def _register_and_verify(client: TestClient, mailer: RecordingMailer, email: str = "a@x.com") -> dict:
    r = client.post(f"{AUTH}/register", json={"email": email, "password": PASSWORD, "first_name": "Ali"})
    assert r.status_code == 201, r.text
    code = mailer.last_token("verification", email)
    r = client.post(f"{AUTH}/verify-email", json={"email": email, "token": code})
    assert r.status_code == 200, r.text
    return r.json()


def _login(client: TestClient, email: str = "a@x.com", password: str = PASSWORD) -> dict:
    r = client.post(f"{AUTH}/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_register_returns_user(client: TestClient):
    r = client.post(f"{AUTH}/register", json={"email": "a@x.com", "password": PASSWORD, "first_name": "Ali"})
    assert r.status_code == 201
    body = r.json()
    assert body["email"] == "a@x.com"
    assert body["first_name"] == "Ali"
    assert body["is_email_verified"] is False
    assert "password_hash" not in body


def test_register_duplicate_is_409(client: TestClient):
    payload = {"email": "a@x.com", "password": PASSWORD}
    assert client.post(f"{AUTH}/register", json=payload).status_code == 201
    r = client.post(f"{AUTH}/register", json=payload)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "EMAIL_EXISTS"


def test_register_weak_password_is_422(client: TestClient):
    r = client.post(f"{AUTH}/register", json={"email": "a@x.com", "password": "weakpass"})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "WEAK_PASSWORD"


def test_register_invalid_email_is_422(client: TestClient):
    r = client.post(f"{AUTH}/register", json={"email": "not-an-email", "password": PASSWORD})
    assert r.status_code == 422


def test_login_unverified_is_403(client: TestClient):
    client.post(f"{AUTH}/register", json={"email": "a@x.com", "password": PASSWORD})
    r = client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["detail"] == {"code": "EMAIL_NOT_VERIFIED", "message": "Email must be verified"}


def test_login_bad_credentials_is_401(client: TestClient, mailer: RecordingMailer):
    _register_and_verify(client, mailer)
    r = client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": "Wr0ngPass!"})
    assert r.status_code == 401
    assert r.json()["detail"]["message"] == "Wrong Email or Password"


def test_verify_wrong_code_is_400(client: TestClient, mailer: RecordingMailer):
    client.post(f"{AUTH}/register", json={"email": "a@x.com", "password": PASSWORD})
    code = mailer.last_token("verification", "a@x.com")
    wrong = "1000" if code != "1000" else "1001"
    r = client.post(f"{AUTH}/verify-email", json={"email": "a@x.com", "token": wrong})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "TOKEN_NOT_FOUND"


def test_verify_expired_code_is_400(client: TestClient, mailer: RecordingMailer, clock: FakeClock):
    client.post(f"{AUTH}/register", json={"email": "a@x.com", "password": PASSWORD})
    code = mailer.last_token("verification", "a@x.com")
    clock.advance(minutes=20)
    r = client.post(f"{AUTH}/verify-email", json={"email": "a@x.com", "token": code})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "TOKEN_EXPIRED"


def test_resend_verification(client: TestClient, mailer: RecordingMailer):
    client.post(f"{AUTH}/register", json={"email": "a@x.com", "password": PASSWORD})
    r = client.post(f"{AUTH}/resend-verification-email", json={"email": "a@x.com"})
    assert r.status_code == 200
    assert mailer.count("verification", "a@x.com") == 2

    r = client.post(f"{AUTH}/resend-verification-email", json={"email": "nobody@x.com"})
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "USER_NOT_FOUND"


def test_login_response_shape(client: TestClient, mailer: RecordingMailer):
    _register_and_verify(client, mailer)
    body = _login(client)
    assert body["message"] == "User logged in successfully"
    assert body["token_type"] == "bearer"
    assert body["access_token"] and body["refresh_token"]


def test_scenario_register_to_logout(client: TestClient, mailer: RecordingMailer):
    _register_and_verify(client, mailer)
    tokens = _login(client)

    r = client.post(f"{AUTH}/refresh-token", json={"token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["access_token"]

    r = client.post(f"{AUTH}/logout", json={"token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["message"] == "User Logged Out Successfully"

    r = client.post(f"{AUTH}/refresh-token", json={"token": tokens["refresh_token"]})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "TOKEN_NOT_FOUND"


def test_scenario_forgot_and_reset(client: TestClient, mailer: RecordingMailer):
    _register_and_verify(client, mailer)
    old_session = _login(client)["refresh_token"]

    r = client.post(f"{AUTH}/forgot-password", json={"email": "a@x.com"})
    assert r.status_code == 200
    unknown = client.post(f"{AUTH}/forgot-password", json={"email": "nobody@x.com"})
    assert unknown.status_code == 200
    assert unknown.json() == r.json()

    token = mailer.last_token("reset", "a@x.com")
    r = client.post(f"{AUTH}/reset-password", json={"token": token, "password": NEW_PASSWORD})
    assert r.status_code == 200

    r = client.post(f"{AUTH}/login", json={"email": "a@x.com", "password": PASSWORD})
    assert r.status_code == 401
    _login(client, password=NEW_PASSWORD)

    r = client.post(f"{AUTH}/refresh-token", json={"token": old_session})
    assert r.status_code == 400


def test_reset_with_weak_password_is_422(client: TestClient, mailer: RecordingMailer):
    _register_and_verify(client, mailer)
    client.post(f"{AUTH}/forgot-password", json={"email": "a@x.com"})
    token = mailer.last_token("reset", "a@x.com")
    r = client.post(f"{AUTH}/reset-password", json={"token": token, "password": "short"})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "WEAK_PASSWORD"


class TestProfile:
    def test_v1_profile(self, client: TestClient, mailer: RecordingMailer):
        _register_and_verify(client, mailer)
        access = _login(client)["access_token"]
        r = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {access}"})
        assert r.status_code == 200
        body = r.json()
        assert body["email"] == "a@x.com"
        assert body["is_email_verified"] is True

    def test_v2_profile(self, client: TestClient, mailer: RecordingMailer):
        _register_and_verify(client, mailer)
        access = _login(client)["access_token"]
        r = client.get("/api/v2/auth/profile", headers={"Authorization": f"Bearer {access}"})
        assert r.status_code == 200
        assert set(r.json()) == {"id", "email", "full_name"}
        assert r.json()["full_name"] == "Ali"

    def test_profile_without_token_is_401(self, client: TestClient):
        r = client.get("/api/v1/auth/profile")
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"

    def test_refresh_token_is_not_an_access_token(self, client: TestClient, mailer: RecordingMailer):
        _register_and_verify(client, mailer)
        refresh = _login(client)["refresh_token"]
        r = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {refresh}"})
        assert r.status_code == 401

    def test_garbage_token_is_401(self, client: TestClient):
        r = client.get("/api/v1/auth/profile", headers={"Authorization": "Bearer garbage"})
        assert r.status_code == 401
        assert r.json()["detail"]["message"] == "Invalid token"

    def test_expired_access_token_is_401(self, client: TestClient):
        expired = JWTService(TEST_SECRET).create_access_token("u", "a@x.com", timedelta(seconds=-5))
        r = client.get("/api/v2/auth/profile", headers={"Authorization": f"Bearer {expired}"})
        assert r.status_code == 401
        assert r.json()["detail"]["message"] == "Token expired"

    def test_access_token_issued_before_password_reset_is_401(
        self, client: TestClient, mailer: RecordingMailer, clock: FakeClock
    ):
        # keep token timestamps behind wall time so "iat" is never in the future
        clock.advance(seconds=-30)
        _register_and_verify(client, mailer)
        old_access = _login(client)["access_token"]

        clock.advance(seconds=5)
        client.post(f"{AUTH}/forgot-password", json={"email": "a@x.com"})
        token = mailer.last_token("reset", "a@x.com")
        assert client.post(f"{AUTH}/reset-password", json={"token": token, "password": NEW_PASSWORD}).status_code == 200

        r = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {old_access}"})
        assert r.status_code == 401
        assert r.json()["detail"]["message"] == "Token revoked"

        new_access = _login(client, password=NEW_PASSWORD)["access_token"]
        r = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {new_access}"})
        assert r.status_code == 200
