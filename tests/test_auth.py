import pytest
from sqlalchemy.exc import OperationalError

import app.main as app_main
from app.core.rate_limit import LoginLockedError, LoginRateLimiter


def _signup(client, *, email: str = "jane@example.com", username: str | None = "jane_doe"):
    return client.post(
        "/auth/signup",
        json={
            "email": email,
            "firstName": "Jane",
            "lastName": "Doe",
            "password": "password123",
            "username": username,
        },
    )


def _login(client, identifier: str, password: str = "password123"):
    return client.post("/auth/login", json={"identifier": identifier, "password": password})


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_signup_login_and_profile(test_context):
    client, _ = test_context

    res = _signup(client, email="Jane@Example.com")
    assert res.status_code == 201, res.text
    user = res.json()["user"]
    assert user["email"] == "jane@example.com"
    assert user["role"] == "User"
    assert user["companyId"] is None

    res = _login(client, "JANE_DOE")
    assert res.status_code == 200, res.text
    tokens = res.json()
    assert tokens["token_type"] == "bearer"

    res = client.get("/auth/me", headers=_auth_headers(tokens["access_token"]))
    assert res.status_code == 200
    assert res.json()["user"]["id"] == user["id"]
    assert res.headers["X-Request-ID"]


def test_signup_conflicts_and_generated_username(test_context):
    client, _ = test_context
    assert _signup(client).status_code == 201

    res = _signup(client)
    assert res.status_code == 409
    assert res.json()["errors"]["code"] == "conflict"

    res = _signup(client, email="other@example.com")
    assert res.status_code == 409

    res = _signup(client, email="jane.doe+gifts@example.com", username=None)
    assert res.status_code == 201, res.text
    assert res.json()["user"]["username"] == "jane_doe_gifts"


def test_signup_validation_error_envelope(test_context):
    client, _ = test_context
    res = client.post(
        "/auth/signup",
        json={"email": "not-an-email", "firstName": "J", "lastName": "D", "password": "short"},
    )
    assert res.status_code == 422
    errors = res.json()["errors"]
    assert errors["message"] == "A validation error has occurred"
    assert {detail["field"] for detail in errors["details"]} == {"email", "password"}


def test_refresh_issues_new_pair(test_context):
    client, _ = test_context
    _signup(client)
    tokens = _login(client, "jane@example.com").json()

    res = client.post("/auth/refresh", json={"refreshToken": tokens["refresh_token"]})
    assert res.status_code == 200, res.text
    assert res.json()["access_token"]

    res = client.post("/auth/refresh", json={"refreshToken": tokens["access_token"]})
    assert res.status_code == 401


def test_swagger_token_form(test_context):
    client, _ = test_context
    _signup(client)
    res = client.post("/auth/token", data={"username": "jane@example.com", "password": "password123"})
    assert res.status_code == 200, res.text
    assert res.json()["refresh_token"]


def test_failed_logins_are_rate_limited(test_context):
    client, _ = test_context
    _signup(client)

    for _ in range(5):
        res = _login(client, "jane@example.com", password="wrong-password")
        assert res.status_code == 401
        assert res.json()["errors"]["code"] == "unauthorized"

    res = _login(client, "jane@example.com")
    assert res.status_code == 429
    assert int(res.headers["Retry-After"]) > 0


def test_protected_route_requires_credentials(test_context):
    client, _ = test_context
    res = client.get("/auth/me")
    assert res.status_code == 401
    assert res.json()["errors"]["message"] == "Not authenticated"

    res = client.get("/auth/me", headers=_auth_headers("garbage"))
    assert res.status_code == 401


def test_health_routes(test_context):
    client, _ = test_context
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/").json()["docs"] == "/docs"


class _UnreachableEngine:
    def connect(self):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def test_ready_reports_unreachable_database(test_context, monkeypatch):
    client, _ = test_context
    monkeypatch.setattr(app_main, "engine", _UnreachableEngine())
    res = client.get("/ready")
    assert res.status_code == 503
    assert res.json() == {"ok": False, "database": "unavailable"}


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_login_limiter_locks_after_failures_in_window():
    clock = _Clock()
    limiter = LoginRateLimiter(max_attempts=3, window_seconds=60, lock_seconds=120, clock=clock)
    key = limiter.key_for("  Jane@Example.com ", "10.0.0.1")
    assert key == ("jane@example.com", "10.0.0.1")

    limiter.record_failure(key)
    clock.now += 61
    limiter.record_failure(key)
    limiter.record_failure(key)
    limiter.ensure_allowed(key)

    limiter.record_failure(key)
    with pytest.raises(LoginLockedError) as exc_info:
        limiter.ensure_allowed(key)
    assert exc_info.value.retry_after == 120

    limiter.ensure_allowed(limiter.key_for("jane@example.com", "10.0.0.2"))

    clock.now += 120.5
    limiter.ensure_allowed(key)


def test_login_limiter_success_forgets_failures():
    clock = _Clock()
    limiter = LoginRateLimiter(max_attempts=2, window_seconds=60, lock_seconds=30, clock=clock)
    key = limiter.key_for("jane", "10.0.0.1")

    limiter.record_failure(key)
    limiter.record_success(key)
    limiter.record_failure(key)
    limiter.ensure_allowed(key)


def test_unknown_routes_use_error_envelope(test_context):
    client, _ = test_context

    res = client.get("/api/does-not-exist", headers={"X-Request-ID": "req-42"})
    assert res.status_code == 404
    errors = res.json()["errors"]
    assert errors["code"] == "not_found"
    assert errors["requestId"] == "req-42"
    assert res.headers["X-Request-ID"] == "req-42"

    res = client.delete("/health")
    assert res.status_code == 405
    assert res.json()["errors"]["code"] == "method_not_allowed"
