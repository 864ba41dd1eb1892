"""
Tests for the login endpoints, the failed-login throttle and /auth/me.
"""

import pytest

from formapro.common.auth import principal_from_token
from formapro.config import settings
from formapro.tests.helpers import employe_auth

pytestmark = pytest.mark.asyncio


async def admin_login(client, password):
    return await client.post(
        "/api/admin/login",
        json={"username": settings.ADMIN_USERNAME, "password": password},
    )


async def test_admin_login(client, db):
    response = await admin_login(client, settings.ADMIN_PASSWORD)

    body = response.json()
    assert response.status_code == 200
    assert body["username"] == settings.ADMIN_USERNAME
    assert principal_from_token(body["token"]).is_admin


async def test_admin_login_with_wrong_password(client, db):
    response = await admin_login(client, "wrong")

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


async def test_sixth_attempt_is_throttled_even_with_correct_password(client, db):
    for _ in range(settings.LOGIN_MAX_ATTEMPTS):
        assert (await admin_login(client, "wrong")).status_code == 401

    response = await admin_login(client, settings.ADMIN_PASSWORD)

    assert response.status_code == 429
    assert "Retry-After" in response.headers


async def test_successful_login_clears_failures(client, db):
    for _ in range(settings.LOGIN_MAX_ATTEMPTS - 1):
        await admin_login(client, "wrong")
    assert (await admin_login(client, settings.ADMIN_PASSWORD)).status_code == 200

    for _ in range(settings.LOGIN_MAX_ATTEMPTS - 1):
        await admin_login(client, "wrong")

    assert (await admin_login(client, settings.ADMIN_PASSWORD)).status_code == 200


async def test_forwarded_header_does_not_reset_the_throttle(client, db):
    for attempt in range(settings.LOGIN_MAX_ATTEMPTS):
        response = await client.post(
            "/api/admin/login",
            json={"username": settings.ADMIN_USERNAME, "password": "wrong"},
            headers={"X-Forwarded-For": f"203.0.113.{attempt}"},
        )
        assert response.status_code == 401

    response = await client.post(
        "/api/admin/login",
        json={"username": settings.ADMIN_USERNAME, "password": settings.ADMIN_PASSWORD},
        headers={"X-Forwarded-For": "198.51.100.1"},
    )

    assert response.status_code == 429


async def test_entreprise_login(client, seed):
    response = await client.post(
        "/api/entreprise/login",
        json={"email": "contact@acme.test", "password": "secret123"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["entreprise"]["raison_sociale"] == "Acme"
    assert "password_hash" not in body["entreprise"]
    principal = principal_from_token(body["token"])
    assert principal.is_entreprise
    assert principal.entreprise_id == seed["entreprise"].id


async def test_employe_login(client, seed):
    response = await client.post(
        "/api/employe/login",
        json={"email": "alice@acme.test", "password": "secret123"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["employe"]["prenom"] == "Alice"
    assert "password_salt" not in body["employe"]
    assert principal_from_token(body["token"]).id == seed["alice"].id


@pytest.mark.parametrize("email,password", [
    ("alice@acme.test", "wrong"),
    ("nobody@acme.test", "secret123"),
    ("bob@acme.test", ""),
])
async def test_employe_login_failures(client, seed, email, password):
    response = await client.post("/api/employe/login", json={"email": email, "password": password})
    assert response.status_code in (400, 401)


async def test_account_without_password_cannot_log_in(client, seed):
    response = await client.post(
        "/api/employe/login",
        json={"email": "bob@acme.test", "password": "anything"},
    )
    assert response.status_code == 401


async def test_malformed_email_is_a_validation_error(client, db):
    response = await client.post("/api/employe/login", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 400


async def test_current_account(client, seed):
    response = await client.get("/api/auth/me", headers=employe_auth(seed["alice"]))

    principal = response.json()["principal"]
    assert principal["kind"] == "employe"
    assert principal["id"] == seed["alice"].id


async def test_current_account_with_bad_token(client, db):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_health(client, db):
    response = await client.get("/api/health")
    assert response.json() == {"status": "ok"}
