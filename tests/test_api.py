from datetime import timedelta

import jwt
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.security import create_access_token, decode_token


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# ============================================================================
# AUTHENTICATION TESTS
# ============================================================================


def test_access_token_round_trip():
    payload = decode_token(create_access_token(data={"sub": 42}))
    assert payload["sub"] == "42"
    assert payload["type"] == "access"


def test_missing_token(client, contract):
    response = client.get(f"/api/v1/contracts/{contract.id}")
    assert response.status_code == 401


def test_garbage_token(client, contract):
    response = client.get(
        f"/api/v1/contracts/{contract.id}",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


def test_expired_token(client, contract, tenant):
    token = create_access_token(data={"sub": tenant.id}, expires_delta=timedelta(minutes=-1))
    response = client.get(
        f"/api/v1/contracts/{contract.id}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


def test_non_access_token_rejected(client, contract, tenant):
    token = jwt.encode(
        {"sub": str(tenant.id), "type": "password_reset"},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    response = client.get(
        f"/api/v1/contracts/{contract.id}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


def test_token_for_unknown_user(client, contract):
    token = create_access_token(data={"sub": 9999})
    response = client.get(
        f"/api/v1/contracts/{contract.id}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


# ============================================================================
# ERROR MAPPING TESTS
# ============================================================================


def test_database_errors_become_internal_error(client, contract, tenant, auth_headers, monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    monkeypatch.setattr("app.api.routers.contracts.get_contract", broken)

    response = client.get(f"/api/v1/contracts/{contract.id}", headers=auth_headers(tenant))
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "code": "INTERNAL_ERROR"}
    assert any(record.levelname == "ERROR" for record in caplog.records)
