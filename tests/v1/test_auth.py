# tests/v1/test_auth.py
"""Tests for authentication endpoints."""

from __future__ import annotations

from fastapi import status

from nubes_gate.core.keys import PrivateKey


def test_login_success(client, alice_key, token_issuer) -> None:
    """A whitelisted account with its posting key receives a token."""
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "alice", "posting_key": alice_key.to_wif()},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()

    assert data["success"] is True
    assert data["username"] == "alice"
    assert token_issuer.validate(data["token"]) == "alice"


def test_login_unlisted_account(client, registry) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "mallory", "posting_key": PrivateKey.generate().to_wif()},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "User not authorized"
    registry.get_authority.assert_not_awaited()


def test_login_wrong_key(client) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "alice", "posting_key": PrivateKey.generate().to_wif()},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Invalid posting key"


def test_login_missing_fields(client) -> None:
    response = client.post("/api/v1/auth/login", json={"username": "alice"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Username and posting key are required"


def test_login_blank_posting_key(client, registry) -> None:
    response = client.post("/api/v1/auth/login", json={"username": "alice", "posting_key": "   "})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Username and posting key are required"
    registry.get_authority.assert_not_awaited()


def test_verify_refreshes_token(client, auth_headers, token_issuer) -> None:
    response = client.post("/api/v1/auth/verify", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["username"] == "alice"
    assert token_issuer.validate(data["token"]) == "alice"


def test_verify_without_token(client) -> None:
    response = client.post("/api/v1/auth/verify")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "No token provided"


def test_verify_invalid_token(client) -> None:
    response = client.post(
        "/api/v1/auth/verify",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Invalid or expired token"
