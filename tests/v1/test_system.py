# tests/v1/test_system.py
"""Tests for system endpoints."""

from __future__ import annotations

import json

from fastapi import status


class TestHealth:
    def test_reports_connected_transport(self, client) -> None:
        response = client.get("/api/v1/system/health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["mqtt"] == "connected"
        assert data["timestamp"]

    def test_reports_disconnected_transport(self, client, transport) -> None:
        transport.is_connected.return_value = False
        response = client.get("/api/v1/system/health")
        assert response.json()["mqtt"] == "disconnected"


def test_public_config_hides_secrets(client) -> None:
    response = client.get("/api/v1/system/config")
    assert response.status_code == status.HTTP_200_OK
    body = json.dumps(response.json())
    assert "test-secret-key" not in body
    assert response.json()["gate"]["topic"] == "home/door/cmd"


class TestWhitelistReload:
    def test_requires_token(self, client) -> None:
        response = client.post("/api/v1/system/whitelist/reload")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_reloads_file(self, client, auth_headers, whitelist_file) -> None:
        whitelist_file.write_text(
            json.dumps({"authorizedUsers": ["alice", "bob", "carol"]}),
            encoding="utf-8",
        )

        response = client.post("/api/v1/system/whitelist/reload", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"reloaded_by": "alice", "count": 3}
