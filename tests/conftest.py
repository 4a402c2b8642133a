# tests/conftest.py
from __future__ import annotations

import json
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from fastapi import FastAPI
from fastapi.testclient import TestClient

from nubes_gate.api.v1.dependencies import get_gate_controller_dep
from nubes_gate.core.keys import PrivateKey
from nubes_gate.main import app as fastapi_app
from nubes_gate.services.credentials import CredentialVerifier
from nubes_gate.services.dispatcher import CommandDispatcher
from nubes_gate.services.gate import GateController
from nubes_gate.services.hive import AuthorityRecord, BroadcastResult
from nubes_gate.services.ledger import EventLedger
from nubes_gate.services.tokens import SessionTokenIssuer
from nubes_gate.services.whitelist import Whitelist

TEST_SECRET = "test-secret-key"
SERVICE_ACCOUNT = "lasnubes"
CUSTOM_JSON_ID = "lasnubes_door_event"
DOOR_TOPIC = "home/door/cmd"


@pytest.fixture()
def whitelist_file(tmp_path: Path) -> Path:
    path = tmp_path / "authorized-users.json"
    path.write_text(json.dumps({"authorizedUsers": ["alice"]}), encoding="utf-8")
    return path


@pytest.fixture()
def whitelist(whitelist_file: Path) -> Whitelist:
    return Whitelist(whitelist_file, refresh_seconds=0)


@pytest.fixture(scope="session")
def alice_key() -> PrivateKey:
    return PrivateKey.generate()


@pytest.fixture(scope="session")
def service_key() -> PrivateKey:
    return PrivateKey.generate()


@pytest.fixture()
def registry(alice_key: PrivateKey) -> AsyncMock:
    """Registry knowing only @alice, whose posting authority holds alice_key."""
    records = {
        "alice": AuthorityRecord(
            account="alice",
            key_auths=frozenset({alice_key.public_key().to_string()}),
        )
    }
    mock = AsyncMock()
    mock.get_authority.side_effect = lambda identity: records.get(identity)
    return mock


@pytest.fixture()
def verifier(registry: AsyncMock) -> CredentialVerifier:
    return CredentialVerifier(registry)


@pytest.fixture()
def token_issuer() -> SessionTokenIssuer:
    return SessionTokenIssuer(TEST_SECRET)


@pytest.fixture()
def transport() -> MagicMock:
    """Connected transport whose publishes are acknowledged immediately."""
    info = MagicMock()
    info.rc = 0
    info.mid = 7
    info.is_published.return_value = True
    mock = MagicMock()
    mock.is_connected.return_value = True
    mock.publish.return_value = info
    return mock


@pytest.fixture()
def dispatcher(transport: MagicMock) -> CommandDispatcher:
    return CommandDispatcher(transport, publish_timeout=0.1)


@pytest.fixture()
def ledger_backend() -> AsyncMock:
    mock = AsyncMock()
    mock.submit_custom_json.return_value = BroadcastResult(transaction_id="abc123", block_num=42)
    mock.read_history.return_value = []
    return mock


@pytest.fixture()
def ledger(ledger_backend: AsyncMock, service_key: PrivateKey) -> EventLedger:
    return EventLedger(
        ledger_backend,
        account=SERVICE_ACCOUNT,
        posting_key=service_key.to_wif(),
        custom_json_id=CUSTOM_JSON_ID,
        batch_size=10,
        max_batches=10,
    )


@pytest.fixture()
def controller(
    whitelist: Whitelist,
    verifier: CredentialVerifier,
    token_issuer: SessionTokenIssuer,
    dispatcher: CommandDispatcher,
    ledger: EventLedger,
) -> GateController:
    return GateController(
        whitelist=whitelist,
        verifier=verifier,
        tokens=token_issuer,
        dispatcher=dispatcher,
        ledger=ledger,
        channel=DOOR_TOPIC,
        command="ON",
        max_log_limit=50,
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_controller_dependency(app: FastAPI, controller: GateController) -> Iterator[None]:
    app.dependency_overrides[get_gate_controller_dep] = lambda: controller
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_gate_controller_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(token_issuer: SessionTokenIssuer) -> dict[str, str]:
    """Return authorization headers for @alice."""
    return {"Authorization": f"Bearer {token_issuer.issue('alice')}"}


def history_entry(
    payload: dict[str, Any] | str,
    *,
    custom_id: str = CUSTOM_JSON_ID,
    block: int = 1,
    op_name: str = "custom_json",
) -> dict[str, Any]:
    """Build a condenser_api account history entry."""
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return {
        "trx_id": f"trx{block}",
        "block": block,
        "timestamp": "2026-01-01T00:00:00",
        "op": [
            op_name,
            {
                "required_auths": [],
                "required_posting_auths": [SERVICE_ACCOUNT],
                "id": custom_id,
                "json": body,
            },
        ],
    }
