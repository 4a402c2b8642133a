"""Hive API client.

This module provides the HiveClient class that handles all communication
between the gate service and the Hive blockchain. It includes:

- JSON-RPC over HTTP with failover across the configured API nodes
- Account authority lookups (the identity registry)
- Account history reads (the audit ledger, read side)
- Signing and broadcasting ``custom_json`` transactions (the ledger, write side)
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import httpx

from nubes_gate.core.keys import PrivateKey
from nubes_gate.core.settings import settings
from nubes_gate.core.transaction import (
    CustomJsonOperation,
    Transaction,
    parse_time,
    reference_block,
    sign_transaction,
)

# Configure logger for this module
logger = logging.getLogger(__name__)

HistoryEntry = tuple[int, Mapping[str, Any]]


class HiveError(RuntimeError):
    """Base exception raised for Hive communication failures."""


class HiveRPCError(HiveError):
    """Raised when a node answers with a JSON-RPC error object."""

    def __init__(self, method: str, error: Mapping[str, Any]) -> None:
        self.method = method
        self.error = dict(error)
        super().__init__(f"{method} failed: {error.get('message', error)}")


@dataclass(frozen=True)
class HiveConfig:
    """Immutable configuration for Hive operations."""

    nodes: tuple[str, ...]
    timeout_seconds: float
    chain_id: str
    address_prefix: str
    tx_expiration_seconds: int


@dataclass(frozen=True)
class AuthorityRecord:
    """Public keys of an account's posting authority."""

    account: str
    key_auths: frozenset[str]
    weight_threshold: int = 1


@dataclass(frozen=True)
class BroadcastResult:
    """Inclusion data returned by a synchronous broadcast."""

    transaction_id: str
    block_num: int


def load_hive_config() -> HiveConfig:
    """Build configuration object from global settings."""

    return HiveConfig(
        nodes=tuple(settings.hive_nodes),
        timeout_seconds=float(settings.hive_http_timeout_seconds),
        chain_id=settings.hive_chain_id,
        address_prefix=settings.hive_address_prefix,
        tx_expiration_seconds=settings.hive_tx_expiration_seconds,
    )


class HiveClient:
    """Async JSON-RPC client for Hive API nodes."""

    def __init__(
        self,
        config: HiveConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_hive_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._ids = itertools.count(1)

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def call(self, method: str, params: Sequence[Any]) -> Any:
        """Invoke ``method`` on the first node that answers.

        Transport failures fall through to the next node; a JSON-RPC error is
        deterministic and raised immediately.

        Raises:
            HiveRPCError: If a node returns an error object.
            HiveError: If every node fails at the transport level.
        """
        if not self.config.nodes:
            raise HiveError("No Hive API nodes configured")

        client = await self._ensure_client()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(params),
            "id": next(self._ids),
        }
        failures: list[str] = []
        for node in self.config.nodes:
            try:
                response = await client.post(node, json=payload)
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Hive node %s failed for %s: %s", node, method, exc)
                failures.append(f"{node}: {exc}")
                continue

            if not isinstance(body, Mapping):
                failures.append(f"{node}: malformed response")
                continue
            if body.get("error") is not None:
                raise HiveRPCError(method, body["error"])
            return body.get("result")

        raise HiveError(f"All Hive nodes failed for {method}: {'; '.join(failures)}")

    async def get_accounts(self, names: Sequence[str]) -> list[Mapping[str, Any]]:
        result = await self.call("condenser_api.get_accounts", [list(names)])
        return list(result or [])

    async def get_authority(self, identity: str) -> AuthorityRecord | None:
        """Return the posting authority of ``identity``, or None if unknown."""
        accounts = await self.get_accounts([identity])
        if not accounts:
            return None

        posting = accounts[0].get("posting") or {}
        key_auths = frozenset(str(entry[0]) for entry in posting.get("key_auths", []))
        return AuthorityRecord(
            account=str(accounts[0].get("name", identity)),
            key_auths=key_auths,
            weight_threshold=int(posting.get("weight_threshold", 1)),
        )

    async def read_history(self, account: str, start: int, limit: int) -> list[HistoryEntry]:
        """Read account history entries ending at index ``start`` (-1 for newest).

        Entries are returned oldest first, as the node orders them.
        """
        result = await self.call(
            "condenser_api.get_account_history",
            [account, start, limit],
        )
        return [(int(index), entry) for index, entry in result or []]

    async def get_dynamic_global_properties(self) -> Mapping[str, Any]:
        result = await self.call("condenser_api.get_dynamic_global_properties", [])
        if not isinstance(result, Mapping):
            raise HiveError("Malformed dynamic global properties")
        return result

    async def submit_custom_json(
        self,
        *,
        account: str,
        custom_id: str,
        json_payload: str,
        key: PrivateKey,
    ) -> BroadcastResult:
        """Sign and broadcast a ``custom_json`` operation posted by ``account``."""
        props = await self.get_dynamic_global_properties()
        try:
            ref_block_num, ref_block_prefix = reference_block(
                int(props["head_block_number"]),
                str(props["head_block_id"]),
            )
            head_time = parse_time(str(props["time"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise HiveError(f"Malformed dynamic global properties: {exc}") from exc

        tx = Transaction(
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            expiration=head_time + timedelta(seconds=self.config.tx_expiration_seconds),
            operations=[
                CustomJsonOperation(
                    id=custom_id,
                    json=json_payload,
                    required_posting_auths=(account,),
                )
            ],
        )
        sign_transaction(tx, key, self.config.chain_id)

        result = await self.call(
            "condenser_api.broadcast_transaction_synchronous",
            [tx.to_rpc()],
        )
        if not isinstance(result, Mapping) or "id" not in result:
            raise HiveError("Malformed broadcast response")

        logger.info("Broadcast custom_json %s in block %s", result["id"], result.get("block_num"))
        return BroadcastResult(
            transaction_id=str(result["id"]),
            block_num=int(result.get("block_num", 0)),
        )

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _HiveClientSingleton:
    """Singleton wrapper for HiveClient."""

    _instance: HiveClient | None = None

    @classmethod
    def get_instance(cls) -> HiveClient:
        """Get or create the singleton HiveClient instance."""
        if cls._instance is None:
            cls._instance = HiveClient()
        return cls._instance


def get_hive_client() -> HiveClient:
    """Return a singleton Hive client instance."""
    return _HiveClientSingleton.get_instance()
