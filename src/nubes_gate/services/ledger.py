"""Audit trail of gate activations on the Hive blockchain.

Activations are written as ``custom_json`` operations tagged with a fixed id
and posted by the service account, referencing the acting user by name.
Reading walks the service account's history backwards in batches:

* the first batch ends at the most recent entry (cursor ``-1``);
* each following batch ends just below the oldest index already seen;
* the walk ends when the history is exhausted, stops making progress, or the
  batch ceiling is reached.

Results are ordered by the history index, never by the embedded timestamp.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import aclosing
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, Final, Protocol

from nubes_gate.core.errors import LedgerFault
from nubes_gate.core.keys import PrivateKey
from nubes_gate.core.settings import settings
from nubes_gate.services.hive import BroadcastResult, HistoryEntry, get_hive_client

logger = logging.getLogger(__name__)

DOOR_ACTION: Final[str] = "door_activated"
MOST_RECENT: Final[int] = -1
MAX_BATCH_SIZE: Final[int] = 1000
_CUSTOM_JSON_NAMES: Final[frozenset[str]] = frozenset({"custom_json", "custom_json_operation"})


class LedgerBackend(Protocol):
    """Append-only history store holding tagged records."""

    async def submit_custom_json(
        self,
        *,
        account: str,
        custom_id: str,
        json_payload: str,
        key: PrivateKey,
    ) -> BroadcastResult: ...

    async def read_history(self, account: str, start: int, limit: int) -> list[HistoryEntry]: ...


@dataclass(frozen=True)
class CommandEvent:
    """One gate activation, attributed to an account."""

    action: str
    user: str
    timestamp: str
    message: str
    sequence: int | None = None
    block_num: int | None = None
    trx_id: str | None = None

    @classmethod
    def activation(cls, identity: str, now: datetime) -> CommandEvent:
        return cls(
            action=DOOR_ACTION,
            user=identity,
            timestamp=now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            message=f"Gate Door Activated by @{identity}",
        )

    def to_json(self) -> str:
        """Serialize the on-chain payload (ledger coordinates excluded)."""
        return json.dumps(
            {
                "action": self.action,
                "user": self.user,
                "timestamp": self.timestamp,
                "message": self.message,
            },
            separators=(",", ":"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LedgerReceipt:
    """Inclusion data for an appended event."""

    transaction_id: str
    block_num: int
    event: CommandEvent


@dataclass(frozen=True)
class LedgerWriteOutcome:
    """Result of a best-effort append: a receipt or an error, never both."""

    receipt: LedgerReceipt | None = None
    error: str | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EventLedger:
    """Append and read tagged gate events."""

    def __init__(
        self,
        backend: LedgerBackend,
        *,
        account: str | None,
        posting_key: str | None,
        custom_json_id: str,
        batch_size: int = MAX_BATCH_SIZE,
        max_batches: int = 50,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend = backend
        self._account = account
        self._posting_key = posting_key
        self._custom_json_id = custom_json_id
        self._batch_size = max(1, min(batch_size, MAX_BATCH_SIZE))
        self._max_batches = max(1, max_batches)
        self._clock = clock

    @property
    def custom_json_id(self) -> str:
        return self._custom_json_id

    def _require_account(self) -> str:
        if not self._account:
            raise LedgerFault("Ledger account not configured")
        return self._account

    async def append(self, identity: str) -> LedgerReceipt:
        """Post an activation event for ``identity`` on behalf of the service.

        Raises:
            LedgerFault: If the ledger is unconfigured, unreachable, or rejects
                the transaction.
        """
        account = self._require_account()
        if not self._posting_key:
            raise LedgerFault("Ledger posting key not configured")

        event = CommandEvent.activation(identity, self._clock())
        try:
            key = PrivateKey.from_wif(self._posting_key)
            result = await self._backend.submit_custom_json(
                account=account,
                custom_id=self._custom_json_id,
                json_payload=event.to_json(),
                key=key,
            )
        except Exception as exc:
            logger.error("Failed to post to Hive: %s", exc)
            raise LedgerFault(f"Failed to post to Hive: {exc}") from exc

        logger.info("Posted door event for @%s in %s", identity, result.transaction_id)
        return LedgerReceipt(
            transaction_id=result.transaction_id,
            block_num=result.block_num,
            event=event,
        )

    async def record(self, identity: str) -> LedgerWriteOutcome:
        """Append without ever raising; faults come back as ``error``."""
        try:
            return LedgerWriteOutcome(receipt=await self.append(identity))
        except LedgerFault as fault:
            logger.warning("Ledger write for @%s failed: %s", identity, fault.reason)
            return LedgerWriteOutcome(error=fault.reason)

    async def _read(self, account: str, cursor: int, limit: int) -> list[HistoryEntry]:
        try:
            return await self._backend.read_history(account, cursor, limit)
        except Exception as exc:
            logger.error("Failed to fetch door logs from Hive: %s", exc)
            raise LedgerFault(f"Failed to fetch door logs from Hive: {exc}") from exc

    def _decode(self, index: int, entry: Mapping[str, Any]) -> CommandEvent | None:
        op = entry.get("op")
        if isinstance(op, list | tuple) and len(op) == 2:
            name, body = op
        elif isinstance(op, Mapping):
            name, body = op.get("type"), op.get("value")
        else:
            return None

        if name not in _CUSTOM_JSON_NAMES or not isinstance(body, Mapping):
            return None
        if body.get("id") != self._custom_json_id:
            return None

        try:
            data = json.loads(body.get("json") or "")
        except (TypeError, ValueError):
            logger.warning("Skipping undecodable door event at index %s", index)
            return None
        if not isinstance(data, Mapping):
            logger.warning("Skipping non-object door event at index %s", index)
            return None

        block = entry.get("block")
        return CommandEvent(
            action=str(data.get("action", "")),
            user=str(data.get("user", "")),
            timestamp=str(data.get("timestamp") or entry.get("timestamp", "")),
            message=str(data.get("message", "")),
            sequence=index,
            block_num=int(block) if block is not None else None,
            trx_id=entry.get("trx_id"),
        )

    async def scan(self, cursor: int = MOST_RECENT) -> AsyncIterator[CommandEvent]:
        """Yield tagged events newest first, starting at ``cursor``.

        Raises:
            LedgerFault: If a batch cannot be read.
        """
        account = self._require_account()
        floor: int | None = None
        if cursor == 0:
            return

        for _ in range(self._max_batches):
            limit = self._batch_size if cursor < 0 else min(self._batch_size, cursor)
            batch = await self._read(account, cursor, limit)
            if not batch:
                return

            for index, entry in sorted(batch, key=lambda item: item[0], reverse=True):
                if floor is not None and index >= floor:
                    continue
                if cursor >= 0 and index > cursor:
                    continue
                event = self._decode(index, entry)
                if event is not None:
                    yield event

            oldest = min(index for index, _ in batch)
            if floor is not None and oldest >= floor:
                # No progress: pruned or compacted history.
                return
            floor = oldest
            cursor = oldest - 1
            # Nodes reject a zero limit, and index 0 is the account's creation.
            if cursor <= 0:
                return

        logger.warning(
            "Stopped scanning %s history after %d batches", account, self._max_batches
        )

    async def query(self, limit: int) -> list[CommandEvent]:
        """Return at most ``limit`` events, newest first."""
        if limit <= 0:
            return []

        events: list[CommandEvent] = []
        async with aclosing(self.scan()) as stream:
            async for event in stream:
                events.append(event)
                if len(events) >= limit:
                    break
        return events


def get_event_ledger() -> EventLedger:
    """Return a ledger bound to the shared Hive client."""
    return EventLedger(
        get_hive_client(),
        account=settings.hive_username,
        posting_key=settings.hive_posting_key,
        custom_json_id=settings.hive_custom_json_id,
        batch_size=settings.hive_history_batch_size,
        max_batches=settings.hive_history_max_batches,
    )
