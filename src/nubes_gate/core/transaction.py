# src/nubes_gate/core/transaction.py
"""Binary serialization and signing of Hive ``custom_json`` transactions.

Only the pieces needed to anchor audit events are implemented: a transaction
carrying a single ``custom_json`` operation (operation id 18) with no
extensions. The signing digest is ``sha256(chain_id || serialized_tx)``.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Final

from nubes_gate.core.keys import PrivateKey

CUSTOM_JSON_OPERATION_ID: Final[int] = 18
HIVE_TIME_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class CustomJsonOperation:
    """A ``custom_json`` operation as broadcast by the service account."""

    id: str
    json: str
    required_auths: tuple[str, ...] = ()
    required_posting_auths: tuple[str, ...] = ()

    def to_rpc(self) -> list[Any]:
        return [
            "custom_json",
            {
                "required_auths": list(self.required_auths),
                "required_posting_auths": list(self.required_posting_auths),
                "id": self.id,
                "json": self.json,
            },
        ]


@dataclass
class Transaction:
    """An unsigned or signed Hive transaction."""

    ref_block_num: int
    ref_block_prefix: int
    expiration: datetime
    operations: list[CustomJsonOperation]
    signatures: list[bytes] = field(default_factory=list)

    def to_rpc(self) -> dict[str, Any]:
        return {
            "ref_block_num": self.ref_block_num,
            "ref_block_prefix": self.ref_block_prefix,
            "expiration": format_time(self.expiration),
            "operations": [op.to_rpc() for op in self.operations],
            "extensions": [],
            "signatures": [sig.hex() for sig in self.signatures],
        }


def format_time(value: datetime) -> str:
    return value.astimezone(UTC).strftime(HIVE_TIME_FORMAT)


def parse_time(value: str) -> datetime:
    """Parse a Hive node timestamp (UTC, no offset)."""
    return datetime.strptime(value, HIVE_TIME_FORMAT).replace(tzinfo=UTC)


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _string(value: str) -> bytes:
    encoded = value.encode("utf-8")
    return _varint(len(encoded)) + encoded


def _string_array(values: tuple[str, ...]) -> bytes:
    return _varint(len(values)) + b"".join(_string(item) for item in values)


def serialize_operation(op: CustomJsonOperation) -> bytes:
    """Serialize a ``custom_json`` operation including its type id."""
    return (
        _varint(CUSTOM_JSON_OPERATION_ID)
        + _string_array(op.required_auths)
        + _string_array(op.required_posting_auths)
        + _string(op.id)
        + _string(op.json)
    )


def serialize_transaction(tx: Transaction) -> bytes:
    """Serialize the signable part of a transaction (no signatures)."""
    expiration = int(tx.expiration.astimezone(UTC).timestamp())
    return (
        struct.pack("<HII", tx.ref_block_num & 0xFFFF, tx.ref_block_prefix, expiration)
        + _varint(len(tx.operations))
        + b"".join(serialize_operation(op) for op in tx.operations)
        + _varint(0)
    )


def signing_digest(tx: Transaction, chain_id: str) -> bytes:
    return hashlib.sha256(bytes.fromhex(chain_id) + serialize_transaction(tx)).digest()


def sign_transaction(tx: Transaction, key: PrivateKey, chain_id: str) -> Transaction:
    """Append a signature by ``key`` to ``tx`` and return it."""
    tx.signatures.append(key.sign_digest(signing_digest(tx, chain_id)))
    return tx


def reference_block(head_block_number: int, head_block_id: str) -> tuple[int, int]:
    """Return (ref_block_num, ref_block_prefix) for TaPoS from the head block."""
    block_id = bytes.fromhex(head_block_id)
    (prefix,) = struct.unpack_from("<I", block_id, 4)
    return head_block_number & 0xFFFF, prefix
