# src/nubes_gate/core/keys.py
"""secp256k1 key handling for Hive accounts.

Hive private keys travel as WIF strings (Base58Check, version byte 0x80) and
public keys as ``STM`` + Base58(compressed point || RIPEMD160 checksum).
Transactions are signed with 65-byte compact recoverable signatures that must
be low-S and "fc canonical".
"""

from __future__ import annotations

import hashlib
from typing import Final

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, decode_dss_signature

from nubes_gate.utils.base58 import b58decode, b58encode

CURVE_P: Final[int] = 2**256 - 2**32 - 977
CURVE_N: Final[int] = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
CURVE_G: Final[tuple[int, int]] = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)
WIF_VERSION: Final[int] = 0x80
COMPACT_SIGNATURE_BYTES: Final[int] = 65
DEFAULT_PREFIX: Final[str] = "STM"
MAX_SIGN_ATTEMPTS: Final[int] = 64

Point = tuple[int, int]


def _double_sha256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def ripemd160(data: bytes) -> bytes:
    """Return the RIPEMD-160 digest of ``data``."""
    return hashlib.new("ripemd160", data).digest()


def decode_wif(wif: str) -> bytes:
    """Decode a WIF private key into its 32-byte secret.

    Raises:
        ValueError: On bad encoding, checksum, version byte or key range.
    """
    raw = b58decode(wif.strip())
    if len(raw) not in (37, 38):
        raise ValueError("Invalid WIF length")
    payload, checksum = raw[:-4], raw[-4:]
    if _double_sha256(payload)[:4] != checksum:
        raise ValueError("Invalid WIF checksum")
    if payload[0] != WIF_VERSION:
        raise ValueError("Invalid WIF version byte")
    if len(payload) == 34 and payload[33] != 0x01:
        raise ValueError("Invalid WIF compression flag")
    secret = payload[1:33]
    if not 0 < int.from_bytes(secret, "big") < CURVE_N:
        raise ValueError("Private key out of range")
    return secret


def encode_wif(secret: bytes) -> str:
    """Encode a 32-byte secret as an (uncompressed-flag) WIF string."""
    if len(secret) != 32:
        raise ValueError("Private keys must be 32 bytes")
    payload = bytes([WIF_VERSION]) + secret
    return b58encode(payload + _double_sha256(payload)[:4])


def _point_add(a: Point | None, b: Point | None) -> Point | None:
    if a is None:
        return b
    if b is None:
        return a
    if a[0] == b[0]:
        if (a[1] + b[1]) % CURVE_P == 0:
            return None
        slope = 3 * a[0] * a[0] * pow(2 * a[1], -1, CURVE_P) % CURVE_P
    else:
        slope = (b[1] - a[1]) * pow(b[0] - a[0], -1, CURVE_P) % CURVE_P
    x = (slope * slope - a[0] - b[0]) % CURVE_P
    y = (slope * (a[0] - x) - a[1]) % CURVE_P
    return x, y


def _point_mul(point: Point | None, scalar: int) -> Point | None:
    result: Point | None = None
    addend = point
    while scalar:
        if scalar & 1:
            result = _point_add(result, addend)
        addend = _point_add(addend, addend)
        scalar >>= 1
    return result


def _recover_point(digest: bytes, r: int, s: int, recovery_id: int) -> Point | None:
    x = r + (recovery_id >> 1) * CURVE_N
    if x >= CURVE_P:
        return None
    alpha = (pow(x, 3, CURVE_P) + 7) % CURVE_P
    beta = pow(alpha, (CURVE_P + 1) // 4, CURVE_P)
    if beta * beta % CURVE_P != alpha:
        return None
    y = beta if beta % 2 == recovery_id & 1 else CURVE_P - beta
    e = int.from_bytes(digest, "big")
    s_r = _point_mul((x, y), s)
    e_g = _point_mul(CURVE_G, (-e) % CURVE_N)
    return _point_mul(_point_add(s_r, e_g), pow(r, -1, CURVE_N))


def is_canonical(signature: bytes) -> bool:
    """Return True if a compact signature passes Hive's canonical check."""
    r, s = signature[1:33], signature[33:65]
    return not (
        r[0] & 0x80
        or (r[0] == 0 and not r[1] & 0x80)
        or s[0] & 0x80
        or (s[0] == 0 and not s[1] & 0x80)
    )


class PublicKey:
    """A compressed secp256k1 public key."""

    def __init__(self, compressed: bytes) -> None:
        self._key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), compressed)

    @classmethod
    def from_string(cls, text: str, prefix: str = DEFAULT_PREFIX) -> PublicKey:
        """Parse an ``STM...`` encoded public key.

        Raises:
            ValueError: On wrong prefix, bad encoding or checksum mismatch.
        """
        if not text.startswith(prefix):
            raise ValueError(f"Public key must start with {prefix}")
        raw = b58decode(text[len(prefix):])
        key_bytes, checksum = raw[:-4], raw[-4:]
        if len(key_bytes) != 33 or ripemd160(key_bytes)[:4] != checksum:
            raise ValueError("Invalid public key checksum")
        return cls(key_bytes)

    def __bytes__(self) -> bytes:
        return self._key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.CompressedPoint,
        )

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PublicKey) and bytes(self) == bytes(other)

    def __hash__(self) -> int:
        return hash(bytes(self))

    @property
    def point(self) -> Point:
        numbers = self._key.public_numbers()
        return numbers.x, numbers.y

    def to_string(self, prefix: str = DEFAULT_PREFIX) -> str:
        """Return the ``STM...`` encoding of the key."""
        key_bytes = bytes(self)
        return prefix + b58encode(key_bytes + ripemd160(key_bytes)[:4])

    def verify_digest(self, digest: bytes, signature: bytes) -> bool:
        """Verify a compact signature over a 32-byte digest."""
        recovered = recover_public_key(digest, signature)
        return recovered is not None and recovered == self


class PrivateKey:
    """A secp256k1 private key able to produce Hive compact signatures."""

    def __init__(self, secret: bytes) -> None:
        self._key = ec.derive_private_key(int.from_bytes(secret, "big"), ec.SECP256K1())

    @classmethod
    def from_wif(cls, wif: str) -> PrivateKey:
        return cls(decode_wif(wif))

    @classmethod
    def generate(cls) -> PrivateKey:
        key = ec.generate_private_key(ec.SECP256K1())
        return cls(key.private_numbers().private_value.to_bytes(32, "big"))

    def to_wif(self) -> str:
        return encode_wif(self._key.private_numbers().private_value.to_bytes(32, "big"))

    def public_key(self) -> PublicKey:
        return PublicKey(
            self._key.public_key().public_bytes(
                encoding=serialization.Encoding.X962,
                format=serialization.PublicFormat.CompressedPoint,
            )
        )

    def sign_digest(self, digest: bytes) -> bytes:
        """Sign a 32-byte SHA-256 digest.

        Returns:
            65-byte compact signature: header byte (27 + 4 + recovery id),
            then big-endian r and s.

        Raises:
            ValueError: If no canonical signature is produced.
        """
        own_point = self.public_key().point
        for _ in range(MAX_SIGN_ATTEMPTS):
            der = self._key.sign(digest, ec.ECDSA(Prehashed(hashes.SHA256())))
            r, s = decode_dss_signature(der)
            if s > CURVE_N // 2:
                s = CURVE_N - s
            body = r.to_bytes(32, "big") + s.to_bytes(32, "big")
            if not is_canonical(b"\x00" + body):
                continue
            for recovery_id in range(4):
                if _recover_point(digest, r, s, recovery_id) == own_point:
                    return bytes([27 + 4 + recovery_id]) + body
        raise ValueError("Unable to produce a canonical signature")


def recover_public_key(digest: bytes, signature: bytes) -> PublicKey | None:
    """Recover the signer's public key from a compact signature."""
    if len(signature) != COMPACT_SIGNATURE_BYTES:
        return None
    recovery_id = (signature[0] - 27) & 3
    r = int.from_bytes(signature[1:33], "big")
    s = int.from_bytes(signature[33:65], "big")
    if not (0 < r < CURVE_N and 0 < s < CURVE_N):
        return None
    point = _recover_point(digest, r, s, recovery_id)
    if point is None:
        return None
    x, y = point
    return PublicKey(bytes([2 + (y & 1)]) + x.to_bytes(32, "big"))


def derive_public_key(wif: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Return the ``STM...`` public key matching a WIF private key.

    Raises:
        ValueError: If the WIF string is malformed.
    """
    return PrivateKey.from_wif(wif).public_key().to_string(prefix)
