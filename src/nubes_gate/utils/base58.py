# src/nubes_gate/utils/base58.py
"""Base58 codec (Bitcoin alphabet) used by Hive key encodings."""

from __future__ import annotations

from typing import Final

ALPHABET: Final[str] = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX: Final[dict[str, int]] = {char: idx for idx, char in enumerate(ALPHABET)}


def b58encode(data: bytes) -> str:
    """Encode bytes to a Base58 string, keeping leading zero bytes as '1'."""
    value = int.from_bytes(data, "big")
    encoded = ""
    while value:
        value, remainder = divmod(value, 58)
        encoded = ALPHABET[remainder] + encoded
    leading = len(data) - len(data.lstrip(b"\x00"))
    return ALPHABET[0] * leading + encoded


def b58decode(text: str) -> bytes:
    """Decode a Base58 string.

    Raises:
        ValueError: If the text contains characters outside the alphabet.
    """
    value = 0
    for char in text:
        try:
            value = value * 58 + _INDEX[char]
        except KeyError as err:
            raise ValueError(f"Invalid base58 character: {char!r}") from err
    body = value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b""
    leading = len(text) - len(text.lstrip(ALPHABET[0]))
    return b"\x00" * leading + body
