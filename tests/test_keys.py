# tests/test_keys.py
"""Tests for WIF handling, public key encoding and compact signatures."""

from __future__ import annotations

import hashlib

import pytest

from nubes_gate.core.keys import (
    PrivateKey,
    PublicKey,
    decode_wif,
    derive_public_key,
    encode_wif,
    is_canonical,
    recover_public_key,
    ripemd160,
)
from nubes_gate.utils.base58 import b58decode, b58encode

# Well-known WIF vectors (secret = 1, and the Bitcoin wiki example key).
WIF_ONE = "5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf"
WIF_WIKI = "5HueCGU8rMjxEXxiPuD5BDku4MkFqeZyd4dZ1jvhTVqvbTLvyTJ"
WIKI_SECRET = bytes.fromhex("0C28FCA386C7A227600B2FE50B7CAE11EC86D3BF1FBE471BE89827E19D72AA1D")
GENERATOR_COMPRESSED = bytes.fromhex(
    "0279BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798"
)
# Hive testnet "initminer" key pair, as published in the hived testnet config.
INIT_WIF = "5JNHfZYKGaomSFvd4NUdQ9qMcEAC43kujbfjueTHpVapX1Kzq2n"
INIT_PUBLIC_KEY = "TST6LLegbAgLAy28EHrffBVuANFWcFgmqRMW13wBmTExqFE9SCkg4"


class TestBase58:
    def test_leading_zero_bytes_become_ones(self) -> None:
        assert b58encode(b"\x00\x00\x01") == "112"
        assert b58decode("112") == b"\x00\x00\x01"

    def test_rejects_characters_outside_alphabet(self) -> None:
        with pytest.raises(ValueError):
            b58decode("0OIl")


class TestWif:
    def test_decodes_known_vectors(self) -> None:
        assert decode_wif(WIF_ONE) == (1).to_bytes(32, "big")
        assert decode_wif(WIF_WIKI) == WIKI_SECRET

    def test_encode_matches_known_vector(self) -> None:
        assert encode_wif(WIKI_SECRET) == WIF_WIKI

    def test_rejects_bad_checksum(self) -> None:
        tampered = WIF_WIKI[:-1] + ("U" if WIF_WIKI[-1] != "U" else "V")
        with pytest.raises(ValueError):
            decode_wif(tampered)

    @pytest.mark.parametrize("value", ["", "not-a-key", "STM5abc", WIF_WIKI[:20]])
    def test_rejects_malformed_input(self, value: str) -> None:
        with pytest.raises(ValueError):
            decode_wif(value)


class TestPublicKey:
    def test_secret_one_derives_generator_point(self) -> None:
        assert bytes(PrivateKey.from_wif(WIF_ONE).public_key()) == GENERATOR_COMPRESSED

    def test_ripemd160_known_answers(self) -> None:
        assert ripemd160(b"").hex() == "9c1186a5bbd7fdb7ddb91e0e9fa1d81c3ba5f5e0"
        assert ripemd160(b"abc").hex() == "8eb208f7e05d987a9b044a8e98c6b087f15a0bfc"

    def test_testnet_init_key_derives_published_public_key(self) -> None:
        assert derive_public_key(INIT_WIF, prefix="TST") == INIT_PUBLIC_KEY
        assert derive_public_key(INIT_WIF) == "STM" + INIT_PUBLIC_KEY[3:]
        assert PublicKey.from_string(INIT_PUBLIC_KEY, prefix="TST") == (
            PrivateKey.from_wif(INIT_WIF).public_key()
        )

    def test_string_encoding_round_trips(self) -> None:
        encoded = derive_public_key(WIF_WIKI)
        assert encoded.startswith("STM")
        assert PublicKey.from_string(encoded) == PrivateKey.from_wif(WIF_WIKI).public_key()

    def test_custom_prefix(self) -> None:
        encoded = derive_public_key(WIF_WIKI, prefix="TST")
        assert encoded.startswith("TST")
        with pytest.raises(ValueError):
            PublicKey.from_string(encoded, prefix="STM")

    def test_rejects_corrupted_checksum(self) -> None:
        encoded = derive_public_key(WIF_ONE)
        raw = bytearray(b58decode(encoded[3:]))
        raw[-1] ^= 0xFF
        with pytest.raises(ValueError):
            PublicKey.from_string("STM" + b58encode(bytes(raw)))


class TestCompactSignatures:
    def test_signature_is_canonical_and_recoverable(self) -> None:
        key = PrivateKey.generate()
        digest = hashlib.sha256(b"gate").digest()

        signature = key.sign_digest(digest)

        assert len(signature) == 65
        assert 31 <= signature[0] <= 34
        assert is_canonical(signature)
        assert recover_public_key(digest, signature) == key.public_key()
        assert key.public_key().verify_digest(digest, signature)

    def test_signature_does_not_verify_for_other_digest_or_key(self) -> None:
        key = PrivateKey.generate()
        digest = hashlib.sha256(b"gate").digest()
        signature = key.sign_digest(digest)

        assert not key.public_key().verify_digest(hashlib.sha256(b"other").digest(), signature)
        assert not PrivateKey.generate().public_key().verify_digest(digest, signature)

    def test_recover_rejects_wrong_length(self) -> None:
        assert recover_public_key(b"\x00" * 32, b"\x1f" * 10) is None

    def test_wif_round_trip_preserves_signing_key(self) -> None:
        key = PrivateKey.generate()
        assert PrivateKey.from_wif(key.to_wif()).public_key() == key.public_key()
