"""Posting-key verification against the Hive account registry."""

from __future__ import annotations

import logging
from typing import Protocol

from nubes_gate.core.keys import derive_public_key
from nubes_gate.core.settings import settings
from nubes_gate.services.hive import AuthorityRecord, get_hive_client

logger = logging.getLogger(__name__)


class AuthorityRegistry(Protocol):
    """Read-only source of account authorities."""

    async def get_authority(self, identity: str) -> AuthorityRecord | None: ...


class CredentialVerifier:
    """Prove that a supplied private key belongs to an account's posting authority."""

    def __init__(self, registry: AuthorityRegistry, *, address_prefix: str = "STM") -> None:
        self._registry = registry
        self._prefix = address_prefix

    def derive(self, credential: str) -> str | None:
        """Return the public key for ``credential``, or None if it is malformed."""
        try:
            return derive_public_key(credential, self._prefix)
        except (ValueError, TypeError):
            return None
        except Exception as exc:
            logger.warning("Posting key derivation failed: %s", type(exc).__name__)
            return None

    async def verify(self, identity: str, credential: str) -> bool:
        """Return True iff ``credential`` derives a key listed in the posting authority.

        Unknown accounts, malformed keys and registry faults are all reported
        as a plain False; this method never raises.
        """
        public_key = self.derive(credential)
        if public_key is None:
            logger.info("Rejected malformed posting key for @%s", identity)
            return False

        try:
            record = await self._registry.get_authority(identity)
        except Exception as exc:
            logger.warning("Registry lookup failed for @%s: %s", identity, exc)
            return False

        if record is None:
            logger.info("User @%s not found on Hive blockchain", identity)
            return False

        if public_key in record.key_auths:
            logger.info("Posting key verified for @%s", identity)
            return True

        logger.info("Posting key does not match @%s's account", identity)
        return False


def get_credential_verifier() -> CredentialVerifier:
    """Return a verifier backed by the shared Hive client."""
    return CredentialVerifier(get_hive_client(), address_prefix=settings.hive_address_prefix)
