"""Stateless session tokens (signed JWTs)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from nubes_gate.core.settings import settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionTokenIssuer:
    """Issue and validate bearer tokens carrying only the account name.

    Validity depends on the signature and the ``exp`` claim alone, so any two
    issuers sharing a secret accept each other's tokens.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._clock = clock

    @property
    def lifetime(self) -> timedelta:
        return self._lifetime

    def issue(self, identity: str) -> str:
        """Create a token for ``identity`` expiring one lifetime from now.

        Time claims keep sub-second precision so that every refresh moves
        ``exp`` strictly forward.
        """
        now = self._clock()
        claims: dict[str, object] = {
            "sub": identity,
            "iat": now.timestamp(),
            "exp": (now + self._lifetime).timestamp(),
        }
        token: str = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        return token

    def refresh(self, identity: str) -> str:
        """Re-issue a token, sliding the expiry window forward."""
        return self.issue(identity)

    def validate(self, token: str) -> str | None:
        """Return the identity embedded in ``token``, or None if it is not valid."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as exc:
            logger.info("Invalid token: %s", exc)
            return None

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            logger.info("Invalid token: missing subject")
            return None
        return subject

    @staticmethod
    def expires_at(token: str) -> datetime | None:
        """Return the unverified expiry of ``token``."""
        try:
            exp = jwt.get_unverified_claims(token).get("exp")
        except JWTError:
            return None
        if not isinstance(exp, int | float):
            return None
        return datetime.fromtimestamp(exp, UTC)


def get_token_issuer() -> SessionTokenIssuer:
    """Return an issuer configured from settings."""
    return SessionTokenIssuer(
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(minutes=settings.access_token_expire_minutes),
    )
