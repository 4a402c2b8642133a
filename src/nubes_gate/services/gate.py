"""Login and gate-open flows."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from nubes_gate.core.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    ValidationError,
)
from nubes_gate.core.settings import settings
from nubes_gate.services.credentials import CredentialVerifier, get_credential_verifier
from nubes_gate.services.dispatcher import (
    CommandDispatcher,
    DeliveryResult,
    get_command_dispatcher,
)
from nubes_gate.services.ledger import (
    CommandEvent,
    EventLedger,
    LedgerReceipt,
    get_event_ledger,
)
from nubes_gate.services.tokens import SessionTokenIssuer, get_token_issuer
from nubes_gate.services.whitelist import Whitelist, get_whitelist

logger = logging.getLogger(__name__)

MISSING_FIELDS = "Username and posting key are required"
NOT_AUTHORIZED = "User not authorized"
INVALID_KEY = "Invalid posting key"
INVALID_TOKEN = "Invalid or expired token"
NO_LONGER_AUTHORIZED = "User no longer authorized"


@dataclass(frozen=True)
class SessionGrant:
    """A freshly issued token and the account it belongs to."""

    token: str
    identity: str


@dataclass(frozen=True)
class GateOpenResult:
    """Outcome of a gate-open request.

    ``delivery`` is always set: the command reached the broker. The ledger
    fields report the best-effort audit write and never turn the result into
    a failure.
    """

    identity: str
    delivery: DeliveryResult
    token: str
    receipt: LedgerReceipt | None = None
    ledger_error: str | None = None


class GateController:
    """Compose whitelist, credential, token, dispatch and ledger services."""

    def __init__(
        self,
        *,
        whitelist: Whitelist,
        verifier: CredentialVerifier,
        tokens: SessionTokenIssuer,
        dispatcher: CommandDispatcher,
        ledger: EventLedger,
        channel: str = "home/door/cmd",
        command: str = "ON",
        max_log_limit: int = 200,
    ) -> None:
        self.whitelist = whitelist
        self.verifier = verifier
        self.tokens = tokens
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.channel = channel
        self.command = command
        self.max_log_limit = max(1, max_log_limit)

    async def login(self, identity: str | None, credential: str | None) -> SessionGrant:
        """Exchange an account name and posting key for a session token.

        Raises:
            ValidationError: If either field is missing.
            AuthorizationFailure: If the account is not whitelisted.
            AuthenticationFailure: If the key does not match the account.
        """
        identity = (identity or "").strip()
        credential = (credential or "").strip()
        if not identity or not credential:
            raise ValidationError(MISSING_FIELDS)

        if not self.whitelist.is_authorized(identity):
            logger.info("Login refused: @%s is not whitelisted", identity)
            raise AuthorizationFailure(NOT_AUTHORIZED)

        if not await self.verifier.verify(identity, credential):
            raise AuthenticationFailure(INVALID_KEY)

        logger.info("Login successful: @%s", identity)
        return SessionGrant(token=self.tokens.issue(identity), identity=identity)

    def authenticate(self, token: str | None) -> str:
        """Return the identity behind a bearer token that is still allowed in.

        Raises:
            AuthenticationFailure: If the token is missing, forged or expired.
            AuthorizationFailure: If the account left the whitelist.
        """
        identity = self.tokens.validate(token) if token else None
        if identity is None:
            raise AuthenticationFailure(INVALID_TOKEN)

        if not self.whitelist.is_authorized(identity):
            logger.info("Auth failed: @%s no longer in whitelist", identity)
            raise AuthorizationFailure(NO_LONGER_AUTHORIZED)
        return identity

    def verify_session(self, token: str | None) -> SessionGrant:
        """Validate a token and hand back a refreshed one."""
        identity = self.authenticate(token)
        return SessionGrant(token=self.tokens.refresh(identity), identity=identity)

    async def open_gate(self, token: str | None) -> GateOpenResult:
        """Send the open command, then record it on the ledger.

        Raises:
            AuthenticationFailure: See :meth:`authenticate`.
            AuthorizationFailure: See :meth:`authenticate`.
            TransportUnavailable: If the broker connection is down.
            PublishFailed: If the broker did not acknowledge the command.
        """
        identity = self.authenticate(token)
        delivery = await self.dispatcher.dispatch(self.channel, self.command)
        outcome = await self.ledger.record(identity)
        return GateOpenResult(
            identity=identity,
            delivery=delivery,
            token=self.tokens.refresh(identity),
            receipt=outcome.receipt,
            ledger_error=outcome.error,
        )

    async def recent_events(self, limit: int) -> list[CommandEvent]:
        """Return up to ``limit`` recorded activations, newest first."""
        return await self.ledger.query(max(1, min(limit, self.max_log_limit)))


class _GateControllerSingleton:
    _instance: GateController | None = None

    @classmethod
    def get_instance(cls) -> GateController:
        if cls._instance is None:
            cls._instance = GateController(
                whitelist=get_whitelist(),
                verifier=get_credential_verifier(),
                tokens=get_token_issuer(),
                dispatcher=get_command_dispatcher(),
                ledger=get_event_ledger(),
                channel=settings.mqtt_topic_door,
                command=settings.mqtt_door_command,
                max_log_limit=settings.logs_max_limit,
            )
        return cls._instance


def get_gate_controller() -> GateController:
    """Return the process-wide gate controller."""
    return _GateControllerSingleton.get_instance()
