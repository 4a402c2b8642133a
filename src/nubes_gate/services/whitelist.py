"""Allow-list of accounts permitted to operate the gate.

The list lives in a JSON file that operators edit in place. It is held as an
in-memory snapshot, refreshed once it is older than the configured interval
or when :meth:`Whitelist.reload` is called. Every failure to read the file
results in an empty snapshot: nobody is authorized until the file is fixed.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from threading import Lock

from nubes_gate.core.settings import settings

logger = logging.getLogger(__name__)


def _parse_users(raw: object) -> frozenset[str]:
    if isinstance(raw, dict):
        raw = raw.get("authorizedUsers", raw.get("authorized_users"))
    if not isinstance(raw, list):
        raise ValueError("authorized users must be a JSON list")
    return frozenset(item.strip() for item in raw if isinstance(item, str) and item.strip())


class Whitelist:
    """Periodically refreshed snapshot of authorized identities."""

    def __init__(
        self,
        path: str | Path,
        *,
        refresh_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._path = Path(path)
        self._refresh_seconds = max(0.0, refresh_seconds)
        self._clock = clock
        self._lock = Lock()
        self._users: frozenset[str] = frozenset()
        self._loaded_at: float | None = None

    @property
    def path(self) -> Path:
        return self._path

    def reload(self) -> frozenset[str]:
        """Re-read the file now and return the new snapshot."""
        try:
            users = _parse_users(json.loads(self._path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            logger.error("Error loading authorized users from %s: %s", self._path, exc)
            users = frozenset()

        if not users:
            logger.warning("Whitelist %s is empty; no user is authorized", self._path)

        with self._lock:
            self._users = users
            self._loaded_at = self._clock()
        return users

    def snapshot(self) -> frozenset[str]:
        """Return the current snapshot, refreshing it when stale."""
        with self._lock:
            loaded_at = self._loaded_at
            users = self._users
        if loaded_at is None or self._clock() - loaded_at >= self._refresh_seconds:
            return self.reload()
        return users

    def is_authorized(self, identity: str) -> bool:
        authorized = identity in self.snapshot()
        logger.debug("Whitelist check for @%s: %s", identity, authorized)
        return authorized


class _WhitelistSingleton:
    _instance: Whitelist | None = None

    @classmethod
    def get_instance(cls) -> Whitelist:
        if cls._instance is None:
            cls._instance = Whitelist(
                settings.authorized_users_file,
                refresh_seconds=settings.whitelist_refresh_seconds,
            )
        return cls._instance


def get_whitelist() -> Whitelist:
    """Return the process-wide whitelist."""
    return _WhitelistSingleton.get_instance()
