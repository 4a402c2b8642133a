"""System endpoints for the Nubes Gate API."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter

from nubes_gate.api.v1.dependencies import CurrentIdentityDep, GateControllerDep
from nubes_gate.core.settings import settings

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health")
async def health(controller: GateControllerDep) -> dict[str, str]:
    """Report service liveness and the MQTT connection state."""
    return {
        "status": "ok",
        "mqtt": "connected" if controller.dispatcher.connected else "disconnected",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets, broker credentials and posting keys.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "jwt_algorithm": settings.jwt_algorithm,
            "access_token_expire_minutes": settings.access_token_expire_minutes,
        },
        "gate": {
            "broker_configured": settings.mqtt_enabled,
            "topic": settings.mqtt_topic_door,
            "command": settings.mqtt_door_command,
        },
        "ledger": {
            "enabled": settings.ledger_enabled,
            "account": settings.hive_username,
            "custom_json_id": settings.hive_custom_json_id,
        },
    }


@router.post("/whitelist/reload")
async def reload_whitelist(
    identity: CurrentIdentityDep,
    controller: GateControllerDep,
) -> dict[str, object]:
    """Re-read the authorized users file immediately."""
    users = controller.whitelist.reload()
    return {"reloaded_by": identity, "count": len(users)}
