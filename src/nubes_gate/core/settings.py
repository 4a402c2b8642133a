"""Application settings and configuration.

This module defines all configuration options for the Nubes Gate service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

HIVE_MAINNET_CHAIN_ID = "beeab0de" + "0" * 56


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Nubes Gate", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Session tokens
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Whitelist of accounts allowed to operate the gate
    authorized_users_file: str = Field(
        default="authorized-users.json",
        alias="AUTHORIZED_USERS_FILE",
    )
    whitelist_refresh_seconds: float = Field(default=30.0, alias="WHITELIST_REFRESH_SECONDS")

    # MQTT broker connection
    mqtt_broker: str | None = Field(default=None, alias="MQTT_BROKER")
    mqtt_port: int = Field(default=1883, alias="MQTT_PORT")
    mqtt_username: str | None = Field(default=None, alias="MQTT_USERNAME")
    mqtt_password: str | None = Field(default=None, alias="MQTT_PASSWORD")
    mqtt_client_id_prefix: str = Field(default="lasnubes_", alias="MQTT_CLIENT_ID_PREFIX")
    mqtt_keepalive_seconds: int = Field(default=60, alias="MQTT_KEEPALIVE_SECONDS")
    mqtt_connect_timeout_seconds: float = Field(
        default=4.0,
        alias="MQTT_CONNECT_TIMEOUT_SECONDS",
    )
    mqtt_reconnect_min_seconds: int = Field(default=1, alias="MQTT_RECONNECT_MIN_SECONDS")
    mqtt_reconnect_max_seconds: int = Field(default=30, alias="MQTT_RECONNECT_MAX_SECONDS")
    mqtt_publish_timeout_seconds: float = Field(
        default=5.0,
        alias="MQTT_PUBLISH_TIMEOUT_SECONDS",
    )
    mqtt_topic_door: str = Field(default="home/door/cmd", alias="MQTT_TOPIC_DOOR")
    mqtt_door_command: str = Field(default="ON", alias="MQTT_DOOR_COMMAND")

    # Hive blockchain: account registry and audit ledger
    hive_username: str | None = Field(default=None, alias="HIVE_USERNAME")
    hive_posting_key: str | None = Field(default=None, alias="HIVE_POSTING_KEY")
    hive_nodes: list[str] = Field(
        default=[
            "https://api.hive.blog",
            "https://api.deathwing.me",
            "https://hive-api.arcange.eu",
        ],
        alias="HIVE_NODES",
    )
    hive_chain_id: str = Field(default=HIVE_MAINNET_CHAIN_ID, alias="HIVE_CHAIN_ID")
    hive_address_prefix: str = Field(default="STM", alias="HIVE_ADDRESS_PREFIX")
    hive_custom_json_id: str = Field(default="lasnubes_door_event", alias="HIVE_CUSTOM_JSON_ID")
    hive_http_timeout_seconds: float = Field(default=10.0, alias="HIVE_HTTP_TIMEOUT_SECONDS")
    hive_history_batch_size: int = Field(default=1000, alias="HIVE_HISTORY_BATCH_SIZE")
    hive_history_max_batches: int = Field(default=50, alias="HIVE_HISTORY_MAX_BATCHES")
    hive_tx_expiration_seconds: int = Field(default=60, alias="HIVE_TX_EXPIRATION_SECONDS")

    # Audit log retrieval
    logs_default_limit: int = Field(default=50, alias="LOGS_DEFAULT_LIMIT")
    logs_max_limit: int = Field(default=200, alias="LOGS_MAX_LIMIT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def ledger_enabled(self) -> bool:
        """Return True when a publishing account and key are configured."""
        return bool(self.hive_username and self.hive_posting_key)

    @property
    def mqtt_enabled(self) -> bool:
        """Return True when a broker host is configured."""
        return bool(self.mqtt_broker)


settings = Settings()  # type: ignore[call-arg]
