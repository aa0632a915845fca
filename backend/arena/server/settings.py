"""Game server configuration via environment variables."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arena.messaging.encoder import MAX_MESSAGE_BYTES
from arena.session.heartbeat import HEARTBEAT_INTERVAL_SECONDS
from arena.session.respawn import RESPAWN_DELAY_SECONDS
from arena.session.sync import SYNC_INTERVAL_SECONDS
from shared.validators import CorsEnvSettingsSource, parse_cors_origins

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


def _new_instance_id() -> str:
    return f"srv_{secrets.token_hex(3)}"


class ArenaServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ARENA_", populate_by_name=True)

    host: str = Field(default="0.0.0.0", min_length=1)  # noqa: S104
    # Hosting platforms hand the listen port over as plain PORT.
    port: int = Field(default=8080, ge=1, le=65535, validation_alias=AliasChoices("ARENA_PORT", "PORT"))
    cors_origins: list[str] = ["*"]
    log_dir: str | None = None
    instance_id: str = Field(default_factory=_new_instance_id, min_length=1)

    heartbeat_interval_seconds: float = Field(default=HEARTBEAT_INTERVAL_SECONDS, gt=0)
    sync_interval_seconds: float = Field(default=SYNC_INTERVAL_SECONDS, gt=0)
    respawn_delay_seconds: float = Field(default=RESPAWN_DELAY_SECONDS, gt=0)

    # Per-connection inbound flood guard; clients stream position updates, so keep it generous.
    message_rate: float = Field(default=120.0, gt=0)
    message_burst: int = Field(default=240, ge=1)
    max_message_bytes: int = Field(default=MAX_MESSAGE_BYTES, ge=256)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_cors_origins(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, CorsEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
