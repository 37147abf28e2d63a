"""
Client configuration via pydantic-settings.

All settings are loaded from environment variables prefixed with
``RESTBIND_`` (and an optional .env file). Nothing here is read at import
time; ``ClientSettings()`` is built explicitly by the caller, typically once
at startup, and handed to ``RestClient.from_settings``.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from restbind.codec.policy import DEFAULT_DATE_FORMAT

DEFAULT_TIMEOUT_MS = 30_000

_ENV = SettingsConfigDict(env_prefix="RESTBIND_", env_file=".env", extra="ignore")


class CodecSettings(BaseSettings):
    model_config = _ENV

    # Validated by SerializationPolicy so an unknown value fails at client construction
    naming_convention: str = "snake_case"
    fail_on_unknown_fields: bool = False
    date_format: str = DEFAULT_DATE_FORMAT


class TransportSettings(BaseSettings):
    model_config = _ENV

    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    base_url: str = ""


class LoggingSettings(BaseSettings):
    model_config = _ENV

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"


class ClientSettings(BaseSettings):
    model_config = _ENV

    codec: Optional[CodecSettings] = None
    transport: Optional[TransportSettings] = None
    logging: Optional[LoggingSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "ClientSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.codec is None:
            self.codec = CodecSettings()
        if self.transport is None:
            self.transport = TransportSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        return self
