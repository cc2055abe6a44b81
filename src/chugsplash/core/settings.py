"""
Central configuration for ChugSplash.

This module provides a single, typed configuration object that reads from
environment variables (12-factor style) using pydantic-settings.

Usage:

    from chugsplash.core.settings import get_settings

    settings = get_settings()
    if settings.ledger.directory:
        ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chugsplash.protocol.errors import ValidationError
from chugsplash.protocol.types import normalize_address

# Only the CHUGSPLASH_* names below are read; field names never are.
_CONFIG = SettingsConfigDict(env_prefix="", extra="ignore")


class LedgerSettings(BaseSettings):
    model_config = _CONFIG

    directory: Optional[str] = Field(
        default=None,
        validation_alias="CHUGSPLASH_LEDGER_DIR",
        description="Journal directory; unset keeps the ledger in memory.",
    )
    sync: bool = Field(
        default=True,
        validation_alias="CHUGSPLASH_LEDGER_SYNC",
        description="fsync every journal append (disable only for testing).",
    )
    signing_key_file: Optional[str] = Field(
        default=None,
        validation_alias="CHUGSPLASH_SIGNING_KEY_FILE",
        description="PEM Ed25519 private key used to sign journal entries.",
    )
    require_signatures: bool = Field(
        default=False,
        validation_alias="CHUGSPLASH_REQUIRE_SIGNATURES",
        description="Refuse to open a journal with unsigned entries.",
    )

    @field_validator("require_signatures")
    @classmethod
    def _signatures_need_key(cls, v: bool, info):
        if v and not info.data.get("signing_key_file"):
            raise ValueError("CHUGSPLASH_SIGNING_KEY_FILE is required when signatures are required")
        return v


class HTTPSettings(BaseSettings):
    """
    HTTP surface settings (bind host/port).
    """

    model_config = _CONFIG

    host: str = Field(
        default="127.0.0.1",
        validation_alias="CHUGSPLASH_HTTP_HOST",
        description="HTTP bind host for the FastAPI/Uvicorn server.",
    )
    port: int = Field(
        default=8545,
        validation_alias="CHUGSPLASH_HTTP_PORT",
        description="HTTP bind port for the FastAPI/Uvicorn server.",
    )


class ChugSplashSettings(BaseSettings):
    """
    Root configuration object for ChugSplash.

    Aggregates:
      - Ledger
      - HTTP
    """

    model_config = _CONFIG

    owner: Optional[str] = Field(
        default=None,
        validation_alias="CHUGSPLASH_OWNER",
        description="Initial owner address for a newly created ledger.",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="CHUGSPLASH_LOG_LEVEL",
        description="Root log level (DEBUG/INFO/WARNING/ERROR).",
    )
    ledger: LedgerSettings = Field(
        default_factory=LedgerSettings,
        validation_alias="CHUGSPLASH_LEDGER",
        description="Ledger group as a JSON object; normally read from CHUGSPLASH_LEDGER_*.",
    )
    http: HTTPSettings = Field(
        default_factory=HTTPSettings,
        validation_alias="CHUGSPLASH_HTTP",
    )

    @field_validator("owner")
    @classmethod
    def _normalize_owner(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        try:
            return normalize_address(v)
        except ValidationError as e:
            raise ValueError(str(e))

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        v = (v or "INFO").upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return "INFO"
        return v


@lru_cache(maxsize=1)
def get_settings() -> ChugSplashSettings:
    """
    Cached accessor for ChugSplashSettings.
    """
    return ChugSplashSettings()
