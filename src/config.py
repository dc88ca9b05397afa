"""Config with nested models + flat aliases for the legacy variable names.

- Nested env vars follow Pydantic's ``__`` delimiter (``MONITORING__CPU_THRESHOLD``).
- The flat names used by earlier deployments (``CPU_THRESHOLD``,
  ``CLOUDFLARE_API_TOKEN`` ...) are still honoured through ``from_env``.
- Nothing here is a process-wide singleton: ``load_settings()`` returns a
  fresh ``AppSettings`` that the entry point hands to each component.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.services.security_levels import SecurityLevel
from src.utils.env import env_flag


def env_any(*names: str, default: str | None = None) -> str | None:
    """Return the first non-empty environment variable from ``names``."""
    for name in names:
        val = os.getenv(name)
        if val:
            return val
    return default


def _int_env(*names: str, default: int) -> int:
    """Return the first parseable positive ``int`` among ``names``.

    Mirrors the legacy ``parseInt(x) || default`` behaviour: missing, invalid
    or zero values fall back to ``default``.
    """
    raw = env_any(*names)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        logging.getLogger(__name__).warning("Invalid integer for %s: %s", names[0], raw)
        return default
    return value or default


# ================= Sub-models =================


class CloudflareSettings(BaseModel):
    api_token: str = ""
    zone_id: str = ""
    default_security_level: SecurityLevel = SecurityLevel.MEDIUM
    base_url: str = "https://api.cloudflare.com/client/v4"
    request_timeout: float = 10.0
    max_retries: int = Field(3, ge=1)
    retry_delay: float = Field(2.0, ge=0.0)

    @classmethod
    def from_env(cls) -> "CloudflareSettings":
        """Load nested or legacy flat env vars."""
        return cls(
            api_token=env_any("CLOUDFLARE__API_TOKEN", "CLOUDFLARE_API_TOKEN") or "",
            zone_id=env_any("CLOUDFLARE__ZONE_ID", "CLOUDFLARE_ZONE_ID") or "",
            default_security_level=env_any(
                "CLOUDFLARE__DEFAULT_SECURITY_LEVEL",
                "CLOUDFLARE_DEFAULT_SECURITY_LEVEL",
                default=SecurityLevel.MEDIUM.value,
            ),
        )

    @field_validator("default_security_level")
    @classmethod
    def _v_default_level(cls, v: SecurityLevel) -> SecurityLevel:
        """The restore target cannot be the elevated posture itself."""
        if v is SecurityLevel.UNDER_ATTACK:
            raise ValueError("default_security_level must not be under_attack")
        return v


class TelegramSettings(BaseModel):
    bot_token: str = ""
    chat_id: str = ""
    base_url: str = "https://api.telegram.org/bot"
    request_timeout: float = 10.0
    max_retries: int = Field(3, ge=1)
    retry_delay: float = Field(1.0, ge=0.0)

    @classmethod
    def from_env(cls) -> "TelegramSettings":
        """Support legacy flat env vars such as ``TELEGRAM_CHAT_ID``."""
        return cls(
            bot_token=env_any("TELEGRAM__BOT_TOKEN", "TELEGRAM_BOT_TOKEN") or "",
            chat_id=env_any("TELEGRAM__CHAT_ID", "TELEGRAM_CHAT_ID") or "",
        )


class MonitoringSettings(BaseModel):
    cpu_threshold: int = Field(80, ge=1, le=100)
    high_cpu_duration: int = Field(15, gt=0)
    cooldown_period: int = Field(60, gt=0)
    monitoring_interval: int = Field(5, gt=0)

    @classmethod
    def from_env(cls) -> "MonitoringSettings":
        return cls(
            cpu_threshold=_int_env("MONITORING__CPU_THRESHOLD", "CPU_THRESHOLD", default=80),
            high_cpu_duration=_int_env(
                "MONITORING__HIGH_CPU_DURATION", "HIGH_CPU_DURATION", default=15
            ),
            cooldown_period=_int_env(
                "MONITORING__COOLDOWN_PERIOD", "COOLDOWN_PERIOD", default=60
            ),
            monitoring_interval=_int_env(
                "MONITORING__MONITORING_INTERVAL", "MONITORING_INTERVAL", default=5
            ),
        )


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: Literal["logfmt", "json"] = "logfmt"
    log_to_file: bool = False
    log_file_path: Path = Path("./logs/monitor.log")

    @classmethod
    def from_env(cls) -> "LoggingSettings":
        fmt = (env_any("LOGGING__FORMAT", "LOG_FORMAT", default="logfmt") or "logfmt").lower()
        return cls(
            level=(env_any("LOGGING__LEVEL", "LOG_LEVEL", default="INFO") or "INFO").upper(),
            format="json" if fmt == "json" else "logfmt",
            log_to_file=env_flag("LOGGING__LOG_TO_FILE", "LOG_TO_FILE"),
            log_file_path=Path(
                env_any("LOGGING__LOG_FILE_PATH", "LOG_FILE_PATH", default="./logs/monitor.log")
                or "./logs/monitor.log"
            ),
        )


class HealthSettings(BaseModel):
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = Field(8000, gt=0, lt=65536)

    @classmethod
    def from_env(cls) -> "HealthSettings":
        return cls(
            enabled=env_flag("HEALTH__ENABLED", "HEALTH_ENABLED"),
            host=env_any("HEALTH__HOST", "HEALTH_HOST", default="0.0.0.0") or "0.0.0.0",
            port=_int_env("HEALTH__PORT", "HEALTH_PORT", default=8000),
        )


# ================= Root settings =================


class AppSettings(BaseSettings):
    cloudflare: CloudflareSettings = Field(default_factory=CloudflareSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",  # e.g., MONITORING__CPU_THRESHOLD
        extra="ignore",
    )

    def redacted(self) -> dict:
        """Return a ``model_dump`` with credentials masked."""
        snap = self.model_dump(mode="json")
        if snap["cloudflare"].get("api_token"):
            snap["cloudflare"]["api_token"] = "***"
        if snap["telegram"].get("bot_token"):
            snap["telegram"]["bot_token"] = "***"
        return snap


def load_settings(env_file: str | None = ".env") -> AppSettings:
    """Return application settings loaded from ``.env`` and the environment.

    Variables already present in the environment win over the ``.env`` file.
    """
    if env_file:
        load_dotenv(env_file, override=False)
    cfg = AppSettings(
        cloudflare=CloudflareSettings.from_env(),
        telegram=TelegramSettings.from_env(),
        monitoring=MonitoringSettings.from_env(),
        logging=LoggingSettings.from_env(),
        health=HealthSettings.from_env(),
        _env_file=None,
    )  # type: ignore[call-arg]
    logging.getLogger("config").info("settings snapshot: %s", cfg.redacted())
    return cfg


__all__ = [
    "AppSettings",
    "CloudflareSettings",
    "TelegramSettings",
    "MonitoringSettings",
    "LoggingSettings",
    "HealthSettings",
    "env_any",
    "load_settings",
]
