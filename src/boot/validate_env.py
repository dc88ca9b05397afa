import logging
import os
from pathlib import Path

import yaml  # type: ignore[import-untyped]

from src.config import AppSettings
from src.utils.errors import StartupError

log = logging.getLogger(__name__)


def seed_env_from_defaults(path: str = "config/defaults.yaml") -> None:
    """Populate ``os.environ`` with values from a defaults YAML file.

    Existing environment variables take precedence and are not overridden.
    Nested keys in the YAML are flattened using ``__`` to mirror Pydantic's
    ``env_nested_delimiter`` behaviour, so ``monitoring: {cpu_threshold: 90}``
    seeds ``MONITORING__CPU_THRESHOLD=90``.
    """

    p = Path(path)
    if not p.is_file():
        return

    try:
        data = yaml.safe_load(p.read_text("utf-8")) or {}
    except yaml.YAMLError:
        log.exception("Failed loading %s", p)
        return
    if not isinstance(data, dict):
        log.warning("Ignoring %s: top level must be a mapping", p)
        return

    def _flatten(prefix: str, obj: dict[str, object]) -> None:
        for k, v in obj.items():
            key = f"{prefix}{k}".upper()
            if isinstance(v, dict):
                _flatten(f"{key}__", v)
            else:
                os.environ.setdefault(key, str(v))

    _flatten("", data)


def validate_critical_settings(cfg: AppSettings) -> None:
    """Raise :class:`StartupError` naming every missing credential."""

    required = {
        "CLOUDFLARE_API_TOKEN": cfg.cloudflare.api_token,
        "CLOUDFLARE_ZONE_ID": cfg.cloudflare.zone_id,
        "TELEGRAM_BOT_TOKEN": cfg.telegram.bot_token,
        "TELEGRAM_CHAT_ID": cfg.telegram.chat_id,
    }
    missing = [name for name, value in required.items() if not str(value or "").strip()]
    if missing:
        raise StartupError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
    _log_cred_presence(cfg)


def _log_cred_presence(cfg: AppSettings) -> None:
    """Log which credentials are configured without revealing them."""

    def mask(v: str | None) -> bool:
        return bool(v and v.strip())

    log.info(
        "cloudflare_token=%s zone=%s telegram_token=%s chat=%s",
        mask(cfg.cloudflare.api_token),
        mask(cfg.cloudflare.zone_id),
        mask(cfg.telegram.bot_token),
        mask(cfg.telegram.chat_id),
    )


__all__ = ["seed_env_from_defaults", "validate_critical_settings"]
