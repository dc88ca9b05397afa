from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests

from src.config import TelegramSettings
from src.notifications.base import Notifier
from src.notifications.messages import MessageContext, format_message
from src.utils.errors import NotifyError
from src.utils.retry import retry

log = logging.getLogger(__name__)


class TelegramApiError(RuntimeError):
    """Telegram answered with ``ok: false``."""


class TelegramNotifier(Notifier):
    """Deliver formatted operator messages to a single Telegram chat."""

    def __init__(
        self,
        cfg: TelegramSettings,
        ctx: MessageContext,
        *,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not cfg.bot_token or not cfg.chat_id:
            raise ValueError("TelegramNotifier: bot_token and chat_id are required")
        self._log = logger or log
        self._base = f"{cfg.base_url}{cfg.bot_token}"
        self._chat_id = cfg.chat_id
        self._timeout = cfg.request_timeout
        self._ctx = ctx
        self._session = session or requests.Session()
        self._request = retry(
            tries=cfg.max_retries,
            delay=cfg.retry_delay,
            exceptions=(requests.RequestException, TelegramApiError, ValueError),
            wrap=self._wrap_failure,
            log=self._log,
        )(self._request_once)

    @staticmethod
    def _wrap_failure(attempts: int, exc: BaseException) -> NotifyError:
        return NotifyError(
            f"Telegram API request failed after {attempts} attempts: {exc}",
            attempts=attempts,
            last_cause=exc,
        )

    def _request_once(self, method: str, endpoint: str, payload: Any = None) -> dict:
        response = self._session.request(
            method, f"{self._base}{endpoint}", json=payload, timeout=self._timeout
        )
        data = response.json()
        if not isinstance(data, dict) or not data.get("ok"):
            desc = data.get("description") if isinstance(data, dict) else data
            raise TelegramApiError(f"Telegram API error: {desc}")
        return data

    def send_message(self, text: str) -> None:
        payload = {"chat_id": self._chat_id, "text": text, "parse_mode": "Markdown"}
        self._request("POST", "/sendMessage", payload)
        self._log.info("Telegram message sent successfully")

    def send(self, kind: str, payload: Optional[Mapping[str, Any]] = None) -> None:
        text = format_message(kind, payload or {}, self._ctx)
        try:
            self.send_message(text)
        except NotifyError:
            self._log.error("Failed to send Telegram notification kind=%s", kind)
            raise

    def test_connection(self) -> bool:
        try:
            data = self._request("GET", "/getMe")
        except NotifyError as exc:
            self._log.error("Telegram API connection test failed: %s", exc)
            return False
        bot = data.get("result") or {}
        self._log.info(
            "Telegram API connection test successful bot=%s username=%s",
            bot.get("first_name"),
            bot.get("username"),
        )
        return True

    def close(self) -> None:
        self._session.close()


__all__ = ["TelegramNotifier", "TelegramApiError"]
