from __future__ import annotations

import pytest
import requests

from src.config import MonitoringSettings, TelegramSettings
from src.notifications.messages import MessageContext
from src.notifications.telegram_notifier import TelegramApiError, TelegramNotifier
from src.services.security_levels import SecurityLevel
from src.utils.errors import NotifyError


class FakeResponse:
    def __init__(self, body) -> None:
        self._body = body

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[tuple] = []
        self.closed = False

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json, timeout))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return FakeResponse(item)

    def close(self) -> None:
        self.closed = True


CFG = TelegramSettings(bot_token="123:abc", chat_id="-1001")
CTX = MessageContext(
    monitoring=MonitoringSettings(),
    default_security_level=SecurityLevel.MEDIUM,
    server_name="vps-1",
)
BASE = "https://api.telegram.org/bot123:abc"


def _notifier(session) -> TelegramNotifier:
    return TelegramNotifier(CFG, CTX, session=session)


def test_requires_credentials() -> None:
    with pytest.raises(ValueError):
        TelegramNotifier(TelegramSettings(bot_token="x"), CTX, session=FakeSession())


def test_send_posts_markdown_message() -> None:
    session = FakeSession({"ok": True, "result": {"message_id": 1}})
    _notifier(session).send("under_attack_enabled", {"cpu_usage": 93, "duration": 15})
    method, url, payload, timeout = session.calls[0]
    assert (method, url, timeout) == ("POST", f"{BASE}/sendMessage", 10.0)
    assert payload["chat_id"] == "-1001"
    assert payload["parse_mode"] == "Markdown"
    assert "*CPU Usage:* 93%" in payload["text"]
    assert "*Server:* vps-1" in payload["text"]


def test_send_wraps_exhausted_retries(_no_retry_sleep) -> None:
    session = FakeSession(requests.ConnectionError("no route"))
    with pytest.raises(NotifyError) as info:
        _notifier(session).send("error", {"error": "boom"})
    assert info.value.attempts == 3
    assert len(session.calls) == 3
    assert _no_retry_sleep == [1.0, 2.0]


def test_ok_false_is_an_error() -> None:
    session = FakeSession({"ok": False, "description": "Bad Request: chat not found"})
    with pytest.raises(NotifyError, match="chat not found") as info:
        _notifier(session).send_message("hi")
    assert isinstance(info.value.last_cause, TelegramApiError)


def test_test_connection_calls_get_me(caplog) -> None:
    session = FakeSession({"ok": True, "result": {"first_name": "Guard", "username": "guard_bot"}})
    with caplog.at_level("INFO"):
        assert _notifier(session).test_connection() is True
    assert session.calls[0][:2] == ("GET", f"{BASE}/getMe")
    assert "guard_bot" in caplog.text


def test_test_connection_false_on_failure() -> None:
    session = FakeSession({"ok": False, "description": "Unauthorized"})
    assert _notifier(session).test_connection() is False


def test_close_closes_session() -> None:
    session = FakeSession({"ok": True})
    _notifier(session).close()
    assert session.closed is True
