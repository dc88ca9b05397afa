"""Cloudflare API client for reading and writing a zone's security level."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from src.config import CloudflareSettings
from src.services.security_levels import SecurityLevel
from src.utils.errors import RemoteApiError
from src.utils.retry import retry

log = logging.getLogger(__name__)


class CloudflareApiError(RuntimeError):
    """Cloudflare answered with ``success: false`` or an unreadable body."""


class CloudflareClient:
    """Thin wrapper around ``/zones/{zone}/settings/security_level``.

    Every request is retried ``max_retries`` times with a linear backoff of
    ``attempt * retry_delay`` seconds, each attempt bounded by
    ``request_timeout``. Exhausted retries surface as :class:`RemoteApiError`.
    """

    def __init__(
        self,
        cfg: CloudflareSettings,
        *,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not cfg.api_token or not cfg.zone_id:
            raise ValueError("CloudflareClient: api_token and zone_id are required")
        self._log = logger or log
        self._base = cfg.base_url.rstrip("/")
        self._zone_id = cfg.zone_id
        self._timeout = cfg.request_timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {cfg.api_token}",
                "Content-Type": "application/json",
            }
        )
        self._request = retry(
            tries=cfg.max_retries,
            delay=cfg.retry_delay,
            exceptions=(requests.RequestException, CloudflareApiError, ValueError),
            wrap=self._wrap_failure,
            log=self._log,
        )(self._request_once)

    @property
    def _endpoint(self) -> str:
        return f"/zones/{self._zone_id}/settings/security_level"

    @staticmethod
    def _wrap_failure(attempts: int, exc: BaseException) -> RemoteApiError:
        return RemoteApiError(
            f"Cloudflare API request failed after {attempts} attempts: {exc}",
            attempts=attempts,
            last_cause=exc,
        )

    def _request_once(self, method: str, endpoint: str, payload: Any = None) -> dict:
        response = self._session.request(
            method,
            f"{self._base}{endpoint}",
            json=payload,
            timeout=self._timeout,
        )
        data = response.json()
        if not isinstance(data, dict) or not data.get("success"):
            errors = data.get("errors") if isinstance(data, dict) else data
            raise CloudflareApiError(f"Cloudflare API error: {errors}")
        return data

    def get(self) -> SecurityLevel:
        """Return the zone's current security level."""
        data = self._request("GET", self._endpoint)
        raw = (data.get("result") or {}).get("value")
        try:
            level = SecurityLevel(raw)
        except ValueError:
            raise RemoteApiError(
                f"Cloudflare returned unknown security level: {raw!r}", attempts=1
            ) from None
        self._log.debug("Current Cloudflare security level: %s", level.value)
        return level

    def set(self, level: SecurityLevel | str) -> None:
        """Set the zone's security level; validates ``level`` before any request."""
        target = SecurityLevel.parse(level)
        self._request("PATCH", self._endpoint, {"value": target.value})
        self._log.info("Successfully set Cloudflare security level to: %s", target.value)

    def test_connection(self) -> bool:
        try:
            level = self.get()
        except RemoteApiError as exc:
            self._log.error("Cloudflare API connection test failed: %s", exc)
            return False
        self._log.info("Cloudflare API connection test successful (level=%s)", level.value)
        return True

    def close(self) -> None:
        self._session.close()


__all__ = ["CloudflareClient", "CloudflareApiError"]
