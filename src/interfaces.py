"""Core component interfaces used across the application."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from src.services.security_levels import SecurityLevel


class Sampler(Protocol):
    """Produces the current CPU utilization as a percentage."""

    def current_load(self) -> int: ...


class SecurityLevelClient(Protocol):
    """Reads and writes the remote security posture."""

    def get(self) -> SecurityLevel: ...

    def set(self, level: SecurityLevel | str) -> None: ...

    def test_connection(self) -> bool: ...


class Notifier(Protocol):
    """User notification component."""

    def send(self, kind: str, payload: Optional[Mapping[str, Any]] = None) -> None: ...

    def test_connection(self) -> bool: ...
