"""Notification interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional


class Notifier(ABC):
    """Abstract interface for delivering operator notifications."""

    @abstractmethod
    def send(self, kind: str, payload: Optional[Mapping[str, Any]] = None) -> None:
        """Format and deliver a message of ``kind``; raise ``NotifyError`` on failure."""
        raise NotImplementedError

    @abstractmethod
    def test_connection(self) -> bool:
        """Cheap round-trip probe used at startup."""
        raise NotImplementedError
