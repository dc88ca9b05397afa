"""Error taxonomy shared by the monitor, its clients and the entry point."""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for all errors raised by the agent."""


class SampleError(MonitorError):
    """CPU sampling failed; fatal to the current tick only."""


class InvalidArgument(MonitorError, ValueError):
    """A caller passed a value the remote API would reject."""


class _RetriedError(MonitorError):
    def __init__(
        self,
        message: str,
        *,
        attempts: int = 1,
        last_cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_cause = last_cause


class RemoteApiError(_RetriedError):
    """Security-level read/write failed after exhausting retries."""


class NotifyError(_RetriedError):
    """Notification delivery failed after exhausting retries."""


class StartupError(MonitorError):
    """Startup could not complete; the process must exit non-zero."""


__all__ = [
    "MonitorError",
    "SampleError",
    "InvalidArgument",
    "RemoteApiError",
    "NotifyError",
    "StartupError",
]
