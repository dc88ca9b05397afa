"""Bounded retries with linear backoff for outbound API calls."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional, ParamSpec, Tuple, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

WrapFn = Callable[[int, BaseException], BaseException]
OnRetryFn = Callable[[int, BaseException, float], None]


@dataclass(frozen=True)
class Backoff:
    """Attempt budget and sleep schedule.

    Attempt ``n`` (1-based) that fails is followed by ``n * delay`` seconds of
    sleep, capped at ``max_delay`` when set. No sleep follows the last attempt.
    """

    tries: int = 3
    delay: float = 1.0
    max_delay: Optional[float] = None

    def __post_init__(self) -> None:
        if self.tries < 1:
            raise ValueError("tries must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")
        if self.max_delay is not None and self.max_delay < 0:
            raise ValueError("max_delay must be >= 0")

    def sleep_for(self, attempt: int) -> float:
        wait = self.delay * max(1, attempt)
        if self.max_delay is not None:
            wait = min(wait, self.max_delay)
        return max(0.0, wait)


def retry(
    *,
    tries: int = 3,
    delay: float = 1.0,
    max_delay: Optional[float] = None,
    exceptions: Tuple[type[BaseException], ...] = (Exception,),
    exclude_exceptions: Tuple[type[BaseException], ...] = (),
    on_retry: Optional[OnRetryFn] = None,
    wrap: Optional[WrapFn] = None,
    log: Optional[logging.Logger] = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorate a callable so transient failures are retried.

    ``exceptions`` select what is retried and ``exclude_exceptions`` always
    propagate immediately. Once the budget is spent the last error is
    re-raised, or, when ``wrap(attempts, last_error)`` is given, its return
    value is raised with the last error chained as ``__cause__``.

    Usage::

        send = retry(tries=3, delay=1.0, wrap=to_notify_error)(post_message)
    """
    policy = Backoff(int(tries), float(delay), max_delay)
    lg = log or logger

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        name = getattr(func, "__name__", repr(func))

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                attempt += 1
                try:
                    return func(*args, **kwargs)
                except exclude_exceptions:
                    raise
                except exceptions as exc:
                    if attempt >= policy.tries:
                        lg.error("%s failed after %d attempt(s): %s", name, attempt, exc)
                        if wrap is None:
                            raise
                        raise wrap(attempt, exc) from exc
                    wait = policy.sleep_for(attempt)
                    lg.warning(
                        "%s attempt %d/%d failed: %s; retrying in %.1fs",
                        name, attempt, policy.tries, exc, wait,
                    )
                    if on_retry is not None:
                        on_retry(attempt, exc, wait)
                    time.sleep(wait)

        return wrapper

    return decorator


__all__ = ["Backoff", "retry"]
