"""Cloudflare zone security levels."""

from __future__ import annotations

from enum import Enum

from src.utils.errors import InvalidArgument


class SecurityLevel(str, Enum):
    OFF = "off"
    ESSENTIALLY_OFF = "essentially_off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNDER_ATTACK = "under_attack"

    @classmethod
    def parse(cls, value: "SecurityLevel | str") -> "SecurityLevel":
        """Return the member for ``value`` or raise :class:`InvalidArgument`."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(level.value for level in cls)
            raise InvalidArgument(
                f"Invalid security level: {value}. Valid levels: {valid}"
            ) from None

    @property
    def label(self) -> str:
        """Human readable form, e.g. ``under attack``."""
        return self.value.replace("_", " ")


__all__ = ["SecurityLevel"]
