"""Structured logging for the monitor: logfmt or JSON on stdout, JSON to file."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from src.config import LoggingSettings

_LOG = logging.getLogger(__name__)

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}
_OWN_ATTRS = frozenset({"extra", "ts", "tag"})

_QUIET_LOGGERS = ("urllib3", "werkzeug", "waitress")


def _iso_now() -> str:
    return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


def _q(value: Any) -> str:
    """Render ``value`` as a logfmt value, quoting when needed."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value).replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')
    if not text or " " in text or "=" in text:
        return f'"{text}"'
    return text


def _collect_extra(record: logging.LogRecord) -> dict[str, Any]:
    """Return the caller-supplied fields of ``record``.

    ``log_event`` nests its fields under ``record.extra``; plain
    ``logger.info(..., extra={...})`` calls set them as record attributes.
    Both are merged, nested fields first.
    """
    fields: dict[str, Any] = {}
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        fields.update(nested)
    for key, value in vars(record).items():
        if key not in _STANDARD_ATTRS and key not in _OWN_ATTRS:
            fields.setdefault(key, value)
    return fields


def _head(record: logging.LogRecord) -> tuple[str, str, str]:
    ts = getattr(record, "ts", None) or _iso_now()
    tag = getattr(record, "tag", None) or record.name
    return ts, record.levelname.lower(), tag


class _LogfmtFormatter(logging.Formatter):
    """``ts=... lvl=... tag=... k=v msg="..."`` on a single line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        ts, level, tag = _head(record)
        parts = [f"ts={ts}", f"lvl={level}", f"tag={_q(tag)}"]
        parts.extend(f"{k}={_q(v)}" for k, v in _collect_extra(record).items())
        msg = record.getMessage()
        if msg:
            parts.append(f"msg={_q(msg)}")
        if record.exc_info:
            parts.append(f"exc={_q(self.formatException(record.exc_info))}")
        return " ".join(parts)


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; used for the file sink."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        ts, level, tag = _head(record)
        payload: dict[str, Any] = _collect_extra(record)
        payload.update(ts=ts, level=level, tag=tag, msg=record.getMessage() or "")
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_root_logger(cfg: Optional[LoggingSettings] = None) -> None:
    """(Re)configure the root logger from ``cfg``.

    Existing root handlers are replaced, so calling this twice (once with env
    defaults, once with validated settings) leaves a single console handler.
    The optional file sink always writes JSON lines.
    """
    cfg = cfg or LoggingSettings()
    level_name = cfg.level.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_JsonFormatter() if cfg.format == "json" else _LogfmtFormatter())
    root.addHandler(console)

    if cfg.log_to_file:
        path = cfg.log_file_path.expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(path, encoding="utf-8")
        sink.setFormatter(_JsonFormatter())
        root.addHandler(sink)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _LOG.info(
        "logging.init",
        extra={"extra": {"log_level": level_name, "format": cfg.format, "file": cfg.log_to_file}},
    )


def log_event(tag: str, level: str = "info", **fields: Any) -> None:
    """Emit one structured line tagged ``tag`` carrying ``fields``."""
    logger = logging.getLogger(tag)
    emit = getattr(logger, level.lower(), None)
    if not callable(emit):
        emit = logger.info
    msg = " ".join(f"{k}={_q(v)}" for k, v in fields.items())
    emit(msg, extra={"extra": fields, "ts": _iso_now(), "tag": tag})


__all__ = ["setup_root_logger", "log_event"]
