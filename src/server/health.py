"""Optional HTTP probe server exposing the orchestrator status snapshot.

Started on a daemon thread by ``src.main`` when ``HEALTH__ENABLED`` is set
and served by waitress.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from flask import Flask, Response
from waitress import serve

StatusFn = Callable[[], dict[str, Any]]

app = Flask(__name__)
log = logging.getLogger(__name__)

_status_fn: StatusFn | None = None
_booted_at = time.time()


def set_status_callback(callback: StatusFn | None) -> None:
    """Register the function whose snapshot backs ``/ready`` and ``/status``."""
    global _status_fn
    _status_fn = callback


def _uptime() -> int:
    return int(time.time() - _booted_at)


@app.get("/live")
def live() -> tuple[dict[str, Any], int]:
    return {"status": "live", "uptime_sec": _uptime()}, 200


@app.get("/ready")
def ready() -> tuple[dict[str, Any], int]:
    """200 once the monitoring loop runs; reports the current posture."""
    if _status_fn is None:
        return {"status": "starting"}, 503
    try:
        snap = _status_fn()
    except Exception as exc:
        log.exception("ready probe failed: %s", exc)
        return {"status": "down", "error": str(exc)}, 503
    if not snap.get("is_running"):
        return {"status": "down", "reason": "stopped"}, 503
    detector = snap.get("cpu_status") or {}
    return {"status": "ready", "under_attack": bool(detector.get("is_elevated"))}, 200


@app.route("/health", methods=["HEAD"])
def health_head() -> Response:
    return Response(status=200)


@app.get("/status")
def status() -> tuple[dict[str, Any], int]:
    try:
        snap = _status_fn() if _status_fn else {}
    except Exception as exc:
        log.exception("status snapshot failed: %s", exc)
        return {"ok": False, "error": str(exc)}, 500
    return {"ok": bool(snap.get("is_running", False)), "uptime": _uptime(), "monitor": snap}, 200


def run(callback: StatusFn | None = None, host: str = "0.0.0.0", port: int = 8000) -> None:
    """Serve the probe endpoints in the calling thread until the process exits."""
    global _booted_at
    set_status_callback(callback)
    _booted_at = time.time()
    log.info("health server listening on %s:%s", host, port)
    # waitress installs its own handler; route it through the root logger instead
    wl = logging.getLogger("waitress")
    wl.handlers.clear()
    wl.propagate = True
    serve(app, host=host, port=port)
