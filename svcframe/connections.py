"""Connection set-up helpers and the readiness/liveness health endpoints."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from http import HTTPStatus
from typing import Any, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

MIN_MAX_IDLE = 10
DEFAULT_SESSION_MAX_AGE = 60
MAX_SESSION_MAX_AGE = 24 * 60 * 60
DEFAULT_MAX_LENGTH = 4 * 1024
MAX_MAX_LENGTH = 250 * 1024 * 1024

READINESS_PATH = "/readiness"
LIVENESS_PATH = "/liveness"


class ConnectionFailedError(ConnectionError):
    """A connection could not be made within the allowed number of retries."""


class ReadinessState:
    """Thread-safe flag telling whether the server accepts new traffic."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ready = True

    @property
    def ready(self) -> bool:
        with self._lock:
            return self._ready

    def mark_not_ready(self) -> None:
        """Flag the server as draining so readiness checks start failing."""
        with self._lock:
            self._ready = False


def clamp_max_idle(max_idle: int) -> int:
    """Raise the redis idle-connection count to its minimum of 10."""
    return max(max_idle, MIN_MAX_IDLE)


def _max_length_bytes(max_length: int) -> int:
    if max_length * 1024 < DEFAULT_MAX_LENGTH or max_length * 1024 > MAX_MAX_LENGTH:
        return DEFAULT_MAX_LENGTH
    return max_length * 1024 * 1024


def session_limits(max_age_minutes: int, max_length: int) -> tuple[int, int]:
    """Return the session store's (max age in seconds, max length in bytes)."""
    seconds = max_age_minutes * 60
    if seconds < 60 or seconds > MAX_SESSION_MAX_AGE:
        seconds = DEFAULT_SESSION_MAX_AGE
    return seconds, _max_length_bytes(max_length)


def cache_max_length(max_length: int) -> int:
    """Return the redis cache store's max length in bytes."""
    return _max_length_bytes(max_length)


def connect_with_retry(
    name: str,
    factory: Callable[[], T],
    max_retries: int,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Call ``factory`` until it succeeds, retrying once a second.

    ``name`` labels the connection in log lines and in the error, for
    example ``"db context name: main"``. A ``None`` result counts as a
    failure. After ``max_retries`` retries the last failure is raised as
    :class:`ConnectionFailedError`.
    """
    attempt = 0
    while True:
        try:
            conn = factory()
            if conn is None:
                raise ConnectionError("cannot create connection")
            return conn
        except Exception as exc:
            if attempt >= max_retries:
                raise ConnectionFailedError(f"{name} {exc}") from exc
            log.warning("%s fail %s", name, exc)
            sleep(1)
            attempt += 1
            log.warning("%s reconnect %d time..", name, attempt)


def make_health_app(
    state: ReadinessState,
) -> Callable[[dict[str, Any], Callable[..., Any]], Iterable[bytes]]:
    """Build a WSGI application serving ``/readiness`` and ``/liveness``."""

    def app(environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        path = environ.get("PATH_INFO", "")
        if path == READINESS_PATH:
            status = HTTPStatus.OK if state.ready else HTTPStatus.SERVICE_UNAVAILABLE
        elif path == LIVENESS_PATH:
            status = HTTPStatus.OK
        else:
            status = HTTPStatus.NOT_FOUND
        start_response(f"{status.value} {status.phrase}", [("Content-Length", "0")])
        return [b""]

    return app