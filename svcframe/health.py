"""Health-check items and aggregated health responses."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from http import HTTPStatus
from typing import Any, Optional

from svcframe.interceptors import DB_CONTEXT_KEY, REDIS_CACHE_STORE_KEY

HEALTHY_STATUS = "healthy"
UNHEALTHY_STATUS = "un-healthy"

WEBAPI_DB_CHECKER_NAME = "WebAPI Database"
WEBAPI_CACHE_CHECKER_NAME = "WebAPI Cache"
WEBAPP_DB_CHECKER_NAME = "WebApp Database"

STATUS_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class HealthItem:
    """Health of one checked component."""

    item_name: str
    status: str = ""
    message: str = ""


@dataclass
class HealthResponse:
    """Overall health built from the individual items."""

    status: str = HEALTHY_STATUS
    status_message: str = ""
    status_time: str = ""
    epoch_time: int = 0
    items: list[HealthItem] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return self.status == HEALTHY_STATUS


def _summarise(item_name: str, successes: list[str], errors: list[str]) -> HealthItem:
    if errors:
        return HealthItem(item_name, UNHEALTHY_STATUS, ", ".join(successes + errors))
    return HealthItem(item_name, HEALTHY_STATUS, ", ".join(successes))


def database_health(
    connections: Optional[Mapping[str, Any]],
    item_name: str = WEBAPP_DB_CHECKER_NAME,
    missing_status: str = UNHEALTHY_STATUS,
) -> HealthItem:
    """Ping every database connection; ``ping`` raises when it fails."""
    if not isinstance(connections, Mapping):
        return HealthItem(item_name, missing_status, "not found WebApp Database")
    successes: list[str] = []
    errors: list[str] = []
    for name, conn in connections.items():
        if conn is None:
            errors.append(f"context {name}: not found connection")
            continue
        try:
            conn.ping()
        except Exception as exc:  # any failure marks the context unhealthy
            errors.append(f"context {name}: {exc}")
        else:
            successes.append(f"context {name}: ok")
    return _summarise(item_name, successes, errors)


def cache_health(connections: Optional[Mapping[str, Any]]) -> HealthItem:
    """Ping every cache connection; ``ping`` returns a bool or raises."""
    if not isinstance(connections, Mapping):
        return HealthItem(
            WEBAPI_CACHE_CHECKER_NAME, HEALTHY_STATUS, "not found Redis cache store"
        )
    successes: list[str] = []
    errors: list[str] = []
    for name, conn in connections.items():
        if conn is None:
            errors.append(f"context {name}: not found connection")
            continue
        try:
            answered = conn.ping()
        except Exception as exc:
            errors.append(f"context {name}: {exc}")
            continue
        if answered:
            successes.append(f"context {name}: ok")
        else:
            errors.append(f"context {name}: no response")
    return _summarise(WEBAPI_CACHE_CHECKER_NAME, successes, errors)


def aggregate_health(
    items: Iterable[HealthItem], now: Optional[datetime] = None
) -> HealthResponse:
    """Combine items into one response; any unhealthy item makes it unhealthy."""
    now = now or datetime.now()
    items = list(items)
    status = (
        UNHEALTHY_STATUS
        if any(item.status == UNHEALTHY_STATUS for item in items)
        else HEALTHY_STATUS
    )
    return HealthResponse(
        status=status,
        status_message=status,
        status_time=now.strftime(STATUS_TIME_FORMAT),
        epoch_time=int(now.timestamp()),
        items=items,
    )


def _respond(response: HealthResponse) -> tuple[HTTPStatus, HealthResponse]:
    code = HTTPStatus.OK if response.healthy else HTTPStatus.INTERNAL_SERVER_ERROR
    return code, response


def api_health_check(
    context: Mapping[str, Any], now: Optional[datetime] = None
) -> tuple[HTTPStatus, HealthResponse]:
    """Health of the API server's databases and caches found in ``context``."""
    items = [
        database_health(
            context.get(DB_CONTEXT_KEY), WEBAPI_DB_CHECKER_NAME, HEALTHY_STATUS
        ),
        cache_health(context.get(REDIS_CACHE_STORE_KEY)),
    ]
    return _respond(aggregate_health(items, now))


def webapp_health_check(
    context: Mapping[str, Any], now: Optional[datetime] = None
) -> tuple[HTTPStatus, HealthResponse]:
    """Health of the website's databases found in ``context``."""
    items = [
        database_health(
            context.get(DB_CONTEXT_KEY), WEBAPP_DB_CHECKER_NAME, UNHEALTHY_STATUS
        )
    ]
    return _respond(aggregate_health(items, now))