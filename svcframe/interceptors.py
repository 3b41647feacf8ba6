"""gRPC interceptors that place shared connections into the call context."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Optional

DB_CONTEXT_KEY = "db-contexts"
REDIS_CACHE_STORE_KEY = "redis-cache-store"
DYNAMO_CONTEXT_KEY = "dynamo-contexts"
SQS_CONTEXT_KEY = "sqs-contexts"


class WrappedServerStream:
    """A server stream whose context can be replaced."""

    def __init__(self, stream: Any, wrapped_context: Optional[Mapping[str, Any]]) -> None:
        self.stream = stream
        self.wrapped_context = wrapped_context

    @property
    def context(self) -> Optional[Mapping[str, Any]]:
        return self.wrapped_context

    def __getattr__(self, name: str) -> Any:
        return getattr(self.stream, name)


def wrap_server_stream(stream: Any) -> WrappedServerStream:
    """Wrap ``stream`` unless it is already wrapped."""
    if isinstance(stream, WrappedServerStream):
        return stream
    return WrappedServerStream(stream, getattr(stream, "context", None))


def _with_connections(
    ctx: Optional[Mapping[str, Any]],
    db_connections: Any,
    cache_connections: Any,
    dynamo_dbs: Any,
    sqss: Any,
) -> dict[str, Any]:
    return {
        **(ctx or {}),
        DB_CONTEXT_KEY: db_connections,
        REDIS_CACHE_STORE_KEY: cache_connections,
        DYNAMO_CONTEXT_KEY: dynamo_dbs,
        SQS_CONTEXT_KEY: sqss,
    }


def unary_server_interceptor(
    db_connections: Any, cache_connections: Any, dynamo_dbs: Any, sqss: Any
) -> Callable[..., Any]:
    """Interceptor for unary calls: handler(ctx, request) with connections added."""

    def intercept(ctx: Optional[Mapping[str, Any]], request: Any, info: Any,
                  handler: Callable[[Mapping[str, Any], Any], Any]) -> Any:
        new_ctx = _with_connections(ctx, db_connections, cache_connections, dynamo_dbs, sqss)
        return handler(new_ctx, request)

    return intercept


def stream_server_interceptor(
    db_connections: Any, cache_connections: Any, dynamo_dbs: Any, sqss: Any
) -> Callable[..., Any]:
    """Interceptor for streams: the wrapped stream's context gains the connections."""

    def intercept(srv: Any, stream: Any, info: Any,
                  handler: Callable[[Any, WrappedServerStream], Any]) -> Any:
        wrapped = wrap_server_stream(stream)
        wrapped.wrapped_context = _with_connections(
            wrapped.context, db_connections, cache_connections, dynamo_dbs, sqss
        )
        return handler(srv, wrapped)

    return intercept