"""Route registries, server options and route assembly for the API server."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

SECURE_MIDDLEWARE = "SECURE"
CSRF_MIDDLEWARE = "CSRF"
CORS_MIDDLEWARE = "CORS"
DB_CONTEXT_APPENDER_MIDDLEWARE = "DB_CONTEXT_APPENDER"
CACHE_STORE_APPENDER_MIDDLEWARE = "CACHE_STORE_APPENDER"
NO_CACHE_MIDDLEWARE = "NO_CACHE"
UUID_SESSION_GENERATOR_MIDDLEWARE = "UUID_SESSION_GENERATOR"
DYNAMO_CONTEXT_APPENDER_MIDDLEWARE = "DYNAMO_CONTEXT_APPENDER"
SQS_CONTEXT_APPENDER_MIDDLEWARE = "SQS_CONTEXT_APPENDER"

DEFAULT_API_MIDDLEWARES = (
    SECURE_MIDDLEWARE,
    CSRF_MIDDLEWARE,
    CORS_MIDDLEWARE,
    DB_CONTEXT_APPENDER_MIDDLEWARE,
    CACHE_STORE_APPENDER_MIDDLEWARE,
    DYNAMO_CONTEXT_APPENDER_MIDDLEWARE,
    SQS_CONTEXT_APPENDER_MIDDLEWARE,
)

SUPPORTED_HTTP_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"}
)


class RegistryError(ValueError):
    """A registry, option or route definition is invalid."""


@dataclass
class APIRegistry:
    """One web API endpoint to register."""

    url: str = ""
    handler: Optional[Callable[..., Any]] = None
    method: str = ""
    skip_default_server_api_middlewares: bool = False
    server_api_middlewares: list[str] = field(default_factory=list)
    middlewares: list[Callable[..., Any]] = field(default_factory=list)


@dataclass
class GRPCRegistry:
    """gRPC server options and service registration callables."""

    server_options: list[Any] = field(default_factory=list)
    register_funcs: list[Callable[[Any], None]] = field(default_factory=list)


@dataclass(frozen=True)
class Route:
    """A resolved route: method, URL, handler and its middleware chain."""

    method: str
    url: str
    handler: Callable[..., Any]
    middlewares: tuple[Any, ...] = ()


class Validator:
    """Delegates validation to values that know how to validate themselves."""

    def validate(self, value: Any) -> Any:
        check = getattr(value, "validate", None)
        if not callable(check):
            raise RegistryError("type is not validatable")
        return check()


def api_registry_opt(api_registries: list[APIRegistry]) -> Callable[[Any], None]:
    """Option that installs the API registries on a server."""

    def apply(server: Any) -> None:
        if not api_registries:
            raise RegistryError("api registry is require")
        server.api_registries = api_registries

    return apply


def grpc_registry_opt(grpc_registry: Optional[GRPCRegistry]) -> Callable[[Any], None]:
    """Option that installs the gRPC registry on a server."""

    def apply(server: Any) -> None:
        if grpc_registry is None:
            raise RegistryError("grpc registry is require")
        if not grpc_registry.register_funcs:
            raise RegistryError("grpc registry service funcs is require")
        server.grpc_registry = grpc_registry

    return apply


def _lookup(middlewares: Mapping[str, Any], name: str) -> Any:
    try:
        return middlewares[name]
    except KeyError:
        raise RegistryError(f"unknown server middleware [{name}]") from None


def _session_chain(session_middlewares: Optional[Mapping[str, Any]]) -> list[Any]:
    chain = []
    for name, middleware in (session_middlewares or {}).items():
        if not name or not name.strip():
            raise RegistryError(
                "session context appender middleware is require session name"
            )
        if middleware is None:
            raise RegistryError("session context appender middleware is require store")
        chain.append(middleware)
    return chain


def _validate(registry: APIRegistry) -> None:
    if registry.method not in SUPPORTED_HTTP_METHODS:
        raise RegistryError(f"webapi invalid http method [{registry.method}]")
    if not registry.url or not registry.url.strip():
        raise RegistryError("web API URL is require")
    if registry.handler is None:
        raise RegistryError(f"webapi url [{registry.url}] handler is require")


def build_api_routes(
    registries: Iterable[APIRegistry],
    middlewares: Mapping[str, Any],
    session_middlewares: Optional[Mapping[str, Any]] = None,
) -> list[Route]:
    """Validate the registries and resolve each one's middleware chain."""
    registries = list(registries)
    if not registries:
        raise RegistryError("api registry is require")
    sessions = _session_chain(session_middlewares)
    for registry in registries:
        _validate(registry)

    routes = []
    for registry in registries:
        if registry.server_api_middlewares:
            names: Iterable[str] = registry.server_api_middlewares
        elif registry.skip_default_server_api_middlewares:
            names = ()
        else:
            names = DEFAULT_API_MIDDLEWARES
        chain = [_lookup(middlewares, name) for name in names]
        if sessions:
            chain.extend(sessions)
            chain.append(_lookup(middlewares, UUID_SESSION_GENERATOR_MIDDLEWARE))
        chain.extend(registry.middlewares)
        routes.append(Route(registry.method, registry.url, registry.handler, tuple(chain)))
    return routes