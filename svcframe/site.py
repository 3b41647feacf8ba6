"""Website registry: page templates, page and API routes, and the view model."""

from __future__ import annotations

import os
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Optional

from jinja2 import DictLoader, Environment, Template, TemplateSyntaxError

from svcframe.health import webapp_health_check
from svcframe.service_registry import (
    CORS_MIDDLEWARE,
    CSRF_MIDDLEWARE,
    DB_CONTEXT_APPENDER_MIDDLEWARE,
    NO_CACHE_MIDDLEWARE,
    SECURE_MIDDLEWARE,
    UUID_SESSION_GENERATOR_MIDDLEWARE,
    RegistryError,
)

VIEW_MODEL_GENERATOR_MIDDLEWARE = "VIEW_MODEL_GENERATOR"
CSRF_INCLUDE_GET_METHOD_MIDDLEWARE = "CSRF_INCLUDE_GET_METHOD"
VIEW_MODEL_CONTEXT_KEY = "view_model-contexts"
CSRF_TOKEN_VIEW_MODEL_KEY = "csrfToken"
GOOGLE_TAG_MANAGER_CONTAINER_ID_KEY = "gtmContainerId"
CSRF_CONTEXT_KEY = "csrf"

HEALTH_CHECK_URL = "/health-check"

DEFAULT_PAGE_MIDDLEWARES = (
    SECURE_MIDDLEWARE,
    CSRF_MIDDLEWARE,
    CORS_MIDDLEWARE,
    NO_CACHE_MIDDLEWARE,
    DB_CONTEXT_APPENDER_MIDDLEWARE,
    VIEW_MODEL_GENERATOR_MIDDLEWARE,
)

DEFAULT_SITE_API_MIDDLEWARES = (
    SECURE_MIDDLEWARE,
    CSRF_MIDDLEWARE,
    CORS_MIDDLEWARE,
    DB_CONTEXT_APPENDER_MIDDLEWARE,
)


class SiteError(RegistryError):
    """The site registry, its templates or its routes are invalid."""


@dataclass
class WebPageAPI:
    """An API endpoint that belongs to a page."""

    url: str = ""
    handler: Optional[Callable[..., Any]] = None
    method: str = ""
    server_api_middlewares: list[str] = field(default_factory=list)
    middlewares: list[Callable[..., Any]] = field(default_factory=list)
    skip_default_server_api_middlewares: bool = False


@dataclass
class WebPage:
    """A rendered page: its template files, URLs, handler and APIs."""

    require_base: bool = False
    name: str = ""
    template_files: list[str] = field(default_factory=list)
    url: str = ""
    urls: list[str] = field(default_factory=list)
    method: str = ""
    page_handler: Optional[Callable[..., Any]] = None
    middlewares: list[Callable[..., Any]] = field(default_factory=list)
    server_page_middlewares: list[str] = field(default_factory=list)
    skip_default_server_api_middlewares: bool = False
    page_apis: list[WebPageAPI] = field(default_factory=list)


@dataclass
class BaseWebPage:
    """The shared layout template and site-wide APIs."""

    name: str = ""
    template_files: list[str] = field(default_factory=list)
    page_apis: list[WebPageAPI] = field(default_factory=list)


@dataclass
class SiteRegistry:
    """Everything a website registers."""

    base_web_page: BaseWebPage = field(default_factory=BaseWebPage)
    web_pages: list[WebPage] = field(default_factory=list)


@dataclass(frozen=True)
class SiteRoute:
    """A resolved route: method, URL, handler and its middleware chain."""

    method: str
    url: str
    handler: Optional[Callable[..., Any]]
    middlewares: tuple[Any, ...] = ()


class Validator:
    """Delegates validation to values that know how to validate themselves."""

    def validate(self, value: Any) -> Any:
        check = getattr(value, "validate", None)
        if not callable(check):
            raise SiteError("type is not validatable")
        return check()


class TemplateRegistry:
    """Named templates ready to render."""

    def __init__(self, templates: Mapping[str, Template]) -> None:
        self.templates = dict(templates)

    def render(self, name: str, data: Any) -> str:
        """Render the template ``name`` with ``data``."""
        template = self.templates.get(name)
        if template is None:
            raise SiteError("Template not found " + name)
        if isinstance(data, Mapping):
            return template.render(dict(data))
        return template.render(data=data)


def _is_empty(value: Optional[str]) -> bool:
    return not value or not value.strip()


def _check_file(path: str, seen: Counter) -> None:
    if _is_empty(path):
        raise SiteError("template file is require")
    seen[path] += 1
    if seen[path] > 1:
        raise SiteError(f"template file: {path} is duplicate")
    if not os.path.isfile(path):
        raise SiteError(f"template file: {path} not exist")


def _read(owner: str, path: str) -> str:
    try:
        with open(path, encoding="utf-8") as handle:
            return handle.read()
    except OSError as exc:
        raise SiteError(f"error generator template {owner} {path} {exc}") from exc


def _compile(owner: str, layers: list[tuple[str, str]]) -> Template:
    """Chain the layers so each later file refines the blocks of the one before."""
    sources: dict[str, str] = {}
    paths: dict[str, str] = {}
    for index, (path, text) in enumerate(layers):
        key = f"layer{index}"
        if index:
            text = "{%% extends 'layer%d' %%}" % (index - 1) + text
        sources[key] = text
        paths[key] = path
    env = Environment(loader=DictLoader(sources), autoescape=True)
    for key in sources:
        try:
            env.get_template(key)
        except TemplateSyntaxError as exc:
            path = paths.get(exc.name or key, paths[key])
            raise SiteError(f"error generator template {owner} {path} {exc}") from exc
    return env.get_template(f"layer{len(layers) - 1}")


def generate_templates(site: Optional[SiteRegistry]) -> dict[str, Template]:
    """Validate the site's template files and build one template per page."""
    if site is None:
        raise SiteError("site registry is require")

    names: Counter = Counter()
    files: Counter = Counter()
    base = site.base_web_page

    if len(base.template_files) > 1:
        if _is_empty(base.name):
            raise SiteError("base template name is require")
        names[base.name] += 1
        for path in base.template_files:
            _check_file(path, files)

    base_layers = [(path, _read(base.name, path)) for path in base.template_files]
    if base_layers:
        _compile(base.name, base_layers)

    for page in site.web_pages:
        if _is_empty(page.name):
            raise SiteError("web page template name is require")
        names[page.name] += 1
        if names[page.name] > 1:
            raise SiteError(f"template name: {page.name} is duplicate")
        for path in page.template_files:
            _check_file(path, files)

    templates: dict[str, Template] = {}
    for page in site.web_pages:
        if not page.template_files:
            continue
        layers = list(base_layers) if page.require_base and base_layers else []
        layers.extend((path, _read(page.name, path)) for path in page.template_files)
        templates[page.name] = _compile(page.name, layers)
    return templates


def _lookup(middlewares: Mapping[str, Any], name: str) -> Any:
    try:
        return middlewares[name]
    except KeyError:
        raise SiteError(f"unknown server middleware [{name}]") from None


def _session_chain(session_middlewares: Optional[Mapping[str, Any]]) -> list[Any]:
    chain = []
    for name, middleware in (session_middlewares or {}).items():
        if _is_empty(name):
            raise SiteError("session context appender middleware is require session name")
        if middleware is None:
            raise SiteError("session context appender middleware is require store")
        chain.append(middleware)
    return chain


def _chain(
    names: Iterable[str],
    extra: Iterable[Any],
    middlewares: Mapping[str, Any],
    sessions: list[Any],
) -> tuple[Any, ...]:
    chain = [_lookup(middlewares, name) for name in names]
    if sessions:
        chain.extend(sessions)
        chain.append(_lookup(middlewares, UUID_SESSION_GENERATOR_MIDDLEWARE))
    chain.extend(extra)
    return tuple(chain)


def build_site_routes(
    site: Optional[SiteRegistry],
    middlewares: Mapping[str, Any],
    session_middlewares: Optional[Mapping[str, Any]] = None,
) -> list[SiteRoute]:
    """Resolve every base API, page, page API and the health check into routes."""
    if site is None:
        raise SiteError("site registry is require")
    sessions = _session_chain(session_middlewares)
    routes: list[SiteRoute] = []

    for api in site.base_web_page.page_apis:
        names = api.server_api_middlewares or DEFAULT_SITE_API_MIDDLEWARES
        chain = _chain(names, api.middlewares, middlewares, sessions)
        routes.append(SiteRoute(api.method, api.url, api.handler, chain))

    for page in site.web_pages:
        if page.server_page_middlewares:
            names: Iterable[str] = page.server_page_middlewares
        elif page.skip_default_server_api_middlewares:
            names = ()
        else:
            names = DEFAULT_PAGE_MIDDLEWARES
        chain = _chain(names, page.middlewares, middlewares, sessions)
        for url in [page.url, *page.urls]:
            routes.append(SiteRoute(page.method, url, page.page_handler, chain))

    for page in site.web_pages:
        for api in page.page_apis:
            if api.server_api_middlewares:
                names = api.server_api_middlewares
            elif api.skip_default_server_api_middlewares:
                names = ()
            else:
                names = DEFAULT_SITE_API_MIDDLEWARES
            chain = _chain(names, api.middlewares, middlewares, sessions)
            routes.append(SiteRoute(api.method, api.url, api.handler, chain))

    routes.append(
        SiteRoute(
            "GET",
            HEALTH_CHECK_URL,
            webapp_health_check,
            (_lookup(middlewares, DB_CONTEXT_APPENDER_MIDDLEWARE),),
        )
    )
    return routes


def view_model_middleware(
    container_id: Optional[str] = None,
) -> Callable[[Callable[[MutableMapping[str, Any]], Any]], Callable[..., Any]]:
    """Middleware that puts the CSRF token and tag manager id into a view model."""

    def middleware(next_handler: Callable[[MutableMapping[str, Any]], Any]):
        def handler(context: MutableMapping[str, Any]) -> Any:
            view_model: dict[str, Any] = {}
            token = context.get(CSRF_CONTEXT_KEY)
            if isinstance(token, str):
                view_model[CSRF_TOKEN_VIEW_MODEL_KEY] = token
            if not _is_empty(container_id):
                view_model[GOOGLE_TAG_MANAGER_CONTAINER_ID_KEY] = container_id
            if view_model:
                context[VIEW_MODEL_CONTEXT_KEY] = view_model
            return next_handler(context)

        return handler

    return middleware