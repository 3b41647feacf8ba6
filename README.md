# svcframe

Building blocks for HTTP API services and server-rendered web sites.

- **Health reporting** (`svcframe.health`). `database_health` and
  `cache_health` ping each connection in a mapping and return a `HealthItem`.
  `aggregate_health` combines items into a `HealthResponse`, which is
  un-healthy if any item is. `api_health_check` and `webapp_health_check`
  read the connection maps from a request context. They return an
  `HTTPStatus`, which is `OK` or `INTERNAL_SERVER_ERROR`, together with the
  response.
- **API route assembly** (`svcframe.service_registry`). `APIRegistry` and
  `GRPCRegistry` describe endpoints. `api_registry_opt` and
  `grpc_registry_opt` build options that install them on a server object.
  `build_api_routes` validates each registry's HTTP method, URL and handler,
  then resolves its middleware chain into a list of `Route` objects. The chain
  is made of the named or default middlewares, the session middlewares
  followed by the UUID session generator, and the route's own middlewares.
  Problems raise `RegistryError`.
- **Web sites** (`svcframe.site`). `SiteRegistry`, `BaseWebPage`, `WebPage`
  and `WebPageAPI` describe a site. `generate_templates` checks the template
  files and compiles one Jinja2 template per page. A page can be layered on
  top of the base page's templates. `TemplateRegistry` renders the compiled
  templates by name. `build_site_routes` resolves base APIs, pages (including
  their extra URLs), page APIs and a `GET /health-check` route into
  `SiteRoute` objects. `view_model_middleware` puts the CSRF token and a tag
  manager container id into a view model in the request context. Problems
  raise `SiteError`.
- **Interceptors** (`svcframe.interceptors`). `unary_server_interceptor` and
  `stream_server_interceptor` add the database, cache, DynamoDB and SQS
  connection maps to a call's context. `wrap_server_stream` makes a stream's
  context replaceable.
- **Connection helpers** (`svcframe.connections`):
  - `connect_with_retry` calls a factory and retries once a second. After the
    last retry fails it raises `ConnectionFailedError`.
  - `clamp_max_idle`, `session_limits` and `cache_max_length` apply the limits
    for Redis sessions and caches.
  - `make_health_app` builds a WSGI application. It serves `/readiness`, whose
    answer follows a `ReadinessState`, and `/liveness`.

Both `svcframe.service_registry` and `svcframe.site` have a `Validator`. It
calls a value's own `validate()` method.

## Installation

```
pip install svcframe
```

## Examples

Health of the connections placed in a request context:

```python
from datetime import datetime
from svcframe.health import api_health_check
from svcframe.interceptors import DB_CONTEXT_KEY

class Db:
    def ping(self):
        pass

status, response = api_health_check({DB_CONTEXT_KEY: {"main": Db()}}, datetime.now())
print(status, response.status, [item.message for item in response.items])
```

Resolving API routes:

```python
from svcframe.service_registry import APIRegistry, build_api_routes

def hello(context):
    return "hello"

routes = build_api_routes(
    [APIRegistry(url="/hello", handler=hello, method="GET", server_api_middlewares=["CORS"])],
    middlewares={"CORS": "cors-middleware"},
)
print(routes[0].method, routes[0].url, routes[0].middlewares)
```

Retrying a connection:

```python
from svcframe.connections import connect_with_retry

conn = connect_with_retry("db context name: main", lambda: object(), max_retries=3)
```

## What this package does not do

The package has no configuration models and no configuration validation. It
does not load settings from files or from the environment.

It includes no HTTP or gRPC server that binds ports, serves requests or shuts
down on signals. Routes, interceptors and the readiness application are
handed to whatever server the caller runs.

It opens no database, Redis, DynamoDB or SQS connections of its own. The
caller supplies the connection factories and the objects that have a `ping()`
method.

## Running the tests

```
pip install -e .[test]
pytest
```