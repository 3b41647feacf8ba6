from types import SimpleNamespace

from svcframe.interceptors import (
    DB_CONTEXT_KEY,
    DYNAMO_CONTEXT_KEY,
    REDIS_CACHE_STORE_KEY,
    SQS_CONTEXT_KEY,
    WrappedServerStream,
    stream_server_interceptor,
    unary_server_interceptor,
    wrap_server_stream,
)

DBS, CACHES, DYNAMOS, QUEUES = {"db": 1}, {"cache": 2}, {"dyn": 3}, {"q": 4}


def test_unary_adds_connections_without_mutating():
    original = {"user": "alice"}
    intercept = unary_server_interceptor(DBS, CACHES, DYNAMOS, QUEUES)
    ctx, req = intercept(original, "req", None, lambda c, r: (c, r))
    assert req == "req"
    assert ctx["user"] == "alice"
    assert ctx[DB_CONTEXT_KEY] is DBS
    assert ctx[REDIS_CACHE_STORE_KEY] is CACHES
    assert ctx[DYNAMO_CONTEXT_KEY] is DYNAMOS
    assert ctx[SQS_CONTEXT_KEY] is QUEUES
    assert original == {"user": "alice"}


def test_unary_with_no_context():
    intercept = unary_server_interceptor(DBS, CACHES, DYNAMOS, QUEUES)
    ctx = intercept(None, None, None, lambda c, r: c)
    assert set(ctx) == {DB_CONTEXT_KEY, REDIS_CACHE_STORE_KEY, DYNAMO_CONTEXT_KEY, SQS_CONTEXT_KEY}


def test_wrap_is_idempotent_and_delegates():
    stream = SimpleNamespace(context={"a": 1}, peer="client")
    wrapped = wrap_server_stream(stream)
    assert wrapped.context == {"a": 1}
    assert wrapped.peer == "client"
    assert wrap_server_stream(wrapped) is wrapped


def test_wrapped_context_overrides():
    wrapped = WrappedServerStream(SimpleNamespace(context={"a": 1}), {"b": 2})
    assert wrapped.context == {"b": 2}


def test_stream_interceptor():
    stream = SimpleNamespace(context=None)
    intercept = stream_server_interceptor(DBS, CACHES, DYNAMOS, QUEUES)
    srv, wrapped = intercept("srv", stream, None, lambda s, w: (s, w))
    assert srv == "srv"
    assert wrapped.stream is stream
    assert wrapped.context[DB_CONTEXT_KEY] is DBS
    assert wrapped.context[SQS_CONTEXT_KEY] is QUEUES
    assert wrapped.context[REDIS_CACHE_STORE_KEY] is CACHES