from datetime import datetime, timezone
from http import HTTPStatus

from svcframe.health import (
    HEALTHY_STATUS,
    UNHEALTHY_STATUS,
    WEBAPI_CACHE_CHECKER_NAME,
    WEBAPI_DB_CHECKER_NAME,
    WEBAPP_DB_CHECKER_NAME,
    HealthItem,
    aggregate_health,
    api_health_check,
    cache_health,
    database_health,
    webapp_health_check,
)
from svcframe.interceptors import DB_CONTEXT_KEY, REDIS_CACHE_STORE_KEY


class GoodDB:
    def ping(self):
        return None


class BadDB:
    def ping(self):
        raise RuntimeError("down")


class Cache:
    def __init__(self, answer=True, error=None):
        self.answer = answer
        self.error = error

    def ping(self):
        if self.error:
            raise RuntimeError(self.error)
        return self.answer


NOW = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_database_all_ok():
    item = database_health({"a": GoodDB(), "b": GoodDB()})
    assert item.status == HEALTHY_STATUS
    assert item.message == "context a: ok, context b: ok"
    assert item.item_name == WEBAPP_DB_CHECKER_NAME


def test_database_errors_listed_after_successes():
    item = database_health({"bad": BadDB(), "good": GoodDB(), "none": None})
    assert item.status == UNHEALTHY_STATUS
    assert item.message == (
        "context good: ok, context bad: down, context none: not found connection"
    )


def test_database_missing_uses_given_status():
    item = database_health(None, WEBAPI_DB_CHECKER_NAME, HEALTHY_STATUS)
    assert item.status == HEALTHY_STATUS
    assert item.message == "not found WebApp Database"
    assert database_health(None).status == UNHEALTHY_STATUS


def test_cache_states():
    item = cache_health({"a": Cache(), "b": Cache(False), "c": Cache(error="boom")})
    assert item.item_name == WEBAPI_CACHE_CHECKER_NAME
    assert item.status == UNHEALTHY_STATUS
    assert item.message == "context a: ok, context b: no response, context c: boom"


def test_cache_missing_is_healthy():
    item = cache_health(None)
    assert item.status == HEALTHY_STATUS
    assert item.message == "not found Redis cache store"


def test_aggregate_health():
    items = [HealthItem("x", HEALTHY_STATUS), HealthItem("y", UNHEALTHY_STATUS)]
    response = aggregate_health(items, NOW)
    assert response.status == UNHEALTHY_STATUS
    assert response.status_message == response.status
    assert response.items == items
    assert response.epoch_time == int(NOW.timestamp())
    assert response.status_time == NOW.strftime("%Y-%m-%d %H:%M:%S")


def test_aggregate_healthy_when_all_healthy():
    response = aggregate_health([HealthItem("x", HEALTHY_STATUS)], NOW)
    assert response.healthy
    assert response.status_message == HEALTHY_STATUS


def test_api_health_check_empty_context_is_ok():
    code, response = api_health_check({}, NOW)
    assert code == HTTPStatus.OK
    assert [i.item_name for i in response.items] == [
        WEBAPI_DB_CHECKER_NAME,
        WEBAPI_CACHE_CHECKER_NAME,
    ]


def test_api_health_check_failure():
    context = {DB_CONTEXT_KEY: {"main": BadDB()}, REDIS_CACHE_STORE_KEY: {"c": Cache()}}
    code, response = api_health_check(context, NOW)
    assert code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.status == UNHEALTHY_STATUS


def test_webapp_health_check():
    code, _ = webapp_health_check({}, NOW)
    assert code == HTTPStatus.INTERNAL_SERVER_ERROR
    code, response = webapp_health_check({DB_CONTEXT_KEY: {"m": GoodDB()}}, NOW)
    assert code == HTTPStatus.OK
    assert response.items[0].message == "context m: ok"