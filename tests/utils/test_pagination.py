import pytest

from livedesk.config import AppConfig
from livedesk.utils.exceptions import BadRequestError
from livedesk.utils.pagination import get_pagination_items, parse_json_query


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(API_DEFAULT_COUNT=25, API_UPPER_COUNT_LIMIT=100)


def test_default_count(config):
    pagination = get_pagination_items(config, offset=0, count=None)

    assert (pagination.offset, pagination.count) == (0, 25)


def test_count_is_capped(config):
    assert get_pagination_items(config, offset=40, count=500).count == 100


def test_json_query_parsing():
    parsed = parse_json_query(
        sort='{"_updatedAt": -1}', fields='{"method": 1}', query='{"method": "ping"}'
    )

    assert parsed.sort == {"_updatedAt": -1}
    assert parsed.fields == {"method": 1}
    assert parsed.query == {"method": "ping"}


def test_json_query_defaults():
    parsed = parse_json_query(sort=None, fields=None, query=None)

    assert parsed.sort is None
    assert parsed.fields is None
    assert parsed.query == {}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sort": "{not json"},
        {"sort": '["_updatedAt"]'},
        {"sort": '{"_updatedAt": 2}'},
        {"fields": '{"method": true}'},
        {"query": "42"},
    ],
)
def test_json_query_rejects_malformed_parameters(kwargs):
    params = {"sort": None, "fields": None, "query": None, **kwargs}

    with pytest.raises(BadRequestError):
        parse_json_query(**params)
