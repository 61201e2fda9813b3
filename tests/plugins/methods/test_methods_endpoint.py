from unittest.mock import AsyncMock, MagicMock

import pytest

from livedesk.main import app
from livedesk.utils.dependencies import get_database
from livedesk.utils.methods import MethodRegistry


@pytest.fixture
def collections() -> dict[str, MagicMock]:
    names = ("livechat_custom_field", "rooms", "livechat_visitor")
    mocks = {}
    for name in names:
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=None)
        collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
        mocks[name] = collection
    return mocks


@pytest.fixture
def methods_client(test_client, collections):
    database = MagicMock()
    database.__getitem__.side_effect = collections.__getitem__
    app.dependency_overrides[get_database] = lambda: database
    return test_client


def test_unknown_method(methods_client):
    response = methods_client.post("/methods/nope", json={"params": []})

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_set_custom_field_on_visitor(methods_client, collections):
    collections["livechat_custom_field"].find_one.return_value = {
        "_id": "company",
        "scope": "visitor",
    }

    response = methods_client.post(
        "/methods/livechat:setCustomField",
        json={"id": "7", "params": ["tok", "company", "Acme"]},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "id": "7", "result": True}
    collections["livechat_visitor"].update_one.assert_awaited_once_with(
        {"token": "tok"}, {"$set": {"livechatData.company": "Acme"}}
    )
    collections["rooms"].update_one.assert_not_awaited()


def test_set_custom_field_unknown_key(methods_client, collections):
    response = methods_client.post(
        "/methods/livechat:setCustomField", json={"params": ["tok", "nope", 1]}
    )

    assert response.json()["result"] is True
    collections["livechat_visitor"].update_one.assert_not_awaited()


def test_wrong_number_of_params(methods_client):
    response = methods_client.post(
        "/methods/livechat:setCustomField", json={"params": ["tok"]}
    )

    assert response.status_code == 400
    assert "Invalid params" in response.json()["error"]


def test_duplicate_registration_is_rejected():
    registry = MethodRegistry()

    @registry.method("ping")
    async def ping(ctx):
        return "pong"

    with pytest.raises(ValueError, match="already registered"):
        registry.method("ping")(ping)
    assert registry.names() == ["ping"]


@pytest.mark.parametrize("body", [{"params": "tok"}, {"params": [], "id": {"n": 1}}, ["tok"]])
def test_malformed_call_body_is_a_failure(methods_client, collections, body):
    response = methods_client.post("/methods/livechat:setCustomField", json=body)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"].startswith("Invalid request: ")
    collections["livechat_custom_field"].find_one.assert_not_awaited()
