from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import PyMongoError

from livedesk.plugins.livechat.models import CustomField
from livedesk.plugins.livechat.repository import (
    LivechatDataRepository,
    RoomRepository,
    VisitorRepository,
)
from livedesk.plugins.livechat.service import LivechatService
from livedesk.utils.exceptions import ServiceError


@pytest.fixture
def custom_fields() -> MagicMock:
    repository = MagicMock()
    repository.find_by_id = AsyncMock(return_value=None)
    return repository


@pytest.fixture
def rooms() -> MagicMock:
    repository = MagicMock()
    repository.update_livechat_data_by_token = AsyncMock(return_value=True)
    return repository


@pytest.fixture
def visitors() -> MagicMock:
    repository = MagicMock()
    repository.update_livechat_data_by_token = AsyncMock(return_value=True)
    return repository


@pytest.fixture
def service(custom_fields, rooms, visitors) -> LivechatService:
    return LivechatService(custom_fields, rooms, visitors)


@pytest.mark.asyncio
async def test_unknown_key_is_accepted_without_writes(service, rooms, visitors):
    assert await service.set_custom_field("tok", "nope", "value") is True

    rooms.update_livechat_data_by_token.assert_not_awaited()
    visitors.update_livechat_data_by_token.assert_not_awaited()


@pytest.mark.asyncio
async def test_room_scoped_field_writes_room(service, custom_fields, rooms, visitors):
    custom_fields.find_by_id.return_value = CustomField(id="ticket", scope="room")

    assert await service.set_custom_field("tok", "ticket", "T-1", False) is True

    rooms.update_livechat_data_by_token.assert_awaited_once_with("tok", "ticket", "T-1", False)
    visitors.update_livechat_data_by_token.assert_not_awaited()


@pytest.mark.asyncio
async def test_visitor_scoped_field_writes_visitor(service, custom_fields, rooms, visitors):
    custom_fields.find_by_id.return_value = CustomField(id="company", scope="visitor")
    visitors.update_livechat_data_by_token.return_value = False

    assert await service.set_custom_field("tok", "company", "Acme") is False

    visitors.update_livechat_data_by_token.assert_awaited_once_with("tok", "company", "Acme", True)
    rooms.update_livechat_data_by_token.assert_not_awaited()


def _collection(doc=None, matched_count=1) -> MagicMock:
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=doc)
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=matched_count))
    return collection


@pytest.mark.asyncio
async def test_room_update_targets_open_room_of_visitor():
    collection = _collection()

    assert await RoomRepository(collection).update_livechat_data_by_token("tok", "ticket", "T-1")

    collection.update_one.assert_awaited_once_with(
        {"v.token": "tok", "open": True}, {"$set": {"livechatData.ticket": "T-1"}}
    )
    collection.find_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_overwrite_keeps_existing_value():
    collection = _collection(doc={"_id": "v1", "livechatData": {"company": "Old"}})

    result = await VisitorRepository(collection).update_livechat_data_by_token(
        "tok", "company", "New", overwrite=False
    )

    assert result is True
    collection.update_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_overwrite_sets_missing_value():
    collection = _collection(doc={"_id": "v1", "livechatData": {}})

    await VisitorRepository(collection).update_livechat_data_by_token(
        "tok", "company", "New", overwrite=False
    )

    collection.update_one.assert_awaited_once_with(
        {"token": "tok"}, {"$set": {"livechatData.company": "New"}}
    )


@pytest.mark.asyncio
async def test_unmatched_token_reports_false():
    collection = _collection(matched_count=0)

    assert not await VisitorRepository(collection).update_livechat_data_by_token(
        "missing", "company", "Acme"
    )


@pytest.mark.asyncio
async def test_database_errors_become_service_errors():
    collection = _collection()
    collection.update_one.side_effect = PyMongoError("boom")

    with pytest.raises(ServiceError, match="visitor livechat data"):
        await VisitorRepository(collection).update_livechat_data_by_token("tok", "k", "v")


def test_token_lookup_must_be_defined_by_subclasses():
    class UntargetedRepository(LivechatDataRepository):
        entity = "nothing"

    with pytest.raises(TypeError):
        UntargetedRepository(_collection())

    with pytest.raises(TypeError):
        LivechatDataRepository(_collection())
