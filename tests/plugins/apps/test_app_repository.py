from unittest.mock import AsyncMock, MagicMock

import pytest
from bson.errors import InvalidDocument
from pymongo.errors import PyMongoError

from livedesk.plugins.apps.models import AppStatus, InstalledApp
from livedesk.plugins.apps.repository import AppRepository
from livedesk.utils.exceptions import BadRequestError, ServiceError


@pytest.fixture
def app_record() -> InstalledApp:
    return InstalledApp(id="hello-app", info={"id": "hello-app"}, status=AppStatus.AUTO_ENABLED)


@pytest.mark.asyncio
async def test_save_upserts_full_record(app_record):
    collection = MagicMock()
    collection.replace_one = AsyncMock()

    await AppRepository(collection).save(app_record, "UEsDBA==")

    query, document = collection.replace_one.call_args.args
    assert query == {"_id": "hello-app"}
    assert document["zip"] == "UEsDBA=="
    assert document["status"] == "auto_enabled"
    assert collection.replace_one.call_args.kwargs == {"upsert": True}


@pytest.mark.asyncio
async def test_unencodable_record_is_a_client_error(app_record):
    collection = MagicMock()
    collection.replace_one = AsyncMock(side_effect=InvalidDocument("cannot encode object"))

    with pytest.raises(BadRequestError, match="cannot be stored"):
        await AppRepository(collection).save(app_record, "UEsDBA==")


@pytest.mark.asyncio
async def test_database_failure_is_a_service_error(app_record):
    collection = MagicMock()
    collection.replace_one = AsyncMock(side_effect=PyMongoError("down"))

    with pytest.raises(ServiceError) as excinfo:
        await AppRepository(collection).save(app_record, "UEsDBA==")
    assert excinfo.value.status_code == 500
