"""Repository layer for livechat custom fields, rooms and visitors."""

from abc import ABC, abstractmethod
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError
from structlog import get_logger

from livedesk.utils.exceptions import ServiceError

from .models import CustomField

logger = get_logger(__name__)


class CustomFieldRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def find_by_id(self, key: str) -> CustomField | None:
        try:
            doc = await self._collection.find_one({"_id": key})
        except PyMongoError as e:
            logger.error("DB error finding custom field", key=key, error=str(e))
            raise ServiceError(f"Database error while finding custom field: {e}") from e
        return CustomField.model_validate(doc) if doc else None


class LivechatDataRepository(ABC):
    """
    Writes ``livechatData.<key>`` on the document addressed by a visitor
    token. Subclasses only decide how the token selects the document.
    """

    entity = "document"

    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    @abstractmethod
    def _token_query(self, token: str) -> dict[str, Any]:
        """MongoDB filter selecting the document that belongs to ``token``."""

    async def update_livechat_data_by_token(
        self, token: str, key: str, value: Any, overwrite: bool = True
    ) -> bool:
        query = self._token_query(token)
        field = f"livechatData.{key}"
        try:
            if not overwrite:
                doc = await self._collection.find_one(query, {field: 1})
                if doc and key in (doc.get("livechatData") or {}):
                    return True

            result = await self._collection.update_one(query, {"$set": {field: value}})
        except PyMongoError as e:
            logger.error(
                f"DB error updating {self.entity} livechat data", key=key, error=str(e)
            )
            raise ServiceError(
                f"Database error while updating {self.entity} livechat data: {e}"
            ) from e

        logger.info(
            f"Updated {self.entity} livechat data",
            key=key,
            matched=result.matched_count,
        )
        return result.matched_count > 0


class RoomRepository(LivechatDataRepository):
    entity = "room"

    def _token_query(self, token: str) -> dict[str, Any]:
        return {"v.token": token, "open": True}


class VisitorRepository(LivechatDataRepository):
    entity = "visitor"

    def _token_query(self, token: str) -> dict[str, Any]:
        return {"token": token}
