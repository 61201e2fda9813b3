from datetime import UTC, datetime
from typing import Any

from bson.errors import InvalidDocument
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import OperationFailure, PyMongoError
from structlog import get_logger

from livedesk.utils.exceptions import BadRequestError, ServiceError

from .models import AppStatus, InstalledApp

logger = get_logger(__name__)

# The stored package can be large; reads never need it.
WITHOUT_PACKAGE = {"zip": 0}


class AppRepository:
    """Handles all database operations for the 'apps' collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def find_all(self) -> list[InstalledApp]:
        try:
            cursor = self._collection.find({}, WITHOUT_PACKAGE).sort("info.name", 1)
            return [InstalledApp.model_validate(doc) async for doc in cursor]
        except PyMongoError as e:
            logger.error("DB error listing apps", error=str(e))
            raise ServiceError(f"Database error while listing apps: {e}") from e

    async def find_by_id(self, app_id: str) -> InstalledApp | None:
        try:
            doc = await self._collection.find_one({"_id": app_id}, WITHOUT_PACKAGE)
        except PyMongoError as e:
            logger.error("DB error getting app", app_id=app_id, error=str(e))
            raise ServiceError(f"Database error while getting app '{app_id}'") from e
        return InstalledApp.model_validate(doc) if doc else None

    async def save(self, app: InstalledApp, package_b64: str) -> None:
        """Creates or fully replaces the App record together with its package."""
        now = datetime.now(UTC)
        document = {
            "_id": app.id,
            "info": app.info,
            "status": app.status.value,
            "settings": app.settings,
            "languageContent": app.language_content,
            "implemented": app.implemented,
            "apis": app.apis,
            "zip": package_b64,
            "createdAt": app.created_at or now,
            "_updatedAt": now,
        }
        try:
            await self._collection.replace_one({"_id": app.id}, document, upsert=True)
        except PyMongoError as e:
            logger.error("DB error saving app", app_id=app.id, error=str(e))
            raise ServiceError(f"Database error while saving app '{app.id}'") from e
        except InvalidDocument as e:
            logger.warning("App record is not storable", app_id=app.id, error=str(e))
            raise BadRequestError(f"The App package cannot be stored: {e}") from e

    async def delete(self, app_id: str) -> bool:
        try:
            result = await self._collection.delete_one({"_id": app_id})
        except PyMongoError as e:
            logger.error("DB error removing app", app_id=app_id, error=str(e))
            raise ServiceError(f"Database error while removing app '{app_id}'") from e
        return result.deleted_count > 0

    async def update_status(self, app_id: str, status: AppStatus) -> bool:
        return await self._set_fields(app_id, {"status": status.value})

    async def update_setting(
        self, app_id: str, setting_id: str, setting: dict[str, Any]
    ) -> bool:
        return await self._set_fields(app_id, {f"settings.{setting_id}": setting})

    async def _set_fields(self, app_id: str, fields: dict[str, Any]) -> bool:
        try:
            result = await self._collection.update_one(
                {"_id": app_id},
                {"$set": {**fields, "_updatedAt": datetime.now(UTC)}},
            )
        except PyMongoError as e:
            logger.error("DB error updating app", app_id=app_id, error=str(e))
            raise ServiceError(f"Database error while updating app '{app_id}'") from e
        return result.matched_count > 0


class AppLogRepository:
    """Read access to the 'app_logs' collection."""

    DEFAULT_SORT = {"_updatedAt": DESCENDING}

    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def find(
        self,
        query: dict[str, Any],
        *,
        sort: dict[str, int] | None = None,
        skip: int = 0,
        limit: int = 0,
        fields: dict[str, int] | None = None,
    ) -> list[dict[str, Any]]:
        try:
            cursor = self._collection.find(
                query,
                projection=fields or None,
                sort=list((sort or self.DEFAULT_SORT).items()),
                skip=skip,
                limit=limit,
            )
            logs = await cursor.to_list(length=limit or None)
        except OperationFailure as e:
            logger.warning("Rejected app logs query", query=query, error=str(e))
            raise BadRequestError(f"Invalid logs query: {e}") from e
        except PyMongoError as e:
            logger.error("DB error reading app logs", query=query, error=str(e))
            raise ServiceError(f"Database error while reading app logs: {e}") from e

        for log in logs:
            if "_id" in log:
                log["_id"] = str(log["_id"])
        return logs
