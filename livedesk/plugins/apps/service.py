"""Service layer shaping App manager results into API payloads."""

import base64
from typing import Annotated, Any

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from structlog import get_logger

from livedesk.utils.dependencies import get_database
from livedesk.utils.exceptions import (
    AppNotFoundError,
    BadRequestError,
    SettingNotFoundError,
    ServiceError,
)
from livedesk.utils.pagination import JsonQuery, Pagination

from .manager import AppManager
from .models import COMPILER_ERROR_STATUS, AppInstallResult, InstalledApp
from .repository import AppLogRepository

logger = get_logger(__name__)

NO_PACKAGE_MESSAGE = "Failed to get a file to install for the App. "


class AppsService:
    def __init__(self, manager: AppManager, logs: AppLogRepository):
        self.manager = manager
        self.logs = logs

    async def _require_app(self, app_id: str) -> InstalledApp:
        app = await self.manager.get_by_id(app_id)
        if not app:
            raise AppNotFoundError(app_id)
        return app

    async def list_apps(self) -> list[dict[str, Any]]:
        apps = await self.manager.list()
        return [
            {**app.info, "languages": app.language_content, "status": app.status.value}
            for app in apps
        ]

    async def list_languages(self) -> list[dict[str, Any]]:
        apps = await self.manager.list()
        return [{"id": app.id, "languages": app.language_content} for app in apps]

    async def install(self, package: bytes | None) -> dict[str, Any]:
        if not package:
            raise BadRequestError(NO_PACKAGE_MESSAGE)
        result = await self.manager.add(_encode(package), False)
        return _install_payload(result)

    async def update(self, app_id: str, package: bytes | None) -> dict[str, Any]:
        if not package:
            raise BadRequestError(NO_PACKAGE_MESSAGE)
        result = await self.manager.update(_encode(package), app_id=app_id)
        return _install_payload(result)

    async def get_app(self, app_id: str) -> dict[str, Any]:
        app = await self._require_app(app_id)
        return app.info_with_status()

    async def uninstall(self, app_id: str) -> dict[str, Any]:
        app = await self._require_app(app_id)
        await self.manager.remove(app.id)
        return app.info_with_status()

    async def get_icon(self, app_id: str) -> str | None:
        app = await self._require_app(app_id)
        return app.info.get("iconFileContent")

    async def get_languages(self, app_id: str) -> dict[str, Any]:
        app = await self._require_app(app_id)
        return app.language_content or {}

    async def get_logs(
        self, app_id: str, pagination: Pagination, json_query: JsonQuery
    ) -> list[dict[str, Any]]:
        app = await self._require_app(app_id)
        return await self.logs.find(
            {**json_query.query, "appId": app.id},
            sort=json_query.sort or {"_updatedAt": -1},
            skip=pagination.offset,
            limit=pagination.count,
            fields=json_query.fields,
        )

    async def get_settings(self, app_id: str) -> dict[str, dict[str, Any]]:
        app = await self._require_app(app_id)
        return {
            setting_id: setting
            for setting_id, setting in app.settings.items()
            if not setting.get("hidden")
        }

    async def update_settings(
        self, app_id: str, settings: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Applies the settings the App declares; unknown ids are skipped."""
        app = await self._require_app(app_id)
        updated = []
        for setting in settings:
            if setting.get("id") in app.settings:
                await self.manager.settings_manager.update_app_setting(app_id, setting)
                updated.append(setting)
            else:
                logger.debug(
                    "Skipping unknown app setting",
                    app_id=app_id,
                    setting_id=setting.get("id"),
                )
        return updated

    async def get_setting(self, app_id: str, setting_id: str) -> dict[str, Any]:
        try:
            return await self.manager.settings_manager.get_app_setting(app_id, setting_id)
        except (AppNotFoundError, SettingNotFoundError):
            raise
        except ServiceError as e:
            raise BadRequestError(e.detail) from e
        except Exception as e:
            logger.error("Unexpected error reading app setting", error=str(e))
            raise BadRequestError(str(e)) from e

    async def update_setting(
        self, app_id: str, setting_id: str, setting: dict[str, Any]
    ) -> None:
        try:
            await self.manager.settings_manager.update_app_setting(
                app_id, {**setting, "id": setting_id}
            )
        except (AppNotFoundError, SettingNotFoundError):
            raise
        except ServiceError as e:
            raise BadRequestError(e.detail) from e
        except Exception as e:
            logger.error("Unexpected error updating app setting", error=str(e))
            raise BadRequestError(str(e)) from e

    async def list_apis(self, app_id: str) -> list[dict[str, Any]]:
        app = await self._require_app(app_id)
        return await self.manager.api_manager.list_apis(app.id)

    async def get_status(self, app_id: str) -> str:
        app = await self._require_app(app_id)
        return app.status.value

    async def change_status(self, app_id: str, status: str) -> str:
        app = await self._require_app(app_id)
        result = await self.manager.change_status(app.id, status)
        return result.status.value


def _encode(package: bytes) -> str:
    return base64.b64encode(package).decode("ascii")


def _install_payload(result: AppInstallResult) -> dict[str, Any]:
    info = dict(result.info)
    # A package with compiler errors never produces an App to ask for a status.
    info["status"] = result.app.status.value if result.app else COMPILER_ERROR_STATUS
    return {
        "app": info,
        "implemented": result.implemented,
        "compilerErrors": result.compiler_errors,
    }


def get_app_manager(request: Request) -> AppManager:
    """Dependency to get the shared AppManager from the application state."""
    return request.app.state.app_manager


async def get_app_logs_collection(
    database: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
) -> AsyncIOMotorCollection:
    return database["app_logs"]


async def get_app_log_repository(
    collection: Annotated[AsyncIOMotorCollection, Depends(get_app_logs_collection)],
) -> AppLogRepository:
    return AppLogRepository(collection)


async def get_apps_service(
    manager: Annotated[AppManager, Depends(get_app_manager)],
    logs: Annotated[AppLogRepository, Depends(get_app_log_repository)],
) -> AppsService:
    return AppsService(manager, logs)
