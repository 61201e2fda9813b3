"""
MongoDB-backed App manager.

Stores validated App packages and their derived state (status, settings,
translations, declared APIs). App code is never executed here; enabling an
App only changes its recorded status.
"""

from datetime import UTC, datetime
from typing import Any

from structlog import get_logger

from livedesk.utils.exceptions import (
    AppAlreadyExistsError,
    AppNotFoundError,
    BadRequestError,
    InvalidAppStatusError,
    SettingNotFoundError,
)

from .models import AppInstallResult, AppStatus, InstalledApp
from .package import AppPackage, decode_package, parse_package
from .repository import AppRepository

logger = get_logger(__name__)


def _initial_status(settings: dict[str, dict[str, Any]]) -> AppStatus:
    for setting in settings.values():
        if setting.get("required") and setting.get("value") in (None, ""):
            return AppStatus.INVALID_SETTINGS_DISABLED
    return AppStatus.AUTO_ENABLED


class AppSettingsManager:
    def __init__(self, repository: AppRepository):
        self._repository = repository

    async def get_app_setting(self, app_id: str, setting_id: str) -> dict[str, Any]:
        app = await self._repository.find_by_id(app_id)
        if not app:
            raise AppNotFoundError(app_id)
        setting = app.settings.get(setting_id)
        if setting is None:
            raise SettingNotFoundError(app_id, setting_id)
        return setting

    async def update_app_setting(
        self, app_id: str, setting: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Stores a new value for one declared setting. Only ``value`` is taken
        from the caller; the declaration (type, hidden, required...) comes
        from the package.
        """
        setting_id = setting.get("id")
        app = await self._repository.find_by_id(app_id)
        if not app:
            raise AppNotFoundError(app_id)
        current = app.settings.get(setting_id) if setting_id else None
        if current is None:
            raise SettingNotFoundError(app_id, str(setting_id))

        updated = {**current, "value": setting.get("value"), "updatedAt": datetime.now(UTC)}
        if not await self._repository.update_setting(app_id, setting_id, updated):
            raise AppNotFoundError(app_id)

        logger.info("Updated app setting", app_id=app_id, setting_id=setting_id)
        return updated


class AppApiManager:
    def __init__(self, repository: AppRepository):
        self._repository = repository

    async def list_apis(self, app_id: str) -> list[dict[str, Any]]:
        """Endpoints an App exposes; disabled Apps expose none."""
        app = await self._repository.find_by_id(app_id)
        if not app:
            raise AppNotFoundError(app_id)
        if not app.status.is_enabled:
            return []

        apis = []
        for api in app.apis:
            visibility = api.get("visibility", "public")
            path = api["path"].strip("/")
            apis.append(
                {
                    "path": path,
                    "computedPath": f"/api/apps/{visibility}/{app_id}/{path}",
                    "methods": [m.lower() for m in api.get("methods", ["get"])],
                    "examples": api.get("examples", {}),
                }
            )
        return apis


class AppManager:
    def __init__(self, repository: AppRepository):
        self._repository = repository
        self.settings_manager = AppSettingsManager(repository)
        self.api_manager = AppApiManager(repository)

    async def list(self) -> list[InstalledApp]:
        return await self._repository.find_all()

    async def get_by_id(self, app_id: str) -> InstalledApp | None:
        return await self._repository.find_by_id(app_id)

    async def add(self, package_b64: str, overwrite: bool = False) -> AppInstallResult:
        package = self._parse(package_b64)
        if package.compiler_errors:
            return self._failed(package)

        app_id = package.app_id
        existing = await self._repository.find_by_id(app_id)
        if existing and not overwrite:
            raise AppAlreadyExistsError(app_id)

        app = InstalledApp(
            id=app_id,
            info=package.info,
            status=_initial_status(package.settings),
            settings=package.settings,
            language_content=package.language_content,
            implemented=package.implemented,
            apis=package.apis,
            created_at=existing.created_at if existing else None,
        )
        await self._repository.save(app, package_b64)
        logger.info(
            "Installed app",
            app_id=app_id,
            version=package.info.get("version"),
            status=app.status.value,
        )
        return AppInstallResult(
            app=app, info=package.info, implemented=package.implemented
        )

    async def update(
        self, package_b64: str, app_id: str | None = None
    ) -> AppInstallResult:
        """
        Replaces an installed App's package. Values of settings that are still
        declared are carried over; the status is kept unless the new package
        leaves a required setting empty.
        """
        package = self._parse(package_b64)
        if package.compiler_errors:
            return self._failed(package)

        if app_id is not None and package.app_id != app_id:
            raise BadRequestError(
                f"The uploaded package is for the App {package.app_id}, not {app_id}."
            )

        existing = await self._repository.find_by_id(package.app_id)
        if not existing:
            raise AppNotFoundError(package.app_id)

        settings = {}
        for setting_id, declared in package.settings.items():
            previous = existing.settings.get(setting_id)
            settings[setting_id] = (
                {**declared, "value": previous.get("value")} if previous else declared
            )

        status = existing.status
        if _initial_status(settings) is AppStatus.INVALID_SETTINGS_DISABLED:
            status = AppStatus.INVALID_SETTINGS_DISABLED

        app = existing.model_copy(
            update={
                "info": package.info,
                "status": status,
                "settings": settings,
                "language_content": package.language_content,
                "implemented": package.implemented,
                "apis": package.apis,
            }
        )
        await self._repository.save(app, package_b64)
        logger.info(
            "Updated app",
            app_id=app.id,
            version=package.info.get("version"),
            status=status.value,
        )
        return AppInstallResult(
            app=app, info=package.info, implemented=package.implemented
        )

    async def remove(self, app_id: str) -> None:
        if not await self._repository.delete(app_id):
            raise AppNotFoundError(app_id)
        logger.info("Removed app", app_id=app_id)

    async def change_status(self, app_id: str, status: str) -> InstalledApp:
        try:
            target = AppStatus(status)
        except ValueError:
            raise InvalidAppStatusError(status) from None
        if not (target.is_enabled or target.is_disabled):
            raise InvalidAppStatusError(status)

        app = await self._repository.find_by_id(app_id)
        if not app:
            raise AppNotFoundError(app_id)

        if target.is_enabled and _initial_status(app.settings) is AppStatus.INVALID_SETTINGS_DISABLED:
            target = AppStatus.INVALID_SETTINGS_DISABLED

        await self._repository.update_status(app_id, target)
        logger.info(
            "Changed app status",
            app_id=app_id,
            previous=app.status.value,
            status=target.value,
        )
        return app.model_copy(update={"status": target})

    @staticmethod
    def _parse(package_b64: str) -> AppPackage:
        try:
            return parse_package(decode_package(package_b64))
        except ValueError as e:
            raise BadRequestError(str(e)) from e

    @staticmethod
    def _failed(package: AppPackage) -> AppInstallResult:
        logger.warning(
            "App package failed validation",
            app_id=package.app_id,
            errors=len(package.compiler_errors),
        )
        return AppInstallResult(
            app=None,
            info=package.info,
            implemented=package.implemented,
            compiler_errors=package.compiler_errors,
        )
