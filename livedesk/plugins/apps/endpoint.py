"""Apps REST API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from structlog import get_logger

from livedesk.config import AppConfig
from livedesk.utils.auth import require_permission
from livedesk.utils.dependencies import get_settings
from livedesk.utils.exceptions import BadRequestError
from livedesk.utils.pagination import (
    JsonQuery,
    Pagination,
    get_pagination_items,
    parse_json_query,
)
from livedesk.utils.responses import success

from .models import UpdateSettingRequest, UpdateSettingsRequest, UpdateStatusRequest
from .package_source import read_body_params, resolve_package
from .service import AppsService, get_apps_service

router = APIRouter()
logger = get_logger(__name__)

# Routes without this declaration are public.
MANAGE_APPS = [Depends(require_permission("manage-apps"))]

Service = Annotated[AppsService, Depends(get_apps_service)]
Config = Annotated[AppConfig, Depends(get_settings)]


async def _request_package(request: Request, config: AppConfig) -> bytes | None:
    body = await read_body_params(request)
    return await resolve_package(
        request,
        body.get("url"),
        timeout=config.package_fetch_timeout_seconds,
        max_bytes=config.upload_max_bytes,
    )


@router.get("", dependencies=MANAGE_APPS, summary="List installed Apps")
async def list_apps(service: Service):
    return success({"apps": await service.list_apps()})


@router.post(
    "",
    dependencies=MANAGE_APPS,
    summary="Install an App",
    description=(
        'Installs an App from a JSON body {"url": ...} pointing to an '
        'application/zip package, or from a multipart upload in the "app" field.'
    ),
)
async def install_app(request: Request, service: Service, config: Config):
    logger.info("Installing app")
    package = await _request_package(request, config)
    return success(await service.install(package))


@router.get("/languages", summary="Translations of every installed App")
async def list_languages(service: Service):
    return success({"apps": await service.list_languages()})


@router.get("/{app_id}", dependencies=MANAGE_APPS, summary="Get an App")
async def get_app(app_id: str, service: Service):
    return success({"app": await service.get_app(app_id)})


@router.post("/{app_id}", dependencies=MANAGE_APPS, summary="Update an App")
async def update_app(app_id: str, request: Request, service: Service, config: Config):
    logger.info("Updating app", app_id=app_id)
    package = await _request_package(request, config)
    return success(await service.update(app_id, package))


@router.delete("/{app_id}", dependencies=MANAGE_APPS, summary="Uninstall an App")
async def uninstall_app(app_id: str, service: Service):
    logger.info("Uninstalling app", app_id=app_id)
    return success({"app": await service.uninstall(app_id)})


@router.get("/{app_id}/icon", dependencies=MANAGE_APPS, summary="Get an App's icon")
async def get_app_icon(app_id: str, service: Service):
    return success({"iconFileContent": await service.get_icon(app_id)})


@router.get("/{app_id}/languages", summary="Get an App's translations")
async def get_app_languages(app_id: str, service: Service):
    return success({"languages": await service.get_languages(app_id)})


@router.get("/{app_id}/logs", dependencies=MANAGE_APPS, summary="Query an App's logs")
async def get_app_logs(
    app_id: str,
    service: Service,
    pagination: Annotated[Pagination, Depends(get_pagination_items)],
    json_query: Annotated[JsonQuery, Depends(parse_json_query)],
):
    logs = await service.get_logs(app_id, pagination, json_query)
    return success(
        {"logs": logs, "offset": pagination.offset, "count": len(logs)}
    )


@router.get("/{app_id}/settings", dependencies=MANAGE_APPS, summary="Get an App's settings")
async def get_app_settings(app_id: str, service: Service):
    return success({"settings": await service.get_settings(app_id)})


@router.post(
    "/{app_id}/settings", dependencies=MANAGE_APPS, summary="Update an App's settings"
)
async def update_app_settings(
    app_id: str, service: Service, body: UpdateSettingsRequest | None = None
):
    if body is None or not isinstance(body.settings, list):
        raise BadRequestError("The settings to update must be present.")
    for setting in body.settings:
        if not isinstance(setting, dict) or not isinstance(setting.get("id"), str):
            raise BadRequestError(
                'Each setting to update must be an object with a string "id".'
            )

    logger.info("Updating app settings", app_id=app_id, count=len(body.settings))
    updated = await service.update_settings(app_id, body.settings)
    return success({"updated": updated})


@router.get(
    "/{app_id}/settings/{setting_id}",
    dependencies=MANAGE_APPS,
    summary="Get one of an App's settings",
)
async def get_app_setting(app_id: str, setting_id: str, service: Service):
    return success({"setting": await service.get_setting(app_id, setting_id)})


@router.post(
    "/{app_id}/settings/{setting_id}",
    dependencies=MANAGE_APPS,
    summary="Update one of an App's settings",
)
async def update_app_setting(
    app_id: str,
    setting_id: str,
    service: Service,
    body: UpdateSettingRequest | None = None,
):
    if body is None or not isinstance(body.setting, dict):
        raise BadRequestError("Setting to update to must be present on the posted body.")

    logger.info("Updating app setting", app_id=app_id, setting_id=setting_id)
    await service.update_setting(app_id, setting_id, body.setting)
    return success()


@router.get("/{app_id}/apis", dependencies=MANAGE_APPS, summary="List an App's APIs")
async def list_app_apis(app_id: str, service: Service):
    return success({"apis": await service.list_apis(app_id)})


@router.get("/{app_id}/status", dependencies=MANAGE_APPS, summary="Get an App's status")
async def get_app_status(app_id: str, service: Service):
    return success({"status": await service.get_status(app_id)})


@router.post(
    "/{app_id}/status", dependencies=MANAGE_APPS, summary="Change an App's status"
)
async def change_app_status(
    app_id: str, service: Service, body: UpdateStatusRequest | None = None
):
    if body is None or not isinstance(body.status, str) or not body.status:
        raise BadRequestError(
            'Invalid status provided, it must be "status" field and a string.'
        )

    logger.info("Updating app status", app_id=app_id, status=body.status)
    return success({"status": await service.change_status(app_id, body.status)})
