"""Remote method call endpoint."""

import inspect
from typing import Annotated

import structlog
import structlog.contextvars
from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from livedesk.utils.auth import AuthService, get_auth_service, get_current_user
from livedesk.utils.dependencies import get_database
from livedesk.utils.exceptions import BadRequestError, ForbiddenError, NotFoundError
from livedesk.utils.methods import MethodContext, MethodRegistry, methods
from livedesk.utils.responses import success

from .models import MethodCallRequest

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_method_registry() -> MethodRegistry:
    return methods


@router.post(
    "/{method_name}",
    summary="Call a remote method",
    description="Calls the named method with the positional `params` of the body.",
)
async def call_method(
    method_name: str,
    call: MethodCallRequest,
    request: Request,
    registry: Annotated[MethodRegistry, Depends(get_method_registry)],
    database: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
):
    method = registry.get(method_name)
    if not method:
        raise NotFoundError(f"Method '{method_name}' not found")

    structlog.contextvars.bind_contextvars(method=method_name, call_id=call.id)

    user = None
    if method.permissions:
        user = await get_current_user(request, auth)
        for permission in method.permissions:
            if not await auth.has_permission(user, permission):
                raise ForbiddenError()

    ctx = MethodContext(database=database, user=user)
    try:
        inspect.signature(method.handler).bind(ctx, *call.params)
    except TypeError as e:
        raise BadRequestError(f"Invalid params for method '{method_name}': {e}") from e

    logger.info("Calling remote method", params=len(call.params))
    result = await method.handler(ctx, *call.params)
    return success({"id": call.id, "result": result})
