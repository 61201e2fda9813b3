"""Header-token authentication and role based permission checks."""

import base64
import hashlib
from dataclasses import dataclass, field
from typing import Annotated

import structlog
import structlog.contextvars
from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from livedesk.utils.dependencies import (
    get_permissions_collection,
    get_users_collection,
)
from livedesk.utils.exceptions import ForbiddenError, ServiceError, UnauthorizedError

logger = structlog.get_logger(__name__)

USER_ID_HEADER = "x-user-id"
AUTH_TOKEN_HEADER = "x-auth-token"


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    username: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)


def hash_login_token(token: str) -> str:
    """Login tokens are stored as base64(sha256(token))."""
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


class AuthService:
    """Resolves callers from their login token and answers permission checks."""

    def __init__(
        self, users: AsyncIOMotorCollection, permissions: AsyncIOMotorCollection
    ):
        self._users = users
        self._permissions = permissions

    async def authenticate(self, user_id: str, token: str) -> AuthenticatedUser:
        try:
            doc = await self._users.find_one(
                {
                    "_id": user_id,
                    "services.resume.loginTokens.hashedToken": hash_login_token(token),
                },
                {"username": 1, "roles": 1},
            )
        except PyMongoError as e:
            logger.error("DB error authenticating user", user_id=user_id, error=str(e))
            raise ServiceError("Database error while authenticating the user") from e

        if not doc:
            raise UnauthorizedError()

        return AuthenticatedUser(
            id=str(doc["_id"]),
            username=doc.get("username"),
            roles=frozenset(doc.get("roles") or ()),
        )

    async def has_permission(self, user: AuthenticatedUser, permission: str) -> bool:
        try:
            doc = await self._permissions.find_one({"_id": permission}, {"roles": 1})
        except PyMongoError as e:
            logger.error(
                "DB error reading permission", permission=permission, error=str(e)
            )
            raise ServiceError("Database error while checking permissions") from e

        if not doc:
            return False
        return not user.roles.isdisjoint(doc.get("roles") or ())


async def get_auth_service(
    users: Annotated[AsyncIOMotorCollection, Depends(get_users_collection)],
    permissions: Annotated[AsyncIOMotorCollection, Depends(get_permissions_collection)],
) -> AuthService:
    return AuthService(users, permissions)


async def get_current_user(
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthenticatedUser:
    user_id = request.headers.get(USER_ID_HEADER)
    token = request.headers.get(AUTH_TOKEN_HEADER)
    if not user_id or not token:
        raise UnauthorizedError()

    user = await auth.authenticate(user_id, token)
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


def require_permission(*permissions: str):
    """
    Builds a dependency that authenticates the caller and checks that it holds
    every listed permission. Attach it through a route's ``dependencies`` so
    the check runs before the handler body.
    """

    async def dependency(
        user: Annotated[AuthenticatedUser, Depends(get_current_user)],
        auth: Annotated[AuthService, Depends(get_auth_service)],
    ) -> AuthenticatedUser:
        for permission in permissions:
            if not await auth.has_permission(user, permission):
                logger.warning(
                    "Permission denied", user_id=user.id, permission=permission
                )
                raise ForbiddenError()
        return user

    return dependency
