"""Registry of named remote methods callable through the methods plugin."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase

from livedesk.utils.auth import AuthenticatedUser

logger = structlog.get_logger(__name__)

MethodHandler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class MethodContext:
    """First positional argument handed to every remote method."""

    database: AsyncIOMotorDatabase
    user: AuthenticatedUser | None = None


@dataclass(frozen=True)
class RemoteMethod:
    name: str
    handler: MethodHandler
    permissions: tuple[str, ...] = field(default_factory=tuple)


class MethodRegistry:
    def __init__(self):
        self._methods: dict[str, RemoteMethod] = {}

    def method(self, name: str, *, permissions: tuple[str, ...] = ()):
        """Decorator registering ``handler(ctx, *params)`` under ``name``."""

        def decorator(handler: MethodHandler) -> MethodHandler:
            if name in self._methods:
                raise ValueError(f"Remote method '{name}' is already registered")
            self._methods[name] = RemoteMethod(name, handler, tuple(permissions))
            logger.debug("Registered remote method", method=name)
            return handler

        return decorator

    def get(self, name: str) -> RemoteMethod | None:
        return self._methods.get(name)

    def names(self) -> list[str]:
        return sorted(self._methods)


methods = MethodRegistry()
