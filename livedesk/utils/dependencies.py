from typing import Annotated

from fastapi import Depends, Request
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)

from livedesk.config import AppConfig, settings


def get_settings() -> AppConfig:
    """Dependency returning the process-wide configuration."""
    return settings


async def get_mongo_client(request: Request) -> AsyncIOMotorClient:
    """Dependency to get the MongoDB client instance from the application state."""
    return request.app.state.mongo_client


async def get_database(
    client: Annotated[AsyncIOMotorClient, Depends(get_mongo_client)],
    config: Annotated[AppConfig, Depends(get_settings)],
) -> AsyncIOMotorDatabase:
    """Dependency to get the application's default MongoDB database."""
    return client[config.mongodb_database]


async def get_users_collection(
    database: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
) -> AsyncIOMotorCollection:
    return database["users"]


async def get_permissions_collection(
    database: Annotated[AsyncIOMotorDatabase, Depends(get_database)],
) -> AsyncIOMotorCollection:
    return database["permissions"]
