import io
import json
import zipfile
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from livedesk.main import app
from livedesk.plugins.apps.models import AppStatus, InstalledApp
from livedesk.plugins.apps.service import get_app_log_repository, get_app_manager
from livedesk.utils.auth import AuthenticatedUser, get_auth_service


def _make_package(
    manifest: dict[str, Any] | None = None,
    files: dict[str, bytes] | None = None,
    include_manifest: bool = True,
) -> bytes:
    """Builds an in-memory App zip; the default manifest is valid."""
    manifest = manifest if manifest is not None else {
        "id": "hello-app",
        "name": "Hello",
        "version": "1.0.0",
        "classFile": "main.py",
    }
    files = files if files is not None else {"main.py": b"class HelloApp: ...\n"}
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        if include_manifest:
            archive.writestr("app.json", json.dumps(manifest))
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_package():
    return _make_package


@pytest.fixture
def installed_app() -> InstalledApp:
    return InstalledApp(
        id="hello-app",
        info={
            "id": "hello-app",
            "name": "Hello",
            "version": "1.0.0",
            "iconFileContent": "data:image/png;base64,iVBORw0KGgo=",
        },
        status=AppStatus.AUTO_ENABLED,
        settings={
            "greeting": {"id": "greeting", "type": "string", "value": "hi", "hidden": False},
            "api_secret": {"id": "api_secret", "type": "string", "value": "s3", "hidden": True},
        },
        language_content={"en": {"hello": "Hello"}, "pt": {"hello": "Olá"}},
    )


@pytest.fixture
def mock_manager() -> MagicMock:
    """AppManager double whose coroutine methods are AsyncMocks."""
    manager = MagicMock()
    manager.list = AsyncMock(return_value=[])
    manager.get_by_id = AsyncMock(return_value=None)
    manager.add = AsyncMock()
    manager.update = AsyncMock()
    manager.remove = AsyncMock()
    manager.change_status = AsyncMock()
    manager.settings_manager.get_app_setting = AsyncMock()
    manager.settings_manager.update_app_setting = AsyncMock()
    manager.api_manager.list_apis = AsyncMock(return_value=[])
    return manager


@pytest.fixture
def mock_logs() -> MagicMock:
    logs = MagicMock()
    logs.find = AsyncMock(return_value=[])
    return logs


@pytest.fixture
def mock_auth() -> MagicMock:
    """Authenticates every caller as an admin holding all permissions."""
    auth = MagicMock()
    auth.authenticate = AsyncMock(
        return_value=AuthenticatedUser(id="admin-user", roles=frozenset({"admin"}))
    )
    auth.has_permission = AsyncMock(return_value=True)
    return auth


@pytest.fixture
def test_client(mock_manager, mock_logs, mock_auth) -> TestClient:
    """
    TestClient against the real application with the App manager, log
    store and auth service replaced. The lifespan is not run, so no
    MongoDB connection is attempted.
    """
    app.dependency_overrides[get_app_manager] = lambda: mock_manager
    app.dependency_overrides[get_app_log_repository] = lambda: mock_logs
    app.dependency_overrides[get_auth_service] = lambda: mock_auth
    client = TestClient(app, raise_server_exceptions=False)
    yield client
    app.dependency_overrides.clear()
