import base64
import hashlib
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import PyMongoError

from livedesk.utils.auth import AuthenticatedUser, AuthService, hash_login_token
from livedesk.utils.exceptions import ServiceError, UnauthorizedError


def _collection(doc=None) -> MagicMock:
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=doc)
    return collection


def test_login_token_hash_matches_stored_format():
    expected = base64.b64encode(hashlib.sha256(b"secret").digest()).decode()

    assert hash_login_token("secret") == expected


@pytest.mark.asyncio
async def test_authenticate_looks_up_hashed_token():
    users = _collection({"_id": "u1", "username": "ada", "roles": ["admin", "user"]})
    auth = AuthService(users, _collection())

    user = await auth.authenticate("u1", "secret")

    assert user == AuthenticatedUser(id="u1", username="ada", roles=frozenset({"admin", "user"}))
    query = users.find_one.call_args.args[0]
    assert query == {
        "_id": "u1",
        "services.resume.loginTokens.hashedToken": hash_login_token("secret"),
    }


@pytest.mark.asyncio
async def test_authenticate_rejects_unknown_token():
    auth = AuthService(_collection(None), _collection())

    with pytest.raises(UnauthorizedError):
        await auth.authenticate("u1", "wrong")


@pytest.mark.asyncio
async def test_authenticate_wraps_database_errors():
    users = _collection()
    users.find_one.side_effect = PyMongoError("down")

    with pytest.raises(ServiceError):
        await AuthService(users, _collection()).authenticate("u1", "secret")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "permission_doc, expected",
    [
        ({"_id": "manage-apps", "roles": ["admin"]}, True),
        ({"_id": "manage-apps", "roles": ["livechat-manager"]}, False),
        (None, False),
    ],
)
async def test_has_permission(permission_doc, expected):
    auth = AuthService(_collection(), _collection(permission_doc))
    user = AuthenticatedUser(id="u1", roles=frozenset({"admin", "user"}))

    assert await auth.has_permission(user, "manage-apps") is expected
