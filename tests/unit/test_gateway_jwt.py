"""Unit tests for JWT handler and the actor dependencies."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from config.settings import settings
from src.ec_common.enums import ActorKind
from src.ec_common.errors import ForbiddenError, InvalidCredentialsError
from src.ec_gateway.auth import dependencies
from src.ec_gateway.auth.dependencies import (
    get_current_actor,
    require_admin,
    require_angel,
    require_family_member,
)
from src.ec_gateway.auth.jwt_handler import create_access_token, decode_token
from src.ec_identity.domain.models import Angel, Elderly, FamilyMember


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("angel-1", ActorKind.ANGEL)
    # Decode without verification to inspect claims
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "angel-1"
    assert payload["kind"] == "angel"
    assert payload["type"] == "access"


def test_decode_round_trip() -> None:
    token = create_access_token("user-abc", ActorKind.FAMILY)
    assert decode_token(token) == ("user-abc", ActorKind.FAMILY)


def test_expired_token_rejected() -> None:
    token = create_access_token("user-abc", ActorKind.FAMILY, expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_tampered_token_rejected() -> None:
    token = create_access_token("user-abc", ActorKind.FAMILY)
    with pytest.raises(InvalidCredentialsError):
        decode_token(token[:-4] + "xxxx")


def test_unknown_kind_rejected() -> None:
    token = jwt.encode(
        {"sub": "x", "kind": "robot", "type": "access"}, settings.JWT_SECRET, algorithm="HS256"
    )
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_non_access_type_rejected() -> None:
    token = jwt.encode(
        {"sub": "x", "kind": "family", "type": "refresh"}, settings.JWT_SECRET, algorithm="HS256"
    )
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def _creds(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentActor:
    async def test_missing_credentials(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            await get_current_actor(None, MagicMock())

    async def test_resolves_angel(self) -> None:
        angel = Angel(id="a-1", name="Li", phone=None)
        identity = AsyncMock()
        identity.get_angel.return_value = angel
        token = create_access_token("a-1", ActorKind.ANGEL)

        with patch.object(dependencies, "_identity", identity):
            actor = await get_current_actor(_creds(token), MagicMock())

        assert actor is angel
        identity.get_family_member.assert_not_awaited()

    async def test_resolves_elderly(self) -> None:
        elderly = Elderly(id="e-1", name=None, phone=None, user_id="u-1")
        identity = AsyncMock()
        identity.get_elderly.return_value = elderly
        token = create_access_token("e-1", ActorKind.ELDERLY)

        with patch.object(dependencies, "_identity", identity):
            assert await get_current_actor(_creds(token), MagicMock()) is elderly

    async def test_deleted_actor(self) -> None:
        identity = AsyncMock()
        identity.get_family_member.return_value = None
        token = create_access_token("u-gone", ActorKind.FAMILY)

        with patch.object(dependencies, "_identity", identity), pytest.raises(InvalidCredentialsError):
            await get_current_actor(_creds(token), MagicMock())


class TestRoleGuards:
    async def test_angel_cannot_act_as_family(self) -> None:
        with pytest.raises(ForbiddenError):
            await require_family_member(Angel(id="a-1", name=None, phone=None))

    async def test_family_cannot_act_as_angel(self) -> None:
        with pytest.raises(ForbiddenError):
            await require_angel(FamilyMember(id="u-1", name=None, phone=None))

    async def test_admin_key(self) -> None:
        await require_admin("test-admin-key")
        with pytest.raises(ForbiddenError):
            await require_admin(None)

    async def test_admin_disabled_when_unset(self) -> None:
        with patch.object(settings, "ADMIN_API_KEY", ""), pytest.raises(ForbiddenError):
            await require_admin("")
