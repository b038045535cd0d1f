"""FastAPI dependencies that resolve the bearer token into a typed actor.

Usage in any protected router:
    from src.ec_gateway.auth.dependencies import require_angel

    @router.post("/{order_id}/accept")
    async def accept(angel: Annotated[Angel, Depends(require_angel)]):
        ...
"""

import hmac
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ec_common.database import get_db_session
from src.ec_common.enums import ActorKind
from src.ec_common.errors import ForbiddenError, InvalidCredentialsError
from src.ec_gateway.auth.jwt_handler import decode_token
from src.ec_identity.domain.models import Actor, Angel, FamilyMember
from src.ec_identity.infrastructure.persistence import IdentityRepository

bearer_scheme = HTTPBearer(auto_error=False)

_identity = IdentityRepository()


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Actor:
    """Validate the bearer token and load the actor record it names.

    Raises InvalidCredentialsError (401) if the token is missing or invalid,
    or the actor no longer exists.
    """
    if credentials is None:
        raise InvalidCredentialsError()
    actor_id, kind = decode_token(credentials.credentials)

    actor: Actor | None
    if kind == ActorKind.FAMILY:
        actor = await _identity.get_family_member(db, actor_id)
    elif kind == ActorKind.ANGEL:
        actor = await _identity.get_angel(db, actor_id)
    else:
        actor = await _identity.get_elderly(db, actor_id)
    if actor is None:
        raise InvalidCredentialsError()
    return actor


async def require_family_member(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> FamilyMember:
    if not isinstance(actor, FamilyMember):
        raise ForbiddenError("Family member account required")
    return actor


async def require_angel(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Angel:
    if not isinstance(actor, Angel):
        raise ForbiddenError("Angel account required")
    return actor


async def require_admin(
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """Reconciliation endpoints are disabled while ADMIN_API_KEY is empty."""
    expected = settings.ADMIN_API_KEY
    if not expected or not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise ForbiddenError("Admin key required")
