"""JWT access-token creation and verification.

Tokens carry the actor id (`sub`) and the actor kind (`kind`), so one
bearer scheme serves family members, elderly dependents and angels.
Issuance is done by the identity service; create_access_token exists for
tests and operator tooling.

MVP NOTE: HS256 with one shared JWT_SECRET, no revocation. Once issued,
tokens are valid until expiry.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.ec_common.enums import ActorKind
from src.ec_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(actor_id: str, kind: ActorKind, expires_in: timedelta | None = None) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": actor_id,
        "kind": kind.value,
        "type": "access",
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else _ACCESS_EXPIRE),
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> tuple[str, ActorKind]:
    """Decode and validate an access token.

    Returns:
        (actor_id, actor_kind)

    Raises:
        InvalidCredentialsError: bad signature, expired, wrong type, or
        missing/unknown claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    actor_id = payload.get("sub")
    if not actor_id:
        raise InvalidCredentialsError()
    try:
        kind = ActorKind(payload.get("kind"))
    except ValueError:
        raise InvalidCredentialsError() from None
    return str(actor_id), kind
