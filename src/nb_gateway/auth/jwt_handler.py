"""JWT access-token verification (and issuance for tooling/tests).

Tokens are issued by the external auth service; this service only verifies
them. Claims used: "sub" (account/user id), "role" (admin|subadmin|player),
"type" (must be "access").

NOTE: HS256 with one shared JWT_SECRET. No revocation; a token is valid
until "exp".
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.nb_common.enums import UserRole
from src.nb_common.errors import UnauthorizedError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str, role: UserRole = UserRole.PLAYER) -> str:
    """Issue an access token. Used by local tooling and the test-suite."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": role.value,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        UnauthorizedError: signature invalid, token expired, wrong "type",
            or a missing/unknown "sub"/"role" claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise UnauthorizedError() from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise UnauthorizedError()
    if payload.get("role") not in {r.value for r in UserRole}:
        raise UnauthorizedError()
    return payload
