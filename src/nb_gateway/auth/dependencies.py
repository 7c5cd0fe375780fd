"""FastAPI dependencies: the authenticated principal and role guards.

Usage in any protected router:
    from src.nb_gateway.auth.dependencies import get_current_principal, require_roles

    @router.post("/markets")
    async def create(principal: Principal = Depends(require_roles(UserRole.ADMIN))):
        ...
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.nb_common.enums import UserRole
from src.nb_common.errors import ForbiddenError, UnauthorizedError
from src.nb_gateway.auth.jwt_handler import decode_token

# auto_error=False so a missing header maps to our own 401 envelope
_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUBADMIN)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Principal:
    """Validate the Bearer token and return who is calling.

    Raises UnauthorizedError (401) when the header is missing or the token
    does not verify.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    payload = decode_token(credentials.credentials)
    return Principal(user_id=payload["sub"], role=UserRole(payload["role"]))


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[Principal]]:
    """Build a dependency that lets only the given roles through (403 otherwise)."""
    allowed = frozenset(roles)

    async def _guard(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.role not in allowed:
            raise ForbiddenError(f"Requires role: {', '.join(sorted(r.value for r in allowed))}")
        return principal

    return _guard


require_staff = require_roles(UserRole.ADMIN, UserRole.SUBADMIN)
require_admin = require_roles(UserRole.ADMIN)
