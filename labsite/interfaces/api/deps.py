"""FastAPI dependencies: bearer-token authentication and role checks."""

from typing import Callable, Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from labsite.core.exceptions import ForbiddenException, UnauthorizedException
from labsite.core.security import InvalidTokenError, verify_token
from labsite.domain.models.user import ROLE_ADMIN, User
from labsite.domain.repositories.user_repository import UserRepository
from labsite.interfaces.deps import get_user_repository

logger = structlog.get_logger(__name__)

# auto_error=False so a missing header goes through our own error format
security = HTTPBearer(auto_error=False)


def resolve_user(token: str, repo: UserRepository) -> User:
    try:
        payload = verify_token(token)
    except InvalidTokenError as exc:
        raise UnauthorizedException("Not authorized, token failed") from exc

    user_id = payload.get("id")
    if not user_id:
        raise UnauthorizedException("Not authorized, token failed")

    user = repo.get_by_id(user_id)
    if user is None:
        raise UnauthorizedException("Not authorized, user not found")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    repo: UserRepository = Depends(get_user_repository),
) -> User:
    """Extract and validate the current user from the bearer token."""
    if credentials is None:
        raise UnauthorizedException("Not authorized, no token")
    return resolve_user(credentials.credentials, repo)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    repo: UserRepository = Depends(get_user_repository),
) -> Optional[User]:
    """Like ``get_current_user`` but anonymous callers get ``None`` instead of a 401."""
    if credentials is None:
        return None
    try:
        return resolve_user(credentials.credentials, repo)
    except UnauthorizedException as exc:
        logger.debug("Optional auth ignored an invalid token", reason=exc.message)
        return None


def require_roles(*roles: str) -> Callable[..., User]:
    """Build a dependency that lets through only users whose role is in ``roles``."""
    allowed = set(roles)

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.warning("Role not authorized", user_id=user.id, role=user.role, allowed=sorted(allowed))
            raise ForbiddenException(f"User role {user.role} is not authorized to access this route")
        return user

    return dependency


require_admin = require_roles(ROLE_ADMIN)
