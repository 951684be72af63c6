from typing import Optional
from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from account_service.core.database import get_db
from account_service.core.config import settings
from account_service.core.errors import InvalidToken, PermissionDenied
from account_service.core.security import authorize
from account_service.services.token_service import ResolvedToken, TokenService, get_token_service

# Bearer header is accepted as a fallback for service-to-service callers
bearer_scheme = HTTPBearer(auto_error=False)

BEARER_PREFIX = "Bearer "


def strip_bearer(value: str) -> str:
    """Cookies written by older clients carry a "Bearer " prefix"""
    if value.startswith(BEARER_PREFIX):
        return value[len(BEARER_PREFIX):].strip()
    return value.strip()


async def get_session_token(
    token: Optional[str] = Cookie(default=None, alias=settings.COOKIE_NAME),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Extract the raw session token from the cookie or Authorization header"""
    if token:
        raw = strip_bearer(token)
    elif credentials is not None:
        raw = credentials.credentials
    else:
        raw = ""

    if not raw:
        raise InvalidToken("Token not found")
    return raw


def get_current_session(
    token: str = Depends(get_session_token),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> ResolvedToken:
    """Resolve the presented token; InvalidToken/TokenNotFound become 401"""
    return tokens.resolve(db, token)


def require_roles(*roles: str):
    """
    Build a dependency that lets a request through only when its token's
    role is one of ``roles``.
    """
    required = frozenset(roles)

    async def checker(session: ResolvedToken = Depends(get_current_session)) -> ResolvedToken:
        if not authorize(session.role, required):
            raise PermissionDenied()
        return session

    return checker
