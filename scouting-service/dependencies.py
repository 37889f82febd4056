# dependencies.py
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware

import config
from auth_service import AuthService, verify_token
from errors import AuthError
from repository import PlayerRepository
from schemas import UserOut

# Reachable without a session token
PUBLIC_PATHS = frozenset({
    "/api/health",
    "/api/auth/register",
    "/api/auth/login",
    "/api/auth/logout",
})


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.db.session() as session:
        yield session


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_repository(db: AsyncSession = Depends(get_db)) -> PlayerRepository:
    return PlayerRepository(db)


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(config.COOKIE_NAME)
    if token:
        return token
    # Non-browser clients may send the same token as a bearer header
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def is_protected(path: str) -> bool:
    return path.startswith("/api/") and path.rstrip("/") not in PUBLIC_PATHS


class SessionGateMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests to protected API paths that carry no valid session token.

    Runs before routing, so an anonymous request never reaches body parsing
    or validation. The resolved identity is left on ``request.state.user``.
    """

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or not is_protected(request.url.path):
            return await call_next(request)
        try:
            request.state.user = verify_token(_token_from_request(request))
        except AuthError as exc:
            return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
        return await call_next(request)


async def get_current_user(request: Request) -> UserOut:
    """Identity of the caller on protected routes; raises AuthError without one."""
    user = getattr(request.state, "user", None)
    if user is None:
        user = verify_token(_token_from_request(request))
        request.state.user = user
    return user
