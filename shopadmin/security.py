"""Session token helpers for the admin API."""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .sessions import Session, SessionRegistry

SESSION_COOKIE_NAME = "admin_token"


def generate_session_token() -> str:
    return secrets.token_hex(32)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class SessionAuth:
    """Resolve the admin session from the ``admin_token`` cookie or a bearer token."""

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry
        self._bearer = HTTPBearer(auto_error=False)

    async def extract_token(self, request: Request) -> Optional[str]:
        token = request.cookies.get(SESSION_COOKIE_NAME)
        if token:
            return token
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            return None
        return credentials.credentials or None

    async def __call__(self, request: Request) -> Session:
        token = await self.extract_token(request)
        if token is None:
            raise _unauthorized("Not authenticated")

        session = self._registry.get(token)
        if session is None:
            raise _unauthorized("Session expired or invalid")
        return session


__all__ = ["SESSION_COOKIE_NAME", "SessionAuth", "generate_session_token"]
