"""HTTP API for admin login, logout and session validation."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .database import Database
from .security import SESSION_COOKIE_NAME, SessionAuth, generate_session_token
from .sessions import Session, SessionRegistry
from .sweeper import SessionSweeper

logger = logging.getLogger("shopadmin.service")


class LoginRequest(BaseModel):
    username: str = Field(default="", max_length=100)
    password: str = Field(default="", max_length=1024)


class LoginUser(BaseModel):
    id: int
    username: str
    role: str


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    expires_at: datetime
    user: LoginUser


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"


class CurrentSessionResponse(BaseModel):
    id: int
    username: str
    expires_at: datetime


def register_auth_routes(
    app: FastAPI,
    database: Database,
    registry: SessionRegistry,
    *,
    settings: Settings,
    current_session: Callable[..., Session],
) -> None:
    """Expose the authentication endpoints on the provided FastAPI application."""

    auth = SessionAuth(registry)

    def _issue_session_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            SESSION_COOKIE_NAME,
            token,
            max_age=settings.cookie_max_age,
            secure=settings.secure_cookies,
            httponly=True,
            samesite="lax",
            path="/",
        )

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, Union[str, int]]:
        return {"status": "ok", "active_sessions": len(registry)}

    @app.post("/api/admin/auth/login", response_model=LoginResponse)
    async def login(payload: LoginRequest, request: Request, response: Response) -> LoginResponse:
        username = payload.username.strip()
        if not username or not payload.password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username and password are required",
            )

        user = database.authenticate_user(username, payload.password)
        if user is None:
            logger.warning("Failed admin login attempt for %s", username)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
            )
        if not user.is_active:
            logger.warning("Rejected login for disabled admin %s", user.username)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is disabled",
            )

        registry.delete(request.cookies.get(SESSION_COOKIE_NAME))

        token = generate_session_token()
        session = registry.create(token, user.id, user.username, settings.session_ttl)
        logger.info("Admin %s signed in", user.id)
        _issue_session_cookie(response, token)

        return LoginResponse(
            token=token,
            expires_at=session.expires_at,
            user=LoginUser(id=user.id, username=user.username, role=user.role),
        )

    @app.post("/api/admin/auth/logout", response_model=LogoutResponse)
    async def logout(request: Request, response: Response) -> LogoutResponse:
        registry.delete(await auth.extract_token(request))
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")
        return LogoutResponse()

    @app.get("/api/admin/auth/me", response_model=CurrentSessionResponse)
    async def current_admin(session: Session = Depends(current_session)) -> CurrentSessionResponse:
        return CurrentSessionResponse(
            id=session.user_id,
            username=session.username,
            expires_at=session.expires_at,
        )


def create_app(
    *,
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    registry: Optional[SessionRegistry] = None,
) -> FastAPI:
    """Instantiate the FastAPI application and its session machinery."""

    app_settings = settings if settings is not None else load_settings()

    db = database if database is not None else Database(app_settings.database_path)
    db.initialize()

    session_registry = registry if registry is not None else SessionRegistry()
    sweeper = SessionSweeper(session_registry, interval=app_settings.sweep_interval)

    if not app_settings.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(
        title="Shop Admin Authentication",
        version="0.1.0",
        description="Session-based authentication for the catalog administration interface.",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.database = db
    app.state.session_registry = session_registry
    app.state.session_sweeper = sweeper

    register_auth_routes(
        app,
        db,
        session_registry,
        settings=app_settings,
        current_session=SessionAuth(session_registry),
    )

    return app


__all__ = ["create_app", "register_auth_routes"]
