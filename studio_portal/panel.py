"""Panel host: session gate, login flow, account info, site config and the SPA shell."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, FastAPI, Form, HTTPException, Request, status
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse

from .assets import serve_panel
from .auth import authenticate
from .config import SESSION_COOKIE, SESSION_TTL_SECONDS
from .defaults import MEDIA_PATHS
from .deps import current_session, get_sessions, get_store, record_activity, validate_record
from .models import SiteConfig, Session
from .pages import render_login
from .sessions import SessionStore
from .store import DocumentStore

logger = logging.getLogger(__name__)

OPEN_PATHS = {"/api/login", "/api/logout"}

router = APIRouter(prefix="/api")
shell_router = APIRouter()


def install_session_gate(app: FastAPI) -> None:
    """Attach the session to every request; turn away anonymous callers."""

    @app.middleware("http")
    async def session_gate(request: Request, call_next):
        sessions: SessionStore = request.app.state.sessions
        session = await sessions.validate(request.cookies.get(SESSION_COOKIE))
        request.state.session = session
        path = request.url.path
        if session is not None or path in OPEN_PATHS or request.method == "OPTIONS":
            return await call_next(request)
        if path.startswith("/api/"):
            return JSONResponse(
                {"error": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED
            )
        return HTMLResponse(render_login())


@router.post("/login")
async def login(
    username: str = Form(""),
    password: str = Form(""),
    store: DocumentStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
):
    user = await authenticate(store, username.strip(), password)
    if user is None:
        logger.warning("Failed panel login for '%s'", username)
        return HTMLResponse(
            render_login("Invalid credentials", username),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    token = await sessions.create(
        user["username"], user.get("role", "user"), user.get("allowedStudios") or []
    )
    logger.info("Panel login for '%s'", user["username"])
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=SESSION_TTL_SECONDS,
        path="/",
        secure=True,
        httponly=True,
        samesite="strict",
    )
    return response


@router.get("/logout")
async def logout(request: Request, sessions: SessionStore = Depends(get_sessions)):
    session = request.state.session
    await sessions.destroy(request.cookies.get(SESSION_COOKIE))
    if session is not None:
        logger.info("Panel logout for '%s'", session.username)
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(SESSION_COOKIE, path="/", secure=True, httponly=True, samesite="strict")
    return response


@router.get("/me")
async def me(session: Session = Depends(current_session)) -> JSONResponse:
    return JSONResponse(
        {
            "username": session.username,
            "role": session.role,
            "allowedStudios": session.allowed_studios,
        }
    )


@router.get("/config")
async def get_config(
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    return JSONResponse(await store.load_config() or {})


@router.put("/config")
async def put_config(
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    config = validate_record(SiteConfig, payload).to_json()
    await store.save_config(config)
    await record_activity(store, session, "update", "config", "Site settings")
    return JSONResponse(config)


@router.get("/media")
async def list_media(session: Session = Depends(current_session)) -> JSONResponse:
    return JSONResponse(MEDIA_PATHS)


@router.get("/activity")
async def list_activity(
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    return JSONResponse(await store.load_activity())


@shell_router.get("/{full_path:path}", include_in_schema=False)
async def panel_shell(request: Request, full_path: str) -> FileResponse:
    path = request.url.path
    if path.startswith("/api/"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return serve_panel(request.app.state.panel_assets, request.app.state.site_assets, path)
