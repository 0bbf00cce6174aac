"""ASGI entry point: routes each request to the public site or the panel by hostname."""

from __future__ import annotations

import logging
import secrets
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import content, panel, public, users
from .assets import AssetDirectory
from .auth import hash_password
from .config import Settings
from .defaults import default_users
from .deps import describe_errors
from .kv import KeyValueBackend, create_backend
from .sessions import KVSessionStore, MemorySessionStore, SessionStore
from .store import DocumentStore

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"error": describe_errors(exc.errors())},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def server_error(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside the CORS middleware, so the headers are added here.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers=CORS_HEADERS,
    )


def _install_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def cors_headers(request: Request, call_next):
        # Requests carrying an Origin are answered by CORSMiddleware.
        if request.method == "OPTIONS" and "origin" not in request.headers:
            return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)
        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def _build_app(title: str, description: str) -> FastAPI:
    app = FastAPI(title=title, description=description, version="0.1.0")
    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(Exception, server_error)
    return app


class PortalApp:
    """Hands each request to the panel app or the public app based on its Host header."""

    def __init__(
        self,
        public_app: FastAPI,
        panel_app: FastAPI,
        panel_host_prefix: str,
        store: DocumentStore,
        sessions: SessionStore,
        backend: KeyValueBackend,
    ) -> None:
        self.public_app = public_app
        self.panel_app = panel_app
        self.panel_host_prefix = panel_host_prefix.lower()
        self.store = store
        self.sessions = sessions
        self.backend = backend

    def is_panel_host(self, host: str) -> bool:
        return host.lower().startswith(self.panel_host_prefix)

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        host = Headers(scope=scope).get("host", "")
        target = self.panel_app if self.is_panel_host(host) else self.public_app
        await target(scope, receive, send)

    async def _lifespan(self, receive, send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("Portal ready; panel host prefix '%s'", self.panel_host_prefix)
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await self.backend.aclose()
                await send({"type": "lifespan.shutdown.complete"})
                return


def _user_seed(settings: Settings) -> Callable[[], List[Dict[str, Any]]]:
    def seed() -> List[Dict[str, Any]]:
        password = settings.admin_password
        if not password:
            password = secrets.token_urlsafe(12)
            logger.warning(
                "PORTAL_ADMIN_PASSWORD not set. Seeded the users collection with admin / %s",
                password,
            )
        return default_users(hash_password(password))

    return seed


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[KeyValueBackend] = None,
    sessions: Optional[SessionStore] = None,
) -> PortalApp:
    settings = settings or Settings.from_env()
    backend = backend or create_backend(settings)
    store = DocumentStore(backend, _user_seed(settings))
    if sessions is None:
        sessions = KVSessionStore(backend) if settings.session_backend == "kv" else MemorySessionStore()

    site_assets = AssetDirectory(settings.public_dir)
    panel_assets = AssetDirectory(settings.panel_dir)

    public_app = _build_app(
        "Studio Portal",
        "Public read-only API and static site for the game showcase.",
    )
    public_app.include_router(public.router)
    public_app.include_router(public.site_router)

    panel_app = _build_app(
        "Studio Portal Panel",
        "Authenticated management API for games, studios, announcements and users.",
    )
    panel.install_session_gate(panel_app)
    panel_app.include_router(panel.router)
    panel_app.include_router(content.router)
    panel_app.include_router(users.router, prefix="/api/users")
    panel_app.include_router(users.router, prefix="/api/team")
    panel_app.include_router(panel.shell_router)

    for sub_app in (public_app, panel_app):
        _install_cors(sub_app)
        sub_app.state.store = store
        sub_app.state.sessions = sessions
        sub_app.state.site_assets = site_assets
        sub_app.state.panel_assets = panel_assets

    return PortalApp(public_app, panel_app, settings.panel_host_prefix, store, sessions, backend)


app = create_app()


def run() -> None:
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run("studio_portal.main:app", host="0.0.0.0", port=8787)
