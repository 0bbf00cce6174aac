"""Read-only API and static site for every host other than the panel."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, JSONResponse

from .assets import serve_public
from .catalog import live_announcements, public_games
from .deps import get_store
from .store import DocumentStore

router = APIRouter(prefix="/api")
site_router = APIRouter()


@router.get("/games")
async def games(store: DocumentStore = Depends(get_store)) -> JSONResponse:
    return JSONResponse(public_games(await store.load_games()))


@router.get("/announcements")
async def announcements(store: DocumentStore = Depends(get_store)) -> JSONResponse:
    return JSONResponse(live_announcements(await store.load_notifications()))


@router.get("/studios")
async def studios(store: DocumentStore = Depends(get_store)) -> JSONResponse:
    return JSONResponse(await store.load_studios())


@router.get("/config")
async def site_config(store: DocumentStore = Depends(get_store)) -> JSONResponse:
    return JSONResponse(await store.load_config() or {})


@site_router.get("/{full_path:path}", include_in_schema=False)
async def site_files(request: Request, full_path: str) -> FileResponse:
    path = request.url.path
    if path.startswith("/api/"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return serve_public(request.app.state.site_assets, path)
