"""Serving the built site and panel bundles from disk."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, status
from fastapi.responses import FileResponse

logger = logging.getLogger(__name__)

FILE_EXTENSION = re.compile(r"\.[a-zA-Z0-9]+$")


def looks_like_file(path: str) -> bool:
    return bool(FILE_EXTENSION.search(path))


class AssetDirectory:
    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()

    def resolve(self, path: str) -> Optional[Path]:
        relative = path.lstrip("/")
        if not relative:
            return None
        candidate = (self.root / relative).resolve()
        if not candidate.is_relative_to(self.root):
            logger.debug("Rejected asset path outside root: %s", path)
            return None
        return candidate if candidate.is_file() else None

    def fetch(self, path: str) -> Optional[FileResponse]:
        found = self.resolve(path)
        return FileResponse(found) if found else None

    def index(self) -> FileResponse:
        response = self.fetch("/index.html")
        if response is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Frontend assets are missing. Run the frontend build first.",
            )
        return response


def serve_public(site: AssetDirectory, path: str) -> FileResponse:
    """Files from the site bundle; extensionless misses fall back to ``index.html``."""
    response = site.fetch(path)
    if response is not None:
        return response
    if path == "/" or not looks_like_file(path):
        return site.index()
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


def serve_panel(panel: AssetDirectory, site: AssetDirectory, path: str) -> FileResponse:
    """Panel shell for app routes, panel files first and shared site files second."""
    if path.startswith("/assets/"):
        response = site.fetch(path)
    elif path == "/" or not looks_like_file(path):
        return panel.index()
    else:
        response = panel.fetch(path) or site.fetch(path)
    if response is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return response
