"""
HTTP routes for the application behind the preview middleware.

Browser traffic (and crawler traffic with no preview) lands here: a health
check plus the static export of the web app.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from gateway.config import Settings, get_settings
from gateway.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _resolve_site_file(root: Path, path: str) -> Optional[Path]:
    """
    Map a request path onto the static export the way the edge host does:
    the exact file, then ``{path}.html``, then ``{path}/index.html``.
    """
    relative = path.strip("/")
    candidates = (
        [root / relative, root / f"{relative}.html", root / relative / "index.html"]
        if relative
        else [root / "index.html"]
    )
    for candidate in candidates:
        resolved = candidate.resolve()
        if not resolved.is_relative_to(root):
            return None
        if resolved.is_file():
            return resolved
    return None


@router.api_route("/healthz", methods=["GET", "HEAD"], response_model=HealthResponse)
def healthz(settings: Settings = Depends(get_settings)):
    return HealthResponse(status="ok", site_name=settings.site_name)


@router.api_route("/{path:path}", methods=["GET", "HEAD"], include_in_schema=False)
def site_page(path: str, settings: Settings = Depends(get_settings)):
    if not settings.static_dir:
        raise HTTPException(status_code=404, detail="Not found")
    root = Path(settings.static_dir).resolve()
    site_file = _resolve_site_file(root, path)
    if site_file is None:
        not_found = root / "404.html"
        if not_found.is_file():
            return FileResponse(not_found, status_code=404)
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(site_file)
