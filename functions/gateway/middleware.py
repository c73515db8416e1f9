"""
HTTP middleware that answers link-preview crawlers with Open Graph documents.
"""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.types import ASGIApp

from gateway.config import Settings
from gateway.crawlers import is_crawler
from gateway.og_html import render_og_html
from gateway.previews import PreviewBuilder, match_route

logger = logging.getLogger(__name__)

PREVIEW_CONTENT_TYPE = "text/html;charset=UTF-8"


def first_query_values(request: Request) -> dict[str, str]:
    """Map each query key to its first value, as browsers' URLSearchParams.get does."""
    params = request.query_params
    return {key: params.getlist(key)[0] for key in params.keys()}


class PreviewMiddleware(BaseHTTPMiddleware):
    """
    Serves synthesized preview documents to crawlers on content routes.

    Everything else, including every lookup miss or failure, is handed to
    the next application unchanged.
    """

    def __init__(self, app: ASGIApp, *, builder: PreviewBuilder, settings: Settings):
        super().__init__(app)
        self.builder = builder
        self.settings = settings

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not is_crawler(request.headers.get("user-agent")):
            return await call_next(request)
        if match_route(request.url.path) is None:
            return await call_next(request)

        try:
            # The store client is blocking; keep it off the event loop.
            page = await run_in_threadpool(
                self.builder.build, request.url.path, first_query_values(request)
            )
        except Exception:
            logger.exception("Preview build failed for %s", request.url)
            page = None

        if page is None:
            return await call_next(request)

        logger.info("Serving %s preview for %s", page.og_type, request.url.path)
        body = render_og_html(
            page,
            site_name=self.settings.site_name,
            default_image=self.settings.default_image_url,
        )
        return HTMLResponse(
            content=body,
            status_code=200,
            headers={"Content-Type": PREVIEW_CONTENT_TYPE},
        )
