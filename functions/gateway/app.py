"""
FastAPI application entry point for the preview gateway.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from gateway.config import Settings, get_settings
from gateway.dependencies import build_document_store, get_document_store
from gateway.docstore import DocumentStore
from gateway.middleware import PreviewMiddleware
from gateway.previews import PreviewBuilder
from gateway.routes import router


def create_app(
    settings: Optional[Settings] = None, store: Optional[DocumentStore] = None
) -> FastAPI:
    if settings is None:
        settings = get_settings()
        store = store or get_document_store()
    else:
        store = store or build_document_store(settings)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    app = FastAPI(title="MyMaps Preview Gateway", version="0.1.0")
    app.dependency_overrides[get_settings] = lambda: settings
    app.add_middleware(
        PreviewMiddleware,
        builder=PreviewBuilder(store, settings),
        settings=settings,
    )
    app.include_router(router)
    return app


app = create_app()
