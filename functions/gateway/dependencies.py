"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from gateway.config import Settings, get_settings
from gateway.docstore import DocumentStore, FirestoreRestClient, InMemoryDocumentStore

_document_store: DocumentStore | None = None


def build_document_store(settings: Settings) -> DocumentStore:
    if settings.use_in_memory_backends:
        return InMemoryDocumentStore()
    return FirestoreRestClient(
        settings.documents_base_url,
        timeout=settings.firestore_timeout_seconds,
    )


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store client shared across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    _document_store = build_document_store(get_settings())
    return _document_store
