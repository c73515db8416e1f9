"""
Document store abstraction for the Firestore REST API and an in-memory test
implementation.

Documents are passed around in Firestore's wire format
(``{"name": ..., "fields": {"key": {"stringValue": ...}}}``); typed
projections live in ``gateway.records``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds


class LookupStatus(Enum):
    FOUND = "found"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a single read against the document store."""

    status: LookupStatus
    documents: tuple[dict, ...] = ()
    reason: str = ""

    @classmethod
    def found(cls, *documents: dict) -> "LookupResult":
        return cls(LookupStatus.FOUND, documents=documents)

    @classmethod
    def empty(cls) -> "LookupResult":
        return cls(LookupStatus.EMPTY)

    @classmethod
    def failed(cls, reason: str) -> "LookupResult":
        return cls(LookupStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def document(self) -> Optional[dict]:
        return self.documents[0] if self.documents else None


@dataclass(frozen=True)
class FieldEquals:
    field_path: str
    value: dict

    def as_filter(self) -> dict:
        return {
            "fieldFilter": {
                "field": {"fieldPath": self.field_path},
                "op": "EQUAL",
                "value": self.value,
            }
        }


@dataclass(frozen=True)
class StructuredQuery:
    """An equality-filtered, limited collection query."""

    collection: str
    filters: tuple[FieldEquals, ...]
    limit: int = 1

    def as_body(self) -> dict:
        query: dict[str, Any] = {"from": [{"collectionId": self.collection}]}
        if len(self.filters) == 1:
            query["where"] = self.filters[0].as_filter()
        elif self.filters:
            query["where"] = {
                "compositeFilter": {
                    "op": "AND",
                    "filters": [f.as_filter() for f in self.filters],
                }
            }
        query["limit"] = self.limit
        return {"structuredQuery": query}


def string_value(value: str) -> dict:
    return {"stringValue": value}


def integer_value(value: int) -> dict:
    # Firestore encodes int64 as a decimal string.
    return {"integerValue": str(value)}


def array_value(values: list[str]) -> dict:
    return {"arrayValue": {"values": [string_value(v) for v in values]}}


class DocumentStore(Protocol):
    """Read operations the gateway needs from the document store."""

    def get_document(self, collection: str, document_id: str) -> LookupResult:
        ...

    def run_query(self, query: StructuredQuery) -> LookupResult:
        ...


class FirestoreRestClient:
    """
    Read-only client for the Firestore REST API.

    One attempt per call, no retries. Transport and payload errors are
    reported as ``LookupStatus.FAILED`` rather than raised. Each call is a
    standalone request, so the client can be shared across worker threads.
    """

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        if not base_url:
            raise ValueError("base_url is required for FirestoreRestClient")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_document(self, collection: str, document_id: str) -> LookupResult:
        url = "/".join(
            [self.base_url, quote(collection, safe=""), quote(document_id, safe="")]
        )
        try:
            response = requests.get(url, timeout=self.timeout)
            if response.status_code == 404:
                return LookupResult.empty()
            response.raise_for_status()
            document = response.json()
            if not isinstance(document, dict) or not isinstance(
                document.get("fields", {}), dict
            ):
                raise ValueError("unexpected document payload")
        except requests.RequestException as exc:
            logger.warning("Firestore get %s/%s failed: %s", collection, document_id, exc)
            return LookupResult.failed(str(exc))
        except (ValueError, TypeError) as exc:
            logger.warning(
                "Firestore get %s/%s returned malformed payload: %s",
                collection,
                document_id,
                exc,
            )
            return LookupResult.failed(str(exc))
        return LookupResult.found(document)

    def run_query(self, query: StructuredQuery) -> LookupResult:
        try:
            response = requests.post(
                f"{self.base_url}:runQuery",
                json=query.as_body(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            results = response.json()
            if not isinstance(results, list):
                raise ValueError("runQuery payload is not a list")
            documents = []
            for item in results:
                document = item.get("document")
                if document is not None:
                    if not isinstance(document, dict):
                        raise ValueError("runQuery document is not an object")
                    documents.append(document)
        except requests.RequestException as exc:
            logger.warning("Firestore query on %s failed: %s", query.collection, exc)
            return LookupResult.failed(str(exc))
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning(
                "Firestore query on %s returned malformed payload: %s",
                query.collection,
                exc,
            )
            return LookupResult.failed(str(exc))
        if not documents:
            return LookupResult.empty()
        return LookupResult.found(*documents)


@dataclass
class InMemoryDocumentStore:
    """Test double for document store reads."""

    collections: dict[str, dict[str, dict]] = field(default_factory=dict)
    fail_with: Optional[str] = None
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def put(self, collection: str, document_id: str, fields: dict) -> dict:
        document = {
            "name": f"documents/{collection}/{document_id}",
            "fields": fields,
        }
        self.collections.setdefault(collection, {})[document_id] = document
        return document

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()
        self.calls.clear()
        self.fail_with = None

    def get_document(self, collection: str, document_id: str) -> LookupResult:
        self.calls.append(("get", (collection, document_id)))
        if self.fail_with:
            return LookupResult.failed(self.fail_with)
        document = self.collections.get(collection, {}).get(document_id)
        if document is None:
            return LookupResult.empty()
        return LookupResult.found(document)

    def run_query(self, query: StructuredQuery) -> LookupResult:
        self.calls.append(("query", query.as_body()))
        if self.fail_with:
            return LookupResult.failed(self.fail_with)
        matches = [
            doc
            for doc in self.collections.get(query.collection, {}).values()
            if all(doc["fields"].get(f.field_path) == f.value for f in query.filters)
        ]
        matches = matches[: query.limit]
        if not matches:
            return LookupResult.empty()
        return LookupResult.found(*matches)
