"""
Typed projections over raw Firestore documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field

MAX_RATING = 5
PUBLIC_VISIBILITY = "public"


def _field(doc: dict, key: str) -> dict:
    fields = doc.get("fields") or {}
    value = fields.get(key)
    return value if isinstance(value, dict) else {}


def fs_string(doc: dict, key: str) -> str:
    value = _field(doc, key).get("stringValue")
    return value if isinstance(value, str) else ""


def fs_int(doc: dict, key: str) -> int:
    value = _field(doc, key)
    if "integerValue" in value:
        try:
            return int(value["integerValue"])
        except (TypeError, ValueError):
            return 0
    if "doubleValue" in value:
        try:
            return int(float(value["doubleValue"]))
        except (TypeError, ValueError, OverflowError):
            return 0
    return 0


def fs_string_list(doc: dict, key: str) -> list[str]:
    array = _field(doc, key).get("arrayValue")
    values = (array.get("values") if isinstance(array, dict) else None) or []
    items = []
    for value in values:
        text = value.get("stringValue") if isinstance(value, dict) else None
        if isinstance(text, str) and text:
            items.append(text)
    return items


@dataclass
class PostRecord:
    post_id: str
    place_id: str = ""
    place_name: str = ""
    city: str = ""
    caption: str = ""
    rating: int = 0
    photo_urls: list[str] = field(default_factory=list)
    author_name: str = ""
    visibility: str = ""
    created_at: int = 0

    @classmethod
    def from_document(cls, doc: dict, post_id: str) -> "PostRecord":
        return cls(
            post_id=post_id,
            place_id=fs_string(doc, "placeId"),
            place_name=fs_string(doc, "placeName"),
            city=fs_string(doc, "city"),
            caption=fs_string(doc, "caption"),
            rating=max(0, min(MAX_RATING, fs_int(doc, "rating"))),
            photo_urls=fs_string_list(doc, "photoUrls"),
            author_name=fs_string(doc, "authorName"),
            visibility=fs_string(doc, "visibility"),
            created_at=fs_int(doc, "createdAt"),
        )

    @property
    def is_public(self) -> bool:
        return self.visibility == PUBLIC_VISIBILITY


@dataclass
class UserRecord:
    username: str
    display_name: str = ""
    bio: str = ""
    post_count: int = 0
    photo_url: str = ""

    @classmethod
    def from_document(cls, doc: dict, username: str) -> "UserRecord":
        return cls(
            username=username,
            display_name=fs_string(doc, "displayName"),
            bio=fs_string(doc, "bio"),
            post_count=fs_int(doc, "postCount"),
            photo_url=fs_string(doc, "photoURL"),
        )


@dataclass
class PlaceRecord:
    """A place as seen through its most recent public post."""

    place_id: str
    place_name: str = ""
    city: str = ""
    photo_urls: list[str] = field(default_factory=list)

    @classmethod
    def from_post(cls, post: PostRecord) -> "PlaceRecord":
        return cls(
            place_id=post.place_id,
            place_name=post.place_name,
            city=post.city,
            photo_urls=list(post.photo_urls),
        )
