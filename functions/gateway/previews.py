"""
Route dispatch and metadata composition for crawler previews.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping, Optional
from urllib.parse import quote

from gateway.config import Settings
from gateway.docstore import (
    DocumentStore,
    FieldEquals,
    LookupResult,
    StructuredQuery,
    string_value,
)
from gateway.og_html import OgPage, truncate_description
from gateway.records import (
    PUBLIC_VISIBILITY,
    PlaceRecord,
    PostRecord,
    UserRecord,
)

logger = logging.getLogger(__name__)

POSTS_COLLECTION = "posts"
USERS_COLLECTION = "users"
DESCRIPTION_SEPARATOR = " · "
# Posts fetched per place lookup; the newest one wins.
PLACE_CANDIDATE_LIMIT = 20


class PreviewRoute(Enum):
    """Content routes eligible for previews, with their lookup parameter."""

    POST = ("/post", "id")
    USER = ("/user", "u")
    PLACE = ("/place", "id")

    def __init__(self, path: str, param: str):
        self.path = path
        self.param = param


def match_route(path: str) -> Optional[PreviewRoute]:
    for route in PreviewRoute:
        if path in (route.path, f"{route.path}/"):
            return route
    return None


def compose_place_title(place_name: str, city: str, site_name: str) -> str:
    if city:
        return f"{place_name} — {city} | {site_name}"
    return f"{place_name} | {site_name}"


def compose_post_description(post: PostRecord, site_name: str) -> str:
    parts = []
    if post.rating > 0:
        parts.append(f"{'⭐' * post.rating} {post.rating}/5")
    if post.caption:
        parts.append(post.caption)
    if post.author_name:
        parts.append(f"Shared by {post.author_name}")
    return DESCRIPTION_SEPARATOR.join(parts) or (
        f"Check out {post.place_name} on {site_name}"
    )


def compose_user_description(user: UserRecord, site_name: str) -> str:
    if user.bio:
        return user.bio
    noun = "restaurant" if user.post_count == 1 else "restaurants"
    return f"{user.display_name} has shared {user.post_count} {noun} on {site_name}"


class PreviewBuilder:
    """Looks up the entity behind a content route and composes its preview."""

    def __init__(self, store: DocumentStore, settings: Settings):
        self.store = store
        self.settings = settings

    def canonical_url(self, route: PreviewRoute, value: str) -> str:
        query = f"{route.param}={quote(value, safe='')}"
        return f"{self.settings.site_url}{route.path}?{query}"

    def build(self, path: str, query_params: Mapping[str, str]) -> Optional[OgPage]:
        """
        Return the preview for ``path``, or None when the request should
        pass through (no eligible route, missing parameter, nothing found).
        """
        route = match_route(path)
        if route is None:
            return None
        value = query_params.get(route.param)
        if not value:
            return None
        if route is PreviewRoute.POST:
            return self.build_post(value)
        if route is PreviewRoute.USER:
            return self.build_user(value)
        return self.build_place(value)

    def build_post(self, post_id: str) -> Optional[OgPage]:
        result = self.store.get_document(POSTS_COLLECTION, post_id)
        if not self._usable(result, "post", post_id):
            return None
        post = PostRecord.from_document(result.document, post_id)
        if self.settings.enforce_post_visibility and not post.is_public:
            logger.info("Skipping preview for non-public post %s", post_id)
            return None
        site_name = self.settings.site_name
        return OgPage(
            title=compose_place_title(post.place_name, post.city, site_name),
            description=truncate_description(
                compose_post_description(post, site_name)
            ),
            image=post.photo_urls[0] if post.photo_urls else None,
            url=self.canonical_url(PreviewRoute.POST, post_id),
            og_type="article",
        )

    def build_user(self, username: str) -> Optional[OgPage]:
        query = StructuredQuery(
            collection=USERS_COLLECTION,
            filters=(FieldEquals("username", string_value(username)),),
            limit=1,
        )
        result = self.store.run_query(query)
        if not self._usable(result, "user", username):
            return None
        user = UserRecord.from_document(result.document, username)
        site_name = self.settings.site_name
        return OgPage(
            title=f"{user.display_name} (@{username}) | {site_name}",
            description=truncate_description(
                compose_user_description(user, site_name)
            ),
            image=user.photo_url or None,
            url=self.canonical_url(PreviewRoute.USER, username),
            og_type="profile",
        )

    def build_place(self, place_id: str) -> Optional[OgPage]:
        query = StructuredQuery(
            collection=POSTS_COLLECTION,
            filters=(
                FieldEquals("placeId", string_value(place_id)),
                FieldEquals("visibility", string_value(PUBLIC_VISIBILITY)),
            ),
            limit=PLACE_CANDIDATE_LIMIT,
        )
        result = self.store.run_query(query)
        if not self._usable(result, "place", place_id):
            return None
        # Visibility is also filtered in the query.
        posts = [
            post
            for post in (
                PostRecord.from_document(doc, post_id="") for doc in result.documents
            )
            if post.is_public
        ]
        if not posts:
            return None
        post = max(posts, key=lambda p: p.created_at)
        place = PlaceRecord.from_post(post)
        site_name = self.settings.site_name
        return OgPage(
            title=compose_place_title(place.place_name, place.city, site_name),
            description=truncate_description(
                f"See all posts about {place.place_name} on {site_name}"
            ),
            image=place.photo_urls[0] if place.photo_urls else None,
            url=self.canonical_url(PreviewRoute.PLACE, place_id),
        )

    def _usable(self, result: LookupResult, kind: str, key: str) -> bool:
        if result.ok:
            return True
        logger.debug("No %s preview for %r (%s)", kind, key, result.status.value)
        return False
