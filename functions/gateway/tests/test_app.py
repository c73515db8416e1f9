import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from gateway.app import create_app
from gateway.config import Settings
from gateway.docstore import (
    FirestoreRestClient,
    InMemoryDocumentStore,
    array_value,
    integer_value,
    string_value,
)
from gateway.middleware import PreviewMiddleware

FACEBOOK_UA = "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)"
BROWSER_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15"
)


def post_fields(**overrides) -> dict:
    fields = {
        "placeId": string_value("place-1"),
        "placeName": string_value("Taco Joint"),
        "city": string_value("Austin"),
        "caption": string_value("Great tacos"),
        "rating": integer_value(4),
        "photoUrls": array_value(["https://img.test/1.jpg", "https://img.test/2.jpg"]),
        "authorName": string_value("Alex"),
        "visibility": string_value("public"),
        "createdAt": integer_value(1700000000000),
    }
    fields.update(overrides)
    return fields


class PreviewGatewayTests(unittest.TestCase):
    def setUp(self):
        self.static_dir = tempfile.TemporaryDirectory()
        root = Path(self.static_dir.name)
        (root / "index.html").write_text("<html>home</html>", encoding="utf-8")
        (root / "post.html").write_text("<html>post app</html>", encoding="utf-8")
        (root / "user.html").write_text("<html>user app</html>", encoding="utf-8")
        (root / "place.html").write_text("<html>place app</html>", encoding="utf-8")

        self.settings = Settings(
            site_url="https://maps.example.test/",
            site_name="MyMaps",
            static_dir=self.static_dir.name,
            use_in_memory_backends=True,
        )
        self.store = InMemoryDocumentStore()
        self.store.put("posts", "p1", post_fields())
        self.store.put(
            "users",
            "uid-1",
            {
                "username": string_value("alex"),
                "displayName": string_value("Alex Doe"),
                "bio": string_value(""),
                "postCount": integer_value(3),
                "photoURL": string_value("https://img.test/alex.jpg"),
            },
        )
        self.client = TestClient(create_app(self.settings, self.store))

    def tearDown(self):
        self.static_dir.cleanup()

    def crawl(self, url: str, user_agent: str = FACEBOOK_UA):
        return self.client.get(url, headers={"User-Agent": user_agent})

    def test_browser_request_passes_through_without_lookups(self):
        response = self.crawl("/post?id=p1", user_agent=BROWSER_UA)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "<html>post app</html>")
        self.assertEqual(self.store.calls, [])

    def test_missing_user_agent_passes_through(self):
        response = self.client.get("/post?id=p1", headers={"User-Agent": ""})
        self.assertEqual(response.text, "<html>post app</html>")
        self.assertEqual(self.store.calls, [])

    def test_crawler_on_other_path_passes_through(self):
        response = self.crawl("/")
        self.assertEqual(response.text, "<html>home</html>")
        response = self.crawl("/posts?id=p1")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.store.calls, [])

    def test_crawler_without_required_param_passes_through(self):
        response = self.crawl("/post")
        self.assertEqual(response.text, "<html>post app</html>")
        response = self.crawl("/user?id=alex")
        self.assertEqual(response.text, "<html>user app</html>")
        self.assertEqual(self.store.calls, [])

    def test_crawler_gets_post_preview(self):
        response = self.crawl("/post?id=p1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "text/html;charset=UTF-8")
        body = response.text
        self.assertIn(
            '<meta property="og:title" content="Taco Joint — Austin | MyMaps" />', body
        )
        self.assertIn(
            '<meta property="og:description" '
            'content="⭐⭐⭐⭐ 4/5 · Great tacos · Shared by Alex" />',
            body,
        )
        self.assertIn('<meta property="og:image" content="https://img.test/1.jpg" />', body)
        self.assertIn(
            '<meta property="og:url" content="https://maps.example.test/post?id=p1" />',
            body,
        )
        self.assertIn('<meta property="og:type" content="article" />', body)
        self.assertIn(
            '<meta http-equiv="refresh" content="0;url=https://maps.example.test/post?id=p1" />',
            body,
        )
        self.assertEqual(self.store.calls, [("get", ("posts", "p1"))])

    def test_trailing_slash_route_is_intercepted(self):
        response = self.crawl("/post/?id=p1")
        self.assertIn('og:type" content="article"', response.text)

    def test_caption_markup_is_escaped(self):
        self.store.put(
            "posts", "xss", post_fields(caption=string_value("<script>alert(1)</script>"))
        )
        response = self.crawl("/post?id=xss")
        self.assertIn("&lt;script&gt;alert(1)&lt;/script&gt;", response.text)
        self.assertNotIn("<script>", response.text)

    def test_missing_post_passes_through(self):
        response = self.crawl("/post?id=nope")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "<html>post app</html>")
        self.assertEqual(self.store.calls, [("get", ("posts", "nope"))])

    def test_store_failure_passes_through(self):
        self.store.fail_with = "connection refused"
        response = self.crawl("/post?id=p1")
        self.assertEqual(response.text, "<html>post app</html>")

    def test_private_post_by_id_passes_through(self):
        self.store.put("posts", "secret", post_fields(visibility=string_value("private")))
        response = self.crawl("/post?id=secret")
        self.assertEqual(response.text, "<html>post app</html>")

    def test_crawler_gets_user_preview(self):
        response = self.crawl("/user?u=alex", user_agent="Twitterbot/1.0")
        body = response.text
        self.assertIn('content="Alex Doe (@alex) | MyMaps"', body)
        self.assertIn('content="Alex Doe has shared 3 restaurants on MyMaps"', body)
        self.assertIn('<meta property="og:type" content="profile" />', body)
        self.assertIn('content="https://maps.example.test/user?u=alex"', body)

    def test_place_preview_never_uses_private_posts(self):
        self.store.put(
            "posts",
            "private-newer",
            post_fields(
                placeId=string_value("place-2"),
                placeName=string_value("Hidden Gem"),
                visibility=string_value("private"),
                createdAt=integer_value(1800000000000),
            ),
        )
        response = self.crawl("/place?id=place-2")
        self.assertEqual(response.text, "<html>place app</html>")
        self.assertNotIn("Hidden Gem", response.text)

    def test_place_preview(self):
        response = self.crawl("/place?id=place-1", user_agent="Slackbot-LinkExpanding 1.0")
        body = response.text
        self.assertIn('<title>Taco Joint — Austin | MyMaps</title>', body)
        self.assertIn('content="See all posts about Taco Joint on MyMaps"', body)
        self.assertIn('<meta property="og:type" content="website" />', body)
        kind, query = self.store.calls[0]
        self.assertEqual(kind, "query")
        where = query["structuredQuery"]["where"]["compositeFilter"]
        self.assertEqual(where["op"], "AND")
        paths = {f["fieldFilter"]["field"]["fieldPath"]: f["fieldFilter"]["value"] for f in where["filters"]}
        self.assertEqual(paths["placeId"], {"stringValue": "place-1"})
        self.assertEqual(paths["visibility"], {"stringValue": "public"})

    def test_repeated_requests_give_same_metadata(self):
        first = self.crawl("/post?id=p1").text
        second = self.crawl("/post?id=p1").text
        self.assertEqual(first, second)
        self.assertEqual(len(self.store.calls), 2)

    def test_user_and_place_store_failures_pass_through(self):
        self.store.fail_with = "deadline exceeded"
        response = self.crawl("/user?u=alex")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "<html>user app</html>")
        response = self.crawl("/place?id=place-1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "<html>place app</html>")
        self.assertEqual([kind for kind, _ in self.store.calls], ["query", "query"])

    def test_repeated_parameter_uses_first_value(self):
        self.store.put("posts", "p2", post_fields(placeName=string_value("Other Spot")))
        response = self.crawl("/post?id=p1&id=p2")
        self.assertIn("Taco Joint", response.text)
        self.assertEqual(self.store.calls, [("get", ("posts", "p1"))])

    def test_crawler_preview_for_any_method(self):
        response = self.client.post("/post?id=p1", headers={"User-Agent": FACEBOOK_UA})
        self.assertEqual(response.status_code, 200)
        self.assertIn('og:type" content="article"', response.text)

    def test_head_request_passes_through(self):
        response = self.client.head("/post?id=p1", headers={"User-Agent": BROWSER_UA})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.store.calls, [])
        response = self.client.head("/healthz")
        self.assertEqual(response.status_code, 200)

    def test_injected_settings_configure_the_store(self):
        settings = Settings(
            firestore_base_url="http://fake-store.test/docs/",
            firestore_timeout_seconds=2.5,
            use_in_memory_backends=False,
        )
        app = create_app(settings)
        middleware = next(m for m in app.user_middleware if m.cls is PreviewMiddleware)
        store = middleware.kwargs["builder"].store
        self.assertIsInstance(store, FirestoreRestClient)
        self.assertEqual(store.base_url, "http://fake-store.test/docs")
        self.assertEqual(store.timeout, 2.5)

    def test_injected_in_memory_setting_is_honoured(self):
        app = create_app(Settings(use_in_memory_backends=True))
        middleware = next(m for m in app.user_middleware if m.cls is PreviewMiddleware)
        self.assertIsInstance(middleware.kwargs["builder"].store, InMemoryDocumentStore)

    def test_builder_error_is_logged_and_passes_through(self):
        with patch(
            "gateway.previews.PreviewBuilder.build_post", side_effect=RuntimeError("boom")
        ):
            with self.assertLogs("gateway.middleware", level="ERROR") as logs:
                response = self.crawl("/post?id=p1")
        self.assertEqual(response.text, "<html>post app</html>")
        self.assertIn("Preview build failed", logs.output[0])

    def test_healthz(self):
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok", "site_name": "MyMaps"})

    def test_static_paths_cannot_escape_root(self):
        response = self.client.get("/..%2F..%2Fetc%2Fpasswd")
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
