"""
Posts core REST API tests
"""

import unittest as _unittest
from typing import Type

import fastapi
from fastapi.testclient import TestClient

from posts_core import schemas
from posts_core.api import create_app, versioning
from posts_core.persistence import models
from posts_core.settings import Settings

from . import utils


api_suite = _unittest.TestSuite()


def _tested(cls: Type):
    global api_suite
    for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
        api_suite.addTest(cls(fixture))
    return cls


@_tested
class APITests(utils.BaseAPITests):
    def _create(self, **kwargs) -> dict:
        data = {"owner_id": 1, "title": "Hello World!", "body": "This is my first post"}
        data.update(kwargs)
        return self.assertQuery(("POST", "/posts"), 201, json=data, r_schema=schemas.Post).json()

    def test_basic_endpoints_and_redirects_to_docs(self):
        self.assertQuery(("GET", "/"), 307, no_version=True, r_headers={"location": "./docs"})
        self.assertQuery(("GET", "/"), 307, r_headers={"location": "./docs"})
        self.assertQuery(("GET", "/docs"), 200, no_version=True)
        self.assertQuery(("GET", "/docs"), 200)
        self.assertQuery(("GET", "/openapi.json"), 200, no_version=True)

        schema = self.assertQuery(("GET", "/openapi.json"), 200).json()
        self.assertIn("/posts", schema["paths"])
        self.assertIn("/posts/{post_id}", schema["paths"])
        for operations in schema["paths"].values():
            for metadata in operations.values():
                self.assertNotIn("422", metadata.get("responses", {}))

    def test_versions_and_health(self):
        self.assertQuery(
            ("GET", "/versions"),
            200,
            no_version=True,
            r_schema=schemas.Versions(latest=1, versions=[{"version": 1, "prefix": "/api/v1"}])
        )
        self.assertQuery(("GET", "/health"), 200, r_schema=schemas.Health(posts=0))
        self._create()
        self.assertQuery(("GET", "/health"), 200, r_schema=schemas.Health(posts=1))
        self.assertQuery(("GET", "/health"), 404, no_version=True)

    def test_create_posts(self):
        self.assertEqual([], self.assertQuery(("GET", "/posts"), 200).json())

        response = self.assertQuery(
            ("POST", "/posts"),
            201,
            json={"id": 1, "userId": 1, "title": "Hello World!", "body": "This is my first post", "version": 8},
            r_headers={"Location": "/api/v1/posts/1", "ETag": '"0"'},
            r_schema=schemas.Post(id=1, owner_id=1, title="Hello World!", body="This is my first post", version=0)
        )
        self.assertEqual(1, response.json()["id"])

        created = self._create(title="Hi", owner_id=2)
        self.assertEqual(2, created["id"])
        self.assertEqual(0, created["version"])
        self.assertEqual(2, len(self.assertQuery(("GET", "/posts"), 200).json()))
        self.assertEqual(2, self.get_db_store().count())

    def test_create_invalid_posts(self):
        for data in [
            {},
            {"owner_id": 1, "title": "Missing body"},
            {"owner_id": 1, "body": "Missing title"},
            {"title": "Missing owner", "body": "Body"},
            {"owner_id": 1, "title": "", "body": "Blank title"},
            {"owner_id": 1, "title": "   ", "body": "Blank title"},
            {"owner_id": 1, "title": "Blank body", "body": "\n"},
            {"owner_id": 1, "title": "x" * 256, "body": "Long title"},
            {"owner_id": "one", "title": "Invalid owner", "body": "Body"},
            {"id": -1, "owner_id": 1, "title": "Negative ID", "body": "Body"}
        ]:
            with self.subTest(data=data):
                response = self.assertQuery(("POST", "/posts"), 400, json=data, r_schema=schemas.APIError)
                self.assertEqual(400, response.json()["status"])
                self.assertEqual("POST", response.json()["method"])

        response = self.client.post(
            self.api_prefix + "/posts",
            content="not json",
            headers={"Content-Type": "application/json"}
        )
        self.assertEqual(400, response.status_code)
        self.assertEqual(0, self.get_db_store().count())

    def test_create_duplicate(self):
        self._create(id=5)
        response = self.assertQuery(("POST", "/posts"), 409, json={
            "id": 5, "owner_id": 2, "title": "Duplicate", "body": "Body"
        }, r_schema=schemas.APIError)
        self.assertEqual(409, response.json()["status"])
        self.assertEqual("Hello World!", self.assertQuery(("GET", "/posts/5"), 200).json()["title"])
        self.assertEqual(6, self._create()["id"])

    def test_get_posts(self):
        self._create()
        self._create(title="Hi")
        self._create(title="Hi", body="Second post with the same title")

        response = self.assertQuery(("GET", "/posts/1"), 200, r_headers={"ETag": '"0"'}, r_schema=schemas.Post)
        self.assertEqual("Hello World!", response.json()["title"])
        self.assertQuery(("GET", "/posts/4"), 404, r_schema=schemas.APIError)
        self.assertQuery(("GET", "/posts/foo"), 400, r_schema=schemas.APIError)

        self.assertEqual([1, 2, 3], [p["id"] for p in self.assertQuery(("GET", "/posts"), 200).json()])
        self.assertEqual([2], [p["id"] for p in self.assertQuery(("GET", "/posts?title=Hi"), 200).json()])
        self.assertEqual([1], [p["id"] for p in self.assertQuery(("GET", "/posts?title=Hello World!"), 200).json()])
        self.assertEqual([], self.assertQuery(("GET", "/posts?title=hi"), 200).json())

    def test_conditional_get(self):
        self._create()
        self.assertQuery(("GET", "/posts/1"), 304, headers={"If-None-Match": '"0"'}, r_none=True)
        self.assertQuery(("GET", "/posts/1"), 304, headers={"If-None-Match": '"3", W/"0"'}, r_none=True)
        self.assertQuery(("GET", "/posts/1"), 304, headers={"If-None-Match": "*"}, r_none=True)
        self.assertQuery(("GET", "/posts/1"), 200, headers={"If-None-Match": '"1"'}, r_schema=schemas.Post)
        self.assertQuery(("GET", "/posts/2"), 404, headers={"If-None-Match": "*"})

    def test_update_posts(self):
        created = self._create()

        response = self.assertQuery(
            ("PUT", "/posts/1"),
            200,
            json={"owner_id": 1, "title": "Hi", "body": "This is my first post", "version": created["version"]},
            r_headers={"ETag": '"1"'},
            r_schema=schemas.Post(id=1, owner_id=1, title="Hi", body="This is my first post", version=1)
        )
        self.assertEqual(1, response.json()["version"])

        # The stale writer loses and nothing is changed
        response = self.assertQuery(
            ("PUT", "/posts/1"),
            409,
            json={"owner_id": 1, "title": "Too late", "body": "Stale", "version": created["version"]},
            r_schema=schemas.APIError
        )
        self.assertIn("version 1", response.json()["message"])
        self.assertQuery(
            ("GET", "/posts/1"),
            200,
            r_schema=schemas.Post(id=1, owner_id=1, title="Hi", body="This is my first post", version=1)
        )

        # The ID in the body is ignored in favor of the path
        self.assertQuery(
            ("PUT", "/posts/1"),
            200,
            json={"id": 42, "userId": 3, "title": "Hi", "body": "Changed", "version": 1},
            r_schema=schemas.Post(id=1, owner_id=3, title="Hi", body="Changed", version=2)
        )
        self.assertQuery(("GET", "/posts/42"), 404)

    def test_update_requires_version(self):
        self._create()
        data = {"owner_id": 1, "title": "Hi", "body": "No version"}

        response = self.assertQuery(("PUT", "/posts/1"), 409, json=data, r_schema=schemas.APIError)
        self.assertIn("required", response.json()["message"])
        self.assertQuery(("PUT", "/posts/1"), 409, json=data, headers={"If-Match": "*"})
        self.assertQuery(("PUT", "/posts/1"), 409, json=data, headers={"If-Match": '"0", "1"'})
        self.assertQuery(("PUT", "/posts/1"), 409, json=data, headers={"If-Match": '"abc"'})
        self.assertQuery(("PUT", "/posts/1"), 409, json=data, headers={"If-Match": '"1"'})
        self.assertEqual(0, self.get_db_store().get(1).version)

        self.assertQuery(("PUT", "/posts/1"), 200, json=data, headers={"If-Match": '"0"'}, r_headers={"ETag": '"1"'})
        self.assertQuery(("PUT", "/posts/1"), 409, json=data, headers={"If-Match": '"0"'})
        # Weak tags never match for 'If-Match'
        self.assertQuery(("PUT", "/posts/1"), 409, json=data, headers={"If-Match": 'W/"1"'})
        self.assertQuery(("PUT", "/posts/1"), 409, json=data, headers={"If-Match": 'W/"1", W/"2"'})
        self.assertEqual(1, self.get_db_store().get(1).version)
        self.assertQuery(("PUT", "/posts/1"), 200, json=data, headers={"If-Match": 'W/"0", "1"'}, r_headers={"ETag": '"2"'})

        # The version in the body takes precedence over the header
        self.assertQuery(("PUT", "/posts/1"), 200, json={**data, "version": 2}, headers={"If-Match": '"0"'})
        self.assertEqual(3, self.get_db_store().get(1).version)

    def test_update_invalid_and_missing_posts(self):
        self._create()
        self.assertQuery(("PUT", "/posts/2"), 404, json={
            "owner_id": 1, "title": "Missing", "body": "Body", "version": 0
        }, r_schema=schemas.APIError)
        self.assertQuery(("PUT", "/posts/foo"), 400, json={
            "owner_id": 1, "title": "Invalid", "body": "Body", "version": 0
        })
        for data in [
            {"owner_id": 1, "title": "", "body": "Body", "version": 0},
            {"owner_id": 1, "title": "Title", "body": " ", "version": 0},
            {"owner_id": 1, "title": "Title", "body": "Body", "version": -1},
            {"owner_id": 1, "title": "Title", "version": 0}
        ]:
            with self.subTest(data=data):
                self.assertQuery(("PUT", "/posts/1"), 400, json=data, r_schema=schemas.APIError)
        self.assertEqual(0, self.get_db_store().get(1).version)

    def test_delete_posts(self):
        created = self._create()
        self._create(title="Hi")
        self.assertQuery(("PUT", "/posts/1"), 200, json={**created, "title": "Changed"})

        self.assertQuery(("DELETE", "/posts/1"), 204, r_none=True)
        self.assertQuery(("GET", "/posts/1"), 404)
        self.assertQuery(("DELETE", "/posts/1"), 404, r_schema=schemas.APIError)
        self.assertQuery(("PUT", "/posts/1"), 404, json={**created, "version": 1})
        self.assertQuery(("DELETE", "/posts/foo"), 400)
        self.assertEqual([2], [p["id"] for p in self.assertQuery(("GET", "/posts"), 200).json()])

        # Allocated identifiers are never handed out again
        self.assertEqual(3, self._create()["id"])

    def test_scenario_concurrent_editors(self):
        self._create(id=1, title="Hello World!")
        first = self.assertQuery(("GET", "/posts/1"), 200).json()
        second = self.assertQuery(("GET", "/posts/1"), 200).json()
        self.assertEqual(first, second)

        self.assertQuery(("PUT", "/posts/1"), 200, json={**first, "title": "Hi"})
        self.assertQuery(("PUT", "/posts/1"), 409, json={**second, "title": "Hello again"})

        latest = self.assertQuery(("GET", "/posts/1"), 200, r_headers={"ETag": '"1"'}).json()
        self.assertEqual("Hi", latest["title"])
        self.assertQuery(
            ("PUT", "/posts/1"),
            200,
            json={**latest, "title": "Hello again"},
            r_schema=schemas.Post(id=1, owner_id=1, title="Hello again", body="This is my first post", version=2)
        )

    def test_storage_failure(self):
        self._create()
        models.Base.metadata.drop_all(bind=self.db.engine)
        response = self.assertQuery(("GET", "/posts"), 500, r_schema=schemas.APIError)
        self.assertTrue(response.json()["repeat"])
        self.assertEqual(500, response.json()["status"])
        self.assertQuery(("POST", "/posts"), 500, json={"owner_id": 1, "title": "Title", "body": "Body"})


@_tested
class SeededAPITests(utils.BaseAPITests):
    seed = True

    def test_seeded_posts(self):
        self.assertQuery(("GET", "/health"), 200, r_schema=schemas.Health(posts=100))
        posts = self.assertQuery(("GET", "/posts"), 200).json()
        self.assertEqual(list(range(1, 101)), [p["id"] for p in posts])
        self.assertTrue(all(p["version"] == 0 for p in posts))

        post = self.assertQuery(("GET", "/posts/100"), 200, r_headers={"ETag": '"0"'}).json()
        first_with_title = min(p["id"] for p in posts if p["title"] == post["title"])
        found = self.client.get(self.api_prefix + "/posts", params={"title": post["title"]}).json()
        self.assertEqual([first_with_title], [p["id"] for p in found])
        self.assertEqual(101, self.assertQuery(("POST", "/posts"), 201, json={
            "owner_id": 11, "title": "New post", "body": "After the seeded ones"
        }).json()["id"])

    def test_seeding_is_not_repeated(self):
        self.assertQuery(("DELETE", "/posts/1"), 204)
        create_app(
            Settings(database={"connection": self.database_url, "seed": True}),
            configure_logging=False,
            database=self.db
        )
        self.assertQuery(("GET", "/health"), 200, r_schema=schemas.Health(posts=99))
        self.assertQuery(("GET", "/posts/1"), 404)


@_tested
class VersioningTests(_unittest.TestCase):
    def test_versions_decorator(self):
        with self.assertRaises(TypeError):
            versioning.versions("1")
        with self.assertRaises(ValueError):
            versioning.versions(1, 2, minimal=2)

        @versioning.versions(2, 3)
        def explicit():
            pass

        @versioning.versions(minimal=2)
        def minimal():
            pass

        self.assertEqual((2, 3), getattr(explicit, versioning.EXPLICIT_VERSIONS_ATTRIBUTE))
        self.assertFalse(hasattr(explicit, versioning.MINIMAL_VERSION_ATTRIBUTE))
        self.assertEqual(2, getattr(minimal, versioning.MINIMAL_VERSION_ATTRIBUTE))
        self.assertFalse(hasattr(minimal, versioning.EXPLICIT_VERSIONS_ATTRIBUTE))

    def test_routes_are_mounted_per_version(self):
        router = fastapi.APIRouter()

        @router.get("/first")
        @versioning.versions(1)
        def first():
            return 1

        @router.get("/later")
        @versioning.versions(minimal=2)
        def later():
            return 2

        @router.get("/unversioned")
        def unversioned():
            return 0

        app = versioning.VersionedFastAPI({1: fastapi.FastAPI(), 2: fastapi.FastAPI()}, version_format="/v{}")
        app.add_router(router)
        app.finish()
        app.finish()
        with self.assertRaises(RuntimeError):
            app.add_router(fastapi.APIRouter())

        client = TestClient(app)
        self.assertEqual({"latest": 2, "versions": [
            {"version": 1, "prefix": "/v1"},
            {"version": 2, "prefix": "/v2"}
        ]}, client.get("/versions").json())
        self.assertEqual(1, client.get("/v1/first").json())
        self.assertEqual(404, client.get("/v2/first").status_code)
        self.assertEqual(404, client.get("/v1/later").status_code)
        self.assertEqual(2, client.get("/v2/later").json())
        for prefix in ["", "/v1", "/v2"]:
            self.assertEqual(404, client.get(prefix + "/unversioned").status_code)


if __name__ == '__main__':
    _unittest.main()
