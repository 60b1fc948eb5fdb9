"""
Helper functions to make writing unit tests for the posts core easier
"""

import os
import random
import string
import secrets
import unittest
from typing import Iterable, Mapping, Optional, Tuple, Type, Union

import pydantic
from fastapi.testclient import TestClient
from httpx import Response

from posts_core import schemas as _schemas, settings as _settings
from posts_core.api.api import create_app
from posts_core.persistence import database, models
from posts_core.persistence.store import PostStore

from . import conf


class BaseTest(unittest.TestCase):
    """
    A base class for unit tests which introduces simple setup and teardown of unit tests

    If a subclass needs special setup or teardown functionality, it **MUST**
    call the superclasses setup and teardown methods: the superclass setup
    method at the beginning of the subclass setup method, the superclass
    teardown method at the end of the subclass teardown method.
    """

    config_file: Optional[str] = None
    database_url: Optional[str] = None
    _database_file: Optional[str] = None
    _config_paths: Optional[list] = None

    def setUp(self) -> None:
        self.config_file = conf.CONFIG_DEFAULT_FILE_FORMAT.format(os.getpid(), secrets.token_hex(8))
        self._config_paths = _settings.CONFIG_PATHS
        _settings.CONFIG_PATHS = [self.config_file]
        database.PRINT_SQLITE_WARNING = False

        if conf.DATABASE_URL is not None:
            self.database_url = conf.DATABASE_URL
        else:
            self._database_file = conf.DATABASE_DEFAULT_FILE_FORMAT.format(
                os.getpid(),
                "".join([random.choice(string.ascii_lowercase) for _ in range(6)])
            )
            self.database_url = conf.DATABASE_URL_FORMAT.format(self._database_file)

    def tearDown(self) -> None:
        if self._database_file and os.path.exists(self._database_file):
            os.remove(self._database_file)
        elif conf.DATABASE_URL is not None:
            db = database.Database(self.database_url, create_all=False)
            models.Base.metadata.drop_all(bind=db.engine)
            db.dispose()

        if self.config_file and os.path.exists(self.config_file):
            os.remove(self.config_file)
        _settings.CONFIG_PATHS = self._config_paths

    def write_config(self, **database_options) -> _settings.config.CoreConfig:
        config = _settings.get_default_core_config(self.database_url)
        config.database.debug_sql = conf.SQLALCHEMY_ECHOING
        for key, value in database_options.items():
            setattr(config.database, key, value)
        return _settings.store_configuration(config, self.config_file)

    @staticmethod
    def get_sample_posts() -> list:
        return [
            _schemas.PostCreation(id=1, owner_id=1, title="Hello World!", body="This is my first post"),
            _schemas.PostCreation(id=2, owner_id=1, title="Hi", body="How are you?"),
            _schemas.PostCreation(owner_id=2, title="Third", body="Without an explicit ID"),
        ]


class BasePersistenceTests(BaseTest):
    db: database.Database
    store: PostStore

    def setUp(self) -> None:
        super().setUp()
        self.db = database.Database(self.database_url, echo=conf.SQLALCHEMY_ECHOING)
        self.store = PostStore(self.db)

    def tearDown(self) -> None:
        self.db.dispose()
        super().tearDown()


class BaseAPITests(BaseTest):
    """
    Base class for unit tests of the HTTP API using FastAPI's test client

    The application is created without logging configuration and
    without seeding, unless a subclass sets ``seed`` to ``True``.
    """

    api_prefix: str = "/api/v1"
    seed: bool = False

    db: database.Database
    client: TestClient

    def setUp(self) -> None:
        super().setUp()
        self.db = database.Database(self.database_url, echo=conf.SQLALCHEMY_ECHOING)
        settings = _settings.Settings(
            database={"connection": self.database_url, "seed": self.seed, "debug_sql": conf.SQLALCHEMY_ECHOING}
        )
        self.app = create_app(settings, configure_logging=False, database=self.db)
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        self.db.dispose()
        super().tearDown()

    def assertQuery(
            self,
            endpoint: Tuple[str, str],
            status_code: Union[int, Iterable[int]] = 200,
            json: Optional[Union[dict, pydantic.BaseModel]] = None,
            headers: Optional[dict] = None,
            r_none: bool = False,
            r_headers: Optional[Union[Mapping, Iterable]] = None,
            r_schema: Optional[Union[pydantic.BaseModel, Type[pydantic.BaseModel]]] = None,
            no_version: bool = False
    ) -> Response:
        """
        Do a query to the specified endpoint and return the response

        :param endpoint: tuple of the method and the path of the endpoint
        :param status_code: asserted status code(s) of the final server's response
        :param json: optional dictionary or model holding the request data
        :param headers: optional set of headers to sent in the request
        :param r_none: switch to expect no (=empty) result and skip all other response content checks
        :param r_headers: optional set of headers which are asserted in the response
        :param r_schema: optional class or instance of a response schema to be asserted
        :param no_version: don't prepend the API version prefix to the path
        :return: response to the requested resource
        """

        method, path = endpoint
        if not no_version:
            path = self.api_prefix + path
        if isinstance(json, pydantic.BaseModel):
            json = json.model_dump()

        response = self.client.request(method.upper(), path, json=json, headers=headers, follow_redirects=False)

        if isinstance(status_code, int):
            self.assertEqual(status_code, response.status_code, response.text)
        else:
            self.assertIn(response.status_code, status_code, response.text)

        if r_headers is not None:
            for k in (r_headers.keys() if isinstance(r_headers, Mapping) else r_headers):
                self.assertIsNotNone(response.headers.get(k), response.headers)
                if isinstance(r_headers, Mapping):
                    self.assertEqual(r_headers[k], response.headers.get(k), response.headers)

        if r_none:
            self.assertEqual("", response.text)
        elif r_schema is not None and isinstance(r_schema, pydantic.BaseModel):
            self.assertEqual(r_schema, type(r_schema)(**response.json()), response.json())
        elif r_schema is not None:
            self.assertTrue(r_schema(**response.json()), response.json())

        return response

    def get_db_store(self) -> PostStore:
        return PostStore(self.db)
