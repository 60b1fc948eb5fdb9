"""
Combined posts core REST API definitions

This API may provide multiple versions of certain endpoints, each
mounted below its own prefix (e.g. `/api/v1`). Take a look into the
different API definitions to see which functionality they provide.
"""

import contextlib
import logging.config
from typing import Any, Callable, Dict, Optional, Type, Union

import fastapi
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import base, versioning
from .routers import router
from .service import PostService
from .. import schemas
from ..version import API_VERSION, PROJECT_VERSION
from ..persistence import database as _database, seeding
from ..persistence.errors import StoreError
from ..persistence.store import PostStore
from ..settings import Settings


DEFAULT_EXCEPTION_HANDLERS = {
    StarletteHTTPException: base.APIException.handle,
    RequestValidationError: base.handle_request_validation_error,
    StoreError: base.handle_store_error,
    Exception: base.handle_generic_exception
}


API_V1_DOC = """Posts core REST API definition version 1

This API provides no security model at all. It's an all-or-nothing API,
so take care when deploying it. It's recommended to put a reverse proxy
in front of this API to introduce proper authentication or user handling.

The API tries to always return JSON-encoded data to any kind of request,
if return data is necessary for that response, which is not the case for
redirects or deletions, for example. All error responses use the schema
of the `APIError`. This allows user agents to make certain assumptions
about the returned response, if the returned status code equals the
expected status code for that operation, usually `200` (OK).

Posts are protected by optimistic concurrency control. Every post carries
a `version`, which starts at `0` and is incremented by one with every
successful update. An update must contain the version of the post it is
based on. If the post has been modified in the meantime, the update is
rejected with `409` (Conflict) and nothing is changed; the client should
fetch the post again, re-apply its changes and retry with the new version.
The `ETag` header of responses carrying a single post contains its version,
which may be sent back in the `If-Match` header instead of the body field.
Deleting a post does not require any version.

The following `4xx` error responses are used in the API code:

1. The `400` (Bad Request) error response is returned for invalid requests,
   e.g. blank or missing fields in the body or an invalid post ID.
2. The `404` (Not Found) error response is returned whenever a post ID
   can't be found.
3. The `409` (Conflict) error response is returned for updates with a missing
   or outdated version and for the creation of a post with an existing ID.

Take a look at the individual methods and endpoints for more information.
"""


def _make_app(
        title: str,
        version: str,
        description: str,
        exception_handlers: Optional[Dict[Any, Callable]] = None,
        root_redirect: bool = True,
        responses: Optional[Dict[Union[int, str], Dict[str, Any]]] = None,
        api_class: Optional[Type[fastapi.FastAPI]] = None,
        **kwargs
) -> fastapi.FastAPI:
    if api_class is None:
        api_class = fastapi.FastAPI
    app = api_class(
        title=title,
        version=version,
        description=description,
        responses=responses or {400: {"model": schemas.APIError}},
        **kwargs
    )

    handlers = exception_handlers or DEFAULT_EXCEPTION_HANDLERS
    for exc in handlers:
        app.add_exception_handler(exc, handlers[exc])

    if root_redirect:
        @app.get("/", include_in_schema=False)
        async def redirect_root():
            return RedirectResponse("./docs")

    return app


def create_app(
        settings: Optional[Settings] = None,
        configure_logging: bool = True,
        database: Optional[_database.Database] = None
) -> fastapi.FastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.
    All collaborators are constructed here: the database bindings, the store
    on top of them and the service on top of the store, which is attached
    to the state of every (sub-)application. The database is seeded before
    the application is returned, so seeding failures abort the startup.

    :param settings: optional Settings instance (would be created if not present)
    :param configure_logging: switch whether to configure logging
    :param database: optional database bindings (would be created from the settings if not present)
    :return: new ``FastAPI`` instance
    :raises SeedDataError: when the seed dataset can't be read
    """

    if settings is None:
        settings = Settings()

    if configure_logging:
        logging.config.dictConfig(settings.logging.model_dump())
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    if database is None:
        database = _database.Database(settings.database.connection, settings.database.debug_sql)
    store = PostStore(database)
    if settings.database.seed:
        seeding.seed_posts(store, settings.database.seed_file)

    @contextlib.asynccontextmanager
    async def lifespan(_: fastapi.FastAPI):
        logger.info("Starting API...")
        yield
        logger.info("Shutting down...")
        database.dispose()

    v1 = _make_app(
        title="Posts core REST API v1",
        version=PROJECT_VERSION,
        description=API_V1_DOC,
        api_class=base.APIWithoutValidationError,
        responses={400: {"model": schemas.APIError}}
    )
    app = _make_app(
        title="Posts core REST API",
        version=PROJECT_VERSION,
        description=__doc__,
        apis={API_VERSION: v1},
        logger=logger,
        responses={400: {"model": schemas.APIError}},
        lifespan=lifespan,
        api_class=versioning.VersionedFastAPI
    )

    assert isinstance(app, versioning.VersionedFastAPI), "'VersionedFastAPI' instance required"
    service = PostService(store, location_format=app.get_prefix(API_VERSION) + "/posts/{}")
    for sub_app in [app, v1]:
        sub_app.state.service = service

    app.add_router(router)
    app.finish()
    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn posts_core.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
