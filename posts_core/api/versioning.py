"""
Posts core API library to mount the path operations below versioned prefixes
"""

import logging
from typing import Callable, Dict, Optional

import fastapi
import fastapi.routing

from .. import schemas


EXPLICIT_VERSIONS_ATTRIBUTE = "_api_versions"
MINIMAL_VERSION_ATTRIBUTE = "_minimal_api_version"

DEFAULT_VERSION_FORMAT = "/api/v{}"


def versions(*explicit: int, minimal: Optional[int] = None) -> Callable[[Callable], Callable]:
    """
    Mark a path operation with the API versions that should serve it

    :param explicit: exact API versions serving the path operation
    :param minimal: first API version serving the path operation (and all later ones)
    :return: decorator to use on a path operation function
    """

    if not all(isinstance(v, int) for v in explicit):
        raise TypeError(f"Not all versions are integers: {explicit!r}")
    if minimal is not None and any(v < minimal for v in explicit):
        raise ValueError("Explicit versions can't be smaller than the minimal version")

    def decorator(func: Callable) -> Callable:
        if explicit:
            setattr(func, EXPLICIT_VERSIONS_ATTRIBUTE, explicit)
        if minimal is not None:
            setattr(func, MINIMAL_VERSION_ATTRIBUTE, minimal)
        return func

    return decorator


def _is_served_by(endpoint: Callable, api_version: int) -> bool:
    explicit = getattr(endpoint, EXPLICIT_VERSIONS_ATTRIBUTE, None)
    minimal = getattr(endpoint, MINIMAL_VERSION_ATTRIBUTE, None)
    if explicit is None and minimal is None:
        return False
    if minimal is not None and api_version < minimal:
        return False
    return explicit is None or api_version in explicit


class VersionedFastAPI(fastapi.FastAPI):
    """
    FastAPI application serving one sub-application per API version

    Routers are added with ``add_router``, which hands every route to the
    sub-applications of the versions it was marked for. Calling ``finish``
    mounts the sub-applications below their prefixes (e.g. ``/api/v1``)
    and adds the ``/versions`` endpoint listing them.
    """

    def __init__(
            self,
            apis: Dict[int, fastapi.FastAPI],
            *args,
            version_format: str = DEFAULT_VERSION_FORMAT,
            logger: Optional[logging.Logger] = None,
            **kwargs
    ):
        assert version_format.count("{}") == 1, "Version format string must contain '{}' once"
        super().__init__(*args, **kwargs)
        self._apis = apis
        self._version_format = version_format
        self._logger = logger or logging.getLogger(__name__)
        self._finished = False

    def get_prefix(self, api_version: int) -> str:
        return self._version_format.format(api_version)

    def finish(self):
        if self._finished:
            return

        for api_version, sub_app in self._apis.items():
            self.mount(self.get_prefix(api_version), sub_app)

        @self.get("/versions", response_model=schemas.Versions, tags=["Miscellaneous"])
        async def get_version_info():
            return schemas.Versions(
                latest=max(self._apis.keys()),
                versions=[{"version": v, "prefix": self.get_prefix(v)} for v in self._apis.keys()]
            )

        self._finished = True

    def add_router(self, router: fastapi.APIRouter):
        """
        Include the routes of the router in every sub-application of the versions they were marked for

        :raises RuntimeError: when the sub-applications have already been mounted
        """

        if self._finished:
            raise RuntimeError("Can't add new routers after the API has been finally built")

        for route in router.routes:
            if not isinstance(route, fastapi.routing.APIRoute):
                self._logger.error(f"Route {route!r} is no 'APIRoute' instance! Skipping.")
            elif not any(_is_served_by(route.endpoint, v) for v in self._apis):
                self._logger.warning(f"Route {route.path!r} is not served by any API version.")

        for api_version, sub_app in self._apis.items():
            sub_app.include_router(fastapi.APIRouter(
                default_response_class=router.default_response_class,
                routes=[
                    route for route in router.routes
                    if isinstance(route, fastapi.routing.APIRoute) and _is_served_by(route.endpoint, api_version)
                ]
            ))
