"""
Posts core API dependency library
"""

from fastapi import Depends, Request, Response

from . import base
from .etag import ETag
from .service import PostService


def get_service(request: Request) -> PostService:
    """
    Return the service which was attached to the application during its creation
    """

    service = getattr(request.app.state, "service", None)
    if not isinstance(service, PostService):
        raise base.InternalServerException("The API has not been configured properly.", repr(service))
    return service


class LocalRequestData:
    """
    Collection of core dependencies used by all path operations

    This class stores references to various important objects that
    will almost certainly be used by request handlers (path operations).
    Note that any dependency added here will be added to the OpenAPI
    definition, if it refers to a Query, Header, Path or Cookie.
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            service: PostService = Depends(get_service)
    ):
        self.request = request
        self.response = response
        self.service = service
        self.entity = ETag(request)
