"""
Posts core REST API base library
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import schemas
from ..persistence.errors import StoreError


logger = logging.getLogger(__name__)


class APIWithoutValidationError(FastAPI):
    """
    FastAPI class that excludes 422 validation error responses in OpenAPI schema

    Validation errors are answered with 400 (Bad Request) by this API instead.
    """

    def openapi(self) -> Dict[str, Any]:
        if not self.openapi_schema:
            openapi_schema = super().openapi()
            for path, operations in openapi_schema.get("paths", {}).items():
                for method, metadata in operations.items():
                    metadata.get("responses", {}).pop("422", None)
            self.openapi_schema = openapi_schema
        return self.openapi_schema


def _make_error_response(
        request: Request,
        status_code: int,
        message: str,
        details: str,
        repeat: bool = False,
        headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=repeat,
        message=message,
        details=details
    )), status_code=status_code, headers=headers)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    return _make_error_response(
        request,
        500,
        "Unexpected server error. The requested action wasn't completed successfully.",
        ""
    )


async def handle_store_error(request: Request, exc: StoreError):
    """
    Handle store failures that weren't translated by the path operation

    Those are problems of the database or its connection, which
    are already logged by the store itself, so only a summary is logged.
    """

    logger.error(f"{type(exc).__name__} @ '{request.method} {request.url.path}': {exc!s}")
    return _make_error_response(
        request,
        500,
        "The database could not complete the request. The requested action wasn't completed successfully.",
        type(exc).__name__,
        repeat=True
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    msgs = "\n".join(["\t" + " -> ".join(map(str, error["loc"])) + ": " + error["msg"] for error in exc.errors()])
    message = f"Failed to process the request:\n{msgs}"
    return _make_error_response(request, 400, message, str(exc.errors()))


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception
    """

    def __init__(
            self,
            status_code: int,
            detail: Optional[str],
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or exc.__class__.__name__

        if not isinstance(exc, StarletteHTTPException):
            logger.error("Invalid exception class for base handler")

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        return _make_error_response(
            request,
            status_code,
            message,
            str(exc.detail),
            repeat=repeat,
            headers=getattr(exc, "headers", None)
        )


class NotFound(APIException):
    """
    Exception when a requested resource was not found in the system
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=detail,
            repeat=False,
            message=f"{str(resource)!r} was not found."
        )


class Conflict(APIException):
    """
    Exception for invalid states, concurrent manipulations or other data clashes
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False):
        super().__init__(
            status_code=409,
            detail=detail,
            repeat=repeat,
            message=message
        )


class InternalServerException(APIException):
    """
    Exception for problems within the server implementation
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False):
        super().__init__(
            status_code=500,
            detail=detail,
            repeat=repeat,
            message=message
        )
