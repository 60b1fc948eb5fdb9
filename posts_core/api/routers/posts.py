"""
Posts core router module for /posts requests
"""

import logging
from typing import List, Optional

import pydantic
from fastapi import Depends, Response

from ._router import router
from ..dependency import LocalRequestData
from .. import versioning
from ... import schemas


logger = logging.getLogger(__name__)


@router.get("/posts", tags=["Posts"], response_model=List[schemas.Post])
@versioning.versions(minimal=1)
def search_for_posts(
        title: Optional[pydantic.constr(max_length=255)] = None,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return all posts, or the first post having exactly the `title` given as query parameter
    """

    return local.service.list(title)


@router.get(
    "/posts/{post_id}",
    tags=["Posts"],
    response_model=schemas.Post,
    responses={304: {"description": "Not Modified"}, 404: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
def get_post_by_id(post_id: int, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return an existing post

    The `ETag` header of the response carries the version of the post.
    If the `If-None-Match` header contains that tag, the response is
    a 304 (Not Modified) without body.

    * `404`: if the post ID is unknown
    """

    post = local.service.get(post_id)
    if local.entity.is_not_modified(post):
        return Response(status_code=304, headers={"ETag": local.entity.make_etag(post)})
    local.entity.add_header(local.response, post)
    return post


@router.post(
    "/posts",
    tags=["Posts"],
    status_code=201,
    response_model=schemas.Post,
    responses={409: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
def create_new_post(post: schemas.PostCreation, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Create a new post

    The `id` may be omitted, in which case the server allocates a new one.
    Any `version` in the request is ignored, new posts always start with
    version `0`. The `Location` header of the response points to the post.

    * `400`: if the `title` or `body` is blank or missing
    * `409`: if a post with the given `id` already exists
    """

    created, location = local.service.create(post)
    local.response.headers["Location"] = location
    local.entity.add_header(local.response, created)
    return created


@router.put(
    "/posts/{post_id}",
    tags=["Posts"],
    response_model=schemas.Post,
    responses={k: {"model": schemas.APIError} for k in (404, 409)}
)
@versioning.versions(minimal=1)
def update_existing_post(
        post_id: int,
        post: schemas.PostUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace the `owner_id`, `title` and `body` of an existing post

    The `version` must be the current version of the post, which is
    incremented by one on success. Without a `version` in the body,
    the tag in the `If-Match` header is used. The `id` in the body
    is ignored in favor of the post ID in the path.

    * `400`: if the `title` or `body` is blank or missing
    * `404`: if the post ID is unknown
    * `409`: if the version is missing or outdated (fetch the post again and retry)
    """

    updated = local.service.update(post_id, post, local.entity.expected_version())
    local.entity.add_header(local.response, updated)
    return updated


@router.delete(
    "/posts/{post_id}",
    tags=["Posts"],
    status_code=204,
    response_class=Response,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
def delete_existing_post(post_id: int, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Delete an existing post regardless of its version

    * `404`: if the post ID is unknown
    """

    local.service.delete(post_id)
    return Response(status_code=204)
