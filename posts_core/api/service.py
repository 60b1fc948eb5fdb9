"""
Resource service translating requests into operations of the versioned store

The service holds no state besides its store. It maps absent records to
``NotFound``, version mismatches and duplicate identifiers to ``Conflict``
and never retries any operation. Other store failures propagate unchanged.
"""

import logging
from typing import List, Optional, Tuple

from .base import Conflict, NotFound
from .. import schemas
from ..persistence.errors import DuplicateRecord, RecordNotFound, VersionConflict
from ..persistence.store import PostStore


DEFAULT_LOCATION_FORMAT: str = "/api/v1/posts/{}"

logger = logging.getLogger(__name__)


class PostService:
    """
    Orchestration of the post operations on top of a ``PostStore``

    :param store: the store holding all posts
    :param location_format: format string of the canonical location of a post
    """

    def __init__(self, store: PostStore, location_format: str = DEFAULT_LOCATION_FORMAT):
        self.store = store
        self.location_format = location_format

    def location(self, post: schemas.Post) -> str:
        return self.location_format.format(post.id)

    def list(self, title: Optional[str] = None) -> List[schemas.Post]:
        if title is None:
            return self.store.list_all()
        post = self.store.find_by_title(title)
        return [post] if post is not None else []

    def get(self, post_id: int) -> schemas.Post:
        post = self.store.get(post_id)
        if post is None:
            raise NotFound(f"Post with ID {post_id}")
        return post

    def count(self) -> int:
        return self.store.count()

    def create(self, candidate: schemas.PostCreation) -> Tuple[schemas.Post, str]:
        """
        Create a new post and determine its canonical location

        :raises Conflict: when the requested identifier is already in use
        """

        try:
            post = self.store.insert(candidate)
        except DuplicateRecord as exc:
            raise Conflict(f"A post with ID {exc.post_id} already exists.", str(exc)) from exc
        logger.info(f"Created post {post.id} of owner {post.owner_id}")
        return post, self.location(post)

    def update(
            self,
            post_id: int,
            candidate: schemas.PostUpdate,
            fallback_version: Optional[int] = None
    ) -> schemas.Post:
        """
        Replace the mutable fields of an existing post

        The version in the candidate is the version the caller based its changes
        on. If the candidate carries no version, the fallback (e.g. taken from the
        `If-Match` header) is used instead. Without any version, the update fails.

        :raises NotFound: when the post doesn't exist (or was deleted meanwhile)
        :raises Conflict: when the post was changed since the given version
        """

        existing = self.get(post_id)
        merged = existing.model_copy(update={
            "owner_id": candidate.owner_id,
            "title": candidate.title,
            "body": candidate.body
        })
        expected = candidate.version if candidate.version is not None else fallback_version

        try:
            return self.store.update(existing.id, merged, expected)
        except RecordNotFound as exc:
            raise NotFound(f"Post with ID {post_id}", str(exc)) from exc
        except VersionConflict as exc:
            if expected is None:
                message = "The version of the post is required to update it."
            else:
                message = f"The post has been modified meanwhile. Fetch version {exc.actual} and try again."
            raise Conflict(message, str(exc)) from exc

    def delete(self, post_id: int):
        """
        Delete an existing post without any version check

        :raises NotFound: when the post doesn't exist (or was deleted meanwhile)
        """

        existing = self.get(post_id)
        try:
            self.store.delete(existing.id)
        except RecordNotFound as exc:
            raise NotFound(f"Post with ID {post_id}", str(exc)) from exc
        logger.info(f"Deleted post {post_id}")
