"""
ETag helper library for the core REST API

The entity tag of a post is its quoted version number. This allows
clients to use the `If-Match` header with the tag of a previously
received post instead of repeating its version in the request body.
"""

import logging
from typing import List, Optional

from fastapi import Request, Response

from .. import schemas


logger = logging.getLogger(__name__)


class ETag:
    """
    Helper class providing methods to create and compare ETags and related headers
    """

    request: Request

    def __init__(self, request: Request):
        self.request = request

        for field in ["If-Modified-Since", "If-Unmodified-Since", "If-Range"]:
            if request.headers.get(field):
                logger.warning(f"'{field}' header not supported or not fully implemented.")
                logger.debug(f"Field value: {request.headers.get(field)!r}")

    @staticmethod
    def make_etag(post: schemas.Post) -> str:
        return f'"{post.version}"'

    @staticmethod
    def _split(value: Optional[str], strong_only: bool = False) -> List[str]:
        if not value:
            return []
        tags = []
        for tag in map(str.strip, value.split(",")):
            if tag.startswith("W/"):
                if strong_only:
                    continue
                tag = tag[2:]
            if tag.startswith('"'):
                tag = tag[1:]
            if tag.endswith('"'):
                tag = tag[:-1]
            if tag != "":
                tags.append(tag)
        return tags

    def add_header(self, response: Response, post: schemas.Post):
        """
        Add the ETag header field of the post to the response
        """

        response.headers["ETag"] = self.make_etag(post)

    def expected_version(self) -> Optional[int]:
        """
        Return the version given by the `If-Match` header, if it names exactly one version

        The special value `*` doesn't name a version and is therefore ignored.
        Weak tags are skipped, since `If-Match` uses the strong comparison.
        """

        if len(self.request.headers.getlist("If-Match")) > 1:
            logger.warning(f"More than one 'If-Match' header: {self.request.headers.items()}")

        tags = self._split(self.request.headers.get("If-Match"), strong_only=True)
        if len(tags) != 1 or tags[0] == "*":
            if tags:
                logger.debug(f"Ignoring 'If-Match' header with tags {tags!r}")
            return None
        try:
            return int(tags[0])
        except ValueError:
            logger.debug(f"Ignoring 'If-Match' header with foreign tag {tags[0]!r}")
            return None

    def is_not_modified(self, post: schemas.Post) -> bool:
        """
        Determine whether the `If-None-Match` header lists the current tag of the post
        """

        tags = self._split(self.request.headers.get("If-None-Match"))
        return "*" in tags or self.make_etag(post).strip('"') in tags
