"""
Posts core schemas for the base system

This module contains the schemas of the post resource: the stored
record as well as the incoming bodies to create or update a record.
"""

from typing import List, Optional

import pydantic


__all__ = ["Post", "PostCreation", "PostUpdate", "PostCollection"]


_OWNER_ID_ALIASES = pydantic.AliasChoices("owner_id", "userId")


class Post(pydantic.BaseModel):
    """
    Post: snapshot of a stored record

    Instances are immutable. Deriving a changed record is done with
    ``model_copy(update=...)``, which leaves the original value untouched.
    """

    model_config = pydantic.ConfigDict(frozen=True, from_attributes=True)

    id: pydantic.NonNegativeInt
    owner_id: int
    title: pydantic.constr(max_length=255)
    body: str
    version: pydantic.NonNegativeInt


class _PostContent(pydantic.BaseModel):
    owner_id: int = pydantic.Field(validation_alias=_OWNER_ID_ALIASES)
    title: pydantic.constr(max_length=255)
    body: str

    @pydantic.field_validator("title", "body")
    @classmethod
    def must_not_be_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class PostCreation(_PostContent):
    """
    Body of a request creating a new post

    The `id` may be omitted to let the server allocate one. Any `version`
    is ignored, since a new record always starts with the initial version.
    """

    id: Optional[pydantic.NonNegativeInt] = None
    version: Optional[int] = None


class PostUpdate(_PostContent):
    """
    Body of a request replacing the mutable fields of a post

    The `version` must equal the version of the stored record. Any `id`
    is ignored in favor of the identifier of the addressed resource.
    """

    id: Optional[pydantic.NonNegativeInt] = None
    version: Optional[pydantic.NonNegativeInt] = None


class PostCollection(pydantic.BaseModel):
    """
    Format of the bundled dataset used to populate an empty database
    """

    posts: List[PostCreation]
