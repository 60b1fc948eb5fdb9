"""
Posts core extra schemas

This module contains the special schemas for versions and the status.
"""

from typing import List

import pydantic


__all__ = ["Versions", "Health"]


class Versions(pydantic.BaseModel):
    class Version(pydantic.BaseModel):
        version: pydantic.PositiveInt
        prefix: pydantic.constr(min_length=2)

    latest: pydantic.PositiveInt
    versions: List[Version]


class Health(pydantic.BaseModel):
    posts: pydantic.NonNegativeInt
