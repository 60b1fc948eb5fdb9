"""
Posts core router module generic functionalities
"""

from fastapi import Depends

from ._router import router
from ..dependency import LocalRequestData
from .. import versioning
from ... import schemas


@router.get("/health", tags=["Generic"], response_model=schemas.Health)
@versioning.versions(1)
def verify_running_backend(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return 200 OK with the number of stored posts to verify that the service and its database work
    """

    return schemas.Health(posts=local.service.count())
