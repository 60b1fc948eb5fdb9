"""
Posts core store exceptions

The store never signals failures by return values for write operations.
Callers are expected to catch the specific subclasses they can handle and
let anything else propagate.
"""

from typing import Optional


class StoreError(Exception):
    """
    Base class for all failures raised by the versioned store
    """


class RecordNotFound(StoreError):
    """
    No live record exists for the given identifier
    """

    def __init__(self, post_id: int):
        super().__init__(f"Post with ID {post_id!r} was not found")
        self.post_id = post_id


class VersionConflict(StoreError):
    """
    The expected version did not match the stored version of a record
    """

    def __init__(self, post_id: int, expected: Optional[int], actual: int):
        super().__init__(f"Post with ID {post_id!r} has version {actual!r}, not the expected {expected!r}")
        self.post_id = post_id
        self.expected = expected
        self.actual = actual


class DuplicateRecord(StoreError):
    """
    A record with the given identifier already exists
    """

    def __init__(self, post_id: int):
        super().__init__(f"Post with ID {post_id!r} already exists")
        self.post_id = post_id


class StorageFailure(StoreError):
    """
    The database was unavailable or a statement could not be completed
    """


class SeedDataError(StoreError):
    """
    The seed dataset could not be read or is invalid
    """
