"""
Initial population of an empty database with the bundled dataset
"""

import os
import logging
from typing import Optional

import pydantic

from .errors import SeedDataError
from .store import PostStore
from .. import schemas
from .. import __file__ as _package_init_path


DEFAULT_SEED_FILE: str = os.path.join(os.path.dirname(os.path.abspath(_package_init_path)), "data", "posts.json")

logger = logging.getLogger(__name__)


def read_seed_file(path: Optional[str] = None) -> schemas.PostCollection:
    """
    Read and validate the dataset in the file at the given path

    :param path: location of the JSON file (uses the bundled dataset if omitted)
    :return: validated collection of posts
    :raises SeedDataError: if the file can't be read or doesn't contain a valid collection
    """

    path = path or DEFAULT_SEED_FILE
    try:
        with open(path, "r", encoding="UTF-8") as f:
            return schemas.PostCollection.model_validate_json(f.read())
    except (OSError, UnicodeDecodeError) as exc:
        raise SeedDataError(f"Failed to read the seed dataset {path!r}: {exc!s}") from exc
    except pydantic.ValidationError as exc:
        raise SeedDataError(f"Invalid seed dataset {path!r}: {exc!s}") from exc


def seed_posts(store: PostStore, path: Optional[str] = None) -> int:
    """
    Insert all posts of the seed dataset if the store is still empty

    Nothing happens if the store already contains any post, so calling this
    function on every startup is safe. The posts keep their identifiers.

    :param store: the store which should be populated
    :param path: location of the JSON file (uses the bundled dataset if omitted)
    :return: number of inserted posts
    :raises SeedDataError: if the dataset can't be read or is invalid
    """

    if store.count() != 0:
        logger.debug("Database already contains posts, seeding is not necessary.")
        return 0

    collection = read_seed_file(path)
    logger.info(f"Loading {len(collection.posts)} posts into the database from {path or DEFAULT_SEED_FILE!r}")
    return len(store.insert_all(collection.posts))
