"""
Versioned store for post records

Every write operation of the store runs in its own short transaction.
Updates are guarded by optimistic concurrency control: the caller has
to supply the version of the record it based its changes on, and the
store only applies the changes if that version is still the stored one.
The comparison and the write are a single conditional ``UPDATE``, so two
concurrent updates with the same expected version can't both succeed.
"""

import logging
import contextlib
from typing import Iterable, Iterator, List, Optional

import sqlalchemy.exc
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from . import models
from .database import Database
from .errors import DuplicateRecord, RecordNotFound, StorageFailure, StoreError, VersionConflict
from .. import schemas


logger = logging.getLogger(__name__)


class PostStore:
    """
    Store owning the persisted collection of posts

    Identifiers are either supplied by the caller or allocated from a persisted
    counter, which is advanced past every caller-supplied identifier as well.
    Allocated identifiers are therefore never reused, even after deletion.

    :param database: database bindings used to create sessions
    :param sequence_name: name of the identifier counter in the ``sequences`` table
    """

    def __init__(self, database: Database, sequence_name: str = models.Post.__tablename__):
        self._database = database
        self._sequence_name = sequence_name

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._database.get_new_session()
        try:
            yield session
            session.commit()
        except StoreError:
            session.rollback()
            raise
        except sqlalchemy.exc.SQLAlchemyError as exc:
            logger.exception(f"{type(exc).__name__}: {exc!s}")
            session.rollback()
            raise StorageFailure(f"{type(exc).__name__}: {exc!s}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _create_sequence(self, session: Session):
        start = session.execute(select(func.coalesce(func.max(models.Post.id), 0))).scalar_one()
        logger.debug(f"Creating identifier counter {self._sequence_name!r} starting at {start}")
        try:
            with session.begin_nested():
                session.add(models.Sequence(name=self._sequence_name, value=start))
        except sqlalchemy.exc.IntegrityError:
            logger.debug(f"Identifier counter {self._sequence_name!r} has been created concurrently")

    def _allocate(self, session: Session, requested_id: Optional[int] = None, created: bool = False) -> int:
        """
        Allocate the next identifier or advance the counter past a requested one
        """

        condition = models.Sequence.name == self._sequence_name
        if requested_id is None:
            statement = update(models.Sequence).where(condition).values(value=models.Sequence.value + 1)
        else:
            statement = update(models.Sequence).where(
                condition,
                models.Sequence.value < requested_id
            ).values(value=requested_id)
        result = session.execute(statement.execution_options(synchronize_session=False))

        if result.rowcount == 0:
            current = session.execute(select(models.Sequence.value).where(condition)).scalar_one_or_none()
            if current is None:
                if created:
                    raise StorageFailure(f"Identifier counter {self._sequence_name!r} is missing")
                self._create_sequence(session)
                return self._allocate(session, requested_id, created=True)
        if requested_id is not None:
            return requested_id
        return session.execute(select(models.Sequence.value).where(condition)).scalar_one()

    def _insert_one(self, session: Session, record: schemas.PostCreation) -> models.Post:
        post_id = self._allocate(session, record.id)
        if record.id is not None and session.get(models.Post, post_id) is not None:
            raise DuplicateRecord(post_id)

        model = models.Post(
            id=post_id,
            owner_id=record.owner_id,
            title=record.title,
            body=record.body,
            version=models.INITIAL_VERSION
        )
        session.add(model)
        try:
            session.flush()
        except sqlalchemy.exc.IntegrityError as exc:
            raise DuplicateRecord(post_id) from exc
        return model

    def insert(self, record: schemas.PostCreation) -> schemas.Post:
        """
        Insert a new record, ignoring any version it may carry

        :param record: the new post, optionally carrying its desired identifier
        :return: the stored record with the initial version
        :raises DuplicateRecord: when the requested identifier is already in use
        """

        with self._transaction() as session:
            model = self._insert_one(session, record)
            logger.debug(f"Inserted {model!r}")
            return model.schema

    def insert_all(self, records: Iterable[schemas.PostCreation]) -> List[schemas.Post]:
        """
        Insert all records in one transaction (none of them is stored if any fails)
        """

        with self._transaction() as session:
            result = [self._insert_one(session, record).schema for record in records]
            logger.debug(f"Inserted {len(result)} posts")
            return result

    def get(self, post_id: int) -> Optional[schemas.Post]:
        with self._transaction() as session:
            model = session.get(models.Post, post_id)
            return model.schema if model is not None else None

    def find_by_title(self, title: str) -> Optional[schemas.Post]:
        """
        Return the record with the lowest identifier that has exactly the given title

        Titles are not unique, so other records with the same title may exist.
        """

        with self._transaction() as session:
            model = session.execute(
                select(models.Post).where(models.Post.title == title).order_by(models.Post.id).limit(1)
            ).scalar_one_or_none()
            return model.schema if model is not None else None

    def list_all(self) -> List[schemas.Post]:
        with self._transaction() as session:
            return [model.schema for model in session.execute(select(models.Post).order_by(models.Post.id)).scalars()]

    def count(self) -> int:
        with self._transaction() as session:
            return session.execute(select(func.count()).select_from(models.Post)).scalar_one()

    def update(self, post_id: int, record: schemas.Post, expected_version: Optional[int]) -> schemas.Post:
        """
        Replace the mutable fields of a record if its version still matches

        The fields ``owner_id``, ``title`` and ``body`` are taken from the given
        record, while its ``id`` and ``version`` fields are ignored. A missing
        expected version never matches any stored version.

        :param post_id: identifier of the record to be updated
        :param record: record carrying the new values of the mutable fields
        :param expected_version: version the caller based its changes on
        :return: the updated record with its version incremented by one
        :raises RecordNotFound: when no record with the given identifier exists
        :raises VersionConflict: when the expected version is not the stored version
        """

        with self._transaction() as session:
            if expected_version is not None:
                result = session.execute(
                    update(models.Post).where(
                        models.Post.id == post_id,
                        models.Post.version == expected_version
                    ).values(
                        owner_id=record.owner_id,
                        title=record.title,
                        body=record.body,
                        version=models.Post.version + 1
                    ).execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    logger.debug(f"Updated post {post_id} to version {expected_version + 1}")
                    return schemas.Post(
                        id=post_id,
                        owner_id=record.owner_id,
                        title=record.title,
                        body=record.body,
                        version=expected_version + 1
                    )

            current = session.execute(
                select(models.Post.version).where(models.Post.id == post_id)
            ).scalar_one_or_none()
            if current is None:
                raise RecordNotFound(post_id)
            logger.info(f"Rejected update of post {post_id}: expected version {expected_version}, found {current}")
            raise VersionConflict(post_id, expected_version, current)

    def delete(self, post_id: int):
        """
        Delete a record regardless of its version

        :raises RecordNotFound: when no record with the given identifier exists
        """

        with self._transaction() as session:
            result = session.execute(
                delete(models.Post).where(models.Post.id == post_id).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFound(post_id)
            logger.debug(f"Deleted post {post_id}")

    def delete_all(self) -> int:
        """
        Delete all records, keeping the identifier counter

        :return: number of deleted records
        """

        with self._transaction() as session:
            result = session.execute(delete(models.Post).execution_options(synchronize_session=False))
            logger.debug(f"Deleted {result.rowcount} posts")
            return result.rowcount
