"""
Posts core database bindings using sqlalchemy
"""

import os
import logging
from typing import Optional

import alembic.command
import alembic.config
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine as _Engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


DEFAULT_DATABASE_URL: str = "sqlite://"
PRINT_SQLITE_WARNING: bool = True
SQLITE_LOCK_TIMEOUT: float = 15.0

MIGRATIONS_DIRECTORY: str = os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic")

_logger: logging.Logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def is_in_memory(database_url: str) -> bool:
    return database_url.startswith("sqlite:") and (":memory:" in database_url or database_url == "sqlite://")


class Database:
    """
    Engine and session factory for one database connection URL

    One instance should be created at program startup and handed to
    the objects that need database access (usually only the store).
    Tests create their own instances for temporary database files.

    :param database_url: the full URL to connect to the database
    :param echo: whether all SQLAlchemy magic should print to screen
    :param create_all: whether the metadata of the declarative base should
        be used to create all non-existing tables in the database
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, echo: bool = False, create_all: bool = True):
        self.url = database_url

        if database_url.startswith("sqlite:"):
            engine_options = {}
            if is_in_memory(database_url):
                _logger.warning(
                    "Using the in-memory sqlite3 may lead to later problems. "
                    "It's therefore recommended to create a persistent file."
                )
                # All threads have to share the one connection holding the in-memory database
                engine_options["poolclass"] = StaticPool

            self.engine: _Engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False, "timeout": SQLITE_LOCK_TIMEOUT},
                **engine_options
            )
            if PRINT_SQLITE_WARNING:
                _logger.warning(
                    "Using a sqlite database is supported for development and testing environments "
                    "only. You should use a production-grade database server for deployment."
                )

        else:
            self.engine = create_engine(
                database_url,
                echo=echo,
                pool_pre_ping=True
            )

        if create_all:
            Base.metadata.create_all(bind=self.engine)

        self._make_session = sessionmaker(autoflush=False, expire_on_commit=False, bind=self.engine)

    def get_new_session(self) -> Session:
        return self._make_session()

    def dispose(self):
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"Database(url={self.engine.url!r})"


def get_alembic_config(database_url: str) -> alembic.config.Config:
    """
    Create the alembic configuration for the bundled migration scripts

    No ``alembic.ini`` file is required, since all options are set in code.
    """

    cfg = alembic.config.Config()
    cfg.set_main_option("script_location", MIGRATIONS_DIRECTORY)
    cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg


def upgrade_schema(database_url: str, revision: str = "head"):
    """
    Apply all database migrations up to the given revision

    :param database_url: the full URL to connect to the database
    :param revision: target alembic revision (defaults to the newest one)
    """

    _logger.info(f"Upgrading database schema to revision {revision!r}...")
    alembic.command.upgrade(get_alembic_config(database_url), revision)
