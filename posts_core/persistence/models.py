"""
Posts core database models
"""

from sqlalchemy import Integer, String, Text, Index, event, func, insert, literal, select
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .. import schemas


INITIAL_VERSION: int = 0
"""Version of every newly inserted post"""


class Post(Base):
    """
    Model representing one post with its optimistic concurrency version
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=INITIAL_VERSION)
    """Counter of successful updates, compared against the caller's version on every update"""

    __table_args__ = (
        Index("ix_posts_title", "title"),
    )

    @property
    def schema(self) -> schemas.Post:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Post(
            id=self.id,
            owner_id=self.owner_id,
            title=self.title,
            body=self.body,
            version=self.version
        )

    def __repr__(self) -> str:
        return f"Post(id={self.id}, owner_id={self.owner_id}, version={self.version})"


class Sequence(Base):
    """
    Model storing the last allocated value of a named identifier counter

    The counter is never decremented, which ensures that
    identifiers allocated by the store are never handed out twice.
    """

    __tablename__ = "sequences"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"Sequence(name={self.name!r}, value={self.value})"


@event.listens_for(Base.metadata, "after_create")
def _create_post_counter(target, connection, tables=(), **kwargs):
    """
    Insert the identifier counter of the posts together with the ``sequences`` table
    """

    if Sequence.__table__ not in tables:
        return
    connection.execute(insert(Sequence).from_select(
        ["name", "value"],
        select(literal(Post.__tablename__), func.coalesce(func.max(Post.id), 0))
    ))
