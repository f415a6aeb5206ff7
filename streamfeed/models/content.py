import uuid
from typing import Iterable, List

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Float,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from streamfeed.core.database import Base
from streamfeed.models.auditmixin import ContentType, TimestampMixin
from streamfeed.models.episode import Episode
from streamfeed.models.genre import ContentGenre


class Content(TimestampMixin, Base):
    __tablename__ = "contents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ext_id = Column(String(64), nullable=False, unique=True, index=True)
    title = Column(String(300), nullable=False, index=True)
    year = Column(Integer, nullable=True)
    type = Column(String(20), nullable=False, index=True)
    likes = Column(Integer, nullable=False, default=0, server_default=text("0"))
    cover = Column(Text, nullable=True)
    image_path = Column(Text, nullable=True)
    plot = Column(Text, nullable=True)
    director = Column(String(300), nullable=True)
    actors = Column(JSON, nullable=False, default=list)
    rating = Column(String(100), nullable=True)
    rating_value = Column(Float, nullable=True)
    video_path = Column(Text, nullable=True)  # movies only

    genre_links = relationship(
        "ContentGenre",
        back_populates="content",
        order_by=ContentGenre.position,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    episodes = relationship(
        "Episode",
        back_populates="content",
        order_by=[Episode.season, Episode.episode],
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_contents_likes_nonneg"),
        Index("ix_contents_likes_title", "likes", "title"),
        Index("ix_contents_rating_likes", "rating_value", "likes"),
    )

    @property
    def genres(self) -> List[str]:
        return [link.name for link in self.genre_links]

    @genres.setter
    def genres(self, names: Iterable[str]) -> None:
        self.genre_links = [
            ContentGenre(name=name, position=pos) for pos, name in enumerate(names)
        ]

    @property
    def is_series(self) -> bool:
        return self.type == ContentType.SERIES.value
