# streamfeed/models/watch_progress.py
import uuid
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    text,
)

from streamfeed.core.database import Base
from streamfeed.models.auditmixin import TimestampMixin

MOVIE_SLOT = "movie"


def progress_slot(season: Optional[int], episode: Optional[int]) -> str:
    """
    Key column for the (season, episode) part of the unique constraint.
    SQL treats NULLs as distinct, so whole-movie rows get a literal slot.
    """
    if season is None and episode is None:
        return MOVIE_SLOT
    return f"s{season}e{episode}"


class WatchProgress(TimestampMixin, Base):
    __tablename__ = "watch_progress"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    profile_id = Column(String(64), nullable=False, index=True)
    content_ext_id = Column(String(64), nullable=False, index=True)
    season = Column(Integer, nullable=True)
    episode = Column(Integer, nullable=True)
    slot = Column(String(32), nullable=False)
    position_sec = Column(Float, nullable=False, server_default=text("0"))
    duration_sec = Column(Float, nullable=False, server_default=text("0"))
    completed = Column(Boolean, nullable=False, server_default=text("false"))

    __table_args__ = (
        UniqueConstraint(
            "profile_id", "content_ext_id", "slot", name="uq_watch_progress_slot"
        ),
        Index("ix_watch_progress_profile_content", "profile_id", "content_ext_id"),
        CheckConstraint("position_sec >= 0", name="ck_watch_progress_position_nonneg"),
        CheckConstraint("duration_sec >= 0", name="ck_watch_progress_duration_nonneg"),
    )
