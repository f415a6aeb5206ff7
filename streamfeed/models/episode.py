import uuid

from sqlalchemy import Column, Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from streamfeed.core.database import Base


class Episode(Base):
    __tablename__ = "episodes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    content_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("contents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    season = Column(Integer, nullable=False)
    episode = Column(Integer, nullable=False)
    title = Column(String(300), nullable=False, default="")
    video_path = Column(Text, nullable=False)
    duration_sec = Column(Float, nullable=False, default=0)

    content = relationship(
        "Content",
        back_populates="episodes",
        foreign_keys=[content_id],
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("content_id", "season", "episode", name="uq_episodes_content_number"),
    )
