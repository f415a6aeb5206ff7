import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from streamfeed.core.database import Base


class ContentGenre(Base):
    __tablename__ = "content_genres"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    content_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("contents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(100), nullable=False, index=True)

    content = relationship(
        "Content",
        back_populates="genre_links",
        foreign_keys=[content_id],
        passive_deletes=True,
    )
