from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func

from streamfeed.core.database import Base


class Like(Base):
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, autoincrement=True)  # insertion order
    profile_id = Column(String(64), nullable=False, index=True)
    content_ext_id = Column(String(64), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("profile_id", "content_ext_id", name="uq_likes_profile_content"),
    )
