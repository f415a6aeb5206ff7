import uuid

from sqlalchemy import JSON, Column, DateTime, String, Uuid, func

from streamfeed.core.database import Base


class Log(Base):
    __tablename__ = "logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    level = Column(String(10), nullable=False, default="info")
    event = Column(String(100), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    profile_id = Column(String(64), nullable=True, index=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
