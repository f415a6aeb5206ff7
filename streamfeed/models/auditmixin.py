from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func


class TimestampMixin:
    """Mixin class to add creation/update timestamps to SQLAlchemy models."""

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ContentType(str, PyEnum):
    """Enumeration for the types of content available."""

    MOVIE = "Movie"
    SERIES = "Series"


def normalize_type(raw: Optional[str]) -> str:
    """Map case variants of a content type onto its canonical spelling."""
    value = str(raw or "").strip()
    for member in ContentType:
        if value.lower() == member.value.lower():
            return member.value
    return value
