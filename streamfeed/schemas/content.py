from datetime import datetime
from typing import List, Optional, Union

from pydantic import Field, model_serializer

from streamfeed.schemas.base import ApiIn, ApiOut


class EpisodeOut(ApiOut):
    season: int
    episode: int
    title: str = ""
    video_path: str
    duration_sec: float = 0


class ContentItem(ApiOut):
    """A catalog entry as returned by the feed, search and detail endpoints."""

    ext_id: str
    title: str
    year: Optional[int] = None
    genres: List[str] = Field(default_factory=list)
    likes: int = 0
    cover: Optional[str] = None
    image_path: Optional[str] = None
    type: str
    plot: Optional[str] = None
    director: Optional[str] = None
    actors: List[str] = Field(default_factory=list)
    rating: Optional[str] = None
    rating_value: Optional[float] = None
    video_path: Optional[str] = None
    episodes: List[EpisodeOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # per-profile annotations
    liked: Optional[bool] = None
    tags: Optional[List[str]] = None

    @model_serializer(mode="wrap")
    def _omit_empty_optionals(self, handler):
        return {k: v for k, v in handler(self).items() if v is not None}

    def add_tag(self, tag: str) -> None:
        if self.tags is None:
            self.tags = []
        if tag not in self.tags:
            self.tags.append(tag)


class ContentSummary(ApiOut):
    ext_id: str
    title: str
    type: str


# ---------- Admin input ----------
class ContentUpsert(ApiIn):
    """
    Create or update a content item. `ext_id` omitted means "create with an
    auto-generated id". Media paths come from the upload collaborator.
    """

    ext_id: Optional[str] = Field(None, max_length=64)
    title: Optional[str] = Field(None, max_length=300)
    year: Optional[int] = Field(None, ge=1800, le=2100)
    genres: Optional[Union[List[str], str]] = Field(
        None, description="List of genres or a comma-separated string"
    )
    type: Optional[str] = Field(None, description="Movie or Series")
    image_path: Optional[str] = None
    video_path: Optional[str] = None


class EpisodeUpsert(ApiIn):
    series_ext_id: Optional[str] = None
    season: Optional[int] = Field(None, ge=1)
    episode: Optional[int] = Field(None, ge=1)
    title: Optional[str] = Field(None, max_length=300)
    video_path: Optional[str] = None
    duration_sec: Optional[float] = Field(None, ge=0)


class ContentDelete(ApiIn):
    type: Optional[str] = None
    ext_id: Optional[str] = None
    title: Optional[str] = None
