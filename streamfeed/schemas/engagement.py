from datetime import datetime
from typing import List, Optional

from pydantic import Field, StrictBool

from streamfeed.schemas.base import ApiIn, ApiOut


class LikeToggle(ApiIn):
    profile_id: Optional[str] = None
    content_ext_id: Optional[str] = None
    like: Optional[StrictBool] = None


class LikeToggleOut(ApiOut):
    liked: bool
    likes: int


class ProgressSet(ApiIn):
    """
    Progress report. `season`/`episode` both omitted means whole-movie
    progress; otherwise both must be given.
    """

    profile_id: Optional[str] = None
    content_ext_id: Optional[str] = None
    season: Optional[int] = Field(None, ge=1)
    episode: Optional[int] = Field(None, ge=1)
    position_sec: float = Field(0, ge=0)
    duration_sec: float = Field(0, ge=0)
    completed: bool = False


class EpisodeRef(ApiOut):
    season: int
    episode: int


class EpisodeProgress(ApiOut):
    season: int
    episode: int
    position_sec: float
    duration_sec: float
    completed: bool
    updated_at: Optional[datetime] = None


class ProgressSummary(ApiOut):
    percent: int = 0
    last_position_sec: float = 0
    last_duration_sec: float = 0
    last_episode_ref: Optional[EpisodeRef] = None
    episodes: List[EpisodeProgress] = Field(default_factory=list)


class ProgressResponse(ApiOut):
    progress: ProgressSummary
