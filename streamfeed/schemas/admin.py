from typing import List

from pydantic import Field

from streamfeed.schemas.base import ApiOut
from streamfeed.schemas.content import ContentItem, ContentSummary, EpisodeOut


class AdminContentResponse(ApiOut):
    data: ContentItem


class AdminContentSaved(ApiOut):
    data: ContentItem
    action: str = Field(..., description="created or updated")


class AdminContentDeleted(ApiOut):
    ok: bool = True
    deleted: ContentSummary


class AdminEpisodeSaved(ApiOut):
    ok: bool = True
    series_ext_id: str
    episode: EpisodeOut


class MediaRepairReport(ApiOut):
    ok: bool = True
    scanned: int = 0
    repaired: int = 0
    episodes_dropped: int = 0
    fields_cleared: int = 0


class NextExtId(ApiOut):
    type: str
    ext_id: str


class AdminSummaries(ApiOut):
    data: List[ContentSummary] = Field(default_factory=list)
