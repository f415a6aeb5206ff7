from typing import List, Optional, Union

from pydantic import BaseModel, Field

from streamfeed.schemas.base import ApiOut
from streamfeed.schemas.content import ContentItem


class ItemsResponse(ApiOut):
    items: List[ContentItem] = Field(default_factory=list)


class ItemResponse(ApiOut):
    item: ContentItem


class SearchQueryEcho(BaseModel):
    """Normalized search parameters echoed back to the caller (snake_case, as sent)."""

    q: str = ""
    type: str = ""
    genre: str = ""
    year_from: Optional[Union[int, float]] = None
    year_to: Optional[Union[int, float]] = None
    sort: str = "popular"
    limit: int
    offset: int


class SearchResponse(ApiOut):
    query: SearchQueryEcho
    items: List[ContentItem] = Field(default_factory=list)


class OkResponse(BaseModel):
    ok: bool = True
