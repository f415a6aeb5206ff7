from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from streamfeed.api.deps import get_media
from streamfeed.core.database import get_db
from streamfeed.schemas.catalog import ItemsResponse, SearchResponse
from streamfeed.services import catalog
from streamfeed.services.media import MediaChecker
from streamfeed.services.seed import parse_int

router = APIRouter(tags=["Catalog"])


@router.get("/feed", response_model=ItemsResponse)
def feed(
    db: Session = Depends(get_db),
    profile_id: Optional[str] = Query(None, alias="profileId"),
    sort: Optional[str] = Query(None, description="popular | alpha | rating | newest"),
    limit: Optional[str] = Query(None, description="Default 30, max 200"),
    offset: Optional[str] = Query(None),
) -> ItemsResponse:
    """
    Paginated catalog in the requested order. With ``profileId`` each item
    carries ``liked`` and, when finished, the ``watched`` tag.
    """
    items = catalog.get_feed(
        db,
        sort=sort,
        limit=parse_int(limit),
        offset=parse_int(offset),
        profile_id=profile_id,
    )
    return ItemsResponse(items=items)


@router.get("/search", response_model=SearchResponse)
def search(
    db: Session = Depends(get_db),
    query: Optional[str] = Query(None, description="Title fragment (case-insensitive)"),
    type_q: Optional[str] = Query(None, alias="type", description="Movie or Series"),
    genre: Optional[str] = Query(None, description="Genre fragment (case-insensitive)"),
    year_from: Optional[str] = Query(None),
    year_to: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    profile_id: Optional[str] = Query(None, alias="profileId"),
) -> SearchResponse:
    """
    Filtered search. Titles are unique within a page.

    Raises:
        InvalidYear: a year bound is not a number.
        InvalidRange: year_from is greater than year_to.
    """
    echo, items = catalog.search(
        db,
        query=query,
        type_q=type_q,
        genre=genre,
        year_from=year_from,
        year_to=year_to,
        sort=sort,
        limit=parse_int(limit),
        offset=parse_int(offset),
        profile_id=profile_id,
    )
    return SearchResponse(query=echo, items=items)


@router.get("/similar", response_model=ItemsResponse)
def similar(
    db: Session = Depends(get_db),
    media: MediaChecker = Depends(get_media),
    ext_id: Optional[str] = Query(None, alias="extId"),
    profile_id: Optional[str] = Query(None, alias="profileId"),
    limit: Optional[str] = Query(None, description="Default 12, max 50"),
) -> ItemsResponse:
    items = catalog.similar(db, media, ext_id, limit=parse_int(limit), profile_id=profile_id)
    return ItemsResponse(items=items)


@router.get("/recommendations", response_model=ItemsResponse)
def recommendations(
    db: Session = Depends(get_db),
    media: MediaChecker = Depends(get_media),
    profile_id: Optional[str] = Query(None, alias="profileId"),
    limit: Optional[str] = Query(None, description="Default 20, max 100"),
    offset: Optional[str] = Query(None),
) -> ItemsResponse:
    """Unliked content in the profile's top genres; most popular titles for a cold profile."""
    items = catalog.recommend(
        db, media, profile_id, limit=parse_int(limit), offset=parse_int(offset)
    )
    return ItemsResponse(items=items)
