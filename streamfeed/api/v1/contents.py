from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from streamfeed.api.deps import get_media
from streamfeed.core.database import get_db
from streamfeed.schemas.catalog import ItemResponse
from streamfeed.services.catalog import get_content_detail
from streamfeed.services.media import MediaChecker, apply_media_repair

router = APIRouter(prefix="/content", tags=["Contents"])


@router.get("/{ext_id}", response_model=ItemResponse)
def get_content(
    ext_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    media: MediaChecker = Depends(get_media),
    profile_id: Optional[str] = Query(None, alias="profileId"),
) -> ItemResponse:
    """
    Retrieves a single content item by its external id. Episodes and video
    files missing from the media root are left out of the response and
    cleared from the store after the response is sent.

    Raises:
        NotFound: 404 if content does not exist.
    """
    item, repair = get_content_detail(db, media, ext_id, profile_id=profile_id)
    if not repair.is_empty:
        background_tasks.add_task(apply_media_repair, repair)
    return ItemResponse(item=item)
