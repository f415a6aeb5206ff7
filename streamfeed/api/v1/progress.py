from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from streamfeed.core.database import get_db
from streamfeed.schemas.catalog import OkResponse
from streamfeed.schemas.engagement import ProgressResponse, ProgressSet
from streamfeed.services import engagement

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.get("", response_model=ProgressResponse)
def get_progress(
    db: Session = Depends(get_db),
    profile_id: Optional[str] = Query(None, alias="profileId"),
    content_ext_id: Optional[str] = Query(None, alias="contentExtId"),
) -> ProgressResponse:
    return ProgressResponse(progress=engagement.get_progress(db, profile_id, content_ext_id))


@router.post("", response_model=OkResponse)
def set_progress(payload: ProgressSet, db: Session = Depends(get_db)) -> OkResponse:
    """Records playback position for a movie or one episode (season and episode together)."""
    engagement.set_progress(db, payload)
    return OkResponse()


@router.delete("", response_model=OkResponse)
def reset_progress(
    db: Session = Depends(get_db),
    profile_id: Optional[str] = Query(None, alias="profileId"),
    content_ext_id: Optional[str] = Query(None, alias="contentExtId"),
) -> OkResponse:
    """Forgets every progress row of a title for the profile."""
    engagement.reset_progress(db, profile_id, content_ext_id)
    return OkResponse()
