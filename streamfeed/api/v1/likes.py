from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from streamfeed.core.database import get_db
from streamfeed.schemas.engagement import LikeToggle, LikeToggleOut
from streamfeed.services.engagement import toggle_like

router = APIRouter(prefix="/likes", tags=["Likes"])


@router.post("/toggle", response_model=LikeToggleOut)
def toggle(payload: LikeToggle, db: Session = Depends(get_db)) -> LikeToggleOut:
    """
    Sets or clears a profile's like. Repeating the same call leaves the
    counter unchanged.

    Raises:
        ValidationError: 400 if profileId, contentExtId or like is missing.
        NotFound: 404 if the content does not exist.
    """
    liked, likes = toggle_like(db, payload.profile_id, payload.content_ext_id, payload.like)
    return LikeToggleOut(liked=liked, likes=likes)
