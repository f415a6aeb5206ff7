from typing import Iterable, Optional, Sequence, Set

from sqlalchemy import and_, case, distinct, func, select
from sqlalchemy.orm import Session

from streamfeed.models.like import Like
from streamfeed.models.watch_progress import WatchProgress
from streamfeed.schemas.content import ContentItem

WATCHED_TAG = "watched"


def annotate_watched_tags(db: Session, items: Sequence[ContentItem], profile_id: Optional[str]) -> None:
    """
    Tag items the profile has finished. Series: completed distinct
    (season, episode) rows >= current episode count. Movies: a completed
    whole-movie row. One grouped query for the whole page.
    """
    if not profile_id:
        return
    ext_ids = sorted({item.ext_id for item in items if item.ext_id})
    if not ext_ids:
        return

    is_episode_row = and_(WatchProgress.season.is_not(None), WatchProgress.episode.is_not(None))
    is_movie_row = and_(WatchProgress.season.is_(None), WatchProgress.episode.is_(None))
    stmt = (
        select(
            WatchProgress.content_ext_id,
            func.count(distinct(case((is_episode_row, WatchProgress.slot)))).label("episodes_completed"),
            func.max(case((is_movie_row, 1), else_=0)).label("overall_completed"),
        )
        .where(
            WatchProgress.profile_id == profile_id,
            WatchProgress.content_ext_id.in_(ext_ids),
            WatchProgress.completed.is_(True),
        )
        .group_by(WatchProgress.content_ext_id)
    )
    stats = {row.content_ext_id: row for row in db.execute(stmt)}

    for item in items:
        stat = stats.get(item.ext_id)
        if stat is None:
            continue
        episode_count = len(item.episodes)
        if episode_count > 0:
            watched = stat.episodes_completed >= episode_count
        else:
            watched = (stat.overall_completed or 0) > 0
        if watched:
            item.add_tag(WATCHED_TAG)


def liked_ext_ids(db: Session, profile_id: str, ext_ids: Iterable[str]) -> Set[str]:
    ids = list({e for e in ext_ids if e})
    if not ids:
        return set()
    rows = db.scalars(
        select(Like.content_ext_id).where(
            Like.profile_id == profile_id, Like.content_ext_id.in_(ids)
        )
    )
    return set(rows)


def annotate(
    db: Session,
    items: Sequence[ContentItem],
    profile_id: Optional[str],
    liked: Optional[bool] = None,
) -> Sequence[ContentItem]:
    """
    Attach per-profile state. ``liked`` given means the caller already knows
    the answer for every item and no Like lookup is made.
    """
    if not profile_id:
        return items
    annotate_watched_tags(db, items, profile_id)
    if liked is not None:
        for item in items:
            item.liked = liked
        return items
    liked_set = liked_ext_ids(db, profile_id, (item.ext_id for item in items))
    for item in items:
        item.liked = item.ext_id in liked_set
    return items
