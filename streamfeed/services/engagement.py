from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from streamfeed.core.database import insert_ignore, upsert
from streamfeed.core.errors import NotFound, ValidationError
from streamfeed.models.content import Content
from streamfeed.models.like import Like
from streamfeed.models.watch_progress import WatchProgress, progress_slot
from streamfeed.schemas.engagement import (
    EpisodeProgress,
    EpisodeRef,
    ProgressSet,
    ProgressSummary,
)
from streamfeed.services.audit import write_log


def _percent(position: float, duration: float) -> int:
    if not duration:
        return 0
    return min(100, int(position / duration * 100))


def _require(profile_id: Optional[str], content_ext_id: Optional[str]) -> Tuple[str, str]:
    profile_id = str(profile_id or "").strip()
    content_ext_id = str(content_ext_id or "").strip()
    if not profile_id or not content_ext_id:
        raise ValidationError("profileId and contentExtId are required")
    return profile_id, content_ext_id


# ---------- Likes ----------
def toggle_like(
    db: Session,
    profile_id: Optional[str],
    content_ext_id: Optional[str],
    like: Optional[bool],
) -> Tuple[bool, int]:
    """
    Set (like=True) or clear (like=False) a profile's like. The Like row
    and the counter change in one transaction, and the counter moves only
    when a row was actually created or removed.
    """
    profile_id = str(profile_id or "").strip()
    content_ext_id = str(content_ext_id or "").strip()
    if not profile_id or not content_ext_id or not isinstance(like, bool):
        raise ValidationError("profileId, contentExtId and like are required")

    if db.scalar(select(Content.id).where(Content.ext_id == content_ext_id)) is None:
        raise NotFound("Content not found")

    if like:
        created = insert_ignore(
            db,
            Like,
            {"profile_id": profile_id, "content_ext_id": content_ext_id},
            index_elements=["profile_id", "content_ext_id"],
        )
        if created:
            db.execute(
                update(Content)
                .where(Content.ext_id == content_ext_id)
                .values(likes=Content.likes + 1)
            )
    else:
        removed = db.execute(
            delete(Like).where(
                Like.profile_id == profile_id, Like.content_ext_id == content_ext_id
            )
        )
        if removed.rowcount == 1:
            db.execute(
                update(Content)
                .where(Content.ext_id == content_ext_id, Content.likes > 0)
                .values(likes=Content.likes - 1)
            )
    db.commit()

    likes = db.scalar(select(Content.likes).where(Content.ext_id == content_ext_id)) or 0
    write_log(
        "like_toggle",
        db=db,
        profile_id=profile_id,
        details={"contentExtId": content_ext_id, "like": like},
    )
    return like, max(0, likes)


# ---------- Watch progress ----------
def get_progress(
    db: Session, profile_id: Optional[str], content_ext_id: Optional[str]
) -> ProgressSummary:
    profile_id, content_ext_id = _require(profile_id, content_ext_id)

    rows = db.scalars(
        select(WatchProgress)
        .where(
            WatchProgress.profile_id == profile_id,
            WatchProgress.content_ext_id == content_ext_id,
        )
        .order_by(WatchProgress.updated_at.desc())
    ).all()

    episodes = [
        EpisodeProgress.model_validate(row)
        for row in rows
        if row.season is not None and row.episode is not None
    ]
    overall = next((row for row in rows if row.season is None and row.episode is None), None)

    summary = ProgressSummary(episodes=episodes)
    if overall is not None:
        summary.percent = _percent(overall.position_sec, overall.duration_sec)
        summary.last_position_sec = overall.position_sec or 0
        summary.last_duration_sec = overall.duration_sec or 0
    elif episodes:
        latest = episodes[0]
        summary.last_position_sec = latest.position_sec or 0
        summary.last_duration_sec = latest.duration_sec or 0
        summary.last_episode_ref = EpisodeRef(season=latest.season, episode=latest.episode)
        summary.percent = max(_percent(e.position_sec, e.duration_sec) for e in episodes)
    return summary


def set_progress(db: Session, payload: ProgressSet) -> None:
    """Report progress; one INSERT ... ON CONFLICT DO UPDATE per call."""
    profile_id, content_ext_id = _require(payload.profile_id, payload.content_ext_id)
    if (payload.season is None) != (payload.episode is None):
        raise ValidationError("season and episode must be provided together")

    now = datetime.now(timezone.utc)
    upsert(
        db,
        WatchProgress,
        {
            "profile_id": profile_id,
            "content_ext_id": content_ext_id,
            "season": payload.season,
            "episode": payload.episode,
            "slot": progress_slot(payload.season, payload.episode),
            "position_sec": payload.position_sec,
            "duration_sec": payload.duration_sec,
            "completed": payload.completed,
            "created_at": now,
            "updated_at": now,
        },
        index_elements=["profile_id", "content_ext_id", "slot"],
        update_fields=["position_sec", "duration_sec", "completed", "updated_at"],
    )
    db.commit()

    write_log(
        "progress_set",
        db=db,
        profile_id=profile_id,
        details={
            "contentExtId": content_ext_id,
            "season": payload.season,
            "episode": payload.episode,
            "positionSec": payload.position_sec,
            "durationSec": payload.duration_sec,
            "completed": payload.completed,
        },
    )


def reset_progress(db: Session, profile_id: Optional[str], content_ext_id: Optional[str]) -> int:
    """Delete every progress row of a title for a profile (rewatch)."""
    profile_id, content_ext_id = _require(profile_id, content_ext_id)
    result = db.execute(
        delete(WatchProgress).where(
            WatchProgress.profile_id == profile_id,
            WatchProgress.content_ext_id == content_ext_id,
        )
    )
    db.commit()
    write_log(
        "progress_reset",
        db=db,
        profile_id=profile_id,
        details={"contentExtId": content_ext_id, "deleted": result.rowcount},
    )
    return result.rowcount
