# streamfeed/services/admin.py
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from streamfeed.core.errors import Conflict, NotFound, ServerError, ValidationError
from streamfeed.models.auditmixin import ContentType, normalize_type
from streamfeed.models.content import Content
from streamfeed.schemas.content import ContentDelete, ContentItem, ContentUpsert, EpisodeUpsert
from streamfeed.services.audit import write_log
from streamfeed.services.media import MediaChecker, apply_repair, plan_media_repair
from streamfeed.services.omdb import OmdbClient
from streamfeed.services.seed import (
    SeedReconciler,
    apply_episode_records,
    episode_record,
    split_list,
)

logger = logging.getLogger(__name__)

EXT_ID_PREFIXES = {ContentType.MOVIE.value: "m", ContentType.SERIES.value: "s"}
MAX_EXT_ID_ATTEMPTS = 5


def _load(db: Session, ext_id: str) -> Optional[Content]:
    return db.scalar(
        select(Content)
        .where(Content.ext_id == ext_id)
        .options(selectinload(Content.genre_links), selectinload(Content.episodes))
    )


def compute_next_ext_id(db: Session, raw_type: Optional[str]) -> str:
    """
    Next free id for a type: ``m<n>`` for movies, ``s<n>`` for series, where
    n is one more than the largest numeric suffix in use for that type.
    """
    content_type = normalize_type(raw_type)
    prefix = EXT_ID_PREFIXES.get(content_type)
    if prefix is None:
        raise ValidationError("Unsupported type for automatic ID assignment")
    pattern = re.compile(rf"^{prefix}(\d+)$", re.IGNORECASE)

    highest = 0
    for ext_id in db.scalars(select(Content.ext_id).where(Content.type == content_type)):
        match = pattern.match(str(ext_id or ""))
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1}"


def _sync_seed(
    reconciler: SeedReconciler,
    db: Session,
    doc: Content,
    event: str,
    user_id: Optional[str],
    message: str,
    override_episodes=None,
) -> None:
    try:
        reconciler.sync_content_json_with_doc(doc, override_episodes=override_episodes)
    except (OSError, ValueError, TypeError) as exc:
        logger.exception("%s sync error", event)
        write_log(
            event,
            db=db,
            level="error",
            user_id=user_id,
            details={"error": str(exc), "extId": doc.ext_id},
        )
        raise ServerError(message) from exc
    reconciler.seed_content_if_needed(db, force=True)


# ---------- Content ----------
def list_content_summaries(db: Session, raw_type: Optional[str] = None) -> List[Content]:
    stmt = select(Content).order_by(Content.title.asc(), Content.ext_id.asc())
    if raw_type and raw_type.strip():
        stmt = stmt.where(Content.type == normalize_type(raw_type))
    return list(db.scalars(stmt))


def get_admin_content(db: Session, ext_id: str) -> ContentItem:
    ext_id = str(ext_id or "").strip()
    if not ext_id:
        raise ValidationError("extId parameter is required.")
    doc = _load(db, ext_id)
    if doc is None:
        raise NotFound("Content not found.")
    return ContentItem.model_validate(doc)


def create_or_update_content(
    db: Session,
    reconciler: SeedReconciler,
    omdb: Optional[OmdbClient],
    payload: ContentUpsert,
    user_id: Optional[str] = None,
) -> Tuple[Content, str]:
    """
    Create (no or unknown ext_id) or update (known ext_id) a content item,
    then push it into the seed file and reseed. Returns the stored row and
    ``"created"`` or ``"updated"``.

    Raises:
        ValidationError: missing fields, or media missing on create.
        Conflict: an explicit ext_id collided on insert.
        ServerError: auto ids kept colliding, or the seed file could not be written.
    """
    content_type = normalize_type(payload.type)
    genres = split_list(payload.genres)
    title = (payload.title or "").strip()
    if not title or not payload.year or not genres or not content_type:
        raise ValidationError("All text fields are required (title, year, genres, type).")
    if content_type not in EXT_ID_PREFIXES:
        raise ValidationError("Type must be Movie or Series.")
    is_movie = content_type == ContentType.MOVIE.value

    ext_id = (payload.ext_id or "").strip()
    auto_ext_id = not ext_id
    existing = None if auto_ext_id else _load(db, ext_id)
    if auto_ext_id:
        ext_id = compute_next_ext_id(db, content_type)

    if existing is None:
        if not payload.image_path or (is_movie and not payload.video_path):
            raise ValidationError(
                "Image and Video files are required when creating a Movie."
                if is_movie
                else "Image file is required when creating a Series."
            )

    meta: Dict[str, Any] = omdb.fetch_metadata(title, payload.year) if omdb else {}

    for _ in range(MAX_EXT_ID_ATTEMPTS):
        entity = existing if existing is not None else _load(db, ext_id)
        created = entity is None
        if created:
            entity = Content(ext_id=ext_id, likes=0, actors=[])
            db.add(entity)
        entity.title = title
        entity.year = payload.year
        entity.genres = genres
        entity.type = content_type
        for name, value in meta.items():
            setattr(entity, name, value)
        if payload.image_path:
            entity.image_path = payload.image_path
            entity.cover = payload.image_path
        if payload.video_path and is_movie:
            entity.video_path = payload.video_path
        if not is_movie:
            entity.video_path = None
        try:
            db.commit()
            break
        except IntegrityError:
            db.rollback()
            if auto_ext_id and created:
                ext_id = compute_next_ext_id(db, content_type)
                continue
            raise Conflict("A content item with this External ID already exists.")
    else:
        raise ServerError("Content could not be saved after multiple attempts.")

    doc = _load(db, ext_id)
    if doc is None:
        raise ServerError("Content was saved but could not be reloaded")

    _sync_seed(
        reconciler,
        db,
        doc,
        "content_admin_sync",
        user_id,
        "Content saved but failed to sync content.json. Please retry.",
    )

    action = "created" if created else "updated"
    write_log(
        f"content_{'create' if created else 'update'}",
        db=db,
        user_id=user_id,
        details={"contentExtId": doc.ext_id, "title": doc.title},
    )
    return _load(db, ext_id) or doc, action


def delete_content(
    db: Session,
    reconciler: SeedReconciler,
    payload: ContentDelete,
    user_id: Optional[str] = None,
) -> Content:
    content_type = normalize_type(payload.type)
    ext_id = (payload.ext_id or "").strip()
    title = (payload.title or "").strip()
    if not content_type:
        raise ValidationError("Type is required (Movie or Series).")
    if not ext_id and not title:
        raise ValidationError("Provide either an External ID or a title.")
    if ext_id and title:
        raise ValidationError("Choose only one identifier: title or External ID.")

    stmt = select(Content).where(Content.type == content_type)
    if ext_id:
        stmt = stmt.where(Content.ext_id == ext_id)
    else:
        stmt = stmt.where(func.lower(Content.title) == title.lower())
    entity = db.scalars(stmt.limit(1)).first()
    if entity is None:
        raise NotFound("No matching content found.")

    db.delete(entity)
    db.commit()

    try:
        reconciler.remove_seed_entry(entity.ext_id)
    except (OSError, ValueError) as exc:
        logger.exception("content_admin_delete sync error")
        write_log(
            "content_admin_delete_fail",
            db=db,
            level="error",
            user_id=user_id,
            details={"error": str(exc), "extId": entity.ext_id},
        )
        raise ServerError("Content deleted but failed to sync content.json. Please retry.") from exc

    write_log(
        "content_admin_delete",
        db=db,
        user_id=user_id,
        details={"type": content_type, "extId": entity.ext_id, "title": entity.title},
    )
    return entity


# ---------- Episodes ----------
def upsert_episode(
    db: Session,
    reconciler: SeedReconciler,
    payload: EpisodeUpsert,
    user_id: Optional[str] = None,
) -> Tuple[str, Dict[str, Any]]:
    """Add or replace one episode of a series, keeping (season, episode) order."""
    series_ext_id = (payload.series_ext_id or "").strip()
    video_path = (payload.video_path or "").strip()
    if not series_ext_id or not payload.season or not payload.episode or not video_path:
        raise ValidationError("seriesExtId, season, episode and videoPath are required")

    series = _load(db, series_ext_id)
    if series is None:
        raise NotFound("Series not found")
    if not series.is_series:
        raise ValidationError("Target content is not a Series")

    record = {
        "season": payload.season,
        "episode": payload.episode,
        "title": payload.title or f"Episode {payload.episode}",
        "videoPath": video_path,
        "durationSec": payload.duration_sec if payload.duration_sec and payload.duration_sec > 0 else 0,
    }
    records = [
        episode_record(ep)
        for ep in series.episodes
        if (ep.season, ep.episode) != (record["season"], record["episode"])
    ]
    records.append(record)
    apply_episode_records(series, records)
    db.commit()

    series = _load(db, series_ext_id)
    _sync_seed(
        reconciler,
        db,
        series,
        "episode_admin_sync",
        user_id,
        "Episode saved but failed to sync content.json. Please retry.",
        override_episodes=list(series.episodes),
    )

    write_log(
        "episode_upsert",
        db=db,
        user_id=user_id,
        details={
            "seriesExtId": series_ext_id,
            "season": record["season"],
            "episode": record["episode"],
            "title": record["title"],
        },
    )
    return series_ext_id, record


# ---------- Maintenance ----------
def repair_media_paths(db: Session, media: MediaChecker, user_id: Optional[str] = None) -> Dict[str, int]:
    """Drop missing episode files and clear missing media paths across the catalog."""
    report = {"scanned": 0, "repaired": 0, "episodes_dropped": 0, "fields_cleared": 0}
    contents = db.scalars(select(Content).options(selectinload(Content.episodes))).all()
    for content in contents:
        report["scanned"] += 1
        repair = plan_media_repair(media, content).repair
        if repair.is_empty:
            continue
        apply_repair(content, repair)
        report["repaired"] += 1
        report["episodes_dropped"] += len(repair.drop_episodes)
        report["fields_cleared"] += len(repair.unset)
    db.commit()
    write_log("repair_media_paths", db=db, user_id=user_id, details=report)
    return report
