from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from streamfeed.api.deps import get_media, get_omdb, get_reconciler, require_admin
from streamfeed.core.database import get_db
from streamfeed.models.auditmixin import normalize_type
from streamfeed.schemas.admin import (
    AdminContentDeleted,
    AdminContentResponse,
    AdminContentSaved,
    AdminEpisodeSaved,
    AdminSummaries,
    MediaRepairReport,
    NextExtId,
)
from streamfeed.schemas.content import (
    ContentDelete,
    ContentItem,
    ContentSummary,
    ContentUpsert,
    EpisodeOut,
    EpisodeUpsert,
)
from streamfeed.services import admin as admin_service
from streamfeed.services.media import MediaChecker
from streamfeed.services.omdb import OmdbClient
from streamfeed.services.seed import SeedReconciler

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/content", response_model=AdminSummaries)
def list_contents(
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
    type_q: Optional[str] = Query(None, alias="type", description="Movie or Series"),
) -> AdminSummaries:
    """Lists every content item as extId, title and type, sorted by title."""
    rows = admin_service.list_content_summaries(db, type_q)
    return AdminSummaries(data=[ContentSummary.model_validate(row) for row in rows])


@router.get("/next-ext-id", response_model=NextExtId)
def next_ext_id(
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
    type_q: Optional[str] = Query(None, alias="type"),
) -> NextExtId:
    ext_id = admin_service.compute_next_ext_id(db, type_q)
    return NextExtId(type=normalize_type(type_q), ext_id=ext_id)


@router.get("/content/{ext_id}", response_model=AdminContentResponse)
def get_content(
    ext_id: str,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
) -> AdminContentResponse:
    return AdminContentResponse(data=admin_service.get_admin_content(db, ext_id))


@router.post("/content", response_model=AdminContentSaved)
def save_content(
    payload: ContentUpsert,
    db: Session = Depends(get_db),
    reconciler: SeedReconciler = Depends(get_reconciler),
    omdb: OmdbClient = Depends(get_omdb),
    admin: str = Depends(require_admin),
) -> AdminContentSaved:
    """
    Creates a content item, or updates it when ``extId`` names an existing one.
    The seed file is updated and reloaded afterwards.

    Raises:
        ValidationError: 400 on missing fields or missing media for a new item.
        Conflict: 409 if an explicit extId collides on insert.
        ServerError: 500 if the seed file could not be written.
    """
    content, action = admin_service.create_or_update_content(
        db, reconciler, omdb, payload, user_id=admin
    )
    return AdminContentSaved(data=ContentItem.model_validate(content), action=action)


@router.delete("/content", response_model=AdminContentDeleted)
def delete_content(
    payload: ContentDelete,
    db: Session = Depends(get_db),
    reconciler: SeedReconciler = Depends(get_reconciler),
    admin: str = Depends(require_admin),
) -> AdminContentDeleted:
    """Deletes one item by type plus either extId or title, and drops its seed entry."""
    entity = admin_service.delete_content(db, reconciler, payload, user_id=admin)
    return AdminContentDeleted(deleted=ContentSummary.model_validate(entity))


@router.post("/episodes", response_model=AdminEpisodeSaved)
def save_episode(
    payload: EpisodeUpsert,
    db: Session = Depends(get_db),
    reconciler: SeedReconciler = Depends(get_reconciler),
    admin: str = Depends(require_admin),
) -> AdminEpisodeSaved:
    series_ext_id, record = admin_service.upsert_episode(db, reconciler, payload, user_id=admin)
    episode = EpisodeOut(
        season=record["season"],
        episode=record["episode"],
        title=record["title"],
        video_path=record["videoPath"],
        duration_sec=record["durationSec"],
    )
    return AdminEpisodeSaved(series_ext_id=series_ext_id, episode=episode)


@router.post("/repair-media-paths", response_model=MediaRepairReport)
def repair_media_paths(
    db: Session = Depends(get_db),
    media: MediaChecker = Depends(get_media),
    admin: str = Depends(require_admin),
) -> MediaRepairReport:
    """Clears references to media files missing under the media root, catalog-wide."""
    report = admin_service.repair_media_paths(db, media, user_id=admin)
    return MediaRepairReport(**report)
