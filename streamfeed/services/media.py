# streamfeed/services/media.py
from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from streamfeed.core.database import SessionLocal
from streamfeed.models.content import Content
from streamfeed.models.episode import Episode
from streamfeed.services.seed import COVER_KEYS, SeedCache

logger = logging.getLogger(__name__)

HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)
LEGACY_IMG = re.compile(r"^/?IMG/", re.IGNORECASE)
UPLOADS = re.compile(r"^/?uploads/", re.IGNORECASE)


class MediaChecker:
    """Maps stored media paths onto files under the local media root."""

    def __init__(
        self,
        media_root: Union[str, Path],
        seed_cache: Optional[SeedCache] = None,
        max_workers: int = 8,
    ):
        self.media_root = Path(media_root).resolve()
        self.seed_cache = seed_cache
        self.max_workers = max_workers

    def local_path(self, stored: Optional[str]) -> Optional[Path]:
        rel = str(stored or "").strip().lstrip("/")
        if not rel:
            return None
        rel = re.sub(r"^IMG/", "img/", rel, flags=re.IGNORECASE)
        candidate = (self.media_root / rel).resolve()
        if candidate != self.media_root and self.media_root not in candidate.parents:
            return None
        return candidate

    def exists(self, stored: Optional[str]) -> bool:
        path = self.local_path(stored)
        return path is not None and path.exists()

    def exists_many(self, paths: Sequence[Optional[str]]) -> List[bool]:
        if len(paths) <= 1:
            return [self.exists(p) for p in paths]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(paths))) as pool:
            return list(pool.map(self.exists, paths))

    def resolve_cover_for_doc(self, doc) -> str:
        """
        Pick a displayable cover for ``doc`` (a Content row or ContentItem):
        http(s) URL, legacy /IMG/ path, existing local file, seed entry's
        cover, then whatever was stored. Never raises.
        """
        candidate = str(doc.cover or doc.image_path or "").strip()

        if candidate and HTTP_URL.match(candidate):
            return candidate
        if LEGACY_IMG.match(candidate):
            return candidate
        if candidate and self.exists(candidate):
            return candidate

        if self.seed_cache is not None:
            seed = self.seed_cache.get(doc.ext_id)
            if seed:
                fallback = next((seed[k] for k in COVER_KEYS if seed.get(k)), "")
                if fallback:
                    return str(fallback)

        return candidate


@dataclass
class MediaRepair:
    """Stale media references found on a read, to be cleared from the store."""

    ext_id: str
    unset: List[str] = field(default_factory=list)
    drop_episodes: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.unset and not self.drop_episodes


@dataclass
class MediaPlan:
    episodes: List[Episode]
    video_path: Optional[str]
    repair: MediaRepair


def plan_media_repair(media: MediaChecker, doc: Content) -> MediaPlan:
    """
    Check every file ``doc`` points at. Episode files are checked in
    parallel; episodes with missing files are left out of the plan.
    """
    episodes = list(doc.episodes)
    checks = media.exists_many([ep.video_path for ep in episodes])
    kept = [ep for ep, ok in zip(episodes, checks) if ok]
    repair = MediaRepair(
        ext_id=doc.ext_id,
        drop_episodes=[(ep.season, ep.episode) for ep, ok in zip(episodes, checks) if not ok],
    )

    video_path = None
    if doc.video_path:
        if media.exists(doc.video_path):
            video_path = doc.video_path
        else:
            repair.unset.append("video_path")

    for attr in ("image_path", "cover"):
        value = getattr(doc, attr)
        if value and UPLOADS.match(str(value)) and not media.exists(value):
            repair.unset.append(attr)

    return MediaPlan(episodes=kept, video_path=video_path, repair=repair)


def apply_repair(content: Content, repair: MediaRepair) -> None:
    for attr in repair.unset:
        setattr(content, attr, None)
    drop = set(repair.drop_episodes)
    for episode in list(content.episodes):
        if (episode.season, episode.episode) in drop:
            content.episodes.remove(episode)


def apply_media_repair(repair: MediaRepair) -> None:
    """
    Background write-back for a read that found stale media. Uses its own
    session; failures are logged and never reach the client.
    """
    if repair.is_empty:
        return
    db = SessionLocal()
    try:
        content = db.scalar(
            select(Content)
            .where(Content.ext_id == repair.ext_id)
            .options(selectinload(Content.episodes))
        )
        if content is None:
            return
        apply_repair(content, repair)
        db.commit()
        logger.info(
            "[content_details] cleaned %s: unset=%s dropped_episodes=%s",
            repair.ext_id,
            repair.unset,
            repair.drop_episodes,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("[content_details] cleanup skipped: %s", exc)
    finally:
        db.close()
