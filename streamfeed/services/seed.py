"""
Seed file reconciliation.

The seed file is a flat JSON catalog used for cold start and as a cover
fallback. Its root is either an array of entries or an object holding the
array under one key; the shape found on read is kept on write.

- ``SeedReconciler.sync_content_json_with_doc`` pushes a stored content item
  into the file (store -> seed).
- ``SeedReconciler.seed_content_if_needed`` loads the file into the store
  (seed -> store) without ever deleting store rows or touching like counters.
"""
from __future__ import annotations

import contextlib
import json
import logging
import math
import os
import re
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from streamfeed.models.auditmixin import ContentType, normalize_type
from streamfeed.models.content import Content
from streamfeed.models.episode import Episode

logger = logging.getLogger(__name__)

RATING_NUMBER = re.compile(r"[0-9]+(?:\.[0-9]+)?")
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
COVER_KEYS = ("cover", "poster", "image", "img")


# ---------- JSON root ----------
@dataclass
class SeedWrapper:
    key: str
    container: Dict[str, Any]


@dataclass
class SeedDocument:
    items: List[Any] = field(default_factory=list)
    wrapper: Optional[SeedWrapper] = None
    path: Optional[Path] = None

    @classmethod
    def from_json(cls, data: Any, path: Optional[Path] = None) -> "SeedDocument":
        if isinstance(data, list):
            return cls(items=list(data), path=path)
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, list):
                    return cls(items=list(value), wrapper=SeedWrapper(key, data), path=path)
        return cls(path=path)

    def to_json(self) -> Any:
        if self.wrapper is None:
            return self.items
        return {**self.wrapper.container, self.wrapper.key: self.items}


def entry_key(entry: Dict[str, Any]) -> str:
    for name in ("id", "extId"):
        if entry.get(name) is not None:
            return str(entry[name]).strip()
    return ""


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize to a temp file in the target directory, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise


# ---------- Cache ----------
class SeedCache:
    """
    Seed entries keyed by id / extId / title. Loaded on first use and kept
    until ``invalidate`` is called by a reconciliation write.
    """

    def __init__(self, loader: Callable[[], SeedDocument]):
        self._loader = loader
        self._entries: Optional[Dict[str, Dict[str, Any]]] = None
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        entries: Dict[str, Dict[str, Any]] = {}
        for item in self._loader().items:
            if not isinstance(item, dict):
                continue
            key = entry_key(item) or str(item.get("title") or "").strip()
            if key:
                entries[key] = item
        return entries

    def get(self, ext_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not ext_id:
            return None
        with self._lock:
            if self._entries is None:
                self._entries = self._load()
            return self._entries.get(str(ext_id))

    def invalidate(self) -> None:
        with self._lock:
            self._entries = None


# ---------- Field normalization ----------
def parse_int(value: Any) -> Optional[int]:
    """Leading-integer parse: 3, "3", "3rd" and 3.0 all give 3."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def split_list(value: Any) -> List[str]:
    """A list of strings, or a comma-separated string, as a clean list."""
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return []


def normalize_episode_record(raw: Any) -> Optional[Dict[str, Any]]:
    """Accept the several spellings seed files use; None for malformed entries."""
    if not isinstance(raw, dict):
        return None
    season = parse_int(_first(raw, "season", "Season", "seasonNumber"))
    number = parse_int(_first(raw, "episode", "Episode", "episodeNumber"))
    if season is None or number is None or season < 1 or number < 1:
        return None
    video_path = str(_first(raw, "videoPath", "file", "path") or "").strip()
    if not video_path:
        return None
    duration = parse_float(_first(raw, "durationSec", "duration", "length", "runtime"))
    return {
        "season": season,
        "episode": number,
        "title": str(_first(raw, "title", "name") or f"Episode {number}"),
        "videoPath": video_path,
        "durationSec": duration if duration and duration > 0 else 0,
    }


def episode_record(episode: Union[Episode, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(episode, dict):
        return normalize_episode_record(episode) or {}
    return {
        "season": episode.season,
        "episode": episode.episode,
        "title": episode.title,
        "videoPath": episode.video_path,
        "durationSec": episode.duration_sec,
    }


def apply_episode_records(content: Content, records: Iterable[Dict[str, Any]]) -> bool:
    """
    Make ``content.episodes`` match ``records``, updating rows in place by
    (season, episode) so the unique constraint holds during flush.
    Returns True when anything changed.
    """
    wanted = {(r["season"], r["episode"]): r for r in records if r}
    changed = False
    for episode in list(content.episodes):
        if (episode.season, episode.episode) not in wanted:
            content.episodes.remove(episode)
            changed = True
    current = {(e.season, e.episode): e for e in content.episodes}
    for key, record in wanted.items():
        episode = current.get(key)
        if episode is None:
            content.episodes.append(
                Episode(
                    season=record["season"],
                    episode=record["episode"],
                    title=record["title"],
                    video_path=record["videoPath"],
                    duration_sec=record["durationSec"],
                )
            )
            changed = True
            continue
        for attr, value in (
            ("title", record["title"]),
            ("video_path", record["videoPath"]),
            ("duration_sec", record["durationSec"]),
        ):
            if getattr(episode, attr) != value:
                setattr(episode, attr, value)
                changed = True
    content.episodes.sort(key=lambda e: (e.season, e.episode))
    return changed


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def content_fields_from_seed(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Derive store fields from a seed entry. Optional keys are present only when
    the entry carries them, so updates leave the rest untouched.
    """
    title = str(item.get("title") or item.get("name") or "Untitled")
    ext_id = str(_first(item, "id", "extId") or title).strip()

    if isinstance(item.get("genres"), (list, str)):
        genres = split_list(item["genres"])
    else:
        genres = split_list(item.get("genre"))

    cover = next((str(item[k]) for k in COVER_KEYS if item.get(k)), None)
    year = parse_int(_first(item, "year", "releaseYear")) or None
    likes = parse_float(item.get("likes"))

    episodes_raw = item.get("episodes")
    content_type = normalize_type(item.get("type"))
    if content_type not in (ContentType.MOVIE.value, ContentType.SERIES.value):
        has_episodes = isinstance(episodes_raw, list) and bool(episodes_raw)
        content_type = (
            ContentType.SERIES.value if item.get("seasons") or has_episodes else ContentType.MOVIE.value
        )

    fields: Dict[str, Any] = {
        "ext_id": ext_id,
        "title": title,
        "year": year,
        "genres": genres,
        "likes": max(0, int(likes)) if likes is not None else 0,
        "cover": cover,
        "image_path": cover,
        "type": content_type,
    }

    if item.get("plot"):
        fields["plot"] = str(item["plot"])
    if item.get("director"):
        fields["director"] = str(item["director"])
    actors = split_list(item.get("actors"))
    if actors:
        fields["actors"] = actors
    if item.get("rating"):
        rating = str(item["rating"])
        fields["rating"] = rating
        match = RATING_NUMBER.search(rating)
        if match:
            fields["rating_value"] = float(match.group(0))
    if "rating_value" not in fields and parse_float(item.get("ratingValue")) is not None:
        fields["rating_value"] = parse_float(item["ratingValue"])
    if item.get("videoPath") and content_type == ContentType.MOVIE.value:
        fields["video_path"] = str(item["videoPath"])
    if isinstance(episodes_raw, list):
        records = [normalize_episode_record(ep) for ep in episodes_raw]
        fields["episodes"] = [r for r in records if r is not None]
    return fields


def build_json_entry(
    doc: Content,
    prev: Optional[Dict[str, Any]] = None,
    override_episodes: Optional[Sequence[Union[Episode, Dict[str, Any]]]] = None,
) -> Dict[str, Any]:
    """Project a stored item onto a seed entry, shallow-merged over ``prev``."""
    prev = prev or {}
    episodes = override_episodes if override_episodes is not None else doc.episodes
    projection = {
        "id": doc.ext_id,
        "extId": doc.ext_id,
        "title": doc.title,
        "year": doc.year,
        "genres": list(doc.genres),
        "cover": doc.cover,
        "image": doc.image_path,
        "rating": doc.rating,
        "ratingValue": doc.rating_value,
        "plot": doc.plot,
        "director": doc.director,
        "actors": list(doc.actors or []),
        "type": doc.type,
        "videoPath": doc.video_path,
        "episodes": [r for r in (episode_record(ep) for ep in episodes or []) if r],
    }
    entry = {**prev, **projection}
    # projected fields that are now empty are removed rather than kept stale
    entry = {k: v for k, v in entry.items() if not (k in projection and v is None)}
    if entry.get("likes") is None:
        entry["likes"] = doc.likes or 0
    return entry


@dataclass
class SeedReport:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0
    path: Optional[str] = None


# ---------- Reconciler ----------
class SeedReconciler:
    def __init__(self, candidates: Sequence[Union[str, Path]], enabled: bool = False):
        if not candidates:
            raise ValueError("At least one seed file path is required")
        self.candidates = [Path(c) for c in candidates]
        self.enabled = enabled
        self.cache = SeedCache(self.read)

    @classmethod
    def from_settings(cls, settings) -> "SeedReconciler":
        return cls(settings.content_json_candidates, enabled=settings.SEED_CONTENT)

    def read(self) -> SeedDocument:
        """First readable candidate wins; an empty document targets the first path."""
        for candidate in self.candidates:
            try:
                with candidate.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except FileNotFoundError:
                continue
            except (OSError, ValueError) as exc:
                logger.warning("[seed] unreadable %s: %s", candidate, exc)
                continue
            return SeedDocument.from_json(data, path=candidate)
        return SeedDocument(path=self.candidates[0])

    def write(self, document: SeedDocument) -> None:
        write_json_atomic(document.path or self.candidates[0], document.to_json())
        self.cache.invalidate()

    def sync_content_json_with_doc(
        self,
        doc: Content,
        override_episodes: Optional[Sequence[Union[Episode, Dict[str, Any]]]] = None,
    ) -> None:
        if not doc or not doc.ext_id:
            return
        document = self.read()
        target = str(doc.ext_id).strip()
        index = next(
            (
                i
                for i, item in enumerate(document.items)
                if isinstance(item, dict) and entry_key(item) == target
            ),
            None,
        )
        prev = document.items[index] if index is not None else {}
        entry = build_json_entry(doc, prev, override_episodes)
        if index is not None:
            document.items[index] = entry
        else:
            document.items.append(entry)
        self.write(document)

    def remove_seed_entry(self, ext_id: str) -> bool:
        document = self.read()
        target = str(ext_id).strip()
        kept = [
            item
            for item in document.items
            if not (isinstance(item, dict) and entry_key(item) == target)
        ]
        if len(kept) == len(document.items):
            return False
        document.items = kept
        self.write(document)
        return True

    def seed_content_if_needed(self, db: Session, force: bool = False) -> Optional[SeedReport]:
        """
        Load the seed file into the store when forced, when seeding is
        enabled, or when the store is still empty.
        """
        try:
            if not force and not self.enabled and db.scalar(select(func.count(Content.id))):
                return None

            document = self.read()
            report = SeedReport(path=str(document.path))
            for item in document.items:
                if not isinstance(item, dict):
                    report.skipped += 1
                    continue
                fields = content_fields_from_seed(item)
                if not fields["ext_id"] or not fields["title"]:
                    report.skipped += 1
                    continue
                outcome = self._upsert_from_seed(db, fields)
                if outcome == "inserted":
                    report.inserted += 1
                elif outcome == "updated":
                    report.updated += 1

            report.total = db.scalar(select(func.count(Content.id))) or 0
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("[seed] skip: %s", exc)
            return None

        logger.info(
            "[seed] from %s -> inserted: %d, updated: %d, skipped: %d, total: %d",
            report.path,
            report.inserted,
            report.updated,
            report.skipped,
            report.total,
        )
        return report

    def _upsert_from_seed(self, db: Session, fields: Dict[str, Any]) -> Optional[str]:
        existing = self._load(db, fields["ext_id"])
        if existing is None:
            db.add(_new_content(fields))
            try:
                db.commit()
                return "inserted"
            except IntegrityError:
                # inserted concurrently; fall through to a field update
                db.rollback()
                existing = self._load(db, fields["ext_id"])
                if existing is None:
                    raise

        if _apply_seed_update(existing, fields):
            db.commit()
            return "updated"
        return None

    @staticmethod
    def _load(db: Session, ext_id: str) -> Optional[Content]:
        return db.scalar(
            select(Content)
            .where(Content.ext_id == ext_id)
            .options(selectinload(Content.genre_links), selectinload(Content.episodes))
        )


_OPTIONAL_FIELDS = ("plot", "director", "actors", "rating", "rating_value", "video_path")


def _new_content(fields: Dict[str, Any]) -> Content:
    content = Content(
        ext_id=fields["ext_id"],
        title=fields["title"],
        year=fields["year"],
        type=fields["type"],
        likes=fields["likes"],
        cover=fields["cover"],
        image_path=fields["image_path"],
        actors=[],
    )
    content.genres = fields["genres"]
    for name in _OPTIONAL_FIELDS:
        if name in fields:
            setattr(content, name, fields[name])
    if "episodes" in fields:
        apply_episode_records(content, fields["episodes"])
    return content


def _apply_seed_update(content: Content, fields: Dict[str, Any]) -> bool:
    """Field-level update. ``likes`` is never touched: the store owns the counter."""
    changed = False
    for name in ("title", "year", "image_path", "cover", "type", *_OPTIONAL_FIELDS):
        if name not in fields:
            continue
        if getattr(content, name) != fields[name]:
            setattr(content, name, fields[name])
            changed = True
    if content.genres != fields["genres"]:
        content.genres = fields["genres"]
        changed = True
    if "episodes" in fields and apply_episode_records(content, fields["episodes"]):
        changed = True
    if content.is_series and content.video_path is not None:
        content.video_path = None
        changed = True
    return changed
