"""
Catalog queries: feed, search, similar titles, recommendations and the
content detail read. Every function returns ``ContentItem`` models already
annotated for the requesting profile.
"""
from __future__ import annotations

import math
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import Select, exists, func, select
from sqlalchemy.orm import Session, selectinload

from streamfeed.core.errors import InvalidRange, InvalidYear, NotFound, ValidationError
from streamfeed.models.content import Content
from streamfeed.models.genre import ContentGenre
from streamfeed.models.like import Like
from streamfeed.schemas.catalog import SearchQueryEcho
from streamfeed.schemas.content import ContentItem, EpisodeOut
from streamfeed.services.annotate import annotate, annotate_watched_tags
from streamfeed.services.audit import write_log
from streamfeed.services.media import MediaChecker, MediaRepair, plan_media_repair

SORT_MODES = ("popular", "alpha", "rating", "newest")

FEED_LIMIT = (30, 200)
SIMILAR_LIMIT = (12, 50)
RECOMMEND_LIMIT = (20, 100)
TOP_GENRES = 5


# ---------- Query helpers ----------
def clamp_limit(raw: Optional[int], default: int, maximum: int) -> int:
    if not raw:
        return default
    return min(max(raw, 1), maximum)


def clamp_offset(raw: Optional[int]) -> int:
    return raw if raw and raw > 0 else 0


def normalize_sort(raw: Optional[str]) -> str:
    value = str(raw or "popular").strip().lower()
    return value if value in SORT_MODES else "popular"


def parse_year(token: Optional[str]) -> Optional[float]:
    value = str(token or "").strip()
    if not value:
        return None
    try:
        year = float(value)
    except ValueError:
        raise InvalidYear() from None
    if not math.isfinite(year):
        raise InvalidYear()
    return int(year) if year.is_integer() else year


def _like_pattern(fragment: str) -> str:
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _base_query() -> Select:
    return select(Content).options(
        selectinload(Content.genre_links), selectinload(Content.episodes)
    )


def _popular(stmt: Select) -> Select:
    return stmt.order_by(Content.likes.desc(), Content.title.asc())


def apply_sort(stmt: Select, sort: str) -> Select:
    if sort == "alpha":
        return stmt.order_by(Content.title.asc())
    if sort == "rating":
        return stmt.where(Content.rating_value.is_not(None)).order_by(
            Content.rating_value.desc(), Content.likes.desc(), Content.title.asc()
        )
    if sort == "newest":
        return stmt.order_by(
            Content.year.desc().nulls_last(), Content.created_at.desc(), Content.title.asc()
        )
    return _popular(stmt)


def _fetch(db: Session, stmt: Select, limit: int, offset: int = 0) -> List[ContentItem]:
    rows = db.scalars(stmt.offset(offset).limit(limit)).all()
    return [ContentItem.model_validate(row) for row in rows]


def _with_resolved_covers(media: MediaChecker, items: Sequence[ContentItem]) -> None:
    for item in items:
        cover = media.resolve_cover_for_doc(item)
        item.cover = cover or item.cover
        item.image_path = item.image_path or cover


def title_score(item: ContentItem) -> float:
    return (item.likes or 0) * 1000 + (item.rating_value or 0)


def dedupe_by_title(items: Sequence[ContentItem]) -> List[ContentItem]:
    """
    Keep one item per lower-cased trimmed title: the one with the higher
    ``likes*1000 + ratingValue``. Winners stay where the sort placed them.
    """
    best = {}
    for item in items:
        key = (item.title or "").strip().lower()
        prev = best.get(key)
        if prev is None or title_score(item) > title_score(prev):
            best[key] = item
    winners = {id(item) for item in best.values()}
    return [item for item in items if id(item) in winners]


# ---------- Feed ----------
def get_feed(
    db: Session,
    sort: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    profile_id: Optional[str] = None,
) -> List[ContentItem]:
    sort = normalize_sort(sort)
    limit = clamp_limit(limit, *FEED_LIMIT)
    offset = clamp_offset(offset)

    items = _fetch(db, apply_sort(_base_query(), sort), limit, offset)
    annotate(db, items, profile_id)

    write_log(
        "feed",
        db=db,
        profile_id=profile_id,
        details={"sort": sort, "limit": limit, "offset": offset, "count": len(items)},
    )
    return items


# ---------- Search ----------
def search(
    db: Session,
    query: Optional[str] = None,
    type_q: Optional[str] = None,
    genre: Optional[str] = None,
    year_from: Optional[str] = None,
    year_to: Optional[str] = None,
    sort: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    profile_id: Optional[str] = None,
) -> Tuple[SearchQueryEcho, List[ContentItem]]:
    q = str(query or "").strip()
    type_q = str(type_q or "").strip().lower()
    genre = str(genre or "").strip().lower()
    y_from = parse_year(year_from)
    y_to = parse_year(year_to)
    if y_from is not None and y_to is not None and y_from > y_to:
        raise InvalidRange()
    sort = normalize_sort(sort)
    limit = clamp_limit(limit, *FEED_LIMIT)
    offset = clamp_offset(offset)

    stmt = _base_query()
    if q:
        stmt = stmt.where(Content.title.ilike(_like_pattern(q), escape="\\"))
    if type_q:
        stmt = stmt.where(func.lower(Content.type) == type_q)
    if genre:
        stmt = stmt.where(
            Content.genre_links.any(
                func.lower(ContentGenre.name).like(_like_pattern(genre), escape="\\")
            )
        )
    if y_from is not None:
        stmt = stmt.where(Content.year >= y_from)
    if y_to is not None:
        stmt = stmt.where(Content.year <= y_to)

    items = dedupe_by_title(_fetch(db, apply_sort(stmt, sort), limit, offset))
    annotate(db, items, profile_id)

    echo = SearchQueryEcho(
        q=q,
        type=type_q,
        genre=genre,
        year_from=y_from,
        year_to=y_to,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    write_log(
        "search",
        db=db,
        profile_id=profile_id,
        details={**echo.model_dump(), "count": len(items)},
    )
    return echo, items


# ---------- Similar ----------
def similar(
    db: Session,
    media: MediaChecker,
    ext_id: Optional[str],
    limit: Optional[int] = None,
    profile_id: Optional[str] = None,
) -> List[ContentItem]:
    ext_id = str(ext_id or "").strip()
    if not ext_id:
        raise ValidationError("extId is required")
    limit = clamp_limit(limit, *SIMILAR_LIMIT)

    base = db.scalar(
        select(Content)
        .where(Content.ext_id == ext_id)
        .options(selectinload(Content.genre_links))
    )
    if base is None:
        raise NotFound("Base content not found")
    genres = base.genres
    if not genres:
        return []

    stmt = _popular(
        _base_query().where(
            Content.ext_id != ext_id,
            Content.genre_links.any(ContentGenre.name.in_(genres)),
        )
    )
    items = _fetch(db, stmt, limit)
    _with_resolved_covers(media, items)
    annotate(db, items, profile_id)
    return items


# ---------- Recommendations ----------
def top_genres(liked_contents: Sequence[Content], count: int = TOP_GENRES) -> List[str]:
    """Most frequent genres; equal counts keep first-seen order."""
    freq = Counter()
    for content in liked_contents:
        for name in content.genres:
            freq[name] += 1
    ranked = sorted(freq.items(), key=lambda kv: kv[1], reverse=True)
    return [name for name, _ in ranked[:count]]


def recommend(
    db: Session,
    media: MediaChecker,
    profile_id: Optional[str],
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[ContentItem]:
    profile_id = str(profile_id or "").strip()
    if not profile_id:
        raise ValidationError("profileId is required")
    limit = clamp_limit(limit, *RECOMMEND_LIMIT)
    offset = clamp_offset(offset)

    liked_ids = list(
        db.scalars(select(Like.content_ext_id).where(Like.profile_id == profile_id).order_by(Like.id))
    )

    if not liked_ids:
        items = _fetch(db, _popular(_base_query()), limit, offset)
        _with_resolved_covers(media, items)
        annotate(db, items, profile_id, liked=False)
        write_log(
            "recommendations",
            db=db,
            profile_id=profile_id,
            details={"topGenres": [], "out": len(items), "offset": offset, "note": "no_likes_yet"},
        )
        return items

    by_ext_id = {
        c.ext_id: c
        for c in db.scalars(
            select(Content)
            .where(Content.ext_id.in_(liked_ids))
            .options(selectinload(Content.genre_links))
        )
    }
    genres = top_genres([by_ext_id[e] for e in liked_ids if e in by_ext_id])

    stmt = _base_query().where(Content.ext_id.not_in(liked_ids))
    if genres:
        stmt = stmt.where(Content.genre_links.any(ContentGenre.name.in_(genres)))
    items = _fetch(db, _popular(stmt), limit, offset)
    _with_resolved_covers(media, items)
    # candidates exclude liked content, so `liked` is a constant
    annotate(db, items, profile_id, liked=False)

    write_log(
        "recommendations",
        db=db,
        profile_id=profile_id,
        details={"topGenres": genres, "out": len(items), "offset": offset},
    )
    return items


# ---------- Detail ----------
def get_content_detail(
    db: Session,
    media: MediaChecker,
    ext_id: str,
    profile_id: Optional[str] = None,
) -> Tuple[ContentItem, MediaRepair]:
    """
    Read one item with stale media filtered out. The returned repair
    describes what should be cleared from the store; applying it is the
    caller's business and must not affect this response.
    """
    ext_id = str(ext_id or "").strip()
    if not ext_id:
        raise ValidationError("extId is required")

    doc = db.scalar(_base_query().where(Content.ext_id == ext_id))
    if doc is None:
        raise NotFound("Content not found")

    plan = plan_media_repair(media, doc)
    cover = media.resolve_cover_for_doc(doc)

    item = ContentItem.model_validate(doc)
    item.episodes = [EpisodeOut.model_validate(ep) for ep in plan.episodes]
    item.video_path = plan.video_path
    item.cover = cover or doc.cover
    item.image_path = doc.image_path or cover

    item.liked = False
    if profile_id:
        item.liked = bool(
            db.scalar(
                select(
                    exists().where(Like.profile_id == profile_id, Like.content_ext_id == ext_id)
                )
            )
        )
        annotate_watched_tags(db, [item], profile_id)
    return item, plan.repair
