import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from streamfeed.core.database import SessionLocal
from streamfeed.models.log import Log

logger = logging.getLogger(__name__)

_LEVELS = {"info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}


def write_log(
    event: str,
    *,
    db: Optional[Session] = None,
    level: str = "info",
    user_id: Optional[str] = None,
    profile_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Persist an audit entry. A failed write is logged and dropped.

    Call it with the request's session once that session's own work is
    committed; the entry then reuses the request's connection. Without
    ``db`` a short-lived session is opened, which is only meant for callers
    that hold no connection (error handlers, the CLI).
    """
    details = details or {}
    logger.log(_LEVELS.get(level, logging.INFO), "%s profile=%s %s", event, profile_id, details)

    session = db if db is not None else SessionLocal()
    try:
        session.add(
            Log(
                level=level,
                event=event,
                user_id=user_id,
                profile_id=profile_id or None,
                details=details,
            )
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("[log] skip: %s", exc)
    finally:
        if db is None:
            session.close()
