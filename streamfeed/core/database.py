# streamfeed/core/database.py
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings


def _build_connect_args(db_url: str) -> Dict[str, object]:
    """
    Build DBAPI connect args:
    - SQLite: allow the connection to be used from FastAPI's worker threads and
      wait on a locked database file instead of failing at once
    - PostgreSQL: force SSL when not connecting to localhost (unless the URL already specifies sslmode)
      and enable TCP keepalives so idle connections are not dropped by proxies/NAT
    """
    if db_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": 30}

    args: Dict[str, object] = {}

    has_sslmode_in_url = "sslmode=" in db_url

    is_local = (
        "localhost" in db_url
        or "127.0.0.1" in db_url
        or "0.0.0.0" in db_url
    )

    if not is_local and not has_sslmode_in_url:
        args["sslmode"] = "require"
    elif is_local and not has_sslmode_in_url:
        args["sslmode"] = "disable"

    args.update(
        {
            "keepalives": 1,
            "keepalives_idle": 30,      # seconds before probing idle
            "keepalives_interval": 10,  # seconds between probes
            "keepalives_count": 5,      # failed probes before giving up
        }
    )

    return args


def _build_engine_kwargs(db_url: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "connect_args": _build_connect_args(db_url),
        "future": True,
    }
    if db_url.startswith("sqlite"):
        # in-memory databases only exist for the lifetime of one connection
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs

    kwargs.update(
        {
            "pool_pre_ping": True,
            "pool_recycle": 280,
            "pool_size": 5,
            "max_overflow": 10,
        }
    )
    return kwargs


# --- SQLAlchemy Base class ---
class Base(DeclarativeBase):
    pass


# --- Engine / Session setup ---
engine = create_engine(settings.DATABASE_URL, **_build_engine_kwargs(settings.DATABASE_URL))

if settings.DATABASE_URL.startswith("sqlite"):

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _record):
        # ON DELETE CASCADE on genre and episode rows
        dbapi_connection.execute("PRAGMA foreign_keys=ON")


SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    future=True,
)


# --- FastAPI dependency ---
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _dialect_insert(db: Session, model):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(model)
    if name == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on dialect {name!r}")


def insert_ignore(
    db: Session,
    model,
    values: Mapping[str, Any],
    index_elements: Iterable[str],
) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING. Returns True when a row was created.
    Does not commit.
    """
    stmt = (
        _dialect_insert(db, model)
        .values(**values)
        .on_conflict_do_nothing(index_elements=list(index_elements))
    )
    result = db.execute(stmt)
    return (result.rowcount or 0) == 1


def upsert(
    db: Session,
    model,
    values: Mapping[str, Any],
    index_elements: Iterable[str],
    update_fields: Optional[Iterable[str]] = None,
) -> None:
    """
    INSERT ... ON CONFLICT DO UPDATE on the given unique key, as one statement.
    Does not commit.
    """
    keys = list(index_elements)
    fields = list(update_fields) if update_fields is not None else [k for k in values if k not in keys]
    stmt = _dialect_insert(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=keys,
        set_={name: stmt.excluded[name] for name in fields},
    )
    db.execute(stmt)
