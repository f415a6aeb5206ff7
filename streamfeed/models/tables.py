from streamfeed.core.database import Base, engine
from streamfeed.models.content import Content  # noqa: F401
from streamfeed.models.episode import Episode  # noqa: F401
from streamfeed.models.genre import ContentGenre  # noqa: F401
from streamfeed.models.like import Like  # noqa: F401
from streamfeed.models.log import Log  # noqa: F401
from streamfeed.models.watch_progress import WatchProgress  # noqa: F401


def create_tables(bind=None) -> None:
    """Create every table the service needs. Existing tables are left alone."""
    Base.metadata.create_all(bind=bind or engine)
