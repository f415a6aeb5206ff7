import json
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from streamfeed.api.deps import get_media, get_omdb, get_reconciler
from streamfeed.core.database import Base, SessionLocal, engine
from streamfeed.main import app
from streamfeed.models.content import Content
from streamfeed.models.tables import create_tables
from streamfeed.services.media import MediaChecker
from streamfeed.services.omdb import OmdbClient
from streamfeed.services.seed import SeedReconciler, apply_episode_records

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


class CatalogTestCase(unittest.TestCase):
    """Fresh schema, media root and seed file for every test."""

    def setUp(self):
        Base.metadata.drop_all(bind=engine)
        create_tables()

        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.media_root = root / "public"
        self.media_root.mkdir()
        self.seed_path = root / "content.json"

        self.reconciler = SeedReconciler([self.seed_path])
        self.media = MediaChecker(self.media_root, seed_cache=self.reconciler.cache)
        self.omdb = OmdbClient(None)
        self.db = SessionLocal()

    def tearDown(self):
        self.db.close()
        app.dependency_overrides.clear()
        self._tmp.cleanup()

    # ---------- fixtures ----------
    def make_content(
        self,
        ext_id,
        title=None,
        genres=(),
        type="Movie",
        likes=0,
        year=None,
        rating_value=None,
        episodes=None,
        **fields,
    ):
        content = Content(
            ext_id=ext_id,
            title=title or ext_id,
            type=type,
            likes=likes,
            year=year,
            rating_value=rating_value,
            actors=[],
            **fields,
        )
        content.genres = list(genres)
        if episodes:
            apply_episode_records(
                content,
                [
                    {
                        "season": season,
                        "episode": number,
                        "title": f"Episode {number}",
                        "videoPath": path,
                        "durationSec": 0,
                    }
                    for season, number, path in episodes
                ],
            )
        self.db.add(content)
        self.db.commit()
        return content

    def touch(self, rel_path):
        path = self.media_root / rel_path.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"")
        return path

    def write_seed(self, data):
        self.seed_path.write_text(json.dumps(data), encoding="utf-8")
        self.reconciler.cache.invalidate()

    def read_seed(self):
        return json.loads(self.seed_path.read_text(encoding="utf-8"))

    def client(self):
        app.dependency_overrides[get_reconciler] = lambda: self.reconciler
        app.dependency_overrides[get_media] = lambda: self.media
        app.dependency_overrides[get_omdb] = lambda: self.omdb
        return TestClient(app)

    def reload(self, ext_id):
        """Fetch a row as committed by another session."""
        self.db.expire_all()
        return self.db.query(Content).filter(Content.ext_id == ext_id).one_or_none()
