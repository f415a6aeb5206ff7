import os
import tempfile

# settings are read when streamfeed.core.config is first imported
_DB_DIR = tempfile.mkdtemp(prefix="streamfeed-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "streamfeed.db")
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["OMDB_API_KEY"] = ""
os.environ["SEED_CONTENT"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
