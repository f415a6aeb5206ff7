from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    MEDIA_ROOT: str = "public"
    CONTENT_JSON_PATH: str = "content.json"
    CONTENT_JSON_FALLBACKS: List[str] = []
    SEED_CONTENT: bool = False
    OMDB_API_KEY: Optional[str] = None
    OMDB_URL: str = "http://www.omdbapi.com/"
    ADMIN_TOKEN: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    APP_MODULE: str = "streamfeed.main:app"
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    CORS_ORIGINS: List[str] = ["http://localhost:4200", "http://localhost:8000"]

    @property
    def content_json_candidates(self) -> List[str]:
        return [self.CONTENT_JSON_PATH, *self.CONTENT_JSON_FALLBACKS]


settings = Settings()
