"""
OMDb metadata enrichment for admin content writes.
- Sync httpx client; every failure degrades to "no metadata".
- Only plot, director, actors and the IMDb rating are used.
"""
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

OMDB_URL = "http://www.omdbapi.com/"


class OmdbClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = OMDB_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    def fetch_metadata(self, title: str, year: Optional[int]) -> Dict[str, Any]:
        """Content fields to merge into a create/update, or {} when unavailable."""
        if not self.api_key:
            logger.warning("[OMDb] OMDB_API_KEY is not set. Skipping rating fetch.")
            return {}

        params = {"apikey": self.api_key, "t": title}
        if year:
            params["y"] = str(year)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(self.base_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 401:
                logger.warning("[OMDb] Invalid or unauthorized API key - skipping metadata enrichment.")
            else:
                logger.error("[OMDb] Error fetching data: %s", exc)
            return {}
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("[OMDb] Error fetching data: %s", exc)
            return {}

        if not isinstance(data, dict) or data.get("Response") != "True":
            logger.warning("[OMDb] Could not find data for %s (%s)", title, year)
            return {}

        meta: Dict[str, Any] = {
            "plot": data.get("Plot"),
            "director": data.get("Director"),
            "actors": [a.strip() for a in str(data.get("Actors") or "").split(",") if a.strip()],
        }
        try:
            rating_value = float(data.get("imdbRating"))
        except (TypeError, ValueError):
            logger.warning("[OMDb] Rating missing for %s", title)
        else:
            meta["rating"] = f"{data['imdbRating']}/10 (IMDb)"
            meta["rating_value"] = rating_value
            logger.info("[OMDb] Fetched rating for %s: %s", title, meta["rating"])
        return meta
