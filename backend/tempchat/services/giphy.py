# tempchat/services/giphy.py

import logging

import requests

from tempchat.core.config import GIPHY_API_KEY, GIPHY_API_URL, GIPHY_TIMEOUT_SECONDS
from tempchat.core.errors import ChatError

logger = logging.getLogger(__name__)

RATING = "g"


class GiphyError(ChatError):
    default_message = "Giphy request failed"


class GiphyClient:
    """
    Thin proxy to the GIPHY search and trending endpoints, so the API key
    never reaches the browser. Results are returned as GIPHY sends them.
    """

    def __init__(
        self,
        api_key: str = GIPHY_API_KEY,
        base_url: str = GIPHY_API_URL,
        session: requests.Session | None = None,
        timeout: float = GIPHY_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, endpoint: str, params: dict) -> dict:
        if not self.api_key:
            raise GiphyError("Giphy API key not configured")
        query = {"api_key": self.api_key, "rating": RATING, **params}
        try:
            resp = self.session.get(f"{self.base_url}/{endpoint}", params=query, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Giphy %s unreachable: %s", endpoint, e)
            raise GiphyError(f"Giphy API error: {e}") from e
        if not resp.ok:
            logger.warning("Giphy %s answered %s", endpoint, resp.status_code)
            raise GiphyError(f"Giphy API error: {resp.reason}")
        return resp.json()

    def search(self, query: str, limit: int = 20, offset: int = 0) -> dict:
        return self._get("search", {"q": query, "limit": limit, "offset": offset})

    def trending(self, limit: int = 20, offset: int = 0) -> dict:
        return self._get("trending", {"limit": limit, "offset": offset})
