import logging
from functools import lru_cache
from typing import Optional
from urllib.parse import urlparse

import requests
from fastapi import status

import config
from errors import ExternalServiceError, upstream_request

logger = logging.getLogger(__name__)

TWEET_HOSTS = {"twitter.com", "www.twitter.com", "x.com", "www.x.com"}


def is_valid_tweet_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and (parsed.hostname or "") in TWEET_HOSTS


class ContentService:
    """Page text extraction through Exa's contents endpoint."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = config.EXA_BASE_URL,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def fetch_page_text(self, url: str) -> str:
        if not self.api_key:
            raise ExternalServiceError("Exa", "API key not configured",
                                       status.HTTP_500_INTERNAL_SERVER_ERROR)

        logger.info("Fetching page content for %s", url)
        response = upstream_request(
            "Exa", "POST", f"{self.base_url}/contents",
            session=self.session,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"urls": [url], "text": True},
        )
        results = response.json().get("results") or []
        text = results[0].get("text") if results else None
        if not text:
            raise ExternalServiceError("Exa", "Failed to fetch tweet content",
                                       status.HTTP_404_NOT_FOUND)
        return text


@lru_cache()
def get_content_service() -> ContentService:
    return ContentService(api_key=config.EXA_API_KEY)
