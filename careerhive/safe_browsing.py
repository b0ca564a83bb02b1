"""
Link reputation lookups against the Google Safe Browsing v4 API.

`SafeBrowsingChecker.is_url_safe` answers True/False for a verdict and
raises `LinkCheckError` when the service cannot be reached or replies with
an error, so an outage is never mistaken for a clean link.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Protocol

import requests

from .config import settings
from .errors import LinkCheckError

logger = logging.getLogger(__name__)

THREAT_TYPES = ["MALWARE", "SOCIAL_ENGINEERING", "UNWANTED_SOFTWARE", "POTENTIALLY_HARMFUL_APPLICATION"]


class LinkChecker(Protocol):
    def is_url_safe(self, url: str) -> bool: ...


class SafeBrowsingChecker:
    def __init__(
        self,
        api_key: str | None,
        endpoint: str = settings.SAFE_BROWSING_URL,
        client_id: str = settings.SAFE_BROWSING_CLIENT_ID,
        timeout: float = settings.SAFE_BROWSING_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint
        self.client_id = client_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self._warned = False

    def build_payload(self, url: str) -> dict:
        return {
            "client": {"clientId": self.client_id, "clientVersion": "1.0"},
            "threatInfo": {
                "threatTypes": THREAT_TYPES,
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }

    def is_url_safe(self, url: str) -> bool:
        if not self.api_key:
            if not self._warned:
                logger.warning("SAFE_BROWSING_API_KEY not set; links are not being checked")
                self._warned = True
            return True

        try:
            resp = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=self.build_payload(url),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise LinkCheckError(f"Safe Browsing lookup failed: {exc}") from exc

        matches = body.get("matches") or []
        if matches:
            logger.warning(
                "Safe Browsing flagged %s: %s", url, ", ".join(sorted({m.get("threatType", "?") for m in matches}))
            )
            return False
        return True


@lru_cache(maxsize=1)
def get_link_checker() -> LinkChecker:
    return SafeBrowsingChecker(api_key=settings.SAFE_BROWSING_API_KEY)
