from __future__ import annotations

import logging

import httpx

from packages.consent.storage import ConsentPreferences

logger = logging.getLogger(__name__)

RECORD_PATH = "/api/public/cookie-consent"


class ConsentApiClient:
    """Posts consent decisions to the public consent endpoint.

    Usable directly as the banner store's recorder. Network and HTTP errors are
    logged and dropped so a failed record never blocks the visitor.
    """

    def __init__(self, base_url: str, tenant_id: str, client: httpx.Client | None = None) -> None:
        self.tenant_id = tenant_id
        self._client = client or httpx.Client(base_url=base_url, timeout=10.0)

    def __call__(self, anonymous_id: str, preferences: ConsentPreferences) -> None:
        self.record(anonymous_id, preferences)

    def record(self, anonymous_id: str, preferences: ConsentPreferences) -> bool:
        if not self.tenant_id:
            return False
        payload = {
            "tenant_id": self.tenant_id,
            "anonymous_id": anonymous_id,
            "necessary_cookies": preferences.necessary,
            "analytics_cookies": preferences.analytics,
            "marketing_cookies": preferences.marketing,
        }
        try:
            response = self._client.post(RECORD_PATH, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("failed to record cookie consent for tenant %s: %s", self.tenant_id, exc)
            return False
        return True

    def close(self) -> None:
        self._client.close()
