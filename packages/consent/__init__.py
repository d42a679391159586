from packages.consent.banner import (
    CONSENT_UPDATED_EVENT,
    DEFAULT_CONSENT_EXPIRY_DAYS,
    DEFAULT_DISPLAY_DELAY_MS,
    BannerState,
    CookieConsentBannerStore,
    consent_mode_state,
)
from packages.consent.client import ConsentApiClient
from packages.consent.storage import (
    ANONYMOUS_ID_STORAGE_KEY,
    CONSENT_STORAGE_KEY,
    ConsentPreferences,
    ConsentRepository,
    ConsentStorage,
    InMemoryStorage,
)

__all__ = [
    "ANONYMOUS_ID_STORAGE_KEY",
    "CONSENT_STORAGE_KEY",
    "CONSENT_UPDATED_EVENT",
    "DEFAULT_CONSENT_EXPIRY_DAYS",
    "DEFAULT_DISPLAY_DELAY_MS",
    "BannerState",
    "ConsentApiClient",
    "ConsentPreferences",
    "ConsentRepository",
    "ConsentStorage",
    "CookieConsentBannerStore",
    "InMemoryStorage",
    "consent_mode_state",
]
