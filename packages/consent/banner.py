from __future__ import annotations

import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from packages.consent.storage import ConsentPreferences, ConsentRepository

DEFAULT_DISPLAY_DELAY_MS = 500
DEFAULT_CONSENT_EXPIRY_DAYS = 365
CONSENT_UPDATED_EVENT = "consent_updated"

DataLayerPush = Callable[[dict[str, Any]], None]
ConsentRecorder = Callable[[str, ConsentPreferences], None]


class BannerState(StrEnum):
    HIDDEN = "hidden"
    SHOWN = "shown"
    ACCEPTED_ALL = "accepted_all"
    REJECTED_ALL = "rejected_all"
    CUSTOMIZED = "customized"


def _grant(flag: bool) -> str:
    return "granted" if flag else "denied"


def consent_mode_state(preferences: ConsentPreferences) -> dict[str, str]:
    return {
        "analytics_storage": _grant(preferences.analytics),
        "ad_storage": _grant(preferences.marketing),
        "ad_user_data": _grant(preferences.marketing),
        "ad_personalization": _grant(preferences.marketing),
    }


def _now_ms() -> int:
    return int(time.time() * 1000)


class CookieConsentBannerStore:
    """Client-side consent banner state.

    ``start`` decides whether the banner is needed at all; ``tick`` reveals it
    once the display delay has passed. Every decision is persisted through the
    repository, pushed to the data layer and handed to the recorder.
    """

    def __init__(
        self,
        repository: ConsentRepository,
        *,
        consent_expiry_days: int = DEFAULT_CONSENT_EXPIRY_DAYS,
        is_active: bool = True,
        display_delay_ms: int = DEFAULT_DISPLAY_DELAY_MS,
        data_layer: DataLayerPush | None = None,
        recorder: ConsentRecorder | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.repository = repository
        self.consent_expiry_days = consent_expiry_days
        self.is_active = is_active
        self.display_delay_ms = display_delay_ms
        self.data_layer = data_layer
        self.recorder = recorder
        self.clock = clock
        self.state = BannerState.HIDDEN
        self.preferences: ConsentPreferences | None = None
        self._show_at: int | None = None

    @property
    def visible(self) -> bool:
        return self.state == BannerState.SHOWN

    def start(self) -> BannerState:
        self.state = BannerState.HIDDEN
        self._show_at = None
        if not self.is_active:
            return self.state
        now = self.clock()
        stored = self.repository.load()
        if stored is not None and stored.is_valid(self.consent_expiry_days, now):
            self.preferences = stored
            return self.state
        self._show_at = now + self.display_delay_ms
        return self.state

    def tick(self) -> BannerState:
        if self.state == BannerState.HIDDEN and self._show_at is not None and self.clock() >= self._show_at:
            self.state = BannerState.SHOWN
            self._show_at = None
        return self.state

    def reopen(self) -> BannerState:
        self.preferences = self.repository.load() or self.preferences
        self._show_at = None
        self.state = BannerState.SHOWN
        return self.state

    def accept_all(self) -> ConsentPreferences:
        return self._decide(analytics=True, marketing=True, outcome=BannerState.ACCEPTED_ALL)

    def reject_all(self) -> ConsentPreferences:
        return self._decide(analytics=False, marketing=False, outcome=BannerState.REJECTED_ALL)

    def save_preferences(self, *, analytics: bool, marketing: bool) -> ConsentPreferences:
        return self._decide(analytics=analytics, marketing=marketing, outcome=BannerState.CUSTOMIZED)

    def _decide(self, *, analytics: bool, marketing: bool, outcome: BannerState) -> ConsentPreferences:
        preferences = ConsentPreferences(analytics=analytics, marketing=marketing, timestamp=self.clock())
        self.repository.save(preferences)
        self.preferences = preferences
        self.state = outcome
        self._show_at = None
        if self.data_layer is not None:
            self.data_layer({"event": CONSENT_UPDATED_EVENT, **consent_mode_state(preferences)})
        if self.recorder is not None:
            self.recorder(self.repository.anonymous_id(), preferences)
        return preferences
